"""neanespdf — Byzantine chant score to PDF renderer."""

__version__ = "0.1.0"
