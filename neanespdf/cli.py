"""neanespdf CLI entry point."""

import logging
import sys
from pathlib import Path

import click

from neanespdf import __version__
from neanespdf.config import DEFAULT_FONT_DIR, DEFAULT_OUTPUT_PATH, FONT_PROVIDERS, PAGE_SIZES, RenderConfig
from neanespdf.font_providers import FontResolutionError
from neanespdf.font_registry import FontNotRegisteredError
from neanespdf.neumes import UnknownNeumeError
from neanespdf.score_loader import ScoreFileError, load_score, read_score_file

USAGE = "usage: neanespdf FILENAME.byz|x"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="neanespdf")
@click.argument("score_file", required=False, type=click.Path(dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT_PATH,
    show_default=True,
    envvar="NEANESPDF_OUTPUT",
    metavar="PATH",
    help="Destination PDF file path.",
)
@click.option(
    "--font-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_FONT_DIR,
    envvar="NEANESPDF_FONT_DIR",
    metavar="DIR",
    help="Directory holding the bundled fonts (Neanes.otf, EZ Omega.ttf, ...).",
)
@click.option(
    "--font-provider",
    type=click.Choice(FONT_PROVIDERS, case_sensitive=False),
    default="auto",
    show_default=True,
    envvar="NEANESPDF_FONT_PROVIDER",
    help="How fonts that are not bundled are looked up on this machine.",
)
@click.option(
    "--neume-map",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    envvar="NEANESPDF_NEUME_MAP",
    metavar="FILE",
    help="JSON file overriding neume glyph names, codepoints and alternates.",
)
@click.option(
    "--page-size",
    type=click.Choice(sorted(PAGE_SIZES), case_sensitive=False),
    default="letter",
    show_default=True,
    help="Physical page size.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log font resolution and timing details.")
def main(
    score_file: str | None,
    output: Path,
    font_dir: Path,
    font_provider: str,
    neume_map: Path | None,
    page_size: str,
    verbose: bool,
) -> None:
    """
    Render a laid-out Byzantine chant score (.byzx or .byz) to PDF.

    \b
    Examples:
      neanespdf hymn.byz
      neanespdf hymn.byzx -o hymn.pdf --font-dir ~/fonts/neanes
    """
    if score_file is None:
        click.echo(USAGE)
        return

    _configure_logging(verbose)

    from neanespdf.pdf_exporter import PdfExporter

    try:
        config = RenderConfig(
            output_path=output,
            page_size=page_size.lower(),
            font_dir=font_dir,
            font_provider=font_provider.lower(),
            neume_map_path=neume_map,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    click.echo(f"neanespdf v{__version__}")
    click.echo(f"  Score  : {score_file}")
    click.echo(f"  Output : {output}")
    click.echo()

    try:
        click.echo("[1/2] Reading score...")
        score, pages = load_score(read_score_file(score_file))
        click.echo(f"  {len(pages)} page(s), {len(score.staff.elements)} element(s)")

        click.echo("[2/2] Resolving fonts and writing PDF...")
        exporter = PdfExporter(config)
        exporter.generate(score, pages)
    except ScoreFileError as exc:
        click.echo(f"  ERROR: Could not read score — {exc}", err=True)
        sys.exit(1)
    except (FontResolutionError, FontNotRegisteredError, UnknownNeumeError) as exc:
        click.echo(f"  ERROR: Could not resolve fonts — {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read or write file — {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        # Malformed neume map or colour value.
        click.echo(f"  ERROR: Invalid input — {exc}", err=True)
        sys.exit(1)

    click.echo()
    if exporter.skipped_elements:
        click.echo(f"  Skipped {exporter.skipped_elements} element(s) of unsupported type.")
    click.echo(f"Done!  Open '{output}' in any PDF viewer.")
