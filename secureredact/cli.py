#!/usr/bin/env python3
"""
Secure Redact CLI - Mark regions or search matches and export a flattened PDF
"""

import dataclasses
import logging
import sys
from pathlib import Path

import click

from .config import IMAGE_FORMATS, RedactConfig, load_config
from .errors import RedactionError, RegionTooSmall
from .models import FILL_PALETTE
from .session import RedactionSession
from .utils import (
    build_export_report, format_file_size, get_pdf_info, load_regions, save_report,
)
from .verification import find_residual_text


logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def _build_config(config_path, **overrides) -> RedactConfig:
    config = load_config(str(config_path)) if config_path else RedactConfig()
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config


def _apply_regions(session: RedactionSession, regions_path: Path, verbose: bool) -> int:
    added = 0
    for page_index, entries in load_regions(str(regions_path)).items():
        if page_index >= len(session.pages):
            click.echo(f"Warning: page {page_index + 1} out of range, skipping", err=True)
            continue
        page = session.page_at(page_index)
        for entry in entries:
            try:
                session.draw_annotation(page.id, entry["region"], entry["color"], entry["label"])
                added += 1
            except RegionTooSmall as e:
                if verbose:
                    click.echo(f"Page {page_index + 1}: skipped region ({e})")
    return added


@click.command("export")
@click.argument("input_pdf", type=click.Path(exists=True, path_type=Path))
@click.argument("output_pdf", type=click.Path(path_type=Path))
@click.option("--regions", type=click.Path(exists=True, path_type=Path), help="JSON file with regions in percent of page size")
@click.option("--term", multiple=True, help="Text to locate and redact (can be used multiple times)")
@click.option("--fill", default="black", type=click.Choice(list(FILL_PALETTE)), help="Fill color for searched terms")
@click.option("--label", default=None, help="Label drawn inside searched-term boxes")
@click.option("--format", "image_format", type=click.Choice(IMAGE_FORMATS), default=None, help="Encoding of flattened pages")
@click.option("--scale", "render_scale", type=float, default=None, help="Render scale for flattened pages (>= 2)")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), help="JSON configuration file")
@click.option("--verify", is_flag=True, help="Refuse to write output if any term is still extractable")
@click.option("--report", type=click.Path(path_type=Path), help="Write a JSON export report")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def export(input_pdf, output_pdf, regions, term, fill, label, image_format, render_scale,
           config_path, verify, report, verbose):
    """
    Export a PDF where every marked page is flattened to an opaque image.

    Pages without marks are copied unchanged.

    \b
    secureredact export in.pdf out.pdf --term "SSN" --verify
    secureredact export in.pdf out.pdf --regions regions.json
    """
    _configure_logging(verbose)

    try:
        config = _build_config(config_path, image_format=image_format, render_scale=render_scale)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        with RedactionSession.open(str(input_pdf), config) as session:
            if regions:
                added = _apply_regions(session, regions, verbose)
                if verbose:
                    click.echo(f"Added {added} regions from {regions}")

            for text in term:
                matches = session.search(text)
                applied = session.apply_all(matches, fill, label)
                if verbose:
                    click.echo(f"Term {text!r}: {len(applied)} of {len(matches)} matches marked")

            with click.progressbar(length=len(session.pages), label="Exporting",
                                   file=sys.stderr) as bar:
                def on_progress(event):
                    if event.phase != "finalize":
                        bar.update(1)

                result = session.export_secure(on_progress=on_progress)

            searched = [text for text in term if session.locator.is_searchable(text)]
            residual = find_residual_text(result.data, searched) if searched else {}
            if verify and residual:
                click.echo("Error: terms still extractable after export, output not written:", err=True)
                for index, found in sorted(residual.items()):
                    click.echo(f"  - page {index + 1}: {', '.join(found)}", err=True)
                sys.exit(1)

            result.save(str(output_pdf))

            if report:
                page_ids = [page.id for page in session.pages]
                save_report(
                    build_export_report(str(input_pdf), result, session.store, page_ids, residual),
                    str(report),
                )

        click.echo(
            f"✓ Export complete: {output_pdf} "
            f"({len(result.flattened_pages)} of {result.page_count} pages flattened, "
            f"{format_file_size(result.size)})"
        )

    except (RedactionError, ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command("search")
@click.argument("input_pdf", type=click.Path(exists=True, path_type=Path))
@click.argument("query")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def search(input_pdf, query, verbose):
    """List candidate regions for QUERY without changing anything."""
    _configure_logging(verbose)

    try:
        with RedactionSession.open(str(input_pdf)) as session:
            matches = session.search(query)
    except RedactionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for match in matches:
        r = match.region
        click.echo(
            f"page {match.page_index + 1}: {match.matched_text!r} "
            f"x={r.x:.2f} y={r.y:.2f} w={r.width:.2f} h={r.height:.2f}"
        )
    click.echo(f"{len(matches)} matches")


@click.command("preview")
@click.argument("input_pdf", type=click.Path(exists=True, path_type=Path))
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--regions", type=click.Path(exists=True, path_type=Path), help="JSON file with regions in percent of page size")
@click.option("--term", multiple=True, help="Text to locate and mark")
@click.option("--verification/--opaque", default=True, help="Translucent outlined overlays or opaque fills")
@click.option("--scale", type=float, default=1.5, help="Preview render scale")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def preview(input_pdf, output_dir, regions, term, verification, scale, verbose):
    """Write PNG previews of every marked page for review before export."""
    _configure_logging(verbose)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        with RedactionSession.open(str(input_pdf)) as session:
            if regions:
                _apply_regions(session, regions, verbose)
            for text in term:
                session.apply_all(session.search(text))

            session.set_verification_mode(verification)
            written = 0
            for page_id in session.store.annotated_page_ids():
                page = session.page(page_id)
                path = output_dir / f"page_{page.index + 1:04d}.png"
                session.preview(page_id, scale=scale).save(path)
                written += 1

    except (RedactionError, ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Wrote {written} previews to {output_dir}")


@click.command("info")
@click.argument("input_pdf", type=click.Path(exists=True, path_type=Path))
def info(input_pdf):
    """Show page count, page sizes and metadata of a PDF."""
    details = get_pdf_info(str(input_pdf))
    if "error" in details:
        click.echo(f"Error: {details['error']}", err=True)
        sys.exit(1)

    click.echo(f"Pages: {details['pages']}")
    click.echo(f"Encrypted: {details['encrypted']}")
    click.echo(f"Size: {format_file_size(details['file_size'])}")
    for key in ("title", "author", "producer"):
        if details[key]:
            click.echo(f"{key.capitalize()}: {details[key]}")
    for number, (width, height) in enumerate(details["page_sizes"], start=1):
        click.echo(f"  page {number}: {width} x {height} pt")


@click.group()
def cli():
    """Secure Redact - Mark sensitive regions and export them unrecoverably"""
    pass


# Add commands to the group
cli.add_command(export)
cli.add_command(search)
cli.add_command(preview)
cli.add_command(info)


if __name__ == "__main__":
    cli()
