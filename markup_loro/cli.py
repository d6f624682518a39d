# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Command line interface

    markup-loro build page.html page.loro       markup -> Loro snapshot
    markup-loro write page.loro                 Loro snapshot -> markup
    markup-loro roundtrip page.html             markup -> document -> markup
    markup-loro sheet-build sheet.json s.loro   sheet JSON -> Loro snapshot
    markup-loro sheet-write s.loro              Loro snapshot -> sheet JSON
"""

import logging
from pathlib import Path

import click
from loro import LoroDoc

from .model.document_store import export_snapshot, import_snapshot
from .parser import build as build_document
from .parser import write as write_document
from .sheet.parser import doc_to_json, json_to_doc

logger = logging.getLogger(__name__)


def _load(snapshot_file: str) -> LoroDoc:
    return import_snapshot(Path(snapshot_file).read_bytes())


def _save(doc: LoroDoc, snapshot_file: str) -> None:
    snapshot = export_snapshot(doc)
    Path(snapshot_file).write_bytes(snapshot)
    logger.info(f"Saved {len(snapshot)} bytes to {snapshot_file}")


@click.group()
@click.option("--log-level", default="WARNING", help="Logging level")
def main(log_level: str):
    """Convert wire-format markup and sheet JSON to and from Loro documents"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@main.command()
@click.argument("markup_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("snapshot_file", type=click.Path(dir_okay=False))
def build(markup_file: str, snapshot_file: str):
    """Build a Loro document from MARKUP_FILE and save its snapshot"""
    doc = LoroDoc()
    build_document(Path(markup_file).read_text(encoding="utf-8"), doc)
    _save(doc, snapshot_file)


@main.command()
@click.argument("snapshot_file", type=click.Path(exists=True, dir_okay=False))
def write(snapshot_file: str):
    """Print the markup of a saved Loro document"""
    click.echo(write_document(_load(snapshot_file)), nl=False)


@main.command()
@click.argument("markup_file", type=click.Path(exists=True, dir_okay=False))
def roundtrip(markup_file: str):
    """Build MARKUP_FILE into a fresh document and print it back"""
    doc = LoroDoc()
    build_document(Path(markup_file).read_text(encoding="utf-8"), doc)
    click.echo(write_document(doc), nl=False)


@main.command("sheet-build")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("snapshot_file", type=click.Path(dir_okay=False))
def sheet_build(json_file: str, snapshot_file: str):
    """Store the sheets of JSON_FILE in a Loro document and save its snapshot"""
    doc = LoroDoc()
    json_to_doc(Path(json_file).read_text(encoding="utf-8"), doc)
    _save(doc, snapshot_file)


@main.command("sheet-write")
@click.argument("snapshot_file", type=click.Path(exists=True, dir_okay=False))
def sheet_write(snapshot_file: str):
    """Print the sheet JSON of a saved Loro document"""
    click.echo(doc_to_json(_load(snapshot_file)))


if __name__ == "__main__":
    main()
