"""CLI command implementations"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from atlasdoc.config import Settings, load_config
from atlasdoc.core.highlight import highlight_lines, segments_to_ansi
from atlasdoc.core.models import Representation
from atlasdoc.core.pipeline import convert, render_content, to_markdown
from atlasdoc.core.tokenize import tokenize


STORAGE_SUFFIXES = {'.xml', '.html', '.xhtml'}


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _read(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {path}", e)


def detect_representation(path: str) -> Representation:
    """Guess a file's representation from its suffix."""
    suffix = Path(path).suffix.lower()
    if suffix == '.json':
        return Representation.richdoc
    if suffix in STORAGE_SUFFIXES:
        return Representation.storage
    return Representation.markdown


def render_cmd(
    path: Annotated[str, typer.Argument(help="File to render")],
    source: Annotated[Optional[Representation], typer.Option("--from", help="Source representation")] = None,
    no_color: Annotated[bool, typer.Option("--no-color", help="Disable ANSI styling")] = False,
    no_links: Annotated[bool, typer.Option("--no-links", help="Disable OSC-8 hyperlinks")] = False,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Base URL for relative links")] = None,
    ):
    """Render a document as styled terminal text."""
    settings = _settings(overrides={
        "color": False if no_color else None,
        "hyperlinks": False if no_links else None,
        "base_url": base_url,
    })
    content = _read(path)
    typer.echo(render_content(content, source or detect_representation(path), settings), color=settings.color)


def convert_cmd(
    path: Annotated[str, typer.Argument(help="File to convert")],
    target: Annotated[Representation, typer.Option("--to", help="Target representation")],
    source: Annotated[Optional[Representation], typer.Option("--from", help="Source representation")] = None,
    ):
    """Convert a document between markdown, richdoc-json and storage-markup."""
    content = _read(path)
    result = convert(content, source or detect_representation(path), target)
    if target is Representation.richdoc:
        typer.echo(json.dumps(result.to_json(), indent=2, ensure_ascii=False))
    else:
        typer.echo(result)


def highlight_cmd(
    path: Annotated[str, typer.Argument(help="Markdown file to highlight")],
    no_color: Annotated[bool, typer.Option("--no-color", help="Disable ANSI styling")] = False,
    ):
    """Print a Markdown file through the line-by-line highlighter."""
    settings = _settings(overrides={"color": False if no_color else None})
    lines = _read(path).splitlines()
    for segments in highlight_lines(lines, settings):
        typer.echo(segments_to_ansi(segments, color=settings.color), color=settings.color)


def tokens_cmd(
    path: Annotated[str, typer.Argument(help="File to tokenize")],
    source: Annotated[Optional[Representation], typer.Option("--from", help="Source representation")] = None,
    ):
    """Print the token stream, one token per line."""
    markdown = to_markdown(_read(path), source or detect_representation(path))
    for tok in tokenize(markdown):
        line = f"{tok.type} {tok.tag or '-'} {tok.nesting}"
        if tok.content:
            line += f" {tok.content!r}"
        if tok.attrs:
            line += f" {json.dumps(tok.attrs, ensure_ascii=False, default=str)}"
        typer.echo(line)
