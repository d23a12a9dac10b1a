"""CLI entrypoint: Typer app definition and command registration"""

import logging
from typing import Annotated

import typer

from atlasdoc.cli.commands import convert_cmd, highlight_cmd, render_cmd, tokens_cmd


app = typer.Typer(name="atlasdoc", no_args_is_help=True, help="Render and convert issue tracker and wiki content")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr")] = False,
    ):
    """Render and convert issue tracker and wiki content."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


app.command(name="render")(render_cmd)
app.command(name="convert")(convert_cmd)
app.command(name="highlight")(highlight_cmd)
app.command(name="tokens")(tokens_cmd)
