"""CLI entrypoint: Typer app definition and command registration"""

import logging
from typing import Annotated

import typer

from mdsite.cli.commands import build_cmd, check_cmd, list_cmd


app = typer.Typer(name="mdsite", no_args_is_help=True, help="Markdown content -> static site build pipeline")


@app.callback()
def main(
    verbose: Annotated[int, typer.Option("--verbose", "-v", count=True, help="-v for info, -vv for debug logging")] = 0,
    ):
    """Configure logging for every command."""
    level = logging.DEBUG if verbose > 1 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)


app.command(name="build")(build_cmd)
app.command(name="check")(check_cmd)
app.command(name="list")(list_cmd)
