import logging
import pathlib
from typing import Annotated, Any, Optional

import typer
from rich.markup import escape
from rich.table import Table

from .. import de, ser
from ..error import Error

from .console import console, err_console
from .utils import bytes_to_unit, read_text

_log = logging.getLogger(__name__)

LOG_LEVELS = [
    logging.CRITICAL,
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
]

app = typer.Typer(no_args_is_help=True)

Properties = dict[str, Any]

FileArgument = Annotated[
    pathlib.Path, typer.Argument(exists=True, dir_okay=False, resolve_path=True)
]
EncodingOption = Annotated[
    Optional[str],
    typer.Option(help="File encoding. If not given, the encoding is detected."),
]


@app.callback()
def common(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, min=0, max=5, help="set logging level"
        ),
    ] = 0
):
    """Inspect and reformat Java-style key=value properties files."""

    if verbose == 0:
        logging.disable()
    else:
        logging.basicConfig(level=LOG_LEVELS[verbose - 1])


def _load(file: pathlib.Path, encoding: str | None) -> Properties:
    # LookupError is an unknown encoding name, UnicodeDecodeError the wrong encoding.
    try:
        text = read_text(file, encoding)
        return de.from_str(text, Properties)
    except (Error, LookupError, UnicodeDecodeError) as e:
        err_console.print(f"[red]error:[/red] {escape(str(file))}: {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def show(
    file: FileArgument,
    key: Annotated[Optional[str], typer.Argument()] = None,
    encoding: EncodingOption = None,
):
    """Show the entries of a properties file.
    If key is given, only its value is shown.
    """

    props = _load(file, encoding)

    if key is not None:
        if key not in props:
            err_console.print(f"[red]error:[/red] key not found: {escape(key)}")
            raise typer.Exit(1)

        console.print(props[key], markup=False, soft_wrap=True)
        return

    table = Table()
    table.add_column("Key")
    table.add_column("Value")

    for k, v in props.items():
        table.add_row(escape(k), escape(v))

    console.print(table)


@app.command()
def check(file: FileArgument, encoding: EncodingOption = None):
    """Check that a properties file can be read."""

    props = _load(file, encoding)

    console.print(
        f"{escape(str(file))}: {len(props)} entries, {bytes_to_unit(file.stat().st_size)}",
        soft_wrap=True,
    )


@app.command()
def fmt(
    file: FileArgument,
    output: Annotated[
        Optional[pathlib.Path],
        typer.Option(
            "--output", "-o", dir_okay=False, help="Where to write to. Defaults to FILE."
        ),
    ] = None,
    encoding: EncodingOption = None,
):
    """Rewrite a properties file in canonical form as UTF-8.

    Comments and blank lines are dropped and every entry is written as key=value.
    """

    props = _load(file, encoding)

    if output is None:
        output = file

    with output.open("wb") as f:
        ser.dump(props, f)

    _log.info("wrote %d entries to %s", len(props), output)
