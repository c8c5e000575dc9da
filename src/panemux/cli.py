"""CLI for the panemux command."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, TextIO

import typer

from .config import DEFAULT_ACTIVATOR, DEFAULT_TITLE, MuxConfig
from .errors import PanemuxError, ParseError, SpecSourceError
from .grammar import parse_spec
from .sessions import validate_focus

PROG = "panemux"

app = typer.Typer(
    help="Simple terminal multiplexing: run commands in a tiled layout of panes",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def quote_spec_arg(arg: str) -> str:
    """Re-quote a positional argument that would not survive as a bareword."""
    if any(ch.isspace() or ch in "\"'" for ch in arg):
        return '"' + arg.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return arg


def join_spec_args(args: List[str]) -> str:
    return " ".join(quote_spec_arg(arg) for arg in args)


def read_spec(args: Optional[List[str]], file: str, stdin: Optional[TextIO] = None) -> str:
    """Obtain the spec text from positional args, a file, or stdin.

    Positional arguments take precedence over ``file``; ``-`` means stdin.

    Raises:
        SpecSourceError: if the named file is missing or unreadable.
    """
    if args:
        return join_spec_args(args)
    if file == "-":
        return (stdin or sys.stdin).read()
    path = Path(file)
    if not path.exists():
        raise SpecSourceError(f'cannot find specification file "{file}"')
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecSourceError(f'cannot read specification file "{file}": {exc}') from exc


def _reattach_tty() -> None:
    """Point fd 0 back at the terminal after the spec was piped in."""
    if sys.stdin.isatty():
        return
    try:
        fd = os.open("/dev/tty", os.O_RDWR)
    except OSError:
        return
    os.dup2(fd, 0)
    os.close(fd)


def _fail(message: str) -> NoReturn:
    for line in message.splitlines() or [message]:
        typer.echo(f"{PROG}: ERROR: {line}", err=True)
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if not value:
        return
    from .diagnostics import gather_version_info

    typer.echo(f"{PROG} {gather_version_info()[PROG]}", err=True)
    typer.echo("Simple terminal multiplexing for tiled command panes", err=True)
    raise typer.Exit()


@app.command()
def main(
    spec: Optional[List[str]] = typer.Argument(None, help="Layout specification (after --)"),
    wait: bool = typer.Option(False, "--wait", "-w", help="Do not shut down after the last command finished"),
    activator: str = typer.Option(DEFAULT_ACTIVATOR, "--activator", "-a", help="Use CTRL+<activator> as the command prefix"),
    title: str = typer.Option(DEFAULT_TITLE, "--title", "-t", help="Title of the terminal surface"),
    file: str = typer.Option("-", "--file", "-f", help="Read the specification from a file (- for stdin)"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write a diagnostics snapshot on exit"),
    version: bool = typer.Option(False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version information"),
) -> None:
    """
    Run shell commands in a tiled layout of terminal panes.

    Examples:
        # Two commands side by side
        panemux -- [ "npm start" .. "npm test" ]

        # Editor on the left, restarting watcher above a log tail on the right
        panemux -- [ -f vim .. [ -r -d 1000 "make watch" : "tail -f build.log" ] ]

        # Layout from a file
        panemux -f layout.spec

    Keys: CTRL+<activator> then left/right/space (focus), v (scroll),
    k (kill), <activator> (send CTRL+<activator> to the pane).
    """
    from .app import PanemuxApp

    try:
        config = MuxConfig.from_options(wait=wait, activator=activator, title=title, log_file=log_file)
        text = read_spec(spec, file)
        tree = parse_spec(text)
        validate_focus(tree)
    except ParseError as exc:
        _fail("Parsing Failure:\n" + exc.describe())
    except PanemuxError as exc:
        _fail(str(exc))

    if not spec and file == "-":
        _reattach_tty()

    mux = PanemuxApp(tree, config)
    mux.run()
    try:
        mux.finalize()
    except OSError as exc:
        _fail(f"cannot write log file {log_file}: {exc}")
    if mux.error:
        _fail(mux.error)
    raise typer.Exit(code=mux.return_code or 0)


if __name__ == "__main__":
    app()
