"""
Main entry point for nvpick CLI.
Opens files as buffers in a running (or freshly launched) Neovim.
"""

import typer
from typing import List, Optional
from pydantic import ValidationError
from rich.markup import escape

from .config import ConfigManager, PickerConfig
from .core.errors import PickerError
from .core.models import Options, SplitOptions
from .core.orchestrator import Orchestrator
from .interface.console import console, setup_logging

app = typer.Typer(help="nvpick: open files in Neovim from its terminal", add_completion=False)


def load_config() -> PickerConfig:
    """User config from ~/.nvpick/config.json, or defaults."""
    config_manager = ConfigManager()
    try:
        return config_manager.load() or PickerConfig()
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid config {config_manager.config_file}: {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def pick(
    files: Optional[List[str]] = typer.Argument(None, help="Files to open; most recent file in cwd if none"),
    address: Optional[str] = typer.Option(
        None, "--address", "-a", envvar="NVIM", help="Neovim socket or host:port (defaults to $NVIM)"
    ),
    recurse: bool = typer.Option(False, "--recurse", "-W", help="Open files found in cwd, depth 1"),
    depth: Optional[int] = typer.Option(None, "--depth", help="Open files found in cwd down to this depth"),
    skip_ignored: bool = typer.Option(False, "--skip-ignored", help="Skip .gitignore'd paths when recursing"),
    follow: bool = typer.Option(False, "--follow", "-f", help="Move cursor to the end of each file"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="Search forward for pattern"),
    pattern_backwards: Optional[str] = typer.Option(
        None, "--pattern-backwards", "-P", help="Search backward for pattern"
    ),
    keep: bool = typer.Option(False, "--keep", "-k", help="Wait until each buffer is closed"),
    keep_until_write: bool = typer.Option(
        False, "--keep-until-write", "-K", help="Wait until each buffer is written, then close it"
    ),
    back: bool = typer.Option(False, "--back", "-b", help="Return to the initial window afterwards"),
    back_restore: bool = typer.Option(
        False, "--back-restore", "-B", help="Return to the initial window and insert mode afterwards"
    ),
    lua: Optional[str] = typer.Option(None, "--lua", "-x", help="Lua to run after opening each file"),
    command: Optional[str] = typer.Option(None, "--command", "-e", help="Command to run after opening each file"),
    open_non_text: bool = typer.Option(False, "--open-non-text", "-o", help="Also open non-text files"),
    split_right: int = typer.Option(0, "--split-right", "-r", count=True, help="Split right, repeat to shrink"),
    split_left: int = typer.Option(0, "--split-left", "-l", count=True, help="Split left, repeat to shrink"),
    split_below: int = typer.Option(0, "--split-below", "-d", count=True, help="Split below, repeat to shrink"),
    split_above: int = typer.Option(0, "--split-above", "-u", count=True, help="Split above, repeat to shrink"),
    split_right_cols: Optional[int] = typer.Option(None, "--split-right-cols", "-R", help="Split right, N columns"),
    split_left_cols: Optional[int] = typer.Option(None, "--split-left-cols", "-L", help="Split left, N columns"),
    split_below_rows: Optional[int] = typer.Option(None, "--split-below-rows", "-D", help="Split below, N rows"),
    split_above_rows: Optional[int] = typer.Option(None, "--split-above-rows", "-U", help="Split above, N rows"),
    popup: bool = typer.Option(False, "--popup", help="Use a floating window instead of a split"),
    config: Optional[str] = typer.Option(None, "--config", help="Config file for a launched editor (-u)"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Debug logging"),
):
    """Open FILES in Neovim."""
    setup_logging(verbose)

    try:
        options = Options(
            address=address,
            files=files or [],
            recurse=recurse,
            recurse_depth=depth,
            skip_ignored=skip_ignored,
            follow=follow,
            pattern=pattern,
            pattern_backwards=pattern_backwards,
            keep=keep,
            keep_until_write=keep_until_write,
            back=back,
            back_restore=back_restore,
            lua=lua,
            command=command,
            open_non_text=open_non_text,
            config=config,
            split=SplitOptions(
                split_right=split_right,
                split_left=split_left,
                split_below=split_below,
                split_above=split_above,
                split_right_cols=split_right_cols,
                split_left_cols=split_left_cols,
                split_below_rows=split_below_rows,
                split_above_rows=split_above_rows,
                popup=popup,
            ),
        )
    except ValidationError as e:
        for error in e.errors():
            console.print(f"[red]Error:[/red] {escape(error['msg'])}")
        raise typer.Exit(2)

    picker_config = load_config()

    try:
        Orchestrator(options, picker_config).run()
    except PickerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
