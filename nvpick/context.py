"""
Run context resolution.
Turns options plus the process environment into one immutable RunContext.
"""

import logging
import os
import sys
import tempfile
import time
from pathlib import Path
from typing import Mapping, Optional

from .core.errors import ContextError
from .core.models import (
    ExplicitFiles,
    MostRecentInCwd,
    Options,
    PipeBuffering,
    RecursiveWalk,
    RunContext,
    SelectionMode,
)
from .editor.layout import split_request_from_options

logger = logging.getLogger(__name__)

# Neovim < 0.8 only exports this one, newer versions export $NVIM
LEGACY_ADDRESS_VAR = "NVIM_LISTEN_ADDRESS"
SCRATCH_DIR_NAME = "nvpick"


def resolve(
    options: Options,
    environ: Optional[Mapping[str, str]] = None,
    stdin_is_tty: Optional[bool] = None,
) -> RunContext:
    """
    Build the run context for this invocation.

    Args:
        options: Validated command line options
        environ: Environment to read, defaults to os.environ
        stdin_is_tty: Override for terminal detection on stdin

    Returns:
        Immutable RunContext
    """
    if environ is None:
        environ = os.environ
    if stdin_is_tty is None:
        stdin_is_tty = sys.stdin.isatty()

    address = resolve_address(options.address, environ)
    temp_dir = ensure_scratch_dir()
    session_id = new_session_id()

    split_request = None
    if address is not None and options.is_split_implied():
        split_request = split_request_from_options(options.split)

    pipe_buffering = None
    if not stdin_is_tty:
        pipe_buffering = PipeBuffering(pipe_name=f"{session_id}-read")

    return RunContext(
        options=options,
        selection_mode=select_mode(options),
        temp_dir=temp_dir,
        session_id=session_id,
        cwd=working_directory(environ),
        address=address,
        split_request=split_request,
        pipe_buffering=pipe_buffering,
    )


def resolve_address(address: Optional[str], environ: Mapping[str, str]) -> Optional[str]:
    if address is None:
        address = environ.get(LEGACY_ADDRESS_VAR)

    # `-a ""` means no address at all
    if not address:
        return None
    return address


def select_mode(options: Options) -> SelectionMode:
    depth = options.effective_recurse_depth()
    if depth > 0:
        return RecursiveWalk(depth=depth)
    if options.files:
        return ExplicitFiles(paths=list(options.files))
    return MostRecentInCwd()


def working_directory(environ: Mapping[str, str]) -> Path:
    """The invoking shell's cwd, which may differ from the editor's."""
    pwd = environ.get("PWD")
    if pwd:
        return Path(pwd)
    return Path.cwd()


def ensure_scratch_dir() -> Path:
    directory = Path(tempfile.gettempdir()) / SCRATCH_DIR_NAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ContextError(f"Cannot create temporary directory {directory}: {e}") from e
    return directory


def new_session_id() -> str:
    # pid + wall clock is unique enough for one user's invocations
    return f"{os.getpid()}{time.time_ns()}"
