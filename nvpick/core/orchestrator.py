"""
Orchestration of one nvpick run: resolve, connect, split, open files, restore focus.
"""

import logging
import os
import sys
from typing import Mapping, Optional, TextIO

from ..config import PickerConfig
from ..context import resolve
from ..editor.connection import ConnectionManager, EditorSession
from ..editor.layout import plan
from ..editor.lifecycle import BufferLifecycleCoordinator
from ..ingestion.classifier import FileTypeClassifier
from ..ingestion.scanner import Classifier, FileSource
from .models import FileCandidate, Options, RunContext

logger = logging.getLogger(__name__)

SEARCH_SCRIPT = """\
local pattern, flags = ...
vim.fn.setreg('/', pattern)
vim.fn.search(pattern, flags)
"""

PIPE_BUFFER_SCRIPT = """\
local name, lines = ...
local buf = vim.api.nvim_create_buf(true, false)
vim.api.nvim_buf_set_lines(buf, 0, -1, false, lines)
vim.api.nvim_buf_set_name(buf, name)
vim.api.nvim_set_current_buf(buf)
"""


class Orchestrator:
    """Runs a single invocation from options to the last opened buffer."""

    def __init__(
        self,
        options: Options,
        config: Optional[PickerConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
        connection_manager: Optional[ConnectionManager] = None,
        classifier: Optional[Classifier] = None,
        stdin: Optional[TextIO] = None,
    ):
        self.options = options
        self.config = config or PickerConfig()
        self.environ = os.environ if environ is None else environ
        self.connection_manager = connection_manager or ConnectionManager(
            nvim_executable=self.config.nvim_executable,
            startup_timeout=self.config.startup_timeout,
        )
        self.classifier = classifier or FileTypeClassifier()
        self.stdin = sys.stdin if stdin is None else stdin

    def run(self) -> RunContext:
        """
        Execute the run. Any PickerError raised here is fatal.

        Returns:
            The resolved RunContext
        """
        context = resolve(self.options, self.environ, stdin_is_tty=self.stdin.isatty())
        logger.debug("Run context: %s", context)
        self._warn_if_incompatible(context)

        # Drain the pipe before a launched editor inherits stdin
        piped_text = None
        if context.pipe_buffering is not None:
            piped_text = self.stdin.read()

        session = self.connection_manager.connect(
            context.temp_dir,
            context.session_id,
            context.address,
            self.options.config or self.config.editor_config,
        )

        completed = False
        try:
            self._open_all(context, session, piped_text)
            completed = True
        finally:
            session.close(wait=completed)

        return context

    def _warn_if_incompatible(self, context: RunContext) -> None:
        # Splits and focus restore only make sense inside an existing editor
        if context.address is not None:
            return

        if self.options.is_split_implied():
            logger.warning("Split (-r -l -d -u -R -L -D -U) is ignored if address (-a or $NVIM) isn't set")
        if self.options.back or self.options.back_restore:
            logger.warning("Switch back (-b -B) is ignored if address (-a or $NVIM) isn't set")

    def _open_all(self, context: RunContext, session: EditorSession, piped_text: Optional[str]) -> None:
        if context.split_request is not None:
            session.exec_script(plan(context.split_request))

        if piped_text:
            session.exec_script(
                PIPE_BUFFER_SCRIPT,
                [context.pipe_buffering.pipe_name, piped_text.splitlines()],
            )

        source = FileSource(
            cwd=context.cwd,
            classifier=self.classifier,
            include_non_text=self.options.open_non_text,
            skip_ignored=self.options.skip_ignored,
        )
        lifecycle = BufferLifecycleCoordinator(context.session_id)

        for candidate in source.iterate(context.selection_mode):
            if not self._open_file(session, candidate, lifecycle):
                logger.debug("Editor exited, not opening further files")
                return

        if self.options.back or self.options.back_restore:
            session.restore_focus()
            if self.options.back_restore:
                session.command("startinsert!")

    def _open_file(
        self,
        session: EditorSession,
        candidate: FileCandidate,
        lifecycle: BufferLifecycleCoordinator,
    ) -> bool:
        """
        Open one file. Returns False once the editor has gone away.

        The user Lua and command run after the hook is registered and before
        the wait, so they act on the buffer just opened.
        """
        logger.debug("Opening %s", candidate.display_path)
        session.open(candidate.absolute_path)
        self._position_cursor(session)

        keep_mode = self.options.keep_mode
        if keep_mode is not None:
            lifecycle.register(session, session.current_buffer(), keep_mode)

        if self.options.lua:
            session.exec_script(self.options.lua)
        if self.options.command:
            session.command(self.options.command)

        # Next file only after this buffer is done with
        if keep_mode is not None:
            return lifecycle.await_close(session)
        return True

    def _position_cursor(self, session: EditorSession) -> None:
        """At most one of follow, forward search, backward search."""
        if self.options.follow:
            session.command("normal! G")
        elif self.options.pattern is not None:
            session.exec_script(SEARCH_SCRIPT, [self.options.pattern, "cw"])
        elif self.options.pattern_backwards is not None:
            session.exec_script(SEARCH_SCRIPT, [self.options.pattern_backwards, "bw"])
