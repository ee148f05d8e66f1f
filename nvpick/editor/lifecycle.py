"""
Buffer lifecycle hooks: block until an opened buffer is closed or written.
"""

import logging

from ..core.models import KeepMode
from .connection import EditorSession

logger = logging.getLogger(__name__)

BUFFER_CLOSED = "nvpick_buffer_closed"

# Arguments: buffer, channel, session id, event, delete-on-fire
HOOK_SCRIPT = """\
local buf, channel, session_id, event, delete_buffer = ...
vim.api.nvim_create_autocmd(event, {
    buffer = buf,
    once = true,
    callback = function()
        if delete_buffer then
            pcall(vim.api.nvim_buf_delete, buf, { force = true })
        end
        pcall(vim.rpcnotify, channel, '%s', session_id)
    end,
})
""" % BUFFER_CLOSED

EVENTS = {
    KeepMode.KEEP: "BufDelete",
    KeepMode.KEEP_UNTIL_WRITE: "BufWritePost",
}


class BufferLifecycleCoordinator:
    """Registers one-shot close/write hooks and waits for their notification."""

    def __init__(self, session_id: str):
        self.session_id = session_id

    def register(self, session: EditorSession, buffer, mode: KeepMode) -> None:
        """
        Register the hook on the buffer.

        Keep fires when the buffer is deleted. KeepUntilWrite fires on the
        first write and force-deletes the buffer, so it does not stay open.
        """
        delete_buffer = mode is KeepMode.KEEP_UNTIL_WRITE
        session.exec_script(
            HOOK_SCRIPT,
            [buffer.number, session.channel_id, self.session_id, EVENTS[mode], delete_buffer],
        )
        logger.debug("Registered %s hook on buffer %s", EVENTS[mode], buffer.number)

    def await_close(self, session: EditorSession) -> bool:
        """
        Block until the hook for this session fires.

        Returns:
            True if the notification arrived, False if the editor went away first
        """
        for method, args in session.notifications():
            if method == BUFFER_CLOSED and args and args[0] == self.session_id:
                return True
            logger.debug("Ignoring notification %s %s", method, args)

        return False
