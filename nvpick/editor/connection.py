"""
Connection to the Neovim process over msgpack-RPC (pynvim).
"""

import logging
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple
import pynvim
from pynvim.api import NvimError

from ..core.errors import CommandError, EditorConnectionError, ScriptError

logger = logging.getLogger(__name__)

Notification = Tuple[str, List[Any]]


@contextmanager
def _rpc(error_class, message: str):
    """Map editor-side errors to error_class and a dropped channel to EditorConnectionError."""
    try:
        yield
    except NvimError as e:
        raise error_class(f"{message}: {e}") from e
    except (OSError, EOFError) as e:
        raise EditorConnectionError(f"Lost connection to editor: {e}") from e


class EditorSession:
    """
    The live editor connection for one nvpick run.

    Exposes only what the orchestration needs: open a file, run a command,
    run Lua, read notifications, and return focus to where the user was.
    """

    def __init__(self, nvim, initial_window, initial_buffer, process: Optional[subprocess.Popen] = None):
        self.nvim = nvim
        self.initial_window = initial_window
        self.initial_buffer = initial_buffer
        self.process = process

    @property
    def channel_id(self) -> int:
        return self.nvim.channel_id

    @property
    def launched(self) -> bool:
        """True when this process started the editor itself."""
        return self.process is not None

    def command(self, text: str) -> None:
        with _rpc(CommandError, f"Editor rejected command `{text}`"):
            self.nvim.command(text)

    def exec_script(self, text: str, args: Optional[Sequence[Any]] = None) -> Any:
        with _rpc(ScriptError, "Editor rejected Lua script"):
            return self.nvim.exec_lua(text, *(args or []))

    def call(self, function: str, *args: Any) -> Any:
        with _rpc(CommandError, f"Editor rejected call to {function}()"):
            return self.nvim.call(function, *args)

    def open(self, path: Path) -> None:
        escaped = self.call("fnameescape", str(path))
        self.command(f"edit {escaped}")

    def current_buffer(self):
        with _rpc(CommandError, "Cannot get current buffer"):
            return self.nvim.current.buffer

    def restore_focus(self) -> None:
        """Switch back to the window and buffer that were current at connect time."""
        with _rpc(CommandError, "Cannot return to initial window"):
            self.nvim.current.window = self.initial_window
        with _rpc(CommandError, "Cannot return to initial buffer"):
            self.nvim.current.buffer = self.initial_buffer

    def notifications(self) -> Iterator[Notification]:
        """
        Yield (method, args) for every notification the editor sends.

        The iterator ends when the channel closes, e.g. the editor exited.
        """
        while True:
            try:
                message = self.nvim.next_message()
            except (OSError, EOFError) as e:
                logger.debug("Editor channel closed: %s", e)
                return

            if message is None:
                logger.debug("Editor channel closed")
                return

            kind, method = message[0], message[1]
            if isinstance(method, bytes):
                method = method.decode('utf-8')

            if kind == "request":
                # Nobody registers rpcrequest handlers here, answer so the editor does not hang
                logger.debug("Rejecting request %s from editor", method)
                message[3].send(f"nvpick cannot handle request {method}", error=True)
                continue

            yield method, list(message[2])

    def close(self, wait: bool = True) -> None:
        """
        Detach from the editor.

        Args:
            wait: For a launched editor, wait for the user to quit it;
                  otherwise terminate it
        """
        self.nvim.close()

        if self.process is None:
            return
        if not wait:
            self.process.terminate()
        code = self.process.wait()
        logger.debug("Editor exited with %s", code)


class ConnectionManager:
    """Attaches to a running editor or launches one."""

    def __init__(
        self,
        nvim_executable: str = "nvim",
        startup_timeout: float = 5.0,
        attach: Callable[..., Any] = pynvim.attach,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.nvim_executable = nvim_executable
        self.startup_timeout = startup_timeout
        self._attach_fn = attach
        self._popen = popen

    def connect(
        self,
        tmp_dir: Path,
        session_id: str,
        address: Optional[str] = None,
        config: Optional[str] = None,
    ) -> EditorSession:
        """
        Connect to the editor and remember where the user currently is.

        Args:
            tmp_dir: Scratch directory for the launched editor's socket
            session_id: Namespaces the socket name
            address: Socket path or host:port of a running editor
            config: Editor config file for a launched editor

        Returns:
            EditorSession

        Raises:
            EditorConnectionError: on any launch or attach failure, no retry
        """
        process = None
        if address is None:
            socket_path = tmp_dir / f"socket-{session_id}"
            process = self._launch(socket_path, config)
            self._wait_for_socket(socket_path, process)
            address = str(socket_path)

        try:
            nvim = self._attach(address)
            window, buffer = nvim.current.window, nvim.current.buffer
        except EditorConnectionError:
            if process is not None:
                process.terminate()
            raise
        except (NvimError, OSError) as e:
            if process is not None:
                process.terminate()
            raise EditorConnectionError(f"Cannot read initial window from editor at {address}: {e}") from e

        logger.debug("Connected to editor at %s on channel %s", address, nvim.channel_id)
        return EditorSession(nvim, window, buffer, process)

    def _attach(self, address: str):
        try:
            endpoint = parse_tcp_address(address)
            if endpoint is not None:
                host, port = endpoint
                return self._attach_fn("tcp", address=host, port=port)
            return self._attach_fn("socket", path=address)
        except (NvimError, OSError) as e:
            raise EditorConnectionError(f"Cannot connect to editor at {address}: {e}") from e

    def _launch(self, socket_path: Path, config: Optional[str]) -> subprocess.Popen:
        argv = [self.nvim_executable, "--listen", str(socket_path)]
        if config:
            argv += ["-u", config]

        logger.debug("Launching editor: %s", argv)
        try:
            # Inherits the terminal, the user works in this editor directly
            return self._popen(argv)
        except OSError as e:
            raise EditorConnectionError(f"Cannot launch {self.nvim_executable}: {e}") from e

    def _wait_for_socket(self, socket_path: Path, process: subprocess.Popen) -> None:
        deadline = time.monotonic() + self.startup_timeout
        while not socket_path.exists():
            code = process.poll()
            if code is not None:
                raise EditorConnectionError(f"{self.nvim_executable} exited with {code} before listening")
            if time.monotonic() > deadline:
                process.terminate()
                raise EditorConnectionError(
                    f"{self.nvim_executable} did not create {socket_path} within {self.startup_timeout}s"
                )
            time.sleep(0.05)


def parse_tcp_address(address: str) -> Optional[Tuple[str, int]]:
    """Split `host:port` into its parts; None for socket paths."""
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        return None
    if "/" in host or "\\" in host:
        return None
    return host.strip("[]"), int(port)
