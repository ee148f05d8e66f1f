"""
Shared fakes for the editor side.
"""

import io
import pytest
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock
from nvpick.editor.lifecycle import BUFFER_CLOSED, HOOK_SCRIPT


class FakeSession:
    """Records every editor interaction instead of talking to Neovim."""

    def __init__(self, address: Optional[str] = None, editor_exits: bool = False):
        self.address = address
        self.editor_exits = editor_exits
        self.channel_id = 3
        self.events: List[tuple] = []
        self.hook_tokens: List[str] = []
        self._buffers = 0
        self.initial_window = "initial-window"
        self.initial_buffer = "initial-buffer"

    def open(self, path: Path) -> None:
        self._buffers += 1
        self.events.append(("open", path.name))

    def command(self, text: str) -> None:
        self.events.append(("command", text))

    def exec_script(self, text: str, args=None):
        if text == HOOK_SCRIPT:
            self.hook_tokens.append(args[2])
            self.events.append(("hook", args[3], args[4]))
        else:
            self.events.append(("script", text, list(args or [])))

    def current_buffer(self):
        return Mock(number=self._buffers)

    def restore_focus(self) -> None:
        self.events.append(("restore_focus",))

    def notifications(self):
        self.events.append(("wait",))
        if self.editor_exits:
            return
        yield ("unrelated_plugin_event", [1])
        yield (BUFFER_CLOSED, ["someone-else"])
        self.events.append(("notified",))
        yield (BUFFER_CLOSED, [self.hook_tokens[-1]])

    def close(self, wait: bool = True) -> None:
        self.events.append(("close", wait))

    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]

    def opened(self) -> List[str]:
        return [event[1] for event in self.events if event[0] == "open"]


class FakeConnectionManager:
    """Hands out one FakeSession and remembers how it was asked for."""

    def __init__(self, editor_exits: bool = False):
        self.editor_exits = editor_exits
        self.session: Optional[FakeSession] = None
        self.connect_args = None

    def connect(self, tmp_dir, session_id, address=None, config=None):
        self.connect_args = (tmp_dir, session_id, address, config)
        self.session = FakeSession(address, editor_exits=self.editor_exits)
        return self.session


class TtyInput(io.StringIO):
    """stdin that claims to be a terminal."""

    def isatty(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def scratch_root(tmp_path_factory, monkeypatch):
    """Keep the scratch directory out of /tmp and out of the test's cwd."""
    root = tmp_path_factory.mktemp("scratch")
    monkeypatch.setattr("nvpick.context.tempfile.gettempdir", lambda: str(root))
    return root


@pytest.fixture
def workdir(tmp_path):
    """A working directory with three text files and one binary."""
    cwd = tmp_path / "work"
    cwd.mkdir()
    for name in ["a.txt", "b.txt", "c.txt", "d.bin"]:
        (cwd / name).write_text(name)
    return cwd


@pytest.fixture
def connections():
    return FakeConnectionManager()
