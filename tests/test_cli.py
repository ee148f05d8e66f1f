"""
Integration tests for the nvpick command line.
"""

import json
import pytest
from typer.testing import CliRunner
from nvpick.config import ConfigManager
from nvpick.core.errors import EditorConnectionError
from nvpick.main import app
from conftest import FakeConnectionManager

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point ConfigManager at a temp directory."""
    original_init = ConfigManager.__init__
    def mock_init(self, config_dir=None):
        original_init(self, config_dir=tmp_path / ".nvpick")
    monkeypatch.setattr(ConfigManager, "__init__", mock_init)
    return tmp_path / ".nvpick"


@pytest.fixture
def fake_editor(monkeypatch, connections):
    """Replace the editor connection and the file classifier."""
    monkeypatch.setattr("nvpick.core.orchestrator.ConnectionManager", lambda **kwargs: connections)
    monkeypatch.setattr(
        "nvpick.core.orchestrator.FileTypeClassifier", lambda: (lambda path: path.suffix == ".txt")
    )
    return connections


def invoke(args, workdir):
    env = {"PWD": str(workdir), "NVIM": None, "NVIM_LISTEN_ADDRESS": None}
    return runner.invoke(app, args, env=env)


def test_opens_files_in_order(workdir, config_dir, fake_editor):
    """Test that nvpick opens the given files and exits cleanly."""
    result = invoke(["c.txt", "a.txt", "b.txt"], workdir)

    assert result.exit_code == 0
    assert fake_editor.session.opened() == ["c.txt", "a.txt", "b.txt"]
    assert fake_editor.session.events[-1] == ("close", True)


def test_conflicting_flags_exit_with_usage_error(workdir, config_dir, fake_editor):
    """Test that mutually exclusive flags are rejected before connecting."""
    result = invoke(["-k", "-K", "a.txt"], workdir)

    assert result.exit_code == 2
    assert "Error:" in result.output
    assert fake_editor.connect_args is None


def test_two_split_flags_rejected(workdir, config_dir, fake_editor):
    """Test that only one split flag is accepted."""
    result = invoke(["-a", "/run/nvim.sock", "-r", "-D", "5", "a.txt"], workdir)

    assert result.exit_code == 2
    assert fake_editor.connect_args is None


def test_fatal_error_exits_with_one(workdir, config_dir, monkeypatch):
    """Test that a PickerError is reported and exits 1."""

    class Unreachable:
        def connect(self, *args, **kwargs):
            raise EditorConnectionError("Cannot connect to /nowhere.sock")

    monkeypatch.setattr("nvpick.core.orchestrator.ConnectionManager", lambda **kwargs: Unreachable())

    result = invoke(["-a", "/nowhere.sock", "a.txt"], workdir)

    assert result.exit_code == 1
    assert "Cannot connect" in result.output


def test_repeated_split_flag_counts(workdir, config_dir, monkeypatch):
    """Test that -rrr becomes a split ratio of three."""
    captured = {}

    class Recorder:
        def __init__(self, options, config):
            captured["options"] = options

        def run(self):
            return None

    monkeypatch.setattr("nvpick.main.Orchestrator", Recorder)

    result = invoke(["-a", "/run/nvim.sock", "-rrr", "a.txt"], workdir)

    assert result.exit_code == 0
    options = captured["options"]
    assert options.split.split_right == 3
    assert options.address == "/run/nvim.sock"
    assert options.files == ["a.txt"]


def test_address_from_environment(workdir, config_dir, monkeypatch):
    """Test that $NVIM supplies the address."""
    captured = {}

    class Recorder:
        def __init__(self, options, config):
            captured["options"] = options

        def run(self):
            return None

    monkeypatch.setattr("nvpick.main.Orchestrator", Recorder)

    result = runner.invoke(app, ["a.txt"], env={"PWD": str(workdir), "NVIM": "/run/user/1000/nvim.sock"})

    assert result.exit_code == 0
    assert captured["options"].address == "/run/user/1000/nvim.sock"


def test_config_file_used_for_launch(workdir, config_dir, monkeypatch, connections):
    """Test that config.json settings reach the connection manager."""
    config_dir.mkdir()
    (config_dir / "config.json").write_text(
        json.dumps({"nvim_executable": "/opt/nvim/bin/nvim", "editor_config": "/home/me/min.lua"})
    )
    created = {}

    def make_manager(**kwargs):
        created.update(kwargs)
        return connections

    monkeypatch.setattr("nvpick.core.orchestrator.ConnectionManager", make_manager)
    monkeypatch.setattr(
        "nvpick.core.orchestrator.FileTypeClassifier", lambda: (lambda path: True)
    )

    result = invoke(["a.txt"], workdir)

    assert result.exit_code == 0
    assert created["nvim_executable"] == "/opt/nvim/bin/nvim"
    assert connections.connect_args[3] == "/home/me/min.lua"


def test_invalid_config_exits_with_one(workdir, config_dir, fake_editor):
    """Test that a broken config.json is reported."""
    config_dir.mkdir()
    (config_dir / "config.json").write_text("{not json")

    result = invoke(["a.txt"], workdir)

    assert result.exit_code == 1
    assert "Invalid config" in result.output
