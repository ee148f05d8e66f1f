"""
Error taxonomy for nvpick.
Every error here is fatal: the CLI reports it and exits non-zero.
"""


class PickerError(RuntimeError):
    pass


class ContextError(PickerError):
    """Scratch directory or address resolution failed."""


class EditorConnectionError(PickerError):
    """The editor could not be launched, reached or attached to."""


class ClassificationError(PickerError):
    """The content-type probe failed for a file."""


class DirectoryWalkError(PickerError):
    """A directory entry could not be read while enumerating files."""


class CommandError(PickerError):
    """The editor rejected a command."""


class ScriptError(PickerError):
    """The editor rejected a Lua snippet."""


class SplitSpecError(PickerError):
    """A split request did not name exactly one direction and size."""
