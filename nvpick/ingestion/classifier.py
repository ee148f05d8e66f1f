"""
Text/binary classification through file(1).
"""

import subprocess
from pathlib import Path

from ..core.errors import ClassificationError


class FileTypeClassifier:
    """Asks `file` for a MIME type and treats text/* as text."""

    def __init__(self, executable: str = "file"):
        self.executable = executable

    def __call__(self, path: Path) -> bool:
        return self.is_text(path)

    def mime_type(self, path: Path) -> str:
        # -L: classify a symlink's target, -E: exit non-zero when the path cannot be read
        try:
            result = subprocess.run(
                [self.executable, "--brief", "--mime-type", "-L", "-E", "--", str(path)],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ClassificationError(f"Cannot run `{self.executable}` on {path}: {e}") from e

        output = result.stdout.strip()
        # Older file(1) without -E still reports unreadable paths with status 0
        if result.returncode != 0 or output.startswith("cannot open"):
            detail = result.stderr.strip() or output
            raise ClassificationError(
                f"`{self.executable}` failed on {path} with {result.returncode}: {detail}"
            )
        return output

    def is_text(self, path: Path) -> bool:
        return self.mime_type(path).startswith("text/")
