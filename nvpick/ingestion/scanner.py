"""
File selection: which files to open, and in what order.
"""

import logging
import stat
from pathlib import Path
from typing import Callable, Iterator, List, Optional
import pathspec

from ..core.errors import DirectoryWalkError
from ..core.models import (
    ExplicitFiles,
    FileCandidate,
    RecursiveWalk,
    SelectionMode,
)

logger = logging.getLogger(__name__)

Classifier = Callable[[Path], bool]


class FileSource:
    """Yields FileCandidates for a selection mode, relative to one working directory."""

    def __init__(
        self,
        cwd: Path,
        classifier: Classifier,
        include_non_text: bool = False,
        skip_ignored: bool = False,
    ):
        self.cwd = cwd
        self.classifier = classifier
        self.include_non_text = include_non_text
        self.skip_ignored = skip_ignored

    def iterate(self, mode: SelectionMode) -> Iterator[FileCandidate]:
        """
        Lazily yield the files to open.

        Args:
            mode: Explicit list, most recent file in cwd, or recursive walk

        Yields:
            Candidates that are text, or all candidates with include_non_text

        Raises:
            DirectoryWalkError: if any directory entry cannot be read
        """
        if isinstance(mode, ExplicitFiles):
            candidates = self._explicit(mode.paths)
        elif isinstance(mode, RecursiveWalk):
            ignored = self._load_gitignore() if self.skip_ignored else None
            candidates = self._walk(self.cwd, 0, mode.depth, ignored)
        else:
            candidates = self._most_recent()

        for candidate in candidates:
            if self._wanted(candidate):
                yield candidate
            else:
                logger.debug("Skipping non-text file %s", candidate.display_path)

    def _wanted(self, candidate: FileCandidate) -> bool:
        return candidate.is_text or self.include_non_text

    def _candidate(self, path: Path, display_path: str, modified_time: Optional[int] = None) -> FileCandidate:
        absolute_path = self.cwd / path
        return FileCandidate(
            absolute_path=absolute_path,
            display_path=display_path,
            is_text=self.classifier(absolute_path),
            modified_time=modified_time,
        )

    def _display(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.cwd)) or "."
        except ValueError:
            return str(path)

    def _explicit(self, paths: List[str]) -> Iterator[FileCandidate]:
        for path in paths:
            yield self._candidate(Path(path), path)

    def _most_recent(self) -> Iterator[FileCandidate]:
        latest: Optional[FileCandidate] = None

        # Lexical order, so the first of several equal mtimes wins deterministically
        for child in self._list_dir(self.cwd):
            if self._is_dangling(child):
                continue
            candidate = self._candidate(child, self._display(child))
            if not self._wanted(candidate):
                continue

            try:
                modified = child.stat().st_mtime_ns
            except OSError as e:
                raise DirectoryWalkError(f"Cannot read modified time of {child}: {e}") from e

            if latest is None or latest.modified_time < modified:
                latest = candidate.model_copy(update={"modified_time": modified})

        if latest is not None:
            yield latest

    def _walk(
        self,
        directory: Path,
        depth: int,
        max_depth: int,
        ignored: Optional[pathspec.PathSpec],
    ) -> Iterator[FileCandidate]:
        # Contents first: a directory is yielded after everything below it
        if depth < max_depth:
            for child in self._list_dir(directory):
                if ignored is not None and self._is_ignored(child, ignored):
                    continue
                if self._is_dangling(child):
                    continue
                if self._is_real_dir(child):
                    yield from self._walk(child, depth + 1, max_depth, ignored)
                else:
                    yield self._candidate(child, self._display(child))

        yield self._candidate(directory, self._display(directory))

    def _list_dir(self, directory: Path) -> List[Path]:
        try:
            return sorted(directory.iterdir())
        except OSError as e:
            raise DirectoryWalkError(f"Cannot read directory {directory}: {e}") from e

    def _is_dangling(self, path: Path) -> bool:
        if path.is_symlink() and not path.exists():
            logger.debug("Skipping dangling symlink %s", self._display(path))
            return True
        return False

    def _is_real_dir(self, path: Path) -> bool:
        """True for directories, False for symlinks to them."""
        try:
            return stat.S_ISDIR(path.lstat().st_mode)
        except OSError as e:
            raise DirectoryWalkError(f"Cannot read dir entry {path}: {e}") from e

    def _is_ignored(self, path: Path, ignored: pathspec.PathSpec) -> bool:
        relative = self._display(path)
        if self._is_real_dir(path):
            relative += "/"
        return ignored.match_file(relative)

    def _load_gitignore(self) -> pathspec.PathSpec:
        """Load .gitignore patterns."""
        gitignore_path = self.cwd / ".gitignore"

        default_patterns = [".git/"]

        if gitignore_path.exists():
            try:
                with open(gitignore_path, 'r') as f:
                    patterns = default_patterns + f.read().splitlines()
            except OSError as e:
                raise DirectoryWalkError(f"Cannot read {gitignore_path}: {e}") from e
        else:
            patterns = default_patterns

        return pathspec.PathSpec.from_lines('gitwildmatch', patterns)
