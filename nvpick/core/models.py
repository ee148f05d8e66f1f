"""
Pydantic models for structured data in nvpick.
"""

from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator


class SplitOptions(BaseModel):
    """Split/popup flags as given on the command line."""
    # Ratio splits: number of times the flag was repeated
    split_right: int = 0
    split_left: int = 0
    split_below: int = 0
    split_above: int = 0

    # Absolute splits in columns/rows
    split_right_cols: Optional[int] = None
    split_left_cols: Optional[int] = None
    split_below_rows: Optional[int] = None
    split_above_rows: Optional[int] = None

    popup: bool = False

    def ratio_fields(self) -> List[int]:
        return [self.split_right, self.split_left, self.split_below, self.split_above]

    def absolute_fields(self) -> List[Optional[int]]:
        return [self.split_right_cols, self.split_left_cols, self.split_below_rows, self.split_above_rows]

    def count_set(self) -> int:
        """Number of split fields that are set."""
        ratios = sum(1 for value in self.ratio_fields() if value != 0)
        absolutes = sum(1 for value in self.absolute_fields() if value is not None)
        return ratios + absolutes

    def is_split_implied(self) -> bool:
        return self.count_set() > 0


class KeepMode(str, Enum):
    KEEP = "keep"
    KEEP_UNTIL_WRITE = "keep_until_write"


class Options(BaseModel):
    """Typed options for a single nvpick invocation."""
    address: Optional[str] = None
    files: List[str] = Field(default_factory=list)

    # recurse=True without depth means depth 1
    recurse: bool = False
    recurse_depth: Optional[int] = None
    skip_ignored: bool = False

    follow: bool = False
    pattern: Optional[str] = None
    pattern_backwards: Optional[str] = None

    keep: bool = False
    keep_until_write: bool = False

    back: bool = False
    back_restore: bool = False

    lua: Optional[str] = None
    command: Optional[str] = None
    open_non_text: bool = False

    config: Optional[str] = None
    split: SplitOptions = Field(default_factory=SplitOptions)

    @model_validator(mode="after")
    def check_exclusive_flags(self) -> "Options":
        cursor_actions = [self.follow, self.pattern is not None, self.pattern_backwards is not None]
        if sum(cursor_actions) > 1:
            raise ValueError("--follow, --pattern and --pattern-backwards are mutually exclusive")
        if self.keep and self.keep_until_write:
            raise ValueError("--keep and --keep-until-write are mutually exclusive")
        if self.split.count_set() > 1:
            raise ValueError("Only one split direction and size may be given")
        if any(value < 0 for value in self.split.ratio_fields()):
            raise ValueError("Split levels must be positive")
        if any(value is not None and value <= 0 for value in self.split.absolute_fields()):
            raise ValueError("Split size must be a positive number of cells")
        if self.recurse_depth is not None and self.recurse_depth <= 0:
            raise ValueError("--depth must be positive")
        return self

    def effective_recurse_depth(self) -> int:
        """0 when not walking, 1 for a bare --recurse, N for --depth N."""
        if self.recurse_depth is not None:
            return self.recurse_depth
        if self.recurse:
            return 1
        return 0

    def is_split_implied(self) -> bool:
        return self.split.is_split_implied()

    @property
    def keep_mode(self) -> Optional[KeepMode]:
        if self.keep_until_write:
            return KeepMode.KEEP_UNTIL_WRITE
        if self.keep:
            return KeepMode.KEEP
        return None


class ExplicitFiles(BaseModel):
    """Open exactly the given paths, in order."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["explicit"] = "explicit"
    paths: List[str]


class MostRecentInCwd(BaseModel):
    """Open the most recently modified text file in the working directory."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["most_recent"] = "most_recent"


class RecursiveWalk(BaseModel):
    """Open every file found walking the working directory."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["recursive"] = "recursive"
    depth: int


SelectionMode = Union[ExplicitFiles, MostRecentInCwd, RecursiveWalk]


class SplitRequest(BaseModel):
    """One direction plus one size. Built by layout.split_request_from_options."""
    model_config = ConfigDict(frozen=True)
    orientation: Literal["right", "left", "below", "above"]
    sizing: Literal["ratio", "absolute"]
    amount: int  # levels for ratio, cells for absolute
    floating: bool = False


class PipeBuffering(BaseModel):
    model_config = ConfigDict(frozen=True)
    pipe_name: str


class RunContext(BaseModel):
    """Everything derived from options and environment, computed once per run."""
    model_config = ConfigDict(frozen=True)
    options: Options
    selection_mode: SelectionMode = Field(discriminator="kind")
    temp_dir: Path
    session_id: str
    cwd: Path
    address: Optional[str] = None
    split_request: Optional[SplitRequest] = None
    pipe_buffering: Optional[PipeBuffering] = None


class FileCandidate(BaseModel):
    """A file that may be opened in the editor."""
    model_config = ConfigDict(frozen=True)
    absolute_path: Path
    display_path: str
    is_text: bool
    modified_time: Optional[int] = None  # st_mtime_ns
