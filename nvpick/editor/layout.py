"""
Split and popup window layout.
Turns a SplitRequest into the Lua that creates the window, without talking to the editor.
"""

from typing import Dict, List, Tuple

from ..core.errors import SplitSpecError
from ..core.models import SplitOptions, SplitRequest

ORIENTATIONS = ("right", "left", "below", "above")

POPUP_WINBLEND = 25

POPUP_TEMPLATE = """\
local w = vim.api.nvim_win_get_width(0)
local h = vim.api.nvim_win_get_height(0)
local buf = vim.api.nvim_create_buf(true, false)
local win = vim.api.nvim_open_win(buf, true, {{
    relative = 'editor',
    width = {width},
    height = {height},
    row = {row},
    col = {col},
}})
vim.api.nvim_set_current_win(win)
vim.api.nvim_set_option_value('winblend', {winblend}, {{ win = win }})
"""

SPLIT_TEMPLATE = """\
local prev_win = vim.api.nvim_get_current_win()
local w = vim.api.nvim_win_get_width(prev_win)
local h = vim.api.nvim_win_get_height(prev_win)
vim.cmd('{direction} {split}')
local win = vim.api.nvim_get_current_win()
vim.api.nvim_win_set_{dimension}(win, {size})
local buf = vim.api.nvim_create_buf(true, false)
vim.api.nvim_set_current_buf(buf)
vim.api.nvim_set_option_value('{fix}', true, {{ win = win }})
"""


def split_request_from_options(split: SplitOptions) -> SplitRequest:
    """
    Pick the single split direction and size out of the eight split fields.

    Raises:
        SplitSpecError: if zero or more than one field is set
    """
    chosen: List[Tuple[str, str, int]] = []

    for orientation, levels in zip(ORIENTATIONS, split.ratio_fields()):
        if levels != 0:
            chosen.append((orientation, "ratio", levels))
    for orientation, cells in zip(ORIENTATIONS, split.absolute_fields()):
        if cells is not None:
            chosen.append((orientation, "absolute", cells))

    if len(chosen) != 1:
        raise SplitSpecError(f"Expected exactly one split size, got {len(chosen)}")

    orientation, sizing, amount = chosen[0]
    if amount <= 0:
        raise SplitSpecError(f"Split size must be positive, got {amount}")

    return SplitRequest(orientation=orientation, sizing=sizing, amount=amount, floating=split.popup)


def _ratio(outer: str, levels: int) -> str:
    # Size the window as if `levels` splits in this direction had already happened
    return f"math.floor((({outer} / 2) * 3) / {levels + 1})"


def _size_expression(request: SplitRequest, outer: str) -> str:
    if request.sizing == "ratio":
        return _ratio(outer, request.amount)
    return str(request.amount)


def popup_geometry(request: SplitRequest) -> Dict[str, str]:
    """Lua expressions for width, height, row and col of a popup window."""
    if request.orientation in ("right", "left"):
        width, height = _size_expression(request, "w"), "h"
    else:
        width, height = "w", _size_expression(request, "h")

    # Right/below popups are anchored on the far edge
    row = "h" if request.orientation == "below" else "0"
    col = "w" if request.orientation == "right" else "0"

    return {"width": width, "height": height, "row": row, "col": col}


def plan(request: SplitRequest) -> str:
    """
    Build the Lua script that creates the split or popup window.

    Args:
        request: Direction, size and popup flag

    Returns:
        Lua source; identical requests give identical scripts
    """
    if request.orientation not in ORIENTATIONS:
        raise SplitSpecError(f"Unknown split orientation: {request.orientation}")
    if request.amount <= 0:
        raise SplitSpecError(f"Split size must be positive, got {request.amount}")

    if request.floating:
        return POPUP_TEMPLATE.format(winblend=POPUP_WINBLEND, **popup_geometry(request))

    vertical = request.orientation in ("right", "left")
    return SPLIT_TEMPLATE.format(
        direction="belowright" if request.orientation in ("right", "below") else "aboveleft",
        split="vsplit" if vertical else "split",
        dimension="width" if vertical else "height",
        size=_size_expression(request, "w" if vertical else "h"),
        fix="winfixwidth" if vertical else "winfixheight",
    )
