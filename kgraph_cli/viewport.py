"""Scroll offset bookkeeping that keeps the focused line on screen."""

from __future__ import annotations

from .config import CHROME_LINES, MIN_VISIBLE_LINES

DEFAULT_PADDING = 2


def visible_height(terminal_height: int, chrome: int = CHROME_LINES) -> int:
    """Body lines available once title, scroll hint and status bar are drawn."""
    return max(MIN_VISIBLE_LINES, terminal_height - chrome)


def max_scroll(total: int, height: int) -> int:
    return max(0, total - height)


def clamp_scroll(scroll: int, total: int, height: int) -> int:
    return min(max(0, scroll), max_scroll(total, height))


def ensure_visible(
    total: int,
    height: int,
    scroll: int,
    index: int,
    padding: int = DEFAULT_PADDING,
) -> int:
    """Return the scroll offset that keeps line *index* inside the padded window.

    Args:
        total: Number of rendered lines.
        height: Visible body height.
        scroll: Current offset.
        index: Focused line; a negative index leaves the offset alone.
        padding: Lines kept between the focus and the window edge.

    Returns:
        The new offset, always within ``[0, max(0, total - height)]``.
    """
    if index < 0:
        return clamp_scroll(scroll, total, height)
    if index < scroll + padding:
        scroll = max(0, index - padding)
    elif index >= scroll + height - padding:
        scroll = index - height + padding + 1
    return clamp_scroll(scroll, total, height)
