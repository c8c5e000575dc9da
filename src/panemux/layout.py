"""Geometry: map a layout tree onto non-overlapping cell rectangles.

DIMENSION ORDERING:
- Rect uses (x, y, width, height), width = columns, height = rows
- Vertical splits divide the height, horizontal splits divide the width
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .errors import ScreenTooSmallError
from .grammar import CommandNode, Orientation, SpecNode, SplitNode


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


def divide(start: int, length: int, count: int) -> List[Tuple[int, int]]:
    """Split ``[start, start+length)`` into ``count`` contiguous segments.

    Every segment has ``length // count`` cells except the last one, which
    absorbs the remainder.

    Returns:
        List of ``(start, length)`` pairs.

    Raises:
        ScreenTooSmallError: when ``length // count`` is zero.
    """
    size = length // count
    if size == 0:
        raise ScreenTooSmallError(length, count)
    segments = []
    for i in range(count):
        seg_len = length - (count - 1) * size if i == count - 1 else size
        segments.append((start + i * size, seg_len))
    return segments


def walk(node: SpecNode, rect: Rect) -> Iterator[Tuple[SpecNode, Rect]]:
    """Yield ``(node, rect)`` for every node, parents before children."""
    yield node, rect
    if isinstance(node, CommandNode):
        return
    children = node.children
    if node.orientation is Orientation.VERTICAL:
        for child, (y, height) in zip(children, divide(rect.y, rect.height, len(children))):
            yield from walk(child, Rect(rect.x, y, rect.width, height))
    else:
        for child, (x, width) in zip(children, divide(rect.x, rect.width, len(children))):
            yield from walk(child, Rect(x, rect.y, width, rect.height))


def assign(node: SpecNode, rect: Rect) -> List[Tuple[CommandNode, Rect]]:
    """Compute the rectangle of every command leaf, in traversal order.

    The full assignment is computed eagerly so a too-small screen is
    reported before any pane exists.
    """
    return [(n, r) for n, r in walk(node, rect) if not isinstance(n, SplitNode)]
