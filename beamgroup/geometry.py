"""Geometry helpers: beam median evaluation, stem interpolation and box overlaps."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from beamgroup.graph_models import Box, Line, Point


def y_at_x(line: Line, x: float) -> float:
    """
    Evaluate the ordinate of an (infinite) line at the given abscissa.

    The line is extended beyond its end points, so a beam median can be
    projected onto any chord tail, not only the ones it spans.

    Args:
        line: Line defined by two points.
        x:    Abscissa where the line is evaluated.

    Returns:
        The ordinate on the line at ``x``.
    """
    p1 = np.array([line.p1.x, line.p1.y], dtype=float)
    p2 = np.array([line.p2.x, line.p2.y], dtype=float)
    dx, dy = p2 - p1

    if dx == 0:
        # Vertical line: no meaningful ordinate, use the middle of the segment
        return float((p1[1] + p2[1]) / 2)

    return float(p1[1] + (x - p1[0]) * dy / dx)


def x_at_y(top: Point, bottom: Point, y: float) -> float:
    """
    Interpolate the abscissa of a (roughly vertical) segment at ordinate ``y``.

    Used on stem glyph extents, where ``top`` and ``bottom`` are the stem ends.
    """
    return float(np.interp(y, [top.y, bottom.y], [top.x, bottom.x]))


def rint(value: float) -> int:
    """Round to the nearest integer, half to even, as pixel coordinates are."""
    return int(np.rint(value))


def x_overlap(a: Box, b: Box) -> float:
    """Return the horizontal overlap of two boxes (negative when disjoint)."""
    return min(a.right, b.right) - max(a.x, b.x)


def y_overlap(y: float, box: Box) -> float:
    """Return the vertical overlap of ordinate ``y`` with a box (negative when outside)."""
    return min(y, box.bottom) - max(y, box.y)


def union_boxes(boxes: list[Box]) -> tuple[float, float, float, float]:
    """
    Compute the (x, y, width, height) of the smallest box containing all boxes.

    Raises:
        ValueError: If ``boxes`` is empty.
    """
    if not boxes:
        raise ValueError("Cannot compute the union of an empty box collection.")

    corners = np.array([[b.x, b.y, b.right, b.bottom] for b in boxes], dtype=float)
    left, top = corners[:, 0].min(), corners[:, 1].min()
    right, bottom = corners[:, 2].max(), corners[:, 3].max()
    return float(left), float(top), float(right - left), float(bottom - top)
