"""
core/geometry.py - Canvas-unit value types and rectangle intersection.

Canvas units are design-space pixels at 1.0 zoom.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    width: float = 0.0
    height: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    @staticmethod
    def from_geometry(position: Position, size: Size) -> "Rect":
        return Rect(
            left=position.x,
            top=position.y,
            right=position.x + size.width,
            bottom=position.y + size.height,
        )

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, point: Position) -> bool:
        return self.left <= point.x < self.right and self.top <= point.y < self.bottom


def intersects(a: Rect, b: Rect) -> bool:
    """
    Separating-axis overlap test for axis-aligned rectangles.

    Rectangles that only share an edge do not overlap, and a zero-area
    rectangle never overlaps anything.
    """
    if a.is_degenerate or b.is_degenerate:
        return False
    separated = (
        a.right <= b.left
        or b.right <= a.left
        or a.bottom <= b.top
        or b.bottom <= a.top
    )
    return not separated
