"""Distance helpers for proximity checks."""

import math

from proximity_trigger.models import PieceGeometry

Point = tuple[float, float]


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def center_of(geometry: PieceGeometry) -> Point:
    return geometry.center


def trigger_threshold(radius: float, size: float) -> float:
    """Distance at which a piece of the given size triggers.

    Measured from the piece edge: radius sizes plus half a size.
    """
    return radius * size + size / 2
