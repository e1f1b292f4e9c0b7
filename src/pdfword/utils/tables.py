"""
Table reconstruction helpers.

Provides:
- Column bucketing along the x axis
- Nearest-anchor lookup for cell assignment
- Alignment test for table candidate rows
- Cell grid construction
"""

from typing import List, Sequence, Tuple


def bucket_columns(x_values: Sequence[float], tolerance: float) -> List[float]:
    """
    Cluster x-coordinates into column anchors.

    Values are scanned in ascending order and a new anchor starts whenever a
    value lies more than ``tolerance`` beyond the last anchor. Each anchor is
    the smallest value of its bucket.

    Args:
        x_values: Left edges of runs (any order)
        tolerance: Maximum distance from an anchor to join its bucket

    Returns:
        Sorted list of distinct column anchors
    """
    anchors: List[float] = []
    for x in sorted(x_values):
        if not anchors or x - anchors[-1] > tolerance:
            anchors.append(x)
    return anchors


def nearest_anchor(x: float, anchors: Sequence[float]) -> int:
    """Index of the anchor closest to ``x``; ties go to the lower index."""
    if not anchors:
        raise ValueError("nearest_anchor requires at least one anchor")
    best = 0
    best_dist = abs(x - anchors[0])
    for i in range(1, len(anchors)):
        dist = abs(x - anchors[i])
        if dist < best_dist:
            best = i
            best_dist = dist
    return best


def count_aligned(x_values: Sequence[float], anchors: Sequence[float], tolerance: float) -> int:
    """Number of x-values lying within ``tolerance`` of some anchor."""
    return sum(
        1 for x in x_values
        if any(abs(x - a) <= tolerance for a in anchors)
    )


def build_grid(
    rows: Sequence[Sequence[Tuple[float, str]]],
    anchors: Sequence[float]
) -> List[List[str]]:
    """
    Place cell texts into a rectangular grid.

    Args:
        rows: For each table row, its (x, text) pairs in left-to-right order
        anchors: Final column anchors

    Returns:
        ``len(rows) x len(anchors)`` grid; runs landing in the same cell are
        joined with a single space, empty cells are ``""``
    """
    grid = []
    for row in rows:
        cells = [""] * len(anchors)
        for x, text in row:
            col = nearest_anchor(x, anchors)
            cells[col] = f"{cells[col]} {text}" if cells[col] else text
        grid.append(cells)
    return grid
