"""Quantity bookkeeping between a parent item and its nested parts.

A minifigure owns parts and a multipack part owns subparts. When the owner's
"have" count changes, each child's count follows proportionally; when the
children are collected, the owner's complete-unit count follows from them.
"""

from __future__ import annotations

from typing import Iterable


def desired_child_quantity(
    child_needed: int,
    parent_units: int,
    parent_needed: int,
) -> int:
    """Child count matching *parent_units* of the parent (rounded up, clamped)."""

    parent_units = max(0, min(parent_units, parent_needed))
    if parent_units <= 0 or child_needed <= 0:
        return 0
    denominator = max(parent_needed, 1)
    desired = -(-child_needed * parent_units // denominator)
    return min(child_needed, desired)


def completed_units(
    parent_needed: int,
    children: Iterable[tuple[int, int]],
) -> int | None:
    """Complete parent units implied by ``(have, needed)`` child counts.

    Children that need nothing are ignored; ``None`` means nothing relevant.
    """

    if parent_needed <= 0:
        return None

    best: int | None = None
    for have, needed in children:
        if needed <= 0:
            continue
        candidate = min(parent_needed, (have * parent_needed) // needed)
        best = candidate if best is None else min(best, candidate)
    return best
