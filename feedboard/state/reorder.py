"""
Permutation helpers for drag-and-drop reordering.

A reorder may only permute a list: the multiset of ids before and after must
be identical. Anything else is treated as a no-op by the stores.
"""

from collections import Counter
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def is_permutation(before: Sequence[str], after: Sequence[str]) -> bool:
    """True when ``after`` holds exactly the ids of ``before``, in any order."""
    return len(before) == len(after) and Counter(before) == Counter(after)


def array_move(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Copy of ``items`` with the element at ``old_index`` moved to ``new_index``."""
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def move_by_id(
    items: Sequence[T],
    active_id: str,
    over_id: Optional[str],
    key: Callable[[T], str],
) -> Optional[List[T]]:
    """
    Drag-end reorder: move the item with ``active_id`` to where ``over_id`` is.

    Returns None when nothing should change (dropped on itself, dropped
    outside the list, or either id unknown).
    """
    if over_id is None or active_id == over_id:
        return None

    ids = [key(item) for item in items]
    try:
        old_index = ids.index(active_id)
        new_index = ids.index(over_id)
    except ValueError:
        return None

    return array_move(items, old_index, new_index)
