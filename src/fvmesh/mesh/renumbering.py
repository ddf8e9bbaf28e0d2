"""
Index Renumbering

Turns a set of surviving stable handles into dense positions. Renumbering is
done in two phases: the new order is computed from a frozen view of the
tables (which handles survive and in which group they live), then a single
IndexRemap is applied to every stored reference. No reference is ever shifted
in place, so the result does not depend on the order of deletions.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from .errors import IndexConsistencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexRemap:
    """Mapping from stable handle to dense position."""
    old_to_new: Dict[int, int]
    kind: str = "index"

    @classmethod
    def from_order(cls, ordered_handles: Iterable[int], kind: str = "index") -> "IndexRemap":
        mapping: Dict[int, int] = {}
        for position, handle in enumerate(ordered_handles):
            if handle in mapping:
                raise IndexConsistencyError(f"Duplicate {kind} handle {handle} in new order")
            mapping[handle] = position
        return cls(mapping, kind)

    def __len__(self) -> int:
        return len(self.old_to_new)

    def __contains__(self, handle: int) -> bool:
        return handle in self.old_to_new

    def __getitem__(self, handle: int) -> int:
        try:
            return self.old_to_new[handle]
        except KeyError:
            raise IndexConsistencyError(f"Reference to retired {self.kind} {handle}") from None

    def map(self, handles: Sequence[int]) -> List[int]:
        return [self[h] for h in handles]

    def map_optional(self, handle: int, sentinel: int = -1) -> int:
        """Map a reference that may hold the sentinel value."""
        return sentinel if handle == sentinel else self[handle]

    def inverse(self) -> List[int]:
        """Handle stored at each new position."""
        result = [0] * len(self.old_to_new)
        for handle, position in self.old_to_new.items():
            result[position] = handle
        return result


def grouped_order(groups: Mapping[int, Optional[int]], group_order: Sequence[Optional[int]]) -> List[int]:
    """
    Order handles group by group, ascending handle within each group.

    Args:
        groups: Handle -> group key (e.g. face -> patch index, None = internal)
        group_order: Group keys in storage order

    Returns:
        Handles in their new storage order
    """
    buckets: Dict[Optional[int], List[int]] = {key: [] for key in group_order}
    for handle, key in groups.items():
        if key not in buckets:
            raise IndexConsistencyError(f"Handle {handle} belongs to unknown group {key}")
        buckets[key].append(handle)

    ordered = []
    for key in group_order:
        ordered.extend(sorted(buckets[key]))
    return ordered


def compact_remap(handles: Iterable[int], kind: str = "index") -> IndexRemap:
    """Dense renumbering preserving the relative order of surviving handles."""
    return IndexRemap.from_order(sorted(handles), kind)
