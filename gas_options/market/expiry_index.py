"""Bucketed index of active positions by expiration block.

Keepers need "everything expiring at block B" and "the next block with
anything expiring" without touching unrelated positions. Holders are grouped
into one bucket per expiration block, and a min-heap of bucket blocks with
lazy deletion keeps the next non-empty bucket at the top:

    insert / remove        O(log b) worst case (b = number of buckets)
    bucket(block)          O(bucket size)
    first_at_or_after(f)   amortized O(1) for a non-decreasing floor f

Buckets keep insertion order so batch settlement is deterministic.
"""

from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import StateError


class ExpiryIndex:
    """
    Index of active holders keyed by expiration block.

    A holder appears in exactly one bucket while its position is active and
    in none otherwise.
    """

    def __init__(self):
        self._buckets: Dict[int, Dict[str, None]] = {}
        self._heap: List[int] = []
        self._size = 0

    def __len__(self) -> int:
        """Number of indexed holders."""
        return self._size

    def __contains__(self, block: int) -> bool:
        return block in self._buckets

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def insert(self, holder: str, block: int):
        """
        Add ``holder`` to the bucket at ``block``.

        Raises
        ------
        StateError
            If the holder is already in that bucket
        """
        bucket = self._buckets.get(block)
        if bucket is None:
            bucket = self._buckets[block] = {}
            heapq.heappush(self._heap, block)
        elif holder in bucket:
            raise StateError("holder already indexed")
        bucket[holder] = None
        self._size += 1

    def remove(self, holder: str, block: int):
        """
        Drop ``holder`` from the bucket at ``block``.

        Emptied buckets are deleted at once; their heap entries are skipped
        lazily.

        Raises
        ------
        StateError
            If the holder is not in that bucket
        """
        bucket = self._buckets.get(block)
        if bucket is None or holder not in bucket:
            raise StateError("holder not indexed at block")
        del bucket[holder]
        self._size -= 1
        if not bucket:
            del self._buckets[block]

    def pop_bucket(self, block: int) -> Tuple[str, ...]:
        """Remove and return every holder expiring at ``block``."""
        bucket = self._buckets.pop(block, None)
        if bucket is None:
            return ()
        self._size -= len(bucket)
        return tuple(bucket)

    def bucket(self, block: int) -> Tuple[str, ...]:
        """Holders expiring at ``block``, in insertion order."""
        return tuple(self._buckets.get(block, ()))

    def is_due(self, block: int) -> bool:
        """True when the bucket at ``block`` is non-empty."""
        return block in self._buckets

    def first_at_or_after(self, floor: int) -> Optional[int]:
        """
        Earliest block ``>= floor`` with a non-empty bucket.

        Heap entries below ``floor`` are discarded, so callers must pass a
        non-decreasing floor (the reference block number). Buckets left
        behind below the floor remain addressable through ``bucket`` and
        ``remove``.

        Returns
        -------
        int or None
            Block number, or None if nothing expires at or after ``floor``
        """
        heap = self._heap
        while heap and (heap[0] < floor or heap[0] not in self._buckets):
            heapq.heappop(heap)
        return heap[0] if heap else None

    def snapshot(self, blocks: Iterable[int]) -> Dict[int, Optional[Dict[str, None]]]:
        """Copies of the buckets at ``blocks``, for rollback."""
        saved = {}
        for block in blocks:
            bucket = self._buckets.get(block)
            saved[block] = dict(bucket) if bucket is not None else None
        return saved

    def restore(self, saved: Dict[int, Optional[Dict[str, None]]]):
        for block, bucket in saved.items():
            current = self._buckets.pop(block, None)
            if current is not None:
                self._size -= len(current)
            if bucket:
                self._buckets[block] = dict(bucket)
                self._size += len(bucket)
                heapq.heappush(self._heap, block)
