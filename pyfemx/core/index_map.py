"""pyfemx.core.index_map
Ownership bookkeeping for one entity dimension.

Local indices ``[0, size_local)`` are owned, ``[size_local, size_local+num_ghosts)``
are ghosts whose global numbers are stored in ``ghosts``.  The map is produced
by the partitioning layer and consumed here as trusted input.
"""
from __future__ import annotations

from typing import Optional

import numpy as np


class IndexMap:
    def __init__(self,
                 size_local: int,
                 ghosts=None,
                 *,
                 block_size: int = 1,
                 size_global: Optional[int] = None,
                 local_range_start: int = 0,
                 global_indices=None):
        if size_local < 0:
            raise ValueError(f"size_local must be non-negative, got {size_local}.")
        if block_size < 1:
            raise ValueError(f"block_size must be positive, got {block_size}.")
        self._size_local = int(size_local)
        self._ghosts = np.asarray(ghosts if ghosts is not None else [], dtype=np.int64).ravel()
        self._block_size = int(block_size)
        self._offset = int(local_range_start)
        self._size_global = int(size_global) if size_global is not None else self._offset + self._size_local

        # Optional explicit local-to-global numbering (owned entries need not be contiguous)
        if global_indices is not None:
            gi = np.asarray(global_indices, dtype=np.int64).ravel()
            n = self._size_local + self._ghosts.size
            if gi.size == self._size_local:
                gi = np.concatenate([gi, self._ghosts])
            if gi.size != n:
                raise ValueError(f"global_indices has {gi.size} entries, expected {n}.")
            self._global_indices = gi
        else:
            self._global_indices = None

    # ------------------------------------------------------------------
    @property
    def size_local(self) -> int:
        return self._size_local

    @property
    def num_ghosts(self) -> int:
        return int(self._ghosts.size)

    @property
    def size_global(self) -> int:
        return self._size_global

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def ghosts(self) -> np.ndarray:
        return self._ghosts

    @property
    def local_range(self) -> tuple[int, int]:
        return self._offset, self._offset + self._size_local

    def num_entities(self) -> int:
        """Owned plus ghost entities, the count used for assembly."""
        return self._size_local + self.num_ghosts

    def global_indices(self) -> np.ndarray:
        """Global index of every local entity (owned first, then ghosts)."""
        if self._global_indices is not None:
            return self._global_indices
        owned = np.arange(self._offset, self._offset + self._size_local, dtype=np.int64)
        return np.concatenate([owned, self._ghosts])

    def local_to_global(self, indices) -> np.ndarray:
        idx = np.asarray(indices, dtype=np.int64)
        n = self.num_entities()
        if idx.size and (idx.min() < 0 or idx.max() >= n):
            raise IndexError(f"Local index out of range [0, {n}).")
        return self.global_indices()[idx]

    def is_owned(self, indices) -> np.ndarray:
        return np.asarray(indices) < self._size_local

    def __eq__(self, other):
        if not isinstance(other, IndexMap):
            return NotImplemented
        return (self._size_local == other._size_local
                and self._block_size == other._block_size
                and self._size_global == other._size_global
                and np.array_equal(self.global_indices(), other.global_indices()))

    __hash__ = None

    def __repr__(self):
        return (f"<IndexMap size_local={self._size_local}, num_ghosts={self.num_ghosts}, "
                f"size_global={self._size_global}, block_size={self._block_size}>")
