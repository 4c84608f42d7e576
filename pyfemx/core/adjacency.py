"""pyfemx.core.adjacency"""
from __future__ import annotations

from hashlib import blake2b
from typing import Iterable, Optional, Sequence

import numpy as np
import scipy.sparse as sp


def _frozen(a: np.ndarray) -> np.ndarray:
    a = np.array(a, order="C")
    a.flags.writeable = False
    return a


class AdjacencyList:
    """
    Compressed (CSR) graph from the node range ``[0, N)`` to integer targets.

    ``links(i)`` returns ``array[offsets[i]:offsets[i+1]]``.  Both arrays are
    made read-only on construction; an AdjacencyList never changes once built.
    """

    def __init__(self, array, offsets: Optional[Iterable[int]] = None):
        data = np.asarray(array, dtype=np.int64)
        # degree of a graph built from a 2D array, kept even when it has no nodes
        self._degree = None
        if offsets is None:
            # A 2D array is a fixed-degree graph
            if data.ndim != 2:
                raise ValueError("A 2D array is required when no offsets are given.")
            n, k = data.shape
            self._degree = int(k)
            offsets = np.arange(n + 1, dtype=np.int64) * k
            data = data.ravel()
        offsets = np.asarray(offsets, dtype=np.int64).ravel()
        if offsets.size == 0 or offsets[0] != 0 or offsets[-1] != data.size:
            raise ValueError("Offsets must start at 0 and end at len(array).")
        if np.any(np.diff(offsets) < 0):
            raise ValueError("Offsets must be non-decreasing.")
        self._array = _frozen(data.ravel())
        self._offsets = _frozen(offsets)

    @classmethod
    def from_lists(cls, rows: Sequence[Sequence[int]]) -> "AdjacencyList":
        degrees = np.fromiter((len(r) for r in rows), dtype=np.int64, count=len(rows))
        offsets = np.zeros(len(rows) + 1, dtype=np.int64)
        np.cumsum(degrees, out=offsets[1:])
        array = np.fromiter((v for r in rows for v in r), dtype=np.int64, count=int(offsets[-1]))
        return cls(array, offsets)

    # ------------------------------------------------------------------
    @property
    def array(self) -> np.ndarray:
        return self._array

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets

    @property
    def num_nodes(self) -> int:
        return self._offsets.size - 1

    def __len__(self):
        return self.num_nodes

    def links(self, node: int) -> np.ndarray:
        return self._array[self._offsets[node]:self._offsets[node + 1]]

    def num_links(self, node: int) -> int:
        return int(self._offsets[node + 1] - self._offsets[node])

    def degrees(self) -> np.ndarray:
        return np.diff(self._offsets)

    def max_degree(self) -> int:
        return int(self.degrees().max()) if self.num_nodes else 0

    def is_fixed_degree(self) -> bool:
        d = self.degrees()
        return d.size == 0 or bool(np.all(d == d[0]))

    def as_2d(self) -> np.ndarray:
        """Row-per-node view of a fixed-degree list."""
        if not self.is_fixed_degree():
            raise ValueError("AdjacencyList does not have a fixed degree.")
        if self.num_nodes:
            k = self.num_links(0)
        else:
            k = self._degree or 0
        return self._array.reshape(self.num_nodes, k)

    def transpose(self, num_targets: Optional[int] = None) -> "AdjacencyList":
        """
        Reverse graph: target ``j`` -> every node ``i`` with ``j in links(i)``,
        listed in ascending ``i``.
        """
        n_targets = int(num_targets) if num_targets is not None else (
            int(self._array.max()) + 1 if self._array.size else 0)
        if self._array.size == 0:
            return AdjacencyList(self._array, np.zeros(n_targets + 1, dtype=np.int64))
        rows = np.repeat(np.arange(self.num_nodes, dtype=np.int64), self.degrees())
        data = np.ones(self._array.size, dtype=np.int8)
        csc = sp.csr_matrix((data, (rows, self._array)),
                            shape=(self.num_nodes, n_targets)).tocsc()
        csc.sort_indices()
        return AdjacencyList(csc.indices.astype(np.int64), csc.indptr.astype(np.int64))

    def hash_token(self) -> str:
        h = blake2b(digest_size=16)
        h.update(self._offsets.tobytes())
        h.update(self._array.tobytes())
        return h.hexdigest()

    def __eq__(self, other):
        if not isinstance(other, AdjacencyList):
            return NotImplemented
        return (np.array_equal(self._offsets, other._offsets)
                and np.array_equal(self._array, other._array))

    __hash__ = None

    # immutable: copies may share the underlying arrays
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __iter__(self):
        for i in range(self.num_nodes):
            yield self.links(i)

    def __repr__(self):
        return f"<AdjacencyList num_nodes={self.num_nodes}, num_links={self._array.size}>"
