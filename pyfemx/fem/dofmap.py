"""pyfemx.fem.dofmap"""
from __future__ import annotations

import logging

import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.index_map import IndexMap

logger = logging.getLogger(__name__)


class DofMap:
    """
    Cell -> dof map.

    ``list`` holds one row of *node* indices per cell; dof ``k`` of node ``n``
    is ``n*bs + k``.  A view (the dofmap of a sub-space) has ``bs == 1`` and
    holds dofs numbered in its parent's space, so ``index_map_bs`` keeps the
    parent block size for ownership queries.
    """

    def __init__(self, cell_dofs: AdjacencyList, index_map: IndexMap, bs: int = 1,
                 *, index_map_bs: int = None, is_view: bool = False):
        if bs < 1:
            raise ValueError(f"Block size must be positive, got {bs}.")
        self._list = cell_dofs
        self._index_map = index_map
        self._bs = int(bs)
        self._index_map_bs = int(index_map_bs) if index_map_bs is not None else self._bs
        self._is_view = bool(is_view)

    @property
    def list(self) -> AdjacencyList:
        return self._list

    @property
    def index_map(self) -> IndexMap:
        return self._index_map

    @property
    def bs(self) -> int:
        return self._bs

    @property
    def index_map_bs(self) -> int:
        return self._index_map_bs

    @property
    def is_view(self) -> bool:
        return self._is_view

    @property
    def num_cell_dofs(self) -> int:
        """Node indices per cell (unblocked)."""
        return self._list.as_2d().shape[1]

    def cell_dofs(self, cell: int) -> np.ndarray:
        return self._list.links(cell)

    def num_dofs(self) -> int:
        """Length of a value vector on this map's index map (owned + ghost, blocked)."""
        return self._index_map.num_entities() * self._index_map_bs

    def expanded(self) -> np.ndarray:
        """(num_cells, num_cell_dofs*bs) blocked dofs, node-major."""
        nodes = self._list.as_2d()
        if self._bs == 1:
            return nodes
        k = np.arange(self._bs, dtype=np.int64)
        return (nodes[:, :, None] * self._bs + k).reshape(nodes.shape[0], -1)

    def extract_sub_dofmap(self, columns) -> "DofMap":
        """View on the blocked cell-local dof positions ``columns``."""
        columns = np.asarray(columns, dtype=np.int64)
        sub = self.expanded()[:, columns]
        return DofMap(AdjacencyList(sub), self._index_map, 1,
                      index_map_bs=self._index_map_bs, is_view=True)

    def collapse(self):
        """
        Renumber the dofs of this map contiguously.

        Returns ``(dofmap, parent_dofs)`` where ``parent_dofs[i]`` is the dof in
        this map's numbering that collapsed dof ``i`` came from.
        """
        dofs = self.expanded()
        unique, inverse = np.unique(dofs, return_inverse=True)
        inverse = np.asarray(inverse).reshape(dofs.shape)
        owned = unique < self._index_map.size_local * self._index_map_bs
        order = np.lexsort((unique, ~owned))
        new_index = np.empty(unique.size, dtype=np.int64)
        new_index[order] = np.arange(unique.size, dtype=np.int64)

        n_owned = int(owned.sum())
        index_map = IndexMap(n_owned, ghosts=np.arange(n_owned, unique.size, dtype=np.int64),
                             size_global=unique.size)
        logger.debug(f"Collapsed dofmap: {unique.size} dofs ({n_owned} owned).")
        return DofMap(AdjacencyList(new_index[inverse]), index_map, 1), unique[order]

    def __repr__(self):
        return (f"<DofMap cells={self._list.num_nodes}, dofs/cell={self.num_cell_dofs}, "
                f"bs={self._bs}, view={self._is_view}>")
