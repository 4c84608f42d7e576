"""pyfemx.core.topology
Per-dimension entity maps, connectivity cache and orientation data.

All ``create_*`` methods are "compute if absent": they only ever add to the
cache and never recompute or evict.  They mutate the instance and are not
thread-safe; run them (single-threaded) before handing the topology to a
parallel entity loop, and call :meth:`Topology.freeze` to make any further
computation an error.
"""
from __future__ import annotations

import logging
from hashlib import blake2b
from typing import List, Optional

import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.cell_types import CellType, cell_dim, num_cell_vertices, to_cell_type
from pyfemx.core.index_map import IndexMap
from pyfemx.core.permutations import compute_entity_permutations
from pyfemx.core.topology_computation import (compute_connectivity, compute_entities,
                                              compute_interior_facets)
from pyfemx.errors import NotInitialized, TopologyFrozen

logger = logging.getLogger(__name__)


class Topology:
    """
    Mesh topology of a single cell type.

    Parameters
    ----------
    cell_type : CellType or str
    vertex_map : IndexMap
        Ownership of the vertices; its global indices define the orientation
        of every sub-entity.
    cell_map : IndexMap
        Ownership of the cells.
    cells : AdjacencyList
        Cell -> local vertex indices, fixed degree.
    """

    def __init__(self, cell_type, vertex_map: IndexMap, cell_map: IndexMap, cells: AdjacencyList):
        self._cell_type = to_cell_type(cell_type)
        self._dim = cell_dim(self._cell_type)
        if cells.num_nodes != cell_map.num_entities():
            raise ValueError(f"Cell map describes {cell_map.num_entities()} cells, "
                             f"connectivity has {cells.num_nodes}.")
        if cells.num_nodes and cells.as_2d().shape[1] != num_cell_vertices(self._cell_type):
            raise ValueError(f"A {self._cell_type} has {num_cell_vertices(self._cell_type)} vertices.")

        n = self._dim + 1
        self._index_maps: List[Optional[IndexMap]] = [None] * n
        self._connectivity: List[List[Optional[AdjacencyList]]] = [[None] * n for _ in range(n)]
        self._index_maps[0] = vertex_map
        self._index_maps[self._dim] = cell_map
        self._connectivity[self._dim][0] = cells
        self._connectivity[0][0] = AdjacencyList(
            np.arange(vertex_map.num_entities(), dtype=np.int64)[:, None])

        self._interior_facets: Optional[np.ndarray] = None
        self._cell_permutations: Optional[np.ndarray] = None
        self._facet_permutations: Optional[np.ndarray] = None
        self._frozen = False

    # ------------------------------------------------------------------
    # Cached data access
    # ------------------------------------------------------------------
    @property
    def dim(self) -> int:
        return self._dim

    @property
    def cell_type(self) -> CellType:
        return self._cell_type

    def _check_dim(self, d: int):
        if not 0 <= d <= self._dim:
            raise ValueError(f"Dimension {d} out of range [0, {self._dim}].")

    def index_map(self, dim: int) -> Optional[IndexMap]:
        self._check_dim(dim)
        return self._index_maps[dim]

    def set_index_map(self, dim: int, index_map: IndexMap):
        self._check_dim(dim)
        self._guard(f"set the index map of dimension {dim}")
        if self._index_maps[dim] is not None:
            raise RuntimeError(f"Index map of dimension {dim} is already set.")
        self._index_maps[dim] = index_map

    def connectivity(self, d0: int, d1: int) -> Optional[AdjacencyList]:
        """Cached (d0, d1) connectivity, ``None`` if it has not been computed."""
        self._check_dim(d0)
        self._check_dim(d1)
        return self._connectivity[d0][d1]

    def set_connectivity(self, c: AdjacencyList, d0: int, d1: int):
        self._check_dim(d0)
        self._check_dim(d1)
        self._guard(f"set connectivity ({d0}, {d1})")
        if self._connectivity[d0][d1] is not None:
            raise RuntimeError(f"Connectivity ({d0}, {d1}) is already set.")
        self._connectivity[d0][d1] = c

    def num_entities(self, dim: int) -> int:
        """Owned plus ghost entities of dimension ``dim``."""
        self._check_dim(dim)
        index_map = self._index_maps[dim]
        if index_map is None:
            raise NotInitialized(dim)
        return index_map.num_entities()

    def num_entities_global(self, dim: int) -> int:
        self._check_dim(dim)
        index_map = self._index_maps[dim]
        if index_map is None:
            raise NotInitialized(dim)
        return index_map.size_global

    def interior_facets(self) -> np.ndarray:
        if self._interior_facets is None:
            raise NotInitialized(self._dim - 1, self._dim)
        return self._interior_facets

    def set_interior_facets(self, flags):
        self._guard("set interior facet flags")
        self._interior_facets = np.asarray(flags, dtype=bool)

    def get_cell_permutation_info(self) -> np.ndarray:
        if self._cell_permutations is None:
            raise NotInitialized(self._dim, what="cell permutation info")
        return self._cell_permutations

    def get_facet_permutations(self) -> np.ndarray:
        if self._facet_permutations is None:
            raise NotInitialized(self._dim - 1, what="facet permutations")
        return self._facet_permutations

    def boundary_facets(self) -> np.ndarray:
        """Owned facets with a single incident cell."""
        flags = self.interior_facets()
        size_local = self._index_maps[self._dim - 1].size_local
        return np.flatnonzero(~flags[:size_local])

    # ------------------------------------------------------------------
    # Build phase
    # ------------------------------------------------------------------
    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        """End the build phase: from now on only cached data may be requested."""
        self._frozen = True

    def _guard(self, action: str):
        if self._frozen:
            raise TopologyFrozen(f"Cannot {action}: topology is frozen.")

    def create_entities(self, dim: int) -> int:
        """
        Create the entities of dimension ``dim`` together with (tdim, dim)
        and (dim, 0) connectivity.  Returns -1 if they already exist, else
        the number of owned entities created.
        """
        self._check_dim(dim)
        if self._connectivity[dim][0] is not None:
            return -1
        self._guard(f"create entities of dimension {dim}")
        cell_entity, entity_vertex, index_map = compute_entities(self, dim)
        if cell_entity is not None:
            self._connectivity[self._dim][dim] = cell_entity
        if entity_vertex is not None:
            self._connectivity[dim][0] = entity_vertex
        if index_map is not None:
            self._index_maps[dim] = index_map
        return index_map.size_local

    def create_connectivity(self, d0: int, d1: int):
        """
        Create (d0, d1) connectivity, creating the d0 and d1 entities first.
        A (d1, d0) list computed on the way is cached too.  Requesting
        (tdim-1, tdim) also classifies every facet as interior or exterior.
        """
        self.create_entities(d0)
        self.create_entities(d1)
        if self._connectivity[d0][d1] is None:
            self._guard(f"create connectivity ({d0}, {d1})")
            c_d0_d1, c_d1_d0 = compute_connectivity(self, d0, d1)
            if c_d0_d1 is not None:
                self._connectivity[d0][d1] = c_d0_d1
            if c_d1_d0 is not None and self._connectivity[d1][d0] is None:
                self._connectivity[d1][d0] = c_d1_d0
            logger.debug(f"Computed connectivity ({d0}, {d1}).")

        if d0 == self._dim - 1 and d1 == self._dim and self._interior_facets is None:
            self._guard("classify interior facets")
            self._interior_facets = compute_interior_facets(self)

    def create_connectivity_all(self):
        for d in range(self._dim + 1):
            self.create_entities(d)
        for d0 in range(self._dim + 1):
            for d1 in range(self._dim + 1):
                self.create_connectivity(d0, d1)

    def create_entity_permutations(self):
        """Compute the cell bitmasks and facet permutation bytes (idempotent)."""
        if self._cell_permutations is not None:
            return
        for d in range(self._dim):
            self.create_entities(d)
        self._guard("create entity permutations")
        cells = self._connectivity[self._dim][0].as_2d()
        global_vertices = self._index_maps[0].global_indices()
        info, perms = compute_entity_permutations(self._cell_type, cells, global_vertices)
        self._cell_permutations = info
        self._facet_permutations = perms
        logger.debug(f"Computed entity permutations for {cells.shape[0]} cells.")

    # ------------------------------------------------------------------
    def hash(self) -> int:
        """Content hash of the cell-vertex graph in global vertex numbering."""
        cells = self._connectivity[self._dim][0]
        global_vertices = self._index_maps[0].global_indices()
        h = blake2b(digest_size=8)
        h.update(str(self._cell_type).encode())
        h.update(cells.offsets.tobytes())
        h.update(np.ascontiguousarray(global_vertices[cells.array]).tobytes())
        return int.from_bytes(h.digest(), "little")

    def __repr__(self):
        computed = [(d0, d1) for d0 in range(self._dim + 1) for d1 in range(self._dim + 1)
                    if self._connectivity[d0][d1] is not None]
        return (f"<Topology {self._cell_type} tdim={self._dim}, "
                f"connectivity={computed}, frozen={self._frozen}>")
