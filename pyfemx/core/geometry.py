"""pyfemx.core.geometry
Node coordinates and the cell -> geometry-node map.
"""
from __future__ import annotations

import copy
from hashlib import blake2b
from typing import Optional

import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.index_map import IndexMap
from pyfemx.fem.coordinate_element import CoordinateElement


class Geometry:
    """
    Physical node positions of a mesh.

    ``x`` is always stored with three columns; ``dim`` (gdim) says how many
    of them are meaningful.  ``dofmap`` has a fixed degree equal to the
    number of nodes of the coordinate element.
    """

    def __init__(self, index_map: IndexMap, dofmap: AdjacencyList, cmap: CoordinateElement,
                 x, dim: int, input_global_indices=None):
        x = np.asarray(x, dtype=float)
        if x.ndim != 2 or x.shape[1] > 3:
            raise ValueError(f"Coordinates must have shape (N, <=3), got {x.shape}.")
        if not 1 <= dim <= 3:
            raise ValueError(f"Geometric dimension must be in [1, 3], got {dim}.")
        if dofmap.num_nodes and dofmap.as_2d().shape[1] != cmap.num_dofs:
            raise ValueError(f"Geometry dofmap has degree {dofmap.as_2d().shape[1]}, "
                             f"coordinate element expects {cmap.num_dofs}.")
        if x.shape[0] != index_map.num_entities():
            raise ValueError(f"{x.shape[0]} nodes given, index map describes "
                             f"{index_map.num_entities()}.")

        padded = np.zeros((x.shape[0], 3), dtype=float)
        padded[:, :x.shape[1]] = x
        padded.flags.writeable = False
        self._x = padded
        self._dim = int(dim)
        self._dofmap = dofmap
        self._cmap = cmap
        self._index_map = index_map
        if input_global_indices is None:
            input_global_indices = index_map.global_indices()
        self._input_global_indices = np.asarray(input_global_indices, dtype=np.int64)

    def __deepcopy__(self, memo):
        other = copy.copy(self)
        x = self._x.copy()
        x.flags.writeable = False
        other._x = x
        other._input_global_indices = self._input_global_indices.copy()
        memo[id(self)] = other
        return other

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def x(self) -> np.ndarray:
        """(N, 3) node coordinates, read-only."""
        return self._x

    @property
    def dofmap(self) -> AdjacencyList:
        return self._dofmap

    @property
    def cmap(self) -> CoordinateElement:
        return self._cmap

    @property
    def index_map(self) -> IndexMap:
        return self._index_map

    @property
    def input_global_indices(self) -> np.ndarray:
        """Global id each local node had in the input coordinate array."""
        return self._input_global_indices

    def cell_coordinates(self, cells: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Coordinates (n, num_dofs_g, gdim) of the geometry nodes of ``cells``
        (all cells when omitted), truncated to gdim components.
        """
        dofs = self._dofmap.as_2d()
        if cells is not None:
            dofs = dofs[np.asarray(cells, dtype=np.int64)]
        return self._x[dofs, :self._dim]

    def hash(self) -> int:
        h = blake2b(digest_size=8)
        h.update(repr(self._cmap).encode())
        h.update(np.int64(self._dim).tobytes())
        h.update(self._dofmap.offsets.tobytes())
        h.update(np.ascontiguousarray(self._input_global_indices[self._dofmap.array]).tobytes())
        h.update(np.ascontiguousarray(self._x[:, :self._dim]).tobytes())
        return int.from_bytes(h.digest(), "little")

    def str(self, verbose: bool = False) -> str:
        s = f"<Geometry of dimension {self._dim}: {self._x.shape[0]} nodes, {self._cmap}>"
        if verbose:
            s += "\n" + "\n".join(f"  {i}: {tuple(p[:self._dim])}" for i, p in enumerate(self._x))
        return s

    def __repr__(self):
        return self.str()
