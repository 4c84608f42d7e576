"""pyfemx.core.mesh
Mesh = Topology + Geometry, the factory building both, and cell metrics.
"""
from __future__ import annotations

import copy
import logging
from math import factorial
import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.cell_types import (cell_dim, get_entity_vertices, is_simplex, num_cell_vertices,
                                    to_cell_type)
from pyfemx.core.geometry import Geometry
from pyfemx.core.index_map import IndexMap
from pyfemx.core.topology import Topology
from pyfemx.errors import EmptyMesh
from pyfemx.fem.coordinate_element import CoordinateElement

logger = logging.getLogger(__name__)


def _cantor_pair(k1: int, k2: int) -> int:
    return (k1 + k2) * (k1 + k2 + 1) // 2 + k2


class Mesh:
    """
    A mesh owns exactly one :class:`Topology` and one :class:`Geometry`.

    Entities and connectivity beyond (tdim, 0) are created on demand through
    the ``create_*`` methods and are then cached for the mesh's lifetime.
    """

    def __init__(self, topology: Topology, geometry: Geometry, name: str = "mesh"):
        if topology.cell_type != geometry.cmap.cell_type:
            raise ValueError(f"Topology is made of {topology.cell_type} cells, "
                             f"coordinate element of {geometry.cmap.cell_type} cells.")
        if geometry.dofmap.num_nodes != topology.connectivity(topology.dim, 0).num_nodes:
            raise ValueError("Topology and geometry disagree on the number of cells.")
        self._topology = topology
        self._geometry = geometry
        self.name = name

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def geometry(self) -> Geometry:
        return self._geometry

    @property
    def cell_type(self):
        return self._topology.cell_type

    # ------------------------------------------------------------------
    # Topology delegation
    # ------------------------------------------------------------------
    def create_entities(self, dim: int) -> int:
        return self._topology.create_entities(dim)

    def create_connectivity(self, d0: int, d1: int):
        self._topology.create_connectivity(d0, d1)

    def create_connectivity_all(self):
        self._topology.create_connectivity_all()

    def create_entity_permutations(self):
        self._topology.create_entity_permutations()

    def num_entities(self, dim: int) -> int:
        return self._topology.num_entities(dim)

    def num_entities_global(self, dim: int) -> int:
        return self._topology.num_entities_global(dim)

    # ------------------------------------------------------------------
    # Cell metrics
    # ------------------------------------------------------------------
    def _num_cells(self) -> int:
        return self._topology.num_entities(self._topology.dim)

    def hmin(self) -> float:
        n = self._num_cells()
        if n == 0:
            raise EmptyMesh("Cannot compute hmin of a mesh without cells.")
        return float(h(self, np.arange(n), self._topology.dim).min())

    def hmax(self) -> float:
        n = self._num_cells()
        if n == 0:
            raise EmptyMesh("Cannot compute hmax of a mesh without cells.")
        return float(h(self, np.arange(n), self._topology.dim).max())

    def rmin(self) -> float:
        n = self._num_cells()
        if n == 0:
            raise EmptyMesh("Cannot compute rmin of a mesh without cells.")
        return float(inradius(self, np.arange(n)).min())

    def rmax(self) -> float:
        n = self._num_cells()
        if n == 0:
            raise EmptyMesh("Cannot compute rmax of a mesh without cells.")
        return float(inradius(self, np.arange(n)).max())

    # ------------------------------------------------------------------
    def hash(self) -> int:
        """Content hash combining the topology and geometry hashes."""
        return _cantor_pair(self._topology.hash(), self._geometry.hash())

    def copy(self) -> "Mesh":
        """Independent Topology and Geometry (immutable adjacency lists are shared)."""
        return copy.deepcopy(self)

    def str(self, verbose: bool = False) -> str:
        if verbose:
            return (f"Mesh '{self.name}'\n  {self._topology!r}\n  "
                    + self._geometry.str(verbose=True).replace("\n", "\n  "))
        return (f"<Mesh '{self.name}' of topological dimension {self._topology.dim} "
                f"({self._topology.cell_type}) with {self._num_cells()} cells>")

    def __repr__(self):
        return self.str()


# ----------------------------------------------------------------------
# Entity geometry
# ----------------------------------------------------------------------
def entities_to_geometry(mesh: Mesh, dim: int, entities) -> np.ndarray:
    """
    Geometry-node indices (n, num_vertices) of the vertices of ``entities``,
    read through the first cell incident to each entity.
    """
    topology = mesh.topology
    tdim = topology.dim
    entities = np.asarray(entities, dtype=np.int64).ravel()
    nv_cell = num_cell_vertices(topology.cell_type)
    cell_nodes = mesh.geometry.dofmap.as_2d()[:, :nv_cell]
    if dim == tdim:
        return cell_nodes[entities]

    topology.create_connectivity(dim, tdim)
    topology.create_connectivity(tdim, dim)
    e2c = topology.connectivity(dim, tdim)
    c2e = topology.connectivity(tdim, dim).as_2d()
    table = get_entity_vertices(topology.cell_type, dim)

    out = np.empty((entities.size, table.shape[1]), dtype=np.int64)
    for k, e in enumerate(entities):
        c = e2c.links(e)[0]
        local = int(np.flatnonzero(c2e[c] == e)[0])
        out[k] = cell_nodes[c, table[local]]
    return out


def _simplex_volume(points: np.ndarray) -> np.ndarray:
    """Volumes of simplices given as (n, k+1, gdim) vertex arrays."""
    k = points.shape[1] - 1
    if k == 0:
        return np.ones(points.shape[0])
    J = np.swapaxes(points[:, 1:, :] - points[:, :1, :], 1, 2)   # (n, gdim, k)
    gram = np.swapaxes(J, 1, 2) @ J
    return np.sqrt(np.abs(np.linalg.det(gram))) / factorial(k)


def h(mesh: Mesh, entities, dim: int) -> np.ndarray:
    """Largest distance between any two vertices of each entity."""
    entities = np.asarray(entities, dtype=np.int64).ravel()
    if dim == 0 or entities.size == 0:
        return np.zeros(entities.size)
    x = mesh.geometry.x
    pts = x[entities_to_geometry(mesh, dim, entities)]             # (n, nv, 3)
    diff = pts[:, :, None, :] - pts[:, None, :, :]
    return np.sqrt((diff ** 2).sum(axis=-1)).max(axis=(1, 2))


def inradius(mesh: Mesh, cells) -> np.ndarray:
    """
    Inscribed-sphere radius r = d |K| / sum_i |F_i| of simplex cells.
    Degenerate cells get r = 0.
    """
    ct = mesh.topology.cell_type
    if not is_simplex(ct):
        raise ValueError(f"inradius is only defined for simplices, not {ct}.")
    cells = np.asarray(cells, dtype=np.int64).ravel()
    tdim = mesh.topology.dim
    if cells.size == 0:
        return np.zeros(0)
    pts = mesh.geometry.x[entities_to_geometry(mesh, tdim, cells)]
    volume = _simplex_volume(pts)
    facets = get_entity_vertices(ct, tdim - 1)
    facet_area = sum(_simplex_volume(pts[:, f, :]) for f in facets)
    r = np.zeros(cells.size)
    ok = facet_area > 0
    r[ok] = tdim * volume[ok] / facet_area[ok]
    return r


# ----------------------------------------------------------------------
# Factory
# ----------------------------------------------------------------------
def _owned_first(ids_owned: np.ndarray, ids_all: np.ndarray):
    """Distinct ids of ``ids_all``: those in ``ids_owned`` (ascending), then the rest (ascending)."""
    owned = np.unique(ids_owned)
    rest = np.setdiff1d(np.unique(ids_all), owned, assume_unique=True)
    return owned, rest


def create_mesh(cells, x, cell_type, *, degree: int = 1, num_ghost_cells: int = 0,
                name: str = "mesh") -> Mesh:
    """
    Build a mesh from a cell -> node array in global node ids.

    Parameters
    ----------
    cells : (num_cells, num_dofs_g) int array
        Global ids (rows of ``x``) of every cell's geometry nodes; the vertices
        come first in each row, in the reference-cell order.
    x : (num_nodes, gdim) float array
        Coordinates of all nodes referenced by ``cells``.
    cell_type : CellType or str
    degree : int
        Degree of the coordinate element.
    num_ghost_cells : int
        The last ``num_ghost_cells`` rows of ``cells`` are ghosts.
    """
    ct = to_cell_type(cell_type)
    tdim = cell_dim(ct)
    cmap = CoordinateElement(ct, degree)
    cells = np.asarray(cells, dtype=np.int64)
    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    if cells.ndim != 2 or cells.shape[1] != cmap.num_dofs:
        raise ValueError(f"A degree {degree} {ct} has {cmap.num_dofs} nodes per cell, "
                         f"got cell array of shape {cells.shape}.")
    gdim = x.shape[1]
    if gdim < tdim:
        raise ValueError(f"Cannot embed a {ct} in {gdim} dimensions.")
    num_cells = cells.shape[0]
    if not 0 <= num_ghost_cells <= num_cells:
        raise ValueError(f"num_ghost_cells must be in [0, {num_cells}].")
    if cells.size and (cells.min() < 0 or cells.max() >= x.shape[0]):
        raise IndexError("Cell array refers to nodes outside the coordinate array.")
    n_owned_cells = num_cells - num_ghost_cells
    nv = num_cell_vertices(ct)

    # Vertices: owned (touching an owned cell) ascending by global id, then ghosts
    v_owned, v_ghost = _owned_first(cells[:n_owned_cells, :nv], cells[:, :nv])
    vertex_ids = np.concatenate([v_owned, v_ghost])
    vertex_map = IndexMap(v_owned.size, ghosts=v_ghost, global_indices=v_owned,
                          size_global=vertex_ids.size)

    # Geometry nodes: the vertices (same numbering), then the remaining nodes
    n_owned_other, n_ghost_other = _owned_first(
        np.setdiff1d(cells[:n_owned_cells, nv:], vertex_ids),
        np.setdiff1d(cells[:, nv:], vertex_ids))
    # local vertex index == local geometry node index
    local_node_order = np.concatenate([vertex_ids, n_owned_other, n_ghost_other])

    sorter = np.argsort(local_node_order, kind="stable")
    local_cells = sorter[np.searchsorted(local_node_order, cells, sorter=sorter)]

    cell_map = IndexMap(n_owned_cells,
                        ghosts=np.arange(n_owned_cells, num_cells, dtype=np.int64),
                        size_global=num_cells)
    topology = Topology(ct, vertex_map, cell_map, AdjacencyList(local_cells[:, :nv]))
    geometry = Geometry(IndexMap(local_node_order.size, global_indices=local_node_order,
                                 size_global=local_node_order.size),
                        AdjacencyList(local_cells), cmap, x[local_node_order], gdim,
                        input_global_indices=local_node_order)
    logger.info(f"Created mesh '{name}': {num_cells} {ct} cells ({num_ghost_cells} ghost), "
                f"{vertex_ids.size} vertices, {local_node_order.size} geometry nodes.")
    return Mesh(topology, geometry, name=name)
