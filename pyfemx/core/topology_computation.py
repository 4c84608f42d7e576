"""pyfemx.core.topology_computation
Entity and connectivity computation from the cell-vertex graph.

All routines are pure functions of a :class:`~pyfemx.core.topology.Topology`'s
cached data: they return new adjacency lists and index maps and leave storing
them to the caller.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.cell_types import cell_entity_type, get_entity_vertices
from pyfemx.core.index_map import IndexMap
from pyfemx.errors import NotInitialized

logger = logging.getLogger(__name__)


def _unique_rows(keys: np.ndarray):
    """np.unique over rows, returning (first_index, inverse) with a flat inverse."""
    _, first, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
    return first, np.asarray(inverse).ravel()


def compute_entities(topology, dim: int) -> Tuple[Optional[AdjacencyList],
                                                  Optional[AdjacencyList],
                                                  Optional[IndexMap]]:
    """
    Build the entities of dimension ``dim``.

    Returns ``(cell_entity, entity_vertex, index_map)``; all three are ``None``
    when the (dim, 0) connectivity already exists.

    Entities touching at least one owned cell are owned and numbered first,
    in order of first appearance while walking the cells; entities seen only
    in ghost cells follow.  An entity's vertex list is taken from the first
    cell that contains it, in that cell's local order.
    """
    tdim = topology.dim
    if topology.connectivity(dim, 0) is not None:
        return None, None, None
    if not 0 < dim < tdim:
        raise ValueError(f"Entities of dimension {dim} must be created with the topology.")

    c2v = topology.connectivity(tdim, 0)
    if c2v is None:
        raise NotInitialized(tdim, 0)
    cell_map = topology.index_map(tdim)
    cells = c2v.as_2d()
    num_cells = cells.shape[0]

    table = get_entity_vertices(topology.cell_type, dim)
    ne, nv = table.shape
    entity_vertices = cells[:, table].reshape(-1, nv)      # (num_cells*ne, nv)
    keys = np.sort(entity_vertices, axis=1)

    if keys.shape[0] == 0:
        empty = AdjacencyList(np.empty((0, nv), dtype=np.int64))
        return AdjacencyList(np.empty((0, ne), dtype=np.int64)), empty, IndexMap(0)

    first, inverse = _unique_rows(keys)
    n_unique = first.size

    owning_cell = np.repeat(np.arange(num_cells, dtype=np.int64), ne)
    owned = np.zeros(n_unique, dtype=bool)
    owned[inverse[owning_cell < cell_map.size_local]] = True

    # owned entities first, each group in order of first appearance
    order = np.lexsort((first, ~owned))
    new_index = np.empty(n_unique, dtype=np.int64)
    new_index[order] = np.arange(n_unique, dtype=np.int64)

    cell_entity = AdjacencyList(new_index[inverse].reshape(num_cells, ne))
    entity_vertex = AdjacencyList(entity_vertices[first[order]])

    n_owned = int(owned.sum())
    n_ghost = n_unique - n_owned
    # Ghost entities only get a provisional number here; their global identity
    # is assigned by the ownership layer.
    index_map = IndexMap(n_owned, ghosts=np.arange(n_owned, n_owned + n_ghost, dtype=np.int64),
                         size_global=n_unique)
    logger.info(f"Computed {n_unique} entities of dimension {dim} "
                f"({n_owned} owned, {n_ghost} ghost).")
    return cell_entity, entity_vertex, index_map


def _compute_from_vertices(topology, d0: int, d1: int) -> AdjacencyList:
    """(d0, d1) for d0 > d1 > 0 by matching sub-entity vertex sets of every d0 entity."""
    e0_vertices = topology.connectivity(d0, 0).as_2d()
    e1_vertices = topology.connectivity(d1, 0).as_2d()
    table = get_entity_vertices(cell_entity_type(topology.cell_type, d0), d1)
    n0 = e0_vertices.shape[0]
    ne, nv = table.shape
    if n0 == 0:
        return AdjacencyList(np.empty((0, ne), dtype=np.int64))

    candidates = np.sort(e0_vertices[:, table].reshape(-1, nv), axis=1)
    known = np.sort(e1_vertices, axis=1)
    n1 = known.shape[0]

    _, inverse = _unique_rows(np.vstack([known, candidates]))
    group_to_entity = np.full(inverse.max() + 1, -1, dtype=np.int64)
    group_to_entity[inverse[:n1]] = np.arange(n1, dtype=np.int64)
    links = group_to_entity[inverse[n1:]]
    if np.any(links < 0):
        missing = int(np.flatnonzero(links < 0)[0] // ne)
        raise ValueError(f"Entity {missing} of dimension {d0} has a sub-entity of "
                         f"dimension {d1} that was never created.")
    return AdjacencyList(links.reshape(n0, ne))


def compute_connectivity(topology, d0: int, d1: int) -> Tuple[Optional[AdjacencyList],
                                                             Optional[AdjacencyList]]:
    """
    Compute (d0, d1) connectivity.

    Returns ``(c_d0_d1, c_d1_d0)``.  ``c_d1_d0`` is only non-``None`` when it
    had to be computed on the way and is not cached yet.  Both are ``None``
    when (d0, d1) already exists.
    """
    if topology.connectivity(d0, d1) is not None:
        return None, None
    for d in (d0, d1):
        if topology.connectivity(d, 0) is None:
            raise NotInitialized(d)

    if d0 == d1:
        n = topology.index_map(d0).num_entities()
        return AdjacencyList(np.arange(n, dtype=np.int64)[:, None]), None

    if d0 < d1:
        # Transpose of (d1, d0), which may have to be computed first
        c_d1_d0 = topology.connectivity(d1, d0)
        new_d1_d0 = None
        if c_d1_d0 is None:
            c_d1_d0, _ = compute_connectivity(topology, d1, d0)
            new_d1_d0 = c_d1_d0
        n0 = topology.index_map(d0).num_entities()
        return c_d1_d0.transpose(n0), new_d1_d0

    # d0 > d1 > 0; (tdim, d1) is always produced together with the d1 entities
    return _compute_from_vertices(topology, d0, d1), None


def compute_interior_facets(topology) -> np.ndarray:
    """Boolean flag per facet: True iff exactly two local cells share it."""
    tdim = topology.dim
    f2c = topology.connectivity(tdim - 1, tdim)
    if f2c is None:
        raise NotInitialized(tdim - 1, tdim)
    return f2c.degrees() == 2
