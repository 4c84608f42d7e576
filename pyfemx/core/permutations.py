"""pyfemx.core.permutations
Orientation data of cell sub-entities relative to the global vertex numbering.

Edge "reflection": the edge's first local vertex has the larger global index.
Face "rotations": how many times the face's vertex cycle must be rotated to
bring its lowest global vertex first; face "reflection": after rotating, the
vertex after the lowest one is larger than the vertex before it.

Packing of the per-cell bitmask (uint32)::

    tdim == 3 :  bit 3*i            reflection of face i
                 bits 3*i+1, 3*i+2  rotations of face i
    tdim >= 2 :  bit 3*F + j        reflection of edge j  (F = faces per cell, 0 if tdim < 3)

Facet permutation byte, stored as ``perms[local_facet, cell]``:
``2*rotations + reflection`` (tdim 3), edge reflection (tdim 2), 0 (tdim 1).
"""
import numba
import numpy as np

from pyfemx.core.cell_types import CellType, cell_dim, get_entity_vertices, to_cell_type


@numba.njit(cache=True)
def _edge_reflections(cells, global_vertices, edges):
    num_cells = cells.shape[0]
    num_edges = edges.shape[0]
    refs = np.zeros((num_cells, num_edges), dtype=np.uint8)
    for c in range(num_cells):
        for e in range(num_edges):
            v0 = global_vertices[cells[c, edges[e, 0]]]
            v1 = global_vertices[cells[c, edges[e, 1]]]
            if v0 > v1:
                refs[c, e] = 1
    return refs


@numba.njit(cache=True)
def _face_rotations_reflections(cells, global_vertices, faces, cycle):
    """
    ``cycle`` lists the face's local vertices in cyclic order (3 for triangles,
    4 for quadrilaterals: tensor ordering 0,1,2,3 runs as 0,1,3,2).
    """
    num_cells = cells.shape[0]
    num_faces = faces.shape[0]
    n = cycle.shape[0]
    rots = np.zeros((num_cells, num_faces), dtype=np.uint8)
    refs = np.zeros((num_cells, num_faces), dtype=np.uint8)
    g = np.empty(n, dtype=np.int64)
    for c in range(num_cells):
        for f in range(num_faces):
            for k in range(n):
                g[k] = global_vertices[cells[c, faces[f, cycle[k]]]]
            m = 0
            for k in range(1, n):
                if g[k] < g[m]:
                    m = k
            rots[c, f] = m
            nxt = g[(m + 1) % n]
            prv = g[(m + n - 1) % n]
            if nxt > prv:
                refs[c, f] = 1
    return rots, refs


@numba.njit(cache=True)
def _pack_cell_info(edge_refs, face_rots, face_refs, faces_per_cell):
    num_cells = edge_refs.shape[0]
    info = np.zeros(num_cells, dtype=np.uint32)
    for c in range(num_cells):
        bits = 0
        for f in range(faces_per_cell):
            bits |= np.int64(face_refs[c, f]) << (3 * f)
            bits |= np.int64(face_rots[c, f]) << (3 * f + 1)
        for e in range(edge_refs.shape[1]):
            bits |= np.int64(edge_refs[c, e]) << (3 * faces_per_cell + e)
        info[c] = bits
    return info


def _face_cycle(face_type: CellType) -> np.ndarray:
    if face_type == CellType.triangle:
        return np.array([0, 1, 2], dtype=np.int64)
    return np.array([0, 1, 3, 2], dtype=np.int64)


def compute_entity_permutations(cell_type, cells: np.ndarray, global_vertices: np.ndarray):
    """
    Return ``(cell_permutation_info, facet_permutations)`` for the cell-vertex
    array ``cells`` (num_cells, num_vertices), local vertex indices mapped to
    global ones through ``global_vertices``.
    """
    ct = to_cell_type(cell_type)
    tdim = cell_dim(ct)
    cells = np.ascontiguousarray(cells, dtype=np.int64)
    global_vertices = np.ascontiguousarray(global_vertices, dtype=np.int64)
    num_cells = cells.shape[0]

    if tdim < 2:
        num_facets = 2 if tdim == 1 else 0
        return (np.zeros(num_cells, dtype=np.uint32),
                np.zeros((num_facets, num_cells), dtype=np.uint8))

    edges = np.ascontiguousarray(get_entity_vertices(ct, 1))
    edge_refs = _edge_reflections(cells, global_vertices, edges)

    if tdim == 3:
        faces = np.ascontiguousarray(get_entity_vertices(ct, 2))
        face_type = CellType.triangle if ct == CellType.tetrahedron else CellType.quadrilateral
        face_rots, face_refs = _face_rotations_reflections(cells, global_vertices, faces,
                                                           _face_cycle(face_type))
        info = _pack_cell_info(edge_refs, face_rots, face_refs, faces.shape[0])
        facet_perms = (2 * face_rots + face_refs).astype(np.uint8).T.copy()
    else:
        no_faces = np.zeros((num_cells, 0), dtype=np.uint8)
        info = _pack_cell_info(edge_refs, no_faces, no_faces, 0)
        facet_perms = edge_refs.T.copy()

    return info, facet_perms
