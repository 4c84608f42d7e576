"""pyfemx.fem.quadrature
Gauss rules on the reference cells (tensor Gauss-Legendre, collapsed rules on simplices).
"""
from functools import lru_cache

import numpy as np
from numpy.polynomial.legendre import leggauss

from pyfemx.core.cell_types import (CellType, cell_entity_type, get_entity_vertices,
                                    reference_geometry, to_cell_type)


def gauss_legendre(order: int):
    if order < 1:
        raise ValueError(order)
    return leggauss(order)  # (points, weights)


def _gl01(order: int):
    """Gauss–Legendre nodes and weights mapped to [0,1]."""
    xi, w = gauss_legendre(int(order))
    return 0.5 * (xi + 1.0), 0.5 * w


@lru_cache(maxsize=None)
def volume_rule(cell_type, order: int = 2):
    """Points (npts, tdim) and weights (npts,) on the reference cell."""
    ct = to_cell_type(cell_type)
    u, wu = _gl01(order)
    if ct == CellType.point:
        return np.zeros((1, 0)), np.ones(1)
    if ct == CellType.interval:
        return u[:, None], wu
    if ct == CellType.quadrilateral:
        pts = np.array([[x, y] for y in u for x in u])
        wts = np.array([wx * wy for wy in wu for wx in wu])
        return pts, wts
    if ct == CellType.hexahedron:
        pts = np.array([[x, y, z] for z in u for y in u for x in u])
        wts = np.array([wx * wy * wz for wz in wu for wy in wu for wx in wu])
        return pts, wts
    if ct == CellType.triangle:
        pts, wts = [], []
        for i, ui in enumerate(u):
            for j, vj in enumerate(u):
                pts.append([ui, vj * (1.0 - ui)])
                wts.append(wu[i] * wu[j] * (1.0 - ui))
        return np.array(pts), np.array(wts)
    if ct == CellType.tetrahedron:
        pts, wts = [], []
        for i, ui in enumerate(u):
            for j, vj in enumerate(u):
                for k, wk in enumerate(u):
                    r = ui
                    s = vj * (1.0 - ui)
                    t = wk * (1.0 - ui) * (1.0 - vj)
                    pts.append([r, s, t])
                    wts.append(wu[i] * wu[j] * wu[k] * (1.0 - ui) ** 2 * (1.0 - vj))
        return np.array(pts), np.array(wts)
    raise KeyError(ct)


@lru_cache(maxsize=None)
def facet_rule(cell_type, local_facet: int, order: int = 2):
    """
    Rule on facet ``local_facet`` of the reference cell.

    Returns the cell-reference points (npts, tdim), the facet-reference
    weights (npts,), and the (tdim, tdim-1) Jacobian of the affine map from
    the facet's reference cell onto that facet.
    """
    ct = to_cell_type(cell_type)
    tdim = reference_geometry(ct).shape[1]
    facet_type = cell_entity_type(ct, tdim - 1)
    facet_vertices = reference_geometry(ct)[get_entity_vertices(ct, tdim - 1)[local_facet]]
    ref_pts, ref_wts = volume_rule(facet_type, order)

    origin = facet_vertices[0]
    if facet_type == CellType.point:
        J = np.zeros((tdim, 0))
    elif facet_type == CellType.quadrilateral:
        # tensor ordering: vertex 1 and 2 are the neighbours of vertex 0
        J = np.column_stack([facet_vertices[1] - origin, facet_vertices[2] - origin])
    else:
        J = np.column_stack([facet_vertices[k] - origin for k in range(1, tdim)])
    pts = origin + ref_pts @ J.T
    return pts, ref_wts, J
