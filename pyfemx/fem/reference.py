# pyfemx.fem.reference
"""
Lagrange bases on the reference cells, built symbolically and lambdified.
"""
from functools import lru_cache

import numpy as np
import sympy as sp

from pyfemx.core.cell_types import (CellType, cell_dim, get_entity_vertices, is_simplex,
                                    reference_geometry, to_cell_type)


def lagrange_points(cell_type, degree: int) -> np.ndarray:
    """
    Reference coordinates of the Lagrange nodes: the cell midpoint for
    degree 0, the vertices for degree 1, vertices followed by edge midpoints
    (in reference edge order) for degree 2 on simplices.
    """
    ct = to_cell_type(cell_type)
    verts = reference_geometry(ct)
    if degree == 0:
        return verts.mean(axis=0, keepdims=True)
    if degree == 1:
        return verts
    if degree == 2 and is_simplex(ct) and cell_dim(ct) > 0:
        edges = get_entity_vertices(ct, 1)
        mids = 0.5 * (verts[edges[:, 0]] + verts[edges[:, 1]])
        return np.vstack([verts, mids])
    raise ValueError(f"Lagrange degree {degree} is not available on a {ct}.")


def _monomials(ct: CellType, degree: int, syms):
    tdim = len(syms)
    if is_simplex(ct):
        powers = [p for p in np.ndindex(*(degree + 1,) * tdim) if sum(p) <= degree]
    else:
        powers = list(np.ndindex(*(degree + 1,) * tdim))
    powers.sort(key=lambda p: (sum(p), p[::-1]))
    return [sp.Mul(*[s ** k for s, k in zip(syms, p)]) for p in powers]


@lru_cache(maxsize=None)
def lagrange_basis(cell_type, degree: int):
    """
    Return ``(shape_lambda, grad_lambda)``; each takes the reference
    coordinates of one point as positional arguments and returns the values
    (n,) or the gradients (n, tdim) of the n nodal basis functions.
    """
    ct = to_cell_type(cell_type)
    tdim = cell_dim(ct)
    syms = sp.symbols(f"x0:{tdim}")
    nodes = lagrange_points(ct, degree)

    if degree == 0:
        basis = [sp.S(1)]
    else:
        monomials = _monomials(ct, degree, syms)
        if len(monomials) != nodes.shape[0]:
            raise RuntimeError(f"Internal error: {len(monomials)} monomials for "
                               f"{nodes.shape[0]} nodes on a {ct} of degree {degree}.")
        V = sp.Matrix([[m.subs(dict(zip(syms, [sp.nsimplify(v) for v in node])))
                        for m in monomials] for node in nodes])
        coeffs = V.inv()
        m_row = sp.Matrix([monomials])
        basis = [sp.expand((m_row * coeffs[:, k])[0, 0]) for k in range(nodes.shape[0])]

    grads = [[sp.diff(phi, s) for s in syms] for phi in basis]
    shape_lambda = sp.lambdify(syms, basis, "numpy")
    grad_lambda = sp.lambdify(syms, grads, "numpy")
    return shape_lambda, grad_lambda


def tabulate(cell_type, degree: int, points) -> tuple[np.ndarray, np.ndarray]:
    """
    Values (npts, n) and reference gradients (npts, n, tdim) of the Lagrange
    basis at ``points`` (npts, tdim).
    """
    shape_l, grad_l = lagrange_basis(to_cell_type(cell_type), degree)
    pts = np.atleast_2d(np.asarray(points, dtype=float))
    phi = np.array([np.asarray(shape_l(*X), dtype=float).ravel() for X in pts])
    dphi = np.array([np.asarray(grad_l(*X), dtype=float) for X in pts])
    n = phi.shape[1] if phi.ndim == 2 else 0
    return phi, dphi.reshape(pts.shape[0], n, pts.shape[1])
