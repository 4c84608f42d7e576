"""pyfemx.fem.kernels
Kernel capability and a few ready-made kernels.

Every kernel is called as::

    kernel(A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation)

``A`` is a length-1 accumulator, ``w`` the packed coefficients of the entity,
``c`` the packed constants, ``coordinate_dofs`` the (num_dofs_g, gdim) cell
geometry (two cells stacked for interior facets), ``entity_local_index`` and
``permutation`` the local facet index / facet permutation byte per side
(``None`` for cells) and ``cell_permutation`` the cell bitmask.  A kernel adds
its value to ``A[0]`` and touches nothing else.
"""
from __future__ import annotations

import numpy as np

from pyfemx.core.cell_types import num_cell_entities
from pyfemx.fem.coordinate_element import CoordinateElement
from pyfemx.fem.quadrature import facet_rule, volume_rule
from pyfemx.fem.reference import tabulate


class Kernel:
    """Opaque callable evaluated once per active entity."""

    def __init__(self, fn, name: str = None):
        if not callable(fn):
            raise TypeError(f"Kernel body must be callable, got {type(fn).__name__}.")
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "kernel")

    def __call__(self, A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation):
        self._fn(A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation)

    def __repr__(self):
        return f"<Kernel {self.name}>"


def as_kernel(obj) -> Kernel:
    if isinstance(obj, Kernel):
        return obj
    return Kernel(obj)


def _abs_det(J: np.ndarray) -> np.ndarray:
    return np.abs(CoordinateElement.compute_jacobian_determinant(J))


# ----------------------------------------------------------------------
def constant_kernel(k) -> Kernel:
    """Writes ``k`` for every entity."""
    def _constant(A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation):
        A[0] += k
    return Kernel(_constant, name=f"constant({k})")


def cell_volume_kernel(cmap: CoordinateElement, order: int = 2) -> Kernel:
    """|K|, scaled by ``c[0]`` when the form has constants."""
    X, wq = volume_rule(cmap.cell_type, order)
    _, dphi = tabulate(cmap.cell_type, cmap.degree, X)

    def _volume(A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation):
        J = np.einsum("pnt,ng->pgt", dphi, coordinate_dofs)
        value = np.dot(wq, _abs_det(J))
        A[0] += value * c[0] if len(c) else value
    return Kernel(_volume, name="cell_volume")


def _facet_tables(cmap: CoordinateElement, order: int):
    tdim = cmap.tdim
    tables = []
    for f in range(num_cell_entities(cmap.cell_type, tdim - 1)):
        X, wq, Jf = facet_rule(cmap.cell_type, f, order)
        _, dphi = tabulate(cmap.cell_type, cmap.degree, X)
        tables.append((wq, Jf, dphi))
    return tables


def _facet_measure(tables, coordinate_dofs, local_facet: int) -> float:
    wq, Jf, dphi = tables[local_facet]
    if Jf.shape[1] == 0:
        # a vertex of an interval
        return 1.0
    J = np.einsum("pnt,ng->pgt", dphi, coordinate_dofs) @ Jf
    return float(np.dot(wq, _abs_det(J)))


def facet_measure_kernel(cmap: CoordinateElement, order: int = 2) -> Kernel:
    """|F|, measured from side 0 on interior facets."""
    tables = _facet_tables(cmap, order)
    n = cmap.num_dofs

    def _facet_measure_kernel(A, w, c, coordinate_dofs, entity_local_index, permutation,
                              cell_permutation):
        A[0] += _facet_measure(tables, coordinate_dofs[:n], int(entity_local_index[0]))
    return Kernel(_facet_measure_kernel, name="facet_measure")


def coefficient_integral_kernel(cmap: CoordinateElement, element, order: int = 2,
                                offset: int = 0) -> Kernel:
    """Integral of a scalar coefficient whose cell dofs start at column ``offset``."""
    if element.block_size != 1:
        raise ValueError("Only scalar coefficients can be integrated.")
    X, wq = volume_rule(cmap.cell_type, order)
    _, dphi_g = tabulate(cmap.cell_type, cmap.degree, X)
    phi_e, _ = tabulate(element.cell_type, element.degree, X)
    n = phi_e.shape[1]

    def _coefficient_integral(A, w, c, coordinate_dofs, entity_local_index, permutation,
                              cell_permutation):
        J = np.einsum("pnt,ng->pgt", dphi_g, coordinate_dofs)
        u = phi_e @ w[offset:offset + n]
        A[0] += np.dot(wq * _abs_det(J), u)
    return Kernel(_coefficient_integral, name="coefficient_integral")


def jump_kernel(cmap: CoordinateElement, element, order: int = 2, offset: int = 0) -> Kernel:
    """
    Interior facets: integral of the squared jump of a DG0 coefficient,
    ``(u+ - u-)**2 |F|``.  ``offset`` is the coefficient's column in a
    packed cell row; the interior layout puts both sides at ``2*offset``.
    """
    if element.family != "DG" or element.degree != 0 or element.block_size != 1:
        raise ValueError("The jump kernel expects a scalar DG0 coefficient.")
    tables = _facet_tables(cmap, order)
    n = cmap.num_dofs

    def _jump(A, w, c, coordinate_dofs, entity_local_index, permutation, cell_permutation):
        u0 = w[2 * offset]
        u1 = w[2 * offset + 1]
        A[0] += (u0 - u1) ** 2 * _facet_measure(tables, coordinate_dofs[:n],
                                               int(entity_local_index[0]))
    return Kernel(_jump, name="jump")
