"""pyfemx.fem.coordinate_element
Reference → physical mapping of a mesh cell.
"""
from __future__ import annotations

import numpy as np

from pyfemx.core.cell_types import cell_dim, is_simplex, to_cell_type
from pyfemx.fem.reference import lagrange_points, tabulate


class CoordinateElement:
    """
    Lagrange coordinate map of degree 1 (all cells) or 2 (simplices).

    ``coordinate_dofs`` is always the (num_dofs_g, gdim) block of one cell's
    geometry nodes, in the cell's local node order.
    """

    def __init__(self, cell_type, degree: int = 1):
        self.cell_type = to_cell_type(cell_type)
        self.degree = int(degree)
        self.tdim = cell_dim(self.cell_type)
        if self.degree < 1:
            raise ValueError("A coordinate element needs degree >= 1.")
        # raises for unsupported (cell, degree) pairs
        self._points = lagrange_points(self.cell_type, self.degree)

    @property
    def num_dofs(self) -> int:
        return self._points.shape[0]

    @property
    def is_affine(self) -> bool:
        return self.degree == 1 and is_simplex(self.cell_type)

    def reference_points(self) -> np.ndarray:
        return self._points.copy()

    def push_forward(self, X, coordinate_dofs) -> np.ndarray:
        """Physical coordinates (npts, gdim) of reference points X (npts, tdim)."""
        phi, _ = tabulate(self.cell_type, self.degree, X)
        return phi @ np.asarray(coordinate_dofs, dtype=float)

    def compute_jacobian(self, X, coordinate_dofs) -> np.ndarray:
        """Jacobians (npts, gdim, tdim) at reference points X."""
        _, dphi = tabulate(self.cell_type, self.degree, X)
        return np.einsum("pnt,ng->pgt", dphi, np.asarray(coordinate_dofs, dtype=float))

    @staticmethod
    def compute_jacobian_determinant(J) -> np.ndarray:
        """det J for square Jacobians, sqrt(det(JᵀJ)) on manifolds."""
        J = np.asarray(J)
        gdim, tdim = J.shape[-2:]
        if gdim == tdim:
            return np.linalg.det(J)
        return np.sqrt(np.linalg.det(np.swapaxes(J, -1, -2) @ J))

    def __eq__(self, other):
        if not isinstance(other, CoordinateElement):
            return NotImplemented
        return self.cell_type == other.cell_type and self.degree == other.degree

    def __hash__(self):
        return hash((self.cell_type.value, self.degree))

    def __repr__(self):
        return f"CoordinateElement({self.cell_type}, degree={self.degree})"
