"""pyfemx.fem.element
Layout descriptors of the elements a FunctionSpace is built from.

Only the dof layout is described here (how many dofs per cell, where they
sit on the reference cell, how they are blocked); basis evaluation lives in
:mod:`pyfemx.fem.reference`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from pyfemx.core.cell_types import CellType, to_cell_type
from pyfemx.fem.reference import lagrange_points

_FAMILIES = ("P", "DG")


@dataclass(frozen=True)
class FiniteElement:
    """
    Lagrange element of ``degree`` on ``cell_type``.

    ``block_size > 1`` makes a vector element: ``block_size`` interleaved
    copies of the scalar element (dofs of one node are contiguous).
    """
    cell_type: CellType
    degree: int
    family: str = "P"
    block_size: int = 1

    def __post_init__(self):
        object.__setattr__(self, "cell_type", to_cell_type(self.cell_type))
        if self.family not in _FAMILIES:
            raise ValueError(f"Unknown element family '{self.family}', expected one of {_FAMILIES}.")
        if self.block_size < 1:
            raise ValueError(f"block_size must be positive, got {self.block_size}.")
        if self.family == "P" and self.degree < 1:
            raise ValueError("Continuous Lagrange elements need degree >= 1; use family 'DG'.")
        # raises for unsupported (cell, degree) pairs
        lagrange_points(self.cell_type, self.degree)

    @property
    def space_dimension(self) -> int:
        """Scalar dofs per cell (one per node)."""
        return lagrange_points(self.cell_type, self.degree).shape[0]

    @property
    def num_dofs(self) -> int:
        """Dofs per cell including the block."""
        return self.space_dimension * self.block_size

    @property
    def num_sub_elements(self) -> int:
        return self.block_size if self.block_size > 1 else 0

    @property
    def discontinuous(self) -> bool:
        return self.family == "DG"

    def sub_element(self, i: int) -> "FiniteElement":
        if not 0 <= i < self.num_sub_elements:
            raise IndexError(f"Element {self} has no sub-element {i}.")
        return FiniteElement(self.cell_type, self.degree, self.family)

    def sub_dof_columns(self, i: int) -> np.ndarray:
        """Local (blocked) dof positions of sub-element ``i`` within a cell."""
        self.sub_element(i)
        return np.arange(i, self.num_dofs, self.block_size, dtype=np.int64)

    def reference_points(self) -> np.ndarray:
        return lagrange_points(self.cell_type, self.degree)

    def signature(self) -> str:
        bs = f", block_size={self.block_size}" if self.block_size > 1 else ""
        return f"{self.family}{self.degree}({self.cell_type}{bs})"


@dataclass(frozen=True)
class MixedElement:
    """Concatenation of sub-elements on the same cell; sub-element i's dofs form one block."""
    elements: Tuple[FiniteElement, ...] = field(default_factory=tuple)

    def __post_init__(self):
        elements = tuple(self.elements)
        if not elements:
            raise ValueError("A MixedElement needs at least one sub-element.")
        if len({e.cell_type for e in elements}) != 1:
            raise ValueError("All sub-elements of a MixedElement must share the cell type.")
        object.__setattr__(self, "elements", elements)

    @property
    def cell_type(self) -> CellType:
        return self.elements[0].cell_type

    @property
    def block_size(self) -> int:
        return 1

    @property
    def num_dofs(self) -> int:
        return sum(e.num_dofs for e in self.elements)

    @property
    def space_dimension(self) -> int:
        return self.num_dofs

    @property
    def num_sub_elements(self) -> int:
        return len(self.elements)

    def sub_element(self, i: int):
        if not 0 <= i < len(self.elements):
            raise IndexError(f"Mixed element has no sub-element {i}.")
        return self.elements[i]

    def sub_dof_columns(self, i: int) -> np.ndarray:
        self.sub_element(i)
        start = sum(e.num_dofs for e in self.elements[:i])
        return np.arange(start, start + self.elements[i].num_dofs, dtype=np.int64)

    def signature(self) -> str:
        return "Mixed(" + ", ".join(e.signature() for e in self.elements) + ")"
