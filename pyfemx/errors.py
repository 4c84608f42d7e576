"""pyfemx.errors
Failure modes of the topology engine and the assembly dispatcher.

None of these are retried internally: each one signals a build-order or
data defect that cannot be fixed by calling again with the same inputs.
"""
from __future__ import annotations

from typing import Optional


class PyfemxError(Exception):
    """Common base of all pyfemx specific errors."""


class NotInitialized(PyfemxError, RuntimeError):
    """An entity dimension (or a connectivity pair) was queried before it was created."""

    def __init__(self, dim: int, dim1: Optional[int] = None, what: str = "entities"):
        self.dim = dim
        self.dim1 = dim1
        if dim1 is None:
            msg = (f"Cannot get {what} of dimension {dim}. "
                   f"Mesh entities have not been created for dimension {dim}.")
        else:
            msg = (f"Connectivity ({dim}, {dim1}) has not been computed. "
                   f"Call create_connectivity({dim}, {dim1}) first.")
        super().__init__(msg)


class UnsetConstant(PyfemxError, RuntimeError):
    """A form constant has no value assigned."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unset constant '{name}' in Form")


class InconsistentTopology(PyfemxError, RuntimeError):
    """A facet does not have the number of incident cells its integral kind requires."""

    def __init__(self, facet: int, num_cells: int = -1, expected: int = -1, cell: Optional[int] = None):
        self.facet = facet
        self.num_cells = num_cells
        self.expected = expected
        self.cell = cell
        if cell is not None:
            msg = f"Facet {facet} not found in the facet list of its incident cell {cell}."
        else:
            msg = (f"Facet {facet} has {num_cells} incident cell(s), "
                   f"expected exactly {expected}.")
        super().__init__(msg)


class EmptyMesh(PyfemxError, RuntimeError):
    """A derived cell metric was requested on a mesh without entities."""


class TopologyFrozen(PyfemxError, RuntimeError):
    """A frozen topology was asked to compute data that is not cached yet."""
