"""pyfemx.fem.form
A Form: kernels per (integral type, id), their entity domains, and the
coefficients and constants the kernels read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from pyfemx.fem.function import Constant, Function
from pyfemx.fem.kernels import Kernel, as_kernel

logger = logging.getLogger(__name__)


class IntegralType(str, Enum):
    cell = "cell"
    exterior_facet = "exterior_facet"
    interior_facet = "interior_facet"

    def __str__(self):
        return self.value


_ORDER = (IntegralType.cell, IntegralType.exterior_facet, IntegralType.interior_facet)

# Integral id covering the whole default domain
DEFAULT_ID = -1


@dataclass
class Integral:
    id: int
    kernel: Kernel
    # explicit active-entity list; None -> default domain (id -1) or markers
    entities: Optional[np.ndarray] = None

    def __post_init__(self):
        self.id = int(self.id)
        self.kernel = as_kernel(self.kernel)
        if self.entities is not None:
            self.entities = np.asarray(self.entities, dtype=np.int64).ravel()


def _as_integral(spec) -> Integral:
    if isinstance(spec, Integral):
        return spec
    if isinstance(spec, (tuple, list)) and len(spec) in (2, 3):
        return Integral(*spec)
    raise TypeError(f"Expected an Integral or an (id, kernel[, entities]) tuple, got {spec!r}.")


class Form:
    """
    Rank-0 form (a functional) on one mesh.

    Parameters
    ----------
    mesh : Mesh
    integrals : mapping IntegralType -> iterable of Integral or (id, kernel[, entities])
    coefficients : sequence of Function
        Packed per cell in this order.
    constants : sequence of Constant
        Packed into one flat buffer in this order.
    dtype : numpy scalar type of the result (real or complex)
    """

    def __init__(self, mesh, integrals: Mapping, coefficients: Sequence[Function] = (),
                 constants: Sequence[Constant] = (), dtype=np.float64):
        self._mesh = mesh
        self._dtype = np.dtype(dtype)
        self._integrals: Dict[IntegralType, Dict[int, Integral]] = {t: {} for t in _ORDER}
        for itype, specs in integrals.items():
            itype = IntegralType(itype)
            for spec in specs:
                integral = _as_integral(spec)
                if integral.id in self._integrals[itype]:
                    raise ValueError(f"Duplicate {itype} integral with id {integral.id}.")
                self._integrals[itype][integral.id] = integral
        for u in coefficients:
            if u.function_space.mesh is not mesh:
                raise ValueError(f"Coefficient '{u.name}' lives on a different mesh.")
        self._coefficients: List[Function] = list(coefficients)
        self._constants: List[Constant] = list(constants)
        self._markers: Dict[IntegralType, tuple] = {}

    # ------------------------------------------------------------------
    @property
    def mesh(self):
        return self._mesh

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def rank(self) -> int:
        return 0

    @property
    def coefficients(self) -> List[Function]:
        return self._coefficients

    @property
    def constants(self) -> List[Constant]:
        return self._constants

    def integral_types(self) -> List[IntegralType]:
        return [t for t in _ORDER if self._integrals[t]]

    def integral_ids(self, integral_type) -> List[int]:
        return sorted(self._integrals[IntegralType(integral_type)])

    def num_integrals(self, integral_type) -> int:
        return len(self._integrals[IntegralType(integral_type)])

    def kernel(self, integral_type, i: int) -> Kernel:
        try:
            return self._integrals[IntegralType(integral_type)][i].kernel
        except KeyError:
            raise KeyError(f"No {IntegralType(integral_type)} integral with id {i}.") from None

    def coefficient_offsets(self) -> np.ndarray:
        """Column boundaries of each coefficient in a packed row."""
        sizes = [u.function_space.dofmap.num_cell_dofs * u.function_space.dofmap.bs
                 for u in self._coefficients]
        return np.concatenate([[0], np.cumsum(sizes, dtype=np.int64)]).astype(np.int64)

    def unset_constants(self) -> List[str]:
        return [c.name for c in self._constants if not c.is_set]

    def all_constants_set(self) -> bool:
        return not self.unset_constants()

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------
    def set_domains(self, integral_type, entities: Iterable[int], values: Iterable[int]):
        """
        Mark entities: integral ``id >= 0`` of ``integral_type`` without an
        explicit entity list runs over the owned marked entities whose value
        equals ``id``.
        """
        entities = np.asarray(entities, dtype=np.int64).ravel()
        values = np.asarray(values, dtype=np.int64).ravel()
        if entities.shape != values.shape:
            raise ValueError("entities and values must have the same length.")
        self._markers[IntegralType(integral_type)] = (entities, values)

    def domain(self, integral_type, i: int) -> np.ndarray:
        """
        Active entities of integral ``i``.  Computing a default or marked
        facet domain creates the facet -> cell connectivity on the mesh.
        """
        itype = IntegralType(integral_type)
        integral = self._integrals[itype].get(i)
        if integral is None:
            raise KeyError(f"No {itype} integral with id {i}.")
        if integral.entities is not None:
            return integral.entities

        topology = self._mesh.topology
        tdim = topology.dim
        if itype == IntegralType.cell:
            size_local = topology.index_map(tdim).size_local
            flags = None
        else:
            topology.create_connectivity(tdim - 1, tdim)
            size_local = topology.index_map(tdim - 1).size_local
            interior = topology.interior_facets()
            flags = ~interior if itype == IntegralType.exterior_facet else interior

        if i == DEFAULT_ID:
            if flags is None:
                return np.arange(size_local, dtype=np.int64)
            return np.flatnonzero(flags[:size_local]).astype(np.int64)

        if itype not in self._markers:
            return np.empty(0, dtype=np.int64)
        entities, values = self._markers[itype]
        selected = entities[(values == i) & (entities < size_local)]
        if flags is not None:
            selected = selected[flags[selected]]
        logger.debug(f"{itype} integral {i}: {selected.size} marked entities.")
        return selected

    def __repr__(self):
        parts = ", ".join(f"{t}: {self.integral_ids(t)}" for t in self.integral_types())
        return (f"<Form {{{parts}}} with {len(self._coefficients)} coefficient(s), "
                f"{len(self._constants)} constant(s)>")
