"""pyfemx.fem.function
FunctionSpace, Function and Constant: the user-level objects a Form packs.
"""
from __future__ import annotations

import logging
import weakref
from typing import Optional, Tuple

import numpy as np

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.cell_types import num_cell_vertices
from pyfemx.core.index_map import IndexMap
from pyfemx.fem.dofmap import DofMap
from pyfemx.fem.element import FiniteElement, MixedElement
from pyfemx.fem.reference import tabulate

logger = logging.getLogger(__name__)


class FunctionSpace:
    """
    A finite element space on a mesh: element layout plus dofmap.

    Sub-spaces are views that share the parent's dof numbering.  They are
    cached by component path in a :class:`weakref.WeakValueDictionary`, so a
    space never keeps its sub-spaces alive and a dead entry is simply rebuilt.
    """

    def __init__(self, mesh, element, dofmap: DofMap,
                 component: Tuple[int, ...] = (), root_space_id: Optional[int] = None):
        if element.cell_type != mesh.topology.cell_type:
            raise ValueError(f"Element on {element.cell_type} cells does not fit a "
                             f"{mesh.topology.cell_type} mesh.")
        self._mesh = mesh
        self._element = element
        self._dofmap = dofmap
        self._component = tuple(component)
        self._root_space_id = id(self) if root_space_id is None else root_space_id
        self._subspaces: "weakref.WeakValueDictionary[Tuple[int, ...], FunctionSpace]" = \
            weakref.WeakValueDictionary()

    @property
    def mesh(self):
        return self._mesh

    @property
    def element(self):
        return self._element

    @property
    def dofmap(self) -> DofMap:
        return self._dofmap

    @property
    def num_sub_spaces(self) -> int:
        return self._element.num_sub_elements

    def component(self) -> Tuple[int, ...]:
        return self._component

    @property
    def dim(self) -> int:
        """Global number of dofs."""
        if self._dofmap.is_view:
            raise RuntimeError("Cannot compute the dimension of a sub-space view; collapse it first.")
        return self._dofmap.index_map.size_global * self._dofmap.index_map_bs

    def sub(self, i: int) -> "FunctionSpace":
        key = self._component + (int(i),)
        V = self._subspaces.get(key)
        if V is not None:
            return V
        sub_element = self._element.sub_element(i)
        dofmap = self._dofmap.extract_sub_dofmap(self._element.sub_dof_columns(i))
        V = FunctionSpace(self._mesh, sub_element, dofmap, key, self._root_space_id)
        self._subspaces[key] = V
        logger.debug(f"Created sub-space {key} of {self._element.signature()}.")
        return V

    def collapse(self):
        """
        Return ``(V, parent_dofs)``: a stand-alone copy of this sub-space and,
        for each of its dofs, the dof of the parent space it came from.
        """
        if not self._component:
            raise RuntimeError("Function space is not a sub-space.")
        dofmap, parent_dofs = self._dofmap.collapse()
        return FunctionSpace(self._mesh, self._element, dofmap), parent_dofs

    def contains(self, V: "FunctionSpace") -> bool:
        """True if ``V`` is this space or one of its (nested) sub-spaces."""
        if V._mesh is not self._mesh or V._root_space_id != self._root_space_id:
            return False
        n = len(self._component)
        return len(V._component) >= n and V._component[:n] == self._component

    def tabulate_dof_coordinates(self) -> np.ndarray:
        """(num_nodes, 3) physical coordinates of the dof nodes."""
        if self._dofmap.is_view:
            raise RuntimeError("Cannot tabulate coordinates of a sub-space view; collapse it first.")
        if isinstance(self._element, MixedElement):
            raise ValueError("Dof coordinates of a mixed space are not defined.")
        geometry = self._mesh.geometry
        cmap = geometry.cmap
        X = self._element.reference_points()
        phi, _ = tabulate(cmap.cell_type, cmap.degree, X)                 # (m, num_dofs_g)
        coords = np.einsum("mg,cgd->cmd", phi, geometry.x[geometry.dofmap.as_2d()])

        cols = self._dofmap.list.as_2d()
        per_node = cols.shape[1] // X.shape[0]
        out = np.zeros((self._dofmap.index_map.num_entities() * self._dofmap.index_map_bs
                        // self._dofmap.bs, 3))
        for j in range(cols.shape[1]):
            out[cols[:, j]] = coords[:, j // per_node]
        return out

    def __eq__(self, other):
        if not isinstance(other, FunctionSpace):
            return NotImplemented
        return (self._mesh is other._mesh and self._element == other._element
                and self._dofmap is other._dofmap)

    def __hash__(self):
        return hash((id(self._mesh), id(self._dofmap)))

    def __repr__(self):
        comp = f", component={self._component}" if self._component else ""
        return f"<FunctionSpace {self._element.signature()}{comp}>"


class Function:
    """Dof values of a field; ``x`` holds owned then ghost values (blocked)."""

    def __init__(self, V: FunctionSpace, x=None, name: str = "f", dtype=np.float64):
        if V.dofmap.is_view:
            raise ValueError("Cannot create a Function on a sub-space view; collapse it first.")
        n = V.dofmap.num_dofs()
        if x is None:
            x = np.zeros(n, dtype=dtype)
        else:
            x = np.asarray(x)
            if x.shape != (n,):
                raise ValueError(f"Function values must have shape ({n},), got {x.shape}.")
        self._V = V
        self.x = x
        self.name = name

    @property
    def function_space(self) -> FunctionSpace:
        return self._V

    @property
    def dtype(self):
        return self.x.dtype

    def interpolate(self, f):
        """
        Set nodal values from ``f(x)``, where ``x`` is the (3, num_nodes)
        array of dof coordinates; ``f`` returns (num_nodes,) or (bs, num_nodes).
        """
        X = self._V.tabulate_dof_coordinates()
        values = np.asarray(f(X.T))
        bs = self._V.dofmap.bs
        if bs == 1:
            self.x[:] = values.reshape(-1)
        else:
            self.x.reshape(-1, bs)[:] = values.reshape(bs, -1).T
        return self

    def __repr__(self):
        return f"<Function '{self.name}' on {self._V}>"


class Constant:
    """A scalar or tensor value shared by every entity; ``None`` means unset."""

    def __init__(self, value=None, name: str = "c"):
        self.name = name
        self._value = None
        if value is not None:
            self.value = value

    @property
    def value(self) -> Optional[np.ndarray]:
        return self._value

    @value.setter
    def value(self, v):
        self._value = None if v is None else np.array(v)

    @property
    def is_set(self) -> bool:
        return self._value is not None

    @property
    def shape(self):
        return () if self._value is None else self._value.shape

    def __repr__(self):
        return f"<Constant '{self.name}' = {self._value}>"


# ----------------------------------------------------------------------
# Space construction
# ----------------------------------------------------------------------
def _scalar_dofmap(mesh, element: FiniteElement) -> DofMap:
    topology = mesh.topology
    tdim = topology.dim
    cell_map = topology.index_map(tdim)
    num_cells = cell_map.num_entities()

    if element.family == "P" and element.degree == 1:
        nodes = topology.connectivity(tdim, 0)
        index_map = topology.index_map(0)
    elif element.family == "DG" and element.degree == 0:
        nodes = AdjacencyList(np.arange(num_cells, dtype=np.int64)[:, None])
        index_map = cell_map
    elif element.family == "DG" and element.degree == 1:
        nv = num_cell_vertices(element.cell_type)
        nodes = AdjacencyList(np.arange(num_cells * nv, dtype=np.int64).reshape(num_cells, nv))
        n_owned = cell_map.size_local * nv
        index_map = IndexMap(n_owned, ghosts=np.arange(n_owned, num_cells * nv, dtype=np.int64),
                             size_global=num_cells * nv)
    else:
        raise ValueError(f"No dof layout for {element.signature()}; "
                         "available are P1, DG0 and DG1.")
    return DofMap(nodes, index_map, element.block_size)


def _mixed_dofmap(mesh, element: MixedElement) -> DofMap:
    """Owned dofs of every sub-space first (in sub-space order), then their ghosts."""
    subs = [_scalar_dofmap(mesh, e) for e in element.elements]
    owned = [d.index_map.size_local * d.index_map_bs for d in subs]
    total = [d.num_dofs() for d in subs]
    ghosts = [t - o for t, o in zip(total, owned)]
    n_owned = sum(owned)
    owned_offset = np.concatenate([[0], np.cumsum(owned)[:-1]])
    ghost_offset = np.concatenate([[0], np.cumsum(ghosts)[:-1]]) + n_owned

    columns = []
    for d, o, oo, go in zip(subs, owned, owned_offset, ghost_offset):
        dofs = d.expanded()
        columns.append(np.where(dofs < o, oo + dofs, go + dofs - o))
    num_cells = mesh.topology.index_map(mesh.topology.dim).num_entities()
    cell_dofs = np.hstack(columns) if columns else np.empty((num_cells, 0), dtype=np.int64)
    n = sum(total)
    index_map = IndexMap(n_owned, ghosts=np.arange(n_owned, n, dtype=np.int64), size_global=n)
    return DofMap(AdjacencyList(cell_dofs), index_map, 1)


def functionspace(mesh, element, shape: Optional[Tuple[int, ...]] = None) -> FunctionSpace:
    """
    Create a space from ``element``: a :class:`FiniteElement`, a
    :class:`MixedElement` or a ``(family, degree)`` tuple.  ``shape=(n,)``
    makes a blocked vector space.
    """
    if isinstance(element, tuple):
        family, degree = element
        bs = int(np.prod(shape)) if shape else 1
        element = FiniteElement(mesh.topology.cell_type, int(degree), family, bs)
    elif shape:
        raise ValueError("shape is only accepted together with a (family, degree) tuple.")

    if isinstance(element, MixedElement):
        dofmap = _mixed_dofmap(mesh, element)
    else:
        dofmap = _scalar_dofmap(mesh, element)
    logger.debug(f"Created function space {element.signature()} with "
                 f"{dofmap.num_dofs()} local dofs.")
    return FunctionSpace(mesh, element, dofmap)
