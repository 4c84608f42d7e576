"""pyfemx.fem.assemble_scalar
Assembly of a rank-0 form into the local (per-process) scalar.

The work is split in two phases:

1. *build*: pack constants (fails with :class:`UnsetConstant` before any
   entity is visited), create the topology data every integral type needs,
   resolve and validate facet -> (cell, local facet) pairs, pack coefficients;
2. *loop*: call the kernel once per active entity, in the order of the
   active-entity list, and add up what it writes.

Only phase 2 may be sharded across threads; the topology is never touched
there.  Set ``PYFEMX_ASSEMBLY_DEBUG=1`` to log shape & dtype of every buffer
handed to a kernel.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numba
import numpy as np

from pyfemx.errors import InconsistentTopology
from pyfemx.fem.form import IntegralType
from pyfemx.fem.packing import pack_coefficients, pack_constants, pack_interior_facet_coefficients
from pyfemx.parameters import PARAMETERS

logger = logging.getLogger(__name__)

# status codes of _facet_cells_and_local_indices
_OK, _BAD_COUNT, _NOT_FOUND = 0, 1, 2


@numba.njit(cache=True)
def _facet_cells_and_local_indices(facets, f2c_offsets, f2c_array, c2f, num_sides):
    """
    For every facet: its ``num_sides`` incident cells and its local index in
    each of them, found by linear search through the cell's facet list.
    ``status[k]`` flags a wrong incident-cell count or a facet missing from
    its cell's list; ``counts[k]`` is the observed incident-cell count.
    """
    n = facets.shape[0]
    cells = np.full((n, num_sides), -1, dtype=np.int64)
    local = np.full((n, num_sides), -1, dtype=np.int32)
    counts = np.zeros(n, dtype=np.int64)
    status = np.zeros(n, dtype=np.int8)
    for k in range(n):
        f = facets[k]
        start = f2c_offsets[f]
        num_cells = f2c_offsets[f + 1] - start
        counts[k] = num_cells
        if num_cells != num_sides:
            status[k] = 1
            continue
        for s in range(num_sides):
            c = f2c_array[start + s]
            cells[k, s] = c
            for j in range(c2f.shape[1]):
                if c2f[c, j] == f:
                    local[k, s] = j
                    break
            if local[k, s] < 0:
                status[k] = 2
    return cells, local, counts, status


def facet_cells_and_local_indices(topology, facets, num_sides: int):
    """
    ``(cells, local_facets)`` of shape (n, num_sides) for the active
    ``facets``; raises :class:`InconsistentTopology` for the first facet
    whose incident-cell count is not ``num_sides`` or that cannot be found
    in its cell's facet list.
    """
    tdim = topology.dim
    facets = np.ascontiguousarray(facets, dtype=np.int64)
    num_facets = topology.index_map(tdim - 1).num_entities()
    if facets.size and (facets.min() < 0 or facets.max() >= num_facets):
        raise IndexError(f"Active facet out of range [0, {num_facets}).")
    f2c = topology.connectivity(tdim - 1, tdim)
    c2f = np.ascontiguousarray(topology.connectivity(tdim, tdim - 1).as_2d())
    cells, local, counts, status = _facet_cells_and_local_indices(
        facets, f2c.offsets, f2c.array, c2f, num_sides)
    bad = np.flatnonzero(status)
    if bad.size:
        k = bad[0]
        if status[k] == _BAD_COUNT:
            raise InconsistentTopology(int(facets[k]), int(counts[k]), num_sides)
        side = int(np.flatnonzero(local[k] < 0)[0])
        raise InconsistentTopology(int(facets[k]), cell=int(cells[k, side]))
    return cells, local


# ----------------------------------------------------------------------
# Loop helpers
# ----------------------------------------------------------------------
def _check(value, kind: str, entity):
    if PARAMETERS.check_kernel_output and not np.isfinite(value):
        raise FloatingPointError(f"Kernel wrote {value} on {kind} {entity}.")


def _debug_buffers(kind, entity, **buffers):
    parts = ", ".join(f"{k}={None if v is None else (np.shape(v), np.asarray(v).dtype)}"
                      for k, v in buffers.items())
    logger.debug(f"{kind} {entity}: {parts}")


def _run_sharded(body, n: int, num_workers: int, dtype):
    """
    Run ``body(lo, hi)`` over ``[0, n)``, split into ``num_workers`` contiguous
    shards; partial sums are added in shard order.
    """
    if num_workers == 1 or n < 2:
        return body(0, n)
    bounds = [(int(s[0]), int(s[-1]) + 1)
              for s in np.array_split(np.arange(n), min(num_workers, n)) if s.size]
    with ThreadPoolExecutor(max_workers=len(bounds)) as pool:
        partials = list(pool.map(lambda b: body(*b), bounds))
    total = dtype.type(0)
    for p in partials:
        total += p
    return total


# ----------------------------------------------------------------------
# Per integral type
# ----------------------------------------------------------------------
def assemble_cells(x, x_dofmap, gdim: int, cells, kernel, coeffs, constants, cell_info,
                   dtype=np.float64, num_workers: int = 1):
    """Sum of ``kernel`` over the active ``cells``."""
    dtype = np.dtype(dtype)
    cells = np.asarray(cells, dtype=np.int64)
    debug = PARAMETERS.debug

    def body(lo, hi):
        A = np.zeros(1, dtype=dtype)
        total = dtype.type(0)
        for k in range(lo, hi):
            c = cells[k]
            coordinate_dofs = x[x_dofmap[c], :gdim]
            w = coeffs[c]
            if debug:
                _debug_buffers("cell", c, w=w, c=constants, coordinate_dofs=coordinate_dofs)
            A[0] = 0
            kernel(A, w, constants, coordinate_dofs, None, None, cell_info[c])
            _check(A[0], "cell", c)
            total += A[0]
        return total

    return _run_sharded(body, cells.size, num_workers, dtype)


def assemble_exterior_facets(x, x_dofmap, gdim: int, facets, cells, local_facets, kernel,
                             coeffs, constants, cell_info, perms,
                             dtype=np.float64, num_workers: int = 1):
    """
    Sum of ``kernel`` over the active exterior ``facets``; ``cells`` and
    ``local_facets`` are the (n, 1) arrays of :func:`facet_cells_and_local_indices`.
    """
    dtype = np.dtype(dtype)
    debug = PARAMETERS.debug

    def body(lo, hi):
        A = np.zeros(1, dtype=dtype)
        total = dtype.type(0)
        for k in range(lo, hi):
            c = cells[k, 0]
            lf = local_facets[k, 0]
            coordinate_dofs = x[x_dofmap[c], :gdim]
            w = coeffs[c]
            local_facet = np.array([lf], dtype=np.int32)
            perm = np.array([perms[lf, c]], dtype=np.uint8)
            if debug:
                _debug_buffers("exterior facet", facets[k], w=w, c=constants,
                               coordinate_dofs=coordinate_dofs, local_facet=local_facet, perm=perm)
            A[0] = 0
            kernel(A, w, constants, coordinate_dofs, local_facet, perm, cell_info[c])
            _check(A[0], "exterior facet", facets[k])
            total += A[0]
        return total

    return _run_sharded(body, len(facets), num_workers, dtype)


def assemble_interior_facets(x, x_dofmap, gdim: int, facets, cells, local_facets, kernel,
                             coeffs, offsets, constants, cell_info, perms,
                             dtype=np.float64, num_workers: int = 1):
    """
    Sum of ``kernel`` over the active interior ``facets``; ``cells`` and
    ``local_facets`` are (n, 2), side 0 first.  The kernel gets both sides'
    geometry stacked, the ``[coefficient][restriction][dof]`` coefficient
    row and side 0's cell permutation bitmask.
    """
    dtype = np.dtype(dtype)
    debug = PARAMETERS.debug
    w_all = pack_interior_facet_coefficients(coeffs, offsets, cells[:, 0], cells[:, 1])

    def body(lo, hi):
        A = np.zeros(1, dtype=dtype)
        total = dtype.type(0)
        for k in range(lo, hi):
            c0, c1 = cells[k]
            lf0, lf1 = local_facets[k]
            coordinate_dofs = x[np.concatenate([x_dofmap[c0], x_dofmap[c1]]), :gdim]
            w = w_all[k]
            local_facet = np.array([lf0, lf1], dtype=np.int32)
            perm = np.array([perms[lf0, c0], perms[lf1, c1]], dtype=np.uint8)
            if debug:
                _debug_buffers("interior facet", facets[k], w=w, c=constants,
                               coordinate_dofs=coordinate_dofs, local_facet=local_facet, perm=perm)
            A[0] = 0
            kernel(A, w, constants, coordinate_dofs, local_facet, perm, cell_info[c0])
            _check(A[0], "interior facet", facets[k])
            total += A[0]
        return total

    return _run_sharded(body, len(facets), num_workers, dtype)


# ----------------------------------------------------------------------
def assemble_scalar(form, *, constants=None, coefficients=None, num_workers=None):
    """
    Local contribution of ``form``: the sum over every integral of the
    kernel values on its active entities.  Ghost contributions are not
    exchanged and no cross-process reduction is performed.

    ``constants`` / ``coefficients`` may be passed pre-packed (the latter as
    the ``(coeffs, offsets)`` pair of :func:`pack_coefficients`).
    """
    if constants is None:
        constants = pack_constants(form)
    num_workers = PARAMETERS.resolve_workers(num_workers)
    dtype = form.dtype

    # -- build phase ----------------------------------------------------
    mesh = form.mesh
    topology = mesh.topology
    tdim = topology.dim
    types = form.integral_types()
    topology.create_entity_permutations()
    if IntegralType.exterior_facet in types or IntegralType.interior_facet in types:
        topology.create_connectivity(tdim - 1, tdim)
        topology.create_connectivity(tdim, tdim - 1)

    work = []
    num_cells = topology.index_map(tdim).num_entities()
    for itype in types:
        for i in form.integral_ids(itype):
            entities = np.asarray(form.domain(itype, i), dtype=np.int64)
            if itype == IntegralType.cell:
                if entities.size and (entities.min() < 0 or entities.max() >= num_cells):
                    raise IndexError(f"Active cell out of range [0, {num_cells}).")
                work.append((itype, i, entities, None, None))
            else:
                sides = 1 if itype == IntegralType.exterior_facet else 2
                cells, local = facet_cells_and_local_indices(topology, entities, sides)
                work.append((itype, i, entities, cells, local))

    if coefficients is None:
        coefficients = pack_coefficients(form)
    coeffs, offsets = coefficients

    geometry = mesh.geometry
    x = geometry.x
    x_dofmap = geometry.dofmap.as_2d()
    gdim = geometry.dim
    cell_info = topology.get_cell_permutation_info()
    perms = topology.get_facet_permutations()

    # -- entity loop ----------------------------------------------------
    value = np.dtype(dtype).type(0)
    for itype, i, entities, cells, local in work:
        kernel = form.kernel(itype, i)
        logger.info(f"Assembling {itype} integral {i} over {entities.size} entities "
                    f"({num_workers} worker(s)).")
        if itype == IntegralType.cell:
            value += assemble_cells(x, x_dofmap, gdim, entities, kernel, coeffs, constants,
                                    cell_info, dtype, num_workers)
        elif itype == IntegralType.exterior_facet:
            value += assemble_exterior_facets(x, x_dofmap, gdim, entities, cells, local, kernel,
                                              coeffs, constants, cell_info, perms,
                                              dtype, num_workers)
        else:
            value += assemble_interior_facets(x, x_dofmap, gdim, entities, cells, local, kernel,
                                              coeffs, offsets, constants, cell_info, perms,
                                              dtype, num_workers)
    return value
