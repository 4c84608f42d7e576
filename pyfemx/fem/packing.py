"""pyfemx.fem.packing
Dense per-entity buffers read by the kernels.

Cell layout: one row per local cell (owned and ghost), the columns of
coefficient ``i`` are ``offsets[i]:offsets[i+1]``.

Interior-facet layout: ``[coefficient][restriction][dof]``, i.e. coefficient
``i`` of side ``r`` occupies ``2*offsets[i] + r*n_i + (0..n_i)`` with
``n_i = offsets[i+1] - offsets[i]``.
"""
from __future__ import annotations

import logging

import numpy as np

from pyfemx.errors import UnsetConstant

logger = logging.getLogger(__name__)


def pack_constants(form) -> np.ndarray:
    """Flat concatenation of every constant value, raising for an unset one."""
    values = []
    for c in form.constants:
        if not c.is_set:
            raise UnsetConstant(c.name)
        values.append(np.asarray(c.value).ravel())
    if not values:
        return np.zeros(0, dtype=form.dtype)
    return np.concatenate(values).astype(np.result_type(form.dtype, *values), copy=False)


def pack_coefficients(form):
    """Return ``(coeffs, offsets)``: the (num_cells, offsets[-1]) cell buffer and column bounds."""
    topology = form.mesh.topology
    num_cells = topology.index_map(topology.dim).num_entities()
    offsets = form.coefficient_offsets()
    dtype = np.result_type(form.dtype, *[u.x.dtype for u in form.coefficients])
    coeffs = np.zeros((num_cells, offsets[-1]), dtype=dtype)
    for i, u in enumerate(form.coefficients):
        dofs = u.function_space.dofmap.expanded()
        coeffs[:, offsets[i]:offsets[i + 1]] = u.x[dofs]
    logger.debug(f"Packed {len(form.coefficients)} coefficient(s) into {coeffs.shape}.")
    return coeffs, offsets


def interior_facet_layout(offsets):
    """
    Column maps ``(src, dst0, dst1)`` from a cell row to the interior-facet
    buffer: ``out[dst_r] = row_of_side_r[src]``.
    """
    offsets = np.asarray(offsets, dtype=np.int64)
    src, dst0, dst1 = [], [], []
    for i in range(offsets.size - 1):
        n = offsets[i + 1] - offsets[i]
        cols = np.arange(n, dtype=np.int64)
        src.append(offsets[i] + cols)
        dst0.append(2 * offsets[i] + cols)
        dst1.append(2 * offsets[i] + n + cols)
    empty = np.empty(0, dtype=np.int64)
    return (np.concatenate(src) if src else empty,
            np.concatenate(dst0) if dst0 else empty,
            np.concatenate(dst1) if dst1 else empty)


def pack_interior_facet_coefficients(coeffs: np.ndarray, offsets, cells0, cells1) -> np.ndarray:
    """(num_facets, 2*offsets[-1]) interior buffer from the cell buffer and both sides' cells."""
    cells0 = np.asarray(cells0, dtype=np.int64)
    cells1 = np.asarray(cells1, dtype=np.int64)
    src, dst0, dst1 = interior_facet_layout(offsets)
    out = np.zeros((cells0.size, 2 * coeffs.shape[1]), dtype=coeffs.dtype)
    out[:, dst0] = coeffs[cells0][:, src]
    out[:, dst1] = coeffs[cells1][:, src]
    return out


def restriction(w: np.ndarray, offsets, i: int, side: int) -> np.ndarray:
    """Coefficient ``i`` of side ``side`` from one interior-facet row."""
    n = offsets[i + 1] - offsets[i]
    start = 2 * offsets[i] + side * n
    return w[start:start + n]
