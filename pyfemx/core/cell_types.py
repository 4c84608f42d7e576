"""pyfemx.core.cell_types
Reference-cell entity tables.

Simplices follow the "edge i is opposite vertex i" convention, quadrilaterals
and hexahedra use tensor-product vertex ordering::

    triangle        quadrilateral
    2               2---3
    |\\              |   |
    0-1             0---1
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

import numpy as np


class CellType(str, Enum):
    point = "point"
    interval = "interval"
    triangle = "triangle"
    quadrilateral = "quadrilateral"
    tetrahedron = "tetrahedron"
    hexahedron = "hexahedron"

    def __str__(self):
        return self.value


# Local vertex indices of every sub-entity, keyed by (cell, dim)
_ENTITY_TABLE = {
    CellType.interval: {
        1: ((0, 1),),
    },
    CellType.triangle: {
        1: ((1, 2), (0, 2), (0, 1)),
        2: ((0, 1, 2),),
    },
    CellType.quadrilateral: {
        1: ((0, 1), (0, 2), (1, 3), (2, 3)),
        2: ((0, 1, 2, 3),),
    },
    CellType.tetrahedron: {
        1: ((2, 3), (1, 3), (1, 2), (0, 3), (0, 2), (0, 1)),
        2: ((1, 2, 3), (0, 2, 3), (0, 1, 3), (0, 1, 2)),
        3: ((0, 1, 2, 3),),
    },
    CellType.hexahedron: {
        1: ((0, 1), (0, 2), (0, 4), (1, 3), (1, 5), (2, 3),
            (2, 6), (3, 7), (4, 5), (4, 6), (5, 7), (6, 7)),
        2: ((0, 1, 2, 3), (0, 1, 4, 5), (0, 2, 4, 6),
            (1, 3, 5, 7), (2, 3, 6, 7), (4, 5, 6, 7)),
        3: ((0, 1, 2, 3, 4, 5, 6, 7),),
    },
}

_DIM = {
    CellType.point: 0, CellType.interval: 1, CellType.triangle: 2,
    CellType.quadrilateral: 2, CellType.tetrahedron: 3, CellType.hexahedron: 3,
}

_NUM_VERTICES = {
    CellType.point: 1, CellType.interval: 2, CellType.triangle: 3,
    CellType.quadrilateral: 4, CellType.tetrahedron: 4, CellType.hexahedron: 8,
}

_REFERENCE_GEOMETRY = {
    CellType.point: ((0.0,),),
    CellType.interval: ((0.0,), (1.0,)),
    CellType.triangle: ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0)),
    CellType.quadrilateral: ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)),
    CellType.tetrahedron: ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)),
    CellType.hexahedron: ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 0.0),
                          (0.0, 0.0, 1.0), (1.0, 0.0, 1.0), (0.0, 1.0, 1.0), (1.0, 1.0, 1.0)),
}


def to_cell_type(cell_type) -> CellType:
    if isinstance(cell_type, CellType):
        return cell_type
    try:
        return CellType(str(cell_type).lower())
    except ValueError:
        raise ValueError(f"Unknown cell type '{cell_type}'.") from None


def cell_dim(cell_type) -> int:
    return _DIM[to_cell_type(cell_type)]


def num_cell_vertices(cell_type) -> int:
    return _NUM_VERTICES[to_cell_type(cell_type)]


def is_simplex(cell_type) -> bool:
    return to_cell_type(cell_type) in (CellType.point, CellType.interval,
                                       CellType.triangle, CellType.tetrahedron)


@lru_cache(maxsize=None)
def get_entity_vertices(cell_type, dim: int) -> np.ndarray:
    """(num_entities, vertices_per_entity) table of local vertex indices."""
    ct = to_cell_type(cell_type)
    tdim = _DIM[ct]
    if not 0 <= dim <= tdim:
        raise ValueError(f"Entity dimension {dim} out of range for {ct} (tdim={tdim}).")
    if dim == 0:
        table = np.arange(_NUM_VERTICES[ct], dtype=np.int64)[:, None]
    elif dim == tdim:
        table = np.arange(_NUM_VERTICES[ct], dtype=np.int64)[None, :]
    else:
        table = np.array(_ENTITY_TABLE[ct][dim], dtype=np.int64)
    table.flags.writeable = False
    return table


def num_cell_entities(cell_type, dim: int) -> int:
    return get_entity_vertices(cell_type, dim).shape[0]


def cell_entity_type(cell_type, dim: int) -> CellType:
    """Type of the sub-entities of dimension ``dim``."""
    ct = to_cell_type(cell_type)
    tdim = _DIM[ct]
    if dim == tdim:
        return ct
    if dim == 0:
        return CellType.point
    if dim == 1:
        return CellType.interval
    # dim == 2 in a 3D cell
    return CellType.triangle if ct == CellType.tetrahedron else CellType.quadrilateral


def reference_geometry(cell_type) -> np.ndarray:
    return np.array(_REFERENCE_GEOMETRY[to_cell_type(cell_type)], dtype=float)


def reference_volume(cell_type) -> float:
    ct = to_cell_type(cell_type)
    if is_simplex(ct):
        return 1.0 / float(np.prod(np.arange(1, _DIM[ct] + 1))) if _DIM[ct] > 0 else 1.0
    return 1.0
