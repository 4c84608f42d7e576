"""pyfemx.utils.meshgen
Mesh generators for quick tests.
"""
from itertools import permutations
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial import Delaunay

from pyfemx.core.cell_types import CellType, cell_dim, get_entity_vertices, to_cell_type
from pyfemx.core.mesh import Mesh, create_mesh

__all__ = ["create_interval", "create_unit_interval", "create_rectangle", "create_unit_square",
           "create_box", "create_unit_cube", "delaunay_rectangle"]


def _sub_cells(ct: CellType, diagonal: str) -> np.ndarray:
    """Lattice offsets (num_sub_cells, num_vertices, dim) of the cells filling one lattice box."""
    if ct == CellType.interval:
        return np.array([[[0], [1]]])
    if ct == CellType.quadrilateral:
        return np.array([[[0, 0], [1, 0], [0, 1], [1, 1]]])
    if ct == CellType.triangle:
        if diagonal == "right":
            return np.array([[[0, 0], [1, 0], [1, 1]], [[0, 0], [1, 1], [0, 1]]])
        if diagonal == "left":
            return np.array([[[0, 0], [1, 0], [0, 1]], [[1, 0], [1, 1], [0, 1]]])
        raise ValueError(f"Unknown diagonal '{diagonal}', expected 'right' or 'left'.")
    if ct == CellType.hexahedron:
        return np.array([[[i, j, k] for k in (0, 1) for j in (0, 1) for i in (0, 1)]])
    if ct == CellType.tetrahedron:
        # Kuhn subdivision: one tetrahedron per monotone path from (0,0,0) to (1,1,1)
        tets = []
        for p in permutations(range(3)):
            v = np.zeros(3, dtype=int)
            path = [v.copy()]
            for axis in p:
                v[axis] += 1
                path.append(v.copy())
            tets.append(path)
        return np.array(tets)
    raise ValueError(f"Cannot generate a structured mesh of {ct} cells.")


def _structured(lower, upper, n: Sequence[int], cell_type, degree: int, diagonal: str,
                name: str) -> Mesh:
    ct = to_cell_type(cell_type)
    dim = cell_dim(ct)
    n = [int(k) for k in n]
    if len(n) != dim or any(k < 1 for k in n):
        raise ValueError(f"Need {dim} positive cell counts for a {ct} mesh, got {n}.")
    lower = np.asarray(lower, dtype=float).reshape(dim)
    upper = np.asarray(upper, dtype=float).reshape(dim)

    # lower corners of the lattice boxes, x running fastest
    corners = np.indices(n[::-1]).reshape(dim, -1).T[:, ::-1]
    sub = _sub_cells(ct, diagonal)
    lattice = (corners[:, None, None, :] + sub[None]).reshape(-1, *sub.shape[1:])
    lattice = lattice * degree                                      # on the fine node grid

    if degree == 2:
        edges = get_entity_vertices(ct, 1)
        mids = (lattice[:, edges[:, 0], :] + lattice[:, edges[:, 1], :]) // 2
        lattice = np.concatenate([lattice, mids], axis=1)
    elif degree != 1:
        raise ValueError(f"Unsupported geometry degree {degree}.")

    shape = [k * degree + 1 for k in n]
    cells = np.ravel_multi_index(tuple(lattice[..., d] for d in reversed(range(dim))),
                                 tuple(reversed(shape)))
    axes = [np.linspace(lower[d], upper[d], shape[d]) for d in range(dim)]
    grid = np.indices(shape[::-1]).reshape(dim, -1).T[:, ::-1]
    x = np.column_stack([axes[d][grid[:, d]] for d in range(dim)])
    return create_mesh(cells, x, ct, degree=degree, name=name)


def create_interval(n: int, points: Tuple[float, float] = (0.0, 1.0), *, degree: int = 1) -> Mesh:
    return _structured([points[0]], [points[1]], [n], CellType.interval, degree, "right", "interval")


def create_unit_interval(n: int, *, degree: int = 1) -> Mesh:
    return create_interval(n, (0.0, 1.0), degree=degree)


def create_rectangle(points, n: Sequence[int], cell_type=CellType.triangle, *,
                     degree: int = 1, diagonal: str = "right") -> Mesh:
    """Structured mesh of the box from ``points[0]`` to ``points[1]`` with ``n = (nx, ny)`` boxes."""
    return _structured(points[0], points[1], n, cell_type, degree, diagonal, "rectangle")


def create_unit_square(nx: int, ny: int, cell_type=CellType.triangle, *,
                       degree: int = 1, diagonal: str = "right") -> Mesh:
    return create_rectangle(((0.0, 0.0), (1.0, 1.0)), (nx, ny), cell_type,
                            degree=degree, diagonal=diagonal)


def create_box(points, n: Sequence[int], cell_type=CellType.tetrahedron, *, degree: int = 1) -> Mesh:
    return _structured(points[0], points[1], n, cell_type, degree, "right", "box")


def create_unit_cube(nx: int, ny: int, nz: int, cell_type=CellType.tetrahedron, *,
                     degree: int = 1) -> Mesh:
    return create_box(((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)), (nx, ny, nz), cell_type, degree=degree)


def delaunay_rectangle(length: float, height: float, nx: int = 10, ny: int = 10) -> Mesh:
    """Delaunay triangulation of an ``nx`` x ``ny`` point lattice, cells made CCW."""
    x = np.linspace(0.0, length, nx)
    y = np.linspace(0.0, height, ny)
    X, Y = np.meshgrid(x, y)
    pts = np.column_stack([X.ravel(), Y.ravel()])
    elems = Delaunay(pts).simplices.copy()

    a, b, c = pts[elems[:, 0]], pts[elems[:, 1]], pts[elems[:, 2]]
    signed_area = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    cw = signed_area < 0
    elems[cw, 1], elems[cw, 2] = elems[cw, 2], elems[cw, 1]
    return create_mesh(elems, pts, CellType.triangle, name="delaunay_rectangle")
