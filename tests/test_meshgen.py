import numpy as np
import pytest

from pyfemx.utils.meshgen import (create_box, create_interval, create_rectangle,
                                  create_unit_cube, create_unit_square, delaunay_rectangle)


@pytest.mark.parametrize("mesh_factory, num_cells, num_vertices", [
    (lambda: create_interval(3, (-1.0, 2.0)), 3, 4),
    (lambda: create_unit_square(3, 2), 12, 12),
    (lambda: create_unit_square(3, 2, "quadrilateral"), 6, 12),
    (lambda: create_unit_cube(2, 1, 1), 12, 12),
    (lambda: create_unit_cube(2, 2, 2, "hexahedron"), 8, 27),
    (lambda: delaunay_rectangle(1.0, 1.0, 4, 3), 12, 12),
])
def test_sizes(mesh_factory, num_cells, num_vertices):
    mesh = mesh_factory()
    tdim = mesh.topology.dim
    assert mesh.num_entities(tdim) == num_cells
    assert mesh.num_entities(0) == num_vertices


def test_coordinates_span_the_box():
    mesh = create_box(((1.0, 0.0, -1.0), (2.0, 3.0, 1.0)), (1, 3, 2))
    x = mesh.geometry.x
    assert np.allclose(x.min(axis=0), [1.0, 0.0, -1.0])
    assert np.allclose(x.max(axis=0), [2.0, 3.0, 1.0])


def test_cells_are_positively_oriented():
    for mesh in (create_unit_square(3, 3), create_unit_square(3, 3, diagonal="left"),
                 delaunay_rectangle(2.0, 1.0, 6, 4)):
        p = mesh.geometry.cell_coordinates()
        a, b = p[:, 1] - p[:, 0], p[:, 2] - p[:, 0]
        assert np.all(a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0] > 0)


def test_second_order_mesh():
    mesh = create_rectangle(((0.0, 0.0), (2.0, 1.0)), (2, 1), degree=2)
    assert mesh.geometry.x.shape[0] == 15
    assert mesh.num_entities(0) == 6


def test_invalid_arguments():
    with pytest.raises(ValueError):
        create_unit_square(0, 2)
    with pytest.raises(ValueError):
        create_unit_square(2, 2, diagonal="crossed")
    with pytest.raises(ValueError):
        create_unit_square(2, 2, "quadrilateral", degree=2)
    with pytest.raises(ValueError):
        create_unit_square(2, 2, degree=3)
