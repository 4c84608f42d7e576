import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_equal

from pyfemx.core.mesh import create_mesh, entities_to_geometry, h, inradius
from pyfemx.errors import EmptyMesh
from pyfemx.utils.meshgen import create_unit_cube, create_unit_interval, create_unit_square


def test_create_mesh_renumbers_vertices_owned_first():
    x = np.array([[0.0, 0.0], [9.0, 9.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    cells = np.array([[4, 2, 3], [0, 2, 3]])        # node 1 is unused
    mesh = create_mesh(cells, x, "triangle", num_ghost_cells=1)
    vertex_map = mesh.topology.index_map(0)
    assert vertex_map.size_local == 3
    assert_equal(vertex_map.global_indices(), [2, 3, 4, 0])
    assert_equal(mesh.topology.connectivity(2, 0).as_2d(), [[2, 0, 1], [3, 0, 1]])
    assert_allclose(mesh.geometry.x[:, :2], x[[2, 3, 4, 0]])
    assert mesh.num_entities(2) == 2
    assert mesh.num_entities_global(0) == 4


def test_create_mesh_rejects_bad_input():
    x = np.zeros((3, 2))
    with pytest.raises(ValueError):
        create_mesh([[0, 1]], x, "triangle")
    with pytest.raises(IndexError):
        create_mesh([[0, 1, 5]], x, "triangle")
    with pytest.raises(ValueError):
        create_mesh([[0, 1, 2]], x[:, :1], "triangle")
    with pytest.raises(ValueError):
        create_mesh([[0, 1, 2]], x, "triangle", num_ghost_cells=2)


def test_geometry_is_padded_to_three_components():
    mesh = create_unit_square(1, 1)
    assert mesh.geometry.dim == 2
    assert mesh.geometry.x.shape == (4, 3)
    assert_equal(mesh.geometry.x[:, 2], 0.0)
    coords = mesh.geometry.cell_coordinates([1])
    assert coords.shape == (1, 3, 2)


def test_second_order_geometry():
    mesh = create_unit_square(1, 1, degree=2)
    assert mesh.geometry.cmap.num_dofs == 6
    assert mesh.geometry.dofmap.as_2d().shape == (2, 6)
    assert mesh.num_entities(0) == 4
    # edge midpoints are the mean of the edge's vertices
    c = mesh.geometry.cell_coordinates()[0]
    assert_allclose(c[3], 0.5 * (c[1] + c[2]))
    assert_allclose(c[5], 0.5 * (c[0] + c[1]))


def test_cell_size_and_inradius():
    mesh = create_unit_square(2, 2)
    assert np.isclose(mesh.hmin(), 0.5 * np.sqrt(2.0))
    assert np.isclose(mesh.hmax(), 0.5 * np.sqrt(2.0))
    r = 0.25 / (1.0 + 0.5 * np.sqrt(2.0))
    assert np.isclose(mesh.rmin(), r)
    assert np.isclose(mesh.rmax(), r)


def test_edge_sizes():
    mesh = create_unit_square(1, 1)
    mesh.create_entities(1)
    lengths = np.sort(h(mesh, np.arange(mesh.num_entities(1)), 1))
    assert_allclose(lengths, [1.0, 1.0, 1.0, 1.0, np.sqrt(2.0)])


def test_inradius_of_tetrahedra_and_intervals():
    cube = create_unit_cube(1, 1, 1)
    assert np.all(inradius(cube, np.arange(6)) > 0.0)
    line = create_unit_interval(4)
    assert_allclose(inradius(line, np.arange(4)), 0.125)


def test_inradius_needs_simplices():
    mesh = create_unit_square(2, 2, "quadrilateral")
    assert np.isclose(mesh.hmax(), 0.5 * np.sqrt(2.0))
    with pytest.raises(ValueError):
        mesh.rmin()


def test_empty_mesh_metrics():
    mesh = create_mesh(np.empty((0, 3), dtype=np.int64), np.zeros((0, 2)), "triangle")
    assert mesh.num_entities(2) == 0
    for metric in (mesh.hmin, mesh.hmax, mesh.rmin, mesh.rmax):
        with pytest.raises(EmptyMesh):
            metric()


def test_entities_to_geometry():
    mesh = create_unit_square(1, 1)
    mesh.create_entities(1)
    nodes = entities_to_geometry(mesh, 1, np.arange(5))
    e2v = mesh.topology.connectivity(1, 0).as_2d()
    # P1 geometry: vertex i is geometry node i
    assert_equal(np.sort(nodes, axis=1), np.sort(e2v, axis=1))


def test_hash_and_copy():
    mesh = create_unit_square(2, 2)
    assert mesh.hash() == create_unit_square(2, 2).hash()
    assert mesh.hash() != create_unit_square(2, 2, diagonal="left").hash()

    other = mesh.copy()
    assert other.hash() == mesh.hash()
    assert other.topology is not mesh.topology
    other.create_entities(1)
    assert mesh.topology.connectivity(1, 0) is None


def test_copy_keeps_coordinates_read_only():
    mesh = create_unit_square(2, 2)
    other = mesh.copy()
    x = other.geometry.x
    assert x is not mesh.geometry.x
    assert_allclose(x, mesh.geometry.x)
    assert not x.flags.writeable
    with pytest.raises(ValueError):
        x[0, 0] = 1.0
    assert_equal(other.geometry.input_global_indices, mesh.geometry.input_global_indices)


def test_str():
    mesh = create_unit_square(1, 1)
    assert "2 cells" in mesh.str()
    verbose = mesh.str(verbose=True)
    assert "Topology" in verbose and "Geometry" in verbose
