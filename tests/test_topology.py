import numpy as np
import pytest
from numpy.testing import assert_equal

from pyfemx.core.cell_types import get_entity_vertices
from pyfemx.core.mesh import create_mesh
from pyfemx.errors import NotInitialized, TopologyFrozen
from pyfemx.utils.meshgen import (create_box, create_unit_cube, create_unit_interval,
                                  create_unit_square)


@pytest.mark.parametrize("mesh_factory, counts", [
    (lambda: create_unit_interval(4), [5, 4]),
    (lambda: create_unit_square(2, 2, "triangle"), [9, 16, 8]),
    (lambda: create_unit_square(2, 2, "quadrilateral"), [9, 12, 4]),
    (lambda: create_unit_cube(1, 1, 1, "tetrahedron"), [8, 19, 18, 6]),
    (lambda: create_box(((0, 0, 0), (2, 1, 1)), (2, 1, 1), "hexahedron"), [12, 20, 11, 2]),
])
def test_entity_counts(mesh_factory, counts):
    mesh = mesh_factory()
    tdim = mesh.topology.dim
    for d in range(tdim + 1):
        mesh.create_entities(d)
        assert mesh.num_entities(d) == counts[d], f"dimension {d}"


def test_create_entities_is_idempotent():
    mesh = create_unit_square(2, 2)
    assert mesh.create_entities(1) == 16
    c10 = mesh.topology.connectivity(1, 0)
    c21 = mesh.topology.connectivity(2, 1)
    assert mesh.create_entities(1) == -1
    assert mesh.topology.connectivity(1, 0) is c10
    assert mesh.topology.connectivity(2, 1) is c21
    # vertices and cells exist from the start
    assert mesh.create_entities(0) == -1
    assert mesh.create_entities(2) == -1


def test_num_entities_before_creation():
    mesh = create_unit_square(1, 1)
    with pytest.raises(NotInitialized) as err:
        mesh.num_entities(1)
    assert err.value.dim == 1
    assert "dimension 1" in str(err.value)
    with pytest.raises(NotInitialized):
        mesh.topology.interior_facets()
    with pytest.raises(NotInitialized):
        mesh.topology.get_cell_permutation_info()


def test_connectivity_absent_until_requested():
    mesh = create_unit_square(1, 1)
    assert mesh.topology.connectivity(1, 2) is None
    mesh.create_connectivity(1, 2)
    assert mesh.topology.connectivity(1, 2) is not None


def test_byproduct_connectivity_is_cached():
    mesh = create_unit_cube(1, 1, 1)
    topology = mesh.topology
    assert topology.connectivity(2, 1) is None
    topology.create_connectivity(1, 2)
    assert topology.connectivity(2, 1) is not None
    # (1, 2) is the transpose of (2, 1)
    c12, c21 = topology.connectivity(1, 2), topology.connectivity(2, 1)
    for f, edges in enumerate(c21):
        for e in edges:
            assert f in c12.links(e)


def test_diagonal_connectivity_is_identity():
    mesh = create_unit_square(2, 2)
    mesh.create_connectivity(1, 1)
    assert_equal(mesh.topology.connectivity(1, 1).array, np.arange(16))


@pytest.mark.parametrize("mesh_factory", [
    lambda: create_unit_square(3, 2, "triangle"),
    lambda: create_unit_square(2, 2, "quadrilateral"),
    lambda: create_unit_cube(2, 1, 1, "tetrahedron"),
    lambda: create_unit_cube(1, 1, 2, "hexahedron"),
])
def test_local_facet_index_is_unique_per_cell(mesh_factory):
    mesh = mesh_factory()
    tdim = mesh.topology.dim
    mesh.create_connectivity(tdim, tdim - 1)
    c2f = mesh.topology.connectivity(tdim, tdim - 1).as_2d()
    for c, facets in enumerate(c2f):
        assert len(set(facets.tolist())) == facets.size, f"cell {c}"


@pytest.mark.parametrize("mesh_factory", [
    lambda: create_unit_square(3, 2, "triangle"),
    lambda: create_unit_cube(2, 1, 1, "tetrahedron"),
    lambda: create_unit_cube(1, 1, 2, "hexahedron"),
])
def test_entity_vertices_match_cell_sub_entities(mesh_factory):
    mesh = mesh_factory()
    topology = mesh.topology
    tdim = topology.dim
    cells = topology.connectivity(tdim, 0).as_2d()
    for d in range(1, tdim):
        mesh.create_entities(d)
        table = get_entity_vertices(topology.cell_type, d)
        c2e = topology.connectivity(tdim, d).as_2d()
        e2v = topology.connectivity(d, 0).as_2d()
        for c in range(cells.shape[0]):
            for j, e in enumerate(c2e[c]):
                assert sorted(cells[c, table[j]]) == sorted(e2v[e])


def test_interior_and_exterior_facet_cell_counts():
    mesh = create_unit_cube(2, 2, 1)
    tdim = mesh.topology.dim
    mesh.create_connectivity(tdim - 1, tdim)
    f2c = mesh.topology.connectivity(tdim - 1, tdim)
    interior = mesh.topology.interior_facets()
    degrees = f2c.degrees()
    assert np.all(degrees[interior] == 2)
    assert np.all(degrees[~interior] == 1)
    # 2x2x1 boxes of 6 tetrahedra: 2 boundary triangles per box face
    assert (~interior).sum() == 2 * (2 * 4 + 2 * 2 + 2 * 2)


def test_ghost_entities_are_numbered_last():
    x = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    cells = np.array([[0, 1, 2], [1, 3, 2]])
    mesh = create_mesh(cells, x, "triangle", num_ghost_cells=1)
    topology = mesh.topology
    assert topology.index_map(0).size_local == 3
    assert_equal(topology.index_map(0).ghosts, [3])

    mesh.create_connectivity(1, 2)
    edge_map = topology.index_map(1)
    assert edge_map.size_local == 3
    assert edge_map.num_ghosts == 2
    assert_equal(topology.connectivity(2, 1).as_2d(), [[0, 1, 2], [3, 0, 4]])

    # the shared edge sees the ghost cell as its second side
    assert_equal(topology.interior_facets(), [True, False, False, False, False])
    assert_equal(topology.boundary_facets(), [1, 2])


def test_create_connectivity_all():
    mesh = create_unit_cube(1, 1, 1)
    mesh.create_connectivity_all()
    for d0 in range(4):
        for d1 in range(4):
            assert mesh.topology.connectivity(d0, d1) is not None


def test_frozen_topology_refuses_new_data():
    mesh = create_unit_square(2, 2)
    mesh.create_connectivity(1, 2)
    mesh.topology.freeze()
    assert mesh.topology.frozen
    # cached data may still be requested
    mesh.create_connectivity(1, 2)
    assert mesh.create_entities(1) == -1
    with pytest.raises(TopologyFrozen):
        mesh.create_entity_permutations()
    with pytest.raises(TopologyFrozen):
        mesh.create_connectivity(0, 1)


def test_topology_hash_is_reproducible():
    a = create_unit_square(2, 3)
    b = create_unit_square(2, 3)
    c = create_unit_square(3, 2)
    assert a.topology.hash() == b.topology.hash()
    assert a.topology.hash() != c.topology.hash()
