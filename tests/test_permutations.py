import numpy as np
import pytest
from numpy.testing import assert_equal

from pyfemx.core.mesh import create_mesh
from pyfemx.utils.meshgen import create_unit_cube, create_unit_square


def _global_arrays(mesh):
    """Input cell array and coordinates of a mesh built by create_mesh."""
    g = mesh.geometry
    ids = g.input_global_indices
    x = np.zeros((ids.max() + 1, g.dim))
    x[ids] = g.x[:, :g.dim]
    return ids[g.dofmap.as_2d()], x


def test_reference_ordered_cells_are_not_permuted():
    mesh = create_mesh([[0, 1, 2, 3]], np.eye(4)[:, :3], "tetrahedron")
    mesh.create_entity_permutations()
    assert_equal(mesh.topology.get_cell_permutation_info(), [0])
    assert_equal(mesh.topology.get_facet_permutations(), np.zeros((4, 1)))


def test_tetrahedron_permutation_bits():
    x = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    mesh = create_mesh([[1, 0, 2, 3]], x, "tetrahedron")
    mesh.create_entity_permutations()
    # faces 2 and 3 rotated once and reflected, edge 5 reflected
    expected = (1 << 6) | (1 << 7) | (1 << 9) | (1 << 10) | (1 << (12 + 5))
    assert_equal(mesh.topology.get_cell_permutation_info(), [expected])
    assert_equal(mesh.topology.get_facet_permutations()[:, 0], [0, 0, 3, 3])


def test_triangle_edge_reflections():
    x = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    mesh = create_mesh([[0, 1, 2], [2, 3, 1]], x, "triangle")
    mesh.create_entity_permutations()
    # cell 1: edges (3,1) and (2,1) run against the global numbering
    assert_equal(mesh.topology.get_cell_permutation_info(), [0, 0b011])
    perms = mesh.topology.get_facet_permutations()
    assert perms.shape == (3, 2)
    assert_equal(perms[:, 1], [1, 1, 0])


def test_create_entity_permutations_is_idempotent():
    mesh = create_unit_square(2, 2)
    mesh.create_entity_permutations()
    info = mesh.topology.get_cell_permutation_info()
    mesh.create_entity_permutations()
    assert mesh.topology.get_cell_permutation_info() is info
    # every entity dimension below tdim now exists
    assert mesh.topology.connectivity(1, 0) is not None


@pytest.mark.parametrize("mesh_factory, subset", [
    (lambda: create_unit_square(3, 3, "triangle"), [17, 4, 9, 12, 0]),
    (lambda: create_unit_square(3, 3, "quadrilateral"), [8, 2, 5, 3]),
    (lambda: create_unit_cube(2, 2, 2, "tetrahedron"), [40, 3, 17, 29, 8, 22]),
    (lambda: create_unit_cube(2, 2, 1, "hexahedron"), [3, 0, 2]),
])
def test_permutation_data_does_not_depend_on_partition(mesh_factory, subset):
    full = mesh_factory()
    full.create_entity_permutations()
    cells, x = _global_arrays(full)

    # a "partition" holding a few of the cells, the last one as a ghost
    part = create_mesh(cells[subset], x, full.topology.cell_type, num_ghost_cells=1)
    part.create_entity_permutations()

    assert_equal(part.topology.get_cell_permutation_info(),
                 full.topology.get_cell_permutation_info()[subset])
    assert_equal(part.topology.get_facet_permutations(),
                 full.topology.get_facet_permutations()[:, subset])
