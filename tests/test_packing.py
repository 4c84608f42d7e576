import numpy as np
import pytest
from numpy.testing import assert_equal

from pyfemx.errors import UnsetConstant
from pyfemx.fem.form import Form
from pyfemx.fem.function import Constant, Function, functionspace
from pyfemx.fem.packing import (interior_facet_layout, pack_coefficients, pack_constants,
                                pack_interior_facet_coefficients, restriction)
from pyfemx.utils.meshgen import create_unit_square


@pytest.fixture
def mesh():
    return create_unit_square(2, 2)


def test_pack_constants(mesh):
    form = Form(mesh, {}, constants=[Constant(2.0), Constant([[1.0, 2.0], [3.0, 4.0]])])
    assert_equal(pack_constants(form), [2.0, 1.0, 2.0, 3.0, 4.0])
    assert pack_constants(Form(mesh, {})).shape == (0,)


def test_pack_constants_unset(mesh):
    form = Form(mesh, {}, constants=[Constant(1.0), Constant(name="alpha")])
    assert not form.all_constants_set()
    with pytest.raises(UnsetConstant) as err:
        pack_constants(form)
    assert err.value.name == "alpha"


def test_pack_coefficients(mesh):
    V = functionspace(mesh, ("P", 1), shape=(2,))
    Q = functionspace(mesh, ("DG", 0))
    u = Function(V, x=np.arange(18.0))
    q = Function(Q, x=100.0 + np.arange(8.0))
    form = Form(mesh, {}, coefficients=[u, q])
    coeffs, offsets = pack_coefficients(form)
    assert_equal(offsets, [0, 6, 7])
    assert coeffs.shape == (8, 7)
    nodes = V.dofmap.list.as_2d()
    # vector dofs are interleaved per node
    assert_equal(coeffs[:, 0:6:2], 2 * nodes)
    assert_equal(coeffs[:, 1:6:2], 2 * nodes + 1)
    assert_equal(coeffs[:, 6], 100.0 + np.arange(8))


def test_interior_facet_layout():
    src, dst0, dst1 = interior_facet_layout([0, 3, 4])
    assert_equal(src, [0, 1, 2, 3])
    assert_equal(dst0, [0, 1, 2, 6])
    assert_equal(dst1, [3, 4, 5, 7])


def test_pack_interior_facet_coefficients():
    offsets = np.array([0, 3, 4])
    coeffs = np.arange(12.0).reshape(3, 4)
    w = pack_interior_facet_coefficients(coeffs, offsets, [0, 2], [1, 0])
    assert w.shape == (2, 8)
    assert_equal(restriction(w[0], offsets, 0, 0), coeffs[0, :3])
    assert_equal(restriction(w[0], offsets, 0, 1), coeffs[1, :3])
    assert_equal(restriction(w[0], offsets, 1, 1), coeffs[1, 3:])
    assert_equal(restriction(w[1], offsets, 1, 0), coeffs[2, 3:])
    assert_equal(w[1], [8, 9, 10, 0, 1, 2, 11, 3])


def test_form_bookkeeping(mesh):
    k = lambda A, *args: None
    form = Form(mesh, {"interior_facet": [(2, k)], "cell": [(-1, k), (1, k)]})
    assert [str(t) for t in form.integral_types()] == ["cell", "interior_facet"]
    assert form.integral_ids("cell") == [-1, 1]
    assert form.num_integrals("exterior_facet") == 0
    assert form.rank == 0
    with pytest.raises(KeyError):
        form.kernel("cell", 7)
    with pytest.raises(ValueError):
        Form(mesh, {"cell": [(0, k), (0, k)]})
    with pytest.raises(TypeError):
        Form(mesh, {"cell": [k]})
    other = Function(functionspace(create_unit_square(1, 1), ("DG", 0)))
    with pytest.raises(ValueError):
        Form(mesh, {}, coefficients=[other])
