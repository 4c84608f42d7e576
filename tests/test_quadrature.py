import numpy as np
import pytest

from pyfemx.core.cell_types import reference_volume
from pyfemx.fem import quadrature as q


@pytest.mark.parametrize("cell, exact", [
    ("interval", 1.0), ("triangle", 0.5), ("quadrilateral", 1.0),
    ("tetrahedron", 1.0 / 6.0), ("hexahedron", 1.0),
])
def test_constant_volume(cell, exact):
    pts, wts = q.volume_rule(cell, 3)
    assert np.isclose(wts.sum(), exact, rtol=1e-12)
    assert np.isclose(reference_volume(cell), exact)
    assert pts.shape[0] == wts.shape[0]


def test_linear_exact_tri():
    # ∫_T r dA over reference triangle = 1/6
    pts, wts = q.volume_rule("triangle", 4)
    assert np.isclose((pts[:, 0] * wts).sum(), 1 / 6, rtol=1e-12)


def test_quadratic_exact_tet():
    # ∫_T x y dV over reference tetrahedron = 1/120
    pts, wts = q.volume_rule("tetrahedron", 3)
    assert np.isclose((pts[:, 0] * pts[:, 1] * wts).sum(), 1 / 120, rtol=1e-12)


def test_triangle_facet_rule():
    # facet 0 is the hypotenuse x + y = 1
    pts, wts, J = q.facet_rule("triangle", 0, 3)
    assert np.allclose(pts.sum(axis=1), 1.0)
    assert np.isclose(wts.sum(), 1.0)
    assert np.isclose(np.linalg.norm(J), np.sqrt(2.0))


def test_hexahedron_facet_rule():
    # facet 5 is z = 1
    pts, wts, J = q.facet_rule("hexahedron", 5, 2)
    assert np.allclose(pts[:, 2], 1.0)
    assert np.isclose(wts.sum(), 1.0)
    assert J.shape == (3, 2)


def test_interval_facet_rule_is_a_point():
    pts, wts, J = q.facet_rule("interval", 1)
    assert np.allclose(pts, [[1.0]])
    assert np.allclose(wts, [1.0])
    assert J.shape == (1, 0)


def test_rejects_order_zero():
    with pytest.raises(ValueError):
        q.gauss_legendre(0)
