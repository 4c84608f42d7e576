import numpy as np
import pytest
from numpy.testing import assert_equal

from pyfemx.core.adjacency import AdjacencyList
from pyfemx.core.index_map import IndexMap


def test_index_map_sizes():
    im = IndexMap(4, ghosts=[10, 12], size_global=13, local_range_start=6)
    assert im.size_local == 4
    assert im.num_ghosts == 2
    assert im.num_entities() == 6
    assert im.size_global == 13
    assert im.local_range == (6, 10)
    assert_equal(im.global_indices(), [6, 7, 8, 9, 10, 12])
    assert_equal(im.local_to_global([0, 5]), [6, 12])
    assert_equal(im.is_owned([0, 3, 4, 5]), [True, True, False, False])


def test_index_map_explicit_global_indices():
    im = IndexMap(3, ghosts=[7], global_indices=[5, 1, 3], size_global=8)
    assert_equal(im.global_indices(), [5, 1, 3, 7])
    with pytest.raises(IndexError):
        im.local_to_global([4])
    with pytest.raises(ValueError):
        IndexMap(3, global_indices=[0, 1])


def test_index_map_rejects_bad_sizes():
    with pytest.raises(ValueError):
        IndexMap(-1)
    with pytest.raises(ValueError):
        IndexMap(2, block_size=0)


def test_index_map_equality():
    assert IndexMap(3, ghosts=[4]) == IndexMap(3, ghosts=[4])
    assert IndexMap(3, ghosts=[4]) != IndexMap(3, ghosts=[5])


def test_adjacency_fixed_degree():
    a = AdjacencyList(np.array([[0, 1], [1, 2], [2, 0]]))
    assert a.num_nodes == 3
    assert a.is_fixed_degree()
    assert_equal(a.links(1), [1, 2])
    assert_equal(a.offsets, [0, 2, 4, 6])
    assert_equal(a.as_2d(), [[0, 1], [1, 2], [2, 0]])


def test_adjacency_variable_degree():
    a = AdjacencyList.from_lists([[3], [0, 1, 2], []])
    assert_equal(a.degrees(), [1, 3, 0])
    assert a.max_degree() == 3
    assert not a.is_fixed_degree()
    assert_equal(a.links(2), [])
    with pytest.raises(ValueError):
        a.as_2d()


def test_adjacency_is_immutable():
    data = np.array([[0, 1], [1, 2]])
    a = AdjacencyList(data)
    with pytest.raises(ValueError):
        a.array[0] = 5
    # the caller's array is copied, not frozen in place
    data[0, 0] = 7
    assert a.links(0)[0] == 0


def test_adjacency_rejects_bad_offsets():
    with pytest.raises(ValueError):
        AdjacencyList([0, 1, 2], [0, 2])
    with pytest.raises(ValueError):
        AdjacencyList([0, 1, 2], [0, 2, 1, 3])


def test_adjacency_transpose_sorted():
    a = AdjacencyList.from_lists([[2, 0], [0], [1, 2]])
    t = a.transpose(4)
    assert t.num_nodes == 4
    assert_equal(t.links(0), [0, 1])
    assert_equal(t.links(1), [2])
    assert_equal(t.links(2), [0, 2])
    assert_equal(t.links(3), [])


def test_adjacency_without_nodes():
    a = AdjacencyList(np.empty((0, 3), dtype=np.int64))
    assert a.num_nodes == 0
    assert a.as_2d().shape == (0, 3)
    t = a.transpose(2)
    assert t.num_nodes == 2
    assert_equal(t.degrees(), [0, 0])
    assert a.transpose().num_nodes == 0


def test_adjacency_equality_and_hash_token():
    a = AdjacencyList.from_lists([[0, 1], [2]])
    b = AdjacencyList(np.array([0, 1, 2]), [0, 2, 3])
    assert a == b
    assert a.hash_token() == b.hash_token()
    assert a != AdjacencyList.from_lists([[0], [1, 2]])
    assert [list(r) for r in a] == [[0, 1], [2]]
