import pytest

from knn_rs.Correlation_Matrix import Correlation_Matrix
from knn_rs.errors import ArgumentError, IndexOutOfRange
from knn_rs.Neighbors import Neighbor_Query


@pytest.fixture
def query():
    cm = Correlation_Matrix(3)
    cm.set(0, 1, 0.8)
    cm.set(0, 2, -0.2)
    cm.set(1, 2, 0.5)
    return Neighbor_Query(cm)


def test_positively_correlated(query):
    assert list(query.positively_correlated(0)) == [1]
    assert list(query.positively_correlated(1)) == [0, 2]
    assert list(query.positively_correlated(2)) == [1]


def test_nearest_neighbors(query):
    assert list(query.nearest_neighbors(0, 2)) == [1, 2]
    assert list(query.nearest_neighbors(0, 1)) == [1]
    # fewer entities than k
    assert list(query.nearest_neighbors(0, 10)) == [1, 2]


def test_nearest_neighbors_invalid_k(query):
    with pytest.raises(ArgumentError):
        query.nearest_neighbors(0, 0)


def test_unknown_entity(query):
    with pytest.raises(IndexOutOfRange):
        query.ranking(3)


def test_ties_by_ascending_id():
    cm = Correlation_Matrix(5)
    for j in (4, 1, 3):
        cm.set(0, j, 0.5)
    cm.set(0, 2, 0.9)
    query = Neighbor_Query(cm)
    assert list(query.ranking(0)) == [2, 1, 3, 4]
    assert list(query.positively_correlated(0)) == [2, 1, 3, 4]


def test_ranking_properties():
    cm = Correlation_Matrix(6)
    values = [0.3, -0.1, 0.0, 0.9, 0.3]
    for j, v in enumerate(values, start=1):
        cm.set(0, j, v)
    query = Neighbor_Query(cm)
    for k in range(1, 8):
        result = query.nearest_neighbors(0, k)
        assert len(result) == min(k, 5)
        assert 0 not in result
        sims = [cm.get(0, e) for e in result]
        assert sims == sorted(sims, reverse=True)
    for e in query.positively_correlated(0):
        assert cm.get(e, 0) > 0


def test_cache_and_invalidate(query):
    assert list(query.positively_correlated(0)) == [1]
    query.correlation.set(0, 2, 0.9)
    # still the cached order
    assert list(query.positively_correlated(0)) == [1]

    query.invalidate(0)
    assert list(query.positively_correlated(0)) == [2, 1]


def test_invalidate_all(query):
    query.ranking(0)
    query.ranking(1)
    assert len(query) == 2
    query.invalidate_all()
    assert len(query) == 0
