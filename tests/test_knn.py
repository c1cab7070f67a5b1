import io

import numpy as np
import pytest

from knn_rs.Baseline import Constant_Baseline
from knn_rs.errors import ArgumentError, CapacityError, NotFittedError, ParseError
from knn_rs.KNN_RS import Item_Attribute_KNN_RS, Item_KNN_RS, User_KNN_RS
from knn_rs.Pearson_Sim import Pearson_Correlation
from knn_rs.Rating_Data import Rating_Data

RATINGS = [
    (0, 0, 5.0), (0, 1, 4.0), (0, 2, 1.0),
    (1, 0, 3.0), (1, 1, 2.0), (1, 2, 5.0),
    (2, 0, 4.0), (2, 1, 3.0), (2, 3, 2.0),
    (3, 3, 4.0), (3, 4, 3.0),
    (4, 2, 2.0), (4, 4, 5.0),
]


def item_knn(**kwargs):
    kwargs.setdefault('strategy', Pearson_Correlation(show_progress=False))
    kwargs.setdefault('baseline', Constant_Baseline(3.0))
    return Item_KNN_RS(**kwargs)


@pytest.fixture
def hand_made():
    """user 0 rated items 1 (5) and 2 (1), item 3 only rated by user 1."""
    knn = item_knn(k=None)
    knn.fit([(0, 1, 5.0), (0, 2, 1.0), (1, 0, 2.0), (1, 3, 4.0)])
    knn.correlation.clear()
    knn.correlation.set(0, 1, 0.8)
    knn.correlation.set(0, 2, 0.2)
    knn.neighbors.invalidate_all()
    return knn


def test_weighted_prediction(hand_made):
    # 3 + (0.8 * 2 + 0.2 * -2) / 1.0
    assert hand_made.predict(0, 0) == pytest.approx(4.2)


def test_k_counts_contributing_neighbors_only(hand_made):
    hand_made.correlation.set(0, 3, 0.9)  # user 0 did not rate item 3
    hand_made.neighbors.invalidate_all()
    hand_made.k = 1
    # item 3 skipped, item 1 used: 3 + 0.8 * 2 / 0.8
    assert hand_made.predict(0, 0) == pytest.approx(5.0)


def test_clamping(hand_made):
    hand_made.k = 1
    hand_made.max_rating = 4.5
    assert hand_made.predict(0, 0) == 4.5

    hand_made.clamp = False
    assert hand_made.predict(0, 0) == pytest.approx(5.0)


def test_all_neighbors_mode(hand_made):
    hand_made.correlation.set(0, 2, -0.2)
    hand_made.neighbors.invalidate_all()
    hand_made.clamp = False

    # positive only: item 1 alone
    assert hand_made.predict(0, 0) == pytest.approx(5.0)

    hand_made.positive_only = False
    # (0.8 * 2 + -0.2 * -2) / 0.6
    assert hand_made.predict(0, 0) == pytest.approx(3.0 + 2.0 / 0.6, rel=1e-5)


def test_unseen_entities_return_baseline():
    knn = item_knn(baseline=Constant_Baseline(7.0)).fit(RATINGS)
    # not clamped either
    assert knn.predict(0, 99) == 7.0
    assert knn.predict(99, 0) == 7.0
    assert knn.predict(-1, 0) == 7.0


def test_no_observed_neighbor_returns_baseline():
    knn = item_knn().fit(RATINGS)
    # user 3 rated items 3 and 4 only, neither correlated to item 0
    assert knn.get_similarity(0, 3) == 0.0
    assert knn.get_similarity(0, 4) == 0.0
    assert knn.predict(3, 0) == 3.0


def test_predictions_within_range():
    knn = item_knn(min_rating=1.0, max_rating=5.0).fit(RATINGS)
    for u in range(6):
        for i in range(6):
            assert 1.0 <= knn.predict(u, i) <= 5.0


def test_invalid_k():
    with pytest.raises(ArgumentError):
        item_knn(k=0)


def test_not_fitted():
    with pytest.raises(NotFittedError):
        item_knn().predict(0, 0)


def test_get_most_similar():
    knn = item_knn().fit(RATINGS)
    assert knn.get_most_similar(0, 1) == [1]
    assert len(knn.get_most_similar(0, 100)) == 4
    with pytest.raises(ArgumentError):
        knn.get_most_similar(0, 0)


def test_user_knn():
    knn = User_KNN_RS(strategy=Pearson_Correlation(show_progress=False),
                      baseline=Constant_Baseline(3.0)).fit(RATINGS)
    assert knn.correlation.num_entities == 5
    # users 0 and 2 agree on items 0 and 1
    assert knn.get_similarity(0, 2) == pytest.approx(1.0)
    # 3 + 1.0 * (2 - 3) / 1.0 from user 2 only
    assert knn.predict(0, 3) == pytest.approx(2.0)


def _fresh(records, cls=Item_KNN_RS):
    return cls(strategy=Pearson_Correlation(show_progress=False),
               baseline=Constant_Baseline(3.0)).fit(records)


def test_add_ratings_matches_full_fit():
    knn = item_knn().fit(RATINGS)
    knn.get_most_similar(2)
    new = [(3, 0, 1.0), (3, 1, 2.0), (5, 6, 4.0)]
    knn.add_ratings(new)

    expected = _fresh(RATINGS + new)
    assert knn.correlation.num_entities == 7
    assert np.allclose(knn.correlation.matrix, expected.correlation.matrix)
    for e in range(7):
        assert knn.get_most_similar(e) == expected.get_most_similar(e)
    assert knn.ratings.is_observed(5, 6)


def test_update_ratings_matches_full_fit():
    knn = item_knn().fit(RATINGS)
    before = knn.get_most_similar(2)
    knn.update_ratings([(0, 2, 5.0), (1, 2, 1.0)])

    records = [r for r in RATINGS if r[:2] not in {(0, 2), (1, 2)}]
    expected = _fresh(records + [(0, 2, 5.0), (1, 2, 1.0)])
    assert np.allclose(knn.correlation.matrix, expected.correlation.matrix)
    assert knn.get_most_similar(2) == expected.get_most_similar(2)
    assert before != knn.get_most_similar(2)


def test_update_unknown_rating_rejected():
    knn = item_knn().fit(RATINGS)
    with pytest.raises(ArgumentError):
        knn.update_ratings([(0, 2, 5.0), (4, 0, 1.0)])
    # nothing changed
    assert knn.ratings.value(0, 2) == 1.0


def test_too_large_id_leaves_model_usable():
    knn = item_knn().fit(RATINGS)
    with pytest.raises(CapacityError):
        knn.add_ratings([(1, 2 ** 40, 4.0)])
    assert not knn.ratings.is_observed(1, 2 ** 40)
    assert knn.ratings.max_item_id == 4
    assert knn.correlation.num_entities == 5

    knn.add_ratings([(2, 4, 3.0)])
    assert knn.ratings.is_observed(2, 4)
    knn.update_ratings([(2, 4, 1.0)])
    knn.remove_ratings([(2, 4)])
    assert not knn.ratings.is_observed(2, 4)


def test_bad_rating_value_leaves_model_untouched():
    knn = item_knn().fit(RATINGS)
    with pytest.raises(ArgumentError):
        knn.add_ratings([(2, 5, 4.0), (2, 0, 'bad')])
    assert not knn.ratings.is_observed(2, 5)
    assert knn.ratings.max_item_id == 4
    assert knn.correlation.num_entities == 5


def test_remove_ratings_matches_full_fit():
    knn = item_knn().fit(RATINGS)
    knn.predict(0, 0)
    knn.remove_ratings([(0, 0), (2, 1, 3.0)])

    records = [r for r in RATINGS if r[:2] not in {(0, 0), (2, 1)}]
    expected = _fresh(records)
    assert not knn.ratings.is_observed(0, 0)
    assert np.allclose(knn.correlation.matrix, expected.correlation.matrix)
    assert knn.predict(0, 0) == pytest.approx(expected.predict(0, 0))


def test_user_knn_incremental():
    knn = _fresh(RATINGS, User_KNN_RS)
    knn.add_ratings([(5, 0, 5.0), (5, 1, 4.0)])
    expected = _fresh(RATINGS + [(5, 0, 5.0), (5, 1, 4.0)], User_KNN_RS)
    assert np.allclose(knn.correlation.matrix, expected.correlation.matrix)
    assert knn.get_most_similar(5, 2) == expected.get_most_similar(5, 2)


def test_save_and_load_model():
    knn = item_knn().fit(RATINGS)
    buf = io.StringIO()
    knn.save_model(buf)
    buf.seek(0)

    other = item_knn()
    other.load_model(buf, ratings=RATINGS)
    assert np.allclose(other.correlation.matrix, knn.correlation.matrix)
    for u in range(5):
        for i in range(5):
            assert other.predict(u, i) == pytest.approx(knn.predict(u, i))


def test_load_model_diagonal():
    knn = item_knn()
    knn.load_model(io.StringIO("3\n0 1 0.5\n"), ratings=RATINGS, diagonal=None)
    assert knn.get_similarity(2, 2) == 0.0
    assert knn.get_similarity(1, 0) == 0.5

    knn.load_model(io.StringIO("3\n0 1 0.5\n"), ratings=RATINGS)
    assert knn.get_similarity(2, 2) == 1.0


def test_load_model_failure_leaves_model_untouched():
    knn = item_knn().fit(RATINGS)
    before = knn.correlation
    with pytest.raises(ParseError):
        knn.load_model(io.StringIO("5\n0 1 0.5\n0 7 0.5\n"))
    assert knn.correlation is before


def test_attribute_knn():
    attributes = {0: {'drama', 'crime'}, 1: {'drama'}, 2: {'comedy'}}
    knn = Item_Attribute_KNN_RS(attributes=attributes, baseline=Constant_Baseline(3.0))
    knn.fit(RATINGS)
    assert knn.correlation.num_entities == 5
    assert knn.get_similarity(0, 1) == pytest.approx(1 / np.sqrt(2))
    assert knn.get_similarity(0, 2) == 0.0

    # user 0 rated item 1 with 4
    assert knn.predict(0, 0) == pytest.approx(4.0)

    before = knn.correlation.matrix.copy()
    knn.add_ratings([(1, 6, 2.0)])
    assert knn.correlation.num_entities == 7
    assert np.array_equal(knn.correlation.matrix[:5, :5], before)


def test_fit_accepts_rating_data():
    data = Rating_Data.from_records(RATINGS)
    knn = item_knn().fit(data)
    assert knn.ratings is data
    assert "k=80" in repr(knn)
