import logging

import numpy as np

from knn_rs import Correlation_IO, config
from knn_rs.Baseline import User_Item_Baseline
from knn_rs.Correlation_Matrix import Correlation_Matrix
from knn_rs.Cosine_Sim import Binary_Cosine
from knn_rs.errors import ArgumentError, NotFittedError
from knn_rs.Neighbors import Neighbor_Query
from knn_rs.Pearson_Sim import Pearson_Correlation
from knn_rs.Rating_Data import Rating_Data

logger = logging.getLogger(__name__)


class KNN_RS:
    """
    Weighted kNN rating predictor on top of a Correlation_Matrix.

    Subclasses choose which entity type the matrix correlates (items or users).
    The 'query' entity of a prediction is the one of that type, the 'other'
    entity is the counterpart (the user for item-based kNN and vice versa).

    Pred(u, i) = Baseline(u, i) + Sum(Sim * (R - Baseline)) / Sum(Sim)
    over the first k neighbors of the query entity that have a rating
    together with the other entity.
    """

    entity_type = None
    other_type = None

    def __init__(self, strategy=None, k=config.DEFAULT_K, baseline=None,
                 positive_only=config.POSITIVE_ONLY, min_rating=config.MIN_RATING,
                 max_rating=config.MAX_RATING, clamp=config.CLAMP_PREDICTIONS):
        if k is not None and k < 1:
            raise ArgumentError(f"k must be at least 1, got {k}")
        if min_rating > max_rating:
            raise ArgumentError(f"min_rating {min_rating} > max_rating {max_rating}")

        self.strategy = strategy if strategy is not None else Pearson_Correlation()
        self.k = k
        self.baseline = baseline if baseline is not None else User_Item_Baseline(
            min_rating=min_rating, max_rating=max_rating)
        self.positive_only = positive_only
        self.min_rating = min_rating
        self.max_rating = max_rating
        self.clamp = clamp

        self.ratings = None
        self.correlation = Correlation_Matrix(0)
        self.neighbors = Neighbor_Query(self.correlation)

    def __repr__(self):
        k = 'inf' if self.k is None else self.k
        return f"{type(self).__name__} k={k} strategy={self.strategy!r} baseline={type(self.baseline).__name__}"

    # --- entity mapping ---

    def _split(self, user_id, item_id):
        """(user, item) -> (query, other)"""
        raise NotImplementedError

    def _join(self, query_id, other_id):
        """(query, other) -> (user, item)"""
        raise NotImplementedError

    # --- training ---

    def fit(self, ratings):
        """ratings: Rating_Data or iterable of (user, item, rating)."""
        if not isinstance(ratings, Rating_Data):
            ratings = Rating_Data.from_records(ratings)
        self.ratings = ratings
        self.baseline.fit(ratings)
        self._train_correlation()
        self.neighbors.invalidate_all()

        logger.info("%s fitted on %d ratings. Matrix Shape: %s",
                    type(self).__name__, len(ratings), self.correlation.matrix.shape)
        return self

    def _train_correlation(self):
        self.strategy.compute_all(
            self.correlation,
            self.ratings.rows(self.entity_type),
            columns=self.ratings.rows(self.other_type),
            num_entities=self.ratings.max_id(self.entity_type) + 1)

    def _check_fitted(self):
        if self.ratings is None: raise NotFittedError("Run .fit() first!")

    # --- prediction ---

    def _is_known(self, query_id, other_id):
        return (0 <= query_id < self.correlation.num_entities
                and 0 <= other_id <= self.ratings.max_id(self.other_type))

    def _candidates(self, query_id):
        if self.positive_only:
            return self.neighbors.positively_correlated(query_id)
        return self.neighbors.ranking(query_id)

    def predict(self, user_id, item_id):
        """
        Predicted rating of user_id for item_id.
        Unknown users/items get the baseline prediction as is.
        """
        self._check_fitted()
        query_id, other_id = self._split(user_id, item_id)
        baseline = self.baseline.predict(user_id, item_id)
        if not self._is_known(query_id, other_id):
            return baseline

        weight_sum = 0.0
        num_sum = 0.0
        budget = self.k
        for c in self._candidates(query_id):
            u, i = self._join(c, other_id)
            if not self.ratings.is_observed(u, i):
                continue

            weight = self.correlation.get(query_id, c)
            weight_sum += weight
            num_sum += weight * (self.ratings.value(u, i) - self.baseline.predict(u, i))

            if budget is not None:
                budget -= 1
                if budget == 0:
                    break

        result = baseline
        if weight_sum != 0:
            result += num_sum / weight_sum

        if self.clamp:
            result = float(np.clip(result, self.min_rating, self.max_rating))
        return result

    def get_similarity(self, entity_id1, entity_id2):
        return self.correlation.get(entity_id1, entity_id2)

    def get_most_similar(self, entity_id, n=10):
        return list(self.neighbors.nearest_neighbors(entity_id, n))

    # --- incremental updates ---

    def _entities_of(self, records):
        idx = 0 if self.entity_type == 'user' else 1
        return {rec[idx] for rec in records}

    def _grow(self):
        """Makes room for new entity IDs. New entities only correlate with themselves."""
        return self.correlation.add_entity(
            self.ratings.max_id(self.entity_type), self.strategy.diagonal)

    def _retrain(self, entities):
        """Recomputes the rows of the given entities and invalidates stale rankings."""
        grown = self._grow()

        rows = self.ratings.rows(self.entity_type)
        columns = self.ratings.rows(self.other_type)
        for e in sorted(entities):
            changed = self.strategy.compute_entity(self.correlation, rows, e, columns)
            self.neighbors.invalidate(e)
            for j in changed:
                self.neighbors.invalidate(int(j))

        if grown:
            # new (zero) entries show up in every ranking
            self.neighbors.invalidate_all()
        logger.debug("Retrained %d %ss", len(entities), self.entity_type)

    def add_ratings(self, records):
        self._check_fitted()
        records = self.ratings.check_records(records)
        # fail before the ratings are touched
        self.correlation.check_capacity(max(self._entities_of(records), default=-1) + 1)
        records = self.ratings.add_all(records)
        self.baseline.add_ratings(records)
        self._retrain(self._entities_of(records))

    def update_ratings(self, records):
        self._check_fitted()
        records = self.ratings.update_all(records)
        self.baseline.update_ratings(records)
        self._retrain(self._entities_of(records))

    def remove_ratings(self, records):
        """records: (user, item) pairs; a trailing rating value is ignored."""
        self._check_fitted()
        pairs = self.ratings.remove_all(records)
        self.baseline.remove_ratings(pairs)
        self._retrain(self._entities_of(pairs))

    # --- persistence ---

    def save_model(self, path_or_file):
        Correlation_IO.save(self.correlation, path_or_file)

    def load_model(self, path_or_file, ratings=None, diagonal=config.READ_DIAGONAL):
        """
        Replaces the correlation matrix by the stored one.
        If ratings are given, they become the training data (baseline refitted).
        diagonal: self-correlation put on the diagonal, None leaves it at 0.
        """
        correlation = Correlation_IO.load(path_or_file, diagonal)
        if ratings is not None:
            if not isinstance(ratings, Rating_Data):
                ratings = Rating_Data.from_records(ratings)
            self.ratings = ratings
            self.baseline.fit(ratings)
        self.correlation = correlation
        self.neighbors = Neighbor_Query(correlation)


class Item_KNN_RS(KNN_RS):
    """Item-based: neighbors are items the user has rated."""

    entity_type = 'item'
    other_type = 'user'

    def _split(self, user_id, item_id):
        return item_id, user_id

    def _join(self, query_id, other_id):
        return other_id, query_id


class User_KNN_RS(KNN_RS):
    """User-based: neighbors are users who rated the item."""

    entity_type = 'user'
    other_type = 'item'

    def _split(self, user_id, item_id):
        return user_id, item_id

    def _join(self, query_id, other_id):
        return query_id, other_id


class _Attribute_KNN:
    """
    Correlations come from a binary attribute relation {entity: {attributes}}
    instead of the ratings. Rating updates only touch the baseline and the
    membership table; the correlation matrix is left as trained.
    """

    def __init__(self, attributes=None, strategy=None, **kwargs):
        super().__init__(strategy=strategy if strategy is not None else Binary_Cosine(), **kwargs)
        self.attributes = {e: set(a) for e, a in (attributes or {}).items()}

    def _train_correlation(self):
        self.strategy.compute_all(
            self.correlation, self.attributes,
            num_entities=self.ratings.max_id(self.entity_type) + 1)

    def _retrain(self, entities):
        if self._grow():
            self.neighbors.invalidate_all()


class Item_Attribute_KNN_RS(_Attribute_KNN, Item_KNN_RS):
    pass


class User_Attribute_KNN_RS(_Attribute_KNN, User_KNN_RS):
    pass
