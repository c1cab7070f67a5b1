import numpy as np

from knn_rs.errors import ArgumentError


class Neighbor_Query:
    """
    Ranked neighbor lookups on a Correlation_Matrix.

    Rankings are cached per query entity. Whoever changes the matrix must call
    invalidate(entity_id) for every entity whose row changed (or
    invalidate_all()) before the next lookup.
    """

    def __init__(self, correlation):
        self.correlation = correlation
        self.ranking_cache = {}
        self.positive_cache = {}

    def _compute_ranking(self, entity_id):
        row = self.correlation.row(entity_id)
        ids = np.arange(len(row))
        # descending correlation, ties by ascending ID
        order = np.lexsort((ids, -row))
        order = order[order != entity_id]
        return tuple(int(e) for e in order), row

    def _lookup(self, entity_id):
        if entity_id not in self.ranking_cache:
            ranking, row = self._compute_ranking(entity_id)
            self.ranking_cache[entity_id] = ranking
            self.positive_cache[entity_id] = tuple(e for e in ranking if row[e] > 0)
        return self.ranking_cache[entity_id], self.positive_cache[entity_id]

    def ranking(self, entity_id):
        """All other entities, most similar first."""
        return self._lookup(entity_id)[0]

    def positively_correlated(self, entity_id):
        """All other entities with correlation > 0, most similar first."""
        return self._lookup(entity_id)[1]

    def nearest_neighbors(self, entity_id, k):
        """
        The k most similar other entities (fewer if the matrix is smaller).
        Zero and negative correlations are included to fill up k.
        """
        if k is None:
            return self.ranking(entity_id)
        if k < 1:
            raise ArgumentError(f"k must be at least 1, got {k}")
        return self.ranking(entity_id)[:k]

    def invalidate(self, entity_id):
        self.ranking_cache.pop(entity_id, None)
        self.positive_cache.pop(entity_id, None)

    def invalidate_all(self):
        self.ranking_cache.clear()
        self.positive_cache.clear()

    def __len__(self):
        return len(self.ranking_cache)
