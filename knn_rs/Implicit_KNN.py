import logging

from knn_rs import config
from knn_rs.Correlation_Matrix import Correlation_Matrix
from knn_rs.Cosine_Sim import Binary_Cosine
from knn_rs.errors import ArgumentError, NotFittedError
from knn_rs.Neighbors import Neighbor_Query

logger = logging.getLogger(__name__)


class Implicit_Item_KNN:
    """
    Item-based kNN for positive-only feedback (clicks, purchases, ...).

    Score(u, i) = Sum of Sim(i, j) over the k nearest neighbors j of item i
                  that user u has interacted with.
    """

    def __init__(self, k=config.DEFAULT_K, strategy=None):
        if k is not None and k < 1:
            raise ArgumentError(f"k must be at least 1, got {k}")
        self.k = k
        self.strategy = strategy if strategy is not None else Binary_Cosine()
        self.by_user = None
        self.by_item = {}
        self.correlation = Correlation_Matrix(0)
        self.neighbors = Neighbor_Query(self.correlation)

    def fit(self, feedback):
        """feedback: iterable of (user, item) pairs."""
        self.by_user = {}
        self.by_item = {}
        self._add_pairs(feedback)
        self.strategy.compute_all(self.correlation, self.by_item, columns=self.by_user)
        self.neighbors.invalidate_all()
        logger.info("Implicit kNN fitted. %d users, Matrix Shape: %s",
                    len(self.by_user), self.correlation.matrix.shape)
        return self

    def _add_pairs(self, pairs):
        pairs = [(rec[0], rec[1]) for rec in pairs]
        for u, i in pairs:
            if u < 0 or i < 0:
                raise ArgumentError(f"Entity IDs must be non-negative: ({u}, {i})")
        for u, i in pairs:
            self.by_user.setdefault(u, set()).add(i)
            self.by_item.setdefault(i, set()).add(u)
        return pairs

    def _check_fitted(self):
        if self.by_user is None: raise NotFittedError("Run .fit() first!")

    def score(self, user_id, item_id):
        self._check_fitted()
        seen = self.by_user.get(user_id)
        if not seen or not 0 <= item_id < self.correlation.num_entities:
            return 0.0
        neighbors = self.neighbors.nearest_neighbors(item_id, self.k)
        return self.correlation.sum_up(item_id, seen.intersection(neighbors))

    def recommend(self, user_id, n=10):
        """Top-n unseen items for user_id as [(item, score)], best first."""
        self._check_fitted()
        if n < 1:
            raise ArgumentError(f"n must be at least 1, got {n}")
        seen = self.by_user.get(user_id, set())
        scores = [(i, self.score(user_id, i))
                  for i in range(self.correlation.num_entities) if i not in seen]
        scores.sort(key=lambda x: (-x[1], x[0]))
        return scores[:n]

    def _retrain(self, items):
        # new items only correlate with themselves
        grown = self.correlation.add_entity(max(items, default=-1), self.strategy.diagonal)
        for i in sorted(items):
            changed = self.strategy.compute_entity(self.correlation, self.by_item, i, self.by_user)
            self.neighbors.invalidate(i)
            for j in changed:
                self.neighbors.invalidate(int(j))
        if grown:
            self.neighbors.invalidate_all()

    def add_feedback(self, pairs):
        self._check_fitted()
        pairs = [(rec[0], rec[1]) for rec in pairs]
        self.correlation.check_capacity(max((i for _, i in pairs), default=-1) + 1)
        pairs = self._add_pairs(pairs)
        self._retrain({i for _, i in pairs})

    def remove_feedback(self, pairs):
        self._check_fitted()
        pairs = list(dict.fromkeys((rec[0], rec[1]) for rec in pairs))
        for u, i in pairs:
            if i not in self.by_user.get(u, ()):
                raise ArgumentError(f"Cannot remove unknown feedback ({u}, {i})")
        for u, i in pairs:
            self.by_user[u].discard(i)
            self.by_item[i].discard(u)
            if not self.by_user[u]:
                del self.by_user[u]
            if not self.by_item[i]:
                del self.by_item[i]
        self._retrain({i for _, i in pairs})
