import numpy as np

from knn_rs.Correlation_Strategy import Correlation_Strategy


class Adjusted_Cosine(Correlation_Strategy):
    """
    Adjusted cosine:
    1. Every rating is centered by the mean of its CONTEXT
       (for item-item: the mean of the user who gave it).
    2. Dot product over the common contexts.
    3. Divided by the norms of the full centered vectors.
    """

    name = 'adjusted cosine'

    def _prepare(self, rows, columns):
        super()._prepare(rows, columns)
        self.context_means = {}
        self.norms = {}

    def _context_mean(self, c):
        if c not in self.context_means:
            values = list(self.columns[c].values())
            self.context_means[c] = float(np.mean(values)) if values else 0.0
        return self.context_means[c]

    def _centered(self, row, keys):
        return np.array([row[k] - self._context_mean(k) for k in keys], dtype=float)

    def _norm(self, entity_id, row):
        if entity_id not in self.norms:
            self.norms[entity_id] = float(np.linalg.norm(self._centered(row, row.keys())))
        return self.norms[entity_id]

    def _pair_sim(self, i, j, row_i, row_j):
        keys = list(row_i.keys() & row_j.keys())
        if not keys:
            return 0.0

        dot = np.dot(self._centered(row_i, keys), self._centered(row_j, keys))
        norm_i = self._norm(i, row_i)
        norm_j = self._norm(j, row_j)

        if norm_i == 0 or norm_j == 0:
            return 0.0

        return float(np.clip(dot / (norm_i * norm_j), -1.0, 1.0))
