import numpy as np

from knn_rs import config
from knn_rs.Correlation_Strategy import Correlation_Strategy


def _common(row_i, row_j):
    keys = row_i.keys() & row_j.keys()
    i_common = np.array([row_i[k] for k in keys], dtype=float)
    j_common = np.array([row_j[k] for k in keys], dtype=float)
    return i_common, j_common


class Pearson_Correlation(Correlation_Strategy):
    """
    Pearson correlation between two entities over their co-rated contexts.
    Uses LOCAL means (mean of the common ratings only), needs >= 2 co-ratings.
    """

    name = 'pearson'

    def _pair_sim(self, i, j, row_i, row_j):
        i_common, j_common = _common(row_i, row_j)
        if len(i_common) < 2:
            return 0.0

        i_centered = i_common - np.mean(i_common)
        j_centered = j_common - np.mean(j_common)

        dot = np.dot(i_centered, j_centered)
        norm_i = np.linalg.norm(i_centered)
        norm_j = np.linalg.norm(j_centered)

        if norm_i == 0 or norm_j == 0:
            return 0.0

        return float(np.clip(dot / (norm_i * norm_j), -1.0, 1.0))


class Discounted_Pearson_Correlation(Pearson_Correlation):
    """
    Pearson with significance weighting:
        DS = Sim * min(count, beta) / beta
    Pairs with fewer than beta co-ratings get proportionally less weight.
    """

    name = 'discounted pearson'

    def __init__(self, beta=config.DEFAULT_DISCOUNT_BETA, show_progress=config.SHOW_PROGRESS):
        super().__init__(show_progress)
        self.beta = beta

    def __repr__(self):
        return f"{type(self).__name__}(beta={self.beta})"

    def _pair_sim(self, i, j, row_i, row_j):
        sim = super()._pair_sim(i, j, row_i, row_j)
        if not self.beta or sim == 0:
            return sim
        count = len(row_i.keys() & row_j.keys())
        return sim * min(count, self.beta) / self.beta
