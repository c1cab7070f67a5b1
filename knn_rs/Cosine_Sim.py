import math

import numpy as np

from knn_rs.Correlation_Strategy import Binary_Correlation, Correlation_Strategy
from knn_rs.Pearson_Sim import _common


class Cosine_Correlation(Correlation_Strategy):
    """
    Standard cosine between two entities, based ONLY on their common
    (intersection) contexts.
    """

    name = 'cosine'

    def _pair_sim(self, i, j, row_i, row_j):
        i_common, j_common = _common(row_i, row_j)
        if len(i_common) == 0:
            return 0.0

        # Sim = (A . B) / (||A|| * ||B||)
        dot = np.dot(i_common, j_common)
        norm_i = np.linalg.norm(i_common)
        norm_j = np.linalg.norm(j_common)

        if norm_i == 0 or norm_j == 0:
            return 0.0

        return float(np.clip(dot / (norm_i * norm_j), -1.0, 1.0))


class Binary_Cosine(Binary_Correlation):
    """|A n B| / sqrt(|A| * |B|)"""

    name = 'binary cosine'

    def _from_overlap(self, size_i, size_j, overlap):
        if overlap == 0 or size_i == 0 or size_j == 0:
            return 0.0
        return min(overlap / math.sqrt(size_i * size_j), 1.0)


class Jaccard(Binary_Correlation):
    """|A n B| / |A u B|"""

    name = 'jaccard'

    def _from_overlap(self, size_i, size_j, overlap):
        union = size_i + size_j - overlap
        if overlap == 0 or union <= 0:
            return 0.0
        return overlap / union
