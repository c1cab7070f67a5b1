import logging
from collections import Counter

import numpy as np
from tqdm import tqdm

from knn_rs import config
from knn_rs.Correlation_Matrix import DTYPE

logger = logging.getLogger(__name__)


def invert(rows):
    """
    {entity: {context: value}} -> {context: {entity: value}}
    {entity: {contexts}}        -> {context: {entities}}
    """
    columns = {}
    for e, row in rows.items():
        if isinstance(row, dict):
            for c, v in row.items():
                columns.setdefault(c, {})[e] = v
        else:
            for c in row:
                columns.setdefault(c, set()).add(e)
    return columns


class Correlation_Strategy:
    """
    Fills a Correlation_Matrix from per-entity data.

    rows    : {entity_id: row}, a row being {context_id: value} (ratings)
              or a set of context IDs (binary relation)
    columns : the same data indexed by context, see invert().
              Computed from rows when not given.

    Only pairs of entities sharing at least one context are ever compared;
    all other pairs keep correlation 0.
    """

    diagonal = 1.0
    name = 'base'

    def __init__(self, show_progress=config.SHOW_PROGRESS):
        self.show_progress = show_progress
        self.columns = None

    def __repr__(self):
        return f"{type(self).__name__}()"

    def _pair_sim(self, i, j, row_i, row_j):
        raise NotImplementedError

    def _prepare(self, rows, columns):
        self.columns = columns if columns is not None else invert(rows)

    def _candidates(self, entity_id, rows):
        found = set()
        for c in rows[entity_id]:
            found.update(self.columns.get(c, ()))
        found.discard(entity_id)
        return found

    def _similarities(self, entity_id, rows):
        """{j: sim} for every entity j sharing a context with entity_id."""
        row_i = rows[entity_id]
        sims = {}
        for j in self._candidates(entity_id, rows):
            sim = self._pair_sim(entity_id, j, row_i, rows[j])
            if sim != 0:
                sims[j] = sim
        return sims

    def compute_all(self, matrix, rows, columns=None, num_entities=None):
        """
        Recomputes the whole matrix. Grows it to fit every entity in rows
        (or num_entities, if larger); old values are discarded.
        """
        self._prepare(rows, columns)
        max_id = max(rows, default=-1)
        matrix.grow(max(max_id + 1, num_entities or 0))
        matrix.clear()

        for i in tqdm(sorted(rows), desc=f"{self.name} correlations",
                      disable=not self.show_progress):
            for j, sim in self._similarities(i, rows).items():
                if j > i:
                    matrix.set(i, j, sim)

        matrix.set_diagonal(self.diagonal)
        logger.info("Correlations computed (%s). Matrix Shape: %s",
                    self.name, matrix.matrix.shape)
        return matrix

    def compute_entity(self, matrix, rows, entity_id, columns=None):
        """
        Recomputes row/column entity_id against all other entities.
        Returns the IDs whose correlation to entity_id changed.
        """
        self._prepare(rows, columns)
        sims = self._similarities(entity_id, rows) if rows.get(entity_id) else {}
        matrix.add_entity(max([entity_id, *sims]), self.diagonal)

        values = np.zeros(matrix.num_entities, dtype=DTYPE)
        for j, sim in sims.items():
            values[j] = sim
        values[entity_id] = self.diagonal
        return matrix.set_row(entity_id, values)


class Binary_Correlation(Correlation_Strategy):
    """
    Set-overlap similarities. Row values (if any) are ignored, only the
    presence of a context counts. Overlaps are counted through the columns.
    """

    def _overlap(self, entity_id, rows):
        counts = Counter()
        for c in rows[entity_id]:
            for e in self.columns.get(c, ()):
                counts[e] += 1
        del counts[entity_id]
        return counts

    def _from_overlap(self, size_i, size_j, overlap):
        raise NotImplementedError

    def _similarities(self, entity_id, rows):
        size_i = len(rows[entity_id])
        sims = {}
        for j, overlap in self._overlap(entity_id, rows).items():
            sim = self._from_overlap(size_i, len(rows.get(j, ())), overlap)
            if sim != 0:
                sims[j] = sim
        return sims

    def _pair_sim(self, i, j, row_i, row_j):
        overlap = len(set(row_i) & set(row_j))
        return self._from_overlap(len(row_i), len(row_j), overlap)
