import logging

import numpy as np

from knn_rs.errors import ArgumentError, CapacityError, IndexOutOfRange

logger = logging.getLogger(__name__)

DTYPE = np.float32


class Correlation_Matrix:
    """
    Dense symmetric matrix of correlations between entities (users or items).
    Entity IDs are used directly as row/column indices.
    """

    def __init__(self, num_entities=0):
        self.check_capacity(num_entities)
        self.matrix = np.zeros((num_entities, num_entities), dtype=DTYPE)

    @staticmethod
    def check_capacity(num_entities):
        """
        Rejects dimensions whose cell count (or byte size) does not fit into
        the platform index type. Checked before numpy tries to allocate.
        """
        num_entities = int(num_entities)
        if num_entities < 0:
            raise ArgumentError(f"Number of entities must be non-negative: {num_entities}")

        limit = np.iinfo(np.intp).max
        cells = num_entities * num_entities
        if cells > limit or cells * np.dtype(DTYPE).itemsize > limit:
            logger.error("Too many entities: %d", num_entities)
            raise CapacityError(f"Too many entities: {num_entities}")

    @property
    def num_entities(self):
        return self.matrix.shape[0]

    def __len__(self):
        return self.num_entities

    def _check_id(self, entity_id):
        if not 0 <= entity_id < self.num_entities:
            raise IndexOutOfRange(
                f"Entity ID {entity_id} outside [0, {self.num_entities})")

    def get(self, i, j):
        self._check_id(i)
        self._check_id(j)
        return float(self.matrix[i, j])

    def set(self, i, j, value):
        """Writes (i, j) and (j, i). Does not grow the matrix."""
        self._check_id(i)
        self._check_id(j)
        self.matrix[i, j] = value
        self.matrix[j, i] = value

    def row(self, entity_id):
        """Copy of all correlations of one entity."""
        self._check_id(entity_id)
        return self.matrix[entity_id].copy()

    def set_row(self, entity_id, values):
        """
        Replaces row AND column of entity_id with 'values' (length N).
        Returns the IDs whose correlation to entity_id changed.
        """
        self._check_id(entity_id)
        values = np.asarray(values, dtype=DTYPE)
        if values.shape != (self.num_entities,):
            raise ArgumentError(
                f"Row must have {self.num_entities} values, got shape {values.shape}")

        changed = np.flatnonzero(self.matrix[entity_id] != values)
        self.matrix[entity_id, :] = values
        self.matrix[:, entity_id] = values
        return changed

    def grow(self, new_dim, diagonal=None):
        """
        Enlarges the matrix to new_dim x new_dim, keeping existing values.
        New cells are 0, except the new diagonal cells if 'diagonal' is given.
        The new buffer is filled completely before it replaces the old one.
        Returns True if the matrix actually grew.
        """
        new_dim = int(new_dim)
        old_dim = self.num_entities
        if new_dim <= old_dim:
            return False

        self.check_capacity(new_dim)
        grown = np.zeros((new_dim, new_dim), dtype=DTYPE)
        grown[:old_dim, :old_dim] = self.matrix
        if diagonal is not None:
            new = np.arange(old_dim, new_dim)
            grown[new, new] = diagonal
        self.matrix = grown
        logger.debug("Correlation matrix grown from %d to %d entities", old_dim, new_dim)
        return True

    def add_entity(self, entity_id, diagonal=None):
        """Makes room for entity_id. Its correlations still have to be computed."""
        return self.grow(entity_id + 1, diagonal)

    def sum_up(self, entity_id, entities):
        """
        Sum of correlations between entity_id and the given entities.
        Entities unknown to this matrix count as zero correlation.
        """
        self._check_id(entity_id)
        n = self.num_entities
        valid = [e for e in entities if 0 <= e < n]
        if not valid:
            return 0.0
        return float(np.sum(self.matrix[entity_id, valid], dtype=np.float64))

    def is_symmetric(self):
        return bool(np.array_equal(self.matrix, self.matrix.T))

    def clear(self):
        self.matrix.fill(0)

    def set_diagonal(self, value):
        np.fill_diagonal(self.matrix, value)
