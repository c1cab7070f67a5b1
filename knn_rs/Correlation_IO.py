"""
Text format of a correlation matrix:

    <N>
    <i> <j> <correlation>
    ...

One line per non-zero correlation with i < j; the diagonal is not written.
"""
import logging
import math
import os
from contextlib import contextmanager

import numpy as np

from knn_rs import config
from knn_rs.Correlation_Matrix import Correlation_Matrix
from knn_rs.errors import ParseError

logger = logging.getLogger(__name__)


def write_correlation_matrix(correlation, writer):
    n = correlation.num_entities
    m = correlation.matrix
    writer.write(f"{n}\n")
    for i in range(n):
        for j in np.flatnonzero(m[i, i + 1:]) + i + 1:
            writer.write(f"{i} {j} {m[i, j]}\n")


def read_correlation_matrix(reader, diagonal=config.READ_DIAGONAL):
    """
    Reads what write_correlation_matrix() wrote. Raises ParseError on the
    first malformed line; nothing is returned in that case.
    diagonal: value put on the diagonal, None leaves it at 0.
    """
    lines = iter(reader)
    header = next(lines, '').strip()
    try:
        n = int(header)
    except ValueError as e:
        raise ParseError(f"Line 1: expected number of entities, got {header!r}") from e
    if n < 0:
        raise ParseError(f"Line 1: negative number of entities {n}")

    correlation = Correlation_Matrix(n)
    if diagonal is not None:
        correlation.set_diagonal(diagonal)

    for line_no, line in enumerate(lines, start=2):
        tokens = line.split()
        if not tokens:
            continue
        if len(tokens) != 3:
            raise ParseError(f"Line {line_no}: expected 'i j correlation', got {line.rstrip()!r}")
        try:
            i = int(tokens[0])
            j = int(tokens[1])
            value = float(tokens[2])
        except ValueError as e:
            raise ParseError(f"Line {line_no}: {e}") from e

        if not 0 <= i < n:
            raise ParseError(f"Line {line_no}: entity ID is too big: i = {i}")
        if not 0 <= j < n:
            raise ParseError(f"Line {line_no}: entity ID is too big: j = {j}")
        if not math.isfinite(value):
            raise ParseError(f"Line {line_no}: correlation is not finite: {tokens[2]}")

        correlation.set(i, j, value)

    return correlation


@contextmanager
def _open(path_or_file, mode):
    if isinstance(path_or_file, (str, os.PathLike)):
        with open(path_or_file, mode, encoding='utf-8') as f:
            yield f
    else:
        yield path_or_file


def save(correlation, path_or_file):
    with _open(path_or_file, 'w') as f:
        write_correlation_matrix(correlation, f)
    logger.info("Correlation matrix saved: %d entities", correlation.num_entities)


def load(path_or_file, diagonal=config.READ_DIAGONAL):
    with _open(path_or_file, 'r') as f:
        correlation = read_correlation_matrix(f, diagonal)
    logger.info("Correlation matrix loaded: %d entities", correlation.num_entities)
    return correlation
