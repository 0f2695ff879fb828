"""Aggregation layer.

Rollups and organization matrices computed from event store reads.  Nothing
in this package writes, caches or holds state across requests.
"""

from pydevlog.aggregation.matrix import MatrixBuilder, apply_column_labels, build_day_matrix, combine_matrices
from pydevlog.aggregation.rollups import AggregationEngine

__all__ = [
    "AggregationEngine",
    "MatrixBuilder",
    "apply_column_labels",
    "build_day_matrix",
    "combine_matrices",
]
