"""Series extraction and hypothetical-move scoring over solved trajectories."""

from __future__ import annotations

from typing import List

from .series import extract_many, extract_series, terminal_value, weighted_sum_series
from .heatmap import normalize_scores, recommend, score_hypothetical_moves

__all__: List[str] = [
    "extract_many",
    "extract_series",
    "terminal_value",
    "weighted_sum_series",
    "normalize_scores",
    "recommend",
    "score_hypothetical_moves",
]
