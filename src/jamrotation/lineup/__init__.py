"""Band generation: fairness index, role rotation, assembly and naming."""

from .assembler import diagnose_roster, generate_next_band, priority_shuffle
from .fairness import compute_pair_history, compute_play_counts, last_played_role, pair_key, pair_score
from .naming import get_unique_band_name
from .rotation import next_role

__all__ = [
    "compute_pair_history",
    "compute_play_counts",
    "diagnose_roster",
    "generate_next_band",
    "get_unique_band_name",
    "last_played_role",
    "next_role",
    "pair_key",
    "pair_score",
    "priority_shuffle",
]
