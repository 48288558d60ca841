"""Balance calculations: net positions, settlements, and fixed-point money."""

from potledger.calculations.money import (
    epsilon_minor,
    from_minor,
    split_evenly,
    to_minor,
)
from potledger.calculations.net_position import compute_net_positions
from potledger.calculations.settlement import (
    generate_settlements,
    unassigned_residual,
)
from potledger.calculations.shares import individual_shares, sharing_set

__all__ = [
    "compute_net_positions",
    "epsilon_minor",
    "from_minor",
    "generate_settlements",
    "individual_shares",
    "sharing_set",
    "split_evenly",
    "to_minor",
    "unassigned_residual",
]
