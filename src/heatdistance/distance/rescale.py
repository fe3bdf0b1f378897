from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from heatdistance.fea.analysis.field import DistributedField


def rescale_to_zero_minimum(field: DistributedField) -> float:
    """
    Shift ``field`` in place so that its global minimum is zero (collective).

    Ranks that own no dof contribute ``+inf`` to the reduction.

    Returns:
        The global minimum that was subtracted.
    """
    global_min = float(field.comm.allreduce(field.min(), op="min"))
    field.values -= global_min
    return global_min
