"""
Capacity Allocation

Chooses which powered-off instances to start so that every region gets the
same number of machines.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from .cloud.base import Instance


@dataclass
class StartPlan:
    """Outcome of a start selection"""
    selected: List[Instance] = field(default_factory=list)
    # (region, shortfall) for every region that cannot be served
    missing: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def feasible(self) -> bool:
        return not self.missing


def select_instances_to_start(instances: Iterable[Instance], regions: Sequence[str], quantity: int) -> StartPlan:
    """
    Pick `quantity` inactive instances in each region, first fit in snapshot order.

    Does not touch the provider. A region with too few inactive instances
    contributes its shortfall to `missing` and none of its instances to
    `selected`.
    """
    if quantity < 0:
        raise ValueError(f"quantity must be non-negative, got {quantity}")

    instances = list(instances)
    plan = StartPlan()
    for region in regions:
        candidates = [x for x in instances if x.is_inactive() and x.region == region][:quantity]
        if len(candidates) < quantity:
            plan.missing.append((region, quantity - len(candidates)))
        else:
            plan.selected.extend(candidates)
    return plan
