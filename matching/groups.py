# matching/groups.py

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Iterator, List, Sequence, Tuple

from optins.models import OptIn, Role


@dataclass(frozen=True)
class RideGroup:
    """
    One feasible (driver, riders) combination. Not yet scored or routed.
    """
    driver: OptIn
    riders: Tuple[OptIn, ...]

    @property
    def participants(self) -> List[OptIn]:
        return [self.driver, *self.riders]

    @property
    def capacity(self) -> int:
        return self.driver.driver_capacity or 0

    @property
    def opt_in_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self.participants)

    def includes(self, opt_in_id: str) -> bool:
        return opt_in_id in self.opt_in_ids


def split_by_role(opt_ins: Sequence[OptIn]) -> Tuple[List[OptIn], List[OptIn]]:
    drivers = [o for o in opt_ins if o.is_driver]
    riders = [o for o in opt_ins if o.role == Role.RIDER]
    return drivers, riders


def generate_groups(opt_ins: Sequence[OptIn]) -> List[RideGroup]:
    """
    Enumerate every rider subset of size 1..min(len(riders), capacity) for every driver.

    This is the full power set bounded by capacity, not only the maximal groups:
    a driver with capacity 2 and riders {a, b, c} yields a, b, c, ab, ac, bc.
    Zero drivers yields zero groups.
    """
    return list(_iter_groups(opt_ins))


def groups_containing(opt_ins: Sequence[OptIn], opt_in_id: str) -> List[RideGroup]:
    """
    Same as generate_groups but restricted to groups that include `opt_in_id`
    (as driver or rider).
    """
    return [group for group in _iter_groups(opt_ins) if group.includes(opt_in_id)]


# -------------------------
# Internal helpers
# -------------------------

def _iter_groups(opt_ins: Sequence[OptIn]) -> Iterator[RideGroup]:
    drivers, riders = split_by_role(opt_ins)
    for driver in drivers:
        # a user cannot ride in their own car
        seats_for = [r for r in riders if r.user_id != driver.user_id]
        max_size = min(len(seats_for), driver.driver_capacity or 0)
        for size in range(1, max_size + 1):
            for subset in combinations(seats_for, size):
                if len({r.user_id for r in subset}) != size:
                    continue
                yield RideGroup(driver=driver, riders=subset)
