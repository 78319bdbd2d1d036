"""
Purpose: Decide which opt-ins are even allowed to be considered together.
What it does:

Partitions the filtered pool into location clusters:

pick the first unprocessed opt-in as the seed

add every other unprocessed opt-in whose pickup is within
max_cluster_distance_km of the SEED (not of other members)

mark added opt-ins processed, repeat until nothing is left

Outputs:

clusters: List[Cluster], disjoint, in seed order

Rule: Clustering does not score groups; it only forms candidate neighborhoods.
Seed-relative membership keeps results deterministic and explainable; an opt-in
close to a member but not to the seed lands in a later cluster.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from optins.models import OptIn
from routing.cost_model import haversine_km

from .policy import MatchingPolicy, default_policy


@dataclass(frozen=True)
class Cluster:
    """
    Opt-ins whose pickups are all near the seed's pickup.
    """
    key: str
    seed: OptIn
    members: List[OptIn]

    def contains(self, opt_in_id: str) -> bool:
        return any(member.id == opt_in_id for member in self.members)


def build_clusters(
    opt_ins: Sequence[OptIn],
    policy: Optional[MatchingPolicy] = None,
) -> List[Cluster]:
    """
    Greedy single-pass clustering around seeds.

    Inputs:
      - opt_ins: typically [target] + filtered pool, so the target seeds the first cluster.
      - policy: controls max_cluster_distance_km.

    Output:
      - list of disjoint Cluster objects (seed is always the first member)
    """
    policy = policy or default_policy()
    if not opt_ins:
        return []

    processed: set[str] = set()
    clusters: List[Cluster] = []

    for seed in opt_ins:
        if seed.id in processed:
            continue
        processed.add(seed.id)

        members = [seed]
        for other in opt_ins:
            if other.id in processed:
                continue
            if haversine_km(seed.pickup, other.pickup) <= policy.max_cluster_distance_km:
                members.append(other)
                processed.add(other.id)

        clusters.append(Cluster(key=f"seed:{seed.id}", seed=seed, members=members))

    return clusters


def cluster_for(clusters: Sequence[Cluster], opt_in_id: str) -> Optional[Cluster]:
    for cluster in clusters:
        if cluster.contains(opt_in_id):
            return cluster
    return None
