"""
modules/planning/route_optimizer.py
-------------------------------------
Orders shooting locations by travel cost under a time-of-day precedence.

Pipeline:
  1. Group nodes by time slot:  0 = early_morning, 1 = normal / flexible / unset,
     2 = night.
  2. Nearest-neighbour construction, one group at a time (0 → 1 → 2), so the
     initial route already respects the group order.
  3. 2-opt improvement: reverse a contiguous segment when the open-path cost
     strictly drops and the group order still holds.  Stops when a full pass
     finds no improving move or the iteration cap is reached.

Cost matrix cells that are unknown (None / negative) cost
config.UNKNOWN_TRAVEL_PENALTY, so a complete route is always produced.
Without a cost matrix the straight-line km between nodes is used; nodes that
lack coordinates sit config.MISSING_COORD_DISTANCE_KM away from everything.

Deterministic: ties go to the lowest index, and 2-opt takes moves in scan order.
"""

from __future__ import annotations

import logging
import time as _time_mod
from dataclasses import dataclass
from typing import Optional, Sequence

import config
from modules.observability.logger import StructuredLogger
from modules.tool_usage.distance_tool import DistanceTool
from schemas.schedule import TimeSlot

logger = logging.getLogger(__name__)
_perf_logger = StructuredLogger()

# Reversals must beat the incumbent by more than this to count as improving
_IMPROVEMENT_EPSILON: float = 1e-9

CostMatrix = Sequence[Sequence[Optional[float]]]


@dataclass
class RouteNode:
    """A point to visit.  Only ``time_slot`` and the coordinates affect ordering."""
    id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    time_slot: Optional[TimeSlot] = TimeSlot.normal


@dataclass
class RouteResult:
    route: list[int]          # permutation of node indices
    total_cost: float         # open-path cost of ``route``


# ── Time-slot precedence ──────────────────────────────────────────────────────

def time_slot_group(slot: Optional[str]) -> int:
    """0 for early morning, 2 for night, 1 for everything else."""
    if slot == TimeSlot.early_morning:
        return 0
    if slot == TimeSlot.night:
        return 2
    return 1


def is_time_slot_order_valid(
    route: Sequence[int],
    groups: Sequence[int],
    skip_first: bool = False,
) -> bool:
    """
    True when the group sequence along *route* never decreases.
    *skip_first* leaves a fixed start node (e.g. the departure point) out of
    the check.
    """
    highest = 0
    for node in route[1:] if skip_first else route:
        g = groups[node]
        if g < highest:
            return False
        highest = g
    return True


# ── Cost helpers ──────────────────────────────────────────────────────────────

def _normalise_costs(cost_matrix: CostMatrix, n: int) -> list[list[float]]:
    if len(cost_matrix) != n or any(len(row) != n for row in cost_matrix):
        raise ValueError(
            f"ERROR_INVALID_COST_MATRIX: expected a {n}x{n} cost matrix"
        )
    penalty = config.UNKNOWN_TRAVEL_PENALTY
    return [
        [
            0.0 if i == j
            else penalty if (v is None or v < 0)
            else float(v)
            for j, v in enumerate(row)
        ]
        for i, row in enumerate(cost_matrix)
    ]


def route_cost(route: Sequence[int], cost: Sequence[Sequence[float]]) -> float:
    """Sum of consecutive leg costs (open path, no return leg)."""
    return sum(cost[a][b] for a, b in zip(route, route[1:]))


# ── Construction ──────────────────────────────────────────────────────────────

def nearest_neighbor_route(
    cost: Sequence[Sequence[float]],
    groups: Sequence[int],
    fixed_start: Optional[int] = None,
) -> list[int]:
    """
    Greedy construction that exhausts group 0, then 1, then 2.
    Without a fixed start the route opens at the first node of the lowest
    non-empty group.
    """
    n = len(groups)
    visited = [False] * n
    route: list[int] = []
    current: Optional[int] = None

    if fixed_start is not None:
        route.append(fixed_start)
        visited[fixed_start] = True
        current = fixed_start

    for group in (0, 1, 2):
        members = [i for i in range(n) if groups[i] == group and not visited[i]]
        while members:
            if current is None:
                nxt = members[0]
            else:
                # min() keeps the first minimum → lowest index on ties
                nxt = min(members, key=lambda i: cost[current][i])
            route.append(nxt)
            visited[nxt] = True
            members.remove(nxt)
            current = nxt
    return route


# ── Improvement ───────────────────────────────────────────────────────────────

def two_opt(
    route: Sequence[int],
    cost: Sequence[Sequence[float]],
    groups: Sequence[int],
    fixed_start: bool = False,
    max_iterations: int = 1000,
) -> tuple[list[int], float]:
    """
    First-improvement 2-opt over an open path.

    Reverses ``route[i+1 .. j]`` (at least two nodes).  The whole route cost is
    recomputed for each candidate, which keeps asymmetric matrices correct.
    A fixed start node at position 0 never moves.
    """
    best = list(route)
    best_cost = route_cost(best, cost)
    n = len(best)
    if n < 3:
        return best, best_cost

    first_i = 0 if fixed_start else -1
    iterations = 0
    improved = True
    while improved and iterations < max_iterations:
        improved = False
        iterations += 1
        for i in range(first_i, n - 2):
            for j in range(i + 2, n):
                candidate = best[: i + 1] + best[i + 1: j + 1][::-1] + best[j + 1:]
                if not is_time_slot_order_valid(candidate, groups, skip_first=fixed_start):
                    continue
                candidate_cost = route_cost(candidate, cost)
                if candidate_cost < best_cost - _IMPROVEMENT_EPSILON:
                    best, best_cost = candidate, candidate_cost
                    improved = True

    logger.debug("2-opt finished after %d pass(es), cost=%.2f", iterations, best_cost)
    return best, best_cost


# ── Public entry point ────────────────────────────────────────────────────────

def optimize_route(
    nodes: Sequence[RouteNode],
    cost_matrix: Optional[CostMatrix] = None,
    fixed_start: Optional[int] = None,
    max_iterations: Optional[int] = None,
) -> RouteResult:
    """
    Order *nodes* by travel cost, respecting early-morning → normal → night.

    Args:
        nodes:          Points to visit.
        cost_matrix:    n x n travel cost (minutes, km or a blend).  None / -1
                        cells are unknown.  Omit to use straight-line km.
        fixed_start:    Index of a node that must come first (departure point).
        max_iterations: 2-opt pass cap.  Defaults to TSP_MAX_ITERATIONS, or
                        TSP_MAX_ITERATIONS_LARGE above TSP_LARGE_NODE_COUNT nodes.

    Raises:
        ValueError: cost matrix shape does not match *nodes*, or *fixed_start*
                    is out of range.
    """
    n = len(nodes)
    if n == 0:
        return RouteResult(route=[], total_cost=0.0)
    if fixed_start is not None and not 0 <= fixed_start < n:
        raise ValueError(f"ERROR_INVALID_FIXED_START: index {fixed_start} outside 0..{n - 1}")
    if n == 1:
        return RouteResult(route=[0], total_cost=0.0)

    _t0 = _time_mod.perf_counter()

    if cost_matrix is not None:
        cost = _normalise_costs(cost_matrix, n)
    else:
        cost = DistanceTool().distance_matrix([(node.lat, node.lng) for node in nodes])

    if max_iterations is None:
        max_iterations = (
            config.TSP_MAX_ITERATIONS_LARGE
            if n > config.TSP_LARGE_NODE_COUNT
            else config.TSP_MAX_ITERATIONS
        )

    groups = [time_slot_group(node.time_slot) for node in nodes]
    initial = nearest_neighbor_route(cost, groups, fixed_start)
    route, total = two_opt(
        initial, cost, groups,
        fixed_start=fixed_start is not None,
        max_iterations=max_iterations,
    )

    _perf_logger.log("default", "PERFORMANCE", {
        "component": "optimize_route",
        "nodes": n,
        "initial_cost": round(route_cost(initial, cost), 2),
        "final_cost": round(total, 2),
        "duration_ms": round((_time_mod.perf_counter() - _t0) * 1000, 2),
    })
    return RouteResult(route=route, total_cost=total)
