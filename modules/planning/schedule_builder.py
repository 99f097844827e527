"""
modules/planning/schedule_builder.py
--------------------------------------
Entry point of the scheduling core.

Pipeline:
  1. Validate input (ScheduleInputError on structural problems).
  2. Sort locations by their caller-supplied ``order``.
  3. Optionally reorder them with the route optimizer, using a cost view
     derived from the distance matrix (minutes, km, or a 60/40 blend) with the
     project's departure point as a fixed first node.
  4. Fit the ordered queue into days (WorkHoursFitter).
  5. Assemble the Schedule aggregate.

Optimisation is skipped for OptimizationType.none, for a single location, and
when there is no matrix and fewer than config.MIN_LOCATED_FOR_OPTIMIZATION
locations have coordinates.

build_schedule_legacy() is the "no distance data" path: caller order, no
travel estimation, the default travel buffer between every pair of stops.
"""

from __future__ import annotations

import logging
import math
import time as _time_mod
from typing import Optional, Sequence

import config
from modules.observability.logger import StructuredLogger
from modules.planning.route_optimizer import RouteNode, optimize_route
from modules.planning.work_hours_fitter import WorkHoursFitter
from modules.tool_usage.distance_tool import DistanceTool
from modules.tool_usage.time_tool import location_total_minutes, to_minutes
from modules.validation import validate_schedule_input
from schemas.schedule import (
    Accommodation,
    DistanceMatrix,
    DurationMode,
    Location,
    Meal,
    OptimizationType,
    ProjectConfig,
    RestStop,
    Schedule,
    TimeSlot,
    Transport,
)

logger = logging.getLogger(__name__)
_perf_logger = StructuredLogger()

_DEPARTURE_NODE_ID = "__departure__"


def travel_buffer_for(transports: Sequence[Transport]) -> int:
    """Default gap between stops: the first transport's buffer, else the global default."""
    if transports:
        return transports[0].default_travel_buffer
    return config.DEFAULT_TRAVEL_BUFFER_MIN


def estimate_days(
    locations: Sequence[Location],
    project: ProjectConfig,
    travel_buffer_min: int,
) -> int:
    """Up-front day estimate for auto mode: total footprint over the daily window."""
    daily = (
        to_minutes(project.work_end_time or config.WORK_END_DEFAULT)
        - to_minutes(project.work_start_time or config.WORK_START_DEFAULT)
    )
    total = sum(location_total_minutes(loc) + travel_buffer_min for loc in locations)
    return max(1, math.ceil(total / daily)) if daily > 0 else 1


def should_optimize(
    locations: Sequence[Location],
    distance_matrix: Optional[DistanceMatrix],
    optimization_type: OptimizationType,
) -> bool:
    if optimization_type == OptimizationType.none or len(locations) < 2:
        return False
    if distance_matrix is None:
        located = sum(1 for loc in locations if loc.has_coordinates)
        if located < config.MIN_LOCATED_FOR_OPTIMIZATION:
            logger.info(
                "Skipping route optimisation: %d of %d locations have coordinates",
                located, len(locations),
            )
            return False
    return True


# ── Cost view ─────────────────────────────────────────────────────────────────

def _blend(minutes: Optional[float], km: Optional[float], optimization_type: OptimizationType) -> Optional[float]:
    if optimization_type == OptimizationType.shortest_distance:
        return km
    if optimization_type == OptimizationType.balanced:
        if minutes is None or km is None:
            return None
        return config.BALANCED_DURATION_WEIGHT * minutes + config.BALANCED_DISTANCE_WEIGHT * km
    return minutes


def build_cost_view(
    nodes: Sequence[RouteNode],
    matrix_rows: Sequence[Optional[int]],
    distance_matrix: DistanceMatrix,
    optimization_type: OptimizationType,
) -> list[list[Optional[float]]]:
    """
    Cost matrix over *nodes* for the optimizer.

    ``matrix_rows[i]`` is the distance-matrix row of node i (None when the
    node is not covered, e.g. a departure point outside the matrix).  Pairs
    the matrix cannot answer are estimated from coordinates; pairs that cannot
    be estimated either stay None and the optimizer penalises them.
    """
    tool = DistanceTool()
    n = len(nodes)
    cost: list[list[Optional[float]]] = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            ri, rj = matrix_rows[i], matrix_rows[j]
            value: Optional[float] = None
            if ri is not None and rj is not None:
                value = _blend(
                    distance_matrix.duration(ri, rj),
                    distance_matrix.distance(ri, rj),
                    optimization_type,
                )
            if value is None:
                leg = tool.estimate((nodes[i].lat, nodes[i].lng), (nodes[j].lat, nodes[j].lng))
                if leg is not None:
                    value = _blend(leg.minutes, leg.km, optimization_type)
            cost[i][j] = value
    return cost


def order_locations(
    ordered: Sequence[Location],
    project: ProjectConfig,
    distance_matrix: Optional[DistanceMatrix],
    optimization_type: OptimizationType,
    matrix_index: dict[str, int],
) -> list[Location]:
    """Run the route optimizer over *ordered* and return the visiting order."""
    nodes = [RouteNode(loc.id, loc.lat, loc.lng, loc.time_slot) for loc in ordered]
    fixed_start: Optional[int] = None
    if project.has_departure:
        nodes.append(RouteNode(_DEPARTURE_NODE_ID, project.departure_lat, project.departure_lng, TimeSlot.normal))
        fixed_start = len(nodes) - 1

    cost_matrix = None
    if distance_matrix is not None:
        rows: list[Optional[int]] = [matrix_index[loc.id] for loc in ordered]
        if fixed_start is not None:
            rows.append(
                distance_matrix.size - 1 if distance_matrix.size == len(ordered) + 1 else None
            )
        cost_matrix = build_cost_view(nodes, rows, distance_matrix, optimization_type)

    result = optimize_route(nodes, cost_matrix, fixed_start=fixed_start)
    logger.info("Route optimised (%s): cost=%.2f", optimization_type.value, result.total_cost)
    return [ordered[idx] for idx in result.route if idx != fixed_start]


# ── Public API ────────────────────────────────────────────────────────────────

def build_schedule(
    locations: Sequence[Location],
    project: ProjectConfig,
    accommodations: Sequence[Accommodation] = (),
    meals: Sequence[Meal] = (),
    transports: Sequence[Transport] = (),
    distance_matrix: Optional[DistanceMatrix] = None,
    optimization_type: OptimizationType = OptimizationType.shortest_time,
    rest_stops: Sequence[RestStop] = (),
) -> Schedule:
    """
    Generate a complete schedule.  Pure: inputs are never mutated.

    Args:
        locations:         Places to shoot.  ``distance_matrix`` rows follow this order.
        project:           Working hours, day mode, dates, departure point.
        accommodations:    Nightly stays (check-in items, next-day start point).
        meals:             Registered meals (reused for lunch insertion).
        transports:        The first one's default_travel_buffer is the fallback gap.
        distance_matrix:   Optional n x n (or n+1 with departure) travel data.
        optimization_type: Cost the route optimizer minimises.
        rest_stops:        Validated only.

    Raises:
        ScheduleInputError: structurally invalid input.
    """
    _t0 = _time_mod.perf_counter()
    validate_schedule_input(
        locations, project,
        accommodations=accommodations,
        meals=meals,
        rest_stops=rest_stops,
        transports=transports,
        distance_matrix=distance_matrix,
    )

    matrix_index = {loc.id: i for i, loc in enumerate(locations)}
    ordered = sorted(locations, key=lambda loc: loc.order)
    travel_buffer = travel_buffer_for(transports)

    applied = OptimizationType.none
    if should_optimize(ordered, distance_matrix, optimization_type):
        ordered = order_locations(ordered, project, distance_matrix, optimization_type, matrix_index)
        applied = optimization_type

    fit = WorkHoursFitter(
        project,
        accommodations=accommodations,
        meals=meals,
        travel_buffer_min=travel_buffer,
        distance_matrix=distance_matrix,
        matrix_index=matrix_index,
    ).fit(ordered)

    schedule = Schedule(
        project_id=project.id,
        total_days=fit.total_days,
        items=fit.items,
        excluded_locations=fit.excluded,
        total_distance_km=fit.total_distance_km,
        total_duration_min=fit.total_duration_min,
        has_overtime_warning=fit.has_overtime_warning,
        optimization_type=applied,
        calculated_days=(
            estimate_days(locations, project, travel_buffer)
            if project.duration_mode == DurationMode.auto else None
        ),
    )

    _perf_logger.log("default", "PERFORMANCE", {
        "component": "build_schedule",
        "project_id": project.id,
        "locations": len(locations),
        "days": schedule.total_days,
        "items": len(schedule.items),
        "excluded": len(schedule.excluded_locations),
        "optimization": applied.value,
        "duration_ms": round((_time_mod.perf_counter() - _t0) * 1000, 2),
    })
    return schedule


def build_schedule_legacy(
    locations: Sequence[Location],
    project: ProjectConfig,
    accommodations: Sequence[Accommodation] = (),
    meals: Sequence[Meal] = (),
    transports: Sequence[Transport] = (),
    rest_stops: Sequence[RestStop] = (),
) -> Schedule:
    """Caller order, no distance data: every gap is the default travel buffer."""
    validate_schedule_input(
        locations, project,
        accommodations=accommodations,
        meals=meals,
        rest_stops=rest_stops,
        transports=transports,
    )
    ordered = sorted(locations, key=lambda loc: loc.order)
    travel_buffer = travel_buffer_for(transports)
    fit = WorkHoursFitter(
        project,
        accommodations=accommodations,
        meals=meals,
        travel_buffer_min=travel_buffer,
        estimate_travel=False,
    ).fit(ordered)
    return Schedule(
        project_id=project.id,
        total_days=fit.total_days,
        items=fit.items,
        excluded_locations=fit.excluded,
        total_distance_km=fit.total_distance_km,
        total_duration_min=fit.total_duration_min,
        has_overtime_warning=fit.has_overtime_warning,
        optimization_type=OptimizationType.none,
        calculated_days=(
            estimate_days(locations, project, travel_buffer)
            if project.duration_mode == DurationMode.auto else None
        ),
    )
