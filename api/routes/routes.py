"""
api/routes/routes.py
--------------------
POST /v1/routes/optimize

Orders arbitrary nodes without building a schedule, e.g. to preview the
visiting order before generating days.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from modules.planning.route_optimizer import RouteNode, optimize_route
from schemas.requests import RouteOptimizeRequest

router = APIRouter()


@router.post("/optimize", summary="Order nodes by travel cost")
def optimize(req: RouteOptimizeRequest) -> dict:
    """Nearest neighbour + 2-opt, early-morning → normal → night."""
    nodes = [RouteNode(n.id, n.lat, n.lng, n.time_slot) for n in req.nodes]
    try:
        result = optimize_route(
            nodes,
            cost_matrix=req.cost_matrix,
            fixed_start=req.fixed_start_index,
            max_iterations=req.max_iterations,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Route optimisation error: {exc}") from exc
    return {
        "route":      result.route,
        "node_ids":   [nodes[i].id for i in result.route],
        "total_cost": round(result.total_cost, 2),
    }
