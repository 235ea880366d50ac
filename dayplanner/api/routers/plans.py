import logging

from fastapi import APIRouter, Depends, HTTPException

from dayplanner.core.errors import PlannerError
from dayplanner.core.planner import PlanningPipeline, get_pipeline
from dayplanner.core.schemas import PlanRequest, PlanResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plans"])


@router.post("/plan", response_model=PlanResponse, response_model_by_alias=True)
async def create_plan(
    request: PlanRequest,
    pipeline: PlanningPipeline = Depends(get_pipeline),
) -> PlanResponse:
    """Plan a day from free text and return the saved itinerary."""
    try:
        itinerary = await pipeline.plan(request)
    except PlannerError as e:
        logger.warning(f"[Plans] Planning failed ({e.status_code}): {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return PlanResponse(
        id=itinerary.id,
        places=itinerary.places,
        travel_times=itinerary.travel_times,
        unresolved=itinerary.unresolved,
        warnings=itinerary.warnings,
    )
