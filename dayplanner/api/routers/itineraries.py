import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from dayplanner.core.errors import StorageError
from dayplanner.core.itinerary_assembler import ItineraryStorage
from dayplanner.core.planner import PlanningPipeline, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


def get_storage(pipeline: PlanningPipeline = Depends(get_pipeline)) -> ItineraryStorage:
    return pipeline.storage


@router.get("/{itinerary_id}")
async def get_itinerary(
    itinerary_id: str = Path(..., description="Itinerary ID"),
    storage: ItineraryStorage = Depends(get_storage),
) -> dict:
    try:
        doc = storage.get_itinerary(itinerary_id)
    except StorageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    if not doc:
        raise HTTPException(status_code=404, detail="Itinerary not found")
    return doc


@router.delete("/{itinerary_id}")
async def delete_itinerary(
    itinerary_id: str = Path(..., description="Itinerary ID"),
    storage: ItineraryStorage = Depends(get_storage),
) -> dict:
    try:
        deleted = storage.delete_itinerary(itinerary_id)
    except StorageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Itinerary not found")
    logger.info(f"[Itineraries] Deleted {itinerary_id}")
    return {"deleted": True, "id": itinerary_id}
