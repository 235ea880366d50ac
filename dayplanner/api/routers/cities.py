from fastapi import APIRouter

from dayplanner.core.cities import list_cities
from dayplanner.core.schemas import CityInfo

router = APIRouter(prefix="/cities", tags=["cities"])


@router.get("", response_model=list[CityInfo])
async def get_cities() -> list[CityInfo]:
    return list_cities()
