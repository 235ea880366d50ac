import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dayplanner.api.routers.cities import router as cities_router
from dayplanner.api.routers.itineraries import router as itineraries_router
from dayplanner.api.routers.plans import router as plans_router
from dayplanner.core.settings import get_settings

load_dotenv()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="Day Planner Backend")

    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]
    # Extra origins from environment, comma separated
    if settings.allowed_origins:
        allowed_origins.extend(
            [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @application.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok"}

    application.include_router(plans_router)
    application.include_router(itineraries_router)
    application.include_router(cities_router)
    return application


app = create_app()
