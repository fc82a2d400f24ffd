"""Route handlers for the Web API."""

from progression.web.routes.answers import router as answers_router
from progression.web.routes.health import router as health_router
from progression.web.routes.placement import router as placement_router
from progression.web.routes.practice import router as practice_router
from progression.web.routes.progress import router as progress_router
from progression.web.routes.tracks import router as tracks_router
from progression.web.routes.units import router as units_router

__all__ = [
    "answers_router",
    "health_router",
    "placement_router",
    "practice_router",
    "progress_router",
    "tracks_router",
    "units_router",
]
