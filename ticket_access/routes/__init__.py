from fastapi import APIRouter

from .devices import router as devices_router
from .events import router as events_router
from .tickets import router as tickets_router

api_router = APIRouter()
api_router.include_router(tickets_router, tags=["tickets"])
api_router.include_router(devices_router, tags=["devices"])
api_router.include_router(events_router, tags=["events"])
