from fastapi import APIRouter

from eventpix.api.v1 import admin, auth, events, health, members, photos, timeline


api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(members.router, prefix="/events", tags=["event-members"])
api_router.include_router(photos.router, prefix="/photos", tags=["photos"])
api_router.include_router(timeline.router, prefix="/timeline", tags=["timeline"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
