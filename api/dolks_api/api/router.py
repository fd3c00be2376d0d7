from fastapi import APIRouter

from dolks_api.api.routes import admin, auth, events, feed, health, job_requests, posts

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(feed.router, prefix="/feed", tags=["company"])
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
api_router.include_router(job_requests.router, prefix="/job-requests", tags=["job-requests"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
