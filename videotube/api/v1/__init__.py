from fastapi import APIRouter

from videotube.api.v1 import (
    comments,
    healthcheck,
    likes,
    playlists,
    subscriptions,
    tweets,
    users,
    videos,
)

router = APIRouter(prefix="/api/v1")

router.include_router(healthcheck.router)
router.include_router(users.router)
router.include_router(videos.router)
router.include_router(comments.router)
router.include_router(likes.router)
router.include_router(subscriptions.router)
router.include_router(tweets.router)
router.include_router(playlists.router)
