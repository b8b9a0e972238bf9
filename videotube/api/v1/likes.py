from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from videotube.api.deps import get_current_viewer, get_like_service
from videotube.schemas import ApiResponse, LikeResponse, LikedVideo, Page
from videotube.services.relations import ToggleResult
from videotube.services.social import LikeService

router = APIRouter(prefix="/likes", tags=["Likes"])


def _toggle_response(response: Response, result: ToggleResult, noun: str) -> ApiResponse:
    """201 with the new edge when a like was added, 200 with empty data when removed."""
    if result.added:
        response.status_code = status.HTTP_201_CREATED
        return ApiResponse.ok(
            LikeResponse.model_validate(result.edge),
            message=f"{noun} Liked",
            status_code=status.HTTP_201_CREATED,
        )
    return ApiResponse.ok(message=f"{noun} Unliked")


@router.post("/toggle/v/{video_id}", response_model=ApiResponse)
async def toggle_video_like(
    video_id: str,
    response: Response,
    viewer_id: str = Depends(get_current_viewer),
    service: LikeService = Depends(get_like_service),
):
    result = await service.toggle_video_like(viewer_id, video_id)
    return _toggle_response(response, result, "Video")


@router.post("/toggle/c/{comment_id}", response_model=ApiResponse)
async def toggle_comment_like(
    comment_id: str,
    response: Response,
    viewer_id: str = Depends(get_current_viewer),
    service: LikeService = Depends(get_like_service),
):
    result = await service.toggle_comment_like(viewer_id, comment_id)
    return _toggle_response(response, result, "Comment")


@router.post("/toggle/t/{tweet_id}", response_model=ApiResponse)
async def toggle_tweet_like(
    tweet_id: str,
    response: Response,
    viewer_id: str = Depends(get_current_viewer),
    service: LikeService = Depends(get_like_service),
):
    result = await service.toggle_tweet_like(viewer_id, tweet_id)
    return _toggle_response(response, result, "Tweet")


@router.get("/videos", response_model=ApiResponse)
async def get_liked_videos(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: str = Depends(get_current_viewer),
    service: LikeService = Depends(get_like_service),
):
    videos = await service.get_liked_videos(viewer_id, page, limit)
    message = "Liked videos fetched successfully" if videos["total"] else "No liked videos found"
    return ApiResponse.ok(Page[LikedVideo](**videos), message=message)
