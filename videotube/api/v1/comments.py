from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from videotube.api.deps import get_comment_service, get_current_viewer, get_optional_viewer
from videotube.schemas import ApiResponse, CommentItem, CommentResponse, ContentRequest, Page
from videotube.services.comments import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("/{video_id}", response_model=ApiResponse)
async def get_video_comments(
    video_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: CommentService = Depends(get_comment_service),
):
    comments = await service.get_video_comments(video_id, viewer_id, page, limit)
    return ApiResponse.ok(Page[CommentItem](**comments), message="Comments fetched successfully")


@router.post("/{video_id}", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: str,
    data: ContentRequest,
    viewer_id: str = Depends(get_current_viewer),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.add_comment(video_id, viewer_id, data.content)
    return ApiResponse.ok(
        CommentResponse.model_validate(comment),
        message="Comment added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.patch("/c/{comment_id}", response_model=ApiResponse)
async def update_comment(
    comment_id: str,
    data: ContentRequest,
    viewer_id: str = Depends(get_current_viewer),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.update_comment(comment_id, viewer_id, data.content)
    return ApiResponse.ok(CommentResponse.model_validate(comment), message="Comment updated successfully")


@router.delete("/c/{comment_id}", response_model=ApiResponse)
async def delete_comment(
    comment_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete_comment(comment_id, viewer_id)
    return ApiResponse.ok(message="Comment deleted successfully")
