from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from videotube.api.deps import get_current_viewer, get_optional_viewer, get_video_service
from videotube.schemas import ApiResponse, Page, VideoDetail, VideoResponse, VideoSummary
from videotube.services.media import temp_uploads
from videotube.services.videos import VideoService

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get("", response_model=ApiResponse)
async def list_videos(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    query: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[str] = Query(None, alias="sortType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: VideoService = Depends(get_video_service),
):
    """Search and sort published videos. Owners also see their own drafts."""
    videos = await service.list_videos(
        viewer_id,
        page=page,
        limit=limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        user_id=user_id,
    )
    return ApiResponse.ok(Page[VideoSummary](**videos), message="Videos fetched successfully")


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def publish_video(
    title: str = Form(...),
    description: str = Form(...),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_current_viewer),
    service: VideoService = Depends(get_video_service),
):
    async with temp_uploads(video_file, thumbnail) as (video_path, thumbnail_path):
        video = await service.publish(
            viewer_id,
            title,
            description,
            video_path=video_path,
            thumbnail_path=thumbnail_path,
        )
    return ApiResponse.ok(
        VideoResponse.model_validate(video),
        message="Video published successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{video_id}", response_model=ApiResponse)
async def get_video(
    video_id: str,
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: VideoService = Depends(get_video_service),
):
    video = await service.get_video(video_id, viewer_id)
    return ApiResponse.ok(VideoDetail(**video), message="Video fetched successfully")


@router.patch("/{video_id}", response_model=ApiResponse)
async def update_video(
    video_id: str,
    title: str = Form(...),
    description: str = Form(...),
    thumbnail: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_current_viewer),
    service: VideoService = Depends(get_video_service),
):
    async with temp_uploads(thumbnail) as (thumbnail_path,):
        video = await service.update_video(
            video_id,
            viewer_id,
            title,
            description,
            thumbnail_path=thumbnail_path,
        )
    return ApiResponse.ok(VideoResponse.model_validate(video), message="Video updated successfully")


@router.delete("/{video_id}", response_model=ApiResponse)
async def delete_video(
    video_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: VideoService = Depends(get_video_service),
):
    await service.delete_video(video_id, viewer_id)
    return ApiResponse.ok(message="Video deleted successfully")


@router.patch("/toggle/publish/{video_id}", response_model=ApiResponse)
async def toggle_publish_status(
    video_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: VideoService = Depends(get_video_service),
):
    video = await service.toggle_publish_status(video_id, viewer_id)
    return ApiResponse.ok(
        VideoResponse.model_validate(video),
        message="Video publish status toggled successfully",
    )
