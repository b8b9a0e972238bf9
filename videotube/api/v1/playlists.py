from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from videotube.api.deps import get_current_viewer, get_optional_viewer, get_playlist_service
from videotube.schemas import ApiResponse, Page, PlaylistCreate, PlaylistDetail, PlaylistResponse, PlaylistSummary
from videotube.services.playlists import PlaylistService

router = APIRouter(prefix="/playlists", tags=["Playlists"])


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_playlist(
    data: PlaylistCreate,
    viewer_id: str = Depends(get_current_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.create_playlist(viewer_id, data.name, data.description)
    return ApiResponse.ok(
        PlaylistResponse(**playlist),
        message="Playlist created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/user/{user_id}", response_model=ApiResponse)
async def get_user_playlists(
    user_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlists = await service.get_user_playlists(user_id, viewer_id, page, limit)
    return ApiResponse.ok(Page[PlaylistSummary](**playlists), message="User playlists fetched successfully")


@router.get("/{playlist_id}", response_model=ApiResponse)
async def get_playlist(
    playlist_id: str,
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.get_playlist(playlist_id, viewer_id)
    return ApiResponse.ok(PlaylistDetail(**playlist), message="Playlist fetched successfully")


@router.patch("/add/{video_id}/{playlist_id}", response_model=ApiResponse)
async def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.add_video(playlist_id, video_id, viewer_id)
    return ApiResponse.ok(PlaylistResponse(**playlist), message="Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}", response_model=ApiResponse)
async def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.remove_video(playlist_id, video_id, viewer_id)
    return ApiResponse.ok(PlaylistResponse(**playlist), message="Video removed from playlist successfully")


@router.patch("/{playlist_id}", response_model=ApiResponse)
async def update_playlist(
    playlist_id: str,
    data: PlaylistCreate,
    viewer_id: str = Depends(get_current_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    playlist = await service.update_playlist(playlist_id, viewer_id, data.name, data.description)
    return ApiResponse.ok(PlaylistResponse(**playlist), message="Playlist updated successfully")


@router.delete("/{playlist_id}", response_model=ApiResponse)
async def delete_playlist(
    playlist_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: PlaylistService = Depends(get_playlist_service),
):
    await service.delete_playlist(playlist_id, viewer_id)
    return ApiResponse.ok(message="Playlist deleted successfully")
