from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from videotube.api.deps import get_current_viewer, get_optional_viewer, get_user_service
from videotube.schemas import (
    AccountUpdate,
    ApiResponse,
    ChannelProfile,
    LoginRequest,
    Page,
    PasswordChange,
    RefreshRequest,
    TokenResponse,
    UserResponse,
    WatchedVideo,
)
from videotube.services.media import temp_uploads
from videotube.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def _token_response(user, access_token: str, refresh_token: str) -> TokenResponse:
    return TokenResponse(
        user=UserResponse.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
    )


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    username: str = Form(...),
    email: str = Form(...),
    full_name: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    service: UserService = Depends(get_user_service),
):
    """Register a new user. Avatar is required, cover image optional."""
    async with temp_uploads(avatar, cover_image) as (avatar_path, cover_image_path):
        user = await service.register(
            username=username,
            email=email,
            full_name=full_name,
            password=password,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    return ApiResponse.ok(
        UserResponse.model_validate(user),
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login", response_model=ApiResponse)
async def login(data: LoginRequest, service: UserService = Depends(get_user_service)):
    user, access_token, refresh_token = await service.login(
        data.password, username=data.username, email=data.email
    )
    return ApiResponse.ok(
        _token_response(user, access_token, refresh_token),
        message="User logged in successfully",
    )


@router.post("/logout", response_model=ApiResponse)
async def logout(
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    await service.logout(viewer_id)
    return ApiResponse.ok(message="User logged out successfully")


@router.post("/refresh-token", response_model=ApiResponse)
async def refresh_token(data: RefreshRequest, service: UserService = Depends(get_user_service)):
    user, access_token, new_refresh_token = await service.refresh_access_token(data.refresh_token)
    return ApiResponse.ok(
        _token_response(user, access_token, new_refresh_token),
        message="Access token refreshed",
    )


@router.post("/change-password", response_model=ApiResponse)
async def change_password(
    data: PasswordChange,
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    await service.change_password(viewer_id, data.old_password, data.new_password)
    return ApiResponse.ok(message="Password changed successfully")


@router.get("/current-user", response_model=ApiResponse)
async def current_user(
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_user(viewer_id)
    return ApiResponse.ok(UserResponse.model_validate(user), message="Current user fetched successfully")


@router.patch("/update-account", response_model=ApiResponse)
async def update_account(
    data: AccountUpdate,
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_account(viewer_id, data.full_name, data.email)
    return ApiResponse.ok(UserResponse.model_validate(user), message="Account details updated successfully")


@router.patch("/avatar", response_model=ApiResponse)
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    async with temp_uploads(avatar) as (avatar_path,):
        user = await service.update_avatar(viewer_id, avatar_path)
    return ApiResponse.ok(UserResponse.model_validate(user), message="Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse)
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None),
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    async with temp_uploads(cover_image) as (cover_image_path,):
        user = await service.update_cover_image(viewer_id, cover_image_path)
    return ApiResponse.ok(UserResponse.model_validate(user), message="Cover image updated successfully")


@router.get("/c/{username}", response_model=ApiResponse)
async def channel_profile(
    username: str,
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: UserService = Depends(get_user_service),
):
    """Channel page: subscriber counts and whether the viewer is subscribed."""
    profile = await service.channel_profile(username, viewer_id)
    return ApiResponse.ok(ChannelProfile(**profile), message="User channel fetched successfully")


@router.get("/history", response_model=ApiResponse)
async def watch_history(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: str = Depends(get_current_viewer),
    service: UserService = Depends(get_user_service),
):
    history = await service.watch_history(viewer_id, page, limit)
    return ApiResponse.ok(Page[WatchedVideo](**history), message="Watch history fetched successfully")
