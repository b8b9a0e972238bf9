from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from videotube.api.deps import get_current_viewer, get_optional_viewer, get_subscription_service
from videotube.schemas import ApiResponse, Page, SubscribedChannel, SubscriberItem, SubscriptionResponse
from videotube.services.social import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post("/c/{channel_id}", response_model=ApiResponse)
async def toggle_subscription(
    channel_id: str,
    response: Response,
    viewer_id: str = Depends(get_current_viewer),
    service: SubscriptionService = Depends(get_subscription_service),
):
    result = await service.toggle_subscription(viewer_id, channel_id)
    if result.added:
        response.status_code = status.HTTP_201_CREATED
        return ApiResponse.ok(
            SubscriptionResponse.model_validate(result.edge),
            message="Subscription added successfully",
            status_code=status.HTTP_201_CREATED,
        )
    return ApiResponse.ok(message="Subscription removed successfully")


@router.get("/c/{channel_id}", response_model=ApiResponse)
async def get_channel_subscribers(
    channel_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscribers = await service.get_channel_subscribers(channel_id, viewer_id, page, limit)
    return ApiResponse.ok(
        Page[SubscriberItem](**subscribers),
        message="Subscribers fetched successfully",
    )


@router.get("/u/{subscriber_id}", response_model=ApiResponse)
async def get_subscribed_channels(
    subscriber_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: SubscriptionService = Depends(get_subscription_service),
):
    channels = await service.get_subscribed_channels(subscriber_id, viewer_id, page, limit)
    return ApiResponse.ok(
        Page[SubscribedChannel](**channels),
        message="Subscribed channels fetched successfully",
    )
