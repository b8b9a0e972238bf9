from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from videotube.api.deps import get_current_viewer, get_optional_viewer, get_tweet_service
from videotube.schemas import ApiResponse, ContentRequest, Page, TweetItem, TweetResponse
from videotube.services.tweets import TweetService

router = APIRouter(prefix="/tweets", tags=["Tweets"])


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_tweet(
    data: ContentRequest,
    viewer_id: str = Depends(get_current_viewer),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.create_tweet(viewer_id, data.content)
    return ApiResponse.ok(
        TweetResponse.model_validate(tweet),
        message="Tweet created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/user/{user_id}", response_model=ApiResponse)
async def get_user_tweets(
    user_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: TweetService = Depends(get_tweet_service),
):
    tweets = await service.get_user_tweets(user_id, viewer_id, page, limit)
    return ApiResponse.ok(Page[TweetItem](**tweets), message="Tweets fetched successfully")


@router.patch("/{tweet_id}", response_model=ApiResponse)
async def update_tweet(
    tweet_id: str,
    data: ContentRequest,
    viewer_id: str = Depends(get_current_viewer),
    service: TweetService = Depends(get_tweet_service),
):
    tweet = await service.update_tweet(tweet_id, viewer_id, data.content)
    return ApiResponse.ok(TweetResponse.model_validate(tweet), message="Tweet updated successfully")


@router.delete("/{tweet_id}", response_model=ApiResponse)
async def delete_tweet(
    tweet_id: str,
    viewer_id: str = Depends(get_current_viewer),
    service: TweetService = Depends(get_tweet_service),
):
    await service.delete_tweet(tweet_id, viewer_id)
    return ApiResponse.ok(message="Tweet deleted successfully")
