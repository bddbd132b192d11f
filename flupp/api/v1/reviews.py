"""Review endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from flupp.api.deps import get_review_service
from flupp.models.review import Review
from flupp.schemas.review import ReviewCreate, ReviewResponse
from flupp.services.review_service import ReviewService

router = APIRouter()

Reviews = Annotated[ReviewService, Depends(get_review_service)]


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(review_data: ReviewCreate, reviews: Reviews) -> Review:
    """Review a paid booking. One review per booking."""
    return await reviews.create_review(review_data)


@router.get("/for-booking/{booking_id}", response_model=list[ReviewResponse])
async def list_reviews_for_booking(booking_id: str, reviews: Reviews) -> list[Review]:
    return await reviews.list_for_booking(booking_id)
