import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from campusmart.core.database import utcnow
from campusmart.core.dependencies import get_repositories
from campusmart.core.security import get_current_user
from campusmart.models.listing import Listing, ListingStatus
from campusmart.models.user import User
from campusmart.repositories.base import Repositories
from campusmart.schemas.listing import ListingCreate, ListingRead

router = APIRouter(prefix="/api/listings", tags=["listings"])


@router.get("", response_model=List[ListingRead])
def list_listings(
    repos: Repositories = Depends(get_repositories),
    current_user: User = Depends(get_current_user),
):
    # Marketplace-wide feed, not just the caller's own listings
    return [ListingRead.model_validate(l) for l in repos.listings.list_all()]


@router.post("", response_model=ListingRead, status_code=status.HTTP_201_CREATED)
def create_listing(
    listing_in: ListingCreate,
    repos: Repositories = Depends(get_repositories),
    current_user: User = Depends(get_current_user),
):
    listing = Listing(
        **listing_in.model_dump(),
        listing_id=f"listing_{uuid.uuid4().hex}",
        owner_id=current_user.user_id,
        status=ListingStatus.AVAILABLE.value,
        created_at=utcnow(),
    )
    repos.listings.add(listing)
    return ListingRead.model_validate(listing)
