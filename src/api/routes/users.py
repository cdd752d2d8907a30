"""Public user directory routes."""

import logging
from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_authority_repo, get_user_repo
from api.models import PublicUserResponse
from port.authority_repository import AuthorityRepository
from port.user_repository import UserRepository
from services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])

MAX_PAGE_SIZE = 100


@router.get("/users", response_model=list[PublicUserResponse])
async def list_public_users(
    response: Response,
    page: int = Query(0, ge=0, description="0-based page index"),
    size: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    repo: UserRepository = Depends(get_user_repo),
):
    """List activated users (id and login only). Total count is in X-Total-Count."""
    result = user_service.get_all_public_users(repo, page=page, size=size)
    response.headers["X-Total-Count"] = str(result.total)
    return [PublicUserResponse.from_domain(u) for u in result.items]


@router.get("/authorities", response_model=list[str])
async def list_authorities(repo: AuthorityRepository = Depends(get_authority_repo)):
    """List all authority (role) names."""
    return [a.name for a in repo.find_all()]
