"""User management routes (ROLE_ADMIN only)."""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from api.dependencies import get_user_repo
from api.models import AdminUserResponse, CurrentUser
from api.security import require_admin
from port.user_repository import UserRepository
from services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

MAX_PAGE_SIZE = 100


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    response: Response,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    repo: UserRepository = Depends(get_user_repo),
    admin: CurrentUser = Depends(require_admin),
):
    """List every user, activated or not. Total count is in X-Total-Count."""
    result = user_service.get_all_managed_users(repo, page=page, size=size)
    response.headers["X-Total-Count"] = str(result.total)
    return [AdminUserResponse.from_domain(u) for u in result.items]


@router.get("/users/{login}", response_model=AdminUserResponse)
async def get_user(
    login: str,
    repo: UserRepository = Depends(get_user_repo),
    admin: CurrentUser = Depends(require_admin),
):
    """Get one user with its authorities."""
    user = user_service.get_user_with_authorities(repo, login)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return AdminUserResponse.from_domain(user)


@router.delete("/users/{login}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    login: str,
    repo: UserRepository = Depends(get_user_repo),
    admin: CurrentUser = Depends(require_admin),
):
    """Delete a user by login."""
    if not user_service.delete_user(repo, login):
        raise HTTPException(status_code=404, detail="User not found")

    logger.info("User deleted by admin", extra={"login": login, "adminLogin": admin.login})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
