"""User directory service — listing, admin deletion and registration cleanup.

Pure business logic with no HTTP dependencies.
Repositories are passed in by the caller (route dependency or worker wiring).
"""

import logging
from datetime import datetime, timedelta, timezone

from domain.model.user import DEFAULT_AUTHORITIES, Authority, Page, User
from port.authority_repository import AuthorityRepository
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

ACTIVATION_RETENTION = timedelta(days=3)


def get_all_public_users(repo: UserRepository, page: int = 0, size: int = 20) -> Page[User]:
    """Activated users only, in stable id order."""
    return repo.list_activated(page=page, size=size)


def get_all_managed_users(repo: UserRepository, page: int = 0, size: int = 20) -> Page[User]:
    return repo.list_all(page=page, size=size)


def get_user_with_authorities(repo: UserRepository, login: str) -> User | None:
    return repo.find_with_authorities_by_login(login)


def delete_user(repo: UserRepository, login: str) -> bool:
    """Delete the user with this login. Return False if no such user exists."""
    user = repo.find_by_login(login)
    if user is None:
        return False

    deleted = repo.delete(user.id)
    if deleted:
        logger.info("Deleted user", extra={"userId": user.id, "login": login})
    return deleted


def remove_not_activated_users(
    repo: UserRepository,
    now: datetime | None = None,
    retention: timedelta = ACTIVATION_RETENTION,
) -> list[str]:
    """Delete registrations still pending activation after the retention window.

    Returns the logins that were removed.
    """
    cutoff = (now or datetime.now(timezone.utc)) - retention
    removed = []
    for user in repo.find_stale_unactivated(cutoff):
        # a concurrent delete is not an error
        if repo.delete(user.id):
            removed.append(user.login)
            logger.debug("Deleted not activated user", extra={"login": user.login})

    if removed:
        logger.info("Removed not activated users", extra={"count": len(removed), "cutoff": cutoff.isoformat()})
    return removed


def ensure_default_authorities(repo: AuthorityRepository) -> list[Authority]:
    """Seed the built-in roles. Safe to call on every startup."""
    return [repo.save(Authority(name)) for name in DEFAULT_AUTHORITIES]
