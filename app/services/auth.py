"""
Authorization Gate

Turns identity provider claims into a Principal and answers the three
questions every operation asks:

- Who is calling? (require_authenticated)
- Are they an admin? (require_admin / is_admin)
- What may they do with this review? (capabilities)

Anonymous callers are represented by None. They may read listings, and
their capability flags are always false.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from app.config import get_settings
from app.errors import forbidden, unauthenticated
from app.models.review import Review
from app.services.security import decode_token

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as vouched for by the identity provider."""

    subject_id: str
    display_name: str | None = None
    groups: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Capabilities:
    can_edit: bool
    can_delete: bool


def _parse_groups(raw: Any) -> frozenset[str]:
    if not raw:
        return frozenset()
    if isinstance(raw, str):
        return frozenset(g.strip() for g in raw.split(",") if g.strip())
    return frozenset(str(g) for g in raw)


def principal_from_claims(claims: dict[str, Any]) -> Principal | None:
    """
    Build a Principal from decoded token claims.

    Returns None when the claims carry no subject.
    """
    subject_id = claims.get("sub")
    if not subject_id:
        return None

    return Principal(
        subject_id=str(subject_id),
        display_name=claims.get(settings.username_claim) or claims.get("email"),
        groups=_parse_groups(claims.get(settings.groups_claim)),
    )


def authenticate(token: str | None) -> Principal | None:
    """Resolve a bearer token to a Principal, or None if it is unusable."""
    if not token:
        return None

    claims = decode_token(token)
    if claims is None:
        return None

    return principal_from_claims(claims)


def require_authenticated(token: str | None) -> Principal:
    """
    Resolve a bearer token or fail.

    Raises:
        ServiceError: UNAUTHENTICATED if the token is missing or invalid
    """
    principal = authenticate(token)
    if principal is None:
        raise unauthenticated("Could not validate credentials")
    return principal


def is_admin(principal: Principal | None) -> bool:
    return principal is not None and settings.admin_group in principal.groups


def require_admin(principal: Principal) -> None:
    """
    Raises:
        ServiceError: FORBIDDEN unless the principal is in the admin group
    """
    if not is_admin(principal):
        logger.warning(f"Admin operation refused for subject {principal.subject_id}")
        raise forbidden("Admin privileges required")


def is_author(principal: Principal | None, author_id: str) -> bool:
    return principal is not None and principal.subject_id == author_id


def capabilities(principal: Principal | None, review: Review) -> Capabilities:
    """
    Per-review capability flags relative to the caller.

    - can_edit: the caller wrote the review
    - can_delete: the caller wrote the review or is an admin
    """
    can_edit = is_author(principal, review.author_id)
    return Capabilities(
        can_edit=can_edit,
        can_delete=can_edit or is_admin(principal),
    )
