"""
Admin authentication for plan approvals.

Admin capability is checked through AdminAuthorizer implementations:
- SharedSecretAuthorizer: X-Admin-Key header compared with ADMIN_KEY
- AdminIdentityAuthorizer: logged-in identity listed in ADMIN_EMAILS

Auth modes (ADMIN_AUTH_MODE):
- "secret": only the shared secret
- "identity": only admin identities
- "hybrid": either (default)

Failures always surface as a generic 403 without hinting how close the
presented credential was.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Protocol

from fastapi import Request

from codegolden.core.auth import get_optional_identity
from codegolden.core.config import Settings
from codegolden.core.errors import PermissionError

logger = logging.getLogger("codegolden.admin")

ADMIN_KEY_HEADER = "X-Admin-Key"


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_type: Literal["identity", "shared_secret"]
    actor_id: str  # admin identity or "secret:<hash>"
    actor_display: Optional[str] = None


class AdminAuthorizer(Protocol):
    def authorize(self, request: Request) -> Optional[AdminActor]:
        """Return the admin actor for this request, or None if not an admin."""
        ...


class SharedSecretAuthorizer:
    """Single configured secret presented in the X-Admin-Key header."""

    def __init__(self, secret: Optional[str]):
        self.secret = secret or None

    @property
    def configured(self) -> bool:
        return bool(self.secret)

    def authorize(self, request: Request) -> Optional[AdminActor]:
        if not self.secret:
            return None
        presented = request.headers.get(ADMIN_KEY_HEADER, "").strip()
        if not presented or not hmac.compare_digest(presented.encode(), self.secret.encode()):
            return None
        key_hash = hashlib.sha256(presented.encode()).hexdigest()[:16]
        return AdminActor(
            actor_type="shared_secret",
            actor_id=f"secret:{key_hash}",
            actor_display="Admin Key",
        )


class AdminIdentityAuthorizer:
    """Logged-in identity must be one of the configured admin identities."""

    def __init__(self, admin_identities: Iterable[str]):
        self.admin_identities = {item.strip().lower() for item in admin_identities if item and item.strip()}

    @property
    def configured(self) -> bool:
        return bool(self.admin_identities)

    def authorize(self, request: Request) -> Optional[AdminActor]:
        if not self.admin_identities:
            return None
        identity = get_optional_identity(request)
        if identity is None or identity.identity not in self.admin_identities:
            return None
        return AdminActor(
            actor_type="identity",
            actor_id=identity.identity,
            actor_display=identity.display_name or identity.identity,
        )


def build_admin_authorizers(settings: Settings) -> List[AdminAuthorizer]:
    mode = (settings.ADMIN_AUTH_MODE or "hybrid").lower()
    authorizers: List[AdminAuthorizer] = []
    if mode in {"identity", "hybrid"}:
        authorizers.append(AdminIdentityAuthorizer(settings.admin_email_list))
    if mode in {"secret", "hybrid"}:
        authorizers.append(SharedSecretAuthorizer(settings.ADMIN_KEY))
    if not any(getattr(a, "configured", True) for a in authorizers):
        logger.warning(f"[admin] no admin credentials configured for ADMIN_AUTH_MODE={mode}; admin endpoints will refuse all callers")
    return authorizers


def get_admin_actor(request: Request) -> Optional[AdminActor]:
    """
    Attempt to authenticate admin from request.
    Returns AdminActor or None (does not raise).
    """
    for authorizer in request.app.state.admin_authorizers:
        actor = authorizer.authorize(request)
        if actor:
            return actor
    return None


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: Require admin authentication.

    Usage:
        @router.post("/api/admin/approve")
        def approve(actor: AdminActor = Depends(require_admin)):
            ...
    """
    actor = get_admin_actor(request)
    if not actor:
        logger.warning("[admin] rejected admin request", extra={"path": request.url.path})
        raise PermissionError("Forbidden")
    return actor
