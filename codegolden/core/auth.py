"""
Session authentication helpers.

The signed session cookie (Starlette SessionMiddleware) carries only a session
id; the identity lives in the app's SessionStore.
"""
from typing import Optional

from fastapi import Request

from codegolden.core.errors import UnauthenticatedError
from codegolden.models.identity import Identity


SESSION_ID_KEY = "sid"


def login_session(request: Request, identity: Identity) -> str:
    """Bind identity to a fresh session id and store it in the cookie."""
    store = request.app.state.sessions
    previous = request.session.get(SESSION_ID_KEY)
    if previous:
        store.delete(previous)
    session_id = store.create(identity)
    request.session[SESSION_ID_KEY] = session_id
    return session_id


def logout_session(request: Request) -> None:
    session_id = request.session.pop(SESSION_ID_KEY, None)
    request.app.state.sessions.delete(session_id)


def get_optional_identity(request: Request) -> Optional[Identity]:
    """FastAPI dependency: the logged-in identity, or None."""
    session_id = request.session.get(SESSION_ID_KEY)
    return request.app.state.sessions.get(session_id)


def get_current_identity(request: Request) -> Identity:
    """
    FastAPI dependency: require a logged-in identity.

    Raises:
        UnauthenticatedError 401: no session or unknown session id
    """
    identity = get_optional_identity(request)
    if identity is None:
        raise UnauthenticatedError("Login required")
    return identity
