"""
Session provider built on Flask-Login.

A request is authenticated either by the Flask-Login cookie session set at
login, or by an ``Authorization: Bearer <token>`` header carrying a token
issued by ``/api/auth/login`` or ``/api/auth/register``.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, current_app, request
from flask_login import LoginManager, UserMixin, current_user

from .utils.errors import AuthenticationError

logger = logging.getLogger(__name__)

login_manager = LoginManager()


class User(UserMixin):
    """Authenticated account as seen by Flask-Login."""

    def __init__(self, id: str, email: str, name: Optional[str] = None):
        self.id = id
        self.email = email
        self.name = name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(id=data["id"], email=data["email"], name=data.get("name"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name}


def _user_storage():
    return current_app.extensions["user_storage"]


def bearer_token(req=None) -> Optional[str]:
    """Token from the Authorization header, if it uses the Bearer scheme."""
    header = (req or request).headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@login_manager.user_loader
def load_user(user_id: str) -> Optional[User]:
    data = _user_storage().get_user(user_id)
    return User.from_dict(data) if data else None


@login_manager.request_loader
def load_user_from_request(req) -> Optional[User]:
    token = bearer_token(req)
    if not token:
        return None
    user_id = _user_storage().get_user_id_for_token(token)
    if not user_id:
        logger.debug("Unknown bearer token")
        return None
    return load_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    raise AuthenticationError()


def init_auth(app: Flask) -> None:
    login_manager.init_app(app)


def get_current_session() -> Optional[Dict[str, Any]]:
    """
    Session of the current request.

    Returns:
        ``{"user": {"id", "email", "name"}}`` or None when nobody is signed in
    """
    if not current_user or not current_user.is_authenticated:
        return None
    user_id = getattr(current_user, "id", None)
    if not user_id:
        return None
    return {"user": current_user.to_dict()}


def get_current_user_id() -> Optional[str]:
    session = get_current_session()
    return session["user"]["id"] if session else None


def require_user_id() -> str:
    """
    Owner id for owner-scoped operations.

    Raises:
        AuthenticationError: If there is no session or it has no user id
    """
    user_id = get_current_user_id()
    if not user_id:
        raise AuthenticationError()
    return user_id
