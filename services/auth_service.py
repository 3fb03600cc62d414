"""Session ownership for the signed-in user.

Only ``AuthContext`` reads or writes the session keys it owns; routes ask it
for the current user instead of touching ``flask.session`` directly. The
backing store is swappable so the same context works over the Flask cookie
session or a plain dict.
"""
from __future__ import annotations

from typing import Any, MutableMapping, Optional

from flask import session

from database import db
from models.user import User


class FlaskSessionStore:
    """Store backed by the signed Flask session cookie."""

    def get(self, key: str, default: Any = None) -> Any:
        return session.get(key, default)

    def set(self, key: str, value: Any) -> None:
        session[key] = value

    def pop(self, key: str) -> None:
        session.pop(key, None)


class MemorySessionStore:
    """Store backed by a dict; used by CLI commands and tests."""

    def __init__(self, data: Optional[MutableMapping[str, Any]] = None):
        self.data = data if data is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def pop(self, key: str) -> None:
        self.data.pop(key, None)


class AuthContext:
    USER_ID_KEY = "user_id"
    USERNAME_KEY = "user"

    def __init__(self, store=None):
        self.store = store or FlaskSessionStore()

    @property
    def user_id(self) -> Optional[int]:
        return self.store.get(self.USER_ID_KEY)

    def current_user(self) -> Optional[User]:
        user_id = self.user_id
        if not user_id:
            return None
        user = db.session.get(User, user_id)
        if user is None:
            # The account was removed after the session was issued.
            self.logout()
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        user = User.query.filter_by(username=username).first()
        if user and user.check_password(password):
            return user
        return None

    def login(self, user: User) -> None:
        self.store.set(self.USER_ID_KEY, user.id)
        self.store.set(self.USERNAME_KEY, user.display_name)

    def logout(self) -> None:
        self.store.pop(self.USER_ID_KEY)
        self.store.pop(self.USERNAME_KEY)


auth_context = AuthContext()
