"""
Session State.

Sign-in itself happens in the presentation layer.  Once it succeeds the
screen hands the :class:`~stockroom.models.user.User` to
:meth:`SessionManager.sign_in`; from then on the settings core reads the
operator from here to authorise mutations and to stamp audit events.

One ``SessionManager`` is created at startup and injected wherever the
signed-in operator is needed::

    session = SessionManager()
    session.sign_in(User(id="u-1", email="owner@example.com", full_name="Owner"))
    session.operator            # -> User
    session.sign_out()
"""

from __future__ import annotations

import threading
from typing import Optional

from stockroom.models.user import User


class SessionManager:
    """Thread-safe holder of the signed-in operator."""

    def __init__(self) -> None:
        self._guard = threading.RLock()
        self._operator: Optional[User] = None

    def sign_in(self, user: User) -> None:
        with self._guard:
            self._operator = user

    def sign_out(self) -> None:
        with self._guard:
            self._operator = None

    @property
    def operator(self) -> Optional[User]:
        """The signed-in user, or ``None`` when nobody is signed in."""
        with self._guard:
            return self._operator

    @property
    def is_authenticated(self) -> bool:
        return self.operator is not None
