"""
User Model.

The signed-in operator, as handed over by the authentication screens.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from stockroom.models.enums import UserRole


class User(BaseModel):
    """Represents a user account."""

    id: str
    email: str
    full_name: str
    role: UserRole = UserRole.ADMIN
    phone: Optional[str] = None

    model_config = {"from_attributes": True}
