"""
PinCredential Model.

The administrative PIN is a singleton record: exactly one row is expected
in ``pin_settings``.  Rotation replaces it wholesale.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PinCredential(BaseModel):
    """The stored administrative PIN."""

    id: Optional[str] = None
    pin: str = Field(pattern=r"^[0-9]{4,7}$")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"from_attributes": True}

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: object) -> object:
        if isinstance(v, int):
            return str(v)
        return v

    def __repr__(self) -> str:
        return f"PinCredential(id={self.id!r}, pin='***', updated_at={self.updated_at!r})"

    __str__ = __repr__
