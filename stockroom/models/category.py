"""
Category Model.

Product categories are created from the settings screen.  Names are
unique case-insensitively (Unicode case folding); the store enforces it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Category(BaseModel):
    """A product category.

    ``name`` and ``description`` are stripped to prevent phantom entries
    that differ only by surrounding whitespace.
    """

    id: Optional[str] = None
    name: str = Field(min_length=1)
    description: str = ""

    model_config = {"from_attributes": True}

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: object) -> object:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: object) -> object:
        # SQLite hands back INTEGER keys; Supabase uses UUID strings.
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def name_key(self) -> str:
        """Full Unicode case fold of the name, the key names are unique on."""
        return self.name.casefold()
