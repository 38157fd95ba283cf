"""Response models for remote bus API mutations."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class MutationResponse(BaseModel):
    """Generic ``{ok?, error?, id?}`` reply from the remote bus API."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    ok: bool | None = None
    error: str | None = None
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))

    @field_validator("id", "error", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def failed(self) -> bool:
        return self.ok is False or bool(self.error)
