"""
commonweal.api.schemas — Shared request-model building blocks
===============================================================
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UTCDatetime = Annotated[datetime, AfterValidator(_to_utc)]


class CamelModel(BaseModel):
    """Request body accepting both ``camelCase`` and ``snake_case`` keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CommentBody(CamelModel):
    text: str = Field(min_length=1, max_length=1000)


class FeedbackBody(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)


def changes(body: BaseModel, nullable: frozenset[str] | set[str] = frozenset()) -> dict:
    """Fields the client sent; an explicit null only clears a *nullable* column."""
    return {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in nullable
    }
