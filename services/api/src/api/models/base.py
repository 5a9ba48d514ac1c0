"""Base Pydantic models and the response envelope."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseResponse(BaseModel):
    """Base response model; fields serialize in camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        alias_generator=to_camel,
    )


class BaseRequest(BaseModel):
    """Base request model accepting camelCase or snake_case keys."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
    )


class TimestampMixin(BaseModel):
    """Mixin for created_at and updated_at fields."""

    created_at: datetime = Field(description="When the resource was created")
    updated_at: datetime = Field(description="When the resource was last updated")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"success": true, "data": ...}``."""

    success: bool = Field(default=True, description="Always true for success responses")
    data: T = Field(description="Response payload")

    @classmethod
    def of(cls, data: T) -> "ApiResponse[T]":
        return cls(data=data)


class ErrorEnvelope(BaseModel):
    """Failure envelope: ``{"success": false, "error": ...}``."""

    success: bool = Field(default=False, description="Always false for errors")
    error: str = Field(description="Human-readable error message")
    quota: dict[str, Any] | None = Field(
        default=None, description="Breached dimension, attempted value and limit"
    )

    @classmethod
    def create(cls, message: str, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build the JSON body for an error response.

        Args:
            message: Error message.
            extra: Additional top-level fields (e.g. ``quota``).

        Returns:
            Serializable dict without unset optional fields.
        """
        envelope = cls(error=message, **(extra or {}))
        return envelope.model_dump(exclude_none=True)


class PaginationMeta(BaseResponse):
    """Position of one library page within the owner's records."""

    page: int = Field(ge=1)
    per_page: int = Field(ge=1, le=100)
    total: int = Field(ge=0)

    @computed_field
    @property
    def total_pages(self) -> int:
        return -(-self.total // self.per_page)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @computed_field
    @property
    def has_prev(self) -> bool:
        return self.page > 1


class PaginatedResponse(BaseResponse, Generic[T]):
    """One page of items plus its pagination metadata."""

    items: list[T]
    pagination: PaginationMeta

    @classmethod
    def create(cls, items: list[T], page: int, per_page: int, total: int) -> "PaginatedResponse[T]":
        return cls(items=items, pagination=PaginationMeta(page=page, per_page=per_page, total=total))
