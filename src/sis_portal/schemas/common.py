"""Shared schema building blocks.

JSON payloads use camelCase keys while Python attributes stay snake_case.
"""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Base model for every request and response body."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Page(APIModel, Generic[T]):
    """Paginated list envelope returned by every list endpoint."""

    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class MessageResponse(APIModel):
    message: str


class SuccessResponse(APIModel):
    success: bool = True


class BulkDeleteRequest(APIModel):
    ids: List[str] = Field(min_length=1)
    force: bool = False


class BulkDeleteResponse(APIModel):
    success: bool = True
    count: int = Field(description="Number of rows actually removed.")
    skipped_count: int = 0
    skipped_codes: List[str] = Field(default_factory=list)
