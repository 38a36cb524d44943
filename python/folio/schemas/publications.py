"""Publication request and response schemas."""

from pydantic import BaseModel, ConfigDict


class PublishRequest(BaseModel):
    """Request body for POST /publications.

    ``filename`` is optional at the schema level so a missing value is
    reported as E_INVALID_FILENAME rather than a generic validation error.
    """

    model_config = ConfigDict(extra="ignore")

    filename: str | None = None


class PublishOut(BaseModel):
    """Response schema for a published EPUB."""

    manifest_url: str
    filename: str
    base_path: str
    resource_count: int
    position_count: int
