"""Upstream room status domain model."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RoomStatus(BaseModel):
    """Subset of the upstream ``room_status`` API response."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    last_activity: datetime
    last_port: int = Field(ge=0, le=65535)
    timeout_seconds: int = Field(alias="timeout", ge=0)

    @field_validator("last_activity", mode="before")
    @classmethod
    def parse_http_date(cls, v: object) -> object:
        """Accept the HTTP date format the room API uses (``Tue, 5 Mar 2024 10:00:00 GMT``)."""
        if isinstance(v, str):
            return datetime.strptime(v, "%a, %d %b %Y %H:%M:%S %Z").replace(tzinfo=UTC)
        return v
