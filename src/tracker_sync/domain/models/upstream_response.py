"""Upstream HTTP response domain model."""

from pydantic import BaseModel, ConfigDict


class UpstreamResponse(BaseModel):
    """Status and body of an upstream GET request."""

    model_config = ConfigDict(frozen=True)

    url: str
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
