"""Per-request correlation data passed explicitly through the pipeline."""

from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class RequestContext(BaseModel):
    """Identifies the request that triggered a unit of work."""
    model_config = ConfigDict(frozen=True)

    log_id: UUID = Field(default_factory=uuid4, description="Identifier of the request log entry")
    correlation_id: Optional[str] = Field(default=None, description="Caller-supplied correlation id")
    service_name: str = Field(default="fieldops", description="Service handling the request")
    user_id: Optional[str] = Field(default=None, description="Authenticated user, if any")

    def resolve_correlation_id(self) -> str:
        """Correlation id for outbound messages; generated when the caller sent none."""
        return self.correlation_id or str(uuid4())
