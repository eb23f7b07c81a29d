"""Evidence model."""

from pydantic import BaseModel, ConfigDict, Field


class Evidence(BaseModel):
    """Captured proof of the final observed page."""

    snapshot: bytes | None = Field(default=None, description="Full-page PNG screenshot")
    document: bytes | None = Field(default=None, description="Print-formatted PDF")
    missing: list[str] = Field(
        default_factory=list, description="Artefacts that failed to capture"
    )

    model_config = ConfigDict(extra="forbid")
