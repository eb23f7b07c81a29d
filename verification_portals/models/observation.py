"""Raw observation of a provider's terminal page."""

from pydantic import BaseModel, ConfigDict, Field


class RawObservation(BaseModel):
    """What the browser saw when a provider flow stopped."""

    url: str = Field(default="", description="Final page URL")
    url_history: list[str] = Field(default_factory=list, description="Main frame navigations")
    text: str = Field(default="", description="Rendered text of the whole page body")
    main_text: str = Field(default="", description="Rendered text of the main content region")
    html: str = Field(default="", description="Serialized page markup")
    validation_errors: list[str] = Field(
        default_factory=list, description="Error messages the provider displayed"
    )
    stalled_step: int | None = Field(
        default=None, description="Index of the step that did not advance, if any"
    )
    stalled_step_name: str | None = Field(
        default=None, description="Name of the step that did not advance, if any"
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def content_text(self) -> str:
        """Main content text, falling back to the whole body."""
        return self.main_text if self.main_text.strip() else self.text
