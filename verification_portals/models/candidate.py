"""Element candidate model."""

from pydantic import BaseModel, ConfigDict, Field


class ElementCandidate(BaseModel):
    """Attributes of one element considered by a locator."""

    index: int = Field(description="Position in the candidate list")
    tag: str = Field(default="", description="Lower-cased tag name")
    type: str = Field(default="", description="Input type attribute")
    name: str = Field(default="", description="Name attribute")
    id: str = Field(default="", description="Id attribute")
    placeholder: str = Field(default="", description="Placeholder attribute")
    classes: str = Field(default="", description="Class attribute")
    aria_label: str = Field(default="", description="aria-label attribute")
    text: str = Field(default="", description="Visible text or value")
    visible: bool = Field(default=False, description="Whether the element is visible")

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def attributes(self) -> tuple[str, ...]:
        """Lower-cased attributes searched by substring locators."""
        return tuple(
            value.lower()
            for value in (self.placeholder, self.classes, self.name, self.id, self.aria_label)
        )

    @property
    def haystack(self) -> str:
        """Everything known about the element, lower-cased."""
        return " ".join((*self.attributes, self.text.lower()))
