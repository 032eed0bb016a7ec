"""Pydantic models for page observations."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class FormField(BaseModel):
    """A discovered input, select or textarea.

    Every field is a string; absent values are empty strings, never None.
    """

    model_config = ConfigDict(populate_by_name=True)

    tag: str = Field(default="", description="Lower-case tag name")
    type: str = Field(default="", description="DOM type property")
    name: str = Field(default="", description="name attribute")
    id: str = Field(default="", description="id attribute")
    value: str = Field(default="", description="Current value")
    placeholder: str = Field(default="", description="Placeholder text")
    label: str = Field(default="", description="Associated <label> text")


class Link(BaseModel):
    """An anchor's visible text and resolved href."""

    text: str = Field(default="", description="Trimmed inner text")
    href: str = Field(..., description="Absolute URL")

    def as_tuple(self) -> tuple[str, str]:
        return (self.text, self.href)


class ElementData(BaseModel):
    """Tag, text and present attributes of one matched element."""

    tag: str = Field(..., description="Lower-case tag name")
    text: str = Field(default="", description="Trimmed inner text, capped at 500 chars")
    attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Requested attributes that are present on the element",
    )


@dataclass(frozen=True)
class AccessibilityNode:
    """One walked node, consumed by the accessibility tree renderer."""

    depth: int
    role: str = ""
    name: str = ""
    text: str = ""
    href: str = ""
    value: str = ""
    type: str = ""

    @property
    def is_text(self) -> bool:
        return self.role == ""
