"""Pydantic models for agentic_browser."""

from .page import AccessibilityNode, ElementData, FormField, Link

__all__ = [
    "FormField",
    "Link",
    "ElementData",
    "AccessibilityNode",
]
