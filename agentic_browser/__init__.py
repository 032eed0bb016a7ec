"""Agentic Browser: a browser session layer for autonomous agents."""

from .browser import BrowserSession, ElementHandle, Page
from .core.config import ProxyConfig, SessionConfig, Viewport, build_config
from .core.errors import (
    BrowserError,
    ElementNotFound,
    IoError,
    JsError,
    LaunchError,
    NavigationError,
    ProtocolError,
    ScreenshotError,
    Timeout,
)
from .models import ElementData, FormField, Link

__version__ = "0.1.0"

__all__ = [
    "BrowserSession",
    "Page",
    "ElementHandle",
    "SessionConfig",
    "Viewport",
    "ProxyConfig",
    "build_config",
    "FormField",
    "Link",
    "ElementData",
    "BrowserError",
    "LaunchError",
    "NavigationError",
    "ElementNotFound",
    "Timeout",
    "JsError",
    "ScreenshotError",
    "ProtocolError",
    "IoError",
]
