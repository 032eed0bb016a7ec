"""Configuration, logging and the error taxonomy."""

from .config import ProxyConfig, SessionConfig, Settings, Viewport, build_config, get_settings
from .errors import (
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
from .logging import setup_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "SessionConfig",
    "Viewport",
    "ProxyConfig",
    "build_config",
    # Errors
    "BrowserError",
    "LaunchError",
    "NavigationError",
    "ElementNotFound",
    "Timeout",
    "JsError",
    "ScreenshotError",
    "ProtocolError",
    "IoError",
    # Logging
    "setup_logging",
]
