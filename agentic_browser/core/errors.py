"""Error taxonomy for the browser session layer.

Every fallible operation raises one of the classes below. All of them derive
from BrowserError so callers can catch the whole family at once, and each one
keeps enough context (selector, script snippet, url, path) to diagnose a
failure without re-running it. The underlying Playwright or OS exception is
chained as ``__cause__``.
"""

from typing import Any

# Longest script excerpt kept on a JsError
SCRIPT_SNIPPET_LENGTH = 120


class BrowserError(Exception):
    """Base class for all failures raised by this package."""

    def __init__(
        self,
        message: str,
        *,
        selector: str | None = None,
        script: str | None = None,
        url: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.selector = selector
        self.script = _snippet(script)
        self.url = url
        self.path = path

    @property
    def context(self) -> dict[str, Any]:
        """Non-empty context fields, suitable for structured logging."""
        fields = {
            "selector": self.selector,
            "script": self.script,
            "url": self.url,
            "path": self.path,
        }
        return {key: value for key, value in fields.items() if value is not None}


class LaunchError(BrowserError):
    """Raised when the browser process or its connection could not start."""

    pass


class NavigationError(BrowserError):
    """Raised when goto/back/forward/reload failed or produced no usable document."""

    pass


class ElementNotFound(BrowserError):
    """Raised when a singular selector lookup matched nothing or the node is detached."""

    pass


class Timeout(BrowserError):
    """Raised when a bounded wait exceeded its budget."""

    pass


class JsError(BrowserError):
    """Raised when an evaluated script threw or returned an unusable value."""

    pass


class ScreenshotError(BrowserError):
    """Raised when a screenshot capture failed."""

    pass


class ProtocolError(BrowserError):
    """Raised for low-level Playwright or CDP failures not otherwise classified."""

    pass


class IoError(BrowserError):
    """Raised when a local file write failed."""

    pass


def _snippet(script: str | None) -> str | None:
    if script is None:
        return None
    script = " ".join(script.split())
    if len(script) <= SCRIPT_SNIPPET_LENGTH:
        return script
    return script[:SCRIPT_SNIPPET_LENGTH] + "..."


# Fragments Playwright uses when a handle's node or execution context is gone
_DETACHED_MARKERS = (
    "not attached to the dom",
    "element is detached",
    "jshandle is disposed",
    "elementhandle is disposed",
    "execution context was destroyed",
    "cannot find context with specified id",
    "node with given id does not exist",
    "target closed",
    "target page, context or browser has been closed",
)


def is_detached_error(error: BaseException) -> bool:
    """Return True when a Playwright error means the node is gone."""
    message = str(error).lower()
    return any(marker in message for marker in _DETACHED_MARKERS)
