"""Element handles resolved against a live page.

An ElementHandle wraps a Playwright element handle, which is itself a remote
object id looked up by the browser on every call. A node that has been
detached (navigation, removal) therefore fails at use time with
ElementNotFound instead of acting on a dangling reference.

Handles never resolve selectors themselves; that is the Page's job, which
keeps wait and retry policy out of this module.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from playwright.async_api import ElementHandle as PlaywrightElementHandle
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import (
    ElementNotFound,
    JsError,
    ProtocolError,
    ScreenshotError,
    Timeout,
    is_detached_error,
)

logger = structlog.get_logger(__name__)


class ElementHandle:
    """A resolved, possibly stale, reference to one DOM node in one Page.

    Attributes:
        selector: Selector the handle was resolved from (for error context)
        target_id: Identifier of the owning page's tab
    """

    def __init__(
        self,
        handle: PlaywrightElementHandle,
        selector: str,
        target_id: str,
        timeout_ms: float,
    ) -> None:
        self._handle = handle
        self.selector = selector
        self.target_id = target_id
        self._timeout_ms = timeout_ms

    @property
    def inner(self) -> PlaywrightElementHandle:
        """The underlying Playwright element handle."""
        return self._handle

    def __repr__(self) -> str:
        return f"ElementHandle(selector={self.selector!r}, target_id={self.target_id!r})"

    async def _act(self, action: str, call: Callable[[], Awaitable[Any]]) -> None:
        """Issue one protocol command and classify its failure."""
        try:
            await call()
        except PlaywrightTimeoutError as e:
            logger.error("element_action_timeout", action=action, selector=self.selector)
            raise Timeout(
                f"{action} on {self.selector} timed out: {e}", selector=self.selector
            ) from e
        except PlaywrightError as e:
            if is_detached_error(e):
                logger.warning("element_detached", action=action, selector=self.selector)
                raise ElementNotFound(
                    f"Element {self.selector} is no longer attached: {e}",
                    selector=self.selector,
                ) from e
            logger.error(
                "element_action_failed",
                action=action,
                selector=self.selector,
                error=str(e),
            )
            raise ProtocolError(
                f"{action} on {self.selector} failed: {e}", selector=self.selector
            ) from e

        logger.debug("element_action", action=action, selector=self.selector)

    async def click(self) -> None:
        """Click the element (scrolls it into view first)."""
        await self._act("click", lambda: self._handle.click(timeout=self._timeout_ms))

    async def hover(self) -> None:
        """Hover over the element (scrolls it into view first)."""
        await self._act("hover", lambda: self._handle.hover(timeout=self._timeout_ms))

    async def focus(self) -> None:
        await self._act("focus", self._handle.focus)

    async def scroll_into_view(self) -> None:
        await self._act(
            "scroll_into_view",
            lambda: self._handle.scroll_into_view_if_needed(timeout=self._timeout_ms),
        )

    async def type_text(self, text: str) -> None:
        """Send the whole string in a single dispatch, without per-key delays."""
        await self._act("type", lambda: self._handle.type(text, timeout=self._timeout_ms))

    async def press_key(self, key: str) -> None:
        """Press a key on this element (e.g. "Enter", "Tab")."""
        await self._act("press_key", lambda: self._handle.press(key, timeout=self._timeout_ms))

    async def select_option(self, value: str) -> None:
        """Select the <option> with the given value."""
        await self._act(
            "select_option",
            lambda: self._handle.select_option(value=value, timeout=self._timeout_ms),
        )

    async def get_attribute(self, name: str) -> str | None:
        """Get an attribute value.

        Returns:
            str | None: The value, or None when the attribute is absent

        Raises:
            ElementNotFound: If the node is detached
            ProtocolError: For any other protocol failure
        """
        try:
            return await self._handle.get_attribute(name)
        except PlaywrightError as e:
            if is_detached_error(e):
                raise ElementNotFound(
                    f"Element {self.selector} is no longer attached: {e}",
                    selector=self.selector,
                ) from e
            raise ProtocolError(
                f"Reading attribute {name!r} of {self.selector} failed: {e}",
                selector=self.selector,
            ) from e

    async def _read(self, what: str, call: Callable[[], Awaitable[Any]]) -> str:
        try:
            content = await call()
        except PlaywrightError as e:
            logger.error("element_read_failed", what=what, selector=self.selector, error=str(e))
            raise JsError(
                f"Could not read {what} of {self.selector}: {e}", selector=self.selector
            ) from e
        if not isinstance(content, str):
            raise JsError(f"No {what} returned for {self.selector}", selector=self.selector)
        return content

    async def inner_text(self) -> str:
        """Rendered text of the element."""
        return await self._read("inner text", self._handle.inner_text)

    async def inner_html(self) -> str:
        return await self._read("inner HTML", self._handle.inner_html)

    async def outer_html(self) -> str:
        return await self._read(
            "outer HTML", lambda: self._handle.evaluate("(el) => el.outerHTML")
        )

    async def screenshot(self) -> bytes:
        """Capture this element as PNG bytes."""
        try:
            return await self._handle.screenshot(type="png", timeout=self._timeout_ms)
        except PlaywrightError as e:
            logger.error("element_screenshot_failed", selector=self.selector, error=str(e))
            raise ScreenshotError(
                f"Screenshot of {self.selector} failed: {e}", selector=self.selector
            ) from e

    async def find_element(self, selector: str) -> "ElementHandle":
        """Find the first descendant matching a CSS selector (no waiting).

        Raises:
            ElementNotFound: If nothing matches or the selector is invalid
        """
        try:
            child = await self._handle.query_selector(selector)
        except PlaywrightError as e:
            raise ElementNotFound(
                f"Lookup of {selector} under {self.selector} failed: {e}", selector=selector
            ) from e
        if child is None:
            raise ElementNotFound(
                f"No element matches {selector} under {self.selector}", selector=selector
            )
        return ElementHandle(child, selector, self.target_id, self._timeout_ms)

    async def find_elements(self, selector: str) -> list["ElementHandle"]:
        """Find all descendants matching a CSS selector; empty when none match."""
        try:
            children = await self._handle.query_selector_all(selector)
        except PlaywrightError as e:
            raise ElementNotFound(
                f"Lookup of {selector} under {self.selector} failed: {e}", selector=selector
            ) from e
        return [ElementHandle(c, selector, self.target_id, self._timeout_ms) for c in children]
