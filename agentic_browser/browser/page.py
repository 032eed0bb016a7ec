"""One browser tab: navigation, actions and observations.

Selector-addressed actions resolve through the SelectorResolver (bounded
wait) and then issue a single command through the resolved ElementHandle.
Observations go through the AccessibilityTreeBuilder, the
StructuredExtractor, or a raw evaluation. Nothing here retries; every
failure surfaces immediately as one of the taxonomy errors.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any, Literal

import structlog
from playwright.async_api import CDPSession
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import (
    IoError,
    JsError,
    NavigationError,
    ProtocolError,
    ScreenshotError,
    Timeout,
)
from ..models.page import ElementData, FormField
from .accessibility import AccessibilityTreeBuilder
from .blocker import ResourceBlocker
from .element import ElementHandle
from .extractor import StructuredExtractor
from .selector import SelectorResolver

logger = structlog.get_logger(__name__)

WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]

# Quiet period goto_stable waits for after DOMContentLoaded
STABLE_QUIET_MS = 500

STABLE_SCRIPT = """
([quietMs, timeoutMs]) => new Promise((resolve) => {
    let observer = null;
    let quietTimer = null;
    const finish = () => {
        if (observer) observer.disconnect();
        clearTimeout(quietTimer);
        clearTimeout(deadline);
        resolve();
    };
    const deadline = setTimeout(finish, timeoutMs);
    const watch = () => {
        observer = new MutationObserver(() => {
            clearTimeout(quietTimer);
            quietTimer = setTimeout(finish, quietMs);
        });
        observer.observe(document.documentElement, { childList: true, subtree: true, attributes: true });
        quietTimer = setTimeout(finish, quietMs);
    };
    if (document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', watch, { once: true });
    } else {
        watch();
    }
})
"""

SCROLL_SCRIPT = "(dy) => window.scrollBy(0, dy)"


class Page:
    """Agent-facing wrapper around one Playwright page.

    Dropping a Page object does not close its tab; call ``close()`` or tear
    down the session.

    Attributes:
        target_id: Tab identifier assigned by the browser
        timeout: Default wait budget in seconds
    """

    def __init__(
        self,
        page: PlaywrightPage,
        target_id: str,
        timeout: float,
        cdp: CDPSession | None = None,
    ) -> None:
        """Initialize page wrapper.

        Args:
            page: Playwright Page instance
            target_id: Tab identifier
            timeout: Default wait budget in seconds
            cdp: Optional CDP session attached to this tab
        """
        self._page = page
        self.target_id = target_id
        self.timeout = timeout
        self._cdp = cdp

        self.resolver = SelectorResolver(page, target_id, timeout)
        self.extractor = StructuredExtractor(page)
        self.blocker = ResourceBlocker(page)

    @property
    def inner(self) -> PlaywrightPage:
        """The underlying Playwright page."""
        return self._page

    @property
    def timeout_ms(self) -> float:
        return self.timeout * 1000

    @property
    def is_closed(self) -> bool:
        return self._page.is_closed()

    def __repr__(self) -> str:
        return f"Page(target_id={self.target_id!r}, url={self._page.url!r})"

    # ===== Navigation =====

    async def _navigate(self, action: str, call: Callable[[], Awaitable[Any]], url: str | None = None) -> Any:
        try:
            result = await call()
        except PlaywrightTimeoutError as e:
            logger.error("navigation_timeout", action=action, url=url, timeout_s=self.timeout)
            raise Timeout(f"{action} timed out after {self.timeout}s: {e}", url=url) from e
        except PlaywrightError as e:
            logger.error(
                "navigation_failed",
                action=action,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            target = f" to {url}" if url else ""
            raise NavigationError(f"{action}{target} failed: {e}", url=url) from e

        logger.info("navigation_complete", action=action, url=url, final_url=self._page.url)
        return result

    async def _goto(self, url: str, wait_until: WaitUntil) -> None:
        response = await self._navigate(
            "goto",
            lambda: self._page.goto(url, wait_until=wait_until, timeout=self.timeout_ms),
            url=url,
        )
        if response is not None:
            logger.debug("navigation_response", url=url, status=response.status)

    async def goto(self, url: str) -> None:
        """Navigate and wait for the full load event.

        Raises:
            Timeout: If the load did not finish within the page timeout
            NavigationError: If navigation failed
        """
        await self._goto(url, "load")

    async def goto_fast(self, url: str) -> None:
        """Navigate and wait only for DOMContentLoaded."""
        await self._goto(url, "domcontentloaded")

    async def goto_stable(self, url: str, quiet_ms: int = STABLE_QUIET_MS) -> None:
        """Navigate, then wait until the DOM stops mutating for ``quiet_ms``.

        Suited to pages that render content with JavaScript after load. The
        quiet wait is capped by the page timeout and never fails on its own.
        """
        await self._goto(url, "domcontentloaded")
        await self._navigate(
            "wait_for_stable_dom",
            lambda: self._page.evaluate(STABLE_SCRIPT, [quiet_ms, self.timeout_ms]),
            url=url,
        )

    async def go_back(self) -> None:
        await self._navigate("go_back", lambda: self._page.go_back(timeout=self.timeout_ms))

    async def go_forward(self) -> None:
        await self._navigate("go_forward", lambda: self._page.go_forward(timeout=self.timeout_ms))

    async def reload(self) -> None:
        await self._navigate("reload", lambda: self._page.reload(timeout=self.timeout_ms))

    async def wait_for_navigation(self, timeout: float | None = None) -> None:
        """Wait for the next main-frame navigation and its load event.

        A document that is already loaded does not satisfy the wait; start
        it before, or concurrently with, the action that navigates.

        Raises:
            Timeout: If no navigation finished loading within the budget
        """
        budget = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget

        async def _wait() -> None:
            await self._page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame.parent_frame is None,
                timeout=budget * 1000,
            )
            # Playwright treats a zero timeout as "no timeout"
            remaining_ms = max(deadline - loop.time(), 0.001) * 1000
            await self._page.wait_for_load_state("load", timeout=remaining_ms)

        await self._navigate("wait_for_navigation", _wait)

    async def url(self) -> str:
        """Current page URL."""
        url = self._page.url
        if not url:
            raise NavigationError("No URL found")
        return url

    async def title(self) -> str:
        """Current document title ("" when the document has none)."""
        try:
            return await self._page.title()
        except PlaywrightError as e:
            raise JsError(f"Reading title failed: {e}", script="document.title") from e

    # ===== Element Queries =====

    async def wait_for_selector(self, selector: str, timeout: float | None = None) -> ElementHandle:
        """Wait until ``selector`` matches a node and return its handle.

        Raises:
            Timeout: If nothing matched within the budget
            ElementNotFound: If the selector is rejected outright
        """
        return await self.resolver.resolve(selector, timeout)

    async def find_element(self, selector: str) -> ElementHandle:
        """Resolve ``selector`` immediately, without waiting."""
        return await self.resolver.find(selector)

    async def find_elements(self, selector: str) -> list[ElementHandle]:
        """All matches for ``selector``; empty when none."""
        return await self.resolver.resolve_all(selector)

    # ===== Actions =====

    async def click(self, selector: str, timeout: float | None = None) -> None:
        element = await self.resolver.resolve(selector, timeout)
        await element.click()
        logger.info("element_clicked", selector=selector)

    async def type_text(self, selector: str, text: str, timeout: float | None = None) -> None:
        """Click the field matching ``selector`` and type ``text`` into it."""
        element = await self.resolver.resolve(selector, timeout)
        await element.click()
        await element.type_text(text)
        logger.info("text_typed", selector=selector, length=len(text))

    async def press_key(self, key: str) -> None:
        """Press a key (e.g. "Enter", "Tab") on the focused element."""
        try:
            await self._page.keyboard.press(key)
        except PlaywrightError as e:
            logger.error("key_press_failed", key=key, error=str(e))
            raise ProtocolError(f"Pressing {key} failed: {e}") from e
        logger.debug("key_pressed", key=key)

    async def hover(self, selector: str, timeout: float | None = None) -> None:
        element = await self.resolver.resolve(selector, timeout)
        await element.hover()
        logger.debug("element_hovered", selector=selector)

    async def _scroll(self, dy: int) -> None:
        try:
            await self._page.evaluate(SCROLL_SCRIPT, dy)
        except PlaywrightError as e:
            raise JsError(f"Scrolling by {dy}px failed: {e}", script=SCROLL_SCRIPT) from e

    async def scroll_down(self, pixels: int) -> None:
        await self._scroll(abs(pixels))

    async def scroll_up(self, pixels: int) -> None:
        await self._scroll(-abs(pixels))

    async def select_option(self, selector: str, value: str, timeout: float | None = None) -> None:
        """Select the option with ``value`` in the <select> matching ``selector``."""
        element = await self.resolver.resolve(selector, timeout)
        await element.select_option(value)
        logger.info("option_selected", selector=selector, value=value)

    async def fill_form(self, pairs: Iterable[tuple[str, str]]) -> list[str]:
        """Fill many fields in one round trip.

        Unlike ``type_text``, a selector that matches nothing is skipped
        rather than failing the batch.

        Returns:
            list: Selectors that were skipped
        """
        return await self.extractor.fill_form(list(pairs))

    async def block_resources(self, resource_types: Iterable[str]) -> None:
        """Abort requests of these types on this page's subsequent loads.

        On a tab that has not navigated yet the policy applies at once.
        Otherwise the document already loaded or loading keeps its policy
        and the new one starts with the next main-frame navigation.
        """
        await self.blocker.block(resource_types)

    # ===== Observations =====

    async def html(self) -> str:
        """Full serialized HTML of the current document."""
        try:
            return await self._page.content()
        except PlaywrightError as e:
            raise JsError(f"Reading document content failed: {e}") from e

    async def text_content(self, selector: str, timeout: float | None = None) -> str:
        """Inner text of the first node matching ``selector``."""
        element = await self.resolver.resolve(selector, timeout)
        return await element.inner_text()

    async def inner_html(self, selector: str, timeout: float | None = None) -> str:
        element = await self.resolver.resolve(selector, timeout)
        return await element.inner_html()

    async def _capture(
        self,
        full_page: bool = False,
        image_type: Literal["png", "jpeg"] = "png",
        quality: int | None = None,
    ) -> bytes:
        if quality is not None and not 0 <= quality <= 100:
            raise ValueError(f"JPEG quality must be between 0 and 100, got {quality}")

        options: dict[str, Any] = {
            "type": image_type,
            "full_page": full_page,
            "timeout": self.timeout_ms,
        }
        if quality is not None:
            options["quality"] = quality

        try:
            data = await self._page.screenshot(**options)
        except PlaywrightError as e:
            logger.error(
                "screenshot_failed",
                url=self._page.url,
                full_page=full_page,
                image_type=image_type,
                error=str(e),
            )
            raise ScreenshotError(f"Screenshot capture failed: {e}", url=self._page.url) from e

        logger.info(
            "screenshot_captured",
            url=self._page.url,
            full_page=full_page,
            image_type=image_type,
            size_bytes=len(data),
        )
        return data

    async def screenshot(self) -> bytes:
        """Visible viewport as PNG bytes."""
        return await self._capture()

    async def screenshot_jpeg(self, quality: int) -> bytes:
        """Visible viewport as JPEG bytes, ``quality`` in 0-100."""
        return await self._capture(image_type="jpeg", quality=quality)

    async def screenshot_full_page(self) -> bytes:
        """Whole scrollable page as PNG bytes."""
        return await self._capture(full_page=True)

    async def screenshot_full_page_jpeg(self, quality: int) -> bytes:
        return await self._capture(full_page=True, image_type="jpeg", quality=quality)

    async def screenshot_to_file(self, path: str | Path, full_page: bool = False) -> Path:
        """Capture a PNG screenshot and write the raw bytes to ``path``.

        The format is always PNG regardless of the file extension.

        Raises:
            ScreenshotError: If the capture failed
            IoError: If the file could not be written
        """
        data = await self._capture(full_page=full_page)
        path = Path(path)
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error("screenshot_write_failed", path=str(path), error=str(e))
            raise IoError(f"Writing screenshot to {path} failed: {e}", path=str(path)) from e
        return path

    async def get_links(self) -> list[tuple[str, str]]:
        """All links as (text, href) pairs in document order."""
        links = await self.extractor.get_links()
        return [link.as_tuple() for link in links]

    async def get_form_fields(self) -> list[FormField]:
        return await self.extractor.discover_fields()

    async def accessibility_tree(self) -> str:
        """Compact text tree of interactive, heading, media and text content."""
        return await AccessibilityTreeBuilder.build(self._page)

    async def extract_all(self, selector: str, attributes: list[str]) -> list[dict[str, str]]:
        """Attribute records for every match of ``selector``, in one round trip."""
        return await self.extractor.extract_all(selector, attributes)

    async def extract_elements(self, selector: str, attributes: list[str]) -> list[ElementData]:
        return await self.extractor.extract_elements(selector, attributes)

    async def evaluate(self, script: str) -> str:
        """Evaluate a JavaScript expression and return its value as a string.

        Strings are returned as-is, ``undefined``/``null`` as "", and any
        other value as its JSON encoding.

        Raises:
            JsError: If the script threw
        """
        try:
            result = await self._page.evaluate(script)
        except PlaywrightError as e:
            logger.error("evaluate_failed", error=str(e))
            raise JsError(f"Script evaluation failed: {e}", script=script) from e

        if result is None:
            return ""
        if isinstance(result, str):
            return result
        try:
            return json.dumps(result)
        except (TypeError, ValueError) as e:
            raise JsError(f"Script result is not serializable: {e}", script=script) from e

    async def evaluate_void(self, script: str) -> None:
        """Evaluate a JavaScript expression, discarding its value."""
        try:
            await self._page.evaluate(script)
        except PlaywrightError as e:
            logger.error("evaluate_failed", error=str(e))
            raise JsError(f"Script evaluation failed: {e}", script=script) from e

    # ===== Lifecycle =====

    async def force_gc(self) -> None:
        """Force a V8 garbage collection in this tab's renderer.

        Raises:
            ProtocolError: If no CDP session is attached or the call failed
        """
        if self._cdp is None:
            raise ProtocolError("No CDP session attached to this page")
        try:
            await self._cdp.send("HeapProfiler.collectGarbage")
        except PlaywrightError as e:
            raise ProtocolError(f"Failed to force GC: {e}") from e
        logger.debug("garbage_collected", target_id=self.target_id)

    async def close(self) -> None:
        """Stop loading, remove interception and close the tab.

        Safe to call more than once.
        """
        if self._page.is_closed():
            return

        try:
            await self.blocker.clear()
            await self._page.evaluate("window.stop()")
        except PlaywrightError as e:
            logger.warning("page_close_warning", target_id=self.target_id, error=str(e))

        try:
            if self._cdp is not None:
                await self._cdp.detach()
            await self._page.close()
        except PlaywrightError as e:
            raise ProtocolError(f"Closing tab {self.target_id} failed: {e}") from e
        finally:
            self._cdp = None

        logger.info("page_closed", target_id=self.target_id)
