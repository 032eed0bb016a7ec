"""CSS selector resolution with bounded waits.

Singular resolution waits, through Playwright, until a node matching the
selector is attached to the DOM or the timeout elapses. The wait survives
navigations that replace the document mid-wait, and it suspends only the
calling task, so actions on other pages keep running while a wait is pending.
"""

import structlog
from playwright.async_api import ElementHandle as PlaywrightElementHandle
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import ElementNotFound, Timeout
from .element import ElementHandle

logger = structlog.get_logger(__name__)


class SelectorResolver:
    """Turns CSS selectors into ElementHandles for one page.

    Attributes:
        default_timeout: Wait budget in seconds when none is given
    """

    def __init__(
        self,
        page: PlaywrightPage,
        target_id: str,
        default_timeout: float,
    ) -> None:
        """Initialize resolver.

        Args:
            page: Playwright page to query
            target_id: Identifier of the owning tab
            default_timeout: Wait budget in seconds when none is given
        """
        self._page = page
        self.target_id = target_id
        self.default_timeout = default_timeout

    def _wrap(self, handle: PlaywrightElementHandle, selector: str) -> ElementHandle:
        return ElementHandle(handle, selector, self.target_id, self.default_timeout * 1000)

    async def _lookup(self, selector: str) -> PlaywrightElementHandle | None:
        try:
            return await self._page.query_selector(selector)
        except PlaywrightError as e:
            logger.error("selector_lookup_failed", selector=selector, error=str(e))
            raise ElementNotFound(
                f"Lookup of {selector} failed: {e}", selector=selector
            ) from e

    async def find(self, selector: str) -> ElementHandle:
        """Resolve a selector immediately, without waiting.

        Raises:
            ElementNotFound: If nothing matches or the selector is invalid
        """
        handle = await self._lookup(selector)
        if handle is None:
            raise ElementNotFound(f"No element matches {selector}", selector=selector)
        return self._wrap(handle, selector)

    async def resolve(self, selector: str, timeout: float | None = None) -> ElementHandle:
        """Wait until a node matching ``selector`` is attached.

        Args:
            selector: CSS selector
            timeout: Wait budget in seconds (page default if None)

        Returns:
            ElementHandle: Handle to the first matching node

        Raises:
            ElementNotFound: If the browser rejects the selector
            Timeout: If no node matched before the budget elapsed
        """
        budget = self.default_timeout if timeout is None else timeout
        try:
            handle = await self._page.wait_for_selector(
                selector, state="attached", timeout=budget * 1000
            )
        except PlaywrightTimeoutError as e:
            logger.warning("selector_wait_timeout", selector=selector, timeout_s=budget)
            raise Timeout(
                f"Timed out after {budget:.3f}s waiting for selector: {selector}",
                selector=selector,
            ) from e
        except PlaywrightError as e:
            logger.error("selector_lookup_failed", selector=selector, error=str(e))
            raise ElementNotFound(
                f"Lookup of {selector} failed: {e}", selector=selector
            ) from e

        if handle is None:
            raise ElementNotFound(f"No element matches {selector}", selector=selector)
        return self._wrap(handle, selector)

    async def resolve_all(self, selector: str) -> list[ElementHandle]:
        """Resolve every node matching a selector.

        Absence of matches is not an error for plural queries.

        Raises:
            ElementNotFound: If the browser rejects the selector
        """
        try:
            handles = await self._page.query_selector_all(selector)
        except PlaywrightError as e:
            logger.error("selector_lookup_failed", selector=selector, error=str(e))
            raise ElementNotFound(
                f"Lookup of {selector} failed: {e}", selector=selector
            ) from e
        return [self._wrap(h, selector) for h in handles]
