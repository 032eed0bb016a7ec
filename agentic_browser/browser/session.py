"""Browser session lifecycle.

A BrowserSession owns one Playwright connection to a Chromium process, one
browser context, the supervised event-drain task and the Pages it opens.

Key Features:
- Validated configuration before any resource is acquired
- Stealth launch flags, user agent and per-page script injection
- Proxy with optional credentials
- Tab identifiers taken from the browser's own target ids
- Single, idempotent teardown joining the background task
"""

from typing import Any

import structlog
from playwright.async_api import Browser, BrowserContext, CDPSession, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage

from ..core.config import SessionConfig, build_config
from ..core.errors import LaunchError, ProtocolError
from .events import EventDrain
from .page import Page
from .stealth import StealthInjector

logger = structlog.get_logger(__name__)

BLANK_URL = "about:blank"


class BrowserSession:
    """Owns a browser connection and creates Pages.

    Attributes:
        config: Immutable session configuration
        browser: Playwright browser instance
        context: Browser context shared by all pages
    """

    def __init__(self, config: SessionConfig) -> None:
        """Initialize an unlaunched session.

        Args:
            config: Validated session configuration
        """
        self.config = config

        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self._playwright: Playwright | None = None
        self._pages: list[Page] = []
        self._events = EventDrain()
        self._closed = False

    @classmethod
    async def launch(cls, config: SessionConfig | None = None) -> "BrowserSession":
        """Launch a browser and return a ready session.

        Args:
            config: Session configuration (built from settings if None)

        Raises:
            LaunchError: If the browser or its connection could not start
        """
        session = cls(config or build_config())
        await session.start()
        return session

    def _launch_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"headless": self.config.headless}
        if self.config.stealth:
            options["args"] = StealthInjector.launch_args()
        if self.config.binary_path is not None:
            options["executable_path"] = str(self.config.binary_path)
        if self.config.proxy is not None:
            options["proxy"] = self.config.proxy.to_playwright()
        return options

    def _context_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "viewport": {
                "width": self.config.viewport.width,
                "height": self.config.viewport.height,
            }
        }
        if self.config.stealth:
            options.update(StealthInjector.context_options())
        return options

    async def start(self) -> None:
        """Start Playwright, launch the browser and open the context.

        Raises:
            LaunchError: If any step failed; partial resources are released
        """
        if self.browser is not None:
            return

        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(**self._launch_options())
            self.context = await self.browser.new_context(**self._context_options())
        except Exception as e:
            logger.error(
                "browser_launch_failed",
                error=str(e),
                error_type=type(e).__name__,
                headless=self.config.headless,
            )
            await self.close()
            raise LaunchError(f"Failed to launch browser: {e}") from e

        self._closed = False
        self._events.attach(self.browser, self.context)
        self._events.start()

        logger.info(
            "browser_launched",
            headless=self.config.headless,
            stealth=self.config.stealth,
            viewport=f"{self.config.viewport.width}x{self.config.viewport.height}",
            proxy=self.config.proxy.server if self.config.proxy else None,
            version=self.browser.version,
        )

    def _require_context(self) -> BrowserContext:
        if self.context is None:
            raise ProtocolError("No active browser context. Call start() first.")
        return self.context

    async def _discard(self, pw_page: PlaywrightPage) -> None:
        try:
            await pw_page.close()
        except PlaywrightError as e:
            logger.warning("tab_close_failed", error=str(e))

    async def _attach(self, pw_page: PlaywrightPage) -> Page:
        """Wrap a Playwright page, assigning its target id and stealth patch.

        A tab that cannot be identified or patched is closed before the
        error propagates.
        """
        context = self._require_context()
        cdp: CDPSession | None = None
        try:
            cdp = await context.new_cdp_session(pw_page)
            info = await cdp.send("Target.getTargetInfo")
            target_id = info["targetInfo"]["targetId"]
        except (PlaywrightError, KeyError, TypeError) as e:
            logger.error("tab_identification_failed", error=str(e))
            await self._discard(pw_page)
            raise ProtocolError(f"Could not identify new tab: {e}") from e

        if self.config.stealth:
            try:
                await StealthInjector.apply(pw_page)
            except ProtocolError:
                await self._discard(pw_page)
                raise

        page = Page(pw_page, target_id, self.config.timeout.total_seconds(), cdp)
        self._pages.append(page)
        return page

    async def new_page(self, url: str = BLANK_URL) -> Page:
        """Open a new tab, patch it, then navigate to ``url``.

        The stealth script is registered before the first navigation, so it
        is already active on the target document. No navigation happens for
        ``about:blank``.

        Raises:
            ProtocolError: If the tab could not be created
            NavigationError: If navigation to ``url`` failed
            Timeout: If navigation exceeded the session timeout
        """
        context = self._require_context()
        try:
            pw_page = await context.new_page()
        except PlaywrightError as e:
            logger.error("new_page_failed", error=str(e))
            raise ProtocolError(f"Failed to open a new tab: {e}") from e

        page = await self._attach(pw_page)
        logger.info("page_opened", target_id=page.target_id, url=url, stealth=self.config.stealth)

        if url != BLANK_URL:
            await page.goto(url)
        return page

    async def pages(self) -> list[Page]:
        """All live tabs, including ones opened by the sites themselves."""
        context = self._require_context()
        self._pages = [p for p in self._pages if not p.is_closed]
        known = {id(p.inner) for p in self._pages}

        for pw_page in context.pages:
            if id(pw_page) not in known and not pw_page.is_closed():
                await self._attach(pw_page)

        return list(self._pages)

    async def close(self) -> None:
        """Close the browser and join the event-drain task.

        Safe to call more than once; later calls do nothing.
        """
        if self._closed:
            return
        self._closed = True

        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
                logger.info("browser_closed", pages_opened=len(self._pages))
        except Exception as e:
            logger.warning("browser_cleanup_warning", error=str(e))
        finally:
            await self._events.stop()
            if self._playwright:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning("playwright_stop_warning", error=str(e))
            self.browser = None
            self.context = None
            self._playwright = None
            self._pages = []

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
