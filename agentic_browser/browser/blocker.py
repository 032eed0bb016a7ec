"""Network request blocking by resource type.

Blocking is installed as a single Playwright route on one page. A policy set
before the page has navigated applies at once. A policy set after the page
has started loading a document is held back until the next main-frame
navigation request, so the document already in flight (including the
subresources it discovers later) keeps the policy it started with.
"""

from collections.abc import Iterable

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage
from playwright.async_api import Request, Route

from ..core.errors import ProtocolError

logger = structlog.get_logger(__name__)

ALL_REQUESTS = "**/*"

# URLs of a tab that has not loaded any document yet
UNNAVIGATED_URLS = frozenset({"", "about:blank"})

# Resource types as classified by Playwright
KNOWN_RESOURCE_TYPES = frozenset(
    {
        "document",
        "stylesheet",
        "image",
        "media",
        "font",
        "script",
        "texttrack",
        "xhr",
        "fetch",
        "eventsource",
        "websocket",
        "manifest",
        "other",
    }
)


class ResourceBlocker:
    """Page-scoped resource-type blocking policy.

    Attributes:
        blocked: Resource types aborted for the current document
        pending: Policy waiting for the next navigation, or None
        blocked_count: Requests aborted since the page was created
    """

    def __init__(self, page: PlaywrightPage) -> None:
        self._page = page
        self.blocked: frozenset[str] = frozenset()
        self.pending: frozenset[str] | None = None
        self.blocked_count = 0
        self._routed = False

    def _is_main_navigation(self, request: Request) -> bool:
        return request.is_navigation_request() and request.frame == self._page.main_frame

    async def _handle(self, route: Route) -> None:
        request = route.request
        if self.pending is not None and self._is_main_navigation(request):
            self.blocked, self.pending = self.pending, None
            logger.info("resource_blocking_activated", types=sorted(self.blocked))

        if request.resource_type in self.blocked:
            self.blocked_count += 1
            await route.abort("blockedbyclient")
            return
        await route.continue_()

    async def block(self, resource_types: Iterable[str]) -> None:
        """Abort requests of the given types for this page's loads.

        Replaces any earlier configuration. Before the page's first
        navigation the policy is active immediately; afterwards it takes
        effect from the next main-frame navigation on. Unrecognized type
        names are accepted and simply match nothing. An empty list removes
        blocking on the same schedule.

        Raises:
            ProtocolError: If interception could not be configured
        """
        types = frozenset(t.lower() for t in resource_types)
        unknown = sorted(types - KNOWN_RESOURCE_TYPES)
        if unknown:
            logger.warning("unknown_resource_types", types=unknown)

        if self._page.url in UNNAVIGATED_URLS:
            self.blocked, self.pending = types, None
            logger.info("resources_blocked", types=sorted(types))
        else:
            self.pending = types
            logger.info("resources_blocked_from_next_navigation", types=sorted(types))

        if self._routed or not types:
            return
        try:
            await self._page.route(ALL_REQUESTS, self._handle)
        except PlaywrightError as e:
            logger.error("resource_blocking_failed", types=sorted(types), error=str(e))
            raise ProtocolError(f"Failed to configure resource blocking: {e}") from e
        self._routed = True

    async def clear(self) -> None:
        """Remove this page's interception route and policy at once."""
        self.blocked, self.pending = frozenset(), None
        if not self._routed:
            return
        self._routed = False
        await self._page.unroute(ALL_REQUESTS, self._handle)
