"""Browser session, action and observation layer.

This package drives browser tabs through Playwright on behalf of an agent:
navigation and input actions go in, DOM text, accessibility summaries,
structured records and screenshots come out.

Main Components:
- BrowserSession: Launches the browser and creates Pages
- Page: One tab, with navigation, actions and observations
- ElementHandle: A resolved reference to one DOM node
- SelectorResolver: Selector lookups with bounded waits
- AccessibilityTreeBuilder: Compact text tree of the live DOM
- StructuredExtractor: Batched extraction and form filling
- ResourceBlocker: Per-page request blocking by resource type
- StealthInjector: Anti-detection script registration

Example Usage:
    ```python
    from agentic_browser.browser import BrowserSession
    from agentic_browser.core import build_config

    async def summarize(url: str) -> str:
        config = build_config(headless=True, timeout=15)
        async with BrowserSession(config) as session:
            page = await session.new_page()
            await page.block_resources(["image", "font"])
            await page.goto(url)
            return await page.accessibility_tree()
    ```
"""

from .accessibility import AccessibilityTreeBuilder
from .blocker import ResourceBlocker
from .element import ElementHandle
from .events import BrowserEvent, EventDrain
from .extractor import StructuredExtractor
from .page import Page
from .selector import SelectorResolver
from .session import BrowserSession
from .stealth import StealthInjector

__all__ = [
    # Session
    "BrowserSession",
    "EventDrain",
    "BrowserEvent",
    # Page
    "Page",
    "ElementHandle",
    "SelectorResolver",
    # Observation
    "AccessibilityTreeBuilder",
    "StructuredExtractor",
    # Policies
    "ResourceBlocker",
    "StealthInjector",
]
