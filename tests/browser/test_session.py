"""Tests for BrowserSession."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from agentic_browser.browser.page import Page
from agentic_browser.browser.session import BrowserSession
from agentic_browser.browser.stealth import STEALTH_USER_AGENT, StealthInjector
from agentic_browser.core.config import ProxyConfig, SessionConfig, Viewport
from agentic_browser.core.errors import LaunchError, NavigationError, ProtocolError


def make_pw_page():
    """Create mock Playwright page."""
    page = MagicMock()
    page.url = "about:blank"
    page.is_closed = MagicMock(return_value=False)
    page.add_init_script = AsyncMock()
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.on = MagicMock()
    page.close = AsyncMock()
    return page


class TestBrowserSession:
    """Test suite for BrowserSession."""

    @pytest.fixture
    def config(self):
        """Create session config."""
        return SessionConfig(
            viewport=Viewport(width=1280, height=720),
            timeout=timedelta(seconds=10),
        )

    @pytest.fixture
    def mock_cdp(self):
        """Create mock CDP session reporting a target id."""
        cdp = MagicMock()
        cdp.send = AsyncMock(return_value={"targetInfo": {"targetId": "TARGET-1"}})
        cdp.detach = AsyncMock()
        return cdp

    @pytest.fixture
    def mock_context(self, mock_cdp):
        """Create mock browser context."""
        context = MagicMock()
        context.pages = []
        context.new_page = AsyncMock(side_effect=lambda: make_pw_page())
        context.new_cdp_session = AsyncMock(return_value=mock_cdp)
        context.close = AsyncMock()
        context.on = MagicMock()
        return context

    @pytest.fixture
    def mock_browser(self, mock_context):
        """Create mock browser."""
        browser = MagicMock()
        browser.version = "120.0.6099.28"
        browser.new_context = AsyncMock(return_value=mock_context)
        browser.close = AsyncMock()
        browser.on = MagicMock()
        return browser

    @pytest.fixture
    def mock_playwright(self, mock_browser):
        """Create mock Playwright driver."""
        playwright = MagicMock()
        playwright.chromium.launch = AsyncMock(return_value=mock_browser)
        playwright.stop = AsyncMock()
        return playwright

    @pytest.fixture
    def patched(self, mock_playwright):
        """Patch async_playwright to return the mock driver."""
        with patch("agentic_browser.browser.session.async_playwright") as mock_async_pw:
            mock_async_pw.return_value.start = AsyncMock(return_value=mock_playwright)
            yield mock_async_pw

    @pytest.mark.asyncio
    async def test_launch_options(self, config, patched, mock_playwright, mock_browser):
        """Test launch flags and context options under stealth."""
        session = await BrowserSession.launch(config)

        mock_playwright.chromium.launch.assert_awaited_once_with(
            headless=True, args=StealthInjector.launch_args()
        )
        mock_browser.new_context.assert_awaited_once_with(
            viewport={"width": 1280, "height": 720},
            user_agent=STEALTH_USER_AGENT,
            locale="en-US",
        )

        await session.close()

    @pytest.mark.asyncio
    async def test_launch_with_proxy_and_binary(self, patched, mock_playwright):
        """Test proxy credentials and a custom binary reach the launch call."""
        config = SessionConfig(
            stealth=False,
            headless=False,
            proxy=ProxyConfig(server="http://proxy:8080", username="u", password="p"),
            binary_path=Path("/opt/chrome/chrome"),
        )

        async with BrowserSession(config):
            pass

        mock_playwright.chromium.launch.assert_awaited_once_with(
            headless=False,
            executable_path="/opt/chrome/chrome",
            proxy={"server": "http://proxy:8080", "username": "u", "password": "p"},
        )

    @pytest.mark.asyncio
    async def test_launch_failure(self, config, patched, mock_playwright):
        """Test a failed launch raises LaunchError and releases the driver."""
        mock_playwright.chromium.launch.side_effect = PlaywrightError(
            "Executable doesn't exist at /nonexistent/chrome"
        )

        with pytest.raises(LaunchError) as exc_info:
            await BrowserSession.launch(config)

        assert "Executable doesn't exist" in str(exc_info.value)
        mock_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_page_applies_stealth_before_navigation(self, config, patched, mock_context):
        """Test the stealth script is registered before the first goto."""
        pw_page = make_pw_page()
        mock_context.new_page = AsyncMock(return_value=pw_page)
        manager = MagicMock()
        manager.attach_mock(pw_page.add_init_script, "add_init_script")
        manager.attach_mock(pw_page.goto, "goto")

        async with BrowserSession(config) as session:
            page = await session.new_page("https://example.com")

        assert isinstance(page, Page)
        assert page.target_id == "TARGET-1"
        assert [c[0] for c in manager.mock_calls] == ["add_init_script", "goto"]
        pw_page.goto.assert_awaited_once_with(
            "https://example.com", wait_until="load", timeout=10000.0
        )

    @pytest.mark.asyncio
    async def test_new_page_blank_does_not_navigate(self, config, patched, mock_context):
        """Test about:blank opens a tab without navigating."""
        pw_page = make_pw_page()
        mock_context.new_page = AsyncMock(return_value=pw_page)

        async with BrowserSession(config) as session:
            await session.new_page()

        pw_page.goto.assert_not_awaited()
        pw_page.add_init_script.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_page_without_stealth(self, patched, mock_context):
        """Test no script is injected when stealth is off."""
        pw_page = make_pw_page()
        mock_context.new_page = AsyncMock(return_value=pw_page)

        async with BrowserSession(SessionConfig(stealth=False)) as session:
            await session.new_page()

        pw_page.add_init_script.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_page_navigation_failure(self, config, patched, mock_context):
        """Test a failed initial navigation surfaces as NavigationError."""
        pw_page = make_pw_page()
        pw_page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        mock_context.new_page = AsyncMock(return_value=pw_page)

        async with BrowserSession(config) as session:
            with pytest.raises(NavigationError):
                await session.new_page("https://nonexistent.invalid")

    @pytest.mark.asyncio
    async def test_new_page_unidentified_tab(self, config, patched, mock_context, mock_cdp):
        """Test a tab without target info raises ProtocolError and is closed."""
        pw_page = make_pw_page()
        mock_context.new_page = AsyncMock(return_value=pw_page)
        mock_cdp.send.return_value = {}

        async with BrowserSession(config) as session:
            with pytest.raises(ProtocolError):
                await session.new_page()
            assert await session.pages() == []

        pw_page.close.assert_awaited_once()
        pw_page.add_init_script.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_page_stealth_failure_closes_tab(self, config, patched, mock_context):
        """Test a rejected stealth script closes the tab before raising."""
        pw_page = make_pw_page()
        pw_page.add_init_script.side_effect = PlaywrightError("Target closed")
        mock_context.new_page = AsyncMock(return_value=pw_page)

        async with BrowserSession(config) as session:
            with pytest.raises(ProtocolError):
                await session.new_page("https://example.com")

        pw_page.close.assert_awaited_once()
        pw_page.goto.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_discard_tolerates_closed_tab(self, config, patched, mock_context, mock_cdp):
        """Test the original error survives a tab that cannot be closed."""
        pw_page = make_pw_page()
        pw_page.close.side_effect = PlaywrightError("Target closed")
        mock_context.new_page = AsyncMock(return_value=pw_page)
        mock_cdp.send.side_effect = PlaywrightError("Target closed")

        async with BrowserSession(config) as session:
            with pytest.raises(ProtocolError, match="Could not identify new tab"):
                await session.new_page()

    @pytest.mark.asyncio
    async def test_new_page_before_start(self, config):
        """Test opening a page on an unlaunched session fails."""
        session = BrowserSession(config)

        with pytest.raises(ProtocolError):
            await session.new_page()

    @pytest.mark.asyncio
    async def test_pages_includes_popups(self, config, patched, mock_context):
        """Test tabs opened by sites are adopted and closed tabs pruned."""
        async with BrowserSession(config) as session:
            first = await session.new_page()
            popup = make_pw_page()
            mock_context.pages = [first.inner, popup]

            pages = await session.pages()
            assert [p.inner for p in pages] == [first.inner, popup]

            first.inner.is_closed.return_value = True
            mock_context.pages = [popup]
            pages = await session.pages()
            assert [p.inner for p in pages] == [popup]

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, config, patched, mock_playwright, mock_browser, mock_context):
        """Test a second close does nothing and the drain is joined."""
        session = await BrowserSession.launch(config)
        assert session._events.running

        await session.close()
        await session.close()

        assert not session._events.running
        mock_context.close.assert_awaited_once()
        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()
        assert session.browser is None

    @pytest.mark.asyncio
    async def test_close_tolerates_dead_browser(self, config, patched, mock_playwright, mock_browser):
        """Test teardown completes when the browser already went away."""
        mock_browser.close.side_effect = PlaywrightError("Browser has been closed")
        session = await BrowserSession.launch(config)

        await session.close()

        mock_playwright.stop.assert_awaited_once()
