"""Tests for ElementHandle."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from agentic_browser.browser.element import ElementHandle
from agentic_browser.core.errors import (
    ElementNotFound,
    JsError,
    ProtocolError,
    ScreenshotError,
    Timeout,
)


class TestElementHandle:
    """Test suite for ElementHandle."""

    @pytest.fixture
    def mock_handle(self):
        """Create mock Playwright element handle."""
        handle = MagicMock()
        handle.click = AsyncMock()
        handle.hover = AsyncMock()
        handle.focus = AsyncMock()
        handle.scroll_into_view_if_needed = AsyncMock()
        handle.type = AsyncMock()
        handle.press = AsyncMock()
        handle.select_option = AsyncMock()
        handle.get_attribute = AsyncMock(return_value=None)
        handle.inner_text = AsyncMock(return_value="")
        handle.inner_html = AsyncMock(return_value="")
        handle.evaluate = AsyncMock(return_value="")
        handle.screenshot = AsyncMock(return_value=b"\x89PNG")
        handle.query_selector = AsyncMock(return_value=None)
        handle.query_selector_all = AsyncMock(return_value=[])
        return handle

    @pytest.fixture
    def element(self, mock_handle):
        """Create element handle with a 5s action timeout."""
        return ElementHandle(mock_handle, "#target", "TARGET-1", 5000)

    @pytest.mark.asyncio
    async def test_click(self, element, mock_handle):
        """Test click issues one command with the timeout."""
        await element.click()

        mock_handle.click.assert_awaited_once_with(timeout=5000)

    @pytest.mark.asyncio
    async def test_type_text_single_dispatch(self, element, mock_handle):
        """Test the whole string is typed in one call, without delay."""
        await element.type_text("hello world")

        mock_handle.type.assert_awaited_once_with("hello world", timeout=5000)

    @pytest.mark.asyncio
    async def test_select_option_by_value(self, element, mock_handle):
        """Test options are selected by value."""
        await element.select_option("de")

        mock_handle.select_option.assert_awaited_once_with(value="de", timeout=5000)

    @pytest.mark.asyncio
    async def test_detached_node_raises_not_found(self, element, mock_handle):
        """Test acting on a removed node raises ElementNotFound."""
        mock_handle.click.side_effect = PlaywrightError("Element is not attached to the DOM")

        with pytest.raises(ElementNotFound) as exc_info:
            await element.click()

        assert exc_info.value.selector == "#target"

    @pytest.mark.asyncio
    async def test_action_timeout(self, element, mock_handle):
        """Test a Playwright timeout maps to Timeout."""
        mock_handle.hover.side_effect = PlaywrightTimeoutError("Timeout")

        with pytest.raises(Timeout):
            await element.hover()

    @pytest.mark.asyncio
    async def test_other_failure_is_protocol_error(self, element, mock_handle):
        """Test unclassified failures map to ProtocolError."""
        mock_handle.focus.side_effect = PlaywrightError("Something broke")

        with pytest.raises(ProtocolError):
            await element.focus()

    @pytest.mark.asyncio
    async def test_get_attribute_absent(self, element, mock_handle):
        """Test an absent attribute is None, not an error."""
        assert await element.get_attribute("data-missing") is None

        mock_handle.get_attribute.return_value = "https://example.com"
        assert await element.get_attribute("href") == "https://example.com"

    @pytest.mark.asyncio
    async def test_get_attribute_detached(self, element, mock_handle):
        """Test reading from a detached node raises ElementNotFound."""
        mock_handle.get_attribute.side_effect = PlaywrightError("JSHandle is disposed")

        with pytest.raises(ElementNotFound):
            await element.get_attribute("href")

    @pytest.mark.asyncio
    async def test_inner_text_empty_is_valid(self, element, mock_handle):
        """Test an element with no text reads as an empty string."""
        assert await element.inner_text() == ""

    @pytest.mark.asyncio
    async def test_content_read_failure_is_js_error(self, element, mock_handle):
        """Test failed content reads raise JsError."""
        mock_handle.inner_html.side_effect = PlaywrightError("Execution failed")

        with pytest.raises(JsError):
            await element.inner_html()

    @pytest.mark.asyncio
    async def test_outer_html(self, element, mock_handle):
        """Test outer HTML is read through a parameterized evaluation."""
        mock_handle.evaluate.return_value = '<a href="/">Home</a>'

        assert await element.outer_html() == '<a href="/">Home</a>'
        mock_handle.evaluate.assert_awaited_once_with("(el) => el.outerHTML")

    @pytest.mark.asyncio
    async def test_outer_html_non_string(self, element, mock_handle):
        """Test a missing outer HTML value raises JsError."""
        mock_handle.evaluate.return_value = None

        with pytest.raises(JsError):
            await element.outer_html()

    @pytest.mark.asyncio
    async def test_screenshot(self, element, mock_handle):
        """Test element screenshots are PNG."""
        assert await element.screenshot() == b"\x89PNG"
        mock_handle.screenshot.assert_awaited_once_with(type="png", timeout=5000)

    @pytest.mark.asyncio
    async def test_screenshot_failure(self, element, mock_handle):
        """Test capture failures raise ScreenshotError."""
        mock_handle.screenshot.side_effect = PlaywrightError("Element is not visible")

        with pytest.raises(ScreenshotError):
            await element.screenshot()

    @pytest.mark.asyncio
    async def test_find_element_scoped(self, element, mock_handle):
        """Test descendant lookups stay scoped to the element."""
        child = MagicMock()
        mock_handle.query_selector.return_value = child

        found = await element.find_element("span")

        assert found.inner is child
        assert found.target_id == "TARGET-1"
        mock_handle.query_selector.assert_awaited_once_with("span")

    @pytest.mark.asyncio
    async def test_find_element_missing(self, element):
        """Test a missing descendant raises ElementNotFound."""
        with pytest.raises(ElementNotFound):
            await element.find_element("span")

    @pytest.mark.asyncio
    async def test_find_elements_empty(self, element):
        """Test plural descendant lookup may be empty."""
        assert await element.find_elements("li") == []
