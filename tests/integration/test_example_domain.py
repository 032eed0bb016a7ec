"""End-to-end tests against a real Chromium and example.com.

Skipped unless AGENTIC_BROWSER_INTEGRATION=1 is set, since they need a
browser install (``playwright install chromium``) and network access.
"""

import asyncio
import os
from datetime import timedelta

import pytest

from agentic_browser import BrowserSession, SessionConfig
from agentic_browser.core.errors import ElementNotFound, NavigationError, Timeout

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        os.environ.get("AGENTIC_BROWSER_INTEGRATION") != "1",
        reason="set AGENTIC_BROWSER_INTEGRATION=1 to run real-browser tests",
    ),
]

EXAMPLE_URL = "https://example.com"


@pytest.fixture
async def session():
    """Launch a headless, stealthy session."""
    async with BrowserSession(SessionConfig(timeout=timedelta(seconds=30))) as session:
        yield session


@pytest.mark.asyncio
async def test_title_and_heading(session):
    """Test the title and heading of example.com."""
    page = await session.new_page(EXAMPLE_URL)

    assert await page.title() == "Example Domain"
    assert await page.text_content("h1") == "Example Domain"


@pytest.mark.asyncio
async def test_screenshot_is_png(session):
    """Test a viewport screenshot returns real PNG bytes."""
    page = await session.new_page(EXAMPLE_URL)

    data = await page.screenshot()

    assert data[:4] == b"\x89PNG"
    assert len(data) > 1000


@pytest.mark.asyncio
async def test_links_and_tree(session):
    """Test links and the accessibility tree reflect the document."""
    page = await session.new_page(EXAMPLE_URL)

    links = await page.get_links()
    assert links
    assert any("iana.org" in href for _, href in links)

    tree = await page.accessibility_tree()
    assert "h1" in tree
    assert 'text: "Example Domain"' in tree
    assert tree == await page.accessibility_tree()


@pytest.mark.asyncio
async def test_stealth_hides_webdriver(session):
    """Test navigator.webdriver reads false on a patched page."""
    page = await session.new_page(EXAMPLE_URL)

    assert await page.evaluate("navigator.webdriver") == "false"
    assert await page.evaluate("navigator.languages") == '["en-US", "en"]'


@pytest.mark.asyncio
async def test_missing_selector_times_out(session):
    """Test waiting for an absent node raises Timeout within the budget."""
    page = await session.new_page(EXAMPLE_URL)

    with pytest.raises(Timeout):
        await page.wait_for_selector("#nonexistent", timeout=0.2)

    with pytest.raises(ElementNotFound):
        await page.find_element("#nonexistent")


@pytest.mark.asyncio
async def test_unresolvable_host(session):
    """Test navigating to an invalid host fails cleanly."""
    page = await session.new_page()

    with pytest.raises(NavigationError):
        await page.goto("https://nonexistent.invalid")


@pytest.mark.asyncio
async def test_blocked_images_still_load_document(session):
    """Test blocking images does not break the document load."""
    page = await session.new_page()
    await page.block_resources(["image", "font"])

    await page.goto(EXAMPLE_URL)

    assert await page.title() == "Example Domain"


@pytest.mark.asyncio
async def test_tree_names_labelled_button(session):
    """Test an aria-label becomes the quoted name of a button line."""
    page = await session.new_page()
    await page.inner.set_content('<button aria-label="Submit">Send</button>')

    lines = (await page.accessibility_tree()).splitlines()

    assert lines == ['button "Submit"', '  text: "Send"']


@pytest.mark.asyncio
async def test_tree_wrappers_add_no_depth(session):
    """Test div and span wrappers are transparent in the tree."""
    page = await session.new_page()
    await page.inner.set_content(
        '<div><span><a href="https://example.com/docs">Docs</a></span></div>'
        "<div><div><h2>Title</h2></div></div>"
    )

    lines = (await page.accessibility_tree()).splitlines()

    assert lines == [
        "a href=https://example.com/docs",
        '  text: "Docs"',
        "h2",
        '  text: "Title"',
    ]


@pytest.mark.asyncio
async def test_fill_form_skips_missing_fields(session):
    """Test unmatched selectors are reported while the rest are filled."""
    page = await session.new_page()
    await page.inner.set_content(
        '<form><input id="name"><textarea id="bio"></textarea></form>'
    )

    skipped = await page.fill_form(
        [("#name", "Ada"), ("#missing", "x"), ("#bio", "Mathematician")]
    )

    assert skipped == ["#missing"]
    assert await page.evaluate("document.querySelector('#name').value") == "Ada"
    assert await page.evaluate("document.querySelector('#bio').value") == "Mathematician"


@pytest.mark.asyncio
async def test_extract_all_document_order(session):
    """Test records follow document order with "" for absent attributes."""
    page = await session.new_page()
    await page.inner.set_content(
        '<ul><li data-id="1" class="a">one</li><li data-id="2">two</li>'
        '<li data-id="3" class="c">three</li></ul>'
    )

    records = await page.extract_all("li", ["data-id", "class"])

    assert records == [
        {"data-id": "1", "class": "a"},
        {"data-id": "2", "class": ""},
        {"data-id": "3", "class": "c"},
    ]


@pytest.mark.asyncio
async def test_blocked_images_never_finish(session):
    """Test blocked image requests fail and none completes."""
    page = await session.new_page()
    finished: list[str] = []
    failed: list[str] = []
    page.inner.on(
        "requestfinished",
        lambda request: finished.append(request.url) if request.resource_type == "image" else None,
    )
    page.inner.on(
        "requestfailed",
        lambda request: failed.append(request.url) if request.resource_type == "image" else None,
    )
    await page.block_resources(["image"])

    await page.inner.set_content('<img src="https://example.com/logo.png" alt="logo">')

    assert finished == []
    assert failed == ["https://example.com/logo.png"]


@pytest.mark.asyncio
async def test_selector_wait_spans_navigation(session):
    """Test a selector wait started on one document resolves on the next."""
    page = await session.new_page()

    waiter = asyncio.create_task(page.wait_for_selector("h1", timeout=20))
    await page.goto(EXAMPLE_URL)
    element = await waiter

    assert await element.inner_text() == "Example Domain"


@pytest.mark.asyncio
async def test_wait_for_navigation_follows_click(session):
    """Test the navigation wait completes on the document a click opens."""
    page = await session.new_page(EXAMPLE_URL)

    await asyncio.gather(page.wait_for_navigation(), page.click("a"))

    assert "iana.org" in await page.url()


@pytest.mark.asyncio
async def test_wait_for_navigation_requires_new_document(session):
    """Test a loaded page does not satisfy the navigation wait."""
    page = await session.new_page(EXAMPLE_URL)

    with pytest.raises(Timeout):
        await page.wait_for_navigation(timeout=0.5)


@pytest.mark.asyncio
async def test_without_stealth_webdriver_is_visible():
    """Test an unpatched page exposes navigator.webdriver."""
    config = SessionConfig(stealth=False, timeout=timedelta(seconds=30))
    async with BrowserSession(config) as plain:
        page = await plain.new_page(EXAMPLE_URL)

        assert await page.evaluate("navigator.webdriver") == "true"
