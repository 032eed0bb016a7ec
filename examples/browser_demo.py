"""Agent observation demo.

Opens a stealthy session, observes a page the way an agent would (title,
accessibility tree, links, form fields) and saves the observations plus a
screenshot to ./output.

Requirements:
    - playwright install chromium
"""

import asyncio
import json
from pathlib import Path

import structlog

from agentic_browser import BrowserSession, build_config
from agentic_browser.core.logging import setup_logging

logger = structlog.get_logger(__name__)


async def observe_page(session: BrowserSession, url: str, output_dir: Path) -> dict:
    """Open ``url`` in a new tab and collect an agent's observations.

    Args:
        session: Launched browser session
        url: Target URL
        output_dir: Directory for the screenshot

    Returns:
        dict: Observations of the page
    """
    page = await session.new_page()

    # Images and fonts add nothing to a text observation
    await page.block_resources(["image", "font", "media"])
    await page.goto_stable(url)

    observation = {
        "target_id": page.target_id,
        "url": await page.url(),
        "title": await page.title(),
        "tree": await page.accessibility_tree(),
        "links": await page.get_links(),
        "fields": [field.model_dump() for field in await page.get_form_fields()],
        "webdriver": await page.evaluate("navigator.webdriver"),
    }

    screenshot_path = await page.screenshot_to_file(output_dir / f"{page.target_id}.png")
    observation["screenshot"] = str(screenshot_path)

    logger.info(
        "page_observed",
        url=url,
        links=len(observation["links"]),
        fields=len(observation["fields"]),
        blocked_requests=page.blocker.blocked_count,
    )

    await page.close()
    return observation


async def main():
    """Main demo function."""
    setup_logging("INFO")

    output_dir = Path("output")
    output_dir.mkdir(exist_ok=True)

    config = build_config(timeout=20)
    urls = ["https://example.com", "https://www.iana.org/help/example-domains"]

    async with BrowserSession(config) as session:
        observations = await asyncio.gather(
            *(observe_page(session, url, output_dir) for url in urls)
        )

    with open(output_dir / "observations.json", "w") as f:
        json.dump(observations, f, indent=2)

    logger.info("results_saved", file="output/observations.json")

    # Print summary
    print("\n=== Observation Summary ===")
    for observation in observations:
        print(f"URL: {observation['url']}")
        print(f"Title: {observation['title']}")
        print(f"navigator.webdriver: {observation['webdriver']}")
        print(f"Links Found: {len(observation['links'])}")
        print(f"Form Fields Found: {len(observation['fields'])}")
        print(observation["tree"])
        print()


if __name__ == "__main__":
    asyncio.run(main())
