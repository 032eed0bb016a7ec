"""Batched structured extraction and form filling.

Every operation here costs exactly one script evaluation regardless of how
many elements or fields it touches. Selectors, attribute names and values
are passed to the evaluated function as bound arguments and never spliced
into script source.
"""

from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage
from pydantic import ValidationError

from ..core.errors import JsError
from ..models.page import ElementData, FormField, Link

logger = structlog.get_logger(__name__)

EXTRACT_ALL_SCRIPT = """
([selector, attributes]) => Array.from(document.querySelectorAll(selector)).map(el => {
    const record = {};
    for (const name of attributes) {
        const value = el.getAttribute(name);
        record[name] = value === null ? '' : value;
    }
    return record;
})
"""

EXTRACT_ELEMENTS_SCRIPT = """
([selector, attributes]) => Array.from(document.querySelectorAll(selector)).map(el => {
    const attrs = {};
    for (const name of attributes) {
        const value = el.getAttribute(name);
        if (value !== null) attrs[name] = value;
    }
    return {
        tag: el.tagName.toLowerCase(),
        text: (el.innerText || '').trim().substring(0, 500),
        attributes: attrs,
    };
})
"""

FILL_FORM_SCRIPT = """
(fields) => {
    const skipped = [];
    const setterFor = (el) => {
        for (const proto of [HTMLInputElement.prototype, HTMLTextAreaElement.prototype, HTMLSelectElement.prototype]) {
            if (el instanceof proto.constructor) {
                const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
                if (descriptor && descriptor.set) return descriptor.set;
            }
        }
        return null;
    };
    fields.forEach((field, index) => {
        const el = document.querySelector(field.selector);
        if (!el) { skipped.push(field.selector); return; }
        if (typeof el.focus === 'function') el.focus();
        const setter = setterFor(el);
        if (setter) setter.call(el, field.value);
        else el.value = field.value;
        el.dispatchEvent(new Event('input', { bubbles: true }));
        el.dispatchEvent(new Event('change', { bubbles: true }));
        if (index === fields.length - 1 && typeof el.blur === 'function') el.blur();
    });
    return skipped;
}
"""

FORM_FIELDS_SCRIPT = """
() => Array.from(document.querySelectorAll('input, select, textarea')).map(el => {
    let label = '';
    if (el.labels && el.labels.length > 0) {
        label = (el.labels[0].innerText || '').trim();
    } else if (el.id) {
        const labelEl = document.querySelector('label[for="' + CSS.escape(el.id) + '"]');
        if (labelEl) label = (labelEl.innerText || '').trim();
    }
    if (!label && el.closest('label')) {
        label = (el.closest('label').innerText || '').trim();
    }
    return {
        tag: el.tagName.toLowerCase(),
        type: el.type || '',
        name: el.name || '',
        id: el.id || '',
        value: el.value || '',
        placeholder: el.placeholder || '',
        label: label,
    };
})
"""

LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]')).map(a => ({
    text: (a.innerText || '').trim(),
    href: a.href,
}))
"""


class StructuredExtractor:
    """Single-round-trip extraction helpers bound to one page.

    Attributes:
        page: Playwright Page instance
    """

    def __init__(self, page: PlaywrightPage) -> None:
        self.page = page

    async def _evaluate(self, operation: str, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            logger.error(f"{operation}_failed", error=str(e))
            raise JsError(f"{operation} failed: {e}", script=script) from e

    @staticmethod
    def _expect_list(operation: str, script: str, result: Any) -> list[Any]:
        if not isinstance(result, list):
            raise JsError(
                f"{operation} returned {type(result).__name__}, expected list", script=script
            )
        return result

    async def extract_all(self, selector: str, attributes: list[str]) -> list[dict[str, str]]:
        """Read attributes from every node matching ``selector``.

        Args:
            selector: CSS selector
            attributes: Attribute names to read

        Returns:
            list: One record per match, in document order, mapping each
                requested attribute to its value or "" when absent

        Raises:
            JsError: If the selector is invalid or the script failed
        """
        result = await self._evaluate(
            "extract_all", EXTRACT_ALL_SCRIPT, [selector, list(attributes)]
        )
        records = self._expect_list("extract_all", EXTRACT_ALL_SCRIPT, result)
        logger.debug("extract_all_complete", selector=selector, count=len(records))
        return [
            {name: str(record.get(name, "") or "") for name in attributes} for record in records
        ]

    async def extract_elements(self, selector: str, attributes: list[str]) -> list[ElementData]:
        """Tag, text and present attributes for every match, in document order."""
        result = await self._evaluate(
            "extract_elements", EXTRACT_ELEMENTS_SCRIPT, [selector, list(attributes)]
        )
        items = self._expect_list("extract_elements", EXTRACT_ELEMENTS_SCRIPT, result)
        try:
            return [ElementData.model_validate(item) for item in items]
        except ValidationError as e:
            raise JsError(f"extract_elements returned malformed data: {e}") from e

    async def fill_form(self, pairs: list[tuple[str, str]]) -> list[str]:
        """Set values on many fields in one evaluation.

        Each field receives ``input`` and ``change`` events so framework
        listeners observe the update. A selector matching nothing is skipped;
        the batch is not aborted.

        Args:
            pairs: (selector, value) pairs, applied in order

        Returns:
            list: Selectors that matched no node and were skipped

        Raises:
            JsError: If the script failed
        """
        if not pairs:
            return []

        fields = [{"selector": selector, "value": value} for selector, value in pairs]
        result = await self._evaluate("fill_form", FILL_FORM_SCRIPT, fields)
        skipped = [str(s) for s in self._expect_list("fill_form", FILL_FORM_SCRIPT, result)]

        if skipped:
            logger.warning("form_fields_skipped", skipped=skipped, total=len(pairs))
        logger.info("form_filled", filled=len(pairs) - len(skipped), skipped=len(skipped))
        return skipped

    async def discover_fields(self) -> list[FormField]:
        """Every input, select and textarea with its label, in document order."""
        result = await self._evaluate("discover_fields", FORM_FIELDS_SCRIPT)
        items = self._expect_list("discover_fields", FORM_FIELDS_SCRIPT, result)
        try:
            fields = [FormField.model_validate(item) for item in items]
        except ValidationError as e:
            raise JsError(f"discover_fields returned malformed data: {e}") from e
        logger.debug("form_fields_discovered", count=len(fields))
        return fields

    async def get_links(self) -> list[Link]:
        """Every anchor with an href as (text, href), in document order."""
        result = await self._evaluate("get_links", LINKS_SCRIPT)
        items = self._expect_list("get_links", LINKS_SCRIPT, result)
        try:
            links = [Link.model_validate(item) for item in items]
        except ValidationError as e:
            raise JsError(f"get_links returned malformed data: {e}") from e
        logger.debug("links_extracted", count=len(links))
        return links
