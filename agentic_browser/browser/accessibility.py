"""Compact accessibility tree synthesized from the live DOM.

A single script walks the document depth-first from <body> and returns flat
node records; the Python side renders them into indented text lines. Only
interactive, heading and media elements plus non-blank text produce lines.
Wrapper elements (div, span, ...) are transparent and do not add depth.
"""

from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage

from ..core.errors import JsError
from ..models.page import AccessibilityNode

logger = structlog.get_logger(__name__)

INDENT = "  "
TEXT_LIMIT = 100

ROLES = frozenset(
    {"a", "button", "input", "select", "textarea", "h1", "h2", "h3", "h4", "h5", "h6", "img", "label"}
)

# Elements whose text content is never rendered
SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})

WALK_SCRIPT = """
([roles, skipped]) => {
    const ROLES = new Set(roles);
    const SKIP = new Set(skipped);
    const nodes = [];
    const attr = (el, name) => el.getAttribute(name) || '';
    const prop = (el, name) => {
        const v = el[name];
        return typeof v === 'string' ? v : '';
    };
    function walk(node, depth) {
        if (node.nodeType === Node.TEXT_NODE) {
            const text = (node.textContent || '').trim();
            if (text) nodes.push({ depth: depth, text: text });
            return;
        }
        if (node.nodeType !== Node.ELEMENT_NODE) return;
        const el = node;
        const tag = el.tagName.toLowerCase();
        if (SKIP.has(tag)) return;
        const explicitRole = attr(el, 'role');
        let role = '';
        if (ROLES.has(explicitRole)) role = explicitRole;
        else if (ROLES.has(tag)) role = tag;
        let childDepth = depth;
        if (role) {
            const formControl = tag === 'input' || tag === 'select' || tag === 'textarea' || tag === 'button';
            nodes.push({
                depth: depth,
                role: role,
                name: attr(el, 'aria-label') || attr(el, 'alt') || attr(el, 'title'),
                href: prop(el, 'href'),
                value: formControl ? prop(el, 'value') : '',
                type: tag === 'input' ? prop(el, 'type') : attr(el, 'type'),
            });
            childDepth = depth + 1;
        }
        for (const child of el.childNodes) walk(child, childDepth);
    }
    const root = document.body || document.documentElement;
    if (root) walk(root, 0);
    return nodes;
}
"""


class AccessibilityTreeBuilder:
    """Builds the text accessibility tree of a page."""

    @staticmethod
    def render_node(node: AccessibilityNode) -> str:
        """Render a single node as one indented line."""
        indent = INDENT * node.depth
        if node.is_text:
            return f'{indent}text: "{node.text.strip()[:TEXT_LIMIT]}"'

        parts = [node.role]
        if node.name:
            parts.append(f'"{node.name}"')
        if node.href:
            parts.append(f"href={node.href}")
        if node.value:
            parts.append(f"value={node.value}")
        if node.type:
            parts.append(f"type={node.type}")
        return indent + " ".join(parts)

    @classmethod
    def render(cls, nodes: list[AccessibilityNode]) -> str:
        """Render nodes in document order, dropping blank lines."""
        lines = (cls.render_node(node) for node in nodes)
        return "\n".join(line for line in lines if line.strip())

    @staticmethod
    def _parse(raw: Any) -> list[AccessibilityNode]:
        if not isinstance(raw, list):
            raise JsError(
                f"Accessibility walk returned {type(raw).__name__}, expected list",
                script=WALK_SCRIPT,
            )
        try:
            return [
                AccessibilityNode(
                    depth=int(item["depth"]),
                    role=item.get("role", ""),
                    name=item.get("name", ""),
                    text=item.get("text", ""),
                    href=item.get("href", ""),
                    value=item.get("value", ""),
                    type=item.get("type", ""),
                )
                for item in raw
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise JsError(f"Malformed accessibility node: {e}", script=WALK_SCRIPT) from e

    @classmethod
    async def build(cls, page: PlaywrightPage) -> str:
        """Walk the live document and return the rendered tree.

        Reads only; the page is not modified.

        Raises:
            JsError: If the walk script failed or returned unusable data
        """
        try:
            raw = await page.evaluate(WALK_SCRIPT, [sorted(ROLES), sorted(SKIPPED_TAGS)])
        except PlaywrightError as e:
            logger.error("accessibility_walk_failed", error=str(e))
            raise JsError(f"Accessibility walk failed: {e}", script=WALK_SCRIPT) from e

        nodes = cls._parse(raw)
        tree = cls.render(nodes)
        logger.debug("accessibility_tree_built", nodes=len(nodes), chars=len(tree))
        return tree
