import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MAX_DEPTH = 64

# --- node kinds ---
TEXT = "text"
PARAGRAPH = "paragraph"
BULLET_LIST = "bullet-list"
ORDERED_LIST = "ordered-list"
LIST_ITEM = "list-item"
CODE_BLOCK = "code-block"
HEADING = "heading"
OTHER = "other"

ADF_KINDS = {
    "text": TEXT,
    "paragraph": PARAGRAPH,
    "bulletList": BULLET_LIST,
    "orderedList": ORDERED_LIST,
    "listItem": LIST_ITEM,
    "codeBlock": CODE_BLOCK,
    "heading": HEADING,
}


@dataclass(frozen=True)
class RichNode:
    """One node of a rich-text document (Jira's ADF, reduced to what we render)."""
    kind: str
    text: Optional[str] = None
    children: Tuple["RichNode", ...] = field(default_factory=tuple)
    heading_level: Optional[int] = None

    @classmethod
    def from_adf(cls, payload, _depth=0):
        if not isinstance(payload, dict):
            return cls(OTHER)
        kind = ADF_KINDS.get(payload.get("type"), OTHER)
        if kind == TEXT:
            text = payload.get("text")
            return cls(TEXT, text=text if isinstance(text, str) else "")

        content = payload.get("content")
        children = ()
        if isinstance(content, list):
            if _depth >= MAX_DEPTH:
                logger.warning("ADF payload nested deeper than %d levels, truncating", MAX_DEPTH)
            else:
                children = tuple(cls.from_adf(c, _depth + 1) for c in content)

        level = None
        if kind == HEADING:
            attrs = payload.get("attrs")
            level = attrs.get("level") if isinstance(attrs, dict) else None
        return cls(kind, children=children, heading_level=level)


def _heading_marks(level):
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        level = 1
    return "#" * level


def _render_children(nodes, depth):
    return "".join(render_node(n, depth) for n in nodes)


def render_node(node: RichNode, depth: int = 0) -> str:
    """Plain-text contribution of a single node, untrimmed."""
    if not isinstance(node, RichNode):
        return ""
    if depth > MAX_DEPTH:
        logger.warning("Document nested deeper than %d levels, dropping subtree", MAX_DEPTH)
        return ""
    if node.kind == TEXT:
        return node.text or ""

    children = node.children or ()
    if not children:
        return ""

    if node.kind == PARAGRAPH:
        return _render_children(children, depth + 1) + "\n\n"
    if node.kind in (BULLET_LIST, ORDERED_LIST):
        out = ""
        for item in children:
            if isinstance(item, RichNode) and item.kind == LIST_ITEM and item.children:
                out += "- " + _render_children(item.children, depth + 2) + "\n"
        return out + "\n"
    if node.kind == CODE_BLOCK:
        return "```\n" + _render_children(children, depth + 1) + "\n```\n\n"
    if node.kind == HEADING:
        return _heading_marks(node.heading_level) + " " + _render_children(children, depth + 1) + "\n\n"
    # unknown containers (doc, panel, blockquote, table...) pass through
    return _render_children(children, depth + 1)


def render(root: Optional[RichNode]) -> str:
    """Render a document tree to normalized plain text."""
    if root is None:
        return ""
    return render_node(root).strip()


def render_adf(payload) -> str:
    if not payload:
        return ""
    return render(RichNode.from_adf(payload))
