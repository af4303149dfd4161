from __future__ import annotations
import logging
from typing import List, Tuple

from mailinline.css import CSSParser, serialize_declarations, unparsed_declarations
from mailinline.html import ATTR_RE, TAG_NAME_RE, ElementScanner
from mailinline.style import StyleEngine

logger = logging.getLogger(__name__)

# (start, end, replacement) against the original source
Edit = Tuple[int, int, str]


def inline_css(html: str, css: str) -> str:
    """Return ``html`` with every rule in ``css`` resolved into ``style`` attributes.

    At-rules are never inlined and an element's own inline style always wins.
    Never raises for malformed CSS or unsupported selectors.
    """
    html = html or ""
    if not css or not css.strip():
        return html

    rules = CSSParser(css).parse()
    if not rules:
        return html

    elements = ElementScanner(html).scan()
    engine = StyleEngine(rules)
    matched = engine.match(elements)

    edits: List[Edit] = []
    for idx, matches in matched.items():
        el = elements[idx]
        style = engine.computed_style(matches, el.existing_style)
        if not style:
            continue
        value = serialize_declarations(style)
        # inline text that isn't a declaration is kept verbatim
        leftover = unparsed_declarations(el.existing_style)
        if leftover:
            logger.debug("keeping unparsed inline style on <%s>: %r", el.tag, leftover)
            value = "; ".join([value] + leftover)
        new_tag = set_style_attribute(el.raw_tag(html), value)
        edits.append((el.start, el.end, new_tag))

    logger.debug("inlined %d rules into %d of %d elements", len(rules), len(edits), len(elements))
    return apply_edits(html, edits)


def set_style_attribute(raw_tag: str, style: str) -> str:
    value = style.replace("&", "&amp;").replace('"', "&quot;")
    attr = f'style="{value}"'

    name = TAG_NAME_RE.match(raw_tag)
    offset = name.end() if name else 1
    for m in ATTR_RE.finditer(raw_tag, offset):
        if m.group(1).lower() == "style":
            return raw_tag[: m.start()] + attr + raw_tag[m.end() :]

    # no style yet: insert before ">" or "/>"
    close = len(raw_tag) - 2 if raw_tag.endswith("/>") else len(raw_tag) - 1
    head = raw_tag[:close]
    sep = "" if head[-1:].isspace() else " "
    return head + sep + attr + raw_tag[close:]


def apply_edits(source: str, edits: List[Edit]) -> str:
    # last edit first, so earlier offsets stay valid
    pieces: List[str] = []
    cursor = len(source)
    for start, end, replacement in sorted(edits, reverse=True):
        pieces.append(source[end:cursor])
        pieces.append(replacement)
        cursor = start
    pieces.append(source[:cursor])
    return "".join(reversed(pieces))
