from __future__ import annotations
import re
from html import unescape
from typing import Dict, List

from mailinline.dom import AncestorInfo, ParsedElement

VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})
RAW_TEXT_TAGS = frozenset({"script", "style", "textarea", "title"})  # do not scan inner tags

_ATTR_VALUE = r"""(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))"""
ATTR_RE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*""" + _ATTR_VALUE + r")?")

TAG_RE = re.compile(
    r"<!--.*?-->"
    r"|<![^>]*>"
    r"|<\?[^>]*>"
    r"|<(/?)([a-zA-Z][\w:-]*)"
    r"""((?:\s+[^\s"'>/=]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?)*)"""
    r"\s*(/?)>",
    re.S,
)
TAG_NAME_RE = re.compile(r"</?[a-zA-Z][\w:-]*")
WHITESPACE_RUN_RE = re.compile(r"\s+")


def parse_attributes(s: str) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for m in ATTR_RE.finditer(s or ""):
        name = m.group(1).lower()
        value = next((g for g in m.group(2, 3, 4) if g is not None), "")
        attrs[name] = unescape(value)
    return attrs


class ElementScanner:
    def __init__(self, source: str) -> None:
        self.source = source or ""

    def scan(self) -> List[ParsedElement]:
        elements: List[ParsedElement] = []
        stack: List[AncestorInfo] = []

        i = 0
        while True:
            m = TAG_RE.search(self.source, i)
            if not m:
                break
            i = m.end()

            # comments, doctype, processing instructions
            if m.group(2) is None:
                continue

            closing, tag, attr_text, self_close = m.group(1), m.group(2).lower(), m.group(3), m.group(4)

            if closing:
                for j in range(len(stack) - 1, -1, -1):
                    if stack[j].tag == tag:
                        del stack[j:]
                        break
                continue

            attrs = parse_attributes(attr_text)
            classes = tuple(c for c in WHITESPACE_RUN_RE.split(attrs.get("class", "")) if c)
            el_id = attrs.get("id", "")

            el = ParsedElement(
                tag=tag,
                id=el_id,
                classes=classes,
                attrs=attrs,
                existing_style=attrs.get("style", ""),
                ancestors=tuple(stack),
                start=m.start(),
                raw_tag_length=m.end() - m.start(),
                self_closing=bool(self_close),
            )
            elements.append(el)

            if el.self_closing or tag in VOID_TAGS:
                continue

            # RAW TEXT: jump straight past the closing tag
            if tag in RAW_TEXT_TAGS:
                close = re.compile(r"</%s\s*>" % re.escape(tag), re.I).search(self.source, i)
                i = len(self.source) if close is None else close.end()
                continue

            stack.append(AncestorInfo(tag=tag, classes=classes, id=el_id, attrs=attrs))

        return elements
