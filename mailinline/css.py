from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Dict, List

logger = logging.getLogger(__name__)

CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.S)

ID_SELECTOR_RE = re.compile(r"#[a-zA-Z_-][\w-]*")
CLASS_SELECTOR_RE = re.compile(r"\.[a-zA-Z_-][\w-]*")
ATTR_SELECTOR_RE = re.compile(r"\[[^\]]+\]")
PSEUDO_CLASS_RE = re.compile(r":[\w-]+(\([^)]*\))?")
COMBINATOR_SPLIT_RE = re.compile(r"[\s>+~]+")


@dataclass(frozen=True)
class CSSRule:
    selector: str
    declarations: str  # raw block body, untouched


@dataclass(frozen=True, order=True)
class Specificity:
    ids: int = 0
    classes: int = 0  # classes, attribute selectors and pseudo-classes
    types: int = 0


class CSSParser:
    def __init__(self, source: str) -> None:
        self.source = source or ""

    def parse(self) -> List[CSSRule]:
        s = CSS_COMMENT_RE.sub("", self.source)
        rules: List[CSSRule] = []
        i = 0
        n = len(s)

        while i < n:
            while i < n and s[i].isspace():
                i += 1
            if i >= n:
                break

            # at-rules are skipped whole, nested blocks included
            if s[i] == "@":
                end = self._skip_at_rule(s, i)
                logger.debug("skipping at-rule %r", s[i:end].split("{", 1)[0].strip())
                i = end
                continue

            open_idx = s.find("{", i)
            if open_idx == -1:
                logger.debug("dropping trailing selector without a block: %r", s[i:].strip())
                break
            close_idx = s.find("}", open_idx + 1)
            if close_idx == -1:
                logger.debug("dropping unterminated rule block for %r", s[i:open_idx].strip())
                break

            selector_text = s[i:open_idx]
            # stray "}" left over from a broken block
            if "}" in selector_text:
                selector_text = selector_text.rsplit("}", 1)[1]
            selector_text = selector_text.strip()
            block = s[open_idx + 1 : close_idx].strip()
            i = close_idx + 1

            if not selector_text or not block:
                logger.debug("dropping empty rule %r { %s }", selector_text, block)
                continue

            # selector lists: "h1, h2, p"
            for sel in split_top_level(selector_text, ","):
                sel = sel.strip()
                if sel:
                    rules.append(CSSRule(selector=sel, declarations=block))

        return rules

    def _skip_at_rule(self, s: str, i: int) -> int:
        depth = 0
        n = len(s)
        while i < n:
            c = s[i]
            if c == ";" and depth == 0:
                return i + 1
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth <= 0:
                    return i + 1
            i += 1
        return n


def split_top_level(text: str, sep: str) -> List[str]:
    """Split on ``sep`` outside of parentheses, brackets and quoted strings."""
    parts: List[str] = []
    buf: List[str] = []
    depth = 0
    quote = ""
    for c in text:
        if quote:
            if c == quote:
                quote = ""
        elif c in "\"'":
            quote = c
        elif c in "([":
            depth += 1
        elif c in ")]":
            depth = max(0, depth - 1)
        elif c == sep and depth == 0:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(c)
    parts.append("".join(buf))
    return parts


def parse_declarations(block: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for part in split_top_level(block or "", ";"):
        part = part.strip()
        if not part or ":" not in part:
            continue
        k, v = part.split(":", 1)
        k, v = k.strip(), v.strip()
        if not k or not v:
            continue
        if not k.startswith("--"):
            k = k.lower()
        out[k] = v
    return out


def unparsed_declarations(block: str) -> List[str]:
    """Fragments of ``block`` that parse_declarations skips, e.g. ``junk`` or ``color:``."""
    out: List[str] = []
    for part in split_top_level(block or "", ";"):
        part = part.strip()
        if not part:
            continue
        if ":" not in part:
            out.append(part)
            continue
        k, v = part.split(":", 1)
        if not k.strip() or not v.strip():
            out.append(part)
    return out


def serialize_declarations(style: Dict[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in style.items())


# ---- Specificity ----

def calculate_specificity(selector: str) -> Specificity:
    # attributes go first so their values can't be miscounted as ids/classes
    rest, attrs = ATTR_SELECTOR_RE.subn("", selector)
    rest, pseudos = PSEUDO_CLASS_RE.subn("", rest)
    rest, ids = ID_SELECTOR_RE.subn("", rest)
    rest, classes = CLASS_SELECTOR_RE.subn("", rest)

    types = 0
    for seg in COMBINATOR_SPLIT_RE.split(rest):
        seg = seg.strip()
        if seg and seg != "*":
            types += 1

    return Specificity(ids=ids, classes=classes + attrs + pseudos, types=types)


def compare_specificity(a: Specificity, b: Specificity) -> int:
    if a.ids != b.ids:
        return a.ids - b.ids
    if a.classes != b.classes:
        return a.classes - b.classes
    return a.types - b.types
