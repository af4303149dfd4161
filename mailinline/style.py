from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Dict, List, Optional, Sequence, Tuple, Union

from mailinline.css import CSSRule, Specificity, calculate_specificity, compare_specificity, parse_declarations
from mailinline.dom import AncestorInfo, ParsedElement

logger = logging.getLogger(__name__)

LEADING_TAG_RE = re.compile(r"[a-zA-Z][\w-]*")
LEADING_ID_RE = re.compile(r"#([a-zA-Z_-][\w-]*)")
LEADING_CLASS_RE = re.compile(r"\.([a-zA-Z_-][\w-]*)")
LEADING_ATTR_RE = re.compile(r"\[([^\]]+)\]")
LEADING_PSEUDO_RE = re.compile(r":[\w-]+(\([^)]*\))?")
QUOTE_WRAP_RE = re.compile(r"^[\"']|[\"']$")
ATTR_OPERATOR_SUFFIX_RE = re.compile(r"[~|^$*]$")

Node = Union[AncestorInfo, ParsedElement]
# (combinator joining it to the previous compound, compound selector)
Compound = Tuple[str, str]


@dataclass(frozen=True)
class MatchedStyle:
    declarations: str
    specificity: Specificity
    order: int  # rule position, tie-break only


def matches_simple_selector(selector: str, node: Node) -> bool:
    remaining = selector.strip()
    if not remaining:
        return False

    m = LEADING_TAG_RE.match(remaining)
    if m:
        if node.tag.lower() != m.group(0).lower():
            return False
        remaining = remaining[m.end():]

    while remaining:
        c = remaining[0]
        if c == "#":
            m = LEADING_ID_RE.match(remaining)
            if not m or node.id != m.group(1):
                return False
        elif c == ".":
            m = LEADING_CLASS_RE.match(remaining)
            if not m or m.group(1) not in node.classes:
                return False
        elif c == "[":
            m = LEADING_ATTR_RE.match(remaining)
            if not m or not _attr_matches(m.group(1), node.attrs):
                return False
        elif c == ":":
            # pseudo-classes always match once inlined
            m = LEADING_PSEUDO_RE.match(remaining)
            if not m:
                return False
        elif c == "*":
            remaining = remaining[1:]
            continue
        else:
            return False
        remaining = remaining[m.end():]

    return True


def _attr_matches(expr: str, attrs: Dict[str, str]) -> bool:
    eq = expr.find("=")
    if eq == -1:
        return expr.strip().lower() in attrs
    name = ATTR_OPERATOR_SUFFIX_RE.sub("", expr[:eq].strip()).strip().lower()
    value = QUOTE_WRAP_RE.sub("", expr[eq + 1 :].strip()).strip()
    return name in attrs and attrs[name] == value


def split_compounds(selector: str) -> Optional[List[Compound]]:
    """Split a selector into compound selectors and the combinators between them.

    Returns None when a combinator dangles at either end.
    """
    out: List[Compound] = []
    buf: List[str] = []
    combinator = ""
    depth = 0
    quote = ""

    for c in selector.strip():
        if quote:
            if c == quote:
                quote = ""
        elif c in "\"'":
            quote = c
        elif c in "([":
            depth += 1
        elif c in ")]":
            depth = max(0, depth - 1)
        elif depth == 0 and (c.isspace() or c in ">+~"):
            if buf:
                out.append((combinator, "".join(buf)))
                buf = []
                combinator = " "
            if c in ">+~":
                if not out:
                    return None
                combinator = c
            continue
        buf.append(c)

    if not buf:
        return None
    out.append((combinator, "".join(buf)))
    return out


def _match_compounds(compounds: Sequence[Compound], element: ParsedElement) -> bool:
    if not compounds or not matches_simple_selector(compounds[-1][1], element):
        return False
    memo: Dict[Tuple[int, int], bool] = {}
    return _match_chain(compounds, len(compounds) - 1, element.ancestors, len(element.ancestors), memo)


def _match_chain(
    compounds: Sequence[Compound],
    idx: int,
    ancestors: Sequence[AncestorInfo],
    pos: int,
    memo: Dict[Tuple[int, int], bool],
) -> bool:
    # compounds[idx] matched the node at ancestors[pos] (pos == len(ancestors) is the element)
    if idx == 0:
        return True
    key = (idx, pos)
    if key in memo:
        return memo[key]

    combinator = compounds[idx][0]
    selector = compounds[idx - 1][1]
    result = False

    if combinator == ">":
        parent = pos - 1
        result = (
            parent >= 0
            and matches_simple_selector(selector, ancestors[parent])
            and _match_chain(compounds, idx - 1, ancestors, parent, memo)
        )
    elif combinator == " ":
        # nearest ancestor first
        for cand in range(pos - 1, -1, -1):
            if matches_simple_selector(selector, ancestors[cand]) and _match_chain(
                compounds, idx - 1, ancestors, cand, memo
            ):
                result = True
                break
    # sibling combinators are not supported

    memo[key] = result
    return result


def selector_matches(
    selector: str, element: ParsedElement, compounds: Optional[Sequence[Compound]] = None
) -> bool:
    if compounds is None:
        compounds = split_compounds(selector)
    return compounds is not None and _match_compounds(compounds, element)


def _cascade_order(a: MatchedStyle, b: MatchedStyle) -> int:
    return compare_specificity(a.specificity, b.specificity) or a.order - b.order


class StyleEngine:
    def __init__(self, rules: List[CSSRule]) -> None:
        self.rules = rules or []

    def match(self, elements: Sequence[ParsedElement]) -> Dict[int, List[MatchedStyle]]:
        """Map element index -> every rule that matched it, in source order."""
        matched: Dict[int, List[MatchedStyle]] = {}
        for order, rule in enumerate(self.rules):
            compounds = split_compounds(rule.selector)
            if compounds is None:
                logger.debug("unsupported selector %r", rule.selector)
                continue
            specificity = calculate_specificity(rule.selector)
            for idx, el in enumerate(elements):
                if self._safe_matches(rule, compounds, el):
                    matched.setdefault(idx, []).append(
                        MatchedStyle(declarations=rule.declarations, specificity=specificity, order=order)
                    )
        return matched

    def _safe_matches(self, rule: CSSRule, compounds: List[Compound], el: ParsedElement) -> bool:
        try:
            return selector_matches(rule.selector, el, compounds)
        except Exception:
            logger.debug("selector %r failed on <%s>, treating as no match", rule.selector, el.tag, exc_info=True)
            return False

    def computed_style(self, matches: List[MatchedStyle], existing_style: str = "") -> Dict[str, str]:
        # ascending specificity, then source order, so later folds win
        ordered = sorted(matches, key=cmp_to_key(_cascade_order))
        style: Dict[str, str] = {}
        for m in ordered:
            style.update(parse_declarations(m.declarations))

        if existing_style:
            style.update(parse_declarations(existing_style))
        return style
