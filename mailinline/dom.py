from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class AncestorInfo:
    tag: str
    classes: Tuple[str, ...] = ()
    id: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ParsedElement:
    tag: str
    id: str = ""
    classes: Tuple[str, ...] = ()
    attrs: Dict[str, str] = field(default_factory=dict)
    existing_style: str = ""
    # open ancestors when the tag was scanned, outermost first
    ancestors: Tuple[AncestorInfo, ...] = ()
    start: int = 0
    raw_tag_length: int = 0
    self_closing: bool = False

    @property
    def end(self) -> int:
        return self.start + self.raw_tag_length

    def raw_tag(self, source: str) -> str:
        return source[self.start : self.end]
