"""Core data structures for the message translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class MessageBlock:
    """One balanced ``DEFINE_MESSAGE(...)`` span taken from the source."""

    text: str
    start: int


@dataclass
class DefineData:
    """Fields parsed from a single message block.

    ``content`` is the MSG() body with the HEADER() call removed. It is kept
    for inspection only; segmentation works on offsets into ``source``,
    starting at ``header_end``.
    """

    message_id: str
    box_type: str
    y_pos: str
    icon: str
    next_message_id: str
    first_item_cost: str
    second_item_cost: str
    source: str
    header_end: int
    content: Optional[str] = None


@dataclass
class TextRun:
    """Free, translatable text inside a quoted literal."""

    text: str
    source_length: Optional[int] = None

    def __post_init__(self) -> None:
        if self.source_length is None:
            self.source_length = len(self.text)


@dataclass
class ControlToken:
    """A non-translatable inline token and the glue absorbed around it."""

    name: str
    literal: str = ""
    left_glue: str = ""
    right_glue: str = ""

    @property
    def source_length(self) -> int:
        return len(self.left_glue) + len(self.literal) + len(self.right_glue)


Part = Union[TextRun, ControlToken]


@dataclass
class TextSegment:
    """One quoted literal decomposed into text runs and control tokens."""

    start: int
    content: str
    parts: List[Part]
    ignored_start: str = ""
    ignored_end: str = ""
    length: int = 0
    original_length: int = 0

    @property
    def length_including_ignored(self) -> int:
        return self.length + len(self.ignored_start) + len(self.ignored_end)

    @property
    def end(self) -> int:
        """Offset just past the closing quote."""

        return self.start + self.length_including_ignored + 2


@dataclass
class MessageLayout:
    """Segments of a message plus the macro text around and between them."""

    define: DefineData
    segments: List[TextSegment]
    leading_macros: str = ""
    inter_macros: List[str] = field(default_factory=list)
    trailing_macros: str = ""

    def fragments(self, placeholder: str) -> List[str]:
        """Flatten every part into the ordered list sent for translation."""

        items: List[str] = []
        for segment in self.segments:
            for part in segment.parts:
                if isinstance(part, TextRun):
                    items.append(part.text)
                else:
                    items.append(placeholder)
        return items


@dataclass
class MacroChunk:
    text: str


@dataclass
class TextChunk:
    parts: List[Part]
    text: str
    ignored_start: str = ""
    ignored_end: str = ""


Chunk = Union[MacroChunk, TextChunk]


@dataclass(frozen=True)
class Literal:
    """A quoted run in the encoded content stream."""

    text: str

    def render(self) -> str:
        return f'"{self.text}"'


@dataclass(frozen=True)
class Macro:
    """A target-dialect macro in the encoded content stream."""

    name: str

    def render(self) -> str:
        return self.name


ContentToken = Union[Literal, Macro]


@dataclass
class MessageResult:
    """Outcome of running one message through the pipeline."""

    index: int
    line: str
    message_id: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None
