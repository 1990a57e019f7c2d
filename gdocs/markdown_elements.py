"""
Markdown element model.

The parser produces a flat, ordered sequence of these immutable elements.
Position in the sequence is an element's identity; list nesting is carried
as a `depth` attribute instead of a tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# A reference is remote when it starts with a URI scheme ("https:", "data:").
# Single-letter schemes are excluded so Windows paths ("C:\\img.png") stay local.
_URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:")


def is_remote_ref(ref: str) -> bool:
    """Return True if an image reference is a URI rather than a local path."""
    return bool(_URI_SCHEME_RE.match(ref.strip()))


@dataclass(frozen=True)
class InlineSpan:
    """A run of text sharing the same inline formatting."""

    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    strikethrough: bool = False
    link: str | None = None

    @property
    def is_styled(self) -> bool:
        return self.bold or self.italic or self.code or self.strikethrough or self.link is not None

    def same_style(self, other: InlineSpan) -> bool:
        return (
            self.bold == other.bold
            and self.italic == other.italic
            and self.code == other.code
            and self.strikethrough == other.strikethrough
            and self.link == other.link
        )


@dataclass(frozen=True)
class Heading:
    level: int
    spans: tuple[InlineSpan, ...] = ()


@dataclass(frozen=True)
class Paragraph:
    spans: tuple[InlineSpan, ...] = ()


@dataclass(frozen=True)
class ListItem:
    ordered: bool
    depth: int
    spans: tuple[InlineSpan, ...] = ()


@dataclass(frozen=True)
class Table:
    """A pipe table; `rows[0]` is the header row, each cell a tuple of spans."""

    rows: tuple[tuple[tuple[InlineSpan, ...], ...], ...] = ()


@dataclass(frozen=True)
class ImageRef:
    original_ref: str
    is_remote: bool
    alt: str = field(default="", compare=False)


@dataclass(frozen=True)
class HorizontalRule:
    pass


@dataclass(frozen=True)
class CodeBlock:
    text: str


MarkdownElement = Heading | Paragraph | ListItem | Table | ImageRef | HorizontalRule | CodeBlock


def spans_text(spans: tuple[InlineSpan, ...] | list[InlineSpan]) -> str:
    """Concatenate the literal text of a span sequence."""
    return "".join(span.text for span in spans)
