"""
Case study PDF renderer.

Turns the agent's markdown-like analysis into a styled PDF in one forward
pass over the lines of the body. Each trimmed line is classified on its own
(first matching rule wins) and emitted with the typography of its kind:

    **Key Issues**          -> bold sub-heading
    * **Risk**: High        -> bullet, bold label, regular body
    * Plain point           -> bullet, regular text
    1. What happened?       -> bold numbered heading
    anything else           -> justified paragraph
    (blank line)            -> vertical space only
"""

import re
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..config import DEFAULT_AUTHOR, DEFAULT_OUTPUT_DIR, Settings
from ..exceptions import DocumentRenderError

logger = logging.getLogger(__name__)

BULLET = "•"

# (text, style) where style is "" for regular or "B" for bold
Run = Tuple[str, str]


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Blank:
    """An empty line. Adds spacing, never text."""

    @property
    def text(self) -> str:
        return ""

    def runs(self) -> List[Run]:
        return []


@dataclass(frozen=True)
class BoldHeader:
    text: str

    def runs(self) -> List[Run]:
        return [(self.text, "B")]


@dataclass(frozen=True)
class LabeledBullet:
    label: str
    body: str

    @property
    def text(self) -> str:
        return f"{BULLET} {self.label}: {self.body}"

    def runs(self) -> List[Run]:
        return [(f"{BULLET} ", ""), (self.label, "B"), (f": {self.body}", "")]


@dataclass(frozen=True)
class PlainBullet:
    body: str

    @property
    def text(self) -> str:
        return f"{BULLET} {self.body}"

    def runs(self) -> List[Run]:
        return [(f"{BULLET} ", ""), (self.body, "")]


@dataclass(frozen=True)
class NumberedHeader:
    text: str

    def runs(self) -> List[Run]:
        return [(self.text, "B")]


@dataclass(frozen=True)
class Paragraph:
    text: str

    def runs(self) -> List[Run]:
        return [(self.text, "")]


Line = Union[Blank, BoldHeader, LabeledBullet, PlainBullet, NumberedHeader, Paragraph]

_BULLET_MARKER = r"[*\-•]"

# Order matters: a line is claimed by the first pattern it matches.
_RULES = (
    (
        re.compile(r"^\*\*([^*]+)\*\*$"),
        lambda m: BoldHeader(m.group(1).strip()),
    ),
    (
        # The colon may sit just outside or just inside the closing marker.
        re.compile(_BULLET_MARKER + r"\s+\*\*([^*]+?)(?:\*\*:|:\*\*)\s*(.*)$"),
        lambda m: LabeledBullet(m.group(1).strip(), m.group(2).strip()),
    ),
    (
        re.compile(_BULLET_MARKER + r"\s+(.+)$"),
        lambda m: PlainBullet(m.group(1).strip()),
    ),
    (
        re.compile(r"^\d+\.\s+.+$"),
        lambda m: NumberedHeader(m.group(0)),
    ),
)


def classify_line(raw: str) -> Line:
    """Classify a single line of content."""
    line = raw.strip()
    if not line:
        return Blank()
    for pattern, build in _RULES:
        match = pattern.match(line)
        if match:
            return build(match)
    return Paragraph(line)


def classify(content: str) -> List[Line]:
    """Classify every line of ``content``, keeping order and blank lines."""
    return [classify_line(raw) for raw in content.split("\n")]


# ---------------------------------------------------------------------------
# File naming
# ---------------------------------------------------------------------------


def slugify(title: str) -> str:
    """Lowercase, whitespace runs to single hyphens, drop anything else unsafe."""
    slug = re.sub(r"\s+", "-", title.lower())
    return re.sub(r"[^A-Za-z0-9_-]", "", slug)


def pdf_filename(title: str, on: date) -> str:
    return f"{slugify(title)}-{on.isoformat()}.pdf"


# ---------------------------------------------------------------------------
# PDF document
# ---------------------------------------------------------------------------

# The built-in Helvetica only covers Latin-1; map common LLM punctuation first.
_CORE_FONT_SUBSTITUTIONS = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u2013": "-",
        "\u2014": "-",
        "\u2026": "...",
        "\u00a0": " ",
        BULLET: "\x95",  # WinAnsi bullet
    }
)


def to_core_font_text(text: str) -> str:
    text = text.translate(_CORE_FONT_SUBSTITUTIONS)
    return text.encode("latin-1", "replace").decode("latin-1")


class CaseStudyPDF(FPDF):
    """A4 portrait report with a centered title block and page numbers."""

    FONT = "helvetica"
    BASE_SIZE = 11
    LINE_HEIGHT = 6

    def __init__(self, title: str, author: str, generated_on: date):
        super().__init__(orientation="P", unit="mm", format="A4")
        self.report_title = title
        self.attribution = author
        self.generated_on = generated_on

        self.heading_color = (0, 51, 102)  # Navy
        self.body_color = (33, 33, 33)  # Near black
        self.muted_color = (110, 110, 110)  # Gray

        self.set_auto_page_break(auto=True, margin=20)
        self.set_title(to_core_font_text(title))
        self.set_author(to_core_font_text(author))

    def footer(self):
        self.set_y(-15)
        self.set_font(self.FONT, "", 8)
        self.set_text_color(*self.muted_color)
        self.cell(0, 5, f"Page {self.page_no()}", align="C")

    def add_title_block(self):
        """Uppercased title, generation date and attribution, all centered."""
        self.set_font(self.FONT, "B", 20)
        self.set_text_color(*self.heading_color)
        self.multi_cell(
            0,
            10,
            to_core_font_text(self.report_title.upper()),
            align="C",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        self.ln(2)

        self.set_font(self.FONT, "I", 10)
        self.set_text_color(*self.muted_color)
        self.cell(
            0,
            6,
            f"Generated on {self.generated_on.isoformat()}",
            align="C",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )

        self.set_font(self.FONT, "", 10)
        self.cell(
            0,
            6,
            to_core_font_text(self.attribution),
            align="C",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        self.ln(8)

    def add_spacing(self):
        self.ln(4)

    def add_bold_heading(self, text: str):
        self.ln(4)
        self.set_font(self.FONT, "B", 13)
        self.set_text_color(*self.heading_color)
        self.multi_cell(
            0, 8, to_core_font_text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
        self.ln(3)

    def add_numbered_heading(self, text: str):
        self.set_font(self.FONT, "B", 12)
        self.set_text_color(*self.body_color)
        self.multi_cell(
            0, 7, to_core_font_text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )
        self.ln(2)

    def add_runs(self, runs: List[Run], indent: float = 5):
        """Write styled runs as one continued line, then move below it."""
        self.set_x(self.l_margin + indent)
        self.set_text_color(*self.body_color)
        for text, style in runs:
            self.set_font(self.FONT, style, self.BASE_SIZE)
            self.write(self.LINE_HEIGHT, to_core_font_text(text))
        self.ln(self.LINE_HEIGHT)
        self.ln(1)

    def add_paragraph(self, text: str):
        self.set_font(self.FONT, "", self.BASE_SIZE)
        self.set_text_color(*self.body_color)
        self.multi_cell(
            0,
            self.LINE_HEIGHT,
            to_core_font_text(text),
            align="J",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        self.ln(3)

    def add_line(self, line: Line):
        """Emit one classified line with the typography of its kind."""
        if isinstance(line, Blank):
            self.add_spacing()
        elif isinstance(line, BoldHeader):
            self.add_bold_heading(line.text)
        elif isinstance(line, (LabeledBullet, PlainBullet)):
            self.add_runs(line.runs())
        elif isinstance(line, NumberedHeader):
            self.add_numbered_heading(line.text)
        elif isinstance(line, Paragraph):
            self.add_paragraph(line.text)
        else:
            raise TypeError(f"Unknown line kind: {line!r}")


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


@dataclass
class RendererConfig:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    author: str = DEFAULT_AUTHOR
    today: Callable[[], date] = date.today

    @classmethod
    def from_settings(cls, settings: Settings) -> "RendererConfig":
        return cls(output_dir=settings.output_dir, author=settings.author)


@dataclass
class RenderedDocument:
    path: Path
    locator: str
    blocks: List[Line] = field(default_factory=list)


class DocumentRenderer:
    """
    Writes one PDF per call to ``<output_dir>/<slug>-<yyyy-mm-dd>.pdf``.

    An existing file at that path is overwritten. Any failure while creating
    the directory, laying out a line or writing the stream is raised as
    DocumentRenderError; bytes already written are left in place.
    """

    def __init__(self, config: Optional[RendererConfig] = None):
        self.config = config or RendererConfig()

    def output_path(self, title: str, on: date) -> Path:
        output_dir = Path(self.config.output_dir).expanduser().absolute()
        return output_dir / pdf_filename(title, on)

    def render(self, title: str, content: str) -> RenderedDocument:
        today = self.config.today()
        path = self.output_path(title, today)
        blocks = classify(content)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            pdf = CaseStudyPDF(title=title, author=self.config.author, generated_on=today)
            pdf.add_page()
            pdf.add_title_block()
            for line in blocks:
                pdf.add_line(line)

            pdf.output(str(path))
        except Exception as e:
            raise DocumentRenderError(f"Could not write PDF to {path}: {e}") from e

        logger.info(f"Generated PDF: {path}")
        return RenderedDocument(path=path, locator=f"file://{path}", blocks=blocks)
