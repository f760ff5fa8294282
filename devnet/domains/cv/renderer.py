"""
PDF rendering of a CV profile with reportlab.

Layout is a running cursor on an A4 canvas. Before each block the renderer
measures it and starts a new page when it would cross the bottom margin; a
section that spills over repeats its header with "(continued)". Page footers
("Generated on <date> | Page i of N") are drawn when the document is saved,
once the page count is known.
"""

import io
import logging
import re
from datetime import date, datetime
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from devnet.domains.cv.models import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_SECTIONS_ORDER,
    CVProfileModel,
    SkillLevel,
)

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
FOOTER_Y = MARGIN / 2
IMAGE_SIZE = 100
LEADING = 1.3

TEXT_COLOR = HexColor("#333333")
MUTED_COLOR = HexColor("#555555")
HEADLINE_COLOR = HexColor("#444444")
FOOTER_COLOR = HexColor("#888888")
BAR_BACKGROUND = HexColor("#eeeeee")

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

# (regular, bold, oblique)
_FONT_FAMILIES = {
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique"),
}

SECTION_TITLES = {
    "summary": "Professional Summary",
    "workExperience": "Work Experience",
    "education": "Education",
    "skills": "Skills",
    "projects": "Projects",
    "certifications": "Certifications",
    "languages": "Languages",
    "publications": "Publications",
}


def theme_color(value: Optional[str], default: str) -> Color:
    if value and _HEX_COLOR.match(value):
        return HexColor(value)
    return HexColor(default)


def font_family(css_family: Optional[str]) -> Tuple[str, str, str]:
    """Maps a CSS font-family list onto one of the PDF base-14 families."""
    family = (css_family or "").lower()
    if "courier" in family or "mono" in family:
        return _FONT_FAMILIES["courier"]
    if "times" in family or ("serif" in family and "sans-serif" not in family):
        return _FONT_FAMILIES["times"]
    return _FONT_FAMILIES["helvetica"]


def pdf_filename(display_name: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9 ._-]+", "_", display_name).strip() or "profile"
    return f"cv-{safe}.pdf"


def _month_year(value: Optional[datetime]) -> str:
    return value.strftime("%B %Y") if value else ""


def _period(start: str, end: str, current: bool) -> str:
    return f"{start} - {'Present' if current else end}"


class FooterCanvas(canvas.Canvas):
    """
    Canvas that defers page output until save() so every page can carry
    "Page i of N".
    """

    def __init__(self, *args, footer_prefix: str = "", footer_font: str = "Helvetica", **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._footer_prefix = footer_prefix
        self._footer_font = footer_font
        self._saved_page_states: List[Dict] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self._draw_footer(number, total)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def _draw_footer(self, number: int, total: int) -> None:
        self.saveState()
        self.setFont(self._footer_font, 8)
        self.setFillColor(FOOTER_COLOR)
        self.drawCentredString(PAGE_WIDTH / 2, FOOTER_Y, f"{self._footer_prefix}Page {number} of {total}")
        self.restoreState()


class Line(NamedTuple):
    text: str
    font: str
    size: float
    color: Color
    indent: float = 0
    centered: bool = False

    @property
    def height(self) -> float:
        return self.size * LEADING


class Gap(NamedTuple):
    height: float


Block = List[object]  # Lines and Gaps, laid out top to bottom


class CVRenderer:
    def __init__(
        self,
        profile: CVProfileModel,
        display_name: str,
        image: Optional[bytes] = None,
        generated_on: Optional[date] = None,
    ):
        self.profile = profile
        self.display_name = display_name
        self.image = image
        self.generated_on = generated_on or date.today()

        self.primary = theme_color(profile.theme.primary_color, DEFAULT_PRIMARY_COLOR)
        self.secondary = theme_color(profile.theme.secondary_color, DEFAULT_SECONDARY_COLOR)
        self.regular, self.bold, self.oblique = font_family(profile.theme.font_family)

        self.canvas: Optional[FooterCanvas] = None
        self.y = PAGE_HEIGHT - MARGIN

    # ------------------------------
    # Entry point
    # ------------------------------
    def render(self) -> bytes:
        buffer = io.BytesIO()
        self.canvas = FooterCanvas(
            buffer,
            pagesize=A4,
            footer_prefix=f"Generated on {self.generated_on.strftime('%m/%d/%Y')} | ",
            footer_font=self.regular,
        )
        self.canvas.setTitle(f"CV - {self.display_name}")
        self.canvas.setAuthor(self.display_name)
        self.canvas.setCreator("Dev Network CV Builder")
        self.y = PAGE_HEIGHT - MARGIN

        self._draw_header()
        for key in self.section_keys():
            self._draw_section(key)

        self.canvas.showPage()
        self.canvas.save()
        logger.info(f"Rendered CV {self.profile.id} ({len(buffer.getvalue())} bytes)")
        return buffer.getvalue()

    def section_keys(self) -> List[str]:
        options = self.profile.display_options
        order = options.sections_order or DEFAULT_SECTIONS_ORDER
        hidden = set(options.hidden_sections)
        keys = []
        for key in order:
            if key in hidden or key in keys:
                continue
            if key in SECTION_TITLES or key == "customSections":
                keys.append(key)
        return keys

    # ------------------------------
    # Cursor and pagination
    # ------------------------------
    def _new_page(self) -> None:
        self.canvas.showPage()
        self.y = PAGE_HEIGHT - MARGIN

    def _fits(self, height: float) -> bool:
        return self.y - height >= MARGIN

    def _at_top(self) -> bool:
        return self.y >= PAGE_HEIGHT - MARGIN

    def _text(self, text: str, font: str, size: float, color: Color = TEXT_COLOR, indent: float = 0,
              centered: bool = False) -> Block:
        width = CONTENT_WIDTH - indent
        return [Line(part, font, size, color, indent, centered) for part in simpleSplit(text, font, size, width)]

    @staticmethod
    def _height(block: Block) -> float:
        return sum(item.height for item in block)

    def _draw_block(self, block: Block) -> None:
        for item in block:
            if isinstance(item, Gap):
                self.y -= item.height
                continue
            # a single block taller than the page still breaks between lines
            if not self._fits(item.height):
                self._new_page()
            self.y -= item.size
            self.canvas.setFont(item.font, item.size)
            self.canvas.setFillColor(item.color)
            if item.centered:
                self.canvas.drawCentredString(PAGE_WIDTH / 2, self.y, item.text)
            else:
                self.canvas.drawString(MARGIN + item.indent, self.y, item.text)
            self.y -= item.height - item.size

    # ------------------------------
    # Header
    # ------------------------------
    def _draw_header(self) -> None:
        block = self._text(self.display_name, self.bold, 28, self.primary, centered=True)
        if self.profile.headline:
            block += self._text(self.profile.headline, self.regular, 16, HEADLINE_COLOR, centered=True)
        block.append(Gap(12))

        contact = self.profile.contact
        if self.profile.display_options.show_contact and contact:
            items = [v for v in (contact.email, contact.phone, contact.location, contact.website) if v]
            if items:
                block += self._text(" | ".join(items), self.regular, 11, centered=True)
                block.append(Gap(18))
        self._draw_block(block)

        if self.image and self.profile.display_options.show_profile_image:
            self._draw_image()

    def _draw_image(self) -> None:
        try:
            reader = ImageReader(io.BytesIO(self.image))
        except (OSError, ValueError) as exc:
            logger.warning(f"Skipping unreadable profile image on CV {self.profile.id}: {exc}")
            return
        if not self._fits(IMAGE_SIZE + 20):
            self._new_page()
        self.y -= IMAGE_SIZE
        self.canvas.drawImage(
            reader,
            (PAGE_WIDTH - IMAGE_SIZE) / 2,
            self.y,
            width=IMAGE_SIZE,
            height=IMAGE_SIZE,
            preserveAspectRatio=True,
            anchor="c",
            mask="auto",
        )
        self.y -= 20

    # ------------------------------
    # Sections
    # ------------------------------
    def _section_header(self, title: str) -> Block:
        return [Gap(6), *self._text(title, self.bold, 16, self.primary), Gap(14)]

    def _draw_section_header(self, title: str) -> None:
        self._draw_block(self._section_header(title))
        rule_y = self.y + 8
        self.canvas.setStrokeColor(self.primary)
        self.canvas.setLineWidth(1)
        self.canvas.line(MARGIN, rule_y, PAGE_WIDTH - MARGIN, rule_y)

    def _draw_entries(self, title: str, entries: Sequence[Block]) -> None:
        """
        Draws a titled list of blocks. The header is kept with the first entry;
        an entry that would overflow starts a new page under "<title> (continued)".
        """
        if not entries:
            return
        header_height = self._height(self._section_header(title))
        if not self._at_top() and not self._fits(header_height + self._height(entries[0])):
            self._new_page()
        self._draw_section_header(title)

        for index, entry in enumerate(entries):
            if index and not self._fits(self._height(entry)):
                self._new_page()
                self._draw_section_header(f"{title} (continued)")
            self._draw_block(entry)

    def _draw_section(self, key: str) -> None:
        if key == "customSections":
            for section in self.profile.custom_sections:
                self._draw_entries(section.title, [self._custom_item(item) for item in section.items])
            return
        if key == "skills":
            self._draw_skills()
            return
        builders: Dict[str, Callable[[], Iterator[Block]]] = {
            "summary": self._summary_entries,
            "workExperience": self._work_entries,
            "education": self._education_entries,
            "projects": self._projects_entries,
            "certifications": self._certifications_entries,
            "languages": self._languages_entries,
            "publications": self._publications_entries,
        }
        self._draw_entries(SECTION_TITLES[key], list(builders[key]()))

    def _bullets(self, label: str, items: Sequence[str]) -> Block:
        if not items:
            return []
        block: Block = [Gap(4), *self._text(label, self.bold, 11)]
        for item in items:
            block += self._text(f"• {item}", self.regular, 11, indent=15)
        return block

    def _summary_entries(self) -> Iterator[Block]:
        if self.profile.summary:
            # one block per paragraph so long summaries can continue on the next page
            for paragraph in self.profile.summary.splitlines():
                if paragraph.strip():
                    yield [*self._text(paragraph, self.regular, 11), Gap(4)]

    def _work_entries(self) -> Iterator[Block]:
        for exp in self.profile.work_experience:
            block = self._text(f"{exp.title} at {exp.company}", self.bold, 13)
            if exp.location:
                block += self._text(exp.location, self.regular, 11, MUTED_COLOR)
            block += self._text(
                _period(_month_year(exp.start_date), _month_year(exp.end_date), exp.current),
                self.oblique, 11, MUTED_COLOR,
            )
            if exp.description:
                block += [Gap(4), *self._text(exp.description, self.regular, 11)]
            block += self._bullets("Key Achievements:", exp.highlights)
            if exp.technologies:
                block += [Gap(4), *self._text("Technologies:", self.bold, 11)]
                block += self._text(", ".join(exp.technologies), self.regular, 11, indent=15)
            yield [*block, Gap(16)]

    def _education_entries(self) -> Iterator[Block]:
        for edu in self.profile.education:
            degree = " ".join(part for part in (edu.degree, f"in {edu.field_of_study}" if edu.field_of_study else "") if part)
            heading = f"{degree} at {edu.institution}" if degree else edu.institution
            block = self._text(heading, self.bold, 13)
            block += self._text(
                _period(str(edu.start_year or ""), str(edu.end_year or ""), edu.current),
                self.oblique, 11, MUTED_COLOR,
            )
            if edu.description:
                block += [Gap(4), *self._text(edu.description, self.regular, 11)]
            block += self._bullets("Achievements:", edu.achievements)
            yield [*block, Gap(16)]

    def _projects_entries(self) -> Iterator[Block]:
        for project in self.profile.projects:
            block = self._text(project.title, self.bold, 13)
            if project.start_date or project.end_date:
                block += self._text(
                    _period(_month_year(project.start_date), _month_year(project.end_date), project.current),
                    self.oblique, 11, MUTED_COLOR,
                )
            if project.url:
                block += self._text(f"Live Demo: {project.url}", self.regular, 10, self.primary)
            if project.repository_url:
                block += self._text(f"Repository: {project.repository_url}", self.regular, 10, self.primary)
            if project.description:
                block += [Gap(4), *self._text(project.description, self.regular, 11)]
            if project.technologies:
                block += [Gap(4), *self._text("Technologies:", self.bold, 11)]
                block += self._text(", ".join(project.technologies), self.regular, 11, indent=15)
            block += self._bullets("Key Features:", project.highlights)
            yield [*block, Gap(16)]

    def _certifications_entries(self) -> Iterator[Block]:
        for cert in self.profile.certifications:
            block = self._text(cert.name, self.bold, 13)
            details = [cert.issuer, _month_year(cert.date)]
            if cert.has_expiry and cert.expires:
                details.append(f"expires {_month_year(cert.expires)}")
            details = [d for d in details if d]
            if details:
                block += self._text(" | ".join(details), self.oblique, 11, MUTED_COLOR)
            if cert.credential_id:
                block += self._text(f"Credential ID: {cert.credential_id}", self.regular, 10)
            if cert.credential_url:
                block += self._text(cert.credential_url, self.regular, 10, self.primary)
            yield [*block, Gap(12)]

    def _languages_entries(self) -> Iterator[Block]:
        for lang in self.profile.languages:
            yield self._text(f"{lang.name} - {lang.proficiency.value}", self.regular, 11) + [Gap(4)]

    def _publications_entries(self) -> Iterator[Block]:
        for pub in self.profile.publications:
            block = self._text(pub.title, self.bold, 13)
            meta = " | ".join(p for p in (pub.publisher, _month_year(pub.date)) if p)
            if meta:
                block += self._text(meta, self.oblique, 11, MUTED_COLOR)
            if pub.url:
                block += self._text(pub.url, self.regular, 10, self.primary)
            if pub.description:
                block += [Gap(4), *self._text(pub.description, self.regular, 11)]
            yield [*block, Gap(12)]

    def _custom_item(self, item) -> Block:
        block = self._text(item.title, self.bold, 12) if item.title else []
        meta = " | ".join(p for p in (item.subtitle, _month_year(item.date)) if p)
        if meta:
            block += self._text(meta, self.oblique, 11, MUTED_COLOR)
        if item.description:
            block += self._text(item.description, self.regular, 11)
        if item.url:
            block += self._text(item.url, self.regular, 10, self.primary)
        return [*block, Gap(12)]

    # Skills are a two-column grid of name, level and a bar filled to the level.
    SKILL_ROW_HEIGHT = 50

    def _draw_skills(self) -> None:
        skills = self.profile.skills
        if not skills:
            return
        rows = [skills[i:i + 2] for i in range(0, len(skills), 2)]
        title = SECTION_TITLES["skills"]
        header_height = self._height(self._section_header(title))
        if not self._at_top() and not self._fits(header_height + self.SKILL_ROW_HEIGHT):
            self._new_page()
        self._draw_section_header(title)

        column = CONTENT_WIDTH / 2
        for index, row in enumerate(rows):
            if index and not self._fits(self.SKILL_ROW_HEIGHT):
                self._new_page()
                self._draw_section_header(f"{title} (continued)")
            top = self.y
            for position, skill in enumerate(row):
                x = MARGIN + position * column
                width = column - 10
                self.canvas.setFont(self.bold, 11)
                self.canvas.setFillColor(TEXT_COLOR)
                self.canvas.drawString(x, top - 11, skill.name)

                level = SkillLevel(skill.level)
                years = skill.years_of_experience
                caption = level.value if years is None else f"{level.value} ({years} {'year' if years == 1 else 'years'})"
                self.canvas.setFont(self.regular, 10)
                self.canvas.setFillColor(MUTED_COLOR)
                self.canvas.drawString(x, top - 25, caption)

                self.canvas.setFillColor(BAR_BACKGROUND)
                self.canvas.rect(x, top - 40, width, 8, stroke=0, fill=1)
                self.canvas.setFillColor(self.secondary if level is SkillLevel.BEGINNER else self.primary)
                self.canvas.rect(x, top - 40, width * level.fraction, 8, stroke=0, fill=1)
            self.y = top - self.SKILL_ROW_HEIGHT
