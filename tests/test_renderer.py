import io
from datetime import date, datetime

from bson import ObjectId
from pypdf import PdfReader

from devnet.domains.cv.models import (
    Contact,
    CVProfileModel,
    CustomItem,
    CustomSection,
    DisplayOptions,
    Language,
    Skill,
    SkillLevel,
    Theme,
    WorkExperience,
)
from devnet.domains.cv.renderer import CVRenderer, font_family, pdf_filename, theme_color


def _pages(pdf: bytes):
    return [page.extract_text() for page in PdfReader(io.BytesIO(pdf)).pages]


def _profile(**kwargs) -> CVProfileModel:
    kwargs.setdefault("headline", "Backend engineer")
    kwargs.setdefault("contact", Contact(email="ada@example.com", location="London"))
    return CVProfileModel(user_id=ObjectId(), title="Main", **kwargs)


def test_short_cv_fits_one_page():
    profile = _profile(
        summary="Builds APIs.",
        skills=[Skill(name="Python", level=SkillLevel.EXPERT, years_of_experience=1)],
        languages=[Language(name="English")],
    )

    pdf = CVRenderer(profile, "Ada Lovelace", generated_on=date(2024, 3, 5)).render()
    pages = _pages(pdf)

    assert pdf.startswith(b"%PDF")
    assert len(pages) == 1
    text = pages[0]
    assert "Ada Lovelace" in text
    assert "ada@example.com | London" in text
    assert "Professional Summary" in text
    assert "Expert (1 year)" in text
    assert "English - Professional Working" in text
    assert "Generated on 03/05/2024 | Page 1 of 1" in text


def test_long_cv_paginates_with_continued_headers():
    jobs = [
        WorkExperience(
            title=f"Engineer {i}",
            company="Acme",
            start_date=datetime(2015, 1, 1),
            current=i == 0,
            description="Shipped services and kept them running. " * 12,
            highlights=["Cut latency in half", "Mentored the team"],
        )
        for i in range(12)
    ]

    pages = _pages(CVRenderer(_profile(work_experience=jobs), "Ada").render())

    assert len(pages) > 1
    for number, text in enumerate(pages, start=1):
        assert f"Page {number} of {len(pages)}" in text
    assert "Work Experience (continued)" in "".join(pages[1:])
    assert "January 2015 - Present" in pages[0]


def test_hidden_and_unknown_sections_are_skipped():
    profile = _profile(
        summary="Hidden summary",
        languages=[Language(name="French")],
        display_options=DisplayOptions(
            hidden_sections=["summary"],
            sections_order=["languages", "summary", "nonsense", "languages"],
        ),
    )
    renderer = CVRenderer(profile, "Ada")

    assert renderer.section_keys() == ["languages"]
    text = "".join(_pages(renderer.render()))
    assert "Hidden summary" not in text
    assert "Languages" in text


def test_custom_sections_use_their_own_titles():
    profile = _profile(
        custom_sections=[CustomSection(title="Talks", items=[CustomItem(title="PyCon 2023", subtitle="Keynote")])]
    )

    text = "".join(_pages(CVRenderer(profile, "Ada").render()))

    assert "Talks" in text
    assert "PyCon 2023" in text
    assert "Keynote" in text


def test_contact_can_be_hidden():
    profile = _profile(display_options=DisplayOptions(show_contact=False))
    assert "ada@example.com" not in "".join(_pages(CVRenderer(profile, "Ada").render()))


def test_bad_theme_falls_back_to_defaults():
    profile = _profile(theme=Theme(primary_color="not-a-color", font_family="Georgia, serif"))
    renderer = CVRenderer(profile, "Ada")

    assert renderer.primary.hexval() == theme_color(None, "#4e54c8").hexval()
    assert renderer.regular == "Times-Roman"
    assert renderer.render().startswith(b"%PDF")


def test_font_family_mapping():
    assert font_family("Fira Mono, monospace")[0] == "Courier"
    assert font_family("Segoe UI, Tahoma, sans-serif")[0] == "Helvetica"
    assert font_family(None)[0] == "Helvetica"


def test_pdf_filename_is_sanitized():
    assert pdf_filename("Ada Lovelace") == "cv-Ada Lovelace.pdf"
    assert pdf_filename('a/b"c') == "cv-a_b_c.pdf"
    assert pdf_filename("///") == "cv-_.pdf"
    assert pdf_filename("") == "cv-profile.pdf"
