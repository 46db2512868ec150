import io
import logging
from datetime import date
from typing import List, Optional, Sequence, Union
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Flowable, KeepTogether, Paragraph, SimpleDocTemplate, Spacer

from app.core.errors import RenderError
from app.schemas.analysis import AnalysisResult, FeedbackItem, MissingSkill

logger = logging.getLogger(__name__)

MARGIN = 50
BAR_HEIGHT = 20

RED = "#ef4444"
AMBER = "#f59e0b"
GREEN = "#10b981"

PRIORITY_COLORS = {
    "high": AMBER,
    "medium": "#6b7280",
    "low": "#3b82f6",
}


def match_color(match_percentage: int) -> str:
    """Red below 40, amber from 40 to 69, green from 70"""
    if match_percentage < 40:
        return RED
    if match_percentage < 70:
        return AMBER
    return GREEN


STYLES = {
    "Title": ParagraphStyle(
        name="Title", fontName="Helvetica-Bold", fontSize=20, leading=24,
        textColor=HexColor("#1e40af"), alignment=TA_CENTER, spaceAfter=10,
    ),
    "Subtitle": ParagraphStyle(
        name="Subtitle", fontName="Helvetica", fontSize=12, leading=15,
        textColor=HexColor("#4b5563"), alignment=TA_CENTER, spaceAfter=16,
    ),
    "Heading": ParagraphStyle(
        name="Heading", fontName="Helvetica-Bold", fontSize=14, leading=18,
        textColor=HexColor("#1e40af"), spaceBefore=10, spaceAfter=6,
    ),
    "ItemTitle": ParagraphStyle(
        name="ItemTitle", fontName="Helvetica-Bold", fontSize=12, leading=15,
        textColor=HexColor("#374151"), spaceAfter=3,
    ),
    "Body": ParagraphStyle(
        name="Body", fontName="Helvetica", fontSize=11, leading=14,
        textColor=HexColor("#4b5563"), spaceAfter=3,
    ),
    "SuggestedLabel": ParagraphStyle(
        name="SuggestedLabel", fontName="Helvetica-Bold", fontSize=11, leading=14,
        textColor=HexColor("#1e40af"), spaceBefore=4,
    ),
    "Suggested": ParagraphStyle(
        name="Suggested", fontName="Helvetica-Oblique", fontSize=11, leading=14,
        textColor=HexColor("#1e3a8a"), leftIndent=10, spaceAfter=5,
    ),
}


class ScoreBar(Flowable):
    """Grey track with a filled part proportional to the match percentage"""

    def __init__(self, match_percentage: int, width: float, height: float = BAR_HEIGHT):
        super().__init__()
        self.match_percentage = max(0, min(100, match_percentage))
        self.width = width
        self.height = height

    @property
    def fill_color(self) -> str:
        return match_color(self.match_percentage)

    @property
    def filled_width(self) -> float:
        return self.width * self.match_percentage / 100

    def wrap(self, availWidth, availHeight):
        return self.width, self.height

    def draw(self):
        canv = self.canv
        canv.setFillColor(HexColor("#e5e7eb"))
        canv.setStrokeColor(HexColor("#e5e7eb"))
        canv.rect(0, 0, self.width, self.height, fill=1, stroke=1)
        if self.filled_width > 0:
            color = HexColor(self.fill_color)
            canv.setFillColor(color)
            canv.setStrokeColor(color)
            canv.rect(0, 0, self.filled_width, self.height, fill=1, stroke=1)


def _text(value: str) -> str:
    """Escape for paragraph markup, keeping line breaks"""
    return escape(value).replace("\n", "<br/>")


def _item_flowables(item: Union[MissingSkill, FeedbackItem]) -> List[Flowable]:
    if isinstance(item, MissingSkill):
        color = PRIORITY_COLORS[item.priority]
        heading = (
            f"{_text(item.skill)} "
            f'<font name="Helvetica" color="{color}">({item.priority} priority)</font>'
        )
    else:
        heading = _text(item.title)

    flowables: List[Flowable] = [
        Paragraph(heading, STYLES["ItemTitle"]),
        Paragraph(_text(item.explanation), STYLES["Body"]),
        Paragraph(f"<b>Recommendation:</b> {_text(item.recommendation)}", STYLES["Body"]),
    ]
    if item.suggested_text:
        flowables.append(Paragraph("Suggested Text:", STYLES["SuggestedLabel"]))
        flowables.append(Paragraph(_text(item.suggested_text), STYLES["Suggested"]))
    flowables.append(Spacer(1, 10))
    return flowables


def _section(title: str, items: Sequence[Union[MissingSkill, FeedbackItem]]) -> List[Flowable]:
    if not items:
        return []
    flowables: List[Flowable] = [Paragraph(title, STYLES["Heading"])]
    for item in items:
        flowables.append(KeepTogether(_item_flowables(item)))
    return flowables


def build_story(resume_file_name: str, analysis: AnalysisResult, frame_width: float) -> List[Flowable]:
    """Flowables for the whole report, in page order"""
    color = match_color(analysis.match_percentage)
    story: List[Flowable] = [
        Paragraph("Resume Analysis Report", STYLES["Title"]),
        Paragraph(f"Resume: {_text(resume_file_name)}", STYLES["Subtitle"]),
        Paragraph("Match Score", STYLES["Heading"]),
        Paragraph(
            f'Match Percentage: <font color="{color}">{analysis.match_percentage}%</font>',
            STYLES["Body"],
        ),
        Spacer(1, 4),
        ScoreBar(analysis.match_percentage, frame_width),
        Spacer(1, 16),
    ]

    story += _section("Missing Skills", analysis.missing_skills)
    story += _section("Experience Reframing", analysis.experience_reframing)
    story += _section("Your Strengths", analysis.strengths)

    if analysis.suggested_sections:
        story.append(Paragraph("Ready-to-Use Resume Sections", STYLES["Heading"]))
        for section in analysis.suggested_sections:
            story.append(KeepTogether([
                Paragraph(_text(section.title), STYLES["ItemTitle"]),
                Paragraph(_text(section.content), STYLES["Suggested"]),
                Spacer(1, 10),
            ]))
    return story


def render_report(
    resume_file_name: str,
    analysis: AnalysisResult,
    generated_on: Optional[date] = None,
    pagesize=A4,
) -> bytes:
    """
    Render an analysis as a PDF report

    Raises RenderError if the document cannot be built.
    """
    generated_on = generated_on or date.today()
    footer = f"Generated on {generated_on.strftime('%B %d, %Y')} by ResumeAI Optimizer | {resume_file_name}"

    def draw_footer(canv, doc):
        canv.saveState()
        canv.setFont("Helvetica", 10)
        canv.setFillColor(HexColor("#9ca3af"))
        canv.drawCentredString(doc.pagesize[0] / 2, MARGIN / 2, footer)
        canv.restoreState()

    buffer = io.BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=pagesize,
            leftMargin=MARGIN, rightMargin=MARGIN,
            topMargin=MARGIN, bottomMargin=MARGIN,
            title="Resume Analysis Report",
        )
        if doc.width <= 0 or doc.height <= 0:
            raise RenderError("Failed to generate PDF report: page is smaller than its margins")

        doc.build(
            build_story(resume_file_name, analysis, doc.width),
            onFirstPage=draw_footer,
            onLaterPages=draw_footer,
        )
        pdf = buffer.getvalue()
    except RenderError:
        raise
    except Exception as e:
        logger.error("Error generating PDF: %s", e)
        raise RenderError(f"Failed to generate PDF report: {e}") from e
    finally:
        buffer.close()

    logger.debug("Rendered report for %s (%d bytes)", resume_file_name, len(pdf))
    return pdf
