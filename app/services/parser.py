import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Union

from docx import Document
from pypdf import PdfReader

from app.core.errors import ExtractionError, UnsupportedFormatError

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    PDF = ".pdf"
    DOC = ".doc"
    DOCX = ".docx"

    @classmethod
    def from_extension(cls, extension: str) -> "DocumentFormat":
        """Map '.PDF', 'docx', ... to a format. Raises UnsupportedFormatError."""
        ext = (extension or "").strip().lower()
        if ext and not ext.startswith("."):
            ext = f".{ext}"
        try:
            return cls(ext)
        except ValueError:
            raise UnsupportedFormatError(ext) from None


SUPPORTED_EXTENSIONS = tuple(fmt.value for fmt in DocumentFormat)


def extract_text_from_pdf(file_path: Path) -> str:
    """Extract the text layer of every page, one page per line block"""
    try:
        reader = PdfReader(file_path)
        if reader.is_encrypted:
            # owner-password-only PDFs open with an empty user password
            if not reader.decrypt(""):
                raise ExtractionError("Failed to extract text from PDF: document is password protected")
        pages = [page.extract_text() or "" for page in reader.pages]
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e

    logger.debug("Extracted %d page(s) from %s", len(pages), file_path.name)
    return "\n".join(pages).strip()


def extract_text_from_word(file_path: Path) -> str:
    """
    Raw text of a Word document: paragraphs, then table cells, one per line

    Legacy binary .doc files are not zip containers and fail here with
    ExtractionError.
    """
    try:
        doc = Document(str(file_path))
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from Word document: {e}") from e

    lines = [para.text for para in doc.paragraphs if para.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text.strip():
                    lines.append(cell.text)
    return "\n".join(lines)


EXTRACTORS: Dict[DocumentFormat, Callable[[Path], str]] = {
    DocumentFormat.PDF: extract_text_from_pdf,
    DocumentFormat.DOC: extract_text_from_word,
    DocumentFormat.DOCX: extract_text_from_word,
}


def extract_text(file_path: Union[str, Path], extension: str) -> str:
    """
    Extract plain text from a resume file

    Args:
        file_path: Path to the stored upload
        extension: Original file extension (used to pick the format)

    Returns:
        Extracted text; empty string for an empty document

    Raises:
        UnsupportedFormatError: extension is not .pdf, .doc or .docx
        ExtractionError: the file could not be parsed
    """
    fmt = DocumentFormat.from_extension(extension)
    return EXTRACTORS[fmt](Path(file_path))
