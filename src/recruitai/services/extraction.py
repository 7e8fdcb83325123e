"""Text extraction from uploaded documents.

Works on in-memory bytes: payloads are loaded from storage into a buffer
that the caller scrubs, so nothing is written to temporary files.
"""

import io
import logging
import re

from recruitai.utils.errors import ExtractionFailed

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TXT_MIME = "text/plain"


def clean_text(text: str) -> str:
    """
    Clean extracted text by removing artifacts and normalizing whitespace.

    Removes NULL bytes, control characters (except \\n and \\t), page-number
    lines and runs of blank lines; normalizes line endings and spaces.
    """
    if not text:
        return text

    text = text.replace('\x00', '')
    text = text.replace('\r\n', '\n')
    text = text.replace('\f', '\n')
    text = re.sub(r'[\x01-\x08\x0B\x0C\x0E-\x1F\x7F]', '', text)
    text = text.strip()

    # Page numbers and "Page N" headers left by PDF extraction
    text = re.sub(r'\n\s*\d+\s*\n', '\n', text)
    text = re.sub(r'\nPage\s+\d+.*\n', '\n', text)

    text = re.sub(r'\n{3,}', '\n\n', text)
    text = re.sub(r'[ \t]{2,}', ' ', text)

    return text.strip()


async def extract_pdf(content: bytes) -> str:
    """Extract text from PDF bytes using PyPDF2."""
    from PyPDF2 import PdfReader

    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page_num, page in enumerate(reader.pages):
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
            else:
                logger.warning(f"[extraction] No text found on PDF page {page_num + 1}")
        text = "\n".join(text_parts)
        logger.info(f"[extraction] Extracted {len(text)} chars from PDF")
        return text
    except Exception as e:
        logger.error(f"[extraction] Failed to extract PDF: {e}")
        raise ExtractionFailed(f"Failed to read PDF: {type(e).__name__}") from e


async def extract_docx(content: bytes) -> str:
    """Extract paragraph text from DOCX bytes using python-docx."""
    from docx import Document

    try:
        doc = Document(io.BytesIO(content))
        text = "\n".join(p.text for p in doc.paragraphs if p.text.strip())
        logger.info(f"[extraction] Extracted {len(text)} chars from DOCX")
        return text
    except Exception as e:
        logger.error(f"[extraction] Failed to extract DOCX: {e}")
        raise ExtractionFailed(f"Failed to read DOCX: {type(e).__name__}") from e


async def extract_txt(content: bytes) -> str:
    """Decode plain text as UTF-8, falling back to latin-1."""
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("[extraction] Used latin-1 encoding for TXT")
        return content.decode("latin-1")


async def extract_text(content: bytes, mime_type: str) -> str:
    """Extract and clean text for a supported document MIME type.

    Raises:
        ExtractionFailed: unsupported type, unreadable file, or no text found
    """
    if mime_type == PDF_MIME:
        text = await extract_pdf(content)
    elif mime_type == DOCX_MIME:
        text = await extract_docx(content)
    elif mime_type == TXT_MIME:
        text = await extract_txt(content)
    elif mime_type == DOC_MIME:
        raise ExtractionFailed("Legacy .doc files cannot be read; please upload PDF or DOCX")
    else:
        raise ExtractionFailed(f"Unsupported document type: {mime_type}")

    text = clean_text(text)
    if not text:
        raise ExtractionFailed("No text could be extracted from the document")
    return text


__all__ = [
    "PDF_MIME",
    "DOC_MIME",
    "DOCX_MIME",
    "TXT_MIME",
    "clean_text",
    "extract_pdf",
    "extract_docx",
    "extract_txt",
    "extract_text",
]
