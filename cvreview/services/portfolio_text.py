from __future__ import annotations

from io import BytesIO
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"
MAX_PORTFOLIO_CHARS = 60000


def extract_portfolio_text(content: bytes) -> str:
    """Plain text of an uploaded CV/portfolio PDF; empty for image-only documents."""
    if not content or not content.lstrip()[:5].startswith(PDF_MAGIC):
        raise ValueError("Portfolio must be a PDF document.")

    try:
        reader = PdfReader(BytesIO(content))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
    except (PdfReadError, ValueError) as exc:
        raise ValueError(f"Portfolio PDF could not be read: {exc}") from exc

    text = "\n".join(page for page in pages if page)
    if not text:
        logger.warning("portfolio_pdf_no_text pages=%s", len(pages))
    return text[:MAX_PORTFOLIO_CHARS]
