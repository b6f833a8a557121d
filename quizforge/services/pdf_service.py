"""
PDF text extraction using PyMuPDF
"""
import fitz  # PyMuPDF
import logging

from quizforge.exceptions import TextExtractionError

logger = logging.getLogger(__name__)


def extract_text(data: bytes, start_page: int = None, end_page: int = None) -> str:
    """
    Extract concatenated page text from PDF bytes

    Args:
        data: PDF file contents
        start_page: First page (1-based, inclusive), defaults to the first
        end_page: Last page (1-based, inclusive), defaults to the last

    Raises:
        TextExtractionError: unreadable PDF or no extractable text
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        logger.error(f"Failed to open PDF: {str(e)}")
        raise TextExtractionError(f"Could not read PDF: {str(e)}") from e

    with doc:
        page_count = doc.page_count
        first = max(1, start_page or 1)
        last = min(page_count, end_page or page_count)

        text = ""
        for page_number in range(first - 1, last):
            text += doc[page_number].get_text() + "\n"

    text = text.strip()
    if not text:
        raise TextExtractionError("Could not extract text from PDF")

    logger.info(f"Extracted {len(text)} characters from pages {first}-{last} of {page_count}")
    return text
