"""Plain-text extraction from uploaded files.

Supports .txt/.md (UTF-8), .pdf (PyMuPDF) and .docx (python-docx).
Unsupported or unreadable files yield an empty string.
"""
import io
from pathlib import Path
import docx
import fitz
import structlog

logger = structlog.get_logger()


class TextExtractor:
    """Extracts plain text from raw document bytes."""

    def extract(self, data: bytes, filename: str) -> str:
        """Extract text based on the filename's extension.

        Args:
            data: Raw file bytes
            filename: Original filename

        Returns:
            Extracted text, or "" when the format is unsupported or parsing fails
        """
        extension = Path(filename).suffix.lower()

        try:
            if extension in (".txt", ".md"):
                text = data.decode("utf-8", errors="replace")
            elif extension == ".pdf":
                text = self._extract_pdf(data)
            elif extension == ".docx":
                text = self._extract_docx(data)
            else:
                logger.warning("unsupported_extension", filename=filename)
                return ""
        except Exception as e:
            logger.error(
                "text_extraction_failed",
                filename=filename,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ""

        logger.info("text_extracted", filename=filename, text_length=len(text))
        return text

    def _extract_pdf(self, data: bytes) -> str:
        with fitz.open(stream=data, filetype="pdf") as document:
            return "\n".join(page.get_text() for page in document)

    def _extract_docx(self, data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        return "\n".join(paragraph.text for paragraph in document.paragraphs)
