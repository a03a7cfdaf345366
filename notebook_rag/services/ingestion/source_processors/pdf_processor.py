"""Source processor for PDF files.

Reads PDF files using PyMuPDF (fitz) and returns the text of every page
concatenated into a single stream, pages separated by blank lines so the
chunker sees page breaks as paragraph boundaries.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from notebook_rag.utils.errors import UnreadableSourceError

logger = structlog.get_logger(logger_name=__name__)


class PDFProcessor:
    """Extracts plain text from a stored PDF."""

    def extract(self, file_path: str) -> str:
        """Return the concatenated page text of the PDF at *file_path*.

        Raises
        ------
        UnreadableSourceError
            If the file is missing or PyMuPDF cannot open it.
        """
        if not Path(file_path).is_file():
            raise UnreadableSourceError(
                message=f"PDF file not found: {file_path}",
                provider_name="pdf",
            )
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            raise UnreadableSourceError(
                message=f"Could not open PDF {file_path}: {exc}",
                provider_name="pdf",
            ) from exc

        pages: list[str] = []
        try:
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", file_path=file_path)

        logger.info("pdf_processed", file_path=file_path, pages_with_text=len(pages))
        return "\n\n".join(pages)
