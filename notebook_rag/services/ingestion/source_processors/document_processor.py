"""Source processor for stored text documents.

Decodes by file suffix:

- ``.docx`` -- unzipped and parsed with python-docx; paragraph texts are
  joined with newlines.
- Plain-text suffixes (``.txt``, ``.text``, ``.md``, ``.markdown`` or no
  suffix at all) -- read as UTF-8.
- Anything else (``.doc``, ``.odt``, ``.zip``, ``.png``, ...) -- rejected
  as unsupported.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import structlog
from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from notebook_rag.utils.errors import UnreadableSourceError, UnsupportedSourceError

logger = structlog.get_logger(logger_name=__name__)

PLAIN_TEXT_SUFFIXES = frozenset({"", ".txt", ".text", ".md", ".markdown"})
DOCX_SUFFIX = ".docx"


class DocumentProcessor:
    """Extracts plain text from ``.docx`` and plain-text files."""

    def extract(self, file_path: str) -> str:
        """Return the text of the document at *file_path*.

        Raises
        ------
        UnreadableSourceError
            If the file is missing, a corrupt ``.docx`` or not valid UTF-8.
        UnsupportedSourceError
            For any suffix other than ``.docx`` and the plain-text ones.
        """
        path = Path(file_path)
        suffix = path.suffix.lower()
        if suffix != DOCX_SUFFIX and suffix not in PLAIN_TEXT_SUFFIXES:
            raise UnsupportedSourceError(
                message=f"Unsupported document format: {suffix}",
                provider_name="document",
            )
        if not path.is_file():
            raise UnreadableSourceError(
                message=f"Document not found: {file_path}",
                provider_name="document",
            )

        if suffix == DOCX_SUFFIX:
            return self._extract_docx(path)
        return self._extract_plain(path)

    @staticmethod
    def _extract_docx(path: Path) -> str:
        try:
            doc = Document(str(path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise UnreadableSourceError(
                message=f"Corrupt .docx file {path.name}: {exc}",
                provider_name="document",
            ) from exc
        text = "\n".join(para.text for para in doc.paragraphs)
        logger.info("docx_processed", file=path.name, paragraphs=len(doc.paragraphs))
        return text

    @staticmethod
    def _extract_plain(path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise UnreadableSourceError(
                message=f"{path.name} is not valid UTF-8 text",
                provider_name="document",
            ) from exc
        except OSError as exc:
            raise UnreadableSourceError(
                message=f"Could not read {path.name}: {exc}",
                provider_name="document",
            ) from exc
        logger.info("text_file_processed", file=path.name, text_length=len(text))
        return text
