"""Source processors for the ingestion pipeline.

Each processor turns one kind of raw source into plain text:

- **PDFProcessor**                   -- PDF files via PyMuPDF page extraction
- **DocumentProcessor**              -- ``.docx`` via python-docx, other files as UTF-8
- **WebPageProcessor**               -- web pages via httpx + BeautifulSoup
- **TranscriptPlaceholderProcessor** -- labelled stand-ins for YouTube/audio
"""

from notebook_rag.services.ingestion.source_processors.document_processor import (
    DocumentProcessor,
)
from notebook_rag.services.ingestion.source_processors.pdf_processor import PDFProcessor
from notebook_rag.services.ingestion.source_processors.transcript_processor import (
    TranscriptPlaceholderProcessor,
)
from notebook_rag.services.ingestion.source_processors.web_processor import WebPageProcessor

__all__ = [
    "DocumentProcessor",
    "PDFProcessor",
    "TranscriptPlaceholderProcessor",
    "WebPageProcessor",
]
