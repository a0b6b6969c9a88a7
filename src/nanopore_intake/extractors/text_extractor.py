# ============================================================================
# src/nanopore_intake/extractors/text_extractor.py
# ============================================================================
"""
Document-to-text conversion for uploaded intake forms.

Extraction cascade for PDFs (in order of preference):
1. pypdfium2: Fast, good Unicode support
2. PyPDF2: Widely compatible fallback
3. pdfplumber: Slowest, last resort

Plain-text uploads (.txt, .csv, .md) are decoded directly.

Any failure here is an input error: the caller reports it and does not
retry or fall back, since there is nothing to extract from.
"""

import hashlib
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import pdfplumber
import pypdfium2
import PyPDF2

from ..utils.exceptions import TextExtractionError

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {'.txt', '.text', '.csv', '.md', '.tsv'}
PDF_MAGIC = b'%PDF'


@dataclass
class DocumentInput:
    """An uploaded document: name plus raw bytes."""
    filename: str
    content: bytes
    content_type: str = ""

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "DocumentInput":
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise TextExtractionError(f"Cannot read {path}: {e}") from e
        return cls(filename=path.name, content=content)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def content_hash(self) -> str:
        return hashlib.md5(self.content).hexdigest()

    @property
    def is_pdf(self) -> bool:
        return self.content.startswith(PDF_MAGIC) or self.filename.lower().endswith('.pdf')


@dataclass
class RawText:
    """Text extracted from a document, with page count and metadata."""
    text: str
    page_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


def extract_raw_text(document: Union[DocumentInput, str, Path, bytes]) -> RawText:
    """
    Convert a document to text.

    Args:
        document: DocumentInput, filesystem path, or raw PDF/text bytes

    Returns:
        RawText (may contain empty text for image-only PDFs)

    Raises:
        TextExtractionError: if the document cannot be read at all
    """
    document = as_document(document)

    if not document.content:
        raise TextExtractionError(f"{document.filename or 'document'} is empty")

    if not document.is_pdf:
        suffix = Path(document.filename).suffix.lower()
        if suffix and suffix not in TEXT_EXTENSIONS:
            raise TextExtractionError(f"Unsupported file type: {suffix}")
        text = document.content.decode('utf-8', errors='replace')
        return RawText(
            text=text,
            page_count=1,
            metadata={'method': 'plain_text', 'filename': document.filename, 'size': document.size},
        )

    errors: List[str] = []
    for method, extractor in (
        ('pypdfium2', _extract_with_pypdfium2),
        ('pypdf2', _extract_with_pypdf2),
        ('pdfplumber', _extract_with_pdfplumber),
    ):
        try:
            text, page_count = extractor(document.content)
        except Exception as e:
            logger.warning(f"{method} failed on {document.filename}: {e}")
            errors.append(f"{method}: {e}")
            continue

        logger.debug(f"{method} extracted {len(text)} chars from {page_count} pages")
        return RawText(
            text=text,
            page_count=page_count,
            metadata={
                'method': method,
                'filename': document.filename,
                'size': document.size,
                'warnings': errors,
            },
        )

    raise TextExtractionError(f"All extraction methods failed. {'; '.join(errors)}")


def as_document(document: Union[DocumentInput, str, Path, bytes]) -> DocumentInput:
    if isinstance(document, DocumentInput):
        return document
    if isinstance(document, (bytes, bytearray)):
        return DocumentInput(filename="", content=bytes(document))
    return DocumentInput.from_path(document)


def _extract_with_pypdfium2(content: bytes) -> Tuple[str, int]:
    pdf = pypdfium2.PdfDocument(content)
    try:
        texts = []
        for page_num in range(len(pdf)):
            textpage = pdf[page_num].get_textpage()
            texts.append((textpage.get_text_range() or "").strip())
        return "\n\n".join(texts), len(texts)
    finally:
        pdf.close()


def _extract_with_pypdf2(content: bytes) -> Tuple[str, int]:
    reader = PyPDF2.PdfReader(io.BytesIO(content))
    if reader.is_encrypted:
        # Forms are sometimes "encrypted" with an empty owner password
        reader.decrypt("")

    texts = [(page.extract_text() or "").strip() for page in reader.pages]
    return "\n\n".join(texts), len(texts)


def _extract_with_pdfplumber(content: bytes) -> Tuple[str, int]:
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        texts = [(page.extract_text() or "").strip() for page in pdf.pages]
    return "\n\n".join(texts), len(texts)
