"""Decision PDF text extraction using PyMuPDF."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import fitz  # PyMuPDF

from appraisal2json.errors import Appraisal2JsonError, MalformedDocumentError
from appraisal2json.values import PAGE_BREAK

logger = logging.getLogger(__name__)


class PDFTextExtractor:
    """Reads the text of one decision PDF, from a path or from bytes."""

    def __init__(self, pdf: Union[str, Path, bytes]):
        """Initialize PDF extractor.

        Args:
            pdf: Path to the PDF file, or its raw bytes
        """
        self.pdf = pdf
        self.doc: Optional[fitz.Document] = None

    def __enter__(self):
        try:
            if isinstance(self.pdf, (bytes, bytearray)):
                self.doc = fitz.open(stream=bytes(self.pdf), filetype="pdf")
            else:
                self.doc = fitz.open(str(self.pdf))
        except (RuntimeError, ValueError) as e:
            raise Appraisal2JsonError(f"Cannot open PDF: {e}") from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.doc:
            self.doc.close()

    def _require_open(self) -> fitz.Document:
        if not self.doc:
            raise ValueError("PDF document not open. Use context manager.")
        return self.doc

    def get_page_count(self) -> int:
        return len(self._require_open())

    def extract_text(self) -> str:
        """Full text with pages joined by form feeds.

        The form feeds let value offsets be mapped back to page numbers.
        """
        doc = self._require_open()
        return PAGE_BREAK.join(page.get_text() for page in doc)

    def _detect_header_footer_lines(self, all_lines: List[Dict[str, Any]], threshold: float = 0.5) -> set:
        """Lines found on at least two pages and on ``threshold`` of all pages."""
        line_pages: Dict[str, set] = {}
        pages = set()
        for line in all_lines:
            normalized = line["text"].strip()
            pages.add(line["page"])
            if len(normalized) < 3:
                continue
            line_pages.setdefault(normalized, set()).add(line["page"])

        # A single page has nothing to repeat against
        if len(pages) < 2:
            return set()
        return {
            text for text, seen_on in line_pages.items()
            if len(seen_on) >= 2 and len(seen_on) / len(pages) >= threshold
        }

    def extract_positioned_lines(self) -> List[Dict[str, Any]]:
        """Text lines in RTL reading order without running headers/footers.

        Returns:
            List of line dictionaries: {page, y, x, text}
        """
        doc = self._require_open()
        all_lines: List[Dict[str, Any]] = []

        for page_num, page in enumerate(doc, 1):
            for block in page.get_text("dict").get("blocks", []):
                for line in block.get("lines", []):
                    parts = [span.get("text", "").strip() for span in line.get("spans", [])]
                    text = re.sub(r"\s+", " ", " ".join(p for p in parts if p)).strip()
                    if not text:
                        continue
                    x, y = line.get("bbox", (0, 0, 0, 0))[:2]
                    all_lines.append({"page": page_num, "y": y, "x": x, "text": text})

        # Top to bottom, then right to left
        all_lines.sort(key=lambda l: (l["page"], round(l["y"]), -l["x"]))

        header_footer = self._detect_header_footer_lines(all_lines)
        if header_footer:
            all_lines = [l for l in all_lines if l["text"].strip() not in header_footer]
        return all_lines

    def extract_clean_text(self) -> str:
        """Reading-order text without headers/footers, pages joined by form feeds."""
        pages: Dict[int, List[str]] = {}
        for line in self.extract_positioned_lines():
            pages.setdefault(line["page"], []).append(line["text"])
        return PAGE_BREAK.join("\n".join(pages.get(n, [])) for n in range(1, self.get_page_count() + 1))


def read_pdf_text(pdf: Union[str, Path, bytes], clean: bool = False) -> str:
    """Open a PDF, return its text and close it.

    Args:
        pdf: Path to the PDF file, or its raw bytes
        clean: Drop running headers/footers and order lines right to left

    Raises:
        Appraisal2JsonError: if the file cannot be opened as a PDF
        MalformedDocumentError: if the PDF holds no text layer (e.g. a scan)
    """
    with PDFTextExtractor(pdf) as extractor:
        text = extractor.extract_clean_text() if clean else extractor.extract_text()
    if not text.replace(PAGE_BREAK, "").strip():
        raise MalformedDocumentError("PDF has no extractable text")
    logger.debug("Read %d characters from PDF", len(text))
    return text
