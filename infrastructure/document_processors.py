"""Format extractors: one file in, plain text out.

Each extractor handles a fixed set of extensions and is registered in an
extension -> extractor table, so adding a format means adding a class and a
table entry rather than editing a central branch.

| extension      | rule                                                    |
|----------------|---------------------------------------------------------|
| .txt, .md      | raw bytes decoded as UTF-8, verbatim                    |
| .pdf           | text layer of every page, concatenated (PyMuPDF)        |
| .docx          | paragraph text without styling (python-docx)            |
| .csv           | header skipped; each data row's values joined by " ",   |
|                | rows joined by "\\n"                                    |
| .html          | text content of <body>, minus script/style (bs4)        |
"""
import csv
import logging
import os
from typing import Dict, List, Optional

import fitz  # PyMuPDF
from bs4 import BeautifulSoup
from docx import Document as DocxDocument

from config import settings
from core.exceptions import ExtractionFailure, UnsupportedFormat
from core.interfaces import ITextExtractor
from utils.common import get_file_extension

logger = logging.getLogger(settings.LOGGER_NAME)

NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]


class PlainTextExtractor(ITextExtractor):
    extensions = (".txt", ".md")

    def extract(self, file_path: str) -> str:
        with open(file_path, "rb") as f:
            raw = f.read()
        return raw.decode("utf-8")


class PdfExtractor(ITextExtractor):
    extensions = (".pdf",)

    def extract(self, file_path: str) -> str:
        with fitz.open(file_path) as doc:
            return "".join(page.get_text() for page in doc)


class DocxExtractor(ITextExtractor):
    extensions = (".docx",)

    def extract(self, file_path: str) -> str:
        doc = DocxDocument(file_path)
        return "\n\n".join(p.text for p in doc.paragraphs)


class CsvExtractor(ITextExtractor):
    """First row is the header (column keys); only data rows become text."""
    extensions = (".csv",)

    def extract(self, file_path: str) -> str:
        with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            next(reader, None)  # header
            rows = [" ".join(row) for row in reader if row]
        return "\n".join(rows)


class HtmlExtractor(ITextExtractor):
    extensions = (".html",)

    def extract(self, file_path: str) -> str:
        with open(file_path, "rb") as f:
            markup = f.read().decode("utf-8")

        soup = BeautifulSoup(markup, "html.parser")
        body = soup.body or soup
        for tag in body.find_all(NON_CONTENT_TAGS):
            tag.decompose()
        return body.get_text()


class TextExtractorRegistry:
    """
    Extension -> extractor table.
    Swap or add extractors via register() without touching callers.
    """

    def __init__(self, extractors: Optional[List[ITextExtractor]] = None):
        self._extractors: Dict[str, ITextExtractor] = {}
        for extractor in extractors if extractors is not None else default_extractors():
            self.register(extractor)

    def register(self, extractor: ITextExtractor) -> None:
        for ext in extractor.extensions:
            self._extractors[ext.lower()] = extractor

    @property
    def extensions(self) -> List[str]:
        return sorted(self._extractors)

    def get(self, file_path: str) -> ITextExtractor:
        ext = get_file_extension(file_path)
        extractor = self._extractors.get(ext)
        if extractor is None:
            raise UnsupportedFormat(f"No extractor for '{ext or file_path}'")
        return extractor

    def extract(self, file_path: str) -> str:
        """
        Return the full plain text of file_path.

        Raises:
            UnsupportedFormat: extension has no registered extractor
            ExtractionFailure: the parser failed (corrupt file, bad encoding, I/O)
        """
        extractor = self.get(file_path)
        try:
            return extractor.extract(file_path)
        except Exception as e:
            raise ExtractionFailure(
                f"Failed to extract {os.path.basename(file_path)}: {e}"
            ) from e


def default_extractors() -> List[ITextExtractor]:
    return [
        PlainTextExtractor(),
        PdfExtractor(),
        DocxExtractor(),
        CsvExtractor(),
        HtmlExtractor(),
    ]
