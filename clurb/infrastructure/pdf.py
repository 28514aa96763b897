"""Извлечение количества страниц и текста из PDF (PyMuPDF)."""

from typing import List, Optional

import fitz


class PdfExtractionError(ValueError):
    """Файл не удалось прочитать как PDF"""


def _open(data: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except RuntimeError as e:
        raise PdfExtractionError(f"Could not read PDF: {e}") from e


def page_count(data: bytes) -> int:
    """Количество страниц документа"""
    with _open(data) as document:
        return document.page_count


def extract_pages(data: bytes, start_page: int = 1, end_page: Optional[int] = None) -> List[str]:
    """Текст страниц с start_page по end_page включительно (нумерация с 1)"""
    pages = []
    with _open(data) as document:
        last = document.page_count if end_page is None else min(end_page, document.page_count)
        for page_number in range(max(start_page, 1), last + 1):
            pages.append(document[page_number - 1].get_text("text"))
    return pages
