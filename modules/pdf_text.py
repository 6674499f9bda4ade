"""
Rotation Data Proxy - PDF Text Extraction

Reads the text layer of electronically filed PTRs with pdfplumber. Scanned
(paper) filings carry no text layer; when OCR is enabled those pages are
rasterized with pdf2image and read with Tesseract.
"""
from __future__ import annotations

import logging
from io import BytesIO

import pdfplumber
import pytesseract
from pdf2image import convert_from_bytes
from PIL import Image

pdf_logger = logging.getLogger("rotation.pdf_text")


def is_pdf(content: bytes) -> bool:
    return content[:4] == b'%PDF'


def extract_text_layer(pdf_bytes: bytes) -> str:
    """Concatenated text layer of every page, or "" if there is none."""
    try:
        with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
            pages = [page.extract_text() for page in pdf.pages]
        return "\n".join(text for text in pages if text)
    except Exception as e:
        pdf_logger.error(f"Failed to read PDF text layer: {e}")
        return ""


def extract_text_from_image(image: Image.Image) -> str:
    """Extract text from a single page image using Tesseract."""
    try:
        # psm 6: uniform block of text, oem 3: LSTM engine
        return pytesseract.image_to_string(image, config=r'--oem 3 --psm 6')
    except Exception as e:
        pdf_logger.error(f"OCR extraction failed: {e}")
        return ""


def ocr_pdf(pdf_bytes: bytes, dpi: int = 200) -> str:
    """Rasterize each page and OCR it."""
    try:
        images = convert_from_bytes(pdf_bytes, dpi=dpi, fmt='png', thread_count=2)
    except Exception as e:
        pdf_logger.error(f"PDF conversion failed: {e}")
        return ""

    pdf_logger.info(f"OCR over {len(images)} scanned pages")
    return "\n".join(extract_text_from_image(image) for image in images)


def pdf_to_text(pdf_bytes: bytes, ocr_enabled: bool = False, dpi: int = 200) -> str:
    """
    Full pipeline: PDF -> text layer, falling back to OCR for scans.

    Returns "" when the bytes are not a PDF or nothing could be read.
    """
    if not pdf_bytes or not is_pdf(pdf_bytes):
        pdf_logger.warning("Response is not a PDF")
        return ""

    text = extract_text_layer(pdf_bytes)
    if text.strip() or not ocr_enabled:
        return text
    return ocr_pdf(pdf_bytes, dpi=dpi)
