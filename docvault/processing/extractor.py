"""Format-aware text extraction for uploaded documents."""

from __future__ import annotations

import asyncio
import io
import logging
import os
import re

import pdfplumber
from docx import Document as DocxDocument

logger = logging.getLogger(__name__)

# Runs of printable characters recovered from legacy binary Word files.
_PRINTABLE_RUN = re.compile(rb"[\x20-\x7e\t\r\n]{4,}")


class TextExtractor:
    """Convert raw file bytes into plain text.

    `extract` is total: parsing errors are turned into a bracketed placeholder
    that names the file, so downstream stages always receive a string.
    """

    async def extract(self, content: bytes, filename: str) -> str:
        name = filename or "document"
        extension = os.path.splitext(name)[1].lower()
        content = content or b""

        try:
            if extension == ".pdf":
                logger.info("Parsing PDF %s (%s bytes)", name, len(content))
                text = await self._parse_pdf(content)
                return self._non_empty(text, "PDF", name)
            if extension == ".docx":
                logger.info("Parsing Word document %s (%s bytes)", name, len(content))
                text = await self._parse_docx(content)
                return self._non_empty(text, "Word", name)
            if extension == ".doc":
                logger.info("Decoding legacy Word document %s (%s bytes)", name, len(content))
                text = self._decode_printable_runs(content)
                return self._non_empty(text, "Word", name)

            text = content.decode("utf-8", errors="replace")
            logger.info("Read %s characters from text file %s", len(text), name)
            return text
        except Exception as exc:
            logger.exception("Failed to extract text from %s", name)
            return f"[Unable to extract text from {name}. Error: {str(exc) or exc.__class__.__name__}]"

    async def _parse_pdf(self, content: bytes) -> str:
        def extract() -> str:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return "\n\n".join(page.strip() for page in pages if page.strip())

        return await asyncio.to_thread(extract)

    async def _parse_docx(self, content: bytes) -> str:
        def extract() -> str:
            doc = DocxDocument(io.BytesIO(content))
            return "\n".join(paragraph.text.strip() for paragraph in doc.paragraphs if paragraph.text.strip())

        return await asyncio.to_thread(extract)

    def _decode_printable_runs(self, content: bytes) -> str:
        runs = (match.group().decode("ascii", errors="ignore").strip() for match in _PRINTABLE_RUN.finditer(content))
        return "\n".join(run for run in runs if run)

    @staticmethod
    def _non_empty(text: str, kind: str, name: str) -> str:
        if text and text.strip():
            logger.info("Extracted %s characters from %s", len(text), name)
            return text
        logger.warning("%s file %s appears to be empty or image-only", kind, name)
        return f'[{kind} file "{name}" appears to be empty or contains only images. Unable to extract text.]'
