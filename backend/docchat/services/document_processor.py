"""Document processing: text extraction for PDF, DOCX and TXT, and chunking."""
from typing import List

import pdfplumber
from docx import Document as DocxDocument

from docchat.exceptions import ExtractionError
from docchat.models.document import Chunk, FileCategory
from docchat.utils.logger import logger
from docchat.utils.text_cleaner import clean_text


def extract_text_from_pdf(file_path: str) -> str:
    """
    Extract text from PDF using pdfplumber.

    Args:
        file_path: Path to PDF file

    Returns:
        Cleaned text of all pages

    Raises:
        ExtractionError: If PDF processing fails
    """
    pages = []
    try:
        with pdfplumber.open(file_path) as pdf:
            for page_num, page in enumerate(pdf.pages, 1):
                try:
                    pages.append(page.extract_text() or "")
                except Exception as e:
                    logger.warning(f"Error extracting text from PDF page {page_num}: {str(e)}")
    except Exception as e:
        logger.error(f"Error opening PDF file {file_path}: {str(e)}")
        raise ExtractionError(f"Failed to extract text from .pdf file: {str(e)}")

    return clean_text("\n\n".join(pages))


def extract_text_from_docx(file_path: str) -> str:
    """
    Extract raw text from a DOCX file, paragraphs first, then table cells.

    Raises:
        ExtractionError: If DOCX processing fails
    """
    try:
        doc = DocxDocument(file_path)
        full_text = [p.text for p in doc.paragraphs if p.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text.strip():
                        full_text.append(cell.text)

        return clean_text("\n\n".join(full_text))

    except Exception as e:
        logger.error(f"Error processing DOCX file {file_path}: {str(e)}")
        raise ExtractionError(f"Failed to extract text from .docx file: {str(e)}")


def extract_text_from_txt(file_path: str) -> str:
    """Read a UTF-8 text file."""
    try:
        with open(file_path, "r", encoding="utf-8", errors="ignore") as f:
            return clean_text(f.read())
    except OSError as e:
        logger.error(f"Error reading TXT file {file_path}: {str(e)}")
        raise ExtractionError(f"Failed to extract text from .txt file: {str(e)}")


def extract_text(file_path: str, category: FileCategory) -> str:
    """
    Extract cleaned plain text from any supported file type.

    Args:
        file_path: Path to file
        category: File category of the upload

    Returns:
        Cleaned document text
    """
    if category is FileCategory.PDF:
        return extract_text_from_pdf(file_path)
    if category is FileCategory.DOCX:
        return extract_text_from_docx(file_path)
    return extract_text_from_txt(file_path)


class DocumentProcessor:
    """Turns extracted text into chunks according to each file category's policy."""

    BREAK_RATIO = 0.7

    def __init__(self, chunk_size: int = 800, chunk_overlap: int = 150):
        """
        Initialize document processor.

        Args:
            chunk_size: Target size for text chunks (in characters)
            chunk_overlap: Overlap between consecutive chunks (in characters)
        """
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_text(self, text: str) -> List[Chunk]:
        """
        Split text into overlapping chunks, preferring sentence or line breaks.

        A window of chunk_size characters is cut back to its last ". " or newline
        when that keeps more than 70% of the window. The next window starts
        chunk_overlap characters before the end of the kept chunk.

        Args:
            text: Document text

        Returns:
            Non-empty chunks with dense indices starting at 0
        """
        size = self.chunk_size
        if len(text) <= size:
            stripped = text.strip()
            return [Chunk(text=stripped, index=0)] if stripped else []

        chunks: List[Chunk] = []
        start = 0
        while start < len(text):
            end = min(start + size, len(text))
            chunk = text[start:end].strip()

            if end < len(text):
                break_point = max(chunk.rfind(". "), chunk.rfind("\n"))
                if break_point > size * self.BREAK_RATIO:
                    chunk = chunk[: break_point + 1].strip()

            if chunk:
                chunks.append(Chunk(text=chunk, index=len(chunks)))

            advance = len(chunk) - self.chunk_overlap
            start = start + advance if advance > 0 else end
            if start >= len(text):
                break

        logger.info(f"Created {len(chunks)} chunks from {len(text)} characters")
        return chunks

    def build_chunks(self, text: str, category: FileCategory) -> List[Chunk]:
        """Apply the category's chunking policy."""
        if not category.chunked:
            stripped = text.strip()
            logger.info(f"{category.label.upper()}: using a single whole-document chunk")
            return [Chunk(text=stripped, index=0)] if stripped else []
        return self.chunk_text(text)
