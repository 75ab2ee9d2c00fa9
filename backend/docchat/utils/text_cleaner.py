"""Text cleaning and normalization utilities."""
import re


def clean_text(text: str) -> str:
    """
    Normalize extracted text while keeping paragraph structure.

    Args:
        text: Raw extracted text

    Returns:
        Text with normalized line endings and at most one blank line in a row
    """
    # Remove special control characters but keep newlines and tabs
    text = re.sub(r"[\x00-\x08\x0b-\x0c\x0e-\x1f]", "", text)

    # Normalize line breaks
    text = re.sub(r"\r\n", "\n", text)
    text = re.sub(r"\r", "\n", text)

    # Remove excessive newlines (more than 2 consecutive)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()


def clean_message(text: str) -> str:
    """Strip control characters (except newline, tab, carriage return) and surrounding whitespace."""
    return re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", text).strip()
