"""Document validation utilities."""
from docchat.exceptions import (
    DocumentEmptyError,
    DocumentTooLargeError,
    DocumentTooShortError,
    FileSizeExceededError,
    FileTypeNotSupportedError,
)
from docchat.models.document import FileCategory


class DocumentValidator:
    """Checks applied to every upload before and after text extraction."""

    SUPPORTED_EXTENSIONS = [category.value for category in FileCategory]

    @classmethod
    def validate_file_type(cls, filename: str) -> FileCategory:
        """Validate file type and return its category."""
        if not filename:
            raise FileTypeNotSupportedError("File name is required.")

        file_extension = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
        full_extension = f".{file_extension}"

        if full_extension not in cls.SUPPORTED_EXTENSIONS:
            raise FileTypeNotSupportedError(
                f"Invalid file type. Only {', '.join(e.lstrip('.').upper() for e in cls.SUPPORTED_EXTENSIONS)} "
                "files are allowed."
            )

        return FileCategory(full_extension)

    @classmethod
    def validate_file_size(cls, file_size_bytes: int, max_size_mb: float) -> None:
        """Validate file size."""
        if file_size_bytes == 0:
            raise DocumentEmptyError("Uploaded file is empty.")
        file_size_mb = file_size_bytes / (1024 * 1024)
        if file_size_mb > max_size_mb:
            raise FileSizeExceededError(
                f"File size ({file_size_mb:.2f} MB) exceeds maximum allowed size ({max_size_mb} MB)."
            )

    @classmethod
    def validate_content(cls, text: str, min_chars: int, max_chars: int) -> None:
        """
        Validate extracted text.

        Raises:
            DocumentEmptyError: No text could be extracted
            DocumentTooShortError: Fewer than ``min_chars`` characters
            DocumentTooLargeError: More than ``max_chars`` characters
        """
        if not text or not text.strip():
            raise DocumentEmptyError("No text content could be extracted from the document.")
        if len(text) < min_chars:
            raise DocumentTooShortError("Document content is too short to be useful.")
        if len(text) > max_chars:
            raise DocumentTooLargeError("Document content is too large to process.")


def validate_upload(filename: str, file_size_bytes: int, max_size_mb: float) -> FileCategory:
    """
    Run the pre-extraction checks for an upload.

    Returns:
        The upload's file category
    """
    category = DocumentValidator.validate_file_type(filename)
    DocumentValidator.validate_file_size(file_size_bytes, max_size_mb)
    return category
