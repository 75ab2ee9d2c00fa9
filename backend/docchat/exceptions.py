"""Custom exception classes for document, message and collaborator errors."""


class DocChatError(Exception):
    """Base exception for the application."""
    pass


class ConfigurationError(DocChatError):
    """Raised when a required setting is missing or invalid."""
    pass


class DocumentProcessingError(DocChatError):
    """Base exception for document processing errors."""
    pass


class ValidationError(DocumentProcessingError):
    """Raised when document validation fails."""
    pass


class FileTypeNotSupportedError(ValidationError):
    """Raised when an unsupported file type is encountered."""
    pass


class FileSizeExceededError(ValidationError):
    """Raised when file size exceeds the maximum allowed."""
    pass


class DocumentEmptyError(ValidationError):
    """Raised when a document has no extractable content."""
    pass


class DocumentTooShortError(ValidationError):
    """Raised when extracted text is below the minimum length."""
    pass


class DocumentTooLargeError(ValidationError):
    """Raised when extracted text exceeds the maximum length."""
    pass


class DuplicateDocumentError(ValidationError):
    """Raised when a document with the same name and size already exists."""

    def __init__(self, message: str, existing_document_id: str):
        super().__init__(message)
        self.existing_document_id = existing_document_id


class ExtractionError(DocumentProcessingError):
    """Raised when text extraction from document fails."""
    pass


class DocumentNotFoundError(DocChatError):
    """Raised when a document id is unknown."""
    pass


class DocumentBusyError(DocChatError):
    """Raised when a document is already being processed."""
    pass


class MessageError(DocChatError):
    """Base exception for chat message operations."""
    pass


class MessageNotFoundError(MessageError):
    """Raised when a message id is unknown."""
    pass


class MessageEditForbiddenError(MessageError):
    """Raised when a user changes a message they did not write."""
    pass


class MessageEditWindowExpiredError(MessageError):
    """Raised when a message is edited after its edit window closed."""
    pass


class GenerationError(DocChatError):
    """Raised when the text generation call fails."""
    pass


class WebSearchError(DocChatError):
    """Raised when a web search request fails."""
    pass


class WebSearchNotConfiguredError(WebSearchError):
    """Raised when web search is used without an API key."""
    pass
