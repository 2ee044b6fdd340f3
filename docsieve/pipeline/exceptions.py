class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class DocumentNotFoundError(PipelineError):
    """Raised when a document cannot be found in storage."""


class UnsupportedStorageDiskError(PipelineError):
    """Raised when a document uses an unsupported storage disk type."""


class FileReadError(PipelineError):
    """Raised when a file cannot be read from disk."""


class UnsupportedMimeTypeError(PipelineError):
    """Raised when no extraction path exists for the document's mime type."""


class EmptyDocumentError(PipelineError):
    """Raised when a document has no pages or no content to extract."""


class PermanentDocumentError(PipelineError):
    """Raised when a document failed for a reason retrying cannot fix."""

    def __init__(self, document_id: int, message: str) -> None:
        super().__init__(f"Document {document_id}: {message}")
        self.document_id = document_id


class PipelineCancelledError(PipelineError):
    """Raised at a stage or batch boundary once cancellation was requested."""


class DocumentNotReadyError(PipelineError):
    """Raised when a query targets a document without extracted text."""


class QueryFailedError(PipelineError):
    """Raised when every question-answering stage was exhausted."""
