from pathlib import Path

from docsieve.pipeline.exceptions import (
    FileReadError,
    UnsupportedMimeTypeError,
    UnsupportedStorageDiskError,
)
from docsieve.pipeline.models import Document

MIME_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/tiff": "tiff",
    "text/plain": "txt",
}


def document_file_path(files_root: Path, user_id: int, uuid: str, extension: str) -> Path:
    """Build path to document file: {files_root}/{user_id}/{uuid}.{extension}"""
    return files_root / str(user_id) / f"{uuid}.{extension}"


class FileLoader:
    """Resolves filesystem path for a document and reads its bytes."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def load(self, document: Document) -> bytes:
        """Read document bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at resolved path.
            UnsupportedStorageDiskError: if storage_disk is not 'local'.
            UnsupportedMimeTypeError: if the mime type has no known extension.
            FileReadError: if the file exists but cannot be read.
        """
        if document.storage_disk != "local":
            raise UnsupportedStorageDiskError(
                f"storage_disk '{document.storage_disk}' is not supported"
            )
        path = self._resolve_path(document)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc

    def _resolve_path(self, document: Document) -> Path:
        extension = MIME_EXTENSIONS.get(document.mime_type)
        if extension is None:
            raise UnsupportedMimeTypeError(f"mime type '{document.mime_type}' is not supported")
        return document_file_path(self._files_root, document.user_id, document.uuid, extension)
