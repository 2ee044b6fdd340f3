import asyncio

from docsieve.logging.logger import Log
from docsieve.notification.base import BaseProgressPublisher
from docsieve.notification.models import ProgressEvent


class ProgressNotifier:
    """Emits stage/progress events without ever failing the extraction job."""

    def __init__(self, publisher: BaseProgressPublisher, timeout_seconds: float = 2.0) -> None:
        self._publisher = publisher
        self._timeout_seconds = timeout_seconds

    async def emit(
        self,
        document_id: int,
        stage: str,
        progress_percent: int,
        message: str,
    ) -> None:
        event = ProgressEvent(
            document_id=document_id,
            stage=stage,
            progress_percent=max(0, min(100, int(progress_percent))),
            message=message,
        )
        try:
            await asyncio.wait_for(
                self._publisher.publish(event), timeout=self._timeout_seconds
            )
        except Exception as exc:
            Log.warning(
                f"Dropped progress event for document {document_id} ({stage}): {exc!r}"
            )
