from docsieve.logging.logger import Log
from docsieve.notification.base import BaseProgressPublisher
from docsieve.notification.models import ProgressEvent


class LogPublisher(BaseProgressPublisher):
    """Writes progress events to the log. Default when no bus is configured."""

    async def publish(self, event: ProgressEvent) -> None:
        Log.info(
            f"Progress document={event.document_id} stage={event.stage} "
            f"{event.progress_percent}% {event.message}"
        )
