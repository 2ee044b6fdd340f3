from abc import ABC, abstractmethod

from docsieve.notification.models import ProgressEvent


class BaseProgressPublisher(ABC):
    """Contract for the pub/sub boundary owned by the surrounding application."""

    @abstractmethod
    async def publish(self, event: ProgressEvent) -> None:
        """Deliver one progress event. May raise; the notifier drops failures."""
