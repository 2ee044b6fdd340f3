import json

from docsieve.database.connection import get_connection
from docsieve.notification.base import BaseProgressPublisher
from docsieve.notification.models import ProgressEvent


class PgNotifyPublisher(BaseProgressPublisher):
    """Publishes progress events as JSON on a PostgreSQL NOTIFY channel."""

    def __init__(self, channel: str) -> None:
        self._channel = channel

    async def publish(self, event: ProgressEvent) -> None:
        async with get_connection() as conn:
            await conn.execute(
                "SELECT pg_notify(%s, %s)",
                (self._channel, json.dumps(event.to_payload())),
            )
            await conn.commit()
