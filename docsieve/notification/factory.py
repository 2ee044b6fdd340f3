from docsieve.config.settings import Settings
from docsieve.notification.log_publisher import LogPublisher
from docsieve.notification.notifier import ProgressNotifier
from docsieve.notification.pg_notify_publisher import PgNotifyPublisher


class NotifierFactory:
    """Creates the progress notifier for the configured backend."""

    BACKENDS = ("log", "pg_notify")

    @classmethod
    def create(cls, settings: Settings) -> ProgressNotifier:
        backend = settings.notifier_backend.lower()
        if backend == "log":
            publisher = LogPublisher()
        elif backend == "pg_notify":
            publisher = PgNotifyPublisher(settings.notifier_channel)
        else:
            raise ValueError(
                f"Unknown notifier backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return ProgressNotifier(publisher, timeout_seconds=settings.notifier_timeout_seconds)
