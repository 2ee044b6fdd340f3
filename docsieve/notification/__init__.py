from docsieve.notification.base import BaseProgressPublisher
from docsieve.notification.factory import NotifierFactory
from docsieve.notification.models import ProgressEvent
from docsieve.notification.notifier import ProgressNotifier

__all__ = ["BaseProgressPublisher", "NotifierFactory", "ProgressEvent", "ProgressNotifier"]
