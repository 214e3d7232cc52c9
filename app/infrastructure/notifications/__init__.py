from app.infrastructure.notifications.logging_notifier import LoggingNotifier
from app.infrastructure.notifications.webhook_notifier import WebhookNotifier

__all__ = ["LoggingNotifier", "WebhookNotifier"]
