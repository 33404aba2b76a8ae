"""Notification adapter that writes each message to the structured log."""

import structlog

from storefront.notification.port import NotificationDispatcher

logger = structlog.get_logger(__name__)


class LogDispatcher(NotificationDispatcher):
    def send(self, audience: str, template: str, data: dict) -> bool:
        logger.info(
            "Notification dispatched",
            audience=audience,
            template=template,
            recipient=data.get("email"),
            order_id=data.get("order_id"),
        )
        return True
