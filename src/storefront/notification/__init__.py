"""Notification dispatcher registry."""

from storefront.notification.port import NotificationDispatcher


def build_notifier(settings) -> NotificationDispatcher:
    """Build the dispatcher named by ``settings.notification_adapter`` (``log`` or ``fake``)."""
    adapter = settings.notification_adapter
    if adapter == "log":
        from storefront.notification.log_adapter import LogDispatcher

        return LogDispatcher()
    if adapter == "fake":
        from storefront.notification.fake_adapter import FakeDispatcher

        return FakeDispatcher()
    raise ValueError(f"Unknown notification adapter: {adapter}")
