"""Fake notification dispatcher — records messages for test assertions."""

from storefront.errors import NotificationFailure
from storefront.notification.port import NotificationDispatcher


class FakeDispatcher(NotificationDispatcher):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.raise_on_failure = False
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, raise_on_failure: bool = False):
        """Configure the fake dispatcher behavior for testing."""
        self.should_succeed = should_succeed
        self.raise_on_failure = raise_on_failure

    def send(self, audience: str, template: str, data: dict) -> bool:
        if not self.should_succeed:
            if self.raise_on_failure:
                raise NotificationFailure(self.failure_reason)
            return False

        self.sent.append({"audience": audience, "template": template, "data": data})
        return True

    def templates(self) -> list[str]:
        return [message["template"] for message in self.sent]

    def reset(self):
        self.sent.clear()
        self.configure()
