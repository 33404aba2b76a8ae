"""Notification dispatcher port.

Transport (email, SMS, chat) and template rendering live behind this
interface. ``send`` returns whether the message was accepted; adapters may
also raise ``NotificationFailure``. Callers treat both as non-fatal.
"""

from abc import ABC, abstractmethod
from enum import Enum


class Audience(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class Template(Enum):
    ORDER_PLACED = "order_placed"
    NEW_ORDER_ADMIN = "new_order_admin"
    ORDER_PACKING = "order_packing"
    ORDER_CANCELLED = "order_cancelled"
    TRACKING_UPDATE = "tracking_update"


class NotificationDispatcher(ABC):
    @abstractmethod
    def send(self, audience: str, template: str, data: dict) -> bool: ...
