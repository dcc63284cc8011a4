"""Message delivery: tickets, notices and the dispatcher."""

from talkline.delivery.notices import Notice, log_notifier
from talkline.delivery.tickets import DeliveryResult, DeliveryTicket, Outcome
from talkline.delivery.dispatcher import DeliveryDispatcher

__all__ = [
    "DeliveryDispatcher",
    "DeliveryResult",
    "DeliveryTicket",
    "Notice",
    "Outcome",
    "log_notifier",
]
