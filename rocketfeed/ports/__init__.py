"""Port interfaces (Hexagonal Architecture)."""

from rocketfeed.ports.outbound import HistoryPort, MessagingPort, RoomListingPort

__all__ = [
    "HistoryPort",
    "MessagingPort",
    "RoomListingPort",
]
