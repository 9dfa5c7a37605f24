from .connection_manager import ConnectionManager
from .bus import TransportMessageBus
from .registration import Registration, RegistrationSlot

__all__ = [
    "ConnectionManager",
    "TransportMessageBus",
    "Registration",
    "RegistrationSlot",
]
