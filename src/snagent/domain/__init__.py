from .types import (
    Event,
    RegistrationConfig,
    RegistrationState,
    RegisterPayload,
    DeregisterPayload,
    parse_hb_interval,
)

__all__ = [
    "Event",
    "RegistrationConfig",
    "RegistrationState",
    "RegisterPayload",
    "DeregisterPayload",
    "parse_hb_interval",
]
