"""Storage node agent: control-plane registration over the message bus."""

__version__ = "0.1.0"
