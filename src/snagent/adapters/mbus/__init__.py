from __future__ import annotations
import functools
from typing import Optional

from snagent.ports.mbus import Connector
from .inproc import InprocBroker, InprocConnection, InprocMessage
from .nats_client import nats_connect

INPROC_SCHEME = "inproc://"


def connector_for(address: str, *, name: Optional[str] = None) -> Connector:
    """Pick the transport by address scheme: ``inproc://<broker>`` or a NATS url."""
    if address.startswith(INPROC_SCHEME):
        return InprocBroker.named(address[len(INPROC_SCHEME):]).connect
    return functools.partial(nats_connect, name=name)


__all__ = [
    "connector_for",
    "nats_connect",
    "InprocBroker",
    "InprocConnection",
    "InprocMessage",
]
