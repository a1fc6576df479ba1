"""
Label Print Service Bridges
===========================

Transports that carry device programs to printers.
"""

from .base import BaseBridgeClient
from .http import HttpBridgeClient
from .tcp import TcpBridgeClient

__all__ = ['BaseBridgeClient', 'HttpBridgeClient', 'TcpBridgeClient', 'create_bridge']

# Bridge registry
BRIDGES = {
    'http': HttpBridgeClient,
    'tcp': TcpBridgeClient,
}


def create_bridge(kind: str, **options) -> BaseBridgeClient:
    """Create a bridge client by kind."""
    bridge_class = BRIDGES.get(kind)
    if bridge_class is None:
        raise ValueError(f'Unknown bridge kind {kind!r}. Valid: {list(BRIDGES)}')
    return bridge_class(**options)
