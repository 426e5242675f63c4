"""Transport layer.

Wraps the controller WebSocket in a demand-driven receive stream:
- Subscription: issues receives only while the subscriber has demand
- MessageChannel: bounded queue feeding the runtime's dispatch loop
- SocketStream: owns the socket, its one subscription and the send path
"""

from .stream import (
    UNLIMITED,
    Message,
    MessageChannel,
    Socket,
    SocketStream,
    Subscriber,
    Subscription,
)

__all__ = [
    "UNLIMITED",
    "Message",
    "MessageChannel",
    "Socket",
    "SocketStream",
    "Subscriber",
    "Subscription",
]
