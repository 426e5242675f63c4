"""Demand-driven receive stream over a WebSocket.

The socket only offers "receive one message". ``Subscription`` turns that
into a pull stream: the subscriber declares how many messages it is willing
to take (its demand) and the subscription issues exactly that many receives,
one at a time, topping demand up with whatever each delivery returns.

``MessageChannel`` builds the runtime's inbound pipeline on top of it: a
bounded queue whose free slots are the outstanding demand, so the socket is
never read further ahead than the dispatch loop can absorb.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from ..errors import ConnectionFailure

logger = logging.getLogger(__name__)

Message = str | bytes

# Demand that never runs out
UNLIMITED = math.inf


@runtime_checkable
class Socket(Protocol):
    """The parts of a WebSocket connection the stream needs."""

    async def recv(self) -> Message:
        """Wait for the next message."""
        ...

    async def send(self, message: Message) -> None:
        """Send one message."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...


class Subscriber(Protocol):
    """Consumer of a subscription."""

    async def receive(self, message: Message) -> int:
        """Handle one message.

        Returns:
            Additional demand, 0 to keep the current demand unchanged
        """
        ...

    async def receive_completion(self, error: BaseException | None) -> None:
        """Called once when the stream ends; ``None`` means a clean close."""
        ...


class Subscription:
    """A single subscriber's claim on a socket's inbound messages."""

    def __init__(self, socket: Socket, subscriber: Subscriber) -> None:
        self._socket = socket
        self._subscriber: Subscriber | None = subscriber
        self._demand: float = 0
        self._pump: asyncio.Task[None] | None = None
        self._finished = False

    @property
    def demand(self) -> float:
        """Messages the subscriber is still willing to receive."""
        return self._demand

    @property
    def is_active(self) -> bool:
        """True until cancelled or completed."""
        return self._subscriber is not None and not self._finished

    def request(self, demand: float) -> None:
        """Add demand and start receiving if idle.

        Args:
            demand: Number of further messages, or ``UNLIMITED``

        Raises:
            ValueError: If demand is not positive
        """
        if demand <= 0:
            raise ValueError(f"Demand must be positive, got {demand}")
        if not self.is_active:
            return

        self._demand += demand
        if self._pump is None or self._pump.done():
            self._pump = asyncio.create_task(self._listen())

    def cancel(self) -> None:
        """Stop issuing receives and release the subscriber.

        A receive already in flight is allowed to finish; its message is
        discarded.
        """
        self._subscriber = None
        self._demand = 0

    async def aclose(self) -> None:
        """Cancel and abort any in-flight receive."""
        self.cancel()
        if self._pump and not self._pump.done():
            self._pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump
        self._pump = None

    async def _listen(self) -> None:
        """Receive messages one at a time while there is demand."""
        while self._demand > 0 and self._subscriber is not None:
            try:
                message = await self._socket.recv()
            except ConnectionClosedOK:
                await self._complete(None)
                return
            except ConnectionClosed as e:
                await self._complete(ConnectionFailure(f"WebSocket closed: {e}"))
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                await self._complete(ConnectionFailure(f"WebSocket error: {e}"))
                return

            # Re-read after the await: cancel() may have run meanwhile
            subscriber = self._subscriber
            if subscriber is None:
                logger.debug("Discarding message received after cancel")
                return

            self._demand -= 1
            try:
                extra = await subscriber.receive(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Subscriber failed to handle message")
                await self._complete(e)
                return
            if extra and self._subscriber is not None:
                self._demand += extra

    async def _complete(self, error: BaseException | None) -> None:
        if self._finished:
            return
        self._finished = True
        subscriber, self._subscriber = self._subscriber, None
        self._demand = 0
        if subscriber is None:
            if error is not None:
                logger.debug(f"Dropping completion after cancel: {error}")
            return
        await subscriber.receive_completion(error)


class SocketStream:
    """Wraps a socket with a single-subscriber receive stream and a send path."""

    def __init__(self, socket: Socket) -> None:
        self.socket = socket
        self._subscription: Subscription | None = None

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    def subscribe(self, subscriber: Subscriber) -> Subscription:
        """Attach the one subscriber this stream supports.

        Raises:
            RuntimeError: If a subscriber is already attached
        """
        if self._subscription is not None:
            raise RuntimeError("SocketStream supports a single subscriber")
        self._subscription = Subscription(self.socket, subscriber)
        return self._subscription

    def channel(self, capacity: int = 16) -> MessageChannel:
        """Subscribe a bounded channel and return it for iteration."""
        return MessageChannel(self, capacity)

    async def send(self, message: Message) -> None:
        """Send one message.

        Raises:
            ConnectionFailure: If the socket is closed or errors
        """
        try:
            await self.socket.send(message)
        except (ConnectionClosed, OSError) as e:
            raise ConnectionFailure(f"Failed to send: {e}") from e

    async def close(self) -> None:
        """Cancel the subscription and close the socket."""
        if self._subscription is not None:
            self._subscription.cancel()
        await self.socket.close()
        if self._subscription is not None:
            await self._subscription.aclose()


class _Closed:
    """Queue marker for the end of the stream."""

    def __init__(self, error: BaseException | None) -> None:
        self.error = error


class MessageChannel:
    """Inbound messages buffered in a bounded queue.

    Outstanding demand plus queued messages never exceeds ``capacity``:
    each message taken from the queue requests one more from the socket.

    Usage:
        async for message in stream.channel(capacity=16):
            await handle(message)

    Iteration ends on a clean close and raises ``ConnectionFailure`` when
    the transport fails.
    """

    def __init__(self, stream: SocketStream, capacity: int = 16) -> None:
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        # Bounded by demand accounting rather than maxsize, so the end-of-stream
        # marker can always be queued
        self._queue: asyncio.Queue[Message | _Closed] = asyncio.Queue()
        self._subscription = stream.subscribe(self)
        self._started = False
        self._done = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pending(self) -> int:
        """Messages received but not yet consumed."""
        return self._queue.qsize()

    async def receive(self, message: Message) -> int:
        self._queue.put_nowait(message)
        return 0

    async def receive_completion(self, error: BaseException | None) -> None:
        self._queue.put_nowait(_Closed(error))

    def __aiter__(self) -> AsyncIterator[Message]:
        return self

    async def __anext__(self) -> Message:
        if self._done:
            raise StopAsyncIteration
        if not self._started:
            self._started = True
            self._subscription.request(self._capacity)

        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._done = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration

        self._subscription.request(1)
        return item

    async def aclose(self) -> None:
        """Stop receiving; queued messages are dropped.

        A consumer waiting in ``__anext__`` is woken and its iteration ends.
        """
        self._done = True
        await self._subscription.aclose()
        self._queue.put_nowait(_Closed(None))
