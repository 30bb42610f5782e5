"""
Node event subscription over the RPC websocket.

The node exposes a JSON-RPC 2.0 interface on a websocket endpoint
(`/websocket` by default). A client subscribes with an event query and the
node pushes one notification per matching event for as long as the
connection stays open.


HANDSHAKE
---------
::

    client                                      node
      |  --- connect ws://host:26657/websocket --->  |
      |  --- {"method": "subscribe",           --->  |
      |       "params": {"query": "..."}}            |
      |  <-- {"id": 0, "result": {}}           ----  |   acknowledgement
      |  <-- {"id": 0, "result": {"data": ...}} ---  |   one per event
      |                   ...                        |

An `error` member in any reply means the subscription is unusable. During
the handshake this fails the open; afterwards it ends the stream with
SubscriptionError. The node may also drop slow subscribers this way.


CANCELLATION
------------
`close()` is the cancellation handle. It sends a best-effort
`unsubscribe_all`, closes the websocket and the HTTP session. A consumer
suspended in `__anext__` is woken up and iteration ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Final

import aiohttp

from vote_watcher.chain import ChainEvent, UnknownEvent, decode_event

from .states import SubscriptionState

logger = logging.getLogger(__name__)

NEW_BLOCK_QUERY: Final = "tm.event = 'NewBlock'"
"""Query selecting only new block events."""

DEFAULT_WEBSOCKET_ENDPOINT: Final = "/websocket"
"""Path of the node's RPC websocket endpoint."""

DEFAULT_SUBSCRIBE_TIMEOUT: Final = 10.0
"""Seconds to wait for the connection and the subscribe acknowledgement."""

SUBSCRIBE_REQUEST_ID: Final = 0
"""JSON-RPC id used for the subscribe request."""

UNLIMITED_MESSAGE_SIZE: Final = 0
"""
Incoming websocket message size limit that disables the check.

Each NewBlock notification carries the whole block, transactions included,
so it has no useful upper bound. aiohttp otherwise rejects messages over 4 MiB.
"""

_SCHEME_MAP: Final = {
    "tcp": "ws",
    "http": "ws",
    "https": "wss",
    "ws": "ws",
    "wss": "wss",
}
"""Node address schemes and the websocket scheme each maps to."""


class SubscriptionError(Exception):
    """
    Error establishing or maintaining the node subscription.

    Callers should treat this as fatal: there is no reconnection.
    """


def build_websocket_url(address: str, endpoint: str = DEFAULT_WEBSOCKET_ENDPOINT) -> str:
    """
    Build the websocket URL for a node RPC address.

    Accepts the address forms node operators usually configure:

    - tcp://host:26657 (the node's own config notation)
    - http://host:26657 or https://host
    - ws://host:26657 or wss://host
    - host:26657 (no scheme, plain websocket)

    Args:
        address: Node RPC address.
        endpoint: Websocket path on the node.

    Returns:
        Full websocket URL.

    Raises:
        ValueError: If the address uses an unsupported scheme.
    """
    scheme, sep, rest = address.partition("://")
    if not sep:
        scheme, rest = "tcp", address

    ws_scheme = _SCHEME_MAP.get(scheme.lower())
    if ws_scheme is None:
        raise ValueError(f"Unsupported node address scheme: {scheme!r}")

    if not endpoint.startswith("/"):
        endpoint = f"/{endpoint}"
    return f"{ws_scheme}://{rest.rstrip('/')}{endpoint}"


def _rpc_request(method: str, request_id: int, **params: Any) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 request object."""
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


@dataclass(slots=True)
class NodeSubscription:
    """
    Live subscription to the node's event stream.

    Created with `open()`. Implements the ChainEventSource protocol: async
    iteration yields decoded chain events, suspending until the node pushes
    the next one. There is no timeout between events.

    The object is also the cancellation handle: `close()` tears down the
    subscription and the connection.
    """

    url: str
    """Websocket URL of the node."""

    query: str = NEW_BLOCK_QUERY
    """Event query sent with the subscribe request."""

    state: SubscriptionState = field(default=SubscriptionState.DISCONNECTED)
    """Current lifecycle state."""

    _session: aiohttp.ClientSession | None = field(default=None, init=False, repr=False)
    """HTTP session owning the websocket connection."""

    _ws: aiohttp.ClientWebSocketResponse | None = field(default=None, init=False, repr=False)
    """The websocket, None once released."""

    _events_received: int = field(default=0, init=False, repr=False)
    """Notifications received since subscribing."""

    @classmethod
    async def open(
        cls,
        url: str,
        query: str = NEW_BLOCK_QUERY,
        *,
        timeout: float = DEFAULT_SUBSCRIBE_TIMEOUT,
        max_msg_size: int = UNLIMITED_MESSAGE_SIZE,
    ) -> NodeSubscription:
        """
        Connect to the node and subscribe to events matching `query`.

        Args:
            url: Websocket URL (see build_websocket_url).
            query: Event query.
            timeout: Seconds allowed for connecting and for the acknowledgement.
            max_msg_size: Largest incoming message accepted, in bytes. Zero means
                no limit.

        Returns:
            A subscription in the SUBSCRIBED state.

        Raises:
            SubscriptionError: If the connection or the subscription fails.
        """
        subscription = cls(url=url, query=query)
        await subscription._subscribe(timeout, max_msg_size)
        return subscription

    async def _subscribe(self, timeout: float, max_msg_size: int) -> None:
        """Run the connect and subscribe handshake."""
        self.state = SubscriptionState.CONNECTING
        logger.info("Connecting to node event stream at %s", self.url)

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=timeout),
        )
        try:
            self._ws = await self._session.ws_connect(self.url, max_msg_size=max_msg_size)
            request = _rpc_request("subscribe", SUBSCRIBE_REQUEST_ID, query=self.query)
            await self._ws.send_json(request)
            reply = await self._ws.receive(timeout=timeout)
            self._check_acknowledgement(reply)

        except SubscriptionError:
            await self._fail()
            raise
        except TimeoutError as e:
            await self._fail()
            raise SubscriptionError(f"Timed out subscribing to {self.url}") from e
        except (aiohttp.ClientError, OSError) as e:
            await self._fail()
            raise SubscriptionError(f"Unable to start subscription on {self.url}: {e}") from e

        self.state = SubscriptionState.SUBSCRIBED
        logger.info("Subscribed to %r", self.query)

    def _check_acknowledgement(self, reply: aiohttp.WSMessage) -> None:
        """
        Validate the node's reply to the subscribe request.

        Raises:
            SubscriptionError: If the reply is not a successful acknowledgement.
        """
        if reply.type is not aiohttp.WSMsgType.TEXT:
            raise SubscriptionError(
                f"Connection closed before subscription was acknowledged ({reply.type.name})"
            )

        try:
            payload = reply.json()
        except ValueError as e:
            raise SubscriptionError(f"Malformed subscribe reply: {e}") from e

        if not isinstance(payload, dict):
            raise SubscriptionError(f"Malformed subscribe reply: {payload!r}")

        if "error" in payload:
            raise SubscriptionError(f"Node rejected subscription: {payload['error']}")

        if "result" not in payload:
            raise SubscriptionError(f"Subscribe reply has no result: {payload!r}")

    async def _fail(self) -> None:
        """Mark the subscription failed and release the connection."""
        self.state = SubscriptionState.FAILED
        await self._release()

    async def _release(self) -> None:
        """Close the websocket and the session. Safe to call more than once."""
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        if ws is not None:
            await ws.close()
        if session is not None:
            await session.close()

    def __aiter__(self) -> NodeSubscription:
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> ChainEvent:
        """
        Return the next chain event from the node.

        Subscribe acknowledgements and control frames are skipped.

        Raises:
            StopAsyncIteration: When the connection has been closed.
            SubscriptionError: When the node reports an error on the stream.
        """
        while True:
            ws = self._ws
            if ws is None:
                raise StopAsyncIteration

            message = await ws.receive()

            match message.type:
                case aiohttp.WSMsgType.TEXT:
                    event = self._decode_notification(message)
                    if event is None:
                        continue
                    self._events_received += 1
                    return event

                case aiohttp.WSMsgType.CLOSE | aiohttp.WSMsgType.CLOSING | aiohttp.WSMsgType.CLOSED:
                    if self.state is SubscriptionState.SUBSCRIBED:
                        logger.info("Node event stream closed")
                        self.state = SubscriptionState.DISCONNECTED
                    await self._release()
                    raise StopAsyncIteration

                case aiohttp.WSMsgType.ERROR:
                    # Protocol errors such as an oversized message arrive as the
                    # frame data; ws.exception() only covers transport errors.
                    error = message.data if message.data is not None else ws.exception()
                    await self._fail()
                    raise SubscriptionError(f"Websocket error on {self.url}: {error}")

                case _:
                    logger.debug("Ignoring websocket frame of type %s", message.type.name)

    def _decode_notification(self, message: aiohttp.WSMessage) -> ChainEvent | None:
        """
        Turn a text frame into a chain event.

        Returns None for frames that carry no event (acknowledgements).

        Raises:
            SubscriptionError: If the frame is a JSON-RPC error.
        """
        try:
            payload = message.json()
        except ValueError:
            return UnknownEvent(kind="<invalid json>", payload=message.data)

        if not isinstance(payload, dict):
            return UnknownEvent(kind="<not an object>", payload=payload)

        if "error" in payload:
            self.state = SubscriptionState.FAILED
            raise SubscriptionError(f"Node reported subscription error: {payload['error']}")

        result = payload.get("result")
        if not result:
            return None
        return decode_event(result)

    async def close(self) -> None:
        """
        Cancel the subscription and close the connection.

        Sends `unsubscribe_all` first when the connection is still open; a
        failure to send is logged and otherwise ignored. Closing an already
        released subscription does nothing.
        """
        if self._ws is None and self._session is None:
            return

        ws = self._ws
        if ws is not None and not ws.closed:
            try:
                await ws.send_json(_rpc_request("unsubscribe_all", SUBSCRIBE_REQUEST_ID + 1))
            except (aiohttp.ClientError, ConnectionResetError) as e:
                logger.debug("Failed to send unsubscribe_all: %s", e)

        await self._release()
        if self.state is not SubscriptionState.FAILED:
            self.state = SubscriptionState.DISCONNECTED
        logger.info("Node subscription closed after %d events", self._events_received)

    @property
    def events_received(self) -> int:
        """Notifications received since subscribing."""
        return self._events_received
