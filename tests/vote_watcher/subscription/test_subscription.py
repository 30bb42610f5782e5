"""Tests for the node subscription against a fake RPC websocket endpoint."""

from __future__ import annotations

import asyncio

import pytest

from tests.vote_watcher.helpers import (
    TEST_VALIDATOR,
    FakeNode,
    make_new_block_result,
    make_notification,
    make_rpc_block,
)
from vote_watcher.chain import ChainEvent, NewBlockEvent, UnknownEvent
from vote_watcher.subscription import (
    NEW_BLOCK_QUERY,
    NodeSubscription,
    SubscriptionError,
    SubscriptionState,
    build_websocket_url,
)


async def collect(node: FakeNode) -> tuple[list[ChainEvent], NodeSubscription]:
    """Subscribe to a fake node and drain the stream."""
    async with node.serve() as address:
        subscription = await NodeSubscription.open(FakeNode.websocket_url(address))
        assert subscription.state is SubscriptionState.SUBSCRIBED
        events = [event async for event in subscription]
        await subscription.close()
        return events, subscription


class TestBuildWebsocketUrl:
    """Tests for node address translation."""

    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("tcp://localhost:26657", "ws://localhost:26657/websocket"),
            ("http://node:26657/", "ws://node:26657/websocket"),
            ("https://rpc.example.com", "wss://rpc.example.com/websocket"),
            ("ws://node:26657", "ws://node:26657/websocket"),
            ("localhost:26657", "ws://localhost:26657/websocket"),
        ],
    )
    def test_schemes(self, address: str, expected: str) -> None:
        """Each supported scheme maps to the matching websocket scheme."""
        assert build_websocket_url(address) == expected

    def test_custom_endpoint(self) -> None:
        """The endpoint path is configurable and gets a leading slash."""
        assert build_websocket_url("tcp://n:1", "ws") == "ws://n:1/ws"

    def test_unsupported_scheme(self) -> None:
        """Unknown schemes are rejected."""
        with pytest.raises(ValueError):
            build_websocket_url("unix:///var/run/node.sock")


class TestOpen:
    """Tests for the subscribe handshake."""

    def test_sends_subscribe_request(self) -> None:
        """The first request is a JSON-RPC subscribe with the query."""
        node = FakeNode()
        asyncio.run(collect(node))

        request = node.requests[0]
        assert request["jsonrpc"] == "2.0"
        assert request["method"] == "subscribe"
        assert request["params"] == {"query": NEW_BLOCK_QUERY}

    def test_rejected_subscription_fails(self) -> None:
        """A JSON-RPC error reply to subscribe raises SubscriptionError."""
        node = FakeNode(subscribe_error={"code": -32603, "message": "max subscriptions"})

        async def scenario() -> None:
            async with node.serve() as address:
                with pytest.raises(SubscriptionError, match="max subscriptions"):
                    await NodeSubscription.open(FakeNode.websocket_url(address))

        asyncio.run(scenario())

    def test_closed_before_acknowledgement_fails(self) -> None:
        """A connection closed before the acknowledgement raises SubscriptionError."""
        node = FakeNode(acknowledge=False)

        async def scenario() -> None:
            async with node.serve() as address:
                with pytest.raises(SubscriptionError):
                    await NodeSubscription.open(FakeNode.websocket_url(address))

        asyncio.run(scenario())

    def test_unreachable_node_fails(self) -> None:
        """A refused connection raises SubscriptionError."""

        async def scenario() -> None:
            async with FakeNode().serve() as address:
                url = FakeNode.websocket_url(address)
            # Server is shut down at this point.
            with pytest.raises(SubscriptionError):
                await NodeSubscription.open(url, timeout=2.0)

        asyncio.run(scenario())


class TestEventStream:
    """Tests for iterating notifications."""

    def test_yields_new_block_events_in_order(self) -> None:
        """Each notification becomes one event, in delivery order."""
        node = FakeNode(
            notifications=[
                make_notification(make_new_block_result(make_rpc_block(h, TEST_VALIDATOR)))
                for h in (100, 101, 102)
            ]
        )
        events, subscription = asyncio.run(collect(node))

        assert [e.block.height for e in events if isinstance(e, NewBlockEvent)] == [100, 101, 102]
        assert subscription.events_received == 3
        assert subscription.state is SubscriptionState.DISCONNECTED

    def test_unknown_notifications_are_passed_through(self) -> None:
        """Non-block notifications surface as UnknownEvent."""
        node = FakeNode(
            notifications=[make_notification({"data": {"type": "tendermint/event/Tx"}})]
        )
        events, _ = asyncio.run(collect(node))

        assert len(events) == 1
        assert isinstance(events[0], UnknownEvent)

    def test_empty_results_are_skipped(self) -> None:
        """Extra acknowledgements carry no event."""
        node = FakeNode(notifications=[make_notification({})])
        events, _ = asyncio.run(collect(node))
        assert events == []

    def test_stream_error_raises(self) -> None:
        """An error pushed after subscribing ends the stream with SubscriptionError."""
        node = FakeNode(
            notifications=[
                {"jsonrpc": "2.0", "id": 0, "error": {"code": -32000, "message": "too slow"}}
            ]
        )

        async def scenario() -> NodeSubscription:
            async with node.serve() as address:
                subscription = await NodeSubscription.open(FakeNode.websocket_url(address))
                with pytest.raises(SubscriptionError, match="too slow"):
                    async for _ in subscription:
                        pass
                await subscription.close()
                return subscription

        subscription = asyncio.run(scenario())
        assert subscription.state is SubscriptionState.FAILED


class TestClose:
    """Tests for the cancellation handle."""

    def test_close_wakes_waiting_consumer(self) -> None:
        """Closing while a consumer waits ends its iteration and unsubscribes."""
        node = FakeNode(
            notifications=[
                make_notification(make_new_block_result(make_rpc_block(7, TEST_VALIDATOR)))
            ],
            close_after_notifications=False,
        )

        async def scenario() -> tuple[list[ChainEvent], NodeSubscription]:
            async with node.serve() as address:
                subscription = await NodeSubscription.open(FakeNode.websocket_url(address))
                received: list[ChainEvent] = []
                first = asyncio.Event()

                async def consume() -> None:
                    async for event in subscription:
                        received.append(event)
                        first.set()

                task = asyncio.create_task(consume())
                await asyncio.wait_for(first.wait(), timeout=5)
                await subscription.close()
                await asyncio.wait_for(task, timeout=5)
                await asyncio.wait_for(node.client_left.wait(), timeout=5)
                return received, subscription

        received, subscription = asyncio.run(scenario())

        assert len(received) == 1
        assert subscription.state is SubscriptionState.DISCONNECTED
        assert [r["method"] for r in node.requests] == ["subscribe", "unsubscribe_all"]

    def test_close_is_idempotent(self) -> None:
        """Closing twice is harmless."""
        node = FakeNode(close_after_notifications=False)

        async def scenario() -> NodeSubscription:
            async with node.serve() as address:
                subscription = await NodeSubscription.open(FakeNode.websocket_url(address))
                await subscription.close()
                await subscription.close()
                return subscription

        subscription = asyncio.run(scenario())
        assert subscription.state is SubscriptionState.DISCONNECTED


class TestMessageSize:
    """Tests for large notifications."""

    def test_block_larger_than_four_mib_is_delivered(self) -> None:
        """Blocks carry their transactions, so notifications have no size cap."""
        block = make_rpc_block(200, TEST_VALIDATOR)
        block["data"] = {"txs": ["A" * (5 * 1024 * 1024)]}
        node = FakeNode(notifications=[make_notification(make_new_block_result(block))])

        events, subscription = asyncio.run(collect(node))

        assert len(events) == 1
        assert isinstance(events[0], NewBlockEvent)
        assert events[0].block.height == 200
        assert subscription.state is SubscriptionState.DISCONNECTED

    def test_oversized_message_error_names_the_cause(self) -> None:
        """A protocol error ends the stream with an error that carries its cause."""
        block = make_rpc_block(200, TEST_VALIDATOR)
        block["data"] = {"txs": ["A" * 4096]}
        node = FakeNode(
            notifications=[make_notification(make_new_block_result(block))],
            close_after_notifications=False,
        )

        async def scenario() -> tuple[NodeSubscription, SubscriptionError]:
            async with node.serve() as address:
                subscription = await NodeSubscription.open(
                    FakeNode.websocket_url(address), max_msg_size=1024
                )
                with pytest.raises(SubscriptionError) as exc_info:
                    async for _ in subscription:
                        pass
                await subscription.close()
                return subscription, exc_info.value

        subscription, error = asyncio.run(scenario())

        assert "exceeds limit" in str(error)
        assert not str(error).endswith("None")
        assert subscription.state is SubscriptionState.FAILED
