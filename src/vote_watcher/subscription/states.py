"""Subscription state machine."""

from __future__ import annotations

from enum import Enum, auto


class SubscriptionState(Enum):
    """
    Lifecycle of the node event subscription.

    State Machine Diagram
    ---------------------
    ::

        DISCONNECTED --> CONNECTING --> SUBSCRIBED --> DISCONNECTED
                              |              |
                              v              v
                            FAILED <---------+

    Transitions
    -----------
    DISCONNECTED -> CONNECTING
        - Triggered when: open() is called

    CONNECTING -> SUBSCRIBED
        - Triggered when: the node acknowledges the subscribe request

    CONNECTING -> FAILED
        - Triggered when: the connection, the subscribe request or its
          acknowledgement fails

    SUBSCRIBED -> FAILED
        - Triggered when: the node reports an error on the stream

    SUBSCRIBED -> DISCONNECTED
        - Triggered when: close() is called or the node closes the connection

    FAILED is terminal. There is no reconnection: the process is expected to
    exit and be restarted by its supervisor.
    """

    DISCONNECTED = auto()
    """No connection to the node."""

    CONNECTING = auto()
    """Connection or subscribe handshake in progress."""

    SUBSCRIBED = auto()
    """Subscription acknowledged; events are flowing."""

    FAILED = auto()
    """The subscription could not be established or broke with an error."""

    @property
    def is_active(self) -> bool:
        """Whether events can still be delivered."""
        return self is SubscriptionState.SUBSCRIBED
