# -*- coding: utf-8 -*-
"""
Minimal event bus used by the session manager.

Every subscription returns a handle; the owner of the handle is responsible
for unsubscribing it on shutdown.
"""
import inspect
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List

from loguru import logger

EventCallback = Callable[..., Awaitable[None] | None]


class SessionEvent(str, Enum):
    CREDENTIALS_CHANGED = "credentials_changed"
    CONNECTION_OPENED = "connection_opened"
    CONNECTION_CLOSED = "connection_closed"
    PAIRING_REQUIRED = "pairing_required"
    MESSAGE_RECEIVED = "message_received"


class Subscription:
    def __init__(self, emitter: "EventEmitter", event: SessionEvent, callback: EventCallback):
        self._emitter = emitter
        self.event = event
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self._emitter._remove(self)
        self.active = False


class EventEmitter:
    def __init__(self):
        self._subscriptions: Dict[SessionEvent, List[Subscription]] = defaultdict(list)

    def subscribe(self, event: SessionEvent, callback: EventCallback) -> Subscription:
        subscription = Subscription(self, event, callback)
        self._subscriptions[event].append(subscription)
        return subscription

    def subscriber_count(self, event: SessionEvent) -> int:
        return len(self._subscriptions[event])

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions[subscription.event]
        if subscription in subscribers:
            subscribers.remove(subscription)

    async def emit(self, event: SessionEvent, *args: Any, propagate: bool = False) -> None:
        """
        Call every subscriber of `event` in subscription order and await coroutine callbacks.

        Args:
            event: event name
            *args: positional arguments passed to the callbacks
            propagate: re-raise callback errors instead of logging them. Used for events whose
                side effect must succeed before the caller continues, such as credential writes.
        """
        for subscription in list(self._subscriptions[event]):
            try:
                outcome = subscription.callback(*args)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as err:
                if propagate:
                    raise
                logger.exception(f"Subscriber of {event.value} failed: {err}")
