"""
Confirmation protocol between the vault and an untrusted UI layer.

The vault never decides on its own whether a secret may be revealed or a
transaction signed. For every sensitive call it creates a single-use request
object, publishes it on a `ConfirmationBus` event and suspends until a listener
resolves the request:

    bus = ConfirmationBus()

    def on_decrypt(request: DecryptionRequest) -> None:
        if user_agrees(request.reason):
            request.approve(ask_password())
        else:
            request.abort()

    bus.subscribe(DECRYPT_PRIVATE_KEY_EVENT, on_decrypt)

Listeners may be plain functions or coroutine functions. A request resolves
exactly once; later calls to its resolvers are ignored and logged. Resolvers
must run on the event loop that created the request; from another thread use
`loop.call_soon_threadsafe(request.abort)`.

UIs that poll instead of subscribing can look up outstanding requests with
`ConfirmationBus.pending_requests()` / `get_pending(request_id)`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

DECRYPT_PRIVATE_KEY_EVENT = "eth:decrypt-private-key"
SIGN_TX_EVENT = "eth:tx:sign"

Listener = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Approved:
    """Outcome of an approved request; `payload` is e.g. the password."""

    payload: Optional[str] = None

    def __repr__(self) -> str:
        return "Approved(payload=***)" if self.payload is not None else "Approved()"


@dataclass(frozen=True)
class Aborted:
    """Outcome of a rejected request."""


class PendingConfirmation:
    """Single-use completion handle shared by the vault and the UI."""

    kind = "confirmation"

    def __init__(self, *, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.request_id = uuid.uuid4().hex
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def _settle(self, action: str, outcome: Union[Approved, Aborted]) -> bool:
        if self._future.done():
            logger.warning(
                "Ignoring %s for %s request %s: it was already resolved",
                action,
                self.kind,
                self.request_id,
            )
            return False
        self._future.set_result(outcome)
        logger.debug("%s request %s resolved via %s", self.kind.capitalize(), self.request_id, action)
        return True

    def add_done_callback(self, callback: Callable[["PendingConfirmation"], None]) -> None:
        self._future.add_done_callback(lambda _fut: callback(self))

    def cancel(self) -> bool:
        """Withdraw the request; later resolutions are ignored."""
        return self._future.cancel()

    async def wait(self) -> Union[Approved, Aborted]:
        return await self._future


class DecryptionRequest(PendingConfirmation):
    """Published on `eth:decrypt-private-key`; resolve with a password or abort."""

    kind = "decryption"

    def __init__(self, topic: str, reason: str, *, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__(loop=loop)
        self.topic = topic
        self.reason = reason

    def approve(self, password: Optional[str]) -> bool:
        return self._settle("approve", Approved(password))

    def abort(self) -> bool:
        return self._settle("abort", Aborted())

    def __repr__(self) -> str:
        return f"<DecryptionRequest id={self.request_id} topic={self.topic!r} reason={self.reason!r}>"


class SigningRequest(PendingConfirmation):
    """Published on `eth:tx:sign`; carries the transaction fields to review."""

    kind = "signing"

    def __init__(self, transaction: Mapping[str, Any], *, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__(loop=loop)
        self.transaction: Mapping[str, Any] = MappingProxyType(dict(transaction))

    def confirm(self) -> bool:
        return self._settle("confirm", Approved())

    def abort(self) -> bool:
        return self._settle("abort", Aborted())

    def __repr__(self) -> str:
        return f"<SigningRequest id={self.request_id} to={self.transaction.get('to')!r}>"


class ConfirmationBus:
    """Publish/subscribe channel keyed by event name."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}
        self._pending: Dict[str, PendingConfirmation] = {}

    def subscribe(self, event: str, listener: Listener) -> Callable[[], bool]:
        """Register `listener` for `event`; returns a callable that unsubscribes it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners.setdefault(event, []).append(listener)
        return lambda: self.unsubscribe(event, listener)

    def unsubscribe(self, event: str, listener: Listener) -> bool:
        listeners = self._listeners.get(event)
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        if not listeners:
            del self._listeners[event]
        return True

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def pending_requests(self) -> List[PendingConfirmation]:
        return [request for request in self._pending.values() if not request.done]

    def get_pending(self, request_id: str) -> Optional[PendingConfirmation]:
        request = self._pending.get(request_id)
        return request if request is not None and not request.done else None

    def _track(self, request: PendingConfirmation) -> None:
        if request.done:
            return
        self._pending[request.request_id] = request
        request.add_done_callback(lambda r: self._pending.pop(r.request_id, None))

    async def publish(self, event: str, request: Any) -> int:
        """
        Deliver `request` to every listener of `event`, awaiting async ones.

        Returns the number of listeners notified. Exceptions raised by a
        listener propagate to the publisher.
        """
        listeners = list(self._listeners.get(event, ()))
        if isinstance(request, PendingConfirmation):
            self._track(request)
            if not listeners:
                logger.warning(
                    "No listener subscribed to %s; %s request %s stays pending until resolved",
                    event,
                    request.kind,
                    request.request_id,
                )

        for listener in listeners:
            result = listener(request)
            if inspect.isawaitable(result):
                await result
        return len(listeners)
