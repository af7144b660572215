"""
Minimal actor layer for the consumer agents and the energy objective.

An Actor owns a thread, a mailbox and a dispatch table keyed by message
type: messages are handled one at a time on the actor's own thread, so the
actor's state needs no locking. A Receiver has a mailbox and a dispatch
table but no thread; its messages are handled by whichever thread calls
wait(), which makes it the natural endpoint for replies collected by the
solver.

Messages are immutable dataclasses. A sender may name a reply-to address
(any Actor or Receiver); handlers get it as their second argument.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from .data_structures import TimeInterval


logger = logging.getLogger(__name__)

# Seconds between checks for the stop condition while waiting for messages
POLL_INTERVAL = 0.1


# =============================================================================
# Messages
# =============================================================================

@dataclass(frozen=True)
class LoadProfile:
    """Ask a consumer agent to load its consumption profile."""
    path: str


@dataclass(frozen=True)
class AssignedStartTime:
    """Candidate start time for one consumer in an objective evaluation."""
    time: int


@dataclass(frozen=True, eq=False)
class ConsumptionReply:
    """Interval consumption of one consumer on the production timeline."""
    consumer_id: str
    values: np.ndarray

    def __post_init__(self):
        values = np.array(self.values, dtype=float)
        values.flags.writeable = False
        object.__setattr__(self, 'values', values)


@dataclass(frozen=True)
class CoverageRequest:
    """Ask a consumer agent for the time span its load may cover."""


@dataclass(frozen=True)
class CoverageReply:
    consumer_id: str
    interval: TimeInterval


@dataclass(frozen=True)
class ActorFailure:
    """An actor's handler raised; forwarded to the reply-to address."""
    actor: str
    error: BaseException


Handler = Callable[[Any, Optional["Address"]], None]


class Address:
    """Anything with a mailbox that accepts messages."""

    def send(self, message: Any, reply_to: Optional["Address"] = None) -> None:
        raise NotImplementedError


# =============================================================================
# Actor
# =============================================================================

class Actor(Address):
    """
    An object with its own thread of control.

    Subclasses register their handlers and then call start(). Exceptions
    raised by a handler are logged and forwarded as ActorFailure to the
    reply-to address of the message being handled, so the waiting side sees
    them.
    """

    def __init__(self, name: str):
        self.name = name
        self._mailbox: "queue.Queue[Optional[Tuple[Any, Optional[Address]]]]" = queue.Queue()
        self._handlers: Dict[type, Handler] = {}
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def register_handler(self, message_type: type, handler: Handler) -> None:
        self._handlers[message_type] = handler

    def start(self) -> None:
        self._thread.start()

    def send(self, message: Any, reply_to: Optional[Address] = None) -> None:
        """Post a message; returns immediately."""
        self._mailbox.put((message, reply_to))

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Let the thread finish the queued messages and terminate."""
        if self._thread.is_alive():
            self._mailbox.put(None)
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._mailbox.get()
            if item is None:
                break
            message, reply_to = item
            self._dispatch(message, reply_to)
        logger.debug(f"Actor {self.name} stopped")

    def _dispatch(self, message: Any, reply_to: Optional[Address]) -> None:
        handler = self._handlers.get(type(message))
        if handler is None:
            logger.warning(
                f"Actor {self.name} has no handler for {type(message).__name__}"
            )
            return

        try:
            handler(message, reply_to)
        except Exception as e:
            logger.exception(f"Actor {self.name} failed on {type(message).__name__}")
            if reply_to is not None:
                reply_to.send(ActorFailure(self.name, e))


# =============================================================================
# Receiver
# =============================================================================

class Receiver(Address):
    """
    A mailbox drained only by the thread calling wait().

    Handlers therefore run strictly one at a time on the caller's thread.
    An ActorFailure arriving in the mailbox is raised from wait().
    """

    def __init__(self):
        self._mailbox: "queue.Queue[Tuple[Any, Optional[Address]]]" = queue.Queue()
        self._handlers: Dict[type, Handler] = {}

    def register_handler(self, message_type: type, handler: Handler) -> None:
        self._handlers[message_type] = handler

    def send(self, message: Any, reply_to: Optional[Address] = None) -> None:
        self._mailbox.put((message, reply_to))

    def wait(self, count: int = 1, timeout: Optional[float] = None) -> int:
        """
        Handle up to count messages.

        Args:
            count: Maximum number of messages to handle
            timeout: Seconds to wait for each message (None = POLL_INTERVAL)

        Returns:
            Number of messages handled, which may be fewer than count if the
            mailbox stays empty for the timeout
        """
        handled = 0
        wait_time = POLL_INTERVAL if timeout is None else timeout

        while handled < count:
            try:
                message, sender = self._mailbox.get(timeout=wait_time)
            except queue.Empty:
                break

            if isinstance(message, ActorFailure):
                raise message.error

            handler = self._handlers.get(type(message))
            if handler is None:
                logger.warning(
                    f"{type(self).__name__} ignored {type(message).__name__}"
                )
            else:
                handler(message, sender)
            handled += 1

        return handled

    def discard_pending(self) -> int:
        """Drop every message waiting in the mailbox without handling it."""
        discarded = 0
        while True:
            try:
                self._mailbox.get_nowait()
            except queue.Empty:
                return discarded
            discarded += 1
