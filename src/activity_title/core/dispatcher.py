"""
Hand-off of commands onto the host's designated thread.

The host application only accepts certain calls (such as changing the
displayed title) from its own frame/update thread. The dispatcher runs
commands inline when already on that thread, and otherwise parks them in a
single slot that the host drains from its frame loop via ``pump()``.

Only the latest command matters: a newer command replaces one that has not
been delivered yet.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Command = Callable[[], None]


class FrameworkDispatcher:
    """
    Single-consumer command channel bound to one thread.

    Posting never blocks the caller. Delivery happens either inline (caller
    is the designated thread) or on the next ``pump()``.
    """

    def __init__(self, thread_id: Optional[int] = None) -> None:
        """
        Initialize the dispatcher.

        Args:
            thread_id: Ident of the designated thread (default: current thread)
        """
        self._thread_id = thread_id if thread_id is not None else threading.get_ident()
        self._lock = threading.Lock()
        self._pending: Optional[tuple[str, Command]] = None

    @property
    def thread_id(self) -> int:
        return self._thread_id

    def bind_current_thread(self) -> None:
        """Make the calling thread the designated thread."""
        self._thread_id = threading.get_ident()

    def is_designated_thread(self) -> bool:
        return threading.get_ident() == self._thread_id

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def post(self, command: Command, description: str = "command") -> None:
        """
        Deliver a command on the designated thread.

        Args:
            command: Zero-argument callable to run
            description: Label used in logs
        """
        if self.is_designated_thread():
            with self._lock:
                superseded = self._pending
                self._pending = None
            if superseded is not None:
                logger.debug(f"Dropped pending {superseded[0]}, superseded by {description}")
            self._run(description, command)
            return

        with self._lock:
            if self._pending is not None:
                logger.debug(f"Pending {self._pending[0]} superseded by {description}")
            self._pending = (description, command)

    def pump(self) -> bool:
        """
        Deliver the pending command, if any.

        Must be called from the designated thread.

        Returns:
            True if a command was delivered
        """
        if not self.is_designated_thread():
            logger.warning("FrameworkDispatcher.pump() called off the designated thread")
            return False

        with self._lock:
            pending = self._pending
            self._pending = None

        if pending is None:
            return False

        description, command = pending
        self._run(description, command)
        return True

    def _run(self, description: str, command: Command) -> None:
        try:
            command()
        except Exception as e:
            logger.error(f"Error running {description}: {e}", exc_info=True)
