"""
Title sink adapter interface.

The adapter sits between the title engine and the host application that
actually paints the title. The integration layer provides a concrete
implementation.

Design Principle:
    Every method is side-effect-only and idempotent. The engine guarantees
    calls arrive on the host's designated thread (see
    ``activity_title.core.dispatcher``), so implementations need no locking
    of their own.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TitleSinkAdapter(ABC):
    """
    Abstract interface for the title sink.

    This interface is intentionally minimal:
    - set_title: Show a title (serialized TitleData JSON)
    - clear_title: Remove any title
    - show_warning: Surface a message to the user
    """

    @abstractmethod
    def set_title(self, payload: str) -> None:
        """
        Show a title.

        Args:
            payload: Canonical JSON produced by ``TitleData.serialize()``
        """
        pass

    @abstractmethod
    def clear_title(self) -> None:
        """Remove the currently displayed title, if any."""
        pass

    def show_warning(self, message: str) -> None:
        """
        Surface a warning to the user (e.g., in the host's chat log).

        Default implementation only logs.
        """
        logger.warning(message)


class MockTitleSinkAdapter(TitleSinkAdapter):
    """
    Mock adapter for testing.

    Records every call in order.
    """

    def __init__(self) -> None:
        self._calls: List[tuple[str, Optional[str]]] = []
        self._warnings: List[str] = []
        self._current: Optional[str] = None

    def get_calls(self) -> List[tuple[str, Optional[str]]]:
        """Get recorded (method, payload) calls."""
        return self._calls.copy()

    def get_set_calls(self) -> List[str]:
        """Get payloads of recorded set_title calls."""
        return [payload for method, payload in self._calls if method == "set_title"]

    def clear_count(self) -> int:
        """Number of recorded clear_title calls."""
        return sum(1 for method, _ in self._calls if method == "clear_title")

    def get_warnings(self) -> List[str]:
        return self._warnings.copy()

    def current_title(self) -> Optional[Dict[str, Any]]:
        """Decoded payload currently displayed, or None."""
        return json.loads(self._current) if self._current else None

    def reset_calls(self) -> None:
        self._calls.clear()
        self._warnings.clear()

    # TitleSinkAdapter implementation

    def set_title(self, payload: str) -> None:
        self._calls.append(("set_title", payload))
        self._current = payload

    def clear_title(self) -> None:
        self._calls.append(("clear_title", None))
        self._current = None

    def show_warning(self, message: str) -> None:
        self._warnings.append(message)
