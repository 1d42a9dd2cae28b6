"""Request ID sequencing for the _reqid query parameter."""

import random
import threading

from . import constants


class RequestIDSequencer:
    """Generates sequential request IDs.

    IDs start at a random 4-digit base and advance by a large stride, so two
    clients running side by side are unlikely to collide while each client's
    IDs keep increasing.
    """

    def __init__(self, base: int | None = None):
        if base is None:
            base = random.randint(constants.REQID_BASE_MIN, constants.REQID_BASE_MAX)
        self._base = base
        self._sequence = 0
        self._lock = threading.Lock()

    @property
    def base(self) -> int:
        return self._base

    def next(self) -> str:
        """Return the next request ID in sequence."""
        with self._lock:
            reqid = self._base + self._sequence * constants.REQID_STRIDE
            self._sequence += 1
        return str(reqid)

    def reset(self) -> None:
        """Reset the sequence counter but keep the same base."""
        with self._lock:
            self._sequence = 0
