"""Time-ordered business IDs for loads and offers.

IDs look like ``load_1a2b3c4d5e6f7`` / ``offer_1a2b3c4d5e6f8``: a kind
prefix plus a lowercase hex snowflake (ms since epoch | node | sequence).
Hex keeps them short, and ordering within one kind follows creation time,
which the offer listings rely on as a tie-break.
"""

import threading
import time

from config.settings import settings

LOAD_PREFIX = "load"
OFFER_PREFIX = "offer"


class SnowflakeIdGenerator:
    """41 bits ms timestamp | 10 bits node id | 12 bits per-ms sequence."""

    _EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
    _NODE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, node_id: int = 0) -> None:
        if not 0 <= node_id < (1 << self._NODE_BITS):
            raise ValueError(f"node_id must be 0-{(1 << self._NODE_BITS) - 1}, got {node_id}")
        self._node_id = node_id
        self._sequence = 0
        self._last_ms = -1
        # The sweeper and request handlers share one generator
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now_ms = time.time_ns() // 1_000_000
            if now_ms < self._last_ms:
                # Clock stepped back: keep issuing from the last timestamp
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = time.time_ns() // 1_000_000
            else:
                self._sequence = 0
            self._last_ms = now_ms
            return (
                (now_ms - self._EPOCH_MS) << (self._NODE_BITS + self._SEQUENCE_BITS)
                | self._node_id << self._SEQUENCE_BITS
                | self._sequence
            )

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{self.next_int():x}"


_default_generator = SnowflakeIdGenerator(settings.ID_NODE_ID)


def generate_id(prefix: str) -> str:
    return _default_generator.next_id(prefix)


def new_load_id() -> str:
    return generate_id(LOAD_PREFIX)


def new_offer_id() -> str:
    return generate_id(OFFER_PREFIX)
