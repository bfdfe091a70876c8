from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

BytesAvailable = Callable[[], None]


class ITransport(ABC):
    """Duplex byte channel to the radio module."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def write(self, data: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def read_all(self) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def set_bytes_available(self, callback: BytesAvailable | None) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    def start(self) -> None:
        """Begin delivering bytes-available notifications; no-op for push transports."""
        return None

    def stop(self) -> None:
        """Stop delivering notifications and drop unread bytes; the transport stays open."""
        return None
