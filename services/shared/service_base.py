"""
CellScan Service Base Module.
Abstract base class for service facades.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ServiceBase(ABC):
    """
    Common lifecycle and status interface for service facades.

    Services are initialized before handling calls and shut down when the
    hosting process stops. Status and statistics are exposed for health
    endpoints owned by the caller.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the service to handle calls."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Release in-memory state and report anything left unsent."""
        ...

    @abstractmethod
    async def get_status(self) -> dict[str, Any]:
        """
        Get current service status and statistics.

        Returns
        -------
        dict[str, Any]
            At minimum ``status`` ("operational" or "initializing"),
            ``initialized`` and ``statistics``.
        """
        ...

    @property
    @abstractmethod
    def stats(self) -> dict[str, int]:
        """Service-specific statistics counters."""
        ...

    @property
    def is_initialized(self) -> bool:
        """True once :meth:`initialize` completed."""
        return getattr(self, "_initialized", False)
