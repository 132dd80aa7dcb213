"""
Abstract base class for telemetry sources.

This module defines the TelemetrySource interface that every aircraft-state
feed must follow. The monitoring scheduler depends only on this interface,
so tests and alternative feeds can replace the OpenSky client.

Example:
    >>> class ReplaySource(TelemetrySource):
    ...     @property
    ...     def source_name(self) -> str:
    ...         return "replay"
    ...
    ...     async def fetch_snapshots(self) -> FetchResult:
    ...         return FetchResult(success=True, snapshots=self._next_batch())
"""

from abc import ABC, abstractmethod

from airwatch.models.monitoring import FetchResult


class TelemetrySource(ABC):
    """
    Abstract base class for aircraft telemetry feeds.

    The source is responsible for:
    - Querying the airspace around the monitored airport
    - Converting feed-specific records to AircraftSnapshot
    - Retrying failed requests before reporting a failure

    Attributes:
        source_name: Lowercase feed identifier used in logs and status.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """
        Return the lowercase feed identifier.

        Returns:
            str: Feed name (e.g., "opensky").
        """
        pass

    @abstractmethod
    async def fetch_snapshots(self) -> FetchResult:
        """
        Fetch the current state of every aircraft in the monitored area.

        A single call is one conceptual fetch: any network-level retries
        happen inside it, and callers must not retry it themselves.

        Returns:
            FetchResult: ``success`` with snapshots, or ``success=False`` with
                an error message. Implementations never raise for upstream
                failures.
        """
        pass

    async def close(self) -> None:
        """Release network resources. The default has nothing to release."""
        return None
