"""
OpenSky Network REST client.

Fetches the state vectors of every aircraft inside a bounding box around the
monitored airport and converts them to AircraftSnapshot.

Endpoints:
    States: https://opensky-network.org/api/states/all?lamin=&lomin=&lamax=&lomax=
    Token: https://auth.opensky-network.org/.../openid-connect/token

Authentication:
    Anonymous by default. With a client id and secret, an OAuth2
    client-credentials token is requested and cached until 60 seconds before
    it expires. A failed token request falls back to anonymous access.

Response Format:
    {
        "time": 1700000000,
        "states": [
            ["4x1234", "ELY001  ", "Israel", 1700000000, 1700000000,
             34.88, 32.01, 1200.0, false, 80.5, 270.0, -3.2,
             null, 1250.0, "7500", false, 0],
            ...
        ]
    }
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog
from pydantic import ValidationError

from airwatch.clock import now_ms
from airwatch.config.models import AirportConfig, OpenSkyConfig
from airwatch.interfaces.telemetry_source import TelemetrySource
from airwatch.models.aircraft import AircraftSnapshot, AircraftStatus, Movement, Position
from airwatch.models.monitoring import FetchResult

logger = structlog.get_logger(__name__)

METERS_TO_FEET = 3.28084
MPS_TO_KNOTS = 1.94384
MPS_TO_FPM = 196.85

# Seconds before token expiry at which a new token is requested
TOKEN_EXPIRY_MARGIN = 60

USER_AGENT = "airwatch-alert-monitor/1.0"


class TelemetryFetchError(Exception):
    """Raised inside the client when a states request fails."""

    pass


def _parse_squawk(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def convert_state(state: Sequence[Any], timestamp: int) -> Optional[AircraftSnapshot]:
    """
    Convert one OpenSky state vector to an AircraftSnapshot.

    Args:
        state: Positional state vector as returned by ``/states/all``.
        timestamp: Capture time in epoch ms (the response ``time``).

    Returns:
        Optional[AircraftSnapshot]: The snapshot, or None when the vector has
            no identifier or no position.
    """
    if len(state) < 15:
        return None

    icao24 = (state[0] or "").strip().lower()
    longitude, latitude = state[5], state[6]
    if not icao24 or latitude is None or longitude is None:
        return None

    baro_altitude = state[7]
    velocity = state[9]
    vertical_rate = state[11]

    try:
        return AircraftSnapshot(
            icao24=icao24,
            callsign=(state[1] or "").strip() or None,
            origin_country=state[2] or None,
            timestamp=timestamp,
            position=Position(
                latitude=latitude,
                longitude=longitude,
                altitude_feet=(
                    round(baro_altitude * METERS_TO_FEET) if baro_altitude is not None else None
                ),
            ),
            movement=Movement(
                ground_speed_knots=round(velocity * MPS_TO_KNOTS) if velocity else 0,
                heading_degrees=state[10],
                vertical_rate_fpm=round(vertical_rate * MPS_TO_FPM) if vertical_rate else 0,
            ),
            status=AircraftStatus(
                on_ground=state[8] is True,
                squawk_code=_parse_squawk(state[14]),
            ),
        )
    except ValidationError as e:
        logger.debug("state_vector_rejected", icao24=icao24, error=str(e))
        return None


def convert_states(states: Optional[List[Sequence[Any]]], timestamp: int) -> List[AircraftSnapshot]:
    """Convert a ``states`` array, dropping unusable vectors."""
    if not states:
        return []
    snapshots = []
    for state in states:
        snapshot = convert_state(state, timestamp)
        if snapshot is not None:
            snapshots.append(snapshot)
    return snapshots


class OpenSkyClient(TelemetrySource):
    """
    Async OpenSky client for one monitored airport.

    Attributes:
        config: Endpoint, timeout, retry and credential settings.
        airport: Airport whose surroundings are queried.

    Example:
        >>> client = OpenSkyClient(config.opensky, config.airport)
        >>> result = await client.fetch_snapshots()
        >>> print(f"{result.count} aircraft")
        >>> await client.close()
    """

    def __init__(self, config: OpenSkyConfig, airport: AirportConfig) -> None:
        self.config = config
        self.airport = airport

        self._session: Optional[aiohttp.ClientSession] = None
        self._token: Optional[str] = None
        self._token_expiry: float = 0.0

        logger.info(
            "opensky_client_initialized",
            base_url=config.base_url,
            auth_enabled=config.auth_enabled,
            airport=airport.icao,
        )

    @property
    def source_name(self) -> str:
        return "opensky"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("opensky_session_closed")

    def build_params(self) -> Dict[str, str]:
        """Bounding-box query parameters for the monitored area."""
        bounds = self.airport.get_bounds()
        return {
            "lamin": f"{bounds['south']:.6f}",
            "lomin": f"{bounds['west']:.6f}",
            "lamax": f"{bounds['north']:.6f}",
            "lomax": f"{bounds['east']:.6f}",
        }

    async def _get_token(self) -> Optional[str]:
        """
        Return a cached or fresh OAuth token, None for anonymous access.

        Token failures are logged and never raised.
        """
        if not self.config.auth_enabled:
            return None
        if self._token and time.monotonic() < self._token_expiry:
            return self._token

        session = await self._ensure_session()
        form = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id or "",
            "client_secret": self.config.client_secret or "",
        }
        try:
            async with session.post(self.config.auth_url, data=form) as response:
                if response.status >= 400:
                    raise TelemetryFetchError(f"OAuth error: {response.status} {response.reason}")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, TelemetryFetchError) as e:
            logger.warning("opensky_token_failed", error=str(e))
            self._token = None
            return None

        self._token = data.get("access_token")
        expires_in = float(data.get("expires_in", 0))
        self._token_expiry = time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN
        logger.debug("opensky_token_refreshed", expires_in=expires_in)
        return self._token

    async def _request_states(self, headers: Dict[str, str]) -> Dict[str, Any]:
        session = await self._ensure_session()
        try:
            async with session.get(
                self.config.base_url, params=self.build_params(), headers=headers
            ) as response:
                if response.status >= 400:
                    raise TelemetryFetchError(
                        f"OpenSky API error: {response.status} {response.reason}"
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise TelemetryFetchError(f"OpenSky request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TelemetryFetchError(
                f"OpenSky request timeout after {self.config.timeout_seconds}s"
            ) from e
        except ValueError as e:
            raise TelemetryFetchError(f"OpenSky returned invalid JSON: {e}") from e

    async def _fetch_with_retry(self, headers: Dict[str, str]) -> Dict[str, Any]:
        attempts = self.config.max_retries
        for attempt in range(1, attempts + 1):
            try:
                return await self._request_states(headers)
            except TelemetryFetchError as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    "opensky_request_retry",
                    attempt=attempt,
                    max_retries=attempts,
                    error=str(e),
                )
                await asyncio.sleep(self.config.retry_delay_seconds)
        raise TelemetryFetchError("OpenSky request not attempted")

    async def fetch_snapshots(self) -> FetchResult:
        """
        Fetch and convert the aircraft around the airport.

        Returns:
            FetchResult: Snapshots with fetch metadata, or a failure with
                the error message after all retries.
        """
        started = now_ms()
        headers: Dict[str, str] = {}
        token = await self._get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            data = await self._fetch_with_retry(headers)
            if not isinstance(data, dict):
                raise TelemetryFetchError(
                    f"OpenSky returned unexpected body: {type(data).__name__}"
                )
        except TelemetryFetchError as e:
            logger.error("opensky_fetch_failed", error=str(e))
            return FetchResult(success=False, error=str(e))

        api_time = data.get("time")
        if isinstance(api_time, (int, float)) and api_time:
            timestamp = int(api_time) * 1000
        else:
            timestamp = now_ms()
        snapshots = convert_states(data.get("states"), timestamp)

        return FetchResult(
            success=True,
            snapshots=snapshots,
            metadata={
                "fetchDurationMs": now_ms() - started,
                "apiTimestamp": api_time,
                "bounds": self.airport.get_bounds(),
                "authenticated": token is not None,
            },
        )
