"""
Speed-limit lookup gate.

The road-metadata service is slow and rate limited, so lookups go through
``SpeedLimitMonitor``: at most one request per 5 seconds unless the vehicle
has moved far enough that the answer may have changed, and a newer request
cancels one still in flight. Failures never reach the tick loop; they degrade
to an empty result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.constants import LOOKUP_MIN_INTERVAL_MS, LOOKUP_MIN_MOVE_DEG
from core.exceptions import ExternalServiceException
from core.spatial import GeometryService

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

LOOKUP_FAILED_MESSAGE = "Could not fetch speed limit"


class SpeedLimitResult(BaseModel):
    """Result contract of the speed-limit collaborator."""

    speed_limit: float | None = Field(default=None, alias="speedLimit")
    road_name: str | None = Field(default=None, alias="roadName")
    is_school_zone: bool = Field(default=False, alias="isSchoolZone")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @field_validator("speed_limit", mode="before")
    @classmethod
    def _drop_non_positive(cls, value: Any) -> float | None:
        if value is None:
            return None
        try:
            limit = float(value)
        except (TypeError, ValueError):
            return None
        return limit if limit > 0 else None

    @field_validator("is_school_zone", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> bool:
        return bool(value)


class SpeedLimitFetcher(Protocol):
    """Interface for road-metadata lookups."""

    async def fetch(self, lat: float, lon: float) -> SpeedLimitResult:
        """Look up the posted limit at a coordinate."""
        ...


class HttpSpeedLimitFetcher:
    """Fetcher for a JSON endpoint answering ``?lat=&lon=`` queries."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def fetch(self, lat: float, lon: float) -> SpeedLimitResult:
        session = await self._get_session()
        params = {"lat": str(lat), "lon": str(lon)}
        try:
            async with session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    body = await response.text()
                    msg = f"Speed limit service error: {response.status}"
                    raise ExternalServiceException(
                        msg,
                        {"status": response.status, "body": body},
                    )
                payload = await response.json()
        except aiohttp.ClientError as e:
            msg = f"Speed limit service unreachable: {e}"
            raise ExternalServiceException(msg, {"url": self.base_url}) from e

        if not isinstance(payload, dict):
            msg = "Speed limit service returned a non-object payload"
            raise ExternalServiceException(msg, {"payload": payload})
        return SpeedLimitResult.model_validate(payload)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None


class SpeedLimitMonitor:
    """Throttled, supersedable front for a ``SpeedLimitFetcher``."""

    def __init__(
        self,
        fetcher: SpeedLimitFetcher,
        clock: Callable[[], float],
    ) -> None:
        self._fetcher = fetcher
        self._clock = clock
        self._last_fetch: tuple[float, float, float] | None = None
        self._task: asyncio.Task[SpeedLimitResult] | None = None
        self.result = SpeedLimitResult()
        self.is_loading = False
        self.error: str | None = None

    @property
    def fetcher(self) -> SpeedLimitFetcher:
        return self._fetcher

    def should_fetch(self, lat: float, lon: float) -> bool:
        if self._last_fetch is None:
            return True
        last_lat, last_lon, last_time = self._last_fetch
        if self._clock() - last_time >= LOOKUP_MIN_INTERVAL_MS:
            return True
        return GeometryService.has_moved_beyond(
            last_lat,
            last_lon,
            lat,
            lon,
            LOOKUP_MIN_MOVE_DEG,
        )

    async def refresh(self, lat: float, lon: float) -> SpeedLimitResult | None:
        """
        Look up the limit at a coordinate if the throttle allows it.

        Returns None when the call was throttled or superseded by a newer
        one; otherwise the new result (empty on failure).
        """
        if not self.should_fetch(lat, lon):
            return None

        self.cancel()
        self._last_fetch = (lat, lon, self._clock())
        self.is_loading = True

        task = asyncio.ensure_future(self._fetcher.fetch(lat, lon))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._task is not task:
                logger.debug("Speed limit lookup superseded at %.5f,%.5f", lat, lon)
                return None
            raise
        except Exception as e:
            logger.warning("Speed limit lookup failed at %.5f,%.5f: %s", lat, lon, e)
            result = SpeedLimitResult()
            self.error = LOOKUP_FAILED_MESSAGE
        else:
            self.error = None
        finally:
            if self._task is task:
                self._task = None
                self.is_loading = False

        self.result = result
        return result

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.is_loading = False

    def reset(self) -> None:
        self.cancel()
        self._last_fetch = None
        self.result = SpeedLimitResult()
        self.error = None
