# backend/dm_core/intake/gps.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from dm_core.intake.constants import GPS_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

CAPTURE_GPS = "GPS"
CAPTURE_MANUAL = "MANUAL"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float
    timestamp: datetime
    capture_method: str = CAPTURE_GPS
    accuracy: Optional[float] = None

    def as_payload(self) -> dict[str, Any]:
        """Shape expected by the `coordinates` field of a create request."""
        body = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp.isoformat(),
            "captureMethod": self.capture_method,
        }
        if self.accuracy is not None:
            body["accuracy"] = self.accuracy
        return body


def manual_coordinates(latitude: float = 0.0, longitude: float = 0.0, *, now: datetime | None = None) -> Coordinates:
    return Coordinates(
        latitude=latitude,
        longitude=longitude,
        timestamp=now or datetime.now(timezone.utc),
        capture_method=CAPTURE_MANUAL,
    )


def _from_fix(fix: Mapping[str, Any]) -> Coordinates:
    return Coordinates(
        latitude=float(fix["latitude"]),
        longitude=float(fix["longitude"]),
        accuracy=float(fix["accuracy"]) if fix.get("accuracy") is not None else None,
        timestamp=fix.get("timestamp") or datetime.now(timezone.utc),
        capture_method=CAPTURE_GPS,
    )


def capture_location(
    provider: Callable[[], Mapping[str, Any]],
    *,
    timeout: float = GPS_TIMEOUT_SECONDS,
    fallback: Coordinates | None = None,
) -> Coordinates:
    """
    Ask the device for a fix without blocking the form for more than `timeout`.

    `provider` returns {"latitude", "longitude", "accuracy"?}. A slow or failing
    provider yields a MANUAL coordinate (the fallback, e.g. the entity's
    location, or 0,0) so the assessor can carry on and correct it by hand.
    """
    manual = fallback if fallback is not None else manual_coordinates()
    if manual.capture_method != CAPTURE_MANUAL:
        manual = manual_coordinates(manual.latitude, manual.longitude)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gps")
    try:
        future = executor.submit(provider)
        return _from_fix(future.result(timeout=timeout))
    except FuturesTimeoutError:
        logger.warning("GPS capture timed out after %ss; using manual location", timeout)
        return manual
    except (KeyError, TypeError, ValueError, OSError, RuntimeError) as exc:
        logger.warning("GPS capture failed (%s); using manual location", exc)
        return manual
    finally:
        # a hung provider keeps its thread; the form does not wait for it
        executor.shutdown(wait=False)
