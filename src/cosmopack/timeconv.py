"""
Calendar <-> ephemeris time conversion.

Trajectories are given as a calendar start (UTC date vector) plus
offsets in seconds. Kernels and all windowing work on SPICE ephemeris
time (TDB seconds past J2000), which needs the leap-second table loaded
into the kernel pool. The catalog shows times back in calendar form.
"""

import calendar
import logging
import re
from collections.abc import Sequence
from datetime import datetime, timedelta

import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .errors import TimeSystemError
from .kernel_manager import KernelManager, get_kernel_manager

logger = logging.getLogger("cosmopack")

# Catalog timestamp format: yyyy-mm-dd HH:MM:SS.sss UTC
CATALOG_TIME_SUFFIX = " UTC"
_CATALOG_RE = re.compile(
    r"^\s*(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2}):(\d{2}(?:\.\d*)?)(?:\s*UTC)?\s*$"
)


def check_calendar_fields(epoch0: Sequence[float], index: int | None = None) -> None:
    """Raise TimeSystemError if any calendar component is out of range."""
    year, month, day, hour, minute, second = (float(x) for x in epoch0)
    if not 1 <= month <= 12:
        raise TimeSystemError(f"month {month:g} out of range 1..12", index, "epoch0")
    if not 1 <= year <= 9999:
        raise TimeSystemError(f"year {year:g} out of range 1..9999", index, "epoch0")
    last_day = calendar.monthrange(int(year), int(month))[1]
    if not 1 <= day <= last_day:
        raise TimeSystemError(
            f"day {day:g} out of range 1..{last_day} for {int(year)}-{int(month):02d}",
            index, "epoch0",
        )
    if not 0 <= hour <= 23:
        raise TimeSystemError(f"hour {hour:g} out of range 0..23", index, "epoch0")
    if not 0 <= minute <= 59:
        raise TimeSystemError(f"minute {minute:g} out of range 0..59", index, "epoch0")
    # 60.x is a leap second
    if not 0 <= second < 61:
        raise TimeSystemError(f"second {second:g} out of range [0, 61)", index, "epoch0")


def epoch_to_iso(epoch0: Sequence[float]) -> str:
    """Format a date vector as an ISO string SPICE can parse."""
    year, month, day, hour, minute, second = (float(x) for x in epoch0)
    return (
        f"{int(year):04d}-{int(month):02d}-{int(day):02d}"
        f"T{int(hour):02d}:{int(minute):02d}:{second:09.6f}"
    )


def epoch_to_calendar(epoch0: Sequence[float]) -> str:
    """Format a date vector in catalog form, rounded to the millisecond.

    Seconds past 59 (leap seconds, rounding) carry into the next minute.
    """
    year, month, day, hour, minute, second = (float(x) for x in epoch0)
    millis = int(round(second * 1000.0))
    dt = datetime(int(year), int(month), int(day), int(hour), int(minute))
    dt += timedelta(milliseconds=millis)
    return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond // 1000:03d}" + CATALOG_TIME_SUFFIX


def parse_calendar(text: str) -> tuple[int, int, int, int, int, float]:
    """Parse a catalog timestamp back into a date vector.

    Accepts ``yyyy-mm-dd HH:MM:SS.sss UTC`` and the ISO ``T`` separator.

    Raises:
        ValueError: If the text is not a catalog timestamp.
    """
    m = _CATALOG_RE.match(text)
    if m is None:
        raise ValueError(f"Not a catalog timestamp: {text!r}")
    y, mo, d, h, mi = (int(g) for g in m.groups()[:5])
    return y, mo, d, h, mi, float(m.group(6))


class TimeConverter:
    """Maps calendar start times plus offsets onto ephemeris time and back.

    Args:
        kernel_manager: Manager whose lock serializes SPICE access and
            whose pool holds the leap-second table. Defaults to the
            process-wide singleton.
    """

    def __init__(self, kernel_manager: KernelManager | None = None):
        self._km = kernel_manager or get_kernel_manager()

    @property
    def kernel_manager(self) -> KernelManager:
        return self._km

    def _require_leapseconds(self, index: int | None) -> None:
        if not spice.expool("DELTET/DELTA_AT"):
            raise TimeSystemError(
                "leap-second table not loaded; load an LSK "
                "(KernelManager.ensure_leapseconds) before converting times",
                index, "epoch0",
            )

    def epoch_to_et(self, epoch0: Sequence[float], index: int | None = None) -> float:
        """Convert a UTC date vector to ephemeris time.

        Raises:
            TimeSystemError: If the calendar fields are out of range or no
                leap-second table is loaded.
        """
        check_calendar_fields(epoch0, index)
        iso = epoch_to_iso(epoch0)
        with self._km.lock:
            self._require_leapseconds(index)
            try:
                return float(spice.str2et(iso))
            except SpiceyError as e:
                raise TimeSystemError(f"cannot convert {iso}: {e}", index, "epoch0") from e

    def to_continuous_time(
        self,
        epoch0: Sequence[float],
        offsets: Sequence[float] | np.ndarray,
        index: int | None = None,
    ) -> np.ndarray:
        """Return ``et(epoch0) + offsets`` as a float array.

        The offsets are not re-sorted; ordering is the caller's concern
        (see :func:`cosmopack.trajectory.check_time_order`).
        """
        et0 = self.epoch_to_et(epoch0, index)
        return et0 + np.asarray(offsets, dtype=float)

    def et_to_calendar(self, et: float, index: int | None = None, precision: int = 3) -> str:
        """Convert ephemeris time to ``yyyy-mm-dd HH:MM:SS.sss UTC``.

        ``precision`` is the number of decimal places kept on the seconds;
        SPICE rounds to it.
        """
        with self._km.lock:
            self._require_leapseconds(index)
            try:
                iso = spice.et2utc(float(et), "ISOC", precision)
            except SpiceyError as e:
                raise TimeSystemError(f"cannot convert ET {et!r}: {e}", index) from e
        return iso.replace("T", " ") + CATALOG_TIME_SUFFIX
