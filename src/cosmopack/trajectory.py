"""
Trajectory records and their validation.

A mission is built from a batch of raw satellite records (plain
mappings, e.g. parsed JSON or dicts built in a notebook). Validation is
pure: each record is checked field by field and converted into a new,
read-only :class:`TrajectorySample`. The caller's records are never
modified.
"""

import logging
import math
import numbers
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from .errors import DataOrderError, SchemaError, ShapeError

logger = logging.getLogger("cosmopack")

# Field names of a raw satellite record, in validation order.
REQUIRED_FIELDS: tuple[str, ...] = (
    "name",
    "id",
    "segment_id",
    "epoch0",
    "times",
    "positions",
    "velocities",
    "center_id",
    "ref_frame",
)

# SPICE limits segment identifiers to 40 printable characters.
MAX_SEGMENT_ID_LEN = 40

MIN_SAMPLES = 2

# NAIF IDs are passed to CSPICE as 32-bit ints.
NAIF_ID_MIN = -2**31
NAIF_ID_MAX = 2**31 - 1


@dataclass(frozen=True)
class TrajectorySample:
    """One satellite's validated trajectory.

    Attributes:
        name: Display name, unique within the mission.
        id: NAIF body ID written to the kernel (negative for spacecraft).
        segment_id: SPK segment identifier.
        epoch0: Calendar reference (year, month, day, hour, minute, second), UTC.
        times: Offsets in seconds from ``epoch0``, shape (N,).
        positions: Positions in km, shape (N, 3).
        velocities: Velocities in km/s, shape (N, 3).
        center_id: NAIF ID of the center body.
        ref_frame: Inertial reference frame name.
    """

    name: str
    id: int
    segment_id: str
    epoch0: tuple[float, ...]
    times: np.ndarray
    positions: np.ndarray
    velocities: np.ndarray
    center_id: int
    ref_frame: str

    @property
    def n_samples(self) -> int:
        return int(self.times.shape[0])

    @property
    def states(self) -> np.ndarray:
        """Stacked (N, 6) state vectors [x, y, z, vx, vy, vz]."""
        return np.hstack([self.positions, self.velocities])


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def _text(value, index: int, field: str) -> str:
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            raise SchemaError("is not ASCII text", index, field) from None
    if not isinstance(value, str):
        raise SchemaError(f"is not a string (got {type(value).__name__})", index, field)
    value = value.strip()
    if not value:
        raise SchemaError("must not be empty", index, field)
    return value


def _integral(value, index: int, field: str) -> int:
    if isinstance(value, (bool, np.bool_)):
        raise SchemaError("is not an integer (got bool)", index, field)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and math.isfinite(value) and float(value).is_integer():
        return int(value)
    raise SchemaError(f"is not an integer (got {value!r})", index, field)


def _naif_id(value, index: int, field: str) -> int:
    code = _integral(value, index, field)
    if not NAIF_ID_MIN <= code <= NAIF_ID_MAX:
        raise SchemaError(
            f"{code} is outside the 32-bit NAIF ID range", index, field
        )
    return code


def _float_array(value, index: int, field: str) -> np.ndarray:
    if isinstance(value, (str, bytes)):
        raise ShapeError("must be numeric, got text", index, field)
    try:
        arr = np.array(value, dtype=float)
    except (TypeError, ValueError):
        raise ShapeError("must be a numeric array", index, field) from None
    return arr


def _times(value, index: int) -> np.ndarray:
    arr = _float_array(value, index, "times")
    if arr.ndim == 2 and arr.shape[1] == 1:
        arr = arr[:, 0]
    if arr.ndim != 1:
        raise ShapeError(
            f"must be a one-dimensional vector, got shape {arr.shape}", index, "times"
        )
    if arr.shape[0] < MIN_SAMPLES:
        raise ShapeError(
            f"needs at least {MIN_SAMPLES} samples for interpolation, got {arr.shape[0]}",
            index, "times",
        )
    return arr


def _vectors(value, n: int, index: int, field: str) -> np.ndarray:
    arr = _float_array(value, index, field)
    if arr.ndim != 2 or arr.shape != (n, 3):
        raise ShapeError(f"must be a [{n}x3] array, got shape {arr.shape}", index, field)
    return arr


def _epoch(value, index: int) -> tuple[float, ...]:
    if isinstance(value, datetime):
        value = (value.year, value.month, value.day, value.hour, value.minute,
                 value.second + value.microsecond * 1e-6)
    if isinstance(value, (str, bytes)) or not isinstance(value, (Sequence, np.ndarray)):
        raise SchemaError(
            "must be a date vector [yyyy, mm, dd, hh, mm, ss.ss]", index, "epoch0"
        )
    arr = _float_array(value, index, "epoch0").ravel()
    if arr.shape[0] != 6:
        raise ShapeError(
            f"must have exactly 6 components [yyyy, mm, dd, hh, mm, ss.ss], got {arr.shape[0]}",
            index, "epoch0",
        )
    if not np.all(np.isfinite(arr)):
        raise ShapeError("contains non-finite values", index, "epoch0")
    for pos, label in enumerate(("year", "month", "day", "hour", "minute")):
        if not float(arr[pos]).is_integer():
            raise SchemaError(f"{label} component must be integral", index, "epoch0")
    return tuple(float(x) for x in arr)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.ascontiguousarray(arr, dtype=float).copy()
    arr.flags.writeable = False
    return arr


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_record(record: Mapping, index: int) -> TrajectorySample:
    """Validate one raw satellite record and return a new sample.

    Checks, in order: exact field set, text fields, integral fields, the
    time vector, the position/velocity arrays, the reference frame and
    the epoch vector.

    Args:
        record: Mapping with exactly the keys in :data:`REQUIRED_FIELDS`.
        index: Position of the record in the batch (for error context).

    Returns:
        A read-only :class:`TrajectorySample`.

    Raises:
        SchemaError: Missing/extra fields or wrong field types.
        ShapeError: Arrays with the wrong shape or non-finite values.
    """
    if not isinstance(record, Mapping):
        raise SchemaError(
            f"is not a valid satellite record (got {type(record).__name__})", index
        )

    keys = set(record.keys())
    expected = set(REQUIRED_FIELDS)
    missing = sorted(expected - keys)
    extra = sorted(str(k) for k in keys - expected)
    if missing or extra:
        detail = []
        if missing:
            detail.append(f"missing {missing}")
        if extra:
            detail.append(f"unexpected {extra}")
        raise SchemaError(
            "is not a valid satellite structure: " + "; ".join(detail), index
        )

    name = _text(record["name"], index, "name")
    segment_id = _text(record["segment_id"], index, "segment_id")
    if len(segment_id) > MAX_SEGMENT_ID_LEN:
        raise SchemaError(
            f"is {len(segment_id)} characters, limit is {MAX_SEGMENT_ID_LEN}",
            index, "segment_id",
        )
    if not all(32 <= ord(c) <= 126 for c in segment_id):
        raise SchemaError("must contain printable ASCII only", index, "segment_id")

    body_id = _naif_id(record["id"], index, "id")
    center_id = _naif_id(record["center_id"], index, "center_id")

    times = _times(record["times"], index)
    n = times.shape[0]
    positions = _vectors(record["positions"], n, index, "positions")
    velocities = _vectors(record["velocities"], n, index, "velocities")
    for field, arr in (("times", times), ("positions", positions), ("velocities", velocities)):
        if not np.all(np.isfinite(arr)):
            raise ShapeError("contains non-finite values", index, field)

    ref_frame = _text(record["ref_frame"], index, "ref_frame").upper()
    epoch0 = _epoch(record["epoch0"], index)

    return TrajectorySample(
        name=name,
        id=body_id,
        segment_id=segment_id,
        epoch0=epoch0,
        times=_readonly(times),
        positions=_readonly(positions),
        velocities=_readonly(velocities),
        center_id=center_id,
        ref_frame=ref_frame,
    )


def validate_batch(records: Sequence[Mapping]) -> list[TrajectorySample]:
    """Validate a whole batch of satellite records.

    Runs :func:`validate_record` on each record, then enforces the
    mission-wide rules: names, IDs and segment IDs are unique, and all
    satellites share one center body and one reference frame.

    Raises:
        SchemaError: On the first record or batch rule that fails.
        ShapeError: On the first array with the wrong shape.
    """
    if isinstance(records, Mapping) or isinstance(records, (str, bytes)):
        raise SchemaError("expected a sequence of satellite records")
    records = list(records)
    if not records:
        raise SchemaError("at least one satellite record is required")

    samples = [validate_record(rec, i) for i, rec in enumerate(records)]

    for field in ("name", "id", "segment_id"):
        seen: dict = {}
        for i, sample in enumerate(samples):
            value = getattr(sample, field)
            if value in seen:
                raise SchemaError(
                    f"value {value!r} already used by sat #{seen[value] + 1}", i, field
                )
            seen[value] = i

    first = samples[0]
    for i, sample in enumerate(samples[1:], start=1):
        if sample.center_id != first.center_id:
            raise SchemaError(
                f"all satellites must share the same center "
                f"({sample.center_id} != {first.center_id})", i, "center_id",
            )
        if sample.ref_frame != first.ref_frame:
            raise SchemaError(
                f"all satellites must share the same reference frame "
                f"({sample.ref_frame} != {first.ref_frame})", i, "ref_frame",
            )

    logger.debug("Validated %d satellite records", len(samples))
    return samples


def check_time_order(sample: TrajectorySample, index: int) -> None:
    """Raise DataOrderError unless ``sample.times`` is strictly increasing."""
    steps = np.diff(sample.times)
    bad = np.flatnonzero(steps <= 0)
    if bad.size:
        k = int(bad[0]) + 1
        raise DataOrderError(
            f"times must be strictly increasing: t[{k}]={sample.times[k]!r} "
            f"<= t[{k - 1}]={sample.times[k - 1]!r}",
            index, "times",
        )
