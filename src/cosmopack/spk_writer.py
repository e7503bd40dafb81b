"""
SPK kernel writing and read-back verification.

Each satellite gets its own SPK file holding one type 9 segment
(Lagrange interpolation over unequally spaced states). The default
degree is 1: piecewise-linear interpolation between the given epochs,
which keeps files small and never overshoots between samples.

A kernel goes through these states::

    EMPTY -> OPENED -> WRITTEN -> VERIFIED -> CLOSED
              |          |           |
              +----------+-----------+--> FAILED

Data is written to ``<name>.part`` and only renamed to its final name
once the read-back agrees with the input, so a failed write never leaves
a file the catalog could reference.
"""

import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .errors import DataOrderError, KernelIOError, VerificationError
from .frames import frame_code, resolve_frame
from .kernel_manager import KernelManager, get_kernel_manager
from .trajectory import TrajectorySample

logger = logging.getLogger("cosmopack")

SPK_EXTENSION = ".bsp"
PARTIAL_SUFFIX = ".part"

# SPK type written by this module
SPK_TYPE_LAGRANGE = 9
DEFAULT_DEGREE = 1
MAX_DEGREE = 15

# DAF summary layout for SPK files
_SPK_ND = 2
_SPK_NI = 6

# Characters reserved for comments in new files
_COMMENT_CHARS = 1000

# Allowed mismatch between requested and read-back coverage, seconds
TIME_TOLERANCE = 1e-6
STATE_RTOL = 1e-9


class KernelState(enum.Enum):
    EMPTY = "empty"
    OPENED = "opened"
    WRITTEN = "written"
    VERIFIED = "verified"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class SegmentSummary:
    """Descriptor of one SPK segment as stored in the file."""

    body: int
    center: int
    frame: str
    data_type: int
    start_et: float
    stop_et: float
    segment_id: str


@dataclass
class KernelHandle:
    """Result of writing one satellite's kernel."""

    path: Path
    body: int
    center: int
    frame: str
    start_et: float
    stop_et: float
    segment_id: str
    state: KernelState = KernelState.EMPTY

    @property
    def filename(self) -> str:
        return self.path.name


def kernel_filename(index: int) -> str:
    """Kernel file name for the satellite at 0-based ``index``."""
    return f"sat{index + 1}_traj{SPK_EXTENSION}"


# ---------------------------------------------------------------------------
# Read-back
# ---------------------------------------------------------------------------

def read_segment_summaries(
    path: Path | str, kernel_manager: KernelManager | None = None
) -> list[SegmentSummary]:
    """Read the descriptors of every segment in an SPK file.

    Uses the DAF reader directly, so the file is not loaded into the
    kernel pool.

    Raises:
        KernelIOError: If the file cannot be opened as a DAF.
    """
    path = Path(path)
    km = kernel_manager or get_kernel_manager()
    summaries = []
    with km.lock:
        try:
            handle = spice.dafopr(str(path))
        except SpiceyError as e:
            raise KernelIOError(f"cannot open {path.name} for reading: {e}") from e
        try:
            spice.dafbfs(handle)
            while spice.daffna():
                dc, ic = spice.dafus(spice.dafgs(), _SPK_ND, _SPK_NI)
                summaries.append(SegmentSummary(
                    body=int(ic[0]),
                    center=int(ic[1]),
                    frame=spice.frmnam(int(ic[2])),
                    data_type=int(ic[3]),
                    start_et=float(dc[0]),
                    stop_et=float(dc[1]),
                    segment_id=spice.dafgn().strip(),
                ))
        finally:
            spice.dafcls(handle)
    return summaries


def read_segment_summary(
    path: Path | str, kernel_manager: KernelManager | None = None, index: int | None = None
) -> SegmentSummary:
    """Read the single segment of a one-segment SPK file.

    Raises:
        VerificationError: If the file does not hold exactly one segment.
    """
    summaries = read_segment_summaries(path, kernel_manager)
    if len(summaries) != 1:
        raise VerificationError(
            f"{Path(path).name} holds {len(summaries)} segments, expected 1", index
        )
    return summaries[0]


def kernel_coverage(
    path: Path | str, body: int, kernel_manager: KernelManager | None = None
) -> list[tuple[float, float]]:
    """Return the ET coverage intervals of ``body`` in an SPK file."""
    km = kernel_manager or get_kernel_manager()
    with km.lock:
        cover = spice.spkcov(str(path), int(body))
        return [tuple(float(x) for x in spice.wnfetd(cover, i))
                for i in range(spice.wncard(cover))]


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

class KernelWriter:
    """Writes and verifies one-segment SPK type 9 kernels.

    Args:
        kernel_manager: Provides the SPICE lock. Defaults to the singleton.
        degree: Lagrange interpolation degree (1 = piecewise linear).
        verify_states: Also sample the written kernel at every input epoch
            and compare against the input states.
    """

    def __init__(
        self,
        kernel_manager: KernelManager | None = None,
        degree: int = DEFAULT_DEGREE,
        verify_states: bool = False,
    ):
        if not 1 <= degree <= MAX_DEGREE:
            raise ValueError(f"degree must be in 1..{MAX_DEGREE}, got {degree}")
        self._km = kernel_manager or get_kernel_manager()
        self.degree = degree
        self.verify_states = verify_states

    def write_kernel(
        self,
        sample: TrajectorySample,
        ets: np.ndarray,
        output_path: Path | str,
        index: int | None = None,
    ) -> KernelHandle:
        """Write ``sample`` as an SPK file and verify it.

        Args:
            sample: Validated trajectory.
            ets: Ephemeris times of every sample, strictly increasing.
            output_path: Final kernel path; must not exist yet.
            index: Satellite index for error context.

        Returns:
            A handle in state ``CLOSED`` (written and verified).

        Raises:
            DataOrderError: If ``ets`` is not strictly increasing.
            KernelIOError: If the file cannot be created or renamed.
            VerificationError: If the read-back does not match the input.
        """
        output_path = Path(output_path)
        ets = np.asarray(ets, dtype=float)
        if ets.shape != (sample.n_samples,):
            raise DataOrderError(
                f"expected {sample.n_samples} epochs, got shape {ets.shape}", index, "times"
            )
        if np.any(np.diff(ets) <= 0):
            raise DataOrderError(
                "epochs must be strictly increasing before writing a kernel", index, "times"
            )
        if sample.n_samples < self.degree + 1:
            raise DataOrderError(
                f"degree {self.degree} interpolation needs {self.degree + 1} samples",
                index, "times",
            )

        frame = resolve_frame(sample.ref_frame)
        frame_code(frame, index, kernel_manager=self._km)

        if output_path.exists():
            raise KernelIOError(f"refusing to overwrite {output_path}", index)

        handle = KernelHandle(
            path=output_path,
            body=sample.id,
            center=sample.center_id,
            frame=frame,
            start_et=float(ets[0]),
            stop_et=float(ets[-1]),
            segment_id=sample.segment_id,
        )
        partial = output_path.with_name(output_path.name + PARTIAL_SUFFIX)

        with self._km.lock:
            try:
                self._write(handle, sample, ets, partial, index)
                self._verify(handle, partial, index)
                if self.verify_states:
                    self._verify_states(handle, sample, ets, partial, index)
                try:
                    os.replace(partial, output_path)
                except OSError as e:
                    raise KernelIOError(
                        f"cannot move {partial.name} to {output_path.name}: {e}", index
                    ) from e
            except Exception:
                handle.state = KernelState.FAILED
                partial.unlink(missing_ok=True)
                raise

        handle.state = KernelState.CLOSED
        logger.info(
            "Wrote %s: body %d rel. %d (%s), %d states, ET %.3f to %.3f",
            output_path.name, handle.body, handle.center, frame,
            sample.n_samples, handle.start_et, handle.stop_et,
        )
        return handle

    def _write(self, handle: KernelHandle, sample: TrajectorySample,
               ets: np.ndarray, partial: Path, index: int | None) -> None:
        partial.unlink(missing_ok=True)
        try:
            spk = spice.spkopn(str(partial), sample.segment_id[:60], _COMMENT_CHARS)
        except SpiceyError as e:
            raise KernelIOError(f"cannot create {partial.name}: {e}", index) from e
        handle.state = KernelState.OPENED
        logger.debug("Opened %s", partial.name)

        try:
            spice.spkw09(
                spk,
                handle.body,
                handle.center,
                handle.frame,
                handle.start_et,
                handle.stop_et,
                handle.segment_id,
                self.degree,
                sample.n_samples,
                sample.states.tolist(),
                ets.tolist(),
            )
        except SpiceyError as e:
            try:
                spice.dafcls(spk)
            except SpiceyError:
                logger.debug("dafcls failed while cleaning up %s", partial.name)
            raise KernelIOError(f"cannot write segment to {partial.name}: {e}", index) from e

        try:
            spice.spkcls(spk)
        except SpiceyError as e:
            raise KernelIOError(f"cannot close {partial.name}: {e}", index) from e
        handle.state = KernelState.WRITTEN

    def _verify(self, handle: KernelHandle, partial: Path, index: int | None) -> None:
        try:
            summary = read_segment_summary(partial, self._km, index)
            coverage = kernel_coverage(partial, handle.body, self._km)
        except (SpiceyError, KernelIOError) as e:
            raise VerificationError(f"cannot read back {partial.name}: {e}", index) from e

        expected = {
            "body": handle.body,
            "center": handle.center,
            "frame": handle.frame,
            "data_type": SPK_TYPE_LAGRANGE,
            "segment_id": handle.segment_id,
        }
        for attr, want in expected.items():
            got = getattr(summary, attr)
            if got != want:
                raise VerificationError(
                    f"{partial.name}: segment {attr} is {got!r}, wrote {want!r}", index
                )

        if len(coverage) != 1:
            raise VerificationError(
                f"{partial.name}: expected one coverage interval for body "
                f"{handle.body}, found {len(coverage)}", index,
            )
        start, stop = coverage[0]
        for label, got, want in (("start", start, handle.start_et),
                                 ("stop", stop, handle.stop_et),
                                 ("descriptor start", summary.start_et, handle.start_et),
                                 ("descriptor stop", summary.stop_et, handle.stop_et)):
            if abs(got - want) > TIME_TOLERANCE:
                raise VerificationError(
                    f"{partial.name}: coverage {label} ET {got!r} != {want!r}", index
                )

        handle.state = KernelState.VERIFIED
        logger.debug("Verified %s: %s", partial.name, summary)

    def _verify_states(self, handle: KernelHandle, sample: TrajectorySample,
                       ets: np.ndarray, partial: Path, index: int | None) -> None:
        from .ephemeris import STATE_COLUMNS, sample_kernel

        try:
            df = sample_kernel(partial, handle.body, handle.center, handle.frame, ets,
                               kernel_manager=self._km)
        except SpiceyError as e:
            raise VerificationError(f"cannot sample {partial.name}: {e}", index) from e
        got = df[STATE_COLUMNS].to_numpy()
        want = sample.states
        scale = np.maximum(np.abs(want), 1.0)
        worst = float(np.max(np.abs(got - want) / scale))
        if worst > STATE_RTOL:
            raise VerificationError(
                f"{partial.name}: interpolated states differ from input "
                f"(max relative error {worst:.3e})", index,
            )
