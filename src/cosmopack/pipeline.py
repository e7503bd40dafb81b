"""
Staged mission build: records in, kernels and catalog documents out.

Stages run in order, each one finishing for every satellite before the
next starts::

    validate -> time conversion -> kernel writing -> catalog -> documents

Validation and time conversion touch no files, so bad input never leaves
anything on disk. Kernel writing runs per satellite on a thread pool and
stops at the first failure. The catalog is only composed once every
kernel has been written and verified, so a failed run never produces
documents that reference a missing kernel.
"""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from functools import partial
from pathlib import Path

import numpy as np
from spiceypy.utils.exceptions import SpiceyError

from .bodies import resolve_body_name
from .catalog import (
    CatalogStyle,
    MissionCatalog,
    SatelliteWindow,
    compose_catalog,
    satellite_window,
    write_catalog,
)
from .errors import TimeSystemError, VerificationError
from .kernel_manager import KernelManager, get_kernel_manager
from .mission_dir import prepare_mission_dir
from .spk_writer import KernelHandle, KernelState, KernelWriter, kernel_filename
from .timeconv import TimeConverter
from .trajectory import TrajectorySample, check_time_order, validate_batch

logger = logging.getLogger("cosmopack")


@dataclass
class MissionResult:
    """Everything a successful build produced."""

    mission_dir: Path
    samples: list[TrajectorySample]
    windows: list[SatelliteWindow]
    kernels: list[KernelHandle]
    catalog: MissionCatalog
    documents: list[Path]

    @property
    def kernel_paths(self) -> list[Path]:
        return [k.path for k in self.kernels]


def _load_time_system(km: KernelManager, allow_download: bool) -> TimeConverter:
    try:
        path = km.ensure_leapseconds(allow_download=allow_download)
    except (OSError, RuntimeError, SpiceyError) as e:
        raise TimeSystemError(f"leap-second kernel unavailable: {e}", stage="time") from e
    logger.debug("Using leap-second kernel %s", path)
    return TimeConverter(km)


def _convert_times(
    samples: Sequence[TrajectorySample],
    converter: TimeConverter,
    max_workers: int | None,
) -> tuple[list[np.ndarray], list[SatelliteWindow]]:
    def convert(index: int) -> tuple[np.ndarray, SatelliteWindow]:
        sample = samples[index]
        check_time_order(sample, index)
        ets = converter.to_continuous_time(sample.epoch0, sample.times, index)
        return ets, satellite_window(sample, ets, converter, index)

    # map() re-raises the first failure in batch order
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(convert, range(len(samples))))
    return [r[0] for r in results], [r[1] for r in results]


def _write_kernels(
    samples: Sequence[TrajectorySample],
    ets: Sequence[np.ndarray],
    mission_dir: Path,
    writer: KernelWriter,
    max_workers: int | None,
) -> list[KernelHandle]:
    handles: list[KernelHandle | None] = [None] * len(samples)
    pool = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {
            pool.submit(writer.write_kernel, sample, ets[i], mission_dir / kernel_filename(i), i): i
            for i, sample in enumerate(samples)
        }
        for future in as_completed(futures):
            handles[futures[future]] = future.result()
    except BaseException:
        pool.shutdown(wait=True, cancel_futures=True)
        raise
    pool.shutdown()

    for i, handle in enumerate(handles):
        if handle is None or handle.state is not KernelState.CLOSED:
            raise VerificationError("kernel did not reach the verified state", i)
    return handles


def build_mission(
    records: Sequence[Mapping],
    mission_dir: Path | str,
    mission_name: str | None = None,
    on_conflict: str | None = None,
    kernel_manager: KernelManager | None = None,
    converter: TimeConverter | None = None,
    style: CatalogStyle | None = None,
    max_workers: int | None = None,
    verify_states: bool = False,
    allow_download: bool = True,
) -> MissionResult:
    """Build a complete Cosmographia mission from raw satellite records.

    Args:
        records: Raw satellite records (see :data:`cosmopack.trajectory.REQUIRED_FIELDS`).
        mission_dir: Directory that receives the kernels and documents.
            Created after the input has been validated.
        mission_name: Name shown in the catalog; defaults to the final
            directory name.
        on_conflict: If given, ``mission_dir`` is created through
            :func:`cosmopack.mission_dir.prepare_mission_dir` with this
            policy ("overwrite", "suffix" or "error"). Otherwise an
            existing directory is reused as is.
        kernel_manager: SPICE lock and support kernels. Defaults to the
            singleton.
        converter: Time converter. When omitted, one is created and the
            leap-second kernel is loaded through ``kernel_manager``.
        style: Catalog styling.
        max_workers: Thread pool size for the per-satellite stages.
        verify_states: Also compare interpolated states against the input
            after writing each kernel.
        allow_download: Allow fetching the leap-second kernel from NAIF.

    Returns:
        A :class:`MissionResult`.

    Raises:
        SchemaError, ShapeError: Malformed input (nothing is written).
        TimeSystemError, DataOrderError: Bad epochs, sample order, or no
            usable leap-second kernel (nothing is written).
        KernelIOError, VerificationError: A kernel could not be written
            or did not read back correctly. No catalog is written.
        UnknownBodyError: The center body has no name. Kernels stay on
            disk, no catalog is written.
    """
    km = kernel_manager or get_kernel_manager()
    mission_dir = Path(mission_dir)

    samples = validate_batch(records)
    logger.info("Validated %d satellite record(s)", len(samples))

    if converter is None:
        converter = _load_time_system(km, allow_download)
    ets, windows = _convert_times(samples, converter, max_workers)
    logger.info("Converted sample times for %d satellite(s)", len(samples))

    if on_conflict is not None:
        mission_dir = prepare_mission_dir(mission_dir.parent, mission_dir.name, on_conflict)
    else:
        mission_dir.mkdir(parents=True, exist_ok=True)
    mission_name = mission_name or mission_dir.name

    writer = KernelWriter(km, verify_states=verify_states)
    kernels = _write_kernels(samples, ets, mission_dir, writer, max_workers)
    logger.info("Wrote and verified %d kernel(s) in %s", len(kernels), mission_dir)

    catalog = compose_catalog(
        mission_name,
        samples,
        windows,
        [k.filename for k in kernels],
        resolve_name=partial(resolve_body_name, kernel_manager=km),
        style=style,
    )
    documents = write_catalog(catalog, mission_dir)

    return MissionResult(
        mission_dir=mission_dir,
        samples=samples,
        windows=windows,
        kernels=kernels,
        catalog=catalog,
        documents=documents,
    )
