"""
Cosmographia catalog composition.

Turns the validated batch plus each satellite's time window into the
documents Cosmographia loads for a mission:

- ``load.json``: mission manifest listing the catalog files to load
- ``spice.json``: the trajectory kernels the mission needs
- ``spacecraft.json``: one spacecraft item per satellite
- ``cosmoscript.py``: a cosmoscripting session that sets up and plays the scene

Key names and nesting follow Cosmographia's catalog schema and must not
change.
"""

import json
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import matplotlib
import numpy as np

from .bodies import resolve_body_name
from .errors import CosmopackError
from .spk_writer import PARTIAL_SUFFIX
from .timeconv import TimeConverter, epoch_to_calendar, parse_calendar
from .trajectory import TrajectorySample

logger = logging.getLogger("cosmopack")

LOAD_FILE = "load.json"
SPICE_FILE = "spice.json"
SPACECRAFT_FILE = "spacecraft.json"
SCRIPT_FILE = "cosmoscript.py"

CATALOG_FILES = (LOAD_FILE, SPICE_FILE, SPACECRAFT_FILE, SCRIPT_FILE)


@dataclass(frozen=True)
class CatalogStyle:
    """Styling and playback settings shared by every catalog entry."""

    version: str = "1.0"
    palette: str = "viridis"
    line_width: int = 4
    sample_count: int = 2000
    lead: str = "1 s"
    fade: int = 1
    camera_position: tuple[float, float, float] = (-18763.520461, -3770.166644, 8500.870754)
    camera_orientation: tuple[float, float, float, float] = (0.692937, 0.376302, -0.383892, -0.480481)
    time_rate: float = 1000


@dataclass(frozen=True)
class SatelliteWindow:
    """Time span of one satellite, in ephemeris time and catalog form."""

    start_et: float
    end_et: float
    start_time: str
    end_time: str
    duration: str


@dataclass(frozen=True)
class SpacecraftEntry:
    name: str
    target_id: int
    center_name: str
    start_time: str
    end_time: str
    color: tuple[float, float, float]
    duration: str
    kernel_file: str


@dataclass(frozen=True)
class MissionCatalog:
    """Everything needed to emit one mission's documents."""

    mission_name: str
    start_time: str
    center_name: str
    entries: tuple[SpacecraftEntry, ...]
    kernel_files: tuple[str, ...]
    style: CatalogStyle = field(default_factory=CatalogStyle)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

def satellite_window(
    sample: TrajectorySample,
    ets: np.ndarray,
    converter: TimeConverter,
    index: int | None = None,
) -> SatelliteWindow:
    """Derive a satellite's catalog window from its ephemeris times.

    The start is the trajectory's reference epoch as given; the end is
    ``et(epoch0) + times[-1]`` converted back to calendar form, so it
    matches the kernel coverage to the millisecond.

    The duration label is taken from the end rounded to the whole second,
    so the millisecond TDB-UTC periodic term cannot move it across midnight.
    """
    ets = np.asarray(ets, dtype=float)
    start_et = float(ets[0] - sample.times[0])
    end_et = float(ets[-1])
    start_time = epoch_to_calendar(sample.epoch0)
    return SatelliteWindow(
        start_et=start_et,
        end_et=end_et,
        start_time=start_time,
        end_time=converter.et_to_calendar(end_et, index),
        duration=duration_label(start_time, converter.et_to_calendar(end_et, index, precision=0)),
    )


def generate_colors(count: int, palette: str = "viridis") -> list[tuple[float, float, float]]:
    """Sample ``count`` evenly spaced RGB colors from a matplotlib colormap.

    The result depends only on ``count`` and ``palette``, so entry ``i``
    always gets the same color for a given batch size.

    Raises:
        ValueError: If the colormap does not exist or ``count`` < 1.
    """
    if count < 1:
        raise ValueError(f"color count must be positive, got {count}")
    try:
        cmap = matplotlib.colormaps[palette]
    except KeyError:
        raise ValueError(
            f'Color map "{palette}" does not exist. Try with "viridis", "plasma", "jet", etc.'
        ) from None
    rgba = cmap(np.linspace(0.0, 1.0, count))
    return [tuple(round(float(c), 6) for c in row[:3]) for row in rgba]


def coarse_duration_days(start_time: str, end_time: str) -> int:
    """Approximate calendar span in whole days, at least 1.

    Counts 365 days per year and 30 per month of difference between the
    two calendar fields. Only used as a display label.
    """
    y0, mo0, d0 = parse_calendar(start_time)[:3]
    y1, mo1, d1 = parse_calendar(end_time)[:3]
    days = abs(y1 - y0) * 365 + abs(mo1 - mo0) * 30 + abs(d1 - d0)
    return max(days, 1)


def duration_label(start_time: str, end_time: str) -> str:
    return f"{coarse_duration_days(start_time, end_time)} d"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def compose_catalog(
    mission_name: str,
    samples: Sequence[TrajectorySample],
    windows: Sequence[SatelliteWindow],
    kernel_files: Sequence[str],
    resolve_name: Callable[..., str] = resolve_body_name,
    style: CatalogStyle | None = None,
) -> MissionCatalog:
    """Build the mission catalog from validated samples and their windows.

    Args:
        mission_name: Name shown in the catalog documents.
        samples: Validated trajectories, in batch order.
        windows: Time window of each sample, same order.
        kernel_files: Kernel file name of each sample, same order.
        resolve_name: Maps a center body ID (and satellite index) to a
            display name.
        style: Shared styling; defaults to :class:`CatalogStyle`.

    Returns:
        The composed catalog. Nothing is written.

    Raises:
        UnknownBodyError: If a center body has no known name.
    """
    style = style or CatalogStyle()
    if not samples:
        raise CosmopackError("cannot compose a catalog without satellites", stage="catalog")
    if not len(samples) == len(windows) == len(kernel_files):
        raise CosmopackError(
            f"got {len(samples)} samples, {len(windows)} windows and "
            f"{len(kernel_files)} kernels", stage="catalog",
        )

    colors = generate_colors(len(samples), style.palette)

    names: dict[int, str] = {}
    entries = []
    for i, (sample, window, kernel) in enumerate(zip(samples, windows, kernel_files)):
        if sample.center_id not in names:
            names[sample.center_id] = resolve_name(sample.center_id, i)
        entries.append(SpacecraftEntry(
            name=sample.name,
            target_id=sample.id,
            center_name=names[sample.center_id],
            start_time=window.start_time,
            end_time=window.end_time,
            color=colors[i],
            duration=window.duration,
            kernel_file=kernel,
        ))

    first = min(range(len(windows)), key=lambda i: windows[i].start_et)
    return MissionCatalog(
        mission_name=mission_name,
        start_time=windows[first].start_time,
        center_name=entries[0].center_name,
        entries=tuple(entries),
        kernel_files=tuple(kernel_files),
        style=style,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def load_document(catalog: MissionCatalog) -> dict:
    return {
        "version": catalog.style.version,
        "name": f"{catalog.mission_name} Catalog",
        "require": [SPICE_FILE, SPACECRAFT_FILE],
    }


def spice_document(catalog: MissionCatalog) -> dict:
    return {
        "version": catalog.style.version,
        "name": f"{catalog.mission_name} Catalog",
        "spiceKernels": list(catalog.kernel_files),
    }


def spacecraft_document(catalog: MissionCatalog) -> dict:
    style = catalog.style
    items = []
    for entry in catalog.entries:
        color = list(entry.color)
        items.append({
            "class": "spacecraft",
            "name": entry.name,
            "startTime": entry.start_time,
            "endTime": entry.end_time,
            "center": entry.center_name,
            "trajectory": {
                "type": "Spice",
                "target": str(entry.target_id),
                "center": entry.center_name,
            },
            "label": {
                "color": color,
            },
            "trajectoryPlot": {
                "color": color,
                "lineWidth": style.line_width,
                "sampleCount": style.sample_count,
                "lead": style.lead,
                "duration": entry.duration,
                "fade": style.fade,
            },
        })
    return {
        "version": style.version,
        "name": f"{catalog.mission_name}_s/c",
        "items": items,
    }


def _vector(values: Sequence[float]) -> str:
    return "[ " + ", ".join(f"{v:.6f}" for v in values) + " ]"


def cosmoscript_text(catalog: MissionCatalog) -> str:
    """Render the cosmoscripting session that opens the mission."""
    style = catalog.style
    names = ",".join(repr(entry.name) for entry in catalog.entries)
    center = catalog.center_name
    lines = [
        "import cosmoscripting",
        "",
        "cosmo = cosmoscripting.Cosmo()",
        "",
        "########################################",
        "# Initial setup",
        "",
        f"trajectories=[{names}]",
        "cosmo.showFullScreen()",
        f"cosmo.setTime({catalog.start_time!r})",
        "cosmo.hideToolBar()",
        "cosmo.hideSpiceMessages()",
        "cosmo.hideEcliptic()",
        "cosmo.hideCenterIndicator()",
        "cosmo.hideLabels()",
        "cosmo.hidePlanetOrbits()",
        "",
        "for traj in trajectories:",
        "    cosmo.showTrajectory(traj)",
        "",
        f"cosmo.setCentralObject({center!r})",
        f"cosmo.selectObject({center!r})",
        "cosmo.setCameraToInertialFrame()",
        f"cosmo.setCameraPosition( {_vector(style.camera_position)} )",
        f"cosmo.setCameraOrientation( {_vector(style.camera_orientation)} )",
        "cosmo.showLabels()",
        "",
        "########################################",
        "# Begin scene",
        "",
        "cosmo.fadeIn(1)",
        "cosmo.wait(2)",
        "cosmo.wait(1)",
        f"cosmo.setTimeRate({style.time_rate:g})",
        "cosmo.unpause()",
    ]
    return "\n".join(lines) + "\n"


def write_catalog(catalog: MissionCatalog, mission_dir: Path | str) -> list[Path]:
    """Write the four mission documents into ``mission_dir``.

    Every document is rendered first, written to ``<name>.part`` and only
    then moved into place. If any write fails, the ``.part`` files and any
    documents already moved are removed, so the directory never holds a
    partial catalog.

    Returns:
        Paths of the written files, in load order.
    """
    mission_dir = Path(mission_dir)
    texts = {
        LOAD_FILE: json.dumps(load_document(catalog), indent=2) + "\n",
        SPICE_FILE: json.dumps(spice_document(catalog), indent=2) + "\n",
        SPACECRAFT_FILE: json.dumps(spacecraft_document(catalog), indent=2) + "\n",
        SCRIPT_FILE: cosmoscript_text(catalog),
    }

    parts: list[Path] = []
    written: list[Path] = []
    try:
        for filename, text in texts.items():
            part = mission_dir / (filename + PARTIAL_SUFFIX)
            parts.append(part)
            part.write_text(text, encoding="utf-8")
        for part in parts:
            path = part.with_name(part.name[: -len(PARTIAL_SUFFIX)])
            os.replace(part, path)
            written.append(path)
    except OSError:
        for path in parts + written:
            path.unlink(missing_ok=True)
        raise

    logger.info(
        "Wrote catalog for '%s' (%d spacecraft) to %s",
        catalog.mission_name, len(catalog.entries), mission_dir,
    )
    return written
