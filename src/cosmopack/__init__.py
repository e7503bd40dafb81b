"""
cosmopack — Spacecraft trajectories to Cosmographia missions.

Turns time-tagged position/velocity samples into one SPICE SPK kernel
per spacecraft (type 9, verified by read-back) plus the catalog files
and cosmoscripting session Cosmographia needs to show them.

Quick start::

    from cosmopack import build_mission

    result = build_mission([
        {
            "name": "SAT-1", "id": -1001, "segment_id": "SAT1 TRAJ",
            "epoch0": [2024, 1, 1, 0, 0, 0],
            "times": t, "positions": r, "velocities": v,
            "center_id": 399, "ref_frame": "J2000",
        },
    ], "missions/Demo")
    print(result.kernel_paths)

From the shell: ``cosmopack build mission.json --launch``.
"""

__version__ = "0.1.0"

from .catalog import CatalogStyle, MissionCatalog, compose_catalog, generate_colors, write_catalog
from .errors import (
    CosmopackError,
    DataOrderError,
    KernelIOError,
    SchemaError,
    ShapeError,
    TimeSystemError,
    UnknownBodyError,
    VerificationError,
)
from .frames import list_available_frames, list_frames_with_descriptions
from .kernel_manager import KernelManager, get_kernel_manager
from .loader import load_mission
from .mission_dir import prepare_mission_dir
from .pipeline import MissionResult, build_mission
from .spk_writer import KernelWriter, read_segment_summary
from .timeconv import TimeConverter
from .trajectory import TrajectorySample, validate_batch, validate_record

__all__ = [
    "build_mission",
    "MissionResult",
    "load_mission",
    "validate_record",
    "validate_batch",
    "TrajectorySample",
    "TimeConverter",
    "KernelWriter",
    "read_segment_summary",
    "CatalogStyle",
    "MissionCatalog",
    "compose_catalog",
    "generate_colors",
    "write_catalog",
    "prepare_mission_dir",
    "list_available_frames",
    "list_frames_with_descriptions",
    "KernelManager",
    "get_kernel_manager",
    "CosmopackError",
    "SchemaError",
    "ShapeError",
    "TimeSystemError",
    "DataOrderError",
    "KernelIOError",
    "VerificationError",
    "UnknownBodyError",
]
