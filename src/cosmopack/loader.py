"""
Mission description files.

A mission description is a JSON file naming the mission and listing its
satellites. Each satellite carries the scalar record fields and either
inline ``times``/``positions``/``velocities`` arrays or a ``trajectory``
CSV file with columns ``t, x, y, z, vx, vy, vz``::

    {
      "mission": "Constellation",
      "satellites": [
        {
          "name": "SAT-1", "id": -1001, "segment_id": "SAT1 TRAJ",
          "epoch0": [2024, 1, 1, 0, 0, 0],
          "center_id": 399, "ref_frame": "J2000",
          "trajectory": "sat1.csv"
        }
      ]
    }

Relative CSV paths are resolved against the JSON file's directory.
"""

import json
import logging
from pathlib import Path

import pandas as pd

from .errors import SchemaError

logger = logging.getLogger("cosmopack")

TIME_COLUMN = "t"
POSITION_COLUMNS = ["x", "y", "z"]
VELOCITY_COLUMNS = ["vx", "vy", "vz"]
CSV_COLUMNS = [TIME_COLUMN, *POSITION_COLUMNS, *VELOCITY_COLUMNS]


def read_trajectory_csv(path: Path | str, index: int | None = None) -> dict:
    """Read a trajectory table into ``times``/``positions``/``velocities``.

    Raises:
        SchemaError: If the file is missing or lacks a required column.
    """
    path = Path(path)
    try:
        df = pd.read_csv(path, skipinitialspace=True, comment="#")
    except FileNotFoundError:
        raise SchemaError(f"trajectory file not found: {path}", index, "trajectory",
                          stage="load") from None
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaError(
            f"{path.name} is missing column(s) {missing}; expected {CSV_COLUMNS}",
            index, "trajectory", stage="load",
        )
    logger.debug("Read %d samples from %s", len(df), path.name)
    return {
        "times": df[TIME_COLUMN].to_numpy(dtype=float),
        "positions": df[POSITION_COLUMNS].to_numpy(dtype=float),
        "velocities": df[VELOCITY_COLUMNS].to_numpy(dtype=float),
    }


def load_mission(path: Path | str) -> tuple[str, list[dict]]:
    """Load a mission description file.

    Returns:
        ``(mission_name, records)`` with one raw record per satellite,
        ready for :func:`cosmopack.trajectory.validate_batch`.

    Raises:
        SchemaError: If the description is not a valid mission file.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaError(f"{path.name} is not valid JSON: {e}", stage="load") from e

    if not isinstance(doc, dict):
        raise SchemaError(f"{path.name} must hold a JSON object", stage="load")
    mission = doc.get("mission")
    if not isinstance(mission, str) or not mission.strip():
        raise SchemaError(f"{path.name} has no 'mission' name", field="mission", stage="load")
    satellites = doc.get("satellites")
    if not isinstance(satellites, list) or not satellites:
        raise SchemaError(f"{path.name} has no 'satellites' list", field="satellites",
                          stage="load")

    records = []
    for i, sat in enumerate(satellites):
        if not isinstance(sat, dict):
            raise SchemaError("satellite entry must be a JSON object", i, stage="load")
        record = dict(sat)
        table = record.pop("trajectory", None)
        if table is not None:
            csv_path = Path(table)
            if not csv_path.is_absolute():
                csv_path = path.parent / csv_path
            record.update(read_trajectory_csv(csv_path, i))
        records.append(record)

    logger.info("Loaded mission '%s' with %d satellite(s) from %s",
                mission.strip(), len(records), path)
    return mission.strip(), records
