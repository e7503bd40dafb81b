"""
Mission directory creation and naming-conflict handling.
"""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger("cosmopack")

CONFLICT_POLICIES = ("overwrite", "suffix", "error")


def prepare_mission_dir(base_dir: Path | str, name: str, on_conflict: str = "suffix") -> Path:
    """Create an empty directory for a mission under ``base_dir``.

    Args:
        base_dir: Parent directory (created if missing).
        name: Mission name, used as the directory name.
        on_conflict: What to do if ``base_dir/name`` already exists:
            "overwrite" removes and recreates it, "suffix" picks the first
            free ``name_1``, ``name_2``, ..., "error" raises.

    Returns:
        Path of the new, empty mission directory.

    Raises:
        ValueError: If ``name`` is empty or not a plain directory name, or
            ``on_conflict`` is unknown.
        FileExistsError: If the directory exists and ``on_conflict`` is
            "error", or it exists as a file.
    """
    if on_conflict not in CONFLICT_POLICIES:
        raise ValueError(
            f"Unknown conflict policy '{on_conflict}'. "
            f"Use one of: {', '.join(CONFLICT_POLICIES)}"
        )
    name = name.strip()
    if not name or Path(name).name != name or name in (".", ".."):
        raise ValueError(f"Invalid mission name: {name!r}")

    base_dir = Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    target = base_dir / name

    if target.exists():
        if on_conflict == "error":
            raise FileExistsError(f"Mission directory already exists: {target}")
        if on_conflict == "overwrite":
            if not target.is_dir():
                raise FileExistsError(f"{target} exists and is not a directory")
            shutil.rmtree(target)
            logger.info("Removed existing mission directory %s", target)
        else:
            n = 1
            while (base_dir / f"{name}_{n}").exists():
                n += 1
            target = base_dir / f"{name}_{n}"

    target.mkdir()
    logger.info("Prepared mission directory %s", target)
    return target
