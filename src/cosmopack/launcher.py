"""
Starting Cosmographia on a generated mission.

The install directory is taken from an explicit argument, the
COSMOPACK_COSMOGRAPHIA_DIR environment variable, or the path remembered
in ``~/.cosmopack/cosmo_path.txt``. Launch problems are logged and never
raised: the mission files on disk stay valid either way.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path

from .catalog import LOAD_FILE, SCRIPT_FILE

logger = logging.getLogger("cosmopack")

ENV_VAR = "COSMOPACK_COSMOGRAPHIA_DIR"
DEFAULT_PATH_FILE = Path.home() / ".cosmopack" / "cosmo_path.txt"


def _executable_name() -> str:
    return "Cosmographia.exe" if sys.platform.startswith("win") else "Cosmographia"


def find_cosmographia(
    directory: Path | str | None = None, path_file: Path | str | None = None
) -> Path | None:
    """Return the Cosmographia install directory, or None if unknown."""
    if directory:
        return Path(directory).expanduser()
    env = os.environ.get(ENV_VAR)
    if env:
        return Path(env).expanduser()
    path_file = Path(path_file) if path_file is not None else DEFAULT_PATH_FILE
    if path_file.is_file():
        saved = path_file.read_text(encoding="utf-8").strip()
        if saved:
            return Path(saved).expanduser()
    return None


def remember_cosmographia(directory: Path | str, path_file: Path | str | None = None) -> Path:
    """Save the install directory for later runs. Returns the file written."""
    path_file = Path(path_file) if path_file is not None else DEFAULT_PATH_FILE
    path_file.parent.mkdir(parents=True, exist_ok=True)
    path_file.write_text(str(Path(directory).expanduser().resolve()) + "\n", encoding="utf-8")
    logger.info("Remembered Cosmographia directory in %s", path_file)
    return path_file


def cosmographia_command(install_dir: Path | str, mission_dir: Path | str) -> list[str]:
    """Command line that opens ``mission_dir`` with its session script."""
    mission_dir = Path(mission_dir).resolve()
    return [
        str(Path(install_dir) / _executable_name()),
        "-p",
        str(mission_dir / SCRIPT_FILE),
        str(mission_dir / LOAD_FILE),
    ]


def launch_cosmographia(
    mission_dir: Path | str,
    install_dir: Path | str | None = None,
    path_file: Path | str | None = None,
) -> subprocess.Popen | None:
    """Start Cosmographia in the background on a mission.

    Returns:
        The running process, or None if Cosmographia could not be started.
    """
    install = find_cosmographia(install_dir, path_file)
    if install is None:
        logger.warning(
            "Cosmographia directory unknown; pass it explicitly or set %s", ENV_VAR
        )
        return None

    cmd = cosmographia_command(install, mission_dir)
    logger.info("Starting Cosmographia: %s", " ".join(cmd))
    try:
        return subprocess.Popen(cmd, cwd=str(install))
    except OSError as e:
        logger.warning("Could not start Cosmographia from %s: %s", install, e)
        return None
