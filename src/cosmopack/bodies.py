"""
Center body names for the Cosmographia catalog.

Cosmographia refers to the trajectory center by its display name
("Earth", "Moon", "Mars Barycenter", ...). Names come from a small table
of common centers first, then from SPICE's built-in body list.
"""

import logging
import re

import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .errors import UnknownBodyError
from .kernel_manager import KernelManager, get_kernel_manager

logger = logging.getLogger("cosmopack")

# ---------------------------------------------------------------------------
# Display names for common centers
# ---------------------------------------------------------------------------

# Maps NAIF IDs to Cosmographia display names.
BODY_NAMES: dict[int, str] = {
    0: "Solar System Barycenter",
    10: "Sun",
    # Barycenters
    1: "Mercury Barycenter",
    2: "Venus Barycenter",
    3: "Earth Barycenter",
    4: "Mars Barycenter",
    5: "Jupiter Barycenter",
    6: "Saturn Barycenter",
    7: "Uranus Barycenter",
    8: "Neptune Barycenter",
    9: "Pluto Barycenter",
    # Planets
    199: "Mercury",
    299: "Venus",
    399: "Earth",
    499: "Mars",
    599: "Jupiter",
    699: "Saturn",
    799: "Uranus",
    899: "Neptune",
    999: "Pluto",
    # Moons commonly used as centers
    301: "Moon",
    401: "Phobos",
    402: "Deimos",
    501: "Io",
    502: "Europa",
    503: "Ganymede",
    504: "Callisto",
    606: "Titan",
    607: "Hyperion",
    608: "Iapetus",
    602: "Enceladus",
}

# Aliases: common names -> canonical display name
_ALIASES: dict[str, str] = {
    "SSB": "Solar System Barycenter",
    "SOLAR SYSTEM BARYCENTER": "Solar System Barycenter",
    "EMB": "Earth Barycenter",
    "EARTH-MOON BARYCENTER": "Earth Barycenter",
    "EARTH MOON BARYCENTER": "Earth Barycenter",
    "LUNA": "Moon",
    "SOL": "Sun",
}

_WORD_START = re.compile(r"\b(\w)")


def display_name(spice_name: str) -> str:
    """Lower-case a SPICE body name and capitalize each word."""
    return _WORD_START.sub(lambda m: m.group(1).upper(), spice_name.strip().lower())


def resolve_body_name(body_id: int, index: int | None = None,
                      kernel_manager: KernelManager | None = None) -> str:
    """Resolve a NAIF body ID to its Cosmographia display name.

    Args:
        body_id: NAIF integer ID (e.g., 399).
        index: Satellite index for error context.
        kernel_manager: Manager whose lock guards the SPICE lookup.

    Returns:
        Display name, e.g. "Earth".

    Raises:
        UnknownBodyError: If neither the table nor SPICE knows the ID.
    """
    body_id = int(body_id)
    if body_id in BODY_NAMES:
        return BODY_NAMES[body_id]

    km = kernel_manager or get_kernel_manager()
    with km.lock:
        try:
            name = spice.bodc2n(body_id)
        except SpiceyError as e:
            raise UnknownBodyError(
                f"center body {body_id} not found", index, "center_id"
            ) from e
    if not name:
        raise UnknownBodyError(f"center body {body_id} not found", index, "center_id")
    return display_name(name)


def resolve_body_id(name: str, kernel_manager: KernelManager | None = None) -> int:
    """Resolve a body name (display or SPICE form) to its NAIF ID.

    Performs case-insensitive lookup with alias support, then falls back
    to SPICE bodn2c.

    Raises:
        UnknownBodyError: If the name cannot be resolved.
    """
    text = name.strip()
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)

    key = text.upper()
    canonical = _ALIASES.get(key)
    for naif_id, display in BODY_NAMES.items():
        if display.upper() == key or display == canonical:
            return naif_id

    km = kernel_manager or get_kernel_manager()
    with km.lock:
        try:
            return int(spice.bodn2c(text))
        except SpiceyError as e:
            raise UnknownBodyError(f"cannot resolve body name '{name}'") from e
