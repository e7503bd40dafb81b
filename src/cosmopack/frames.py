"""
Reference frame resolution for trajectory kernels.

SPK segments are written relative to an inertial frame known to SPICE.
This module maps common names onto SPICE frame strings and checks that
SPICE knows the frame before any kernel file is created.
"""

import logging

import spiceypy as spice

from .errors import SchemaError
from .kernel_manager import KernelManager, get_kernel_manager

logger = logging.getLogger("cosmopack")


# ---------------------------------------------------------------------------
# Frame aliases — map common names to SPICE inertial frame strings
# ---------------------------------------------------------------------------

FRAME_ALIASES: dict[str, str] = {
    # Built-in SPICE inertial frames
    "J2000": "J2000",
    "ECLIPJ2000": "ECLIPJ2000",
    "B1950": "B1950",
    "ECLIPB1950": "ECLIPB1950",
    "FK4": "FK4",
    "GALACTIC": "GALACTIC",
    "MARSIAU": "MARSIAU",
    # Convenience aliases
    "EME2000": "J2000",
    "ICRF": "J2000",
    "GCRF": "J2000",
    "ECLIPTIC": "ECLIPJ2000",
    "EQUATORIAL": "J2000",
    "INERTIAL": "J2000",
}

# Descriptions for each canonical frame (used by the list_reference_frames tool)
FRAME_DESCRIPTIONS: dict[str, dict[str, str]] = {
    "J2000": {
        "full_name": "Earth Mean Equator and Equinox of J2000",
        "description": "Inertial frame with XY plane on Earth's equator at epoch J2000.0. "
                       "Standard SPICE reference frame.",
        "use_when": "Earth orbiters and most propagator output (EME2000/ICRF/GCRF "
                    "are treated as J2000).",
    },
    "ECLIPJ2000": {
        "full_name": "Ecliptic plane at J2000 epoch",
        "description": "Inertial frame with XY plane on the ecliptic at epoch J2000.0. "
                       "X-axis toward vernal equinox.",
        "use_when": "Heliocentric and interplanetary trajectories.",
    },
    "B1950": {
        "full_name": "Earth Mean Equator and Dynamical Equinox of B1950",
        "description": "Equatorial inertial frame at the older B1950 epoch.",
        "use_when": "Legacy state vectors referenced to B1950.",
    },
    "ECLIPB1950": {
        "full_name": "Ecliptic plane at B1950 epoch",
        "description": "Ecliptic inertial frame at the older B1950 epoch.",
        "use_when": "Legacy data or catalogs that use B1950 coordinates.",
    },
    "FK4": {
        "full_name": "Fundamental Catalog 4",
        "description": "B1950 frame with the FK4 equinox correction.",
        "use_when": "Data tied to the FK4 star catalog.",
    },
    "GALACTIC": {
        "full_name": "Galactic System II",
        "description": "Inertial frame aligned with the galactic plane.",
        "use_when": "Rarely for trajectories; provided for completeness.",
    },
    "MARSIAU": {
        "full_name": "Mars Mean Equator and IAU vector of J2000",
        "description": "Inertial frame based on the Mars equator at J2000.",
        "use_when": "Mars orbiters whose states are given in a Mars equatorial frame.",
    },
}


def resolve_frame(name: str) -> str:
    """Resolve a frame name through aliases.

    Args:
        name: Frame name (case-insensitive).

    Returns:
        Canonical SPICE frame string. Unknown names are returned upper-cased
        (SPICE might know them from a loaded frame kernel).
    """
    key = name.strip().upper()
    return FRAME_ALIASES.get(key, key)


def frame_code(name: str, index: int | None = None,
               kernel_manager: KernelManager | None = None) -> int:
    """Return the SPICE frame ID for a frame name.

    Raises:
        SchemaError: If SPICE does not recognize the frame.
    """
    frame = resolve_frame(name)
    km = kernel_manager or get_kernel_manager()
    with km.lock:
        code = spice.namfrm(frame)
    if code == 0:
        raise SchemaError(
            f"unknown reference frame '{name}'. "
            f"Known: {', '.join(sorted(FRAME_ALIASES))}",
            index, "ref_frame",
        )
    return int(code)


def list_available_frames() -> list[str]:
    """Return list of supported reference frame names."""
    return sorted(FRAME_ALIASES.keys())


def list_frames_with_descriptions() -> list[dict[str, str]]:
    """Return canonical frames with descriptions and usage guidance.

    Only returns canonical frames (not convenience aliases like ECLIPTIC).
    """
    frames = []
    for name, info in FRAME_DESCRIPTIONS.items():
        frames.append({
            "frame": name,
            "full_name": info["full_name"],
            "description": info["description"],
            "use_when": info["use_when"],
        })
    return frames
