"""
State sampling from written trajectory kernels.

Kernels are loaded only for the duration of the query and sampled
directly at ephemeris times, so no leap-second table is needed.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import spiceypy as spice

from .frames import resolve_frame
from .kernel_manager import KernelManager, get_kernel_manager

logger = logging.getLogger("cosmopack")

STATE_COLUMNS = ["x_km", "y_km", "z_km", "vx_km_s", "vy_km_s", "vz_km_s"]


def sample_kernel(
    path: Path | str,
    target: int,
    center: int,
    frame: str,
    ets,
    kernel_manager: KernelManager | None = None,
) -> pd.DataFrame:
    """Sample the state of ``target`` relative to ``center`` from one kernel.

    Args:
        path: SPK file to read.
        target: NAIF ID of the body to sample.
        center: NAIF ID of the observing body.
        frame: Reference frame of the output states.
        ets: Ephemeris times to sample at.
        kernel_manager: Provides the SPICE lock. Defaults to the singleton.

    Returns:
        DataFrame indexed by position with columns ``et``, x_km, y_km, z_km,
        vx_km_s, vy_km_s, vz_km_s and r_km.
    """
    km = kernel_manager or get_kernel_manager()
    et_arr = np.atleast_1d(np.asarray(ets, dtype=float))
    states = np.empty((et_arr.shape[0], 6))
    frame = resolve_frame(frame)

    with km.lock:
        was_loaded = km.is_loaded(path)
        km.load_kernel(path)
        try:
            for i, et in enumerate(et_arr):
                state, _ = spice.spkez(int(target), float(et), frame, "NONE", int(center))
                states[i] = state
        finally:
            if not was_loaded:
                km.unload_kernel(path)

    df = pd.DataFrame(states, columns=STATE_COLUMNS)
    df.insert(0, "et", et_arr)
    df["r_km"] = np.sqrt(np.sum(states[:, :3] ** 2, axis=1))

    logger.debug(
        "Sampled %s: body %d rel. %d, %d points", Path(path).name, target, center, len(df)
    )
    return df
