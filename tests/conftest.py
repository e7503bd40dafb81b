"""Shared fixtures: synthetic satellite records and a leap-second-free time converter."""

from datetime import datetime, timedelta

import numpy as np
import pytest

# Arbitrary origin; tests only need a monotonic calendar <-> seconds mapping
_ORIGIN = datetime(2000, 1, 1, 12, 0, 0)


class FakeTimeConverter:
    """Calendar <-> seconds mapping without leap seconds, for tests without an LSK."""

    def epoch_to_et(self, epoch0, index=None):
        y, mo, d, h, mi, s = epoch0
        dt = datetime(int(y), int(mo), int(d), int(h), int(mi)) + timedelta(seconds=float(s))
        return (dt - _ORIGIN).total_seconds()

    def to_continuous_time(self, epoch0, offsets, index=None):
        return self.epoch_to_et(epoch0, index) + np.asarray(offsets, dtype=float)

    def et_to_calendar(self, et, index=None, precision=3):
        if precision == 0:
            dt = _ORIGIN + timedelta(seconds=round(float(et)))
            return dt.strftime("%Y-%m-%d %H:%M:%S UTC")
        dt = _ORIGIN + timedelta(milliseconds=round(float(et) * 1000.0))
        return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond // 1000:03d} UTC"


def make_record(
    name="SAT-1",
    body_id=-1001,
    segment_id="SAT1 TRAJ",
    epoch0=(2024, 1, 1, 0, 0, 0),
    n=6,
    step=60.0,
    center_id=399,
    ref_frame="J2000",
    radius=7000.0,
):
    """Circular-ish orbit samples around the center body."""
    times = np.arange(n) * step
    angle = times * 1e-3
    positions = np.column_stack([
        radius * np.cos(angle), radius * np.sin(angle), np.full(n, 10.0)
    ])
    velocities = np.column_stack([
        -radius * 1e-3 * np.sin(angle), radius * 1e-3 * np.cos(angle), np.zeros(n)
    ])
    return {
        "name": name,
        "id": body_id,
        "segment_id": segment_id,
        "epoch0": list(epoch0),
        "times": times,
        "positions": positions,
        "velocities": velocities,
        "center_id": center_id,
        "ref_frame": ref_frame,
    }


@pytest.fixture
def record():
    return make_record()


@pytest.fixture
def records():
    return [
        make_record(),
        make_record("SAT-2", -1002, "SAT2 TRAJ", epoch0=(2024, 1, 1, 0, 30, 0), radius=7200.0),
        make_record("SAT-3", -1003, "SAT3 TRAJ", epoch0=(2023, 12, 31, 23, 0, 0), radius=7400.0),
    ]


@pytest.fixture
def fake_converter():
    return FakeTimeConverter()


@pytest.fixture
def kernel_manager(tmp_path):
    from cosmopack.kernel_manager import KernelManager
    return KernelManager(kernel_dir=tmp_path / "kernels")


# Leap-second table through 2017-JAN-1, same values as NAIF's naif0012.tls
LEAPSECONDS_TEXT = r"""KPL/LSK

\begindata

DELTET/DELTA_T_A       =   32.184
DELTET/K               =    1.657D-3
DELTET/EB              =    1.671D-2
DELTET/M               = (  6.239996D0   1.99096871D-7 )

DELTET/DELTA_AT        = ( 10,   @1972-JAN-1
                           11,   @1972-JUL-1
                           12,   @1973-JAN-1
                           13,   @1974-JAN-1
                           14,   @1975-JAN-1
                           15,   @1976-JAN-1
                           16,   @1977-JAN-1
                           17,   @1978-JAN-1
                           18,   @1979-JAN-1
                           19,   @1980-JAN-1
                           20,   @1981-JUL-1
                           21,   @1982-JUL-1
                           22,   @1983-JUL-1
                           23,   @1985-JUL-1
                           24,   @1988-JAN-1
                           25,   @1990-JAN-1
                           26,   @1991-JAN-1
                           27,   @1992-JUL-1
                           28,   @1993-JUL-1
                           29,   @1994-JUL-1
                           30,   @1996-JAN-1
                           31,   @1997-JUL-1
                           32,   @1999-JAN-1
                           33,   @2006-JAN-1
                           34,   @2009-JAN-1
                           35,   @2012-JUL-1
                           36,   @2015-JUL-1
                           37,   @2017-JAN-1 )

\begintext
"""


@pytest.fixture
def leapseconds(kernel_manager):
    """Kernel manager whose tree holds a real leap-second kernel (not yet loaded)."""
    lsk_dir = kernel_manager.kernel_dir / "lsk"
    lsk_dir.mkdir(parents=True)
    (lsk_dir / "naif0012.tls").write_text(LEAPSECONDS_TEXT)
    yield kernel_manager
    kernel_manager.unload_all()
