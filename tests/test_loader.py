"""Tests for cosmopack.loader — mission description files."""

import json

import numpy as np
import pytest


def _write_mission(tmp_path, satellites, mission="Demo"):
    path = tmp_path / "mission.json"
    path.write_text(json.dumps({"mission": mission, "satellites": satellites}))
    return path


def _sat(**extra):
    sat = {
        "name": "SAT-1", "id": -1001, "segment_id": "SAT1 TRAJ",
        "epoch0": [2024, 1, 1, 0, 0, 0], "center_id": 399, "ref_frame": "J2000",
    }
    sat.update(extra)
    return sat


class TestLoadMission:
    def test_csv_trajectory(self, tmp_path):
        from cosmopack.loader import load_mission
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "sat1.csv").write_text(
            "t, x, y, z, vx, vy, vz\n"
            "0, 7000, 0, 0, 0, 7.5, 0\n"
            "60, 6998, 450, 0, -0.1, 7.5, 0\n"
        )
        path = _write_mission(tmp_path, [_sat(trajectory="data/sat1.csv")])

        mission, records = load_mission(path)

        assert mission == "Demo"
        [record] = records
        assert "trajectory" not in record
        np.testing.assert_array_equal(record["times"], [0.0, 60.0])
        assert record["positions"].shape == (2, 3)
        assert record["velocities"][1, 0] == pytest.approx(-0.1)

    def test_records_validate(self, tmp_path):
        from cosmopack.loader import load_mission
        from cosmopack.trajectory import validate_batch
        (tmp_path / "sat1.csv").write_text("t,x,y,z,vx,vy,vz\n0,1,2,3,4,5,6\n1,1,2,3,4,5,6\n")
        _, records = load_mission(_write_mission(tmp_path, [_sat(trajectory="sat1.csv")]))
        assert validate_batch(records)[0].n_samples == 2

    def test_inline_arrays(self, tmp_path):
        from cosmopack.loader import load_mission
        sat = _sat(times=[0, 1], positions=[[1, 2, 3], [1, 2, 3]],
                   velocities=[[0, 0, 0], [0, 0, 0]])
        _, records = load_mission(_write_mission(tmp_path, [sat]))
        assert records[0]["times"] == [0, 1]

    def test_missing_column(self, tmp_path):
        from cosmopack.errors import SchemaError
        from cosmopack.loader import load_mission
        (tmp_path / "sat1.csv").write_text("t,x,y,z\n0,1,2,3\n")
        with pytest.raises(SchemaError, match="vx") as exc:
            load_mission(_write_mission(tmp_path, [_sat(trajectory="sat1.csv")]))
        assert exc.value.index == 0
        assert exc.value.stage == "load"

    def test_missing_csv(self, tmp_path):
        from cosmopack.errors import SchemaError
        from cosmopack.loader import load_mission
        with pytest.raises(SchemaError, match="not found"):
            load_mission(_write_mission(tmp_path, [_sat(trajectory="nope.csv")]))

    def test_no_satellites(self, tmp_path):
        from cosmopack.errors import SchemaError
        from cosmopack.loader import load_mission
        with pytest.raises(SchemaError, match="satellites"):
            load_mission(_write_mission(tmp_path, []))

    def test_bad_json(self, tmp_path):
        from cosmopack.errors import SchemaError
        from cosmopack.loader import load_mission
        path = tmp_path / "mission.json"
        path.write_text("{not json")
        with pytest.raises(SchemaError, match="not valid JSON"):
            load_mission(path)
