"""Tests for cosmopack.server — MCP tool functions."""

import pytest

try:
    import mcp
    _HAS_MCP = True
except ImportError:
    _HAS_MCP = False


@pytest.mark.skipif(not _HAS_MCP, reason="mcp package not installed")
class TestMCPTools:
    def _get_tool_func(self, name: str):
        from cosmopack.server import _create_server
        server = _create_server()
        return server._tool_manager.get_tool(name).fn

    def test_server_has_four_tools(self):
        from cosmopack.server import _create_server
        server = _create_server()
        tools = sorted(server._tool_manager._tools.keys())
        assert tools == [
            "build_cosmographia_mission",
            "inspect_kernel",
            "list_reference_frames",
            "resolve_center",
        ]

    def test_list_reference_frames(self):
        result = self._get_tool_func("list_reference_frames")()
        assert result["status"] == "success"
        assert any(f["frame"] == "J2000" for f in result["frames"])
        assert result["aliases"]["ECLIPTIC"] == "ECLIPJ2000"

    def test_resolve_center(self):
        result = self._get_tool_func("resolve_center")("earth")
        assert result == {"status": "success", "naif_id": 399, "name": "Earth"}

    def test_resolve_center_unknown(self):
        result = self._get_tool_func("resolve_center")("Not A Real Body Name")
        assert result["status"] == "error"

    def test_inspect_kernel(self, record, kernel_manager, tmp_path):
        from cosmopack.spk_writer import KernelWriter
        from cosmopack.trajectory import validate_record
        sample = validate_record(record, 0)
        path = tmp_path / "sat1_traj.bsp"
        KernelWriter(kernel_manager).write_kernel(sample, 1.0e8 + sample.times, path)

        result = self._get_tool_func("inspect_kernel")(str(path))

        assert result["status"] == "success"
        assert result["segment_count"] == 1
        assert result["segments"][0]["body"] == -1001
        [(start, stop)] = result["segments"][0]["coverage"]
        assert start == pytest.approx(1.0e8)
        assert stop == pytest.approx(1.0e8 + 300.0)

    def test_build_error_is_reported(self, tmp_path):
        result = self._get_tool_func("build_cosmographia_mission")(
            str(tmp_path / "missing.json"), str(tmp_path)
        )
        assert result["status"] == "error"
