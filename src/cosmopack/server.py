"""
MCP server for building Cosmographia missions.

Exposes mission building and kernel inspection as MCP tools over stdio
transport, so any MCP-compatible client can turn trajectory files into
a Cosmographia mission.

Usage:
    cosmopack-mcp                   # Via CLI entrypoint
    python -m cosmopack.server      # Via module
    cosmopack-mcp -v                # With verbose logging
"""

import argparse
import logging
import sys

try:
    from mcp.server.fastmcp import FastMCP
except ImportError:
    FastMCP = None


def _create_server() -> "FastMCP":
    """Create and configure the MCP server with all tools."""
    if FastMCP is None:
        raise ImportError(
            "MCP support requires the 'mcp' package. "
            "Install it with: pip install cosmopack[mcp]"
        )

    mcp = FastMCP(
        "cosmographia-missions",
        instructions=(
            "Builds Cosmographia missions from spacecraft trajectory samples. "
            "A mission description JSON lists satellites (name, NAIF id, segment id, "
            "epoch0 date vector, center_id, ref_frame) with a CSV trajectory each "
            "(columns t, x, y, z, vx, vy, vz in s, km, km/s). "
            "build_cosmographia_mission writes one SPK kernel per satellite plus the "
            "catalog files Cosmographia loads. Use list_reference_frames to pick a "
            "frame and resolve_center to check a center body before building."
        ),
    )

    @mcp.tool()
    def build_cosmographia_mission(
        description_path: str,
        output_dir: str = ".",
        on_conflict: str = "suffix",
        kernel_dir: str = "",
        verify_states: bool = False,
    ) -> dict:
        """Build a Cosmographia mission folder from a mission description file.

        Args:
            description_path: Path to the mission description JSON.
            output_dir: Directory that receives the mission folder.
            on_conflict: "suffix" (default), "overwrite" or "error" when the
                mission folder already exists.
            kernel_dir: Generic kernel tree with lsk/ (leap seconds). Empty
                uses COSMOPACK_KERNEL_DIR or ~/.cosmopack/kernels.
            verify_states: Also compare interpolated states with the input.

        Examples:
            - build_cosmographia_mission("missions/leo.json", "out")
            - build_cosmographia_mission("leo.json", on_conflict="overwrite")
        """
        from pathlib import Path

        from .kernel_manager import KernelManager
        from .loader import load_mission
        from .pipeline import build_mission

        try:
            mission, records = load_mission(description_path)
            km = KernelManager(kernel_dir) if kernel_dir else None
            result = build_mission(
                records,
                Path(output_dir) / mission,
                on_conflict=on_conflict,
                kernel_manager=km,
                verify_states=verify_states,
            )
            return {
                "status": "success",
                "mission": result.catalog.mission_name,
                "mission_dir": str(result.mission_dir),
                "start_time": result.catalog.start_time,
                "center": result.catalog.center_name,
                "kernels": [str(p) for p in result.kernel_paths],
                "documents": [str(p) for p in result.documents],
                "spacecraft": [
                    {
                        "name": entry.name,
                        "id": entry.target_id,
                        "start_time": entry.start_time,
                        "end_time": entry.end_time,
                        "duration": entry.duration,
                    }
                    for entry in result.catalog.entries
                ],
            }
        except Exception as e:
            return {"status": "error", "message": str(e)}

    @mcp.tool()
    def inspect_kernel(path: str) -> dict:
        """Show the segment descriptors and coverage of an SPK kernel file.

        Args:
            path: Path to the .bsp file.
        """
        from .spk_writer import kernel_coverage, read_segment_summaries

        try:
            segments = []
            for summary in read_segment_summaries(path):
                segments.append({
                    "body": summary.body,
                    "center": summary.center,
                    "frame": summary.frame,
                    "data_type": summary.data_type,
                    "start_et": summary.start_et,
                    "stop_et": summary.stop_et,
                    "segment_id": summary.segment_id,
                    "coverage": [list(iv) for iv in kernel_coverage(path, summary.body)],
                })
            return {
                "status": "success",
                "path": path,
                "segment_count": len(segments),
                "segments": segments,
            }
        except Exception as e:
            return {"status": "error", "message": str(e)}

    @mcp.tool()
    def list_reference_frames() -> dict:
        """List supported inertial reference frames with descriptions.

        Returns each frame's full name, what it is, and when to use it,
        plus the accepted aliases.
        """
        from .frames import FRAME_ALIASES, list_frames_with_descriptions

        frames = list_frames_with_descriptions()
        return {
            "status": "success",
            "frame_count": len(frames),
            "frames": frames,
            "aliases": {k: v for k, v in FRAME_ALIASES.items() if k != v},
        }

    @mcp.tool()
    def resolve_center(body: str) -> dict:
        """Resolve a center body to its NAIF ID and Cosmographia display name.

        Args:
            body: NAIF ID ("399") or name ("Earth", "EMB", "Moon").
        """
        from .bodies import resolve_body_id, resolve_body_name

        try:
            naif_id = resolve_body_id(body)
            return {
                "status": "success",
                "naif_id": naif_id,
                "name": resolve_body_name(naif_id),
            }
        except Exception as e:
            return {"status": "error", "message": str(e)}

    return mcp


def main():
    """CLI entrypoint for the mission MCP server."""
    parser = argparse.ArgumentParser(description="cosmopack MCP server for Cosmographia missions")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args, _ = parser.parse_known_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    server = _create_server()
    server.run()


if __name__ == "__main__":
    main()
