"""
Command-line interface.

Usage:
    cosmopack build mission.json                 # Build ./<mission>/
    cosmopack build mission.json -o out --on-conflict overwrite
    cosmopack build mission.json --launch        # Then open Cosmographia
    cosmopack inspect out/Mission/sat1_traj.bsp  # Show segment summary
"""

import argparse
import logging
import sys
from pathlib import Path

from .errors import CosmopackError
from .kernel_manager import KernelManager
from .mission_dir import CONFLICT_POLICIES

logger = logging.getLogger("cosmopack")


def _build(args: argparse.Namespace) -> int:
    from .launcher import launch_cosmographia, remember_cosmographia
    from .loader import load_mission
    from .pipeline import build_mission

    mission, records = load_mission(args.description)
    km = KernelManager(args.kernel_dir) if args.kernel_dir else None
    result = build_mission(
        records,
        Path(args.output_dir) / mission,
        on_conflict=args.on_conflict,
        kernel_manager=km,
        verify_states=args.verify_states,
        allow_download=not args.no_download,
    )

    print(f"Mission '{result.catalog.mission_name}' written to {result.mission_dir}")
    for handle, window in zip(result.kernels, result.windows):
        print(f"  {handle.filename}: {window.start_time} -> {window.end_time}")

    if args.cosmographia_dir and args.remember:
        remember_cosmographia(args.cosmographia_dir)
    if args.launch:
        launch_cosmographia(result.mission_dir, args.cosmographia_dir)
    return 0


def _inspect(args: argparse.Namespace) -> int:
    from .spk_writer import kernel_coverage, read_segment_summaries

    path = Path(args.kernel)
    for summary in read_segment_summaries(path):
        print(f"Body        = {summary.body}")
        print(f"Center      = {summary.center}")
        print(f"Frame       = {summary.frame}")
        print(f"Data type   = {summary.data_type}")
        print(f"Start ET    = {summary.start_et:f}")
        print(f"Stop ET     = {summary.stop_et:f}")
        print(f"Segment ID  = {summary.segment_id}")
        for start, stop in kernel_coverage(path, summary.body):
            print(f"Coverage    = [{start:f}, {stop:f}]")
        print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cosmopack",
        description="Package spacecraft trajectories as a Cosmographia mission",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build a mission from a description file")
    build.add_argument("description", help="Mission description JSON")
    build.add_argument("-o", "--output-dir", default=".",
                       help="Directory that receives the mission folder")
    build.add_argument("--on-conflict", choices=CONFLICT_POLICIES, default="suffix",
                       help="What to do when the mission folder exists")
    build.add_argument("--kernel-dir", help="Generic kernel tree (lsk/, pck/, spk/planets/)")
    build.add_argument("--no-download", action="store_true",
                       help="Never download the leap-second kernel")
    build.add_argument("--verify-states", action="store_true",
                       help="Compare interpolated states with the input after writing")
    build.add_argument("--launch", action="store_true", help="Open the mission in Cosmographia")
    build.add_argument("--cosmographia-dir", help="Cosmographia install directory")
    build.add_argument("--remember", action="store_true",
                       help="Save --cosmographia-dir for later runs")
    build.set_defaults(func=_build)

    inspect = sub.add_parser("inspect", help="Show the segments of a kernel file")
    inspect.add_argument("kernel", help="SPK file")
    inspect.set_defaults(func=_inspect)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        return args.func(args)
    except (CosmopackError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
