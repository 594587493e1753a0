"""explore CLI entry point."""

from __future__ import annotations

import argparse
import logging
from typing import List

from .config import DEFAULT_STYLE, ExploreConfig, default_log_level
from .errors import ExploreError
from .explorer import Explorer, load_debug_module
from .ir import parse_file

LOG = logging.getLogger("explore.cli")

USAGE = """\
Visualize the control flow analysis of LLVM IR assembly files.

For each function of foo.ll the output directory foo_explore/ holds one page
per analysis step, showing the original C source, the LLVM IR, the control
flow graph and the decompiled Go source side by side.  The control flow
graphs and primitives are read from foo_graphs/ (see -gen).
"""


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_funcs(value: str) -> List[str]:
    """Split a comma-separated list of function names, ignoring blank entries."""
    return [name.strip() for name in value.split(",") if name.strip()]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="explore",
        description=USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("files", nargs="*", metavar="FILE.ll", help="LLVM IR assembly files (default: standard input)")
    parser.add_argument("-f", dest="force", action="store_true", help="Force overwrite existing explore directories")
    parser.add_argument(
        "-funcs",
        dest="funcs",
        type=parse_funcs,
        default=[],
        metavar="NAMES",
        help="Comma-separated list of functions to visualize (default: all)",
    )
    parser.add_argument("-q", dest="quiet", action="store_true", help="Suppress non-error messages")
    parser.add_argument(
        "-style",
        dest="style",
        default=DEFAULT_STYLE,
        help=f"Syntax highlighting style (default {DEFAULT_STYLE})",
    )
    parser.add_argument(
        "-gen",
        dest="gen",
        action="store_true",
        help="Generate control flow graphs and primitives before exploring",
    )
    parser.add_argument(
        "--log-level",
        default=default_log_level(),
        help="Logging level (default INFO, or $EXPLORE_LOG)",
    )
    return parser


def explore_file(ll_path: str, args: argparse.Namespace, config: ExploreConfig) -> None:
    """Generate the visualization of one LLVM IR file."""
    m = parse_file(ll_path)
    if not m.funcs:
        LOG.warning("unable to locate function definitions in %r", ll_path)
        return
    explorer = Explorer(ll_path, m, style=args.style, config=config, dbg=load_debug_module(ll_path))
    if args.gen:
        explorer.generate_graphs(args.funcs, force=args.force)
    explorer.init(force=args.force)
    explorer.explore(args.funcs)


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging("WARNING" if args.quiet else args.log_level)
    config = ExploreConfig.from_env()
    files = args.files or ["-"]
    try:
        for ll_path in files:
            explore_file(ll_path, args, config)
    except (ExploreError, OSError, ValueError) as exc:
        LOG.error("%s", exc)
        return 1
    return 0
