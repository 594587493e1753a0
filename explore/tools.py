"""
External tools of the decompiler pipeline.

    ll2dot       LLVM IR -> control flow graphs (foo_graphs/*.dot)
    restructure  control flow graph -> recovered primitives (*.json)
    ll2go2       LLVM IR + primitives -> Go source code
    dot          control flow graph -> PNG image

All tools run synchronously; a tool which cannot be started or exits with a
non-zero status raises ToolError.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import ExploreConfig
from .errors import ToolError
from .primitive import Primitive, dump_primitives

LOG = logging.getLogger("explore.tools")


def _command_env(config: ExploreConfig) -> Dict[str, str]:
    env = os.environ.copy()
    for key, value in config.extra_env.items():
        env.setdefault(key, value)
    return env


def run_tool(
    config: ExploreConfig,
    cmd: Sequence[str],
    *,
    cwd: Optional[Path] = None,
) -> subprocess.CompletedProcess:
    """Run command and check result."""
    cmd = [str(c) for c in cmd]
    cmd_str = " ".join(cmd)
    LOG.debug("running: %s", cmd_str)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            env=_command_env(config),
        )
    except FileNotFoundError as exc:
        raise ToolError(f"unable to start {cmd[0]!r}: {exc}", cmd=cmd) from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        if stderr:
            LOG.error("%s: %s", cmd[0], stderr)
        raise ToolError(f"command failed with exit status {exc.returncode}: {cmd_str}", cmd=cmd, stderr=stderr) from exc


def decompile(
    config: ExploreConfig,
    ll_name: str,
    ll_text: str,
    func_name: str,
    prims: Sequence[Primitive],
) -> str:
    """Decompile the function into Go source code, based on the given primitives.

    The decompiler reads the primitives from ``<stem>_graphs/<func>.json``
    next to the LLVM IR file, so both are staged in a temporary directory
    which is removed afterwards.
    """
    with tempfile.TemporaryDirectory(prefix="decomp-") as tmp:
        tmp_dir = Path(tmp)
        ll_path = tmp_dir / ll_name
        ll_path.write_text(ll_text, encoding="utf-8")
        graphs_dir = tmp_dir / f"{Path(ll_name).stem}_graphs"
        dump_primitives(graphs_dir / f"{func_name}.json", prims)
        result = run_tool(config, [config.ll2go, "-funcs", func_name, ll_name], cwd=tmp_dir)
        return result.stdout


def extract_graphs(config: ExploreConfig, ll_path: str, force: bool = False) -> None:
    """Generate the control flow graphs of each function of the LLVM IR file."""
    cmd: List[str] = [config.ll2dot]
    if force:
        cmd.append("-f")
    cmd.extend(["-img", ll_path])
    LOG.info("extracting control flow graphs of %r", ll_path)
    run_tool(config, cmd)


def recover_primitives(config: ExploreConfig, dot_path: Path, json_path: Path) -> None:
    """Recover the control flow primitives of a control flow graph."""
    LOG.info("recovering control flow primitives of %s", dot_path)
    run_tool(config, [config.restructure, "-steps", "-img", "-indent", "-o", json_path, dot_path])


def layout_graph(config: ExploreConfig, dot_path: Path, png_path: Path) -> None:
    """Render the control flow graph as a PNG image."""
    png_path.parent.mkdir(parents=True, exist_ok=True)
    run_tool(config, [config.dot, "-Tpng", "-o", png_path, dot_path])
