"""Tool configuration for explore."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

DEFAULT_STYLE = "monokai"
DEFAULT_LOG_LEVEL = "INFO"


def _env(name: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    source = os.environ if environ is None else environ
    value = source.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class ExploreConfig:
    """External programs invoked while generating a visualization."""

    # Decompiler; emits reconstructed Go source on standard output.
    ll2go: str = "ll2go2"
    # Control flow graph extraction (*.ll -> *_graphs/*.dot).
    ll2dot: str = "ll2dot"
    # Control flow primitive recovery (*.dot -> *.json).
    restructure: str = "restructure"
    # Graphviz layout (*.dot -> *.png).
    dot: str = "dot"
    # Environment variables added to the environment of every tool.
    extra_env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExploreConfig":
        return cls(
            ll2go=_env("EXPLORE_LL2GO", "ll2go2", environ),
            ll2dot=_env("EXPLORE_LL2DOT", "ll2dot", environ),
            restructure=_env("EXPLORE_RESTRUCTURE", "restructure", environ),
            dot=_env("EXPLORE_DOT", "dot", environ),
        )


def default_log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    return _env("EXPLORE_LOG", DEFAULT_LOG_LEVEL, environ)
