"""Control flow primitives recovered by the restructure tool.

The recovery tool stores the primitives of each function as a JSON array in
``<graphs_dir>/<func>.json``.  A primitive record looks like::

    {"prim": "if", "node": "if_0", "nodes": {"cond": "0", "body": "3", "exit": "5"},
     "entry": "0", "exit": "5"}

``nodes`` is either an object mapping roles to block names or a plain list
of block names.  The record is kept verbatim so a prefix of the primitives
can be written back for the decompiler.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

LOG = logging.getLogger("explore.primitive")


@dataclass(frozen=True)
class Primitive:
    kind: str
    nodes: Tuple[str, ...]
    node: Optional[str] = None
    entry: Optional[str] = None
    exit: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Primitive":
        if not isinstance(payload, Mapping):
            raise ValueError(f"primitive must be a JSON object (got {payload!r})")
        nodes_raw = payload.get("nodes")
        if isinstance(nodes_raw, Mapping):
            nodes = tuple(str(name) for name in nodes_raw.values())
        elif isinstance(nodes_raw, (list, tuple)):
            nodes = tuple(str(name) for name in nodes_raw)
        elif nodes_raw is None:
            nodes = ()
        else:
            raise ValueError(f"primitive nodes must be a list or an object (got {nodes_raw!r})")
        return cls(
            kind=str(payload.get("prim") or payload.get("kind") or ""),
            nodes=nodes,
            node=_optional_str(payload.get("node")),
            entry=_optional_str(payload.get("entry")),
            exit=_optional_str(payload.get("exit")),
            raw=dict(payload),
        )

    def to_mapping(self) -> Dict[str, Any]:
        if self.raw:
            return dict(self.raw)
        payload: Dict[str, Any] = {"prim": self.kind, "nodes": list(self.nodes)}
        for key in ("node", "entry", "exit"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def primitives_path(graphs_dir: Path, func_name: str) -> Path:
    return Path(graphs_dir) / f"{func_name}.json"


def parse_primitives(payload: Any) -> List[Primitive]:
    if payload is None:
        # The recovery tool writes null for functions without primitives.
        return []
    if not isinstance(payload, list):
        raise ValueError("primitives file must contain a JSON array")
    return [Primitive.from_mapping(entry) for entry in payload]


def load_primitives(graphs_dir: Path, func_name: str) -> List[Primitive]:
    """Parse the recovered control flow primitives of the given function."""
    path = primitives_path(graphs_dir, func_name)
    LOG.info("parsing primitives of function %r", func_name)
    prims = parse_primitives(json.loads(path.read_text(encoding="utf-8")))
    LOG.debug("loaded %d primitives from %s", len(prims), path)
    return prims


def dump_primitives(path: Path, prims: Sequence[Primitive]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump([prim.to_mapping() for prim in prims], fh, indent=2)
        fh.write("\n")
