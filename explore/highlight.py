"""Lines to highlight for the basic blocks of a control flow primitive."""

from __future__ import annotations

from typing import List

from .errors import InconsistencyError
from .ir import Block, Function
from .locate import LineRange, locate
from .primitive import Primitive


def block_line_range(func: Function, block: Block) -> LineRange:
    """Return the line range of ``block`` within the LLVM IR of ``func``."""
    try:
        return locate(func.text, block.text)
    except InconsistencyError as exc:
        raise InconsistencyError(
            f"unable to locate contents of basic block {block.name!r} in contents of function {func.name!r}"
        ) from exc


def llvm_highlights(func: Function, prim: Primitive) -> List[LineRange]:
    """Return the LLVM IR line ranges of the basic blocks of ``prim``.

    One range per node of the primitive, in node order.
    """
    return [block_line_range(func, func.block(name)) for name in prim.nodes]


def block_source_lines(block: Block) -> List[LineRange]:
    """Return the source lines of the instructions and terminator of ``block``.

    Instructions without a debug location are skipped.
    """
    lines: List[LineRange] = []
    for inst in block.insts:
        if inst.location is not None:
            lines.append((inst.location.line, inst.location.line))
    return lines


def source_highlights(func: Function, prim: Primitive) -> List[LineRange]:
    """Return the source lines of the basic blocks of ``prim``, based on debug info."""
    lines: List[LineRange] = []
    for name in prim.nodes:
        lines.extend(block_source_lines(func.block(name)))
    return lines
