"""
explore: visualize the stages of a decompiler pipeline.

The input is LLVM IR assembly and the output is a set of HTML pages, one per
intermediate step of the control flow analysis of each function.  Use
``python -m explore`` or the ``explore`` console script to launch the tool.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
__version__ = "0.1.0"
