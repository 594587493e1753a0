"""
LLVM IR assembly reader.

Only the parts of a module needed by the visualization are modelled:
function definitions, their basic blocks and instructions, and the debug
metadata mapping instructions back to lines of the original source file.

Function and block texts are kept verbatim (joined input lines), so the text
of a block is always a literal substring of the text of its function.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import NotFoundError

LOG = logging.getLogger("explore.ir")

_IDENT = r'(?:"(?:[^"\\]|\\.)*"|[-a-zA-Z$._0-9]+)'
_FUNC_NAME_RE = re.compile(r'@(' + _IDENT + r')\s*\(')
_LABEL_RE = re.compile(r'^\s*(' + _IDENT + r'):\s*(?:;.*)?$')
_DBG_RE = re.compile(r'!dbg\s+(!\d+)')
_META_DEF_RE = re.compile(r'^(!\d+)\s*=\s*(.*)$')
_NAMED_META_RE = re.compile(r'^!([-a-zA-Z$._0-9]+)\s*=\s*!\{(.*)\}\s*$')
_SOURCE_FILENAME_RE = re.compile(r'^source_filename\s*=\s*"(.*)"\s*$')
_OLD_LABEL_RE = re.compile(r'^\s*;\s*<label>:(\d+):?')
_PARAM_NAME_RE = re.compile(r'%(' + _IDENT + r')\s*$')
_RESULT_SLOT_RE = re.compile(r'^%(\d+)\s*=')
_OPCODE_RE = re.compile(r'^(?:%' + _IDENT + r'\s*=\s*)?(?:tail\s+|musttail\s+|notail\s+)?([a-z_]+)')

_TERMINATORS = frozenset({
    "ret",
    "br",
    "switch",
    "indirectbr",
    "invoke",
    "callbr",
    "resume",
    "catchswitch",
    "catchret",
    "cleanupret",
    "unreachable",
})

_DEBUG_TOKENS = (
    "!DIFile",
    "!DILocation",
    "!DICompileUnit",
)


@dataclass(frozen=True)
class SourceLocation:
    """Position in the original source file (from a DILocation node)."""

    line: int
    column: Optional[int] = None


@dataclass(frozen=True)
class DIFile:
    filename: str
    directory: str = ""

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.filename


@dataclass
class Instruction:
    """Instruction (or terminator) of a basic block."""

    text: str
    dbg: Optional[str] = None
    location: Optional[SourceLocation] = None


@dataclass
class Block:
    name: str
    lines: List[str]
    insts: List[Instruction] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def terminator(self) -> Optional[Instruction]:
        return self.insts[-1] if self.insts else None


@dataclass
class Function:
    name: str
    lines: List[str]
    blocks: List[Block] = field(default_factory=list)
    dbg: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def block(self, name: str) -> Block:
        """Return the basic block with the given name."""
        for block in self.blocks:
            if block.name == name:
                return block
        raise NotFoundError(f"unable to locate basic block {name!r} in function {self.name!r}")


@dataclass
class Module:
    name: str
    text: str = ""
    funcs: List[Function] = field(default_factory=list)
    source_filename: Optional[str] = None
    files: Dict[str, DIFile] = field(default_factory=dict)
    locations: Dict[str, SourceLocation] = field(default_factory=dict)
    compile_units: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    named_metadata: Dict[str, List[str]] = field(default_factory=dict)

    def func(self, name: str) -> Function:
        """Return the function definition with the given name."""
        for func in self.funcs:
            if func.name == name:
                return func
        raise NotFoundError(f"unable to locate function {name!r} in LLVM IR module {self.name!r}")

    def source_file(self) -> Optional[DIFile]:
        """Return the source file of the first compile unit, if any."""
        for ref in self.named_metadata.get("llvm.dbg.cu", []):
            unit = self.compile_units.get(ref)
            if not unit:
                continue
            file_info = self.files.get(unit.get("file") or "")
            if file_info is not None:
                return file_info
        return None


# ---------------------------------------------------------------------------
# Metadata helpers


def _split_top_level(expr: str, sep: str = ",") -> List[str]:
    parts: List[str] = []
    depth = 0
    token: List[str] = []
    in_string = False
    for ch in expr:
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch in "{[(":
                depth += 1
            elif ch in "}])":
                depth = max(depth - 1, 0)
        if ch == sep and depth == 0 and not in_string:
            piece = "".join(token).strip()
            if piece:
                parts.append(piece)
            token = []
        else:
            token.append(ch)
    tail = "".join(token).strip()
    if tail:
        parts.append(tail)
    return parts


def _strip_quotes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return _unescape(text[1:-1])
    return text or None


def _unescape(body: str) -> str:
    # LLVM escapes bytes as \XX (two hex digits) and backslash as \5C.
    return re.sub(r"\\([0-9A-Fa-f]{2})", lambda m: chr(int(m.group(1), 16)), body)


def _parse_metadata_fields(body: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for piece in _split_top_level(body):
        if ":" not in piece:
            continue
        key, value = piece.split(":", 1)
        fields[key.strip()] = value.strip()
    return fields


def _extract_metadata_args(text: str, marker: str) -> Optional[str]:
    idx = text.find(marker)
    if idx == -1:
        return None
    start = text.find("(", idx)
    if start == -1:
        return None
    start += 1
    depth = 1
    pos = start
    while pos < len(text):
        ch = text[pos]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return text[start:pos]
        pos += 1
    return None


def _parse_int_field(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    text = value.strip()
    if not text or text.lower() == "null":
        return None
    try:
        return int(text, 0)
    except ValueError:
        return None


def _parse_difile(text: str) -> Optional[DIFile]:
    body = _extract_metadata_args(text, "!DIFile")
    if body is None:
        return None
    fields = _parse_metadata_fields(body)
    return DIFile(
        filename=_strip_quotes(fields.get("filename")) or "",
        directory=_strip_quotes(fields.get("directory")) or "",
    )


def _parse_dilocation(text: str) -> Optional[SourceLocation]:
    body = _extract_metadata_args(text, "!DILocation")
    if body is None:
        return None
    fields = _parse_metadata_fields(body)
    line = _parse_int_field(fields.get("line"))
    # Line 0 marks compiler generated code without a source position.
    if not line:
        return None
    return SourceLocation(line=line, column=_parse_int_field(fields.get("column")))


def _parse_dicompileunit(text: str) -> Optional[Dict[str, Any]]:
    body = _extract_metadata_args(text, "!DICompileUnit")
    if body is None:
        return None
    fields = _parse_metadata_fields(body)
    return {"file": fields.get("file")}


def _bracket_balance(text: str) -> int:
    """Return the open bracket count of ``text``, ignoring strings and comments."""
    balance = 0
    in_string = False
    for ch in text:
        if ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == ";":
            break
        elif ch in "[(":
            balance += 1
        elif ch in "])":
            balance -= 1
    return balance


# ---------------------------------------------------------------------------
# Functions and basic blocks


def _func_name(header: str) -> str:
    match = _FUNC_NAME_RE.search(header)
    if not match:
        raise ValueError("unsupported function definition: " + header.strip())
    return _unquote_ident(match.group(1))


def _unquote_ident(ident: str) -> str:
    if ident.startswith('"') and ident.endswith('"'):
        return _unescape(ident[1:-1])
    return ident


def _param_text(header: str) -> str:
    match = _FUNC_NAME_RE.search(header)
    if not match:
        return ""
    start = match.end()
    depth = 1
    pos = start
    while pos < len(header) and depth > 0:
        if header[pos] == "(":
            depth += 1
        elif header[pos] == ")":
            depth -= 1
        pos += 1
    return header[start:pos - 1]


def _unnamed_param_count(header: str) -> int:
    """Return the number of parameters occupying a numbered slot.

    Both ``i32 %0`` and a bare ``i32`` (older clang releases) are unnamed.
    """
    count = 0
    for param in _split_top_level(_param_text(header)):
        if param == "...":
            continue
        match = _PARAM_NAME_RE.search(param)
        if match is None or match.group(1).isdigit():
            count += 1
    return count


def _entry_block_name(header: str) -> str:
    # An unlabelled entry block takes the next unnamed slot after the
    # unnamed parameters.
    return str(_unnamed_param_count(header))


def _opcode(text: str) -> str:
    match = _OPCODE_RE.match(text)
    return match.group(1) if match else ""


def _split_blocks(header: str, body: List[str], offset: int, lines: List[str]) -> List[Block]:
    """Split the body of a function into basic blocks.

    ``body`` holds the raw lines between the header and the closing brace and
    ``offset`` is the index of the first body line within ``lines``, the raw
    lines of the whole function.

    Unnamed blocks get the numbered slot LLVM assigns them: labels of the form
    ``; <label>:4:`` name the slot explicitly, and a block following a
    terminator without any label takes the next free slot.
    """
    blocks: List[Block] = []
    name: Optional[str] = None
    start = last = 0
    insts: List[Instruction] = []
    next_slot = _unnamed_param_count(header)
    terminated = False

    def close() -> None:
        if name is None:
            return
        blocks.append(Block(name=name, lines=lines[offset + start:offset + last + 1], insts=insts))

    def open_block(block_name: str, idx: int) -> None:
        nonlocal name, start, last, insts, terminated, next_slot
        close()
        name = block_name
        start = last = idx
        insts = []
        terminated = False
        if block_name.isdigit():
            next_slot = max(next_slot, int(block_name) + 1)

    idx = 0
    while idx < len(body):
        raw = body[idx]
        stripped = raw.strip()
        old_label = _OLD_LABEL_RE.match(raw)
        if old_label:
            open_block(old_label.group(1), idx)
            idx += 1
            continue
        if not stripped or stripped.startswith(";"):
            idx += 1
            continue
        label = _LABEL_RE.match(raw)
        if label:
            open_block(_unquote_ident(label.group(1)), idx)
            idx += 1
            continue
        if name is None or terminated:
            open_block(str(next_slot), idx)
        # Instructions such as switch span several lines.
        end = idx
        parts = [stripped]
        balance = _bracket_balance(stripped)
        while balance > 0 and end + 1 < len(body):
            end += 1
            piece = body[end].strip()
            parts.append(piece)
            balance += _bracket_balance(piece)
        text = " ".join(parts)
        result = _RESULT_SLOT_RE.match(text)
        if result:
            next_slot = max(next_slot, int(result.group(1)) + 1)
        terminated = _opcode(text) in _TERMINATORS
        dbg_match = _DBG_RE.search(text)
        insts.append(Instruction(text=text, dbg=dbg_match.group(1) if dbg_match else None))
        last = end
        idx = end + 1
    close()
    return blocks


def _parse_function(lines: List[str], header_len: int) -> Function:
    header = " ".join(line.strip() for line in lines[:header_len])
    body = lines[header_len:-1]
    dbg_match = _DBG_RE.search(header)
    return Function(
        name=_func_name(header),
        lines=lines,
        blocks=_split_blocks(header, body, header_len, lines),
        dbg=dbg_match.group(1) if dbg_match else None,
    )


# ---------------------------------------------------------------------------
# Modules


def parse_string(text: str, name: str = "stdin") -> Module:
    """Parse LLVM IR assembly text into a module."""
    module = Module(name=name, text=text)
    lines = text.splitlines()
    total = len(lines)
    idx = 0
    while idx < total:
        raw = lines[idx]
        idx += 1
        line = raw.strip()
        if not line or line.startswith(";"):
            continue
        if line.startswith("define "):
            start = end = idx - 1
            while not lines[end].rstrip().endswith("{"):
                end += 1
                if end >= total:
                    raise ValueError(f"unterminated function header in {name!r}")
            header_len = end - start + 1
            idx = end + 1
            while idx < total and lines[idx].strip() != "}":
                idx += 1
            if idx >= total:
                raise ValueError(f"unterminated function body in {name!r}")
            idx += 1
            func = _parse_function(lines[start:idx], header_len)
            module.funcs.append(func)
            continue
        source_match = _SOURCE_FILENAME_RE.match(line)
        if source_match:
            module.source_filename = _unescape(source_match.group(1))
            continue
        named_match = _NAMED_META_RE.match(line)
        if named_match:
            refs = [ref.strip() for ref in named_match.group(2).split(",") if ref.strip()]
            module.named_metadata[named_match.group(1)] = refs
            continue
        meta_match = _META_DEF_RE.match(line)
        if meta_match:
            meta_id, rhs = meta_match.group(1), meta_match.group(2).strip()
            if any(token in rhs for token in _DEBUG_TOKENS):
                parts = [rhs]
                balance = rhs.count("(") - rhs.count(")")
                while balance > 0 and idx < total:
                    next_line = lines[idx].strip()
                    parts.append(next_line)
                    balance += next_line.count("(") - next_line.count(")")
                    idx += 1
                _record_metadata(module, meta_id, " ".join(parts))
            continue
    _resolve_locations(module)
    LOG.debug("parsed %d function definitions from %s", len(module.funcs), name)
    return module


def _record_metadata(module: Module, meta_id: str, text: str) -> None:
    if "!DILocation" in text:
        loc = _parse_dilocation(text)
        if loc is not None:
            module.locations[meta_id] = loc
    elif "!DIFile" in text:
        file_info = _parse_difile(text)
        if file_info is not None:
            module.files[meta_id] = file_info
    elif "!DICompileUnit" in text:
        unit = _parse_dicompileunit(text)
        if unit is not None:
            module.compile_units[meta_id] = unit


def _resolve_locations(module: Module) -> None:
    for func in module.funcs:
        for block in func.blocks:
            for inst in block.insts:
                if inst.dbg:
                    inst.location = module.locations.get(inst.dbg)


def parse_file(path: str) -> Module:
    """Parse the LLVM IR assembly file at ``path`` ("-" for standard input)."""
    if path == "-":
        LOG.info("parsing standard input")
        return parse_string(sys.stdin.read(), "stdin")
    LOG.info("parsing file %r", path)
    return parse_string(Path(path).read_text(encoding="utf-8"), path)
