"""
Pytest fixtures for explore tests.
"""
import json
import textwrap
from pathlib import Path

import pytest

SAMPLE_LL = textwrap.dedent(
    """\
    ; ModuleID = 'foo.c'
    source_filename = "foo.c"

    define i32 @main(i32 %argc) !dbg !6 {
      %1 = alloca i32, align 4
      br label %bb1, !dbg !10

    bb1:
      %2 = icmp sgt i32 %argc, 1, !dbg !11
      br i1 %2, label %bb2, label %bb3, !dbg !11

    bb2:
      br label %bb3, !dbg !12

    bb3:
      ret i32 0, !dbg !13
    }

    declare i32 @puts(i8*)

    !llvm.dbg.cu = !{!0}
    !0 = distinct !DICompileUnit(language: DW_LANG_C99, file: !1,
        producer: "clang version 3.9", isOptimized: false)
    !1 = !DIFile(filename: "foo.c", directory: "/nonexistent/src")
    !10 = !DILocation(line: 3, column: 2, scope: !6)
    !11 = !DILocation(line: 4, column: 6, scope: !6)
    !12 = !DILocation(line: 5, column: 3, scope: !6)
    !13 = !DILocation(line: 0, scope: !6)
    """
)

SAMPLE_C = textwrap.dedent(
    """\
    int main(int argc) {
    \tint x;
    \tgoto bb1;
    \tif (argc > 1) {
    \t\tputs("hi");
    \t}
    \treturn 0;
    }
    """
)

SAMPLE_PRIMS = [
    {"prim": "if", "node": "if_0", "nodes": {"cond": "bb1", "body": "bb2", "exit": "bb3"}, "entry": "bb1", "exit": "bb3"},
    {"prim": "seq", "node": "seq_0", "nodes": ["bb3"], "entry": "bb3", "exit": "bb3"},
]


@pytest.fixture
def sample_ll() -> str:
    return SAMPLE_LL


@pytest.fixture
def sample_prims():
    return json.loads(json.dumps(SAMPLE_PRIMS))


@pytest.fixture
def project_dir(tmp_path, monkeypatch) -> Path:
    """Working directory holding foo.ll, foo.c and foo_graphs/."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "foo.ll").write_text(SAMPLE_LL, encoding="utf-8")
    (tmp_path / "foo.c").write_text(SAMPLE_C, encoding="utf-8")
    graphs = tmp_path / "foo_graphs"
    graphs.mkdir()
    (graphs / "main.json").write_text(json.dumps(SAMPLE_PRIMS), encoding="utf-8")
    (graphs / "main.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (graphs / "main_0001b.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return tmp_path
