import sys
import textwrap
from io import StringIO
from pathlib import Path

import pytest

from explore.errors import NotFoundError
from explore.highlight import llvm_highlights
from explore.ir import SourceLocation, parse_file, parse_string
from explore.primitive import Primitive


def test_parse_function_blocks(sample_ll):
    m = parse_string(sample_ll, "foo.ll")

    assert [func.name for func in m.funcs] == ["main"]
    main = m.func("main")
    assert [block.name for block in main.blocks] == ["0", "bb1", "bb2", "bb3"]
    assert main.dbg == "!6"
    assert main.text.splitlines()[0].startswith("define i32 @main")
    assert main.text.splitlines()[-1] == "}"


def test_block_text_is_part_of_function(sample_ll):
    main = parse_string(sample_ll).func("main")
    for block in main.blocks:
        assert block.text in main.text
    assert main.block("bb1").text == textwrap.dedent(
        """\
        bb1:
          %2 = icmp sgt i32 %argc, 1, !dbg !11
          br i1 %2, label %bb2, label %bb3, !dbg !11"""
    )
    assert main.block("bb3").terminator.text == "ret i32 0, !dbg !13"


def test_debug_locations_resolved(sample_ll):
    main = parse_string(sample_ll).func("main")

    bb1 = main.block("bb1")
    assert [inst.location for inst in bb1.insts] == [SourceLocation(4, 6), SourceLocation(4, 6)]
    assert main.block("bb2").insts[0].location == SourceLocation(5, 3)
    # Line 0 carries no source position.
    assert main.block("bb3").insts[0].dbg == "!13"
    assert main.block("bb3").insts[0].location is None
    # No !dbg attachment.
    assert main.block("0").insts[0].location is None


def test_source_file_from_compile_unit(sample_ll):
    m = parse_string(sample_ll)

    assert m.source_filename == "foo.c"
    file_info = m.source_file()
    assert file_info is not None
    assert file_info.filename == "foo.c"
    assert file_info.path == Path("/nonexistent/src/foo.c")
    assert m.compile_units["!0"] == {"file": "!1"}


def test_source_file_without_debug_info():
    m = parse_string("define void @f() {\n  ret void\n}\n")
    assert m.source_file() is None
    assert m.source_filename is None


def test_entry_block_named_after_unnamed_params():
    m = parse_string(
        textwrap.dedent(
            """\
            define i32 @add(i32 %0, i32 %1) {
              %3 = add nsw i32 %0, %1
              ret i32 %3
            }
            """
        )
    )
    assert [block.name for block in m.func("add").blocks] == ["2"]


def test_multiline_switch_and_header():
    m = parse_string(
        textwrap.dedent(
            """\
            define void @sw(i32 %x,
                            i32 %y) {
            entry:
              switch i32 %x, label %done [
                i32 0, label %a
                i32 1, label %done
              ]

            a:                                                ; preds = %entry
              br label %done

            done:
              ret void
            }
            """
        )
    )
    sw = m.func("sw")
    assert [block.name for block in sw.blocks] == ["entry", "a", "done"]
    entry = sw.block("entry")
    assert len(entry.insts) == 1
    assert entry.insts[0].text.startswith("switch i32 %x, label %done [")
    assert entry.text.endswith("  ]")
    assert sw.block("a").text.startswith("a:")


def test_quoted_names():
    m = parse_string(
        textwrap.dedent(
            """\
            define void @"odd name"() {
            "entry block":
              ret void
            }
            """
        )
    )
    func = m.func("odd name")
    assert func.blocks[0].name == "entry block"


def test_unknown_names_raise(sample_ll):
    m = parse_string(sample_ll)
    with pytest.raises(NotFoundError):
        m.func("nope")
    with pytest.raises(NotFoundError, match="bb_missing"):
        m.func("main").block("bb_missing")


def test_unterminated_function():
    with pytest.raises(ValueError):
        parse_string("define void @f() {\n  ret void\n")


def test_parse_file_and_stdin(tmp_path, monkeypatch, sample_ll):
    path = tmp_path / "foo.ll"
    path.write_text(sample_ll, encoding="utf-8")
    m = parse_file(str(path))
    assert m.name == str(path)
    assert m.text == sample_ll

    monkeypatch.setattr(sys, "stdin", StringIO(sample_ll))
    m = parse_file("-")
    assert m.name == "stdin"
    assert m.func("main").blocks


OLD_STYLE_LL = textwrap.dedent(
    """\
    define i32 @main(i32) #0 {
      %2 = alloca i32, align 4
      %3 = icmp sgt i32 %0, 1
      br i1 %3, label %4, label %5

    ; <label>:4:                                      ; preds = %1
      store i32 1, i32* %2, align 4
      br label %5

    ; <label>:5:                                      ; preds = %4, %1
      %6 = load i32, i32* %2, align 4
      ret i32 %6
    }
    """
)


def test_old_style_numbered_blocks():
    main = parse_string(OLD_STYLE_LL).func("main")

    assert [block.name for block in main.blocks] == ["1", "4", "5"]
    assert main.block("4").text.startswith("; <label>:4:")
    assert main.block("4").terminator.text == "br label %5"
    assert [inst.text for inst in main.block("1").insts][-1] == "br i1 %3, label %4, label %5"
    for block in main.blocks:
        assert block.text in main.text


def test_old_style_blocks_resolve_primitive_nodes():
    main = parse_string(OLD_STYLE_LL).func("main")
    prim = Primitive(kind="if", nodes=("1", "4", "5"))

    assert llvm_highlights(main, prim) == [(2, 4), (6, 8), (10, 12)]


def test_typed_only_params_take_slots():
    m = parse_string(
        textwrap.dedent(
            """\
            define void @f(i8* nocapture readonly, i32 %n, i32, ...) {
              ret void
            }
            """
        )
    )
    assert [block.name for block in m.func("f").blocks] == ["2"]


def test_unlabelled_block_after_terminator():
    m = parse_string(
        textwrap.dedent(
            """\
            define i32 @g(i32, i32) {
              %3 = add i32 %0, %1
              br label %4
              ret i32 %3
            }
            """
        )
    )
    g = m.func("g")
    assert [block.name for block in g.blocks] == ["2", "4"]
    assert g.block("4").text == "  ret i32 %3"


def test_brackets_inside_strings_do_not_join_lines():
    m = parse_string(
        textwrap.dedent(
            """\
            define void @h() {
            entry:
              call void asm sideeffect "push (", ""()
              ret void
            }
            """
        )
    )
    entry = m.func("h").block("entry")
    assert len(entry.insts) == 2
    assert entry.terminator.text == "ret void"
