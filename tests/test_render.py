import pytest

from explore.errors import TemplateError
from explore.render import (
    FALLBACK_STYLE,
    Templates,
    expand_lines,
    highlight_code,
    resolve_style,
    style_options,
    write_style_sheets,
)


def test_expand_lines():
    assert expand_lines([(5, 7), (2, 2), (6, 8)]) == [2, 5, 6, 7, 8]
    assert expand_lines([]) == []


def test_highlight_code_marks_lines():
    out = highlight_code("a = 1\nb = 2\nc = 3\n", "text", "default", [(2, 3)])
    assert 'class="chroma' in out
    assert out.count('class="hll"') == 2


def test_highlight_code_unknown_language():
    out = highlight_code("int x;\n", "no-such-language", "default")
    assert "int x;" in out


def test_resolve_style():
    assert resolve_style("monokai") == "monokai"
    assert resolve_style("no-such-style") == FALLBACK_STYLE


def test_write_style_sheets(tmp_path):
    paths = write_style_sheets(tmp_path / "css", ["monokai", "default"])
    assert [p.name for p in paths] == ["chroma_monokai.css", "chroma_default.css"]
    assert ".chroma" in paths[0].read_text(encoding="utf-8")


def test_style_options_selects_current():
    out = style_options("monokai", ["default", "monokai"])
    assert '<option value="monokai" selected>monokai</option>' in out
    assert '<option value="default">default</option>' in out


def test_templates_escape_fields():
    templates = Templates()
    out = templates.render("cfa", {"func_name": "a<b", "desc": "x & y", "graph_html": "<img src=\"g.png\">"})
    assert "a&lt;b" in out
    assert "x &amp; y" in out
    assert '<img src="g.png">' in out


def test_templates_missing_field():
    with pytest.raises(TemplateError):
        Templates().render("cfa", {"func_name": "f"})


def test_templates_unknown_name():
    with pytest.raises(TemplateError, match="unknown template"):
        Templates().render("nope", {})


def test_templates_missing_directory(tmp_path):
    with pytest.raises(TemplateError, match="unable to read template"):
        Templates(tmp_path)
