"""
Syntax highlighting and HTML page templates.

Code panes are rendered by Pygments as a table of line numbers and code,
using CSS classes so the style sheet can be switched at view time.  Pages are
``string.Template`` files shipped in ``explore/templates``; template fields
are HTML-escaped unless their name ends in ``_html``.
"""

from __future__ import annotations

import html
import logging
import string
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.styles import get_all_styles, get_style_by_name
from pygments.util import ClassNotFound

from .errors import TemplateError
from .locate import LineRange

LOG = logging.getLogger("explore.render")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
TEMPLATE_NAMES = ("overview", "c", "llvm", "cfa", "go", "index")
FALLBACK_STYLE = "default"
CSS_CLASS = "chroma"
TAB_WIDTH = 3


def style_names() -> List[str]:
    return sorted(get_all_styles())


def resolve_style(name: str) -> str:
    """Return ``name`` if it is a known style, otherwise the fallback style."""
    try:
        get_style_by_name(name)
    except ClassNotFound:
        LOG.warning("unknown style %r; using %r", name, FALLBACK_STYLE)
        return FALLBACK_STYLE
    return name


def _lexer(language: str):
    try:
        return get_lexer_by_name(language, tabsize=TAB_WIDTH, stripnl=False, ensurenl=True)
    except ClassNotFound:
        LOG.debug("no lexer for %r; using plain text", language)
        return TextLexer(tabsize=TAB_WIDTH, stripnl=False, ensurenl=True)


def expand_lines(ranges: Iterable[LineRange]) -> List[int]:
    """Expand line ranges (1-based, inclusive) into sorted line numbers."""
    lines = set()
    for start, end in ranges:
        lines.update(range(start, end + 1))
    return sorted(lines)


def highlight_code(
    source: str,
    language: str,
    style: str,
    lines: Sequence[LineRange] = (),
) -> str:
    """Return ``source`` as syntax highlighted HTML, highlighting ``lines``."""
    formatter = HtmlFormatter(
        style=resolve_style(style),
        cssclass=CSS_CLASS,
        linenos="table",
        hl_lines=expand_lines(lines),
    )
    return highlight(source, _lexer(language), formatter)


def style_sheet(style: str) -> str:
    formatter = HtmlFormatter(style=resolve_style(style), cssclass=CSS_CLASS, linenos="table")
    return formatter.get_style_defs(f".{CSS_CLASS}")


def write_style_sheets(css_dir: Path, styles: Optional[Iterable[str]] = None) -> List[Path]:
    """Write ``chroma_<style>.css`` for each style to ``css_dir``."""
    css_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name in styles if styles is not None else style_names():
        path = css_dir / f"chroma_{name}.css"
        path.write_text(style_sheet(name), encoding="utf-8")
        written.append(path)
    LOG.debug("wrote %d style sheets to %s", len(written), css_dir)
    return written


def style_options(current: str, styles: Optional[Iterable[str]] = None) -> str:
    options = []
    for name in styles if styles is not None else style_names():
        selected = " selected" if name == current else ""
        escaped = html.escape(name)
        options.append(f'\t\t\t<option value="{escaped}"{selected}>{escaped}</option>')
    return "\n".join(options)


class Templates:
    """Page templates of the visualization."""

    def __init__(self, directory: Path = TEMPLATE_DIR) -> None:
        self.directory = Path(directory)
        self._templates: Dict[str, string.Template] = {}
        for name in TEMPLATE_NAMES:
            path = self.directory / f"{name}.tmpl"
            try:
                self._templates[name] = string.Template(path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise TemplateError(f"unable to read template {path}: {exc}") from exc

    def render(self, name: str, fields: Mapping[str, object]) -> str:
        template = self._templates.get(name)
        if template is None:
            raise TemplateError(f"unknown template {name!r}")
        values = {}
        for key, value in fields.items():
            text = "" if value is None else str(value)
            values[key] = text if key.endswith("_html") else html.escape(text)
        try:
            return template.substitute(values)
        except (KeyError, ValueError) as exc:
            raise TemplateError(f"unable to render template {name!r}: {exc}") from exc
