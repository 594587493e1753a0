"""
Output of the HTML visualization of an LLVM IR file.

For a source file "foo.ll" containing the function "bar", the pages of the
visualization are written to "foo_explore/":

    bar_0001.html         overview of page 1 (pagination and panes)
    bar_c_0001.html       original C source code (when available)
    bar_llvm_0001.html    LLVM IR assembly of the function
    bar_cfa_0001.html     control flow graph of the analysis step
    bar_go_0001.html      reconstructed Go source code

The control flow graphs and recovered primitives are read from
"foo_graphs/".
"""

from __future__ import annotations

import html
import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from . import tools
from .config import DEFAULT_STYLE, ExploreConfig
from .errors import ExploreError
from .highlight import llvm_highlights, source_highlights
from .ir import Function, Module, parse_file
from .locate import LineRange
from .primitive import Primitive, load_primitives
from .render import Templates, highlight_code, resolve_style, style_options, write_style_sheets
from .steps import SUBSTEP_AFTER, SUBSTEP_BEFORE, Page, iter_pages, page_count

LOG = logging.getLogger("explore.explorer")

ASSET_DIR = Path(__file__).resolve().parent / "inc"


def base_name(ll_path: str) -> str:
    """Return the LLVM IR path without extension ("stdin" for standard input)."""
    if ll_path == "-":
        return "stdin"
    path = Path(ll_path)
    return str(path.with_suffix("")) if path.suffix else ll_path


def load_debug_module(ll_path: str) -> Optional[Module]:
    """Parse "foo_dbg.ll" next to "foo.ll", if present."""
    if ll_path == "-":
        return None
    dbg_path = Path(base_name(ll_path) + "_dbg.ll")
    if not dbg_path.is_file():
        return None
    return parse_file(str(dbg_path))


def find_source_path(ll_path: str, m: Module) -> Optional[Path]:
    """Locate the original C source file used to produce the module.

    The DIFile of the compile unit is tried first, then the source_filename
    of the module, and lastly the LLVM IR path with a ".c" extension.
    """
    candidates: List[Path] = []
    file_info = m.source_file()
    if file_info is not None:
        candidates.append(file_info.path)
    if m.source_filename:
        candidates.append(Path(m.source_filename))
        if ll_path != "-":
            candidates.append(Path(ll_path).parent / m.source_filename)
    candidates.append(Path(base_name(ll_path) + ".c"))
    for path in candidates:
        if path.is_file():
            return path
    return None


def _page_name(func_name: str, kind: str, page: int) -> str:
    if kind:
        return f"{func_name}_{kind}_{page:04d}.html"
    return f"{func_name}_{page:04d}.html"


def _describe(func_name: str, page: Page) -> str:
    desc = f"Function {func_name}, {page.description}."
    prim = page.active
    if isinstance(prim, Primitive):
        desc += f" Primitive {prim.kind or '?'} of nodes {', '.join(prim.nodes)}."
    return desc


class Explorer:
    """Configures the output environment of the visualization."""

    def __init__(
        self,
        ll_path: str,
        m: Module,
        *,
        style: str = DEFAULT_STYLE,
        config: Optional[ExploreConfig] = None,
        dbg: Optional[Module] = None,
    ) -> None:
        self.ll_path = ll_path
        self.m = m
        # Debug LLVM IR module (foo_dbg.ll); or None if not present.
        self.dbg = dbg
        self.base = base_name(ll_path)
        self.ll_name = "stdin.ll" if ll_path == "-" else Path(ll_path).name
        self.output_dir = Path(self.base + "_explore")
        self.graphs_dir = Path(self.base + "_graphs")
        self.style = resolve_style(style)
        self.config = config or ExploreConfig()
        self.templates: Optional[Templates] = None

    #
    # Output environment
    #
    def init(self, force: bool = False) -> None:
        """Create the output directory, parse templates and copy style sheets."""
        self.create_output_dir(force)
        self.templates = Templates()
        self.copy_assets()

    def create_output_dir(self, force: bool) -> None:
        if force and self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        LOG.info("creating %r", str(self.output_dir))
        self.output_dir.mkdir()
        (self.output_dir / "img").mkdir()

    def copy_assets(self) -> None:
        inc_dir = self.output_dir / "inc"
        LOG.info("creating %r", str(inc_dir))
        shutil.copytree(ASSET_DIR, inc_dir, dirs_exist_ok=True)
        write_style_sheets(inc_dir / "css")

    def selected_funcs(self, func_names: Iterable[str] = ()) -> List[Function]:
        wanted = set(func_names)
        funcs: List[Function] = []
        for func in self.m.funcs:
            if wanted and func.name not in wanted:
                LOG.debug("skipping function %r", func.name)
                continue
            funcs.append(func)
        for name in sorted(wanted - {func.name for func in self.m.funcs}):
            LOG.warning("function %r not defined in %r", name, self.ll_path)
        return funcs

    #
    # External tools
    #
    def generate_graphs(self, func_names: Iterable[str] = (), force: bool = False) -> None:
        """Run the graph extraction and primitive recovery tools."""
        if self.ll_path == "-":
            raise ExploreError("unable to generate control flow graphs for standard input")
        tools.extract_graphs(self.config, self.ll_path, force=force)
        for func in self.selected_funcs(func_names):
            dot_path = self.graphs_dir / f"{func.name}.dot"
            if not dot_path.is_file():
                LOG.warning("no control flow graph for function %r", func.name)
                continue
            tools.recover_primitives(self.config, dot_path, self.graphs_dir / f"{func.name}.json")

    def decompile(self, func_name: str, prims: Sequence[Primitive]) -> str:
        return tools.decompile(self.config, self.ll_name, self.m.text, func_name, prims)

    #
    # Visualization
    #
    def explore(self, func_names: Iterable[str] = ()) -> List[str]:
        """Generate the visualization of each selected function definition.

        Returns the names of the visualized functions.
        """
        if self.templates is None:
            raise ExploreError("explorer not initialized")
        c_path = find_source_path(self.ll_path, self.dbg or self.m)
        c_source: Optional[str] = None
        if c_path is not None:
            LOG.info("reading file %r", str(c_path))
            c_source = c_path.read_text(encoding="utf-8", errors="replace")
        done: List[str] = []
        for func in self.selected_funcs(func_names):
            if not func.blocks:
                continue
            self.explore_func(func, c_source)
            done.append(func.name)
        self.output_index(done)
        return done

    def explore_func(self, func: Function, c_source: Optional[str] = None) -> None:
        prims = load_primitives(self.graphs_dir, func.name)
        dbg_func: Optional[Function] = None
        if c_source is not None:
            dbg_func = (self.dbg or self.m).func(func.name)
        npages = page_count(prims)
        for page in iter_pages(prims):
            self.explore_page(func, dbg_func, c_source, page, npages)

    def explore_page(
        self,
        func: Function,
        dbg_func: Optional[Function],
        c_source: Optional[str],
        page: Page,
        npages: int,
    ) -> None:
        # Resolve highlights before any file of the page is written.
        llvm_lines: List[LineRange] = []
        c_lines: List[LineRange] = []
        if page.active is not None:
            llvm_lines = llvm_highlights(func, page.active)
            if dbg_func is not None:
                c_lines = source_highlights(dbg_func, page.active)
        go_source = self.decompile(func.name, page.prefix)

        self.output_overview(func.name, page, npages, has_c=c_source is not None)
        if c_source is not None:
            self.output_c(c_source, func.name, c_lines, page)
        self.output_llvm(func, llvm_lines, page)
        self.output_cfa(func.name, page)
        self.output_go(go_source, func.name, page)

    def output_overview(self, func_name: str, page: Page, npages: int, has_c: bool) -> None:
        kinds = (["c"] if has_c else []) + ["llvm", "cfa", "go"]
        frames = [
            f'\t\t<iframe src="{html.escape(_page_name(func_name, kind, page.number))}"></iframe>'
            for kind in kinds
        ]
        self._write(
            _page_name(func_name, "", page.number),
            self._render(
                "overview",
                func_name=func_name,
                ll_name=self.ll_name,
                cur_page=page.number,
                npages=npages,
                step=page.step,
                sub_step=page.sub_step,
                desc=page.description,
                styles_html=style_options(self.style),
                pages_html=self._pagination(func_name, page.number, npages),
                frames_html="\n".join(frames),
            ),
        )

    def output_c(self, c_source: str, func_name: str, lines: Sequence[LineRange], page: Page) -> None:
        self._write(
            _page_name(func_name, "c", page.number),
            self._render(
                "c",
                func_name=func_name,
                style=self.style,
                desc=_describe(func_name, page),
                code_html=highlight_code(c_source, "c", self.style, lines),
            ),
        )

    def output_llvm(self, func: Function, lines: Sequence[LineRange], page: Page) -> None:
        self._write(
            _page_name(func.name, "llvm", page.number),
            self._render(
                "llvm",
                func_name=func.name,
                style=self.style,
                desc=_describe(func.name, page),
                code_html=highlight_code(func.text, "llvm", self.style, lines),
            ),
        )

    def output_cfa(self, func_name: str, page: Page) -> None:
        if page.step == 0:
            src_name = f"{func_name}.png"
        else:
            src_name = f"{func_name}_{page.step:04d}{page.sub_step}.png"
        src_path = self.graphs_dir / src_name
        dst_name = f"{func_name}_cfa_{page.number:04d}.png"
        dst_path = self.output_dir / "img" / dst_name
        if page.sub_step == SUBSTEP_BEFORE:
            desc = f"Control flow graph of function {func_name}, before merge in step {page.step}."
        elif page.sub_step == SUBSTEP_AFTER:
            desc = f"Control flow graph of function {func_name}, after merge in step {page.step}."
        else:
            desc = f"Control flow graph of function {func_name}."
        if src_path.is_file():
            LOG.info("creating file %r", str(dst_path))
            shutil.copyfile(src_path, dst_path)
            graph_html = f'<img src="img/{html.escape(dst_name)}" alt="{html.escape(desc)}">'
        elif src_path.with_suffix(".dot").is_file():
            LOG.info("creating file %r", str(dst_path))
            tools.layout_graph(self.config, src_path.with_suffix(".dot"), dst_path)
            graph_html = f'<img src="img/{html.escape(dst_name)}" alt="{html.escape(desc)}">'
        else:
            LOG.warning("missing control flow graph %r", str(src_path))
            graph_html = f'<p class="missing">No control flow graph image ({html.escape(src_name)}).</p>'
        self._write(
            _page_name(func_name, "cfa", page.number),
            self._render(
                "cfa",
                func_name=func_name,
                step=page.step,
                sub_step=page.sub_step,
                desc=desc,
                graph_html=graph_html,
            ),
        )

    def output_go(self, go_source: str, func_name: str, page: Page) -> None:
        self._write(
            _page_name(func_name, "go", page.number),
            self._render(
                "go",
                func_name=func_name,
                style=self.style,
                desc=f"Decompiled using {len(page.prefix)} recovered primitives.",
                code_html=highlight_code(go_source, "go", self.style),
            ),
        )

    def output_index(self, func_names: Sequence[str]) -> None:
        items = []
        for name in func_names:
            href = html.escape(_page_name(name, "", 1))
            items.append(f'\t\t<li><a href="{href}">{html.escape(name)}</a></li>')
        self._write("index.html", self._render("index", ll_name=self.ll_name, funcs_html="\n".join(items)))

    #
    # Helpers
    #
    def _pagination(self, func_name: str, cur: int, npages: int) -> str:
        links: List[str] = []
        if cur > 1:
            links.append(f'\t\t<a href="{html.escape(_page_name(func_name, "", cur - 1))}">&laquo;</a>')
        else:
            links.append('\t\t<span class="disabled">&laquo;</span>')
        for number in range(1, npages + 1):
            if number == cur:
                links.append(f'\t\t<span class="current">{number}</span>')
            else:
                links.append(f'\t\t<a href="{html.escape(_page_name(func_name, "", number))}">{number}</a>')
        if cur < npages:
            links.append(f'\t\t<a href="{html.escape(_page_name(func_name, "", cur + 1))}">&raquo;</a>')
        else:
            links.append('\t\t<span class="disabled">&raquo;</span>')
        return "\n".join(links)

    def _render(self, name: str, **fields: object) -> str:
        if self.templates is None:
            raise ExploreError("explorer not initialized")
        return self.templates.render(name, fields)

    def _write(self, name: str, content: str) -> Path:
        path = self.output_dir / name
        LOG.info("creating file %r", str(path))
        path.write_text(content, encoding="utf-8")
        return path
