"""
Pagination of the control flow analysis of a function.

Page 1 shows the function before any primitive is recovered (step 0).  Every
recovered primitive then contributes two pages: sub-step "a" before the
primitive is merged and sub-step "b" after.  The sub-step letters sort the
output files in their logical order.

    page 1      -> step 0
    page 2k     -> step k, sub-step "a"
    page 2k + 1 -> step k, sub-step "b"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, TypeVar

SUBSTEP_NONE = ""
SUBSTEP_BEFORE = "a"
SUBSTEP_AFTER = "b"

T = TypeVar("T")


@dataclass(frozen=True)
class Page:
    number: int
    step: int
    sub_step: str
    # Primitives recovered at this point of the analysis.
    prefix: Tuple
    # Primitive being merged in this step; None on the first page.
    active: Optional[object]

    @property
    def description(self) -> str:
        if self.sub_step == SUBSTEP_BEFORE:
            return f"before merge in step {self.step}"
        if self.sub_step == SUBSTEP_AFTER:
            return f"after merge in step {self.step}"
        return "initial control flow graph"


def page_count(prims: Sequence) -> int:
    return 1 + 2 * len(prims)


def page_to_step(page: int, prims: Sequence) -> Tuple[int, str]:
    """Return the (step, sub-step) pair shown on the given page."""
    npages = page_count(prims)
    if page < 1 or page > npages:
        raise ValueError(f"page {page} out of range [1, {npages}]")
    if page == 1:
        return 0, SUBSTEP_NONE
    k = page - 1
    step = (k + 1) // 2
    return step, SUBSTEP_BEFORE if k % 2 == 1 else SUBSTEP_AFTER


def primitive_prefix(step: int, sub_step: str, prims: Sequence[T]) -> List[T]:
    """Return the primitives recovered before or after merge in the given step."""
    if sub_step == SUBSTEP_BEFORE:
        return list(prims[:step - 1])
    if sub_step == SUBSTEP_AFTER:
        return list(prims[:step])
    return []


def active_primitive(step: int, prims: Sequence[T]) -> Optional[T]:
    if step == 0:
        return None
    return prims[step - 1]


def iter_pages(prims: Sequence) -> Iterator[Page]:
    for number in range(1, page_count(prims) + 1):
        step, sub_step = page_to_step(number, prims)
        yield Page(
            number=number,
            step=step,
            sub_step=sub_step,
            prefix=tuple(primitive_prefix(step, sub_step, prims)),
            active=active_primitive(step, prims),
        )
