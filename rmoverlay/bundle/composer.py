"""Page composition -- which background each output page is drawn on.

A bundle may have pages inserted on the tablet that have no counterpart in
the backing PDF. The ``.content`` descriptor records this in a redirection
table holding one entry per output page, ``-1`` marking an inserted page.
Only the *position* of the ``-1`` entries matters.

For an annotated PDF with one inserted page the plan reads::

    output | background | inserted | synthetic
    -------+------------+----------+----------
    0      | 0          | no       | no
    1      | 0          | yes      | yes       (template page)
    2      | 1          | no       | no

Bundles without a backing PDF draw every page on the synthetic (template)
background, whose single page is recycled.

``plan_page`` is a pure function of the output index so pages can be
requested in any order; ``iter_page_plan`` walks them all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

INSERTED = -1


class CompositionError(Exception):
    """Raised when page metadata cannot produce a consistent page plan."""

    pass


@dataclass(frozen=True, slots=True)
class PagePlanEntry:
    """Background decision for one output page.

    Parameters
    ----------
    output_index : int
        0-indexed position in the output document.
    background_index : int
        0-indexed page of the background source. Always 0 for the
        synthetic background.
    is_inserted : bool
        The page has no counterpart in the backing PDF.
    is_synthetic_background : bool
        Draw on the template instead of the backing PDF.
    """

    output_index: int
    background_index: int
    is_inserted: bool = False
    is_synthetic_background: bool = False


def _has_redirection(redirection: Sequence[int] | None) -> bool:
    # Older bundles carry no (or an empty) redirection table.
    return bool(redirection)


def validate_page_counts(
    original_page_count: int,
    current_page_count: int,
    redirection: Sequence[int] | None = None,
) -> None:
    """Reject page metadata that cannot be planned.

    Raises
    ------
    CompositionError
        If a count is negative or the redirection table length differs
        from ``current_page_count``.
    """
    if current_page_count < 0 or original_page_count < 0:
        raise CompositionError(
            f"page counts must be >= 0, got original={original_page_count} "
            f"current={current_page_count}"
        )
    if _has_redirection(redirection) and len(redirection) != current_page_count:
        raise CompositionError(
            f"redirection table has {len(redirection)} entries but the bundle "
            f"declares {current_page_count} pages"
        )


def plan_page(
    index: int,
    *,
    original_page_count: int,
    current_page_count: int,
    redirection: Sequence[int] | None = None,
    has_background: bool = True,
) -> PagePlanEntry:
    """Compute the background decision for output page *index*.

    Parameters
    ----------
    index : int
        0-indexed output page.
    original_page_count : int
        Pages in the backing PDF when the bundle was created.
    current_page_count : int
        Pages in the bundle now (including inserted pages).
    redirection : Sequence[int] | None
        Per-output-page redirection table, ``-1`` for inserted pages.
    has_background : bool
        Whether a backing PDF exists at all.

    Returns
    -------
    PagePlanEntry

    Raises
    ------
    IndexError
        If *index* is outside ``[0, current_page_count)``.
    """
    if not 0 <= index < current_page_count:
        raise IndexError(f"page {index} outside [0, {current_page_count})")

    if not has_background:
        return PagePlanEntry(
            output_index=index, background_index=0, is_synthetic_background=True,
        )

    redirected = _has_redirection(redirection)
    if redirected and redirection[index] == INSERTED:
        return PagePlanEntry(
            output_index=index,
            background_index=0,
            is_inserted=True,
            is_synthetic_background=True,
        )

    if redirected and current_page_count != original_page_count:
        inserted_so_far = sum(1 for value in redirection[: index + 1] if value == INSERTED)
        return PagePlanEntry(output_index=index, background_index=index - inserted_so_far)

    return PagePlanEntry(output_index=index, background_index=index)


def iter_page_plan(
    original_page_count: int,
    current_page_count: int,
    redirection: Sequence[int] | None = None,
    has_background: bool = True,
) -> Iterator[PagePlanEntry]:
    """Yield the plan entry of every output page in order.

    Raises
    ------
    CompositionError
        Raised before the first entry if the metadata is inconsistent.
    """
    validate_page_counts(original_page_count, current_page_count, redirection)
    for index in range(current_page_count):
        yield plan_page(
            index,
            original_page_count=original_page_count,
            current_page_count=current_page_count,
            redirection=redirection,
            has_background=has_background,
        )


def compose_page_plan(
    original_page_count: int,
    current_page_count: int,
    redirection: Sequence[int] | None = None,
    has_background: bool = True,
) -> list[PagePlanEntry]:
    """Materialise the full page plan (see ``iter_page_plan``)."""
    plan = list(
        iter_page_plan(original_page_count, current_page_count, redirection, has_background)
    )
    logger.debug(
        "Planned %d page(s): %d inserted, %d on synthetic background",
        len(plan),
        sum(e.is_inserted for e in plan),
        sum(e.is_synthetic_background for e in plan),
    )
    return plan


def inserted_page_indices(redirection: Sequence[int] | None) -> list[int]:
    """0-indexed output pages marked as inserted."""
    if not redirection:
        return []
    return [i for i, value in enumerate(redirection) if value == INSERTED]


def format_inserted_pages(indices: Sequence[int]) -> str:
    """Human-readable, 1-indexed list of inserted pages.

    Examples
    --------
    >>> format_inserted_pages([1])
    '2'
    >>> format_inserted_pages([1, 3])
    '2 and 4'
    >>> format_inserted_pages([1, 3, 5])
    '2, 4 and 6'
    """
    numbers = [str(i + 1) for i in sorted(indices)]
    if len(numbers) <= 1:
        return "".join(numbers)
    return f"{', '.join(numbers[:-1])} and {numbers[-1]}"
