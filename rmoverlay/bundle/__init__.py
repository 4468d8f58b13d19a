"""
Notebook bundles: filesystem access, descriptors and the page plan.
"""

from rmoverlay.bundle.composer import (
    INSERTED,
    CompositionError,
    PagePlanEntry,
    compose_page_plan,
    format_inserted_pages,
    inserted_page_indices,
    iter_page_plan,
    plan_page,
    validate_page_counts,
)
from rmoverlay.bundle.filesystem import (
    BundleError,
    BundleFS,
    default_template_bytes,
    open_bundle_fs,
)
from rmoverlay.bundle.metadata import BundleInfo, PageInfo, load_bundle

__all__ = [
    "INSERTED",
    "CompositionError",
    "PagePlanEntry",
    "compose_page_plan",
    "format_inserted_pages",
    "inserted_page_indices",
    "iter_page_plan",
    "plan_page",
    "validate_page_counts",
    "BundleError",
    "BundleFS",
    "default_template_bytes",
    "open_bundle_fs",
    "BundleInfo",
    "PageInfo",
    "load_bundle",
]
