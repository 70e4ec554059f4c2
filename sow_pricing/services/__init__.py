"""Services — ParsingService, render helpers, SowService."""

from sow_pricing.services.parsing_service import ParsingService
from sow_pricing.services.render_service import (
    render_pricing_table_markdown,
    render_multi_scope_sow_markdown,
)
from sow_pricing.services.sow_service import SowService, run_draft_sow, run_multi_scope_sow

__all__ = [
    "ParsingService",
    "render_pricing_table_markdown",
    "render_multi_scope_sow_markdown",
    "SowService",
    "run_draft_sow",
    "run_multi_scope_sow",
]
