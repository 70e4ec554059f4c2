"""
SOW Pricing Engine — Main Entry Point

Price a model-produced pricing table against a rate card (CLI):
    python -m sow_pricing payload.json --rate-card rate_card.json
    python -m sow_pricing response.txt --rate-card rate_card.json --mode draft --target 9000
    python -m sow_pricing response.json --rate-card rate_card.json --mode multi --discount 7.5

Or import and run programmatically:
    from sow_pricing.main import run
    markdown = run("payload.json", "rate_card.json")
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from sow_pricing.config import get_settings
from sow_pricing.models.enums import SowMode
from sow_pricing.services.parsing_service import ParsingService
from sow_pricing.services.render_service import render_pricing_table_markdown
from sow_pricing.services.sow_service import SowService
from sow_pricing.utils.logger import log_warnings, setup_logging

logger = logging.getLogger(__name__)


def run(
    payload_path: str,
    rate_card_path: str,
    mode: SowMode = SowMode.TABLE,
    target: Optional[float] = None,
    discount: Optional[float] = None,
    inject_mandatory: bool = False,
) -> str:
    """Price the response at `payload_path` and return rendered markdown."""
    settings = get_settings()
    service = SowService(settings)

    response_text = Path(payload_path).read_text(encoding="utf-8")
    rate_card = ParsingService.parse_rate_card(Path(rate_card_path).read_text(encoding="utf-8"))
    logger.info(f"Loaded {len(rate_card)} rate card entries from {rate_card_path}")

    if mode == SowMode.DRAFT:
        return service.run_draft_sow(response_text, rate_card, target, discount).markdown
    if mode == SowMode.MULTI:
        return service.run_multi_scope_sow(response_text, rate_card, target, discount).markdown

    payload = ParsingService.parse_json_object(response_text) or {}
    priced = service.price_table(
        payload,
        rate_card,
        target_after_discount_ex_gst=target,
        discount_percent=discount,
        inject_mandatory_roles=inject_mandatory,
    )
    log_warnings(priced.warnings, logger, label="table")
    return render_pricing_table_markdown(priced.pricing_table, target_after_discount_ex_gst=target)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize and budget-fit SOW pricing tables")
    parser.add_argument("payload", help="Model response: pricing JSON, draft SOW text or multi-scope JSON")
    parser.add_argument("--rate-card", "-r", required=True, help="Rate card JSON file")
    parser.add_argument(
        "--mode", "-m",
        choices=[m.value for m in SowMode],
        default=SowMode.TABLE.value,
        help="Response shape (default: table)",
    )
    parser.add_argument("--target", "-t", type=float, default=None, help="Budget after discount, ex GST")
    parser.add_argument("--discount", "-d", type=float, default=None, help="Discount %% override")
    parser.add_argument(
        "--inject-mandatory",
        action="store_true",
        help="Inject mandatory roles in table mode (always on for draft/multi)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(get_settings().log_level)

    try:
        markdown = run(
            args.payload,
            args.rate_card,
            mode=SowMode(args.mode),
            target=args.target,
            discount=args.discount,
            inject_mandatory=args.inject_mandatory,
        )
    except OSError as exc:
        logger.error(f"Cannot read input: {exc}")
        return 1

    print(markdown)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
