"""
Tests: Markdown rendering.

Run with:
    pytest sow_pricing/tests/test_render.py -v
"""

from sow_pricing.models.schemas import PricingRow, PricingTable, ResolvedOption
from sow_pricing.services.render_service import (
    PRICING_FOOTNOTE,
    TABLE_ALIGN,
    TABLE_HEADER,
    as_list,
    format_aud,
    format_number,
    option_label,
    render_bullets,
    render_multi_scope_sow_markdown,
    render_pricing_table_markdown,
)


def _table(discount=10):
    return PricingTable(
        discount_percent=discount,
        gst_percent=10,
        rows=[
            PricingRow(id="fe", role="Frontend", description="Build UI", hours=40, base_rate=200),
            PricingRow(id="pm", role="PM", hours=4, base_rate=365),
        ],
    )


class TestFormatting:
    def test_format_number(self):
        assert format_number(40.0) == "40"
        assert format_number(7.5) == "7.5"
        assert format_number("n/a") == "0"

    def test_format_aud(self):
        assert format_aud(9460) == "$9,460"
        assert format_aud(851.4) == "$851"
        assert format_aud(0.5) == "$1"
        assert format_aud(-1234.5) == "-$1,235"


class TestPricingTableMarkdown:
    def test_layout(self):
        lines = render_pricing_table_markdown(_table()).split("\n")
        assert lines[:5] == ["Discount: 10%", "GST: 10%", "", TABLE_HEADER, TABLE_ALIGN]
        assert lines[5] == "| Frontend | Build UI | 40 | 200 | 8000 |"
        assert lines[6] == "| PM |  | 4 | 365 | 1460 |"

    def test_totals(self):
        markdown = render_pricing_table_markdown(_table())
        assert "**Totals (AUD):**" in markdown
        assert "- Subtotal (ex GST): $9,460" in markdown
        assert "- Discount (10%): -$946" in markdown
        assert "- Subtotal after discount (ex GST): $8,514" in markdown
        assert "- GST (10%): $851" in markdown
        assert markdown.endswith("- Total (inc GST): $9,365")

    def test_target_annotation(self):
        markdown = render_pricing_table_markdown(_table(), target_after_discount_ex_gst=9000)
        assert "- Subtotal after discount (ex GST): $8,514 (Target: $9,000)" in markdown

    def test_no_discount_line_at_zero(self):
        markdown = render_pricing_table_markdown(_table(discount=0))
        assert "Discount: 0%" in markdown
        assert "- Discount (" not in markdown

    def test_pipes_escaped(self):
        table = PricingTable(rows=[PricingRow(id="x", role="QA|Test", description="a|b", hours=1, base_rate=10)])
        markdown = render_pricing_table_markdown(table)
        assert "| QA\\|Test | a\\|b | 1 | 10 | 10 |" in markdown

    def test_mapping_input(self):
        markdown = render_pricing_table_markdown({
            "discountPercent": 0,
            "rows": [{"role": "Dev", "hours": 2.5, "baseRate": 100}],
        })
        assert "| Dev |  | 2.5 | 100 | 250 |" in markdown
        assert "GST: 10%" in markdown


class TestSowProse:
    def test_as_list(self):
        assert as_list(["a", " ", None, "b "]) == ["a", "b"]
        assert as_list("- one\n* two\n\nthree") == ["one", "two", "three"]
        assert as_list(42) == []

    def test_render_bullets(self):
        assert render_bullets(["x", "y"]) == "- x\n- y"
        assert render_bullets([]) == "- None"

    def test_option_label(self):
        assert option_label({"label": " Lean "}) == "Lean"
        assert option_label({"name": "Premium"}) == "Premium"
        assert option_label({}) == "Option"

    def test_multi_scope_document(self):
        option = ResolvedOption(
            label="Lean",
            option={"overview": "Small build.", "scopeIn": ["API"], "deliverables": "- Code"},
            pricing_table=_table(),
            target_after_discount_ex_gst=9000,
        )
        markdown = render_multi_scope_sow_markdown(
            {"title": "Acme SOW", "intro": "Three options.", "client": "Acme"},
            [option],
        )
        assert markdown.startswith("## Acme SOW\n\nThree options.")
        assert "- Client: Acme" in markdown
        assert "### Lean" in markdown
        assert "**In Scope**\n\n- API" in markdown
        assert "**Out of Scope**\n\n- None" in markdown
        assert "#### Deliverables\n\n- Code" in markdown
        assert "\n" + TABLE_HEADER + "\n" in markdown
        assert "(Target: $9,000)" in markdown
        assert PRICING_FOOTNOTE in markdown
        assert markdown.endswith("\n")
