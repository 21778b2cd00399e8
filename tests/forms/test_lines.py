"""Tests for Form 1040 and IT-40 line definitions."""

from decimal import Decimal

import pytest

from taxline.forms.fields import Balance, Ledger
from taxline.forms.graph import DerivedFieldError
from taxline.forms.lines import build_form_graph
from taxline.forms.profile import AgeFlags, FilingProfile, TaxType
from taxline.tax.filing_status import FilingStatus


class TestFederalLines:
    """Federal Form 1040 computations."""

    def test_wages_flow_to_tax(self, single_profile: FilingProfile) -> None:
        """64,225 wages - 15,750 standard deduction = 48,475 taxable -> 5,579."""
        graph = build_form_graph(single_profile)
        graph.update("line1a", "64225")
        assert graph["line1z"] == Decimal("64225.00")
        assert graph["line9"] == Decimal("64225.00")
        assert graph["line11a"] == Decimal("64225.00")
        assert graph["line12e"] == Decimal("15750.00")
        assert graph["line15"] == Decimal("48475.00")
        assert graph["line16"] == Decimal("5579.00")
        assert graph["line24"] == Decimal("5579.00")

    def test_worksheet_path(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "165750"})
        assert graph["line15"] == Decimal("150000.00")
        assert graph["line16"] == Decimal("28847.00")

    def test_zero_income_zero_tax(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        assert graph["line15"] == Decimal("0.00")
        assert graph["line16"] == Decimal("0.00")
        assert graph.signal("balance_due") is Balance.EXACT

    def test_age_flags_seed_standard_deduction(self, married_profile: FilingProfile) -> None:
        """All four boxes for married filing jointly gives 37,900."""
        graph = build_form_graph(married_profile)
        assert graph["line12d_spouse_blind"] == Decimal("1.00")
        assert graph["line12e"] == Decimal("37900.00")

    def test_toggling_box_recomputes_deduction(self) -> None:
        profile = FilingProfile(
            tax_type=TaxType.FEDERAL_1040,
            filing_status=FilingStatus.SINGLE,
            age_flags=AgeFlags(self_65=True),
        )
        graph = build_form_graph(profile)
        assert graph["line12e"] == Decimal("17750.00")
        graph.update("line12d_self_blind", True)
        assert graph["line12e"] == Decimal("19750.00")

    def test_spouse_boxes_do_not_count_for_single(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line12d_spouse_65": True, "line12d_spouse_blind": True})
        assert graph["line12e"] == Decimal("15750.00")

    def test_agi_clamped_at_zero(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "1000", "line10": "5000"})
        assert graph["line11a"] == Decimal("0.00")

    def test_capital_loss_reduces_total_income(self, single_profile: FilingProfile) -> None:
        """Total income is an unclamped sum."""
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "1000", "line7": "-3000"})
        assert graph["line9"] == Decimal("-2000.00")
        assert graph["line11a"] == Decimal("0.00")

    def test_credits_clamp_tax_after_credits(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "30000", "line19": "10000"})
        assert graph["line22"] == Decimal("0.00")

    def test_itemizing_switches_deduction(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many(
            {
                "line1a": "100000",
                "itemized_mortgage": "12000",
                "itemized_state_taxes": "8000",
            }
        )
        assert graph["itemized_total"] == Decimal("20000.00")
        assert graph["line12"] == Decimal("15750.00")
        graph.update("itemize", "yes")
        assert graph["line12"] == Decimal("20000.00")
        assert graph["line15"] == Decimal("80000.00")

    def test_refund(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "64225", "line25a": "7000", "line36": "421"})
        assert graph["line33"] == Decimal("7000.00")
        assert graph.signal("balance_due") is Balance.SURPLUS
        assert graph["line34"] == Decimal("1421.00")
        assert graph["line35a"] == Decimal("1000.00")
        assert graph["line37"] == Decimal("0.00")

    def test_amount_owed(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "64225", "line25a": "5000", "line27": "79"})
        assert graph.signal("balance_due") is Balance.DEFICIT
        assert graph["line34"] == Decimal("0.00")
        assert graph["line37"] == Decimal("500.00")

    def test_exact_payment_shows_neither(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line1a": "64225", "line25b": "5579"})
        assert graph.signal("balance_due") is Balance.EXACT
        assert graph["line34"] == Decimal("0.00")
        assert graph["line37"] == Decimal("0.00")

    def test_refund_applied_cannot_go_negative(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        graph.update_many({"line25a": "100", "line36": "500"})
        assert graph["line35a"] == Decimal("0.00")

    def test_derived_lines_are_read_only(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        with pytest.raises(DerivedFieldError):
            graph.update("line15", "1")

    def test_federal_only_has_no_indiana_ledger(self, single_profile: FilingProfile) -> None:
        graph = build_form_graph(single_profile)
        assert not graph.has_field("in_line1")
        assert graph.ledger_values(Ledger.INDIANA) == {}


class TestIndianaLines:
    """Indiana IT-40 computations."""

    def test_combined_agi_flows_to_indiana(self, combined_profile: FilingProfile) -> None:
        graph = build_form_graph(combined_profile)
        changed = graph.update("line1a", "50000")
        assert graph["in_line1"] == Decimal("50000.00")
        assert {"in_line1", "in_line7", "in_line11"} <= changed
        # 3% state + 2.02% Marion
        assert graph["in_line8"] == Decimal("1500.00")
        assert graph["in_line9"] == Decimal("1010.00")
        assert graph["in_line11"] == Decimal("2510.00")

    def test_combined_in_line1_is_read_only(self, combined_profile: FilingProfile) -> None:
        graph = build_form_graph(combined_profile)
        with pytest.raises(DerivedFieldError):
            graph.update("in_line1", "100")

    def test_indiana_only_line1_is_input(self, indiana_profile: FilingProfile) -> None:
        graph = build_form_graph(indiana_profile)
        graph.update("in_line1", "40000")
        assert graph["in_line7"] == Decimal("40000.00")
        assert graph["in_line9"] == Decimal("424.00")
        assert graph["in_line11"] == Decimal("1624.00")

    def test_indiana_only_ignores_federal_agi(self, indiana_profile: FilingProfile) -> None:
        graph = build_form_graph(indiana_profile)
        graph.update("line1a", "99999")
        assert graph["in_line1"] == Decimal("0.00")
        assert graph["line16"] == Decimal("0.00")

    def test_exemptions_clamp(self, indiana_profile: FilingProfile) -> None:
        graph = build_form_graph(indiana_profile)
        graph.update_many({"in_line1": "500", "in_line6": "1000"})
        assert graph["in_line7"] == Decimal("0.00")
        assert graph["in_line11"] == Decimal("0.00")

    def test_indiana_refund_and_owed(self, indiana_profile: FilingProfile) -> None:
        graph = build_form_graph(indiana_profile)
        graph.update_many({"in_line1": "40000", "in_line13": "2000", "in_line17": "26"})
        assert graph.signal("in_line16") is Balance.SURPLUS
        assert graph["in_line16"] == Decimal("376.00")
        assert graph["in_line18"] == Decimal("350.00")
        assert graph["in_line21"] == Decimal("350.00")
        assert graph["in_line23"] == Decimal("0.00")

        graph.update("in_line13", "1000")
        assert graph.signal("in_line16") is Balance.DEFICIT
        assert graph["in_line23"] == Decimal("624.00")
        graph.update_many({"in_line24": "10", "in_line25": "5"})
        assert graph["in_line26"] == Decimal("639.00")

    def test_indiana_state_rate_override(self, indiana_profile: FilingProfile) -> None:
        graph = build_form_graph(indiana_profile, indiana_state_rate=Decimal("0.0295"))
        graph.update("in_line1", "10000")
        assert graph["in_line8"] == Decimal("295.00")
