"""Tests for the form graph engine."""

from collections.abc import Mapping
from decimal import Decimal

import pytest

from taxline.forms.fields import Balance, FieldKind, FieldSpec, Ledger, ValueType
from taxline.forms.graph import (
    Derivation,
    DerivedFieldError,
    FormGraph,
    FormGraphError,
    GraphCycleError,
    Outcome,
    ProfileMismatchError,
    UnknownFieldError,
    parse_amount,
    parse_flag,
)
from taxline.forms.lines import build_form_graph
from taxline.forms.profile import FilingProfile, TaxType
from taxline.tax.filing_status import FilingStatus

DERIVED = FieldKind.DERIVED


def _sum(target: str, *inputs: str) -> Derivation:
    def compute(values: Mapping[str, Decimal]) -> Decimal:
        return sum((values[i] for i in inputs), Decimal("0"))

    return Derivation(target, inputs, compute)


def _small_graph(profile: FilingProfile) -> FormGraph:
    """a + b -> total; total - paid -> balance (tri-state); c -> c_copy."""
    fields = [
        FieldSpec("a", "A", Ledger.INCOME),
        FieldSpec("b", "B", Ledger.INCOME),
        FieldSpec("c", "C", Ledger.INCOME),
        FieldSpec("flag", "Flag", Ledger.DEDUCTIONS, value_type=ValueType.FLAG),
        FieldSpec("total", "Total", Ledger.INCOME, DERIVED),
        FieldSpec("c_copy", "C copy", Ledger.INCOME, DERIVED),
        FieldSpec("paid", "Paid", Ledger.PAYMENTS),
        FieldSpec("balance", "Balance", Ledger.PAYMENTS, DERIVED),
    ]

    def balance(values: Mapping[str, Decimal]) -> Outcome:
        amount = values["paid"] - values["total"]
        return Outcome(amount, Balance.of(amount))

    derivations = [
        Derivation("balance", ("paid", "total"), balance),
        _sum("total", "a", "b"),
        _sum("c_copy", "c"),
    ]
    return FormGraph(profile, fields, derivations)


@pytest.fixture
def profile() -> FilingProfile:
    return FilingProfile(tax_type=TaxType.FEDERAL_1040, filing_status=FilingStatus.SINGLE)


class TestParseAmount:
    """Tests for lenient numeric parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1234.5", Decimal("1234.50")),
            ("$1,234.567", Decimal("1234.57")),
            ("-20", Decimal("-20.00")),
            ("12abc34", Decimal("1234.00")),
            ("1.2.3", Decimal("1.20")),
            (".5", Decimal("0.50")),
            ("abc", Decimal("0.00")),
            ("", Decimal("0.00")),
            (None, Decimal("0.00")),
            ("-", Decimal("0.00")),
            (42, Decimal("42.00")),
            (Decimal("NaN"), Decimal("0.00")),
            (True, Decimal("1.00")),
        ],
    )
    def test_parse(self, raw: object, expected: Decimal) -> None:
        """Malformed input never raises and parses to zero."""
        assert parse_amount(raw) == expected

    def test_negative_zero_normalized(self) -> None:
        assert str(parse_amount("-0.001")) == "0.00"

    @pytest.mark.parametrize(
        "raw",
        [10**30, Decimal("1e30"), "9" * 40, -(10**30)],
        ids=["int", "decimal", "text", "negative-int"],
    )
    def test_amount_too_large_for_cents_is_zero(self, raw: object) -> None:
        assert parse_amount(raw) == Decimal("0.00")

    def test_largest_representable_amount_survives(self) -> None:
        assert parse_amount("9" * 26) == Decimal("9" * 26 + ".00")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("yes", Decimal("1.00")),
            ("checked", Decimal("1.00")),
            ("1", Decimal("1.00")),
            (True, Decimal("1.00")),
            ("0", Decimal("0.00")),
            ("no", Decimal("0.00")),
            (False, Decimal("0.00")),
        ],
    )
    def test_parse_flag(self, raw: object, expected: Decimal) -> None:
        assert parse_flag(raw) == expected


class TestGraphConstruction:
    """Tests for graph validation and ordering."""

    def test_initial_values_are_zero(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        assert all(value == Decimal("0") for value in graph.values().values())
        assert graph.signal("balance") is Balance.EXACT

    def test_topological_order_respects_dependencies(self, profile: FilingProfile) -> None:
        """Derivations registered out of order are still evaluated inputs-first."""
        order = _small_graph(profile).order
        assert order.index("total") < order.index("balance")
        assert set(order) == {"total", "c_copy", "balance"}

    def test_cycle_raises(self, profile: FilingProfile) -> None:
        fields = [
            FieldSpec("x", "X", Ledger.INCOME, DERIVED),
            FieldSpec("y", "Y", Ledger.INCOME, DERIVED),
        ]
        with pytest.raises(GraphCycleError, match="x"):
            FormGraph(profile, fields, [_sum("x", "y"), _sum("y", "x")])

    def test_unknown_input_raises(self, profile: FilingProfile) -> None:
        fields = [FieldSpec("x", "X", Ledger.INCOME, DERIVED)]
        with pytest.raises(UnknownFieldError, match="nope"):
            FormGraph(profile, fields, [_sum("x", "nope")])

    def test_missing_derivation_raises(self, profile: FilingProfile) -> None:
        fields = [FieldSpec("x", "X", Ledger.INCOME, DERIVED)]
        with pytest.raises(FormGraphError, match="without derivation"):
            FormGraph(profile, fields, [])

    def test_derivation_onto_leaf_raises(self, profile: FilingProfile) -> None:
        fields = [FieldSpec("x", "X", Ledger.INCOME), FieldSpec("y", "Y", Ledger.INCOME)]
        with pytest.raises(FormGraphError, match="is a leaf"):
            FormGraph(profile, fields, [_sum("x", "y")])

    def test_duplicate_field_raises(self, profile: FilingProfile) -> None:
        fields = [FieldSpec("x", "X", Ledger.INCOME), FieldSpec("x", "X", Ledger.INCOME)]
        with pytest.raises(FormGraphError, match="Duplicate field"):
            FormGraph(profile, fields, [])


class TestGraphUpdates:
    """Tests for leaf writes and incremental recompute."""

    def test_update_recomputes_downstream_only(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        changed = graph.update("a", "100")
        assert changed == {"a", "total", "balance"}
        assert graph["total"] == Decimal("100.00")
        assert graph["c_copy"] == Decimal("0.00")

    def test_unchanged_value_reports_nothing(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update("a", "5")
        assert graph.update("a", "5.00") == set()

    def test_signal_change_is_reported(self, profile: FilingProfile) -> None:
        """balance flips from deficit to surplus."""
        graph = _small_graph(profile)
        graph.update("a", "10")
        assert graph.signal("balance") is Balance.DEFICIT
        changed = graph.update("paid", "25")
        assert "balance" in changed
        assert graph.signal("balance") is Balance.SURPLUS
        assert graph["balance"] == Decimal("15.00")

    def test_exact_balance(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update_many({"a": "10", "paid": "10"})
        assert graph.signal("balance") is Balance.EXACT

    def test_overflowing_sum_stores_zero(self, profile: FilingProfile) -> None:
        """Each leaf fits in cents but their sum does not."""
        graph = _small_graph(profile)
        graph.update("a", "9" * 26)
        graph.update("b", "9" * 26)
        assert graph["b"] == Decimal("9" * 26 + ".00")
        assert graph["total"] == Decimal("0.00")
        assert graph.signal("balance") is Balance.EXACT

    def test_overflowing_balance_resets_signal(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update("paid", "9" * 26)
        assert graph.signal("balance") is Balance.SURPLUS
        graph.update("a", "-" + "9" * 26)
        assert graph["balance"] == Decimal("0.00")
        assert graph.signal("balance") is Balance.EXACT

    def test_overflow_does_not_stall_later_fields(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        changed = graph.update_many({"a": "9" * 26, "b": "9" * 26, "c": "7"})
        assert "c_copy" in changed
        assert graph["c_copy"] == Decimal("7.00")

    def test_overflowing_wages_on_full_return(self, profile: FilingProfile) -> None:
        graph = build_form_graph(profile)
        graph.update("line1a", "9" * 26)
        graph.update("line1b", "9" * 26)
        graph.update("line25a", "100")
        assert graph["line1z"] == Decimal("0.00")
        assert graph["line25d"] == Decimal("100.00")

    def test_update_many_single_pass(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        changed = graph.update_many({"a": "1", "b": "2", "c": "3"})
        assert changed == {"a", "b", "c", "total", "c_copy", "balance"}
        assert graph["total"] == Decimal("3.00")
        assert graph["c_copy"] == Decimal("3.00")

    def test_writing_derived_field_raises(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        with pytest.raises(DerivedFieldError):
            graph.update("total", "5")

    def test_writing_unknown_field_raises(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        with pytest.raises(UnknownFieldError):
            graph.update("zzz", "5")

    def test_flag_field_parses_checkbox(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update("flag", "on")
        assert graph["flag"] == Decimal("1.00")

    def test_downstream_and_dependencies(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        assert graph.downstream("a") == {"total", "balance"}
        assert graph.dependencies("balance") == ("paid", "total")
        assert graph.dependencies("a") == ()


class TestSnapshotRestore:
    """Tests for exporting and restoring state."""

    def test_round_trip(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update_many({"a": "12.34", "paid": "50", "flag": "1"})
        state = graph.snapshot()

        fresh = _small_graph(profile)
        fresh.restore(state)
        assert fresh.values() == graph.values()
        assert fresh.signal("balance") is graph.signal("balance")

    def test_snapshot_partitions_ledgers(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update("paid", "7")
        state = graph.snapshot()
        assert set(state.income) == {"a", "b", "c", "total", "c_copy"}
        assert state.payments["paid"] == Decimal("7.00")
        assert state.indiana == {}

    def test_restore_profile_mismatch_raises(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        other = FilingProfile(tax_type=TaxType.FEDERAL_1040, filing_status=FilingStatus.HOH)
        with pytest.raises(ProfileMismatchError):
            _small_graph(other).restore(graph.snapshot())

    def test_restore_values_resets_absent_leaves(self, profile: FilingProfile) -> None:
        graph = _small_graph(profile)
        graph.update_many({"a": "5", "b": "6"})
        graph.restore_values({"a": "1", "total": "999", "unknown": "3"})
        assert graph["a"] == Decimal("1.00")
        assert graph["b"] == Decimal("0.00")
        assert graph["total"] == Decimal("1.00")
