"""Form graph engine.

A return is modeled as named fields connected by derivations. Each derived
field registers its inputs and a pure compute function once; the graph orders
derivations topologically and, after a leaf edit, re-evaluates only the
derived fields downstream of that leaf.

Values are Decimal amounts quantized to cents. Malformed numeric input never
raises: it parses to zero. Structural mistakes (writing a derived field, an
unknown field id, a dependency cycle) raise FormGraphError subclasses.
"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from taxline.core.logging import get_logger
from taxline.forms.fields import Balance, FieldSpec, Ledger
from taxline.forms.profile import FilingProfile
from taxline.forms.state import FormState

logger = get_logger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
ONE = Decimal("1.00")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)")
_TRUE_WORDS = frozenset({"true", "yes", "y", "on", "checked"})


class FormGraphError(Exception):
    """Base error for misuse of the form graph."""


class UnknownFieldError(FormGraphError):
    """Raised when a field id is not registered in the graph."""


class DerivedFieldError(FormGraphError):
    """Raised when a caller tries to write a derived field."""


class GraphCycleError(FormGraphError):
    """Raised when derivations form a dependency cycle."""


class ProfileMismatchError(FormGraphError):
    """Raised when restoring state exported under a different profile."""


@dataclass(frozen=True)
class Outcome:
    """Derivation result carrying a tri-state signal next to its value."""

    value: Decimal
    balance: Balance


Compute = Callable[[Mapping[str, Decimal]], "Decimal | Outcome"]


@dataclass(frozen=True)
class Derivation:
    """Edge set from input fields to one derived field.

    Attributes:
        target: Derived field written by this derivation.
        inputs: Field ids the compute function reads.
        compute: Pure function of the input values.
    """

    target: str
    inputs: tuple[str, ...]
    compute: Compute


# =============================================================================
# Parsing
# =============================================================================


def quantize_cents(value: Decimal) -> Decimal:
    """Round to cents, half up, normalizing negative zero."""
    result = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if result.is_zero():
        return ZERO
    return result


def parse_amount(raw: Any) -> Decimal:
    """Parse user input into a cents amount.

    Every character except digits, "." and "-" is stripped, then the leading
    numeric prefix is read. Empty or unparsable input yields zero, as does an
    amount too large to represent in cents.

    Example:
        >>> parse_amount("$1,234.567")
        Decimal('1234.57')
        >>> parse_amount("abc")
        Decimal('0.00')
    """
    if raw is None:
        return ZERO
    if isinstance(raw, bool):
        return ONE if raw else ZERO
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    else:
        text = _NON_NUMERIC.sub("", str(raw))
        match = _LEADING_NUMBER.match(text)
        if match is None:
            return ZERO
        value = Decimal(match.group(0))

    if not value.is_finite():
        return ZERO
    try:
        return quantize_cents(value)
    except InvalidOperation:
        # More digits than the decimal context can hold in cents
        return ZERO


def parse_flag(raw: Any) -> Decimal:
    """Parse checkbox input into 1.00 or 0.00."""
    if isinstance(raw, str) and raw.strip().lower() in _TRUE_WORDS:
        return ONE
    return ONE if parse_amount(raw) != ZERO else ZERO


# =============================================================================
# Graph
# =============================================================================


class FormGraph:
    """Fields, derivations, and incremental recompute for one return."""

    def __init__(
        self,
        profile: FilingProfile,
        fields: Iterable[FieldSpec],
        derivations: Iterable[Derivation],
    ) -> None:
        """Register fields and derivations and compute initial values.

        Args:
            profile: Filing profile the graph was built for.
            fields: All field descriptors, in display order.
            derivations: Exactly one derivation per derived field.

        Raises:
            FormGraphError: If the field/derivation sets are inconsistent.
            GraphCycleError: If derivations form a cycle.
        """
        self.profile = profile
        self._fields: dict[str, FieldSpec] = {}
        for spec in fields:
            if spec.field_id in self._fields:
                raise FormGraphError(f"Duplicate field: {spec.field_id}")
            self._fields[spec.field_id] = spec

        self._derivations: dict[str, Derivation] = {}
        self._dependents: dict[str, list[str]] = {fid: [] for fid in self._fields}
        for derivation in derivations:
            self._register(derivation)

        missing = [
            fid
            for fid, spec in self._fields.items()
            if spec.is_derived and fid not in self._derivations
        ]
        if missing:
            raise FormGraphError(f"Derived fields without derivation: {missing}")

        self._order = self._topological_order()
        self._values: dict[str, Decimal] = {fid: ZERO for fid in self._fields}
        self._signals: dict[str, Balance] = {}
        self.recompute()

    def _register(self, derivation: Derivation) -> None:
        target = self._fields.get(derivation.target)
        if target is None:
            raise UnknownFieldError(f"Unknown derivation target: {derivation.target}")
        if not target.is_derived:
            raise FormGraphError(f"Derivation target is a leaf: {derivation.target}")
        if derivation.target in self._derivations:
            raise FormGraphError(f"Duplicate derivation for: {derivation.target}")
        for input_id in derivation.inputs:
            if input_id not in self._fields:
                raise UnknownFieldError(
                    f"Unknown input {input_id} for {derivation.target}"
                )
            self._dependents[input_id].append(derivation.target)
        self._derivations[derivation.target] = derivation

    def _topological_order(self) -> list[str]:
        """Order derived fields so every input precedes its dependents (Kahn)."""
        in_degree = {
            fid: len(self._derivations[fid].inputs) if spec.is_derived else 0
            for fid, spec in self._fields.items()
        }
        queue = deque(fid for fid, degree in in_degree.items() if degree == 0)
        order: list[str] = []
        visited = 0

        while queue:
            fid = queue.popleft()
            visited += 1
            if self._fields[fid].is_derived:
                order.append(fid)
            for dependent in self._dependents[fid]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if visited != len(self._fields):
            stuck = sorted(fid for fid, degree in in_degree.items() if degree > 0)
            raise GraphCycleError(f"Dependency cycle among fields: {stuck}")
        return order

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def fields(self) -> list[FieldSpec]:
        """All field descriptors in registration order."""
        return list(self._fields.values())

    @property
    def order(self) -> list[str]:
        """Derived field ids in evaluation order."""
        return list(self._order)

    def field(self, field_id: str) -> FieldSpec:
        spec = self._fields.get(field_id)
        if spec is None:
            raise UnknownFieldError(f"Unknown field: {field_id}")
        return spec

    def has_field(self, field_id: str) -> bool:
        return field_id in self._fields

    def value(self, field_id: str) -> Decimal:
        self.field(field_id)
        return self._values[field_id]

    def __getitem__(self, field_id: str) -> Decimal:
        return self.value(field_id)

    def signal(self, field_id: str) -> Balance | None:
        """Tri-state signal emitted by a balance derivation, if any."""
        self.field(field_id)
        return self._signals.get(field_id)

    def values(self) -> dict[str, Decimal]:
        return dict(self._values)

    def ledger_values(self, ledger: Ledger) -> dict[str, Decimal]:
        return {
            fid: self._values[fid]
            for fid, spec in self._fields.items()
            if spec.ledger is ledger
        }

    def dependencies(self, field_id: str) -> tuple[str, ...]:
        """Declared inputs of a derived field; empty for leaves."""
        self.field(field_id)
        derivation = self._derivations.get(field_id)
        return derivation.inputs if derivation else ()

    def downstream(self, field_id: str) -> set[str]:
        """All derived fields reachable from field_id."""
        self.field(field_id)
        reached: set[str] = set()
        stack = list(self._dependents[field_id])
        while stack:
            fid = stack.pop()
            if fid in reached:
                continue
            reached.add(fid)
            stack.extend(self._dependents[fid])
        return reached

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_leaf(self, field_id: str, raw: Any) -> bool:
        """Parse raw input into a leaf field without recomputing.

        Args:
            field_id: Leaf field to write.
            raw: User input; malformed numbers parse to zero.

        Returns:
            True if the stored value changed.

        Raises:
            UnknownFieldError: If the field does not exist.
            DerivedFieldError: If the field is derived.
        """
        spec = self.field(field_id)
        if spec.is_derived:
            raise DerivedFieldError(f"Cannot write derived field: {field_id}")

        value = parse_flag(raw) if spec.is_flag else parse_amount(raw)
        if self._values[field_id] == value:
            return False
        self._values[field_id] = value
        return True

    def recompute(self, from_field: str | None = None) -> set[str]:
        """Re-evaluate derived fields in topological order.

        Args:
            from_field: Changed field; only its downstream fields are
                evaluated. When omitted, every derived field is evaluated.

        Returns:
            Ids of derived fields whose value or signal changed.
        """
        if from_field is None:
            targets = self._order
        else:
            affected = self.downstream(from_field)
            targets = [fid for fid in self._order if fid in affected]

        changed: set[str] = set()
        for fid in targets:
            if self._evaluate(fid):
                changed.add(fid)
        return changed

    def _evaluate(self, field_id: str) -> bool:
        derivation = self._derivations[field_id]
        inputs = {input_id: self._values[input_id] for input_id in derivation.inputs}
        signal: Balance | None = None
        try:
            result = derivation.compute(inputs)
            if isinstance(result, Outcome):
                signal = result.balance
                result = result.value
            value = quantize_cents(result)
        except InvalidOperation:
            # Result has more digits than fit in cents
            logger.warning("derivation_overflow", field_id=field_id)
            value = ZERO
            if field_id in self._signals:
                signal = Balance.of(value)

        changed = value != self._values[field_id]
        self._values[field_id] = value
        if signal is not None:
            changed = changed or self._signals.get(field_id) is not signal
            self._signals[field_id] = signal
        return changed

    def update(self, field_id: str, raw: Any) -> set[str]:
        """Write a leaf and recompute its downstream fields.

        Returns:
            Ids of all fields that changed, including the leaf itself.
        """
        if not self.set_leaf(field_id, raw):
            return set()
        return {field_id} | self.recompute(field_id)

    def update_many(self, inputs: Mapping[str, Any]) -> set[str]:
        """Write several leaves, then recompute each affected subgraph once."""
        written = {fid for fid, raw in inputs.items() if self.set_leaf(fid, raw)}
        if not written:
            return set()
        affected: set[str] = set()
        for fid in written:
            affected |= self.downstream(fid)

        changed = set(written)
        for fid in self._order:
            if fid in affected and self._evaluate(fid):
                changed.add(fid)
        return changed

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def snapshot(self) -> FormState:
        """Export every field value partitioned by ledger."""
        return FormState(
            profile=self.profile,
            **{ledger.value: self.ledger_values(ledger) for ledger in Ledger},
        )

    def restore(self, state: FormState) -> set[str]:
        """Load a previously exported state.

        Raises:
            ProfileMismatchError: If the state belongs to another profile.
        """
        if state.profile != self.profile:
            raise ProfileMismatchError(
                "Saved state was prepared under a different filing profile"
            )
        return self.restore_values(state.fields())

    def restore_values(self, values: Mapping[str, Any]) -> set[str]:
        """Load leaf values from a flat mapping and recompute everything.

        Derived and unknown ids are ignored; derived values are always
        recomputed from the restored leaves. Leaves absent from the mapping
        are reset to zero.

        Returns:
            Ids of all fields whose value or signal changed.
        """
        changed: set[str] = set()
        ignored: list[str] = []
        for fid, spec in self._fields.items():
            if spec.is_derived:
                continue
            if self.set_leaf(fid, values.get(fid)):
                changed.add(fid)
        for fid in values:
            spec = self._fields.get(fid)
            if spec is None or spec.is_derived:
                ignored.append(fid)
        if ignored:
            logger.debug("restore_ignored_fields", fields=sorted(ignored))
        return changed | self.recompute()
