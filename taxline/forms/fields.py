"""Field descriptors shared by the form graph, state and presenter."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class FieldKind(str, Enum):
    """Whether a field is user-editable or computed."""

    LEAF = "leaf"
    DERIVED = "derived"


class ValueType(str, Enum):
    """What the numeric value of a field means."""

    AMOUNT = "amount"
    FLAG = "flag"  # checkbox stored as 0 or 1


class Ledger(str, Enum):
    """Sub-ledgers of a return."""

    INCOME = "income"
    DEDUCTIONS = "deductions"  # deductions, tax and credits
    PAYMENTS = "payments"
    INDIANA = "indiana"


class Balance(str, Enum):
    """Tri-state result of a payments-versus-tax comparison."""

    SURPLUS = "surplus"
    DEFICIT = "deficit"
    EXACT = "exact"

    @classmethod
    def of(cls, amount: Decimal) -> "Balance":
        if amount > 0:
            return cls.SURPLUS
        if amount < 0:
            return cls.DEFICIT
        return cls.EXACT


@dataclass(frozen=True)
class FieldSpec:
    """Static description of one line on the return.

    Attributes:
        field_id: Stable identifier, e.g. "line11a" or "in_line7".
        label: Short description shown next to the line.
        ledger: Sub-ledger the field belongs to.
        kind: Leaf (editable) or derived (computed).
        value_type: Amount or checkbox flag.
    """

    field_id: str
    label: str
    ledger: Ledger
    kind: FieldKind = FieldKind.LEAF
    value_type: ValueType = ValueType.AMOUNT

    @property
    def is_derived(self) -> bool:
        return self.kind is FieldKind.DERIVED

    @property
    def is_flag(self) -> bool:
        return self.value_type is ValueType.FLAG
