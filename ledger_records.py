from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, InvalidOperation
from typing import Optional

DEPOSIT = "deposit"
WITHDRAWAL = "withdrawal"
DISPUTE = "dispute"
RESOLVE = "resolve"
CHARGEBACK = "chargeback"

AMOUNT_EVENT_TYPES = {DEPOSIT, WITHDRAWAL}

MAX_CLIENT_ID = 65535
MAX_TX_ID = 4294967295

AMOUNT_PRECISION = Decimal(".0001")
# 4294967296 tx ids under this limit still sum within the default 28 digit decimal context
AMOUNT_LIMIT = Decimal(10) ** 14


class RecordError(ValueError):
    pass


@dataclass
class Event:
    type: str
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None


@dataclass
class Account:
    client_id: int
    available: Decimal = Decimal(0)
    held: Decimal = Decimal(0)
    locked: bool = False

    @property
    def total(self):
        return self.available + self.held


@dataclass
class TransactionRecord:
    transaction_id: int
    client_id: int
    kind: str
    amount: Decimal
    disputed: bool = False
    charged_back: bool = False


class RecordParser:

    def __init__(self):
        self.type_field_idx = 0
        self.client_field_idx = 1
        self.tx_field_idx = 2
        self.amount_field_idx = 3

    def discover_field_order(self, header):
        # False means the row is data, not a header, and the default order stays
        names = [str(name).strip().lower() for name in header]
        if not {"type", "client", "tx"}.issubset(names):
            return False

        self.type_field_idx = names.index("type")
        self.client_field_idx = names.index("client")
        self.tx_field_idx = names.index("tx")
        self.amount_field_idx = names.index("amount") if "amount" in names else None
        return True

    def parse(self, row):
        fields = [str(field).strip() for field in row]
        for field in fields:
            try:
                field.encode("utf-8")
            except UnicodeEncodeError:
                raise RecordError("row is not valid utf-8")

        required = max(self.type_field_idx, self.client_field_idx, self.tx_field_idx)
        if len(fields) <= required:
            raise RecordError(f"expected at least {required + 1} fields, got {len(fields)}")

        record_type = fields[self.type_field_idx]
        client_id = self.parse_id(fields[self.client_field_idx], "client_id", MAX_CLIENT_ID)
        tx_id = self.parse_id(fields[self.tx_field_idx], "tx_id", MAX_TX_ID)

        raw_amount = ""
        if self.amount_field_idx is not None and self.amount_field_idx < len(fields):
            raw_amount = fields[self.amount_field_idx]

        amount = None
        if raw_amount:
            amount = self.get_normalized_amount(raw_amount)

        if record_type in AMOUNT_EVENT_TYPES:
            if amount is None:
                raise RecordError(f"{record_type} requires an amount")
            if amount < 0:
                raise RecordError(f"negative amount {raw_amount!r} not allowed")
        else:
            # only the amount recorded against the original tx is ever used
            amount = None

        return Event(record_type, client_id, tx_id, amount)

    def parse_id(self, value, field_name, upper_bound):
        if not (value.isascii() and value.isdigit()):
            raise RecordError(f"invalid {field_name} {value!r}")
        parsed = int(value)
        if parsed > upper_bound:
            raise RecordError(f"invalid {field_name} {value!r}")
        return parsed

    def get_normalized_amount(self, value):
        # chose to round down in all cases.
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise RecordError(f"invalid amount {value!r}")
        if not amount.is_finite():
            raise RecordError(f"invalid amount {value!r}")
        if abs(amount) >= AMOUNT_LIMIT:
            raise RecordError(f"amount {value!r} exceeds limit of {AMOUNT_LIMIT}")
        return amount.quantize(AMOUNT_PRECISION, rounding=ROUND_DOWN)
