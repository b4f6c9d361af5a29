# reconciler/core/formats.py

"""
Bank layout recognition.

Each known layout lists header aliases per semantic field. Layouts are
tried in table order and the first one that resolves date, description
and a value column (amount, or debit + credit) wins. The generic layout
is always tried last.
"""

import re
from dataclasses import dataclass
from typing import Optional

from reconciler.core.errors import InvalidColumnMappingError, UnrecognizedLayoutError
from reconciler.models import ColumnMapping

# Aliases this short only match a header exactly ("dr" would hit "address")
MIN_CONTAINMENT_ALIAS_LENGTH = 3


@dataclass(frozen=True)
class BankLayout:
    """Header aliases for one statement layout."""

    name: str
    date: tuple[str, ...]
    description: tuple[str, ...]
    amount: tuple[str, ...] = ()
    debit: tuple[str, ...] = ()
    credit: tuple[str, ...] = ()
    # Headers that must all be present for this layout to be considered
    signature: tuple[str, ...] = ()


@dataclass(frozen=True)
class DetectedLayout:
    name: str
    mapping: ColumnMapping


# ============================================
# Layout table
# ============================================

GENERIC_LAYOUT = BankLayout(
    name="Generic",
    date=("date", "transaction date", "posting date", "posted date", "trans date", "value date"),
    description=(
        "description",
        "details",
        "narrative",
        "memo",
        "particulars",
        "payee",
        "merchant",
        "transaction description",
    ),
    amount=("amount", "value", "transaction amount"),
    debit=("debit", "withdrawal", "withdrawals", "money out", "paid out", "dr"),
    credit=("credit", "deposit", "deposits", "money in", "paid in", "cr"),
)

BANK_LAYOUTS: tuple[BankLayout, ...] = (
    BankLayout(
        name="Capital One",
        date=("transaction date",),
        description=("description",),
        debit=("debit",),
        credit=("credit",),
        signature=("card no.", "posted date"),
    ),
    BankLayout(
        name="Chase Credit Card",
        date=("transaction date",),
        description=("description",),
        amount=("amount",),
        signature=("post date", "category", "type"),
    ),
    BankLayout(
        name="Chase Checking",
        date=("posting date",),
        description=("description",),
        amount=("amount",),
        signature=("details", "balance"),
    ),
    BankLayout(
        name="Discover",
        date=("trans. date",),
        description=("description",),
        amount=("amount",),
        signature=("trans. date", "post date"),
    ),
    BankLayout(
        name="Bank of America",
        date=("date", "posted date"),
        description=("description", "payee"),
        amount=("amount",),
        signature=("running bal.",),
    ),
    BankLayout(
        name="PayPal",
        date=("date",),
        description=("name", "type"),
        amount=("net",),
        signature=("gross", "net"),
    ),
)

# Canonical headers for exporters that want to skip auto-detection
TEMPLATE_HEADERS = ("Date", "Description", "Amount")

# The generic layout accepts almost anything, so it must stay at the end
GENERIC_LAYOUT_LAST = True

KNOWN_LAYOUTS: tuple[BankLayout, ...] = (
    BANK_LAYOUTS + (GENERIC_LAYOUT,) if GENERIC_LAYOUT_LAST else (GENERIC_LAYOUT,) + BANK_LAYOUTS
)


# ============================================
# Matching
# ============================================

def normalize_header(name: str) -> str:
    """Lowercase, dashes/underscores to spaces, whitespace collapsed."""
    name = str(name).lower().strip()
    name = re.sub(r"[_-]", " ", name)
    return re.sub(r"\s+", " ", name).strip()


def find_column(
    headers: list[str],
    aliases: tuple[str, ...],
    taken: set[str] = frozenset(),
) -> Optional[str]:
    """
    Return the first header matching one of the aliases.

    Exact matches are preferred over containment. Headers in ``taken`` are
    never returned.
    """
    normalized = [(h, normalize_header(h)) for h in headers if h not in taken and h]
    alias_keys = [normalize_header(a) for a in aliases]

    for alias in alias_keys:
        for header, key in normalized:
            if key == alias:
                return header

    for alias in alias_keys:
        if len(alias) < MIN_CONTAINMENT_ALIAS_LENGTH:
            continue
        for header, key in normalized:
            if alias in key:
                return header

    return None


def match_layout(headers: list[str], layout: BankLayout) -> Optional[ColumnMapping]:
    """Resolve a layout against headers; None when it doesn't fit."""
    if layout.signature:
        present = {normalize_header(h) for h in headers}
        if not all(normalize_header(s) in present for s in layout.signature):
            return None

    taken: set[str] = set()

    date_column = find_column(headers, layout.date, taken)
    if not date_column:
        return None
    taken.add(date_column)

    description_column = find_column(headers, layout.description, taken)
    if not description_column:
        return None
    taken.add(description_column)

    # A debit/credit pair wins over a single amount column so that
    # "Debit Amount"/"Credit Amount" isn't read as one signed column
    debit_column = find_column(headers, layout.debit, taken) if layout.debit else None
    credit_column = None
    if debit_column:
        credit_column = find_column(headers, layout.credit, taken | {debit_column})

    if debit_column and credit_column:
        return ColumnMapping(
            date_column=date_column,
            description_column=description_column,
            debit_column=debit_column,
            credit_column=credit_column,
        )

    amount_column = find_column(headers, layout.amount, taken) if layout.amount else None
    if amount_column:
        return ColumnMapping(
            date_column=date_column,
            description_column=description_column,
            amount_column=amount_column,
        )

    return None


def detect_layout(
    headers: list[str],
    layouts: tuple[BankLayout, ...] = KNOWN_LAYOUTS,
) -> DetectedLayout:
    """
    Pick the first layout in table order that resolves against the headers.

    Raises UnrecognizedLayoutError when none does.
    """
    for layout in layouts:
        mapping = match_layout(headers, layout)
        if mapping is not None:
            return DetectedLayout(name=layout.name, mapping=mapping)

    raise UnrecognizedLayoutError(
        "Could not auto-detect column mapping. Please specify column mapping manually.",
        headers=headers,
    )


def validate_mapping(headers: list[str], mapping: ColumnMapping) -> ColumnMapping:
    """Check that a caller-supplied mapping only names existing headers."""
    missing = [c for c in mapping.columns() if c not in headers]
    if missing:
        raise InvalidColumnMappingError(
            f"Column mapping refers to missing columns: {', '.join(missing)}",
            headers=headers,
        )
    return mapping
