"""CSV export of the current view and CSV import of bank/store exports.

Import works in three steps: read the file with pandas, map the
date/description/amount columns using a source-format profile, then build a
preview that drops credits and flags rows already present in the store.
Only rows left selected in the preview are written.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, Literal, Mapping, Optional, Sequence

import pandas as pd
import structlog

from budget.domain import Category, Purchase
from budget.errors import ImportFormatError, StoreError
from budget.functional import PurchaseDraft
from budget.store import BudgetStore

logger = structlog.get_logger()

SourceFormat = Literal["discover", "chase", "amazon"]
SOURCE_FORMATS: tuple[str, ...] = ("discover", "chase", "amazon")

# Descriptions of card payments and credits, which are not purchases
CREDIT_MARKERS = (
    "payment",
    "refund",
    "cashback bonus",
    "rewards credit",
    "credit adjustment",
)

DUPLICATE_AMOUNT_TOLERANCE = Decimal("0.01")
IMPORT_NOTE = "Imported from CSV"

_MDY_SLASH = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_YMD = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_MDY_DASH = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_csv(records: Sequence[Mapping[str, object]], headers: Optional[Sequence[str]] = None) -> str:
    """Serialize records as CSV: one header row, then one row per record.

    Fields containing a comma or quote are quoted with inner quotes doubled.
    """
    if headers is None:
        if not records:
            return ""
        headers = list(records[0].keys())

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow(["" if record.get(h) is None else record.get(h) for h in headers])
    return buffer.getvalue()


def purchases_to_rows(
    purchases: Iterable[Purchase], categories: Iterable[Category] = ()
) -> list[dict[str, str]]:
    names = {c.id: c.name for c in categories}
    return [
        {
            "Date": p.date.isoformat(),
            "Name": p.name,
            "Category": names.get(p.category_id, ""),
            "Amount": f"{p.amount:.2f}",
            "Notes": p.notes,
        }
        for p in purchases
    ]


# ---------------------------------------------------------------------------
# Import: reading and column detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnMapping:
    date: str = ""
    name: str = ""
    amount: str = ""
    category: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.date and self.name and self.amount)


@dataclass(frozen=True)
class ImportRow:
    row_index: int
    raw_date: str
    date: Optional[date]
    name: str
    amount: Decimal
    category_id: str
    is_duplicate: bool = False
    selected: bool = True


@dataclass(frozen=True)
class ImportResult:
    success: int = 0
    failed: int = 0
    skipped_duplicates: int = 0


def read_csv_text(text: str) -> tuple[list[str], list[list[str]]]:
    """Headers and string rows of an uploaded CSV."""
    if not text.strip():
        return [], []
    df = pd.read_csv(
        io.StringIO(text.strip()),
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
    )
    headers = [str(h).strip() for h in df.columns]
    rows = [[str(v).strip() for v in row] for row in df.itertuples(index=False, name=None)]
    return headers, rows


def _first(headers: Sequence[str], match) -> str:
    for header in headers:
        if match(header.lower()):
            return header
    return ""


def detect_columns(headers: Sequence[str], source_format: SourceFormat = "discover") -> ColumnMapping:
    if source_format == "amazon":
        return ColumnMapping(
            date=_first(headers, lambda h: h == "order date"),
            name=_first(headers, lambda h: h == "product name"),
            amount=_first(headers, lambda h: h == "total owed"),
            category=_first(headers, lambda h: "category" in h or "type" in h),
        )

    # Chase and Discover: transaction date beats post date
    date_col = (
        _first(headers, lambda h: "transaction" in h and "date" in h)
        or _first(headers, lambda h: "trans." in h and "date" in h)
        or _first(headers, lambda h: "date" in h)
    )
    return ColumnMapping(
        date=date_col,
        name=_first(headers, lambda h: "description" in h or "name" in h or "merchant" in h),
        amount=_first(headers, lambda h: "amount" in h or "debit" in h or "charge" in h),
        category=_first(headers, lambda h: "category" in h or "type" in h),
    )


# ---------------------------------------------------------------------------
# Import: value parsing
# ---------------------------------------------------------------------------


def parse_import_date(raw: str) -> Optional[date]:
    """Parse the date formats seen in supported exports, or return None."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        if "T" in text:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc)
            return parsed.date()
    except ValueError:
        pass

    for pattern, order in ((_MDY_SLASH, "mdy"), (_YMD, "ymd"), (_MDY_DASH, "mdy")):
        match = pattern.search(text)
        if not match:
            continue
        a, b, c = (int(g) for g in match.groups())
        try:
            return date(a, b, c) if order == "ymd" else date(c, a, b)
        except ValueError:
            continue
    return None


def parse_import_amount(raw: str) -> Optional[Decimal]:
    """Absolute value of an amount; exports sign charges differently."""
    text = (raw or "").replace("$", "").replace(",", "").strip()
    try:
        value = Decimal(text or "0")
    except InvalidOperation:
        return None
    return abs(value) if value.is_finite() else None


def is_credit(description: str) -> bool:
    lowered = description.lower()
    return any(marker in lowered for marker in CREDIT_MARKERS)


def is_duplicate(name: str, amount: Decimal, on: Optional[date], existing: Iterable[Purchase]) -> bool:
    """Same name (case/whitespace-insensitive), amount within a cent, same date."""
    if on is None:
        return False
    key = name.lower().strip()
    return any(
        p.name.lower().strip() == key
        and abs(p.amount - amount) < DUPLICATE_AMOUNT_TOLERANCE
        and p.date == on
        for p in existing
    )


# ---------------------------------------------------------------------------
# Import: preview and write
# ---------------------------------------------------------------------------


def build_preview(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    mapping: ColumnMapping,
    existing: Sequence[Purchase],
    default_category_id: str,
) -> tuple[ImportRow, ...]:
    if not mapping.complete:
        raise ImportFormatError(
            f"Could not find date, description and amount columns in {list(headers)}"
        )

    date_idx = headers.index(mapping.date)
    name_idx = headers.index(mapping.name)
    amount_idx = headers.index(mapping.amount)

    preview: list[ImportRow] = []
    for i, row in enumerate(rows):
        cell = lambda idx: row[idx] if idx < len(row) else ""
        amount = parse_import_amount(cell(amount_idx))
        name = cell(name_idx).replace('"', "").strip()
        if amount is None or amount <= 0 or not name or is_credit(name):
            continue

        raw_date = cell(date_idx)
        on = parse_import_date(raw_date)
        duplicate = is_duplicate(name, amount, on, existing)
        preview.append(ImportRow(
            row_index=i,
            raw_date=raw_date,
            date=on,
            name=name,
            amount=amount,
            category_id=default_category_id,
            is_duplicate=duplicate,
            selected=not duplicate,
        ))
    return tuple(preview)


def assign_category(preview: Sequence[ImportRow], row_index: int, category_id: str) -> tuple[ImportRow, ...]:
    return tuple(
        replace(r, category_id=category_id) if r.row_index == row_index else r for r in preview
    )


def toggle_row(preview: Sequence[ImportRow], row_index: int) -> tuple[ImportRow, ...]:
    return tuple(
        replace(r, selected=not r.selected) if r.row_index == row_index else r for r in preview
    )


async def import_purchases(
    store: BudgetStore, user_id: str, preview: Sequence[ImportRow]
) -> ImportResult:
    """Create one purchase per selected row; unparseable dates count as failed."""
    success = failed = 0
    skipped = sum(1 for r in preview if not r.selected and r.is_duplicate)

    for item in preview:
        if not item.selected:
            continue
        if item.date is None or not item.category_id:
            failed += 1
            continue
        try:
            await store.create_purchase(user_id, PurchaseDraft(
                name=item.name,
                amount=item.amount,
                date=item.date,
                category_id=item.category_id,
                notes=IMPORT_NOTE,
            ))
            success += 1
        except StoreError as exc:
            logger.warning("import_row_failed", row=item.row_index, error=str(exc))
            failed += 1

    logger.info("csv_imported", user_id=user_id, success=success, failed=failed, skipped=skipped)
    return ImportResult(success=success, failed=failed, skipped_duplicates=skipped)
