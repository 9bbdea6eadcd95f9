from datetime import date
from decimal import Decimal

import pytest

from budget.csv_io import (
    ColumnMapping,
    assign_category,
    build_preview,
    detect_columns,
    export_csv,
    import_purchases,
    is_credit,
    parse_import_amount,
    parse_import_date,
    purchases_to_rows,
    read_csv_text,
    toggle_row,
)
from budget.domain import Category, Purchase
from budget.errors import ImportFormatError
from budget.events import EventBus
from budget.store import InMemoryStore

CHASE = """Transaction Date,Post Date,Description,Category,Type,Amount
10/05/2026,10/06/2026,Coffee Shop ,Food & Drink,Sale,-4.50
10/07/2026,10/08/2026,"Hardware, Inc.",Home,Sale,-23.10
10/08/2026,10/08/2026,Payment Thank You,,Payment,500.00
10/09/2026,10/09/2026,Zero row,Misc,Sale,0
13/40/2026,10/10/2026,Bad date,Misc,Sale,-8.00
"""

EXISTING = (
    Purchase("p1", "u1", "c1", "coffee shop", Decimal("4.50"), date(2026, 10, 5)),
)


def preview_from(text=CHASE, existing=EXISTING):
    headers, rows = read_csv_text(text)
    return build_preview(headers, rows, detect_columns(headers, "chase"), existing, "c1")


def test_export_quotes_commas_and_quotes():
    out = export_csv([{"Name": "Brunch, with friends", "Notes": 'said "hi"', "Amount": "72.40"}])
    assert out == 'Name,Notes,Amount\n"Brunch, with friends","said ""hi""",72.40\n'


def test_export_empty():
    assert export_csv([]) == ""
    assert export_csv([], headers=["Date", "Name"]) == "Date,Name\n"


def test_purchases_to_rows():
    cats = (Category(id="c1", user_id="u1", name="Food", percentage=Decimal("50")),)
    (row,) = purchases_to_rows(EXISTING, cats)
    assert row == {"Date": "2026-10-05", "Name": "coffee shop", "Category": "Food", "Amount": "4.50", "Notes": ""}


def test_detect_columns_per_format():
    chase = detect_columns(["Transaction Date", "Post Date", "Description", "Category", "Type", "Amount"], "chase")
    assert chase == ColumnMapping(date="Transaction Date", name="Description", amount="Amount", category="Category")

    discover = detect_columns(["Trans. Date", "Post Date", "Description", "Amount", "Category"], "discover")
    assert discover.date == "Trans. Date"

    amazon = detect_columns(["Order ID", "Order Date", "Product Name", "Total Owed"], "amazon")
    assert (amazon.date, amazon.name, amazon.amount) == ("Order Date", "Product Name", "Total Owed")
    assert not detect_columns(["Foo", "Bar"], "chase").complete


def test_parse_import_values():
    assert parse_import_date("10/05/2026") == date(2026, 10, 5)
    assert parse_import_date("2026-10-05") == date(2026, 10, 5)
    assert parse_import_date("10-05-2026") == date(2026, 10, 5)
    assert parse_import_date("2026-10-05T23:30:00Z") == date(2026, 10, 5)
    assert parse_import_date("13/40/2026") is None
    assert parse_import_date("") is None

    assert parse_import_amount("-$1,234.50") == Decimal("1234.50")
    assert parse_import_amount("n/a") is None
    assert is_credit("CASHBACK BONUS REDEMPTION")
    assert not is_credit("Grocery Outlet")


def test_preview_drops_credits_and_flags_duplicates():
    preview = preview_from()

    assert [r.name for r in preview] == ["Coffee Shop", "Hardware, Inc.", "Bad date"]
    coffee, hardware, bad = preview
    assert coffee.is_duplicate and not coffee.selected
    assert hardware.amount == Decimal("23.10") and hardware.selected
    assert bad.date is None


def test_preview_needs_complete_mapping():
    with pytest.raises(ImportFormatError):
        build_preview(["Foo"], [["1"]], ColumnMapping(date="Foo"), (), "c1")


def test_toggle_and_assign():
    preview = preview_from()
    hardware = preview[1].row_index

    changed = assign_category(toggle_row(preview, hardware), hardware, "c2")
    assert changed[1].category_id == "c2"
    assert changed[1].selected is False
    assert preview[1].selected is True


@pytest.mark.asyncio
async def test_import_writes_selected_rows():
    store = InMemoryStore(bus=EventBus())

    result = await import_purchases(store, "u1", preview_from())

    assert (result.success, result.failed, result.skipped_duplicates) == (1, 1, 1)
    (purchase,) = await store.get_purchases("u1")
    assert purchase.name == "Hardware, Inc."
    assert purchase.notes == "Imported from CSV"
