import csv
import io
from decimal import Decimal

from config import load_settings
from export import export_csv, export_pdf
from models import Expense, Group, Member
from settlement import calculate_settlement
from utils import format_currency


def _group():
    group = Group(name="Rent & bills",
                  members=[Member(id="a", name="Ann"), Member(id="b", name="Ben")])
    group.expenses.append(Expense(description="Rent", amount=Decimal("1000.00"),
                                  payer_id="a", participant_ids=["a", "b"]))
    return group


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("-30"), "€") == "-€30.00"


def test_csv_report_sections():
    group = _group()
    content = export_csv(group, calculate_settlement(group)).decode("utf-8-sig")
    rows = list(csv.reader(io.StringIO(content)))

    assert rows[0] == ["Group: Rent & bills"]
    assert ["Ann", "$500.00"] in rows
    assert ["Ben", "-$500.00"] in rows
    assert rows[-1] == ["Ben", "Ann", "$500.00"]


def test_pdf_report_renders():
    group = _group()
    content = export_pdf(group, calculate_settlement(group))
    assert content.startswith(b"%PDF")


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SPLITTER_PORT", "8080")
    monkeypatch.setenv("SPLITTER_CURRENCY", "€")
    settings = load_settings()

    assert settings.port == 8080
    assert settings.currency == "€"
    assert settings.host == "0.0.0.0"
