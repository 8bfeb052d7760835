"""
Pytest configuration and shared fixtures.
"""
import os
import sys
import pytest

# Add backend/ to path so `sheet_intel`, `app` and `extensions` import as in production
backend_root = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'backend')
if backend_root not in sys.path:
    sys.path.insert(0, backend_root)


@pytest.fixture
def quarterly_grid():
    """Small P&L with quarter headers, a blank-label row and a total row."""
    return [
        ["($M)", "1Q23", "2Q23", "3Q23", "4Q23"],
        ["Revenue", 100, 110, 120, 130],
        ["Cost of Sales", 40, 44, 48, 52],
        ["Subtotal", 60, 66, 72, 78],
        ["Gross Margin %", 0.6, 0.6, 0.6, 0.6],
        ["", 1, 2, 3, 4],
        ["Total Revenue", 100, 110, 120, 130],
    ]


@pytest.fixture
def quarterly_formats():
    return [
        ["General"] * 5,
        ["General", "$#,##0", "$#,##0", "$#,##0", "$#,##0"],
        ["General", "#,##0", "#,##0", "#,##0", "#,##0"],
        ["General", "#,##0", "#,##0", "#,##0", "#,##0"],
        ["General", "0.0%", "0.0%", "0.0%", "0.0%"],
        ["General"] * 5,
        ["General", "$#,##0", "$#,##0", "$#,##0", "$#,##0"],
    ]


@pytest.fixture
def quarterly_formulas():
    return [
        ["($M)", "1Q23", "2Q23", "3Q23", "4Q23"],
        ["Revenue", 100, 110, 120, 130],
        ["Cost of Sales", 40, 44, 48, 52],
        ["Subtotal", "=B2-B3", "=C2-C3", "=D2-D3", "=E2-E3"],
        ["Gross Margin %", "=ROUND(B4/B2,2)", "=ROUND(C4/C2,2)", "=ROUND(D4/D2,2)", "=ROUND(E4/E2,2)"],
        ["", 1, 2, 3, 4],
        ["Total Revenue", "=SUM(B2)", "=SUM(C2)", "=SUM(D2)", "=SUM(E2)"],
    ]


class FakeProvider:
    """Stands in for an AI provider; records every prompt it receives."""

    def __init__(self, reply="Revenue grew 30% across the year.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, system, user, max_tokens=3072):
        self.calls.append({'system': system, 'user': user, 'max_tokens': max_tokens})
        if self.error is not None:
            raise self.error
        return self.reply

    def test_connection(self):
        return self.error is None


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_class():
    return FakeProvider
