from unittest.mock import MagicMock

import pytest
from rich.panel import Panel
from rich.table import Table

from mpesapy.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    return ConsoleDisplay(console=mock_console)


def _printed(mock_console: MagicMock):
    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    return args[0]


def test_display_result_renders_rows(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_result("Payout Accepted", {"conversation_id": "AG_1", "request_id": None})
    table = _printed(mock_console)
    assert isinstance(table, Table)
    assert table.title == "Payout Accepted"
    assert table.row_count == 2
    assert list(table.columns[0].cells) == ["conversation_id", "request_id"]
    assert list(table.columns[1].cells) == ["AG_1", "-"]


def test_display_error_uses_custom_title(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Insufficient funds", title="Payout failed (payout)")
    panel = _printed(mock_console)
    assert isinstance(panel, Panel)
    assert "Payout failed (payout)" in panel.title
    assert panel.border_style == "red"


def test_display_error_default_title(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("boom")
    assert "Error" in _printed(mock_console).title


@pytest.mark.parametrize("method, title, style", [
    ("display_info", "Info", "blue"),
    ("display_warning", "Warning", "yellow"),
])
def test_info_and_warning_panels(console_display, mock_console, method, title, style):
    getattr(console_display, method)("message")
    panel = _printed(mock_console)
    assert title in panel.title
    assert panel.border_style == style
