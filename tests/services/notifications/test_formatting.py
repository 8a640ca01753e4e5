import pytest

from accounts.events import FillEvent
from services.notifications.formatting import format_fill, format_fill_line, format_fills


@pytest.mark.parametrize(
    "side, coin, size, expected",
    [
        ("A", "BTC", "1.5", "Long BTC 1.5"),
        ("B", "ETH", "2", "Short ETH 2"),
        ("X", "SOL", "3", "Unknown SOL 3"),
        ("", "DOGE", "0.0100", "Unknown DOGE 0.0100"),
    ],
)
def test_format_fill_line(side, coin, size, expected):
    assert format_fill_line(side, coin, size) == expected


def test_format_fills_joins_lines_in_order():
    fills = [FillEvent(coin="BTC", side="A", size="1"), FillEvent(coin="ETH", side="B", size="2")]
    assert format_fill(fills[0]) == "Long BTC 1"
    assert format_fills(fills) == "Long BTC 1\nShort ETH 2"
