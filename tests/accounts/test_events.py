import pytest

from accounts.events import (
    OtherMessage,
    Subscription,
    SubscriptionStatus,
    UserFillsReport,
    WatchedAccount,
    decode_message,
)

ADDRESS = "0x" + "AB" * 20


def test_watched_account_is_normalized_to_lower_case():
    account = WatchedAccount(f"  {ADDRESS} ")
    assert account.address == ADDRESS.lower()
    assert str(account) == ADDRESS.lower()
    assert account == WatchedAccount(ADDRESS.lower())


@pytest.mark.parametrize("raw", ["", "0x123", "ab" * 20, "0x" + "zz" * 20])
def test_watched_account_rejects_invalid_addresses(raw):
    with pytest.raises(ValueError):
        WatchedAccount(raw)


def test_subscription_active_flag():
    account = WatchedAccount(ADDRESS)
    assert Subscription(account=account, handle=1).is_active
    failed = Subscription(account=account, handle=None, status=SubscriptionStatus.FAILED_PENDING_RETRY)
    assert not failed.is_active


def test_decode_user_fills_report_preserves_order_and_raw_values():
    payload = {
        "channel": "user",
        "data": {
            "fills": [
                {"coin": "BTC", "side": "A", "sz": "1.50", "px": "60000.0", "dir": "Open Long", "time": 1700000000000},
                {"coin": "ETH", "side": "B", "sz": "2"},
            ]
        },
    }

    message = decode_message(payload)

    assert isinstance(message, UserFillsReport)
    assert [fill.coin for fill in message.fills] == ["BTC", "ETH"]
    first = message.fills[0]
    assert first.size == "1.50"
    assert first.price == "60000.0"
    assert first.direction == "Open Long"
    assert first.time == 1700000000000
    assert message.account is None


def test_decode_user_fills_report_carries_account_when_present():
    message = decode_message({"channel": "user", "data": {"user": "0xABC", "fills": [{"coin": "SOL", "side": "A", "sz": "10"}]}})
    assert isinstance(message, UserFillsReport)
    assert message.account == "0xabc"
    assert message.fills[0].account == "0xabc"


@pytest.mark.parametrize(
    "payload",
    [
        {"channel": "pong"},
        {"channel": "subscriptionResponse", "data": {"method": "subscribe"}},
        {"channel": "user", "data": {"funding": {"coin": "BTC"}}},
        {"channel": "trades", "data": []},
    ],
)
def test_decode_other_messages(payload):
    message = decode_message(payload)
    assert isinstance(message, OtherMessage)
    assert message.channel == payload["channel"]
