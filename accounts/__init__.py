"""
Account domain types: watched accounts, subscription slots and the account
events pushed by the venue.
"""

from .events import (  # noqa: F401
    EventMessage,
    FillEvent,
    OtherMessage,
    Subscription,
    SubscriptionStatus,
    UserFillsReport,
    WatchedAccount,
    decode_message,
)
