"""Test helpers: in-process fakes for the provider, consent service and clock."""

from .fakes import FIXED_NOW, FailingConsentService, FakeClock, FakeProvider, make_message

__all__ = [
    "FIXED_NOW",
    "FakeClock",
    "FakeProvider",
    "FailingConsentService",
    "make_message",
]
