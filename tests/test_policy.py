"""Unit tests for the policy engine and category classification."""

import logging

import pytest

from notifier.domain.models import MessageCategory, TemplateReference
from notifier.policy import categories
from notifier.policy.engine import (
    OPTED_OUT_REASON,
    ConsentState,
    PolicyEngine,
    StaticConsentService,
    policy_summary,
)
from tests.helpers import FailingConsentService


class TestCategoryClassification:
    """Tests for the category table."""

    def test_every_category_classified(self):
        assert set(categories.CATEGORY_POLICIES) == set(MessageCategory)

    @pytest.mark.parametrize(
        "category,template",
        [
            (MessageCategory.WELCOME, TemplateReference.WELCOME_B2C),
            (MessageCategory.INTERVIEW_COMPLETE, TemplateReference.FEEDBACK),
            (MessageCategory.CREDITS_PURCHASE_RECEIPT, TemplateReference.TRANSACTIONAL),
            (MessageCategory.LOW_CREDITS_WARNING, TemplateReference.TRANSACTIONAL),
            (MessageCategory.PASSWORD_RESET, TemplateReference.TRANSACTIONAL),
            (MessageCategory.EMAIL_VERIFICATION, TemplateReference.TRANSACTIONAL),
            (MessageCategory.INTERVIEW_REMINDER, TemplateReference.TRANSACTIONAL),
        ],
    )
    def test_template_for_category(self, category, template):
        assert categories.template_for(category) == template

    def test_security_exempt_categories(self):
        exempt = {c for c in MessageCategory if categories.is_security_exempt(c)}
        assert exempt == {MessageCategory.PASSWORD_RESET, MessageCategory.EMAIL_VERIFICATION}

    def test_must_send_categories(self):
        must_send = {c for c in MessageCategory if categories.is_must_send(c)}
        assert must_send == {MessageCategory.CREDITS_PURCHASE_RECEIPT}

    def test_product_essential_is_informational(self):
        assert categories.is_product_essential(MessageCategory.INTERVIEW_COMPLETE)
        assert categories.requires_consent(MessageCategory.INTERVIEW_COMPLETE)

    def test_category_accepts_string_value(self):
        assert categories.get_category_policy("WELCOME").category == MessageCategory.WELCOME


class TestStaticConsentService:
    def test_opt_out_and_back_in(self):
        service = StaticConsentService()
        assert service.get_consent_state("U1") == ConsentState(transactional_opt_in=True)

        service.opt_out("U1")
        assert service.get_consent_state("U1").transactional_opt_in is False

        service.opt_in("U1")
        assert service.get_consent_state("U1").transactional_opt_in is True


class TestPolicyEngine:
    """Tests for PolicyEngine.can_send."""

    @pytest.mark.parametrize(
        "category",
        [
            MessageCategory.PASSWORD_RESET,
            MessageCategory.EMAIL_VERIFICATION,
            MessageCategory.CREDITS_PURCHASE_RECEIPT,
        ],
    )
    def test_exempt_categories_allowed_for_opted_out_owner(self, category):
        engine = PolicyEngine(StaticConsentService(opted_out=["U1"]))

        decision = engine.can_send("U1", category)

        assert decision.allowed is True

    def test_exempt_categories_skip_consent_lookup(self):
        consent = FailingConsentService()
        engine = PolicyEngine(consent)

        engine.can_send("U1", MessageCategory.PASSWORD_RESET)

        assert consent.calls == 0

    @pytest.mark.parametrize(
        "category",
        [
            MessageCategory.WELCOME,
            MessageCategory.INTERVIEW_COMPLETE,
            MessageCategory.LOW_CREDITS_WARNING,
            MessageCategory.INTERVIEW_REMINDER,
        ],
    )
    def test_opted_out_owner_blocked(self, category):
        engine = PolicyEngine(StaticConsentService(opted_out=["U1"]))

        decision = engine.can_send("U1", category)

        assert decision.allowed is False
        assert decision.reason == OPTED_OUT_REASON

    def test_opted_in_owner_allowed(self):
        engine = PolicyEngine(StaticConsentService(opted_out=["someone-else"]))

        assert engine.can_send("U1", MessageCategory.WELCOME).allowed is True

    def test_consent_failure_fails_open(self, caplog):
        """A consent lookup failure allows the send and logs a warning."""
        consent = FailingConsentService()
        engine = PolicyEngine(consent)

        with caplog.at_level(logging.WARNING):
            decision = engine.can_send("U1", MessageCategory.LOW_CREDITS_WARNING)

        assert decision.allowed is True
        assert consent.calls == 1
        assert any(
            getattr(r, "event", None) == "policy.consent_lookup_failed" for r in caplog.records
        )


def test_policy_summary_lists_every_category():
    summary = policy_summary()

    assert len(summary) == len(MessageCategory)
    receipt = next(row for row in summary if row["category"] == "CREDITS_PURCHASE_RECEIPT")
    assert receipt["must_send"] is True
    assert receipt["requires_consent"] is False
    assert receipt["template"] == "transactional"
