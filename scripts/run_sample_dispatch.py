#!/usr/bin/env python3
"""Sample dispatch harness for end-to-end validation.

Composes a handful of messages and sends each of them twice through the
full pipeline (policy, contract validation, idempotency claim, provider)
against a local SQLite database. The mock provider is used, so no network
requests are made. The second pass must not reach the provider.

Usage:
    python scripts/run_sample_dispatch.py

    # Use a config file and a custom database path
    python scripts/run_sample_dispatch.py --config config.yaml --database /tmp/sample.db
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from notifier.composer import (
    LowCreditsData,
    PasswordResetData,
    PurchaseReceiptData,
    UserContext,
    compose_low_credits,
    compose_password_reset,
    compose_purchase_receipt,
)
from notifier.config.loader import build_app_config, load_config
from notifier.contracts.validator import ContractValidator
from notifier.dispatch import Dispatcher, MockProvider
from notifier.logging.config import configure_logging
from notifier.persistence.database import close_database, get_session, init_database
from notifier.persistence.repositories import DeliveryRecordRepository
from notifier.policy.engine import PolicyEngine, StaticConsentService


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def print_results_table(rows):
    """Print one row per dispatch attempt."""
    key_width = max(len(row[0]) for row in rows)
    print(f"{'Idempotency key':<{key_width}}  {'Pass':<4}  {'Outcome':<28}  Message id")
    print("-" * (key_width + 60))
    for key, attempt, outcome, message_id in rows:
        print(f"{key:<{key_width}}  {attempt:<4}  {outcome:<28}  {message_id or '-'}")


def describe(result) -> str:
    if result.skipped:
        return f"skipped ({result.reason})"
    if result.success:
        return "sent"
    return f"failed ({result.error})"


def sample_messages(app_config, now):
    ana = UserContext(owner_id="U1", email="ana@example.com", first_name="Ana", preferred_language="pt")
    bob = UserContext(owner_id="U2", email="bob@example.com", first_name="Bob", preferred_language="en")

    return [
        compose_purchase_receipt(
            PurchaseReceiptData(
                user=ana,
                payment_id="P1",
                provider="mercadopago",
                credits_amount=10,
                amount_paid=49.9,
                currency="BRL",
                new_balance=12,
                paid_at=now,
            ),
            app_config,
            now=now,
        ),
        compose_low_credits(
            LowCreditsData(user=bob, current_credits=1, threshold=2),
            app_config,
            now=now,
        ),
        compose_password_reset(
            PasswordResetData(user=bob, reset_token="sample-reset-token"),
            app_config,
            now=now,
        ),
    ]


def main():
    """Main entry point for the sample dispatch harness."""
    parser = argparse.ArgumentParser(
        description="Send sample messages through the full dispatch pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=Path("data/sample_dispatch.db"),
        help="Path to SQLite database (default: data/sample_dispatch.db)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    args = parser.parse_args()
    load_dotenv()

    print_header("Transactional Notifier - Sample Dispatch Harness")

    if args.config:
        app_config, _ = load_config(args.config)
    else:
        app_config = build_app_config({})

    configure_logging(level=args.log_level, format_type=app_config.logging.format, environment="validation")

    database_url = f"sqlite:///{args.database.absolute()}"
    print(f"Database: {args.database}")
    init_database(database_url)

    provider = MockProvider()
    dispatcher = Dispatcher.from_config(
        app_config,
        policy_engine=PolicyEngine(StaticConsentService()),
        provider=provider,
        validator=ContractValidator(),
    )

    now = datetime.now(timezone.utc)
    messages = sample_messages(app_config, now)

    rows = []
    for attempt in (1, 2):
        batch = dispatcher.send_batch(messages)
        for result in batch.results:
            rows.append((result.idempotency_key, str(attempt), describe(result), result.provider_message_id))

    print_header("Dispatch Results")
    print_results_table(rows)

    with get_session() as session:
        counts = DeliveryRecordRepository(session).count_by_status()

    print_header("Delivery Records")
    for status, count in counts.items():
        print(f"  {status:<10} {count}")
    print(f"\nProvider calls: {provider.sent_count} (expected {len(messages)})")

    close_database()
    return 0 if provider.sent_count == len(messages) else 1


if __name__ == "__main__":
    sys.exit(main())
