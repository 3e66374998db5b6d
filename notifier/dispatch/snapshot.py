"""Audit snapshot of a composed message, stored as delivery_records.payload_json.

The snapshot keeps enough to rebuild the message for an automatic retry.
Variables of security-exempt categories (reset links, verification codes)
are never stored, so those messages are only retried by their caller.
"""

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from notifier.domain.models import ComposedMessage, DeliveryRecord, TemplateReference
from notifier.logging import get_logger
from notifier.policy.categories import is_security_exempt

logger = get_logger(__name__, component="dispatcher")


def build_payload_snapshot(message: ComposedMessage) -> str:
    snapshot: Dict[str, Any] = {
        "template_reference": message.template_reference.value,
        "sender_identity": message.sender_identity,
        "subject": message.subject,
        "language": message.language,
        "variable_keys": message.variable_keys(),
        "attachments": [attachment.filename for attachment in message.attachments],
    }
    if not is_security_exempt(message.category):
        snapshot["variables"] = dict(message.variables)
    return json.dumps(snapshot, ensure_ascii=False, sort_keys=True)


def rebuild_from_snapshot(record: DeliveryRecord) -> Optional[ComposedMessage]:
    """
    Rebuild the ComposedMessage for a delivery record from its snapshot.

    Returns None when the record cannot be rebuilt faithfully: no snapshot,
    no stored variables (security-exempt), or attachments whose bytes were
    never stored.
    """
    if not record.payload_json:
        return None

    try:
        snapshot = json.loads(record.payload_json)
    except ValueError:
        logger.warning(
            "Unreadable payload snapshot",
            extra={"event": "dispatch.snapshot.unreadable", "idempotency_key": record.idempotency_key},
        )
        return None

    if snapshot.get("attachments") or "variables" not in snapshot:
        return None

    try:
        return ComposedMessage(
            recipient_address=record.recipient_address,
            sender_identity=snapshot["sender_identity"],
            template_reference=TemplateReference(snapshot["template_reference"]),
            variables=snapshot["variables"],
            category=record.category,
            idempotency_key=record.idempotency_key,
            owner_id=record.owner_id,
            subject=snapshot.get("subject"),
            language=snapshot.get("language") or record.language or "en",
        )
    except (KeyError, ValueError, ValidationError) as e:
        logger.warning(
            f"Cannot rebuild message from snapshot: {e}",
            extra={"event": "dispatch.snapshot.invalid", "idempotency_key": record.idempotency_key},
        )
        return None
