"""Outbox repository - reservation events for asynchronous notification.

Events are written in the same transaction as the state change they describe,
so a failing mail sender can never undo a committed booking or cancellation.
Payloads carry identifiers and amounts only (no PII).
"""

import json

from psycopg2.extensions import cursor as PgCursor

RESERVATION_CREATED = "RESERVATION_CREATED"
RESERVATION_DATES_MODIFIED = "RESERVATION_DATES_MODIFIED"
RESERVATION_STATUS_CHANGED = "RESERVATION_STATUS_CHANGED"
RESERVATION_CANCELLED = "RESERVATION_CANCELLED"


def emit_event(
    cur: PgCursor,
    *,
    event_type: str,
    aggregate_id: str,
    aggregate_type: str = "reservation",
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Append an event to outbox_events.

    Args:
        cur: Database cursor (within transaction).
        event_type: One of the RESERVATION_* constants.
        aggregate_id: Reservation UUID.
        aggregate_type: Aggregate kind.
        payload: Optional JSON-serialisable payload (no PII).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload, default=str) if payload else None

    cur.execute(
        """
        INSERT INTO outbox_events (
            event_type, aggregate_type, aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (event_type, aggregate_type, aggregate_id, payload_json, correlation_id),
    )
    return cur.fetchone()[0]
