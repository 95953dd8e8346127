"""
Event Log Repository - append-only audit trail of budget state transitions

Every use case that changes a paycheck records what happened here, inside the
same unit of work as the change itself.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from paybudget.infrastructure.db.models import EventLog


def _jsonable(value: Any) -> Any:
    """Decimals and dates are stored as strings inside the JSON payload."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class EventLogRepository:
    """
    Repository for the audit event log
    """

    def __init__(self, db: Session):
        self.db = db

    def append_event(
        self,
        account_id: int,
        event_type: str,
        payload: Dict[str, Any],
        occurred_at: Optional[datetime] = None,
        actor_user_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> int:
        """
        Append an event (flush only, the caller commits)

        Args:
            account_id: owner of the budget
            event_type: e.g. "paycheck_initialized", "bill_paid"
            payload: event data (Decimal/date values are stringified)
            occurred_at: when it happened (default: now, UTC)
            actor_user_id: who did it (optional)
            idempotency_key: unique key guarding one-shot operations (optional)

        Returns:
            event_id

        Raises:
            IntegrityError: if idempotency_key already exists

        Example:
            >>> repo = EventLogRepository(db)
            >>> event_id = repo.append_event(
            ...     account_id=1,
            ...     event_type="paycheck_initialized",
            ...     payload={"paycheck_id": 7, "reserved_bills": Decimal("1200.00")},
            ...     idempotency_key="paycheck-init-7"
            ... )
        """
        if occurred_at is None:
            occurred_at = datetime.now(timezone.utc)

        event = EventLog(
            account_id=account_id,
            actor_user_id=actor_user_id,
            event_type=event_type,
            payload_json=_jsonable(payload),
            occurred_at=occurred_at,
            idempotency_key=idempotency_key,
        )

        self.db.add(event)
        self.db.flush()

        return event.id

    def has_idempotency_key(self, idempotency_key: str) -> bool:
        """True if an event with this key was already recorded."""
        return self.db.query(EventLog.id).filter(
            EventLog.idempotency_key == idempotency_key
        ).first() is not None

    def list_events(
        self,
        account_id: int,
        event_types: Optional[List[str]] = None,
        limit: int = 200,
    ) -> List[EventLog]:
        """
        Events of one account, oldest first

        Args:
            account_id: owner of the budget
            event_types: filter by type (optional)
            limit: max rows (default: 200)
        """
        query = self.db.query(EventLog).filter(EventLog.account_id == account_id)

        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))

        return query.order_by(EventLog.id.asc()).limit(limit).all()
