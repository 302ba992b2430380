"""
Audit Logger

DESIGN DECISION: Every user action in the system is logged.
This provides:
1. Traceability of every change to an expense list
2. Debugging capability when the ledger refuses a record
3. User can see history of their interactions

The audit logger:
- Is async so it shares the storage layer's call style
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit key of the local store (for user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("billsplit.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_registration_rejected(
        self,
        username: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.registration_rejected(
            username=username,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_user_logged_in(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_logged_in(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_login_failed(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.login_failed(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_user_logged_out(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_logged_out(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_expense_added(
        self,
        expense_id: str,
        username: str,
        description: str,
        amount: str,
        currency: str,
        participant_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly recorded expense."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            username=username,
            description=description,
            amount=amount,
            currency=currency,
            participant_count=participant_count,
            correlation_id=correlation_id,
        ))

    async def log_expense_rejected(
        self,
        username: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_rejected(
            username=username,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_expense_marked_paid(
        self,
        expense_id: str,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_marked_paid(
            expense_id=expense_id,
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: str,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_ledger_computed(
        self,
        username: str,
        expense_count: int,
        currency_count: int,
        edge_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_computed(
            username=username,
            expense_count=expense_count,
            currency_count=currency_count,
            edge_count=edge_count,
            correlation_id=correlation_id,
        ))

    async def log_ledger_failed(
        self,
        username: str,
        error_message: str,
        expense_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an engine refusal. These are producer bugs."""
        await self.log(AuditEventBuilder.ledger_failed(
            username=username,
            error_message=error_message,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        username: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            username=username,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
