"""Order Management error taxonomy, layered on Protean's exceptions.

Conflicts subclass ``InvalidStateError`` (409) and rejections subclass
``ValidationError`` (400) so callers and the HTTP exception handlers treat
them like any other Protean failure.
"""

from contextlib import contextmanager

from protean.exceptions import InvalidStateError, TransactionError, ValidationError

UNIQUE_FIELDS = ("seller_order_id", "idempotency_key")

_UNIQUE_VIOLATION_TYPES = ("IntegrityError", "UniqueViolation")
_UNIQUE_VIOLATION_TEXT = ("duplicate key", "unique constraint")


class OrderConflictError(InvalidStateError):
    """An order with the same seller order id (or a fuzzy duplicate) exists."""

    def __init__(self, message: str, reason: str | None = None, existing_order_id: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.existing_order_id = existing_order_id


class OrderRejectedError(ValidationError):
    """Business-rule validation failed, or the fulfillment policy said no."""

    def __init__(self, messages, unfulfillable_items: list | None = None):
        super().__init__(messages)
        self.unfulfillable_items = unfulfillable_items or []


def _conflict(fields: list[str]) -> OrderConflictError:
    return OrderConflictError(
        f"Order conflicts with an existing order on {', '.join(fields)}",
        reason=fields[0].upper(),
    )


def conflict_from_validation(exc: ValidationError) -> OrderConflictError | None:
    """Translate the repository's uniqueness check failure, if that is what ``exc`` is."""
    messages = exc.messages if isinstance(exc.messages, dict) else {}
    fields = [name for name in UNIQUE_FIELDS if name in messages]
    return _conflict(fields) if fields else None


def conflict_from_commit(exc: TransactionError) -> OrderConflictError | None:
    """Translate a commit that failed on a storage unique constraint.

    Two requests can both pass the duplicate check and the repository's
    uniqueness check; the database constraint then fails the second commit.
    """
    info = exc.extra_info or {}
    names = {str(info.get("original_exception", ""))}
    text = str(info.get("original_message", "")) or str(exc)
    if exc.__cause__ is not None:
        names.add(type(exc.__cause__).__name__)
        text = f"{text} {exc.__cause__}"

    lowered = text.lower()
    if not (names & set(_UNIQUE_VIOLATION_TYPES) or any(marker in lowered for marker in _UNIQUE_VIOLATION_TEXT)):
        return None

    fields = [name for name in UNIQUE_FIELDS if name in lowered]
    if not fields:
        return OrderConflictError("Order conflicts with an existing order", reason="DUPLICATE")
    return _conflict(fields)


@contextmanager
def unique_violations_as_conflicts():
    """Re-raise commit-time unique violations as ``OrderConflictError``."""
    try:
        yield
    except TransactionError as exc:
        conflict = conflict_from_commit(exc)
        if conflict is None:
            raise
        raise conflict from exc
