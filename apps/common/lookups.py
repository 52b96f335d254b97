import uuid

from apps.common.exceptions import LedgerValidationError


def parse_uuid(value, error=None, *, field="id"):
    """Return ``value`` as a UUID or raise ``error`` (a LedgerError class) naming ``field``."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        if error is None:
            raise LedgerValidationError(f"{field} must be a valid id.", fields={field: str(value)}) from None
        raise error(fields={field: str(value)}) from None
