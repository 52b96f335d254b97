import logging

from apps.audit.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(*, actor, action, entity_type, entity_id, shop=None, payload=None):
    entry = AuditLog.objects.create(
        actor=actor,
        shop=shop,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        payload=payload or {},
    )
    logger.debug("audit %s %s:%s", action, entity_type, entity_id)
    return entry
