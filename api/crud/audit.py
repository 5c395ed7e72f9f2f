import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from api.models import AuditLog


def write_audit(
    session: AsyncSession,
    actor_id: uuid.UUID,
    action: str,
    entity: str,
    entity_id: uuid.UUID | None = None,
    payload: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's unit of work. Payload must be JSON-safe."""
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        payload_json=payload,
    )
    session.add(entry)
    return entry
