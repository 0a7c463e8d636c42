"""GraphQL schema for audit logs."""

import base64
import binascii
from datetime import datetime
from typing import List, Optional

import strawberry
from strawberry.types import Info

from apps.audit.models import AuditLog
from apps.core.context import Context
from apps.core.permissions import get_tenant_context, require_perm

CURSOR_PREFIX = "auditlog"
MAX_PAGE_SIZE = 100


@strawberry.type
class AuditLogChangeType:
    field: str
    old_value: Optional[strawberry.scalars.JSON]
    new_value: Optional[strawberry.scalars.JSON]


@strawberry.type
class AuditLogType:
    """One create, update or delete of a contract, party or contract type."""

    id: int
    action: str
    entity_type: str
    entity_id: int
    entity_repr: str
    user_id: Optional[int]
    user_name: Optional[str]
    changes: List[AuditLogChangeType]
    timestamp: datetime
    parent_entity_type: Optional[str]
    parent_entity_id: Optional[int]

    @classmethod
    def from_log(cls, log: AuditLog) -> "AuditLogType":
        return cls(
            id=log.id,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            entity_repr=log.entity_repr,
            user_id=log.user_id,
            user_name=log.user.email if log.user else None,
            changes=[
                AuditLogChangeType(field=name, old_value=change.get("old"), new_value=change.get("new"))
                for name, change in sorted((log.changes or {}).items())
            ],
            timestamp=log.timestamp,
            parent_entity_type=log.parent_entity_type,
            parent_entity_id=log.parent_entity_id,
        )


@strawberry.type
class PageInfo:
    has_next_page: bool
    has_previous_page: bool
    start_cursor: Optional[str]
    end_cursor: Optional[str]


@strawberry.type
class AuditLogEdge:
    node: AuditLogType
    cursor: str


@strawberry.type
class AuditLogConnection:
    """Newest-first page of audit logs with Relay-style cursors."""

    edges: List[AuditLogEdge]
    page_info: PageInfo
    total_count: int


def _encode_cursor(pk: int) -> str:
    return base64.b64encode(f"{CURSOR_PREFIX}:{pk}".encode()).decode()


def _decode_cursor(cursor: str) -> int | None:
    """Primary key encoded in ``cursor``, or None for a malformed cursor."""
    try:
        prefix, _, pk = base64.b64decode(cursor.encode()).decode().partition(":")
        return int(pk) if prefix == CURSOR_PREFIX else None
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


def _tenant_logs(info: Info[Context, None]):
    """Audit logs of the caller's tenant. Requires contracts.read."""
    require_perm(info, "contracts", "read")
    tenant_context = get_tenant_context(info)
    return AuditLog.objects.for_tenant(tenant_context.tenant_id).select_related("user")


def _filter_logs(queryset, entity_type, entity_id, user_id, action, include_related):
    if entity_type and entity_id:
        queryset = queryset.for_entity(entity_type, entity_id, include_related)
    elif entity_type:
        queryset = queryset.filter(entity_type=entity_type)
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if action:
        queryset = queryset.filter(action=action)
    return queryset


def _paginate(queryset, first: int, after: str | None) -> AuditLogConnection:
    total_count = queryset.count()
    after_id = _decode_cursor(after) if after else None
    if after_id is not None:
        queryset = queryset.filter(id__lt=after_id)

    page_size = max(1, min(first, MAX_PAGE_SIZE))
    # One extra row tells whether another page follows
    logs = list(queryset[: page_size + 1])
    edges = [
        AuditLogEdge(node=AuditLogType.from_log(log), cursor=_encode_cursor(log.id))
        for log in logs[:page_size]
    ]
    return AuditLogConnection(
        edges=edges,
        page_info=PageInfo(
            has_next_page=len(logs) > page_size,
            has_previous_page=after is not None,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
        ),
        total_count=total_count,
    )


@strawberry.type
class AuditLogQuery:
    @strawberry.field
    def audit_logs(
        self,
        info: Info[Context, None],
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        include_related: bool = False,
        first: int = 25,
        after: Optional[str] = None,
    ) -> AuditLogConnection:
        """Audit logs of the current tenant, newest first.

        ``entity_id`` only applies together with ``entity_type``;
        ``include_related`` then adds entries whose parent is that entity,
        such as the parties of a contract. At most 100 entries per page.
        """
        queryset = _filter_logs(_tenant_logs(info), entity_type, entity_id, user_id, action, include_related)
        return _paginate(queryset.newest_first(), first, after)

    @strawberry.field
    def contract_history(self, info: Info[Context, None], contract_id: int) -> List[AuditLogType]:
        """Every recorded change to a contract and its parties, oldest first."""
        logs = _tenant_logs(info).for_entity("contract", contract_id, include_related=True)
        return [AuditLogType.from_log(log) for log in logs.oldest_first()]
