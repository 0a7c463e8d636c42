"""Tests for audit logging."""

import pytest
from datetime import date
from decimal import Decimal

from apps.audit.models import AuditLog
from apps.audit.services import AuditLogService, set_current_user, clear_current_user
from apps.contracts.models import Contract, ContractParty
from apps.core.auth import create_access_token


class TestAuditLogServiceDiff:
    """Test AuditLogService.compute_diff()."""

    def test_compute_diff_detects_changes(self):
        """Test that compute_diff detects changed fields."""
        old = {"title": "Old Title", "status": "draft", "value": "100.00"}
        new = {"title": "New Title", "status": "draft", "value": "200.00"}

        diff = AuditLogService.compute_diff(old, new)

        assert diff == {
            "title": {"old": "Old Title", "new": "New Title"},
            "value": {"old": "100.00", "new": "200.00"},
        }

    def test_compute_diff_handles_new_fields(self):
        """Test that compute_diff handles fields only in new values."""
        diff = AuditLogService.compute_diff({"title": "Test"}, {"title": "Test", "terms": "Net 30"})

        assert diff == {"terms": {"old": None, "new": "Net 30"}}

    def test_compute_diff_handles_removed_fields(self):
        """Test that compute_diff handles fields only in old values."""
        diff = AuditLogService.compute_diff({"title": "Test", "terms": "Net 30"}, {"title": "Test"})

        assert diff == {"terms": {"old": "Net 30", "new": None}}

    def test_compute_diff_empty_when_no_changes(self):
        """Test that compute_diff returns empty dict when no changes."""
        assert AuditLogService.compute_diff({"title": "Same"}, {"title": "Same"}) == {}


class TestAuditLogServiceSerialization:
    """Test AuditLogService value serialization."""

    def test_serialize_date(self):
        assert AuditLogService.serialize_value(date(2026, 1, 15)) == "2026-01-15"

    def test_serialize_decimal(self):
        assert AuditLogService.serialize_value(Decimal("123.45")) == "123.45"

    def test_serialize_none(self):
        assert AuditLogService.serialize_value(None) is None

    def test_serialize_string(self):
        assert AuditLogService.serialize_value("test") == "test"

    def test_model_fields_store_foreign_key_ids(self, contract):
        fields = AuditLogService.get_model_fields(contract)

        assert fields["contract_type"] == contract.contract_type_id
        assert fields["created_by"] == contract.created_by_id
        assert "tenant" not in fields
        assert "updated_at" not in fields


def _logs(entity_type, entity_id, action=None):
    logs = AuditLog.objects.filter(entity_type=entity_type, entity_id=entity_id)
    if action:
        logs = logs.filter(action=action)
    return logs


class TestAuditLogSignals:
    """Test audit log signal handlers."""

    def test_create_logs_create_action(self, tenant, user, contract):
        log = _logs("contract", contract.id, AuditLog.Action.CREATE).get()

        assert log.tenant == tenant
        assert log.user == user
        assert log.entity_repr == contract.contract_number
        assert log.changes["title"] == {"old": None, "new": "Cleaning services"}
        assert log.changes["status"]["new"] == "draft"

    def test_party_logs_reference_contract(self, contract):
        party = contract.parties.get(name="Globex")

        log = _logs("contract_party", party.id, AuditLog.Action.CREATE).get()

        assert log.entity_repr == "Globex"
        assert log.parent_entity_type == "contract"
        assert log.parent_entity_id == contract.id

    def test_update_logs_changed_fields_only(self, service, contract, user):
        service.update(contract.id, {"title": "Updated title"})

        log = _logs("contract", contract.id, AuditLog.Action.UPDATE).get()
        assert log.user == user
        assert log.changes == {"title": {"old": "Cleaning services", "new": "Updated title"}}

    def test_status_change_is_logged(self, service, contract):
        service.change_status(contract.id, "under_review", reason="Ready")

        log = _logs("contract", contract.id, AuditLog.Action.UPDATE).get()
        assert log.changes["status"] == {"old": "draft", "new": "under_review"}
        assert log.changes["status_change_reason"] == {"old": None, "new": "Ready"}

    def test_request_user_takes_precedence(self, service, contract, user_factory, tenant):
        reviewer = user_factory(tenant, "reviewer@example.com", "Editor")
        set_current_user(reviewer)
        try:
            service.change_status(contract.id, "under_review")
        finally:
            clear_current_user()

        log = _logs("contract", contract.id, AuditLog.Action.UPDATE).get()
        assert log.user == reviewer

    def test_delete_logs_contract_and_parties(self, service, contract):
        contract_id = contract.id
        party_ids = list(contract.parties.values_list("id", flat=True))

        service.delete(contract_id)

        log = _logs("contract", contract_id, AuditLog.Action.DELETE).get()
        assert log.changes["title"] == {"old": "Cleaning services", "new": None}
        for party_id in party_ids:
            assert _logs("contract_party", party_id, AuditLog.Action.DELETE).exists()

    def test_system_change_has_null_user(self, tenant, contract_type):
        clear_current_user()

        contract = Contract.objects.create(
            tenant=tenant,
            contract_type=contract_type,
            contract_number="SYS-2026-0001",
            title="System Contract",
            start_date=date(2026, 1, 1),
        )

        log = _logs("contract", contract.id).get()
        assert log.user is None

    def test_unaudited_model_is_ignored(self, tenant):
        count = AuditLog.objects.count()
        tenant.name = "Renamed"
        tenant.save()
        assert AuditLog.objects.count() == count


class TestAuditLogTenantIsolation:
    """Test audit log tenant isolation."""

    def test_logs_are_tenant_scoped(self, tenant, other_tenant, contract):
        assert AuditLog.objects.for_tenant(tenant.id).filter(entity_id=contract.id).exists()
        assert not AuditLog.objects.for_tenant(other_tenant.id).exists()

    def test_party_logs_carry_tenant(self, tenant, contract):
        party_logs = AuditLog.objects.filter(entity_type="contract_party")
        assert party_logs.count() == ContractParty.objects.filter(contract=contract).count()
        assert all(log.tenant_id == tenant.id for log in party_logs)


def _post_graphql(client, user, query, variables=None):
    token = create_access_token(user)
    return client.post(
        "/graphql",
        content_type="application/json",
        data={"query": query, "variables": variables or {}},
        HTTP_AUTHORIZATION=f"Bearer {token}",
    )


class TestAuditLogGraphQL:
    """Test audit log GraphQL queries."""

    def test_query_audit_logs(self, client, user, contract):
        query = """
            query {
                auditLogs(first: 10) {
                    edges { node { id action entityType entityId entityRepr userName } }
                    totalCount
                    pageInfo { hasNextPage endCursor }
                }
            }
        """

        response = _post_graphql(client, user, query)

        assert response.status_code == 200
        data = response.json()
        assert "errors" not in data
        logs = data["data"]["auditLogs"]
        # The contract type, the contract and its two parties
        assert logs["totalCount"] == 4
        assert logs["pageInfo"]["hasNextPage"] is False
        by_type = {}
        for edge in logs["edges"]:
            by_type.setdefault(edge["node"]["entityType"], set()).add(edge["node"]["userName"])
        # Fixture data is written outside a request, so the type has no actor
        assert by_type == {
            "contract_type": {None},
            "contract": {"test@example.com"},
            "contract_party": {"test@example.com"},
        }

    def test_cursor_pagination(self, client, user, contract):
        query = """
            query Logs($id: Int!, $after: String) {
                auditLogs(entityType: "contract", entityId: $id, includeRelated: true, first: 2, after: $after) {
                    edges { node { id } }
                    totalCount
                    pageInfo { hasNextPage endCursor }
                }
            }
        """

        first = _post_graphql(client, user, query, {"id": contract.id}).json()["data"]["auditLogs"]
        assert first["totalCount"] == 3
        assert len(first["edges"]) == 2
        assert first["pageInfo"]["hasNextPage"] is True

        second = _post_graphql(
            client, user, query, {"id": contract.id, "after": first["pageInfo"]["endCursor"]}
        ).json()
        rest = second["data"]["auditLogs"]
        assert len(rest["edges"]) == 1
        assert rest["pageInfo"]["hasNextPage"] is False
        seen = {edge["node"]["id"] for edge in first["edges"] + rest["edges"]}
        assert len(seen) == 3

    def test_filter_by_entity_with_related(self, client, user, contract):
        query = """
            query Logs($id: Int!, $related: Boolean!) {
                auditLogs(entityType: "contract", entityId: $id, includeRelated: $related) {
                    edges { node { entityType entityId parentEntityId } }
                    totalCount
                }
            }
        """

        only_contract = _post_graphql(client, user, query, {"id": contract.id, "related": False}).json()
        with_parties = _post_graphql(client, user, query, {"id": contract.id, "related": True}).json()

        assert only_contract["data"]["auditLogs"]["totalCount"] == 1
        assert with_parties["data"]["auditLogs"]["totalCount"] == 3

    def test_contract_history(self, client, user, service, contract):
        service.change_status(contract.id, "under_review")
        query = """
            query History($id: Int!) {
                contractHistory(contractId: $id) {
                    action
                    entityType
                    changes { field oldValue newValue }
                }
            }
        """

        response = _post_graphql(client, user, query, {"id": contract.id})

        history = response.json()["data"]["contractHistory"]
        assert [entry["action"] for entry in history] == ["create", "create", "create", "update"]
        status_change = next(c for c in history[-1]["changes"] if c["field"] == "status")
        assert status_change == {"field": "status", "oldValue": "draft", "newValue": "under_review"}

    def test_other_tenant_sees_no_logs(self, client, other_user, contract):
        query = "query { auditLogs { totalCount } }"

        response = _post_graphql(client, other_user, query)

        assert response.json()["data"]["auditLogs"]["totalCount"] == 0

    def test_requires_authentication(self, client, contract):
        response = client.post(
            "/graphql",
            content_type="application/json",
            data={"query": "query { auditLogs { totalCount } }"},
        )

        assert "Authentication required" in response.json()["errors"][0]["message"]
