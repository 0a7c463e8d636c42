"""Pytest configuration and fixtures."""
from datetime import date

import pytest

from apps.contracts.models import Contract, ContractType
from apps.contracts.services import ContractLifecycleService
from apps.core.context import TenantContext
from apps.tenants.models import Role, Tenant, User


def make_user(tenant, email, role_name=None, **extra):
    u = User.objects.create_user(email=email, password="testpass123", tenant=tenant, **extra)
    if role_name:
        u.roles.add(Role.objects.get(tenant=tenant, name=role_name))
    return u


def force_status(contract, status):
    """Put a contract into ``status`` without going through the workflow."""
    Contract.objects.filter(pk=contract.pk).update(status=status)
    contract.refresh_from_db()
    return contract


@pytest.fixture
def tenant(db):
    """Create a test tenant.

    The post_save signal creates default roles (Admin, Manager, Editor, Viewer).
    """
    return Tenant.objects.create(
        name="Test Company",
        currency="EUR",
    )


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(name="Other Org", currency="USD")


@pytest.fixture
def user(db, tenant):
    """Create a test user with Admin role (full permissions for tests)."""
    return make_user(tenant, "test@example.com", "Admin")


@pytest.fixture
def other_user(db, other_tenant):
    return make_user(other_tenant, "other@example.com", "Admin")


@pytest.fixture
def contract_type(db, tenant):
    return ContractType.objects.create(
        tenant=tenant,
        name="Service Agreement",
        default_duration_days=365,
        default_reminder_days=45,
    )


@pytest.fixture
def tenant_context(user):
    return TenantContext.from_user(user)


@pytest.fixture
def service(tenant_context):
    return ContractLifecycleService(tenant_context)


@pytest.fixture
def other_service(other_user):
    return ContractLifecycleService(TenantContext.from_user(other_user))


@pytest.fixture
def contract_data(contract_type):
    """Valid create payload with two parties."""
    return {
        "title": "Cleaning services",
        "contract_type_id": contract_type.pk,
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 12, 31),
        "parties": [
            {"party_type": "internal", "name": "Test Company"},
            {"party_type": "external", "name": "Globex", "email": "legal@globex.test"},
        ],
    }


@pytest.fixture
def contract(service, contract_data):
    """A Draft contract created through the lifecycle service."""
    return service.create(contract_data)


@pytest.fixture
def active_contract(contract):
    return force_status(contract, Contract.Status.ACTIVE)


@pytest.fixture
def set_status():
    return force_status


@pytest.fixture
def user_factory(db):
    return make_user
