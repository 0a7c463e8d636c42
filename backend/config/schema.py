"""Root GraphQL schema."""
import strawberry

from apps.audit.schema import AuditLogQuery
from apps.contracts.schema import ContractMutation, ContractQuery
from apps.core.schema import AuthMutation, CoreQuery
from apps.tenants.schema import TenantMutation, TenantQuery


@strawberry.type
class Query(
    CoreQuery,
    TenantQuery,
    ContractQuery,
    AuditLogQuery,
):
    @strawberry.field
    def health(self) -> str:
        return "ok"


@strawberry.type
class Mutation(AuthMutation, TenantMutation, ContractMutation):
    pass


schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
)
