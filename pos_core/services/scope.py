"""Request-scoped actor context

Every core operation receives the acting user's scope explicitly. The core
never branches on role beyond scope matching: ADMIN sees everything, MANAGER
their organization, everyone else (cashier, kitchen, guest) their branch.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from pos_core.exceptions import Unauthorized

ADMIN = "ADMIN"
MANAGER = "MANAGER"
GUEST = "GUEST"


@dataclass(frozen=True)
class ActorScope:
    actor_id: str
    role: str
    organization_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None

    @classmethod
    def guest(cls, session) -> "ActorScope":
        """Scope for an unauthenticated guest ordering through a table session"""
        return cls(
            actor_id=f"table-session:{session.id}",
            role=GUEST,
            organization_id=session.organization_id,
            branch_id=session.branch_id,
        )

    def can_access(self, organization_id: Optional[UUID], branch_id: Optional[UUID]) -> bool:
        if self.role == ADMIN:
            return True
        if self.role == MANAGER:
            return self.organization_id is not None and organization_id == self.organization_id
        return self.branch_id is not None and branch_id == self.branch_id

    def require_access(self, organization_id: Optional[UUID], branch_id: Optional[UUID]) -> None:
        if not self.can_access(organization_id, branch_id):
            raise Unauthorized("Access denied to this branch")

    def resolve_branch(self, branch_id: Optional[UUID] = None) -> UUID:
        """Branch an operation runs against: explicit, else the actor's own"""
        if branch_id is not None and self.role not in (ADMIN, MANAGER):
            if self.branch_id is not None and branch_id != self.branch_id:
                raise Unauthorized("Access denied to this branch")
        resolved = branch_id or self.branch_id
        if resolved is None:
            raise Unauthorized("Branch context is required")
        return resolved

    def filter(self, query, model, branch_id: Optional[UUID] = None):
        """Restrict a select() on a model with organization_id/branch_id columns"""
        if branch_id is not None:
            self.resolve_branch(branch_id)
            query = query.where(model.branch_id == branch_id)
            if self.role == MANAGER:
                query = query.where(model.organization_id == self.organization_id)
            return query

        if self.role == ADMIN:
            return query
        if self.role == MANAGER:
            return query.where(model.organization_id == self.organization_id)
        if self.branch_id is None:
            raise Unauthorized("Branch context is required")
        return query.where(model.branch_id == self.branch_id)
