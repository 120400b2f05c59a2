# Overview: Service-layer hierarchy resolution; derives the owning admin and query scope of a principal.

"""
Hierarchy Service: Tenant Root and Scope Resolution

WHY: There is no organization table. A tenant is the subtree below one
admin: admin -> managers -> agents/workers, plus the products and sales the
admin owns. Every read and write must be filtered to the caller's part of
that subtree.

SECURITY INVARIANTS:
1. Scope is derived from stored relationships on every request, never cached
   on the session (manager reassignment can change it between requests)
2. Unknown roles resolve to no scope; callers must reject, never run an
   unscoped query
3. A missing profile (manager/agent row not found by email) is an expected
   condition and surfaces as NotFoundError (404), not a 500
4. Client-supplied owner ids are never used; owner_admin_id always comes
   from resolve_owner_admin

USAGE:
    from fieldsales.services.hierarchy_service import resolve_scope_filter

    scope = require_scope(principal)
    sales = scope.apply(db.session.query(Sale), Sale).all()
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..errors import AccessDeniedError, NotFoundError
from ..models import Agent, Manager, User
from ..models.auth import ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER


def normalize_role(value) -> str:
    return str(value or "").strip().lower()


@dataclass(frozen=True)
class Principal:
    """Authenticated caller identity as supplied by the session layer."""
    id: int
    email: str
    role: str

    def __post_init__(self):
        object.__setattr__(self, "role", normalize_role(self.role))
        object.__setattr__(self, "email", str(self.email or "").strip().lower())

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def is_agent(self) -> bool:
        return self.role == ROLE_AGENT


@dataclass(frozen=True)
class Scope:
    """
    Query predicate for one caller.

    - admin:   owner_admin_id only
    - manager: owner_admin_id + manager_id
    - agent:   owner_admin_id + agent_id

    apply() filters on whichever of those columns the target model has, so
    the same Scope drives Sale, Product, Agent, Worker and Manager queries.
    List, read, stats and write paths all go through it.
    """
    owner_admin_id: int
    manager_id: int | None = None
    agent_id: int | None = None

    def _criteria(self, model) -> list:
        criteria = []

        if model is Manager:
            criteria.append(Manager.admin_id == self.owner_admin_id)
            if self.manager_id is not None:
                criteria.append(Manager.id == self.manager_id)
            return criteria

        owner_col = getattr(model, "owner_admin_id", None)
        if owner_col is None:
            raise TypeError(f"{model.__name__} has no tenant column")
        criteria.append(owner_col == self.owner_admin_id)

        if self.manager_id is not None and hasattr(model, "manager_id"):
            criteria.append(model.manager_id == self.manager_id)

        if self.agent_id is not None:
            if model is Agent:
                criteria.append(Agent.id == self.agent_id)
            elif hasattr(model, "agent_id"):
                criteria.append(model.agent_id == self.agent_id)

        return criteria

    def apply(self, query, model):
        return query.filter(*self._criteria(model))

    def covers(self, obj) -> bool:
        """In-memory twin of apply() for an already loaded row."""
        if isinstance(obj, Manager):
            if obj.admin_id != self.owner_admin_id:
                return False
            return self.manager_id is None or obj.id == self.manager_id

        if getattr(obj, "owner_admin_id", None) != self.owner_admin_id:
            return False
        if self.manager_id is not None and hasattr(obj, "manager_id"):
            if obj.manager_id != self.manager_id:
                return False
        if self.agent_id is not None:
            if isinstance(obj, Agent):
                return obj.id == self.agent_id
            if hasattr(obj, "agent_id") and obj.agent_id != self.agent_id:
                return False
        return True


def find_manager_by_email(email: str) -> Manager | None:
    return db.session.query(Manager).filter_by(email=str(email or "").strip().lower()).first()


def find_agent_by_email(email: str) -> Agent | None:
    return db.session.query(Agent).filter_by(email=str(email or "").strip().lower()).first()


def get_manager_profile(principal: Principal) -> Manager:
    """Manager row paired with the caller's login. Raises NotFoundError."""
    manager = find_manager_by_email(principal.email)
    if not manager:
        raise NotFoundError("Manager profile not found")
    return manager


def get_agent_profile(principal: Principal) -> Agent:
    """Agent row paired with the caller's login. Raises NotFoundError."""
    agent = find_agent_by_email(principal.email)
    if not agent:
        raise NotFoundError("Agent profile not found")
    return agent


def agent_owner_admin_id(agent: Agent) -> int | None:
    """
    Tenant root of an agent.

    Order: the denormalized owner_admin_id, then the manager's admin, then
    the admin who provisioned the agent's login. The last step keeps agents
    whose manager was deleted inside their original tenant.
    """
    if agent.owner_admin_id:
        return agent.owner_admin_id
    if agent.manager is not None and agent.manager.admin_id:
        return agent.manager.admin_id

    login = db.session.query(User).filter_by(email=agent.email, role=ROLE_AGENT).first()
    if login and login.created_by_admin_id:
        return login.created_by_admin_id
    return None


def resolve_owner_admin(principal: Principal) -> int | None:
    """
    Owning admin id for the caller, or None for roles outside the hierarchy.

    Raises NotFoundError when the caller's manager/agent profile is missing
    or an agent cannot be traced to any admin.
    """
    if principal.is_admin:
        return principal.id
    if principal.is_manager:
        return get_manager_profile(principal).admin_id
    if principal.is_agent:
        owner_id = agent_owner_admin_id(get_agent_profile(principal))
        if owner_id is None:
            raise NotFoundError("Agent is not linked to an admin")
        return owner_id
    return None


def resolve_scope_filter(principal: Principal) -> Scope | None:
    """
    Scope predicate for the caller, or None for roles outside the hierarchy.

    Raises NotFoundError when the caller's profile is missing or an agent
    cannot be traced to any admin.
    """
    if principal.is_admin:
        return Scope(owner_admin_id=principal.id)

    if principal.is_manager:
        manager = get_manager_profile(principal)
        return Scope(owner_admin_id=manager.admin_id, manager_id=manager.id)

    if principal.is_agent:
        agent = get_agent_profile(principal)
        owner_id = agent_owner_admin_id(agent)
        if owner_id is None:
            raise NotFoundError("Agent is not linked to an admin")
        return Scope(owner_admin_id=owner_id, agent_id=agent.id)

    return None


def require_scope(principal: Principal) -> Scope:
    scope = resolve_scope_filter(principal)
    if scope is None:
        raise AccessDeniedError("Access denied")
    return scope


def require_owner_admin(principal: Principal) -> int:
    owner_id = resolve_owner_admin(principal)
    if owner_id is None:
        raise AccessDeniedError("Access denied")
    return owner_id


# Recipient helpers for the notification dispatcher

def _login_id(email: str | None, role: str) -> int | None:
    if not email:
        return None
    row = db.session.query(User.id).filter_by(email=email, role=role).first()
    return row[0] if row else None


def manager_user_id(manager: Manager | None) -> int | None:
    if manager is None:
        return None
    return _login_id(manager.email, ROLE_MANAGER)


def agent_user_id(agent: Agent | None) -> int | None:
    if agent is None:
        return None
    return _login_id(agent.email, ROLE_AGENT)


def admin_user_id(admin_id: int | None) -> int | None:
    if not admin_id:
        return None
    admin = db.session.get(User, admin_id)
    if admin is None or admin.normalized_role != ROLE_ADMIN:
        return None
    return admin.id


def actor_label(principal: Principal | None) -> str:
    """Human-readable name of the caller for notification messages."""
    if principal is None:
        return "System"
    if principal.is_agent:
        agent = find_agent_by_email(principal.email)
        return f"Agent {agent.name if agent else principal.email}"
    if principal.is_manager:
        manager = find_manager_by_email(principal.email)
        return f"Manager {manager.name if manager else principal.email}"
    if principal.is_admin:
        return "Admin"
    return "User"
