# Overview: Service-layer staff provisioning; managers, agents, workers and admin-managed logins.

"""
Staff Service

HIERARCHY:
- Admins create managers (each manager belongs to exactly one admin).
- Admins and managers create agents and workers. A manager always links
  the new profile to itself; an admin may pick one of its own managers or
  leave the profile unassigned.
- Agents and workers carry owner_admin_id, set at creation. Reassignment
  is only allowed to managers of the same admin, so it never changes.

LOGINS: Managers and agents get a User row paired by email, with a generated
temporary password delivered through credential_service. The User and the
profile are written in one transaction; if the profile insert fails the
User is rolled back with it. Workers never get a login.

Deleting a manager keeps its agents and workers (unassigned) and keeps its
sales (manager link cleared). Deleting an agent keeps its sales (agent link
cleared). The paired login is removed with its sessions and inbox.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from ..models import Agent, Manager, Notification, Sale, SessionToken, User, Worker
from ..models.auth import ROLE_AGENT, ROLE_MANAGER, VALID_ROLES
from ..models.communications import TYPE_NEW_AGENT, TYPE_NEW_MANAGER, TYPE_NEW_WORKER
from ..validation import ModelValidationPolicy, normalize_email, parse_int, validate_payload
from . import auth_service, credential_service, hierarchy_service, notification_service, session_service
from .hierarchy_service import Principal


PROFILE_ALIASES = {
    "governmentId": "government_id",
    "profilePicture": "profile_picture",
    "isActive": "is_active",
    "dateOfBirth": "date_of_birth",
    "managerId": "manager_id",
}

MANAGER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "government_id", "profile_picture", "is_active"},
    required_on_create={"name", "email", "phone"},
    aliases=PROFILE_ALIASES,
)
MANAGER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=MANAGER_POLICY.writable_fields - {"email"},
    aliases=PROFILE_ALIASES,
)

AGENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "email", "phone", "location", "government_id",
        "date_of_birth", "address", "profile_picture", "is_active",
    },
    required_on_create={"name", "email", "phone", "location", "government_id"},
    aliases=PROFILE_ALIASES,
)
AGENT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=AGENT_POLICY.writable_fields - {"email"},
    aliases=PROFILE_ALIASES,
)
AGENT_SELF_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "location", "address", "profile_picture"},
    aliases=PROFILE_ALIASES,
)

WORKER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "department", "position", "is_active"},
    required_on_create={"name", "email", "phone", "address"},
    aliases=PROFILE_ALIASES,
)
WORKER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=WORKER_POLICY.writable_fields - {"email"},
    aliases=PROFILE_ALIASES,
)


@dataclass
class ProvisionResult:
    """A created/updated staff record plus credential delivery outcome."""
    message: str
    entity: object
    entity_key: str
    generated_password: str | None = None
    delivery: dict | None = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        body = {"message": self.message, self.entity_key: self.entity.to_dict()}
        if self.generated_password is not None:
            body["generated_password"] = self.generated_password
            body["delivery"] = self.delivery
        body.update(self.extra)
        return body


# Shared helpers

def _aliased(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return {PROFILE_ALIASES.get(k, k): v for k, v in payload.items()}


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise AccessDeniedError("Admin access required")


def _require_admin_or_manager(principal: Principal) -> None:
    if not (principal.is_admin or principal.is_manager):
        raise AccessDeniedError("Access denied")


def _commit_or_conflict(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def _login_for(email: str, role: str) -> User | None:
    return db.session.query(User).filter_by(email=email, role=role).first()


def _sync_login(login: User | None, patch: dict) -> None:
    """Mirror name / picture / active flag from a profile onto its login."""
    if login is None:
        return
    if patch.get("name"):
        login.name = patch["name"]
    if "profile_picture" in patch:
        login.profile_picture = patch["profile_picture"] or None
    if "phone" in patch and patch["phone"]:
        login.phone = patch["phone"]
    if "is_active" in patch:
        login.is_active = bool(patch["is_active"])
        if not login.is_active:
            session_service.revoke_all_user_sessions(login.id, "Account deactivated", commit=False)


def _remove_login(login: User | None) -> None:
    """Delete a login with its sessions and inbox (no commit)."""
    if login is None:
        return
    db.session.query(SessionToken).filter(SessionToken.user_id == login.id).delete(synchronize_session=False)
    db.session.query(Notification).filter(Notification.recipient_id == login.id).delete(synchronize_session=False)
    db.session.query(Notification).filter(Notification.sender_id == login.id).update(
        {Notification.sender_id: None}, synchronize_session=False
    )
    db.session.query(User).filter(User.created_by_admin_id == login.id).update(
        {User.created_by_admin_id: None}, synchronize_session=False
    )
    db.session.delete(login)


def _ensure_email_free(email: str, *models) -> None:
    for model in models:
        if db.session.query(model.id).filter(model.email == email).first():
            raise ConflictError(f"{model.__name__} with this email already exists")


def _tenant_manager(owner_admin_id: int, manager_id) -> Manager:
    manager_id = parse_int(manager_id, "manager_id")
    manager = (
        db.session.query(Manager)
        .filter(Manager.id == manager_id, Manager.admin_id == owner_admin_id)
        .first()
    )
    if not manager:
        raise NotFoundError("Manager not found")
    return manager


def _deliver(login: User, phone: str | None, password: str) -> dict:
    return credential_service.deliver_credentials(login.email, phone, login.name, password)


def _new_login(name: str, email: str, phone: str | None, role: str, owner_admin_id: int,
               profile_picture: str | None = None) -> tuple[User, str]:
    password = credential_service.generate_temporary_password()
    login = auth_service.create_user(
        name=name,
        email=email,
        password=password,
        role=role,
        created_by_admin_id=owner_admin_id,
        phone=phone,
        profile_picture=profile_picture,
        commit=False,
    )
    return login, password


# Managers (admin only)

def create_manager(principal: Principal, payload: dict) -> ProvisionResult:
    _require_admin(principal)
    patch = validate_payload(model=Manager, payload=_aliased(payload), policy=MANAGER_POLICY, partial=False)
    _ensure_email_free(patch["email"], Manager, User)

    try:
        login, password = _new_login(
            patch["name"], patch["email"], patch.get("phone"), ROLE_MANAGER,
            principal.id, patch.get("profile_picture"),
        )
        manager = Manager(admin_id=principal.id, **patch)
        db.session.add(manager)
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A record with this email already exists")
    except Exception:
        db.session.rollback()
        raise
    _commit_or_conflict("Manager with this email already exists")

    current_app.logger.info("Manager %s created by admin %s", manager.id, principal.id)
    delivery = _deliver(login, manager.phone, password)
    notification_service.notify(
        principal.id, "admin", TYPE_NEW_MANAGER, "New Manager Created",
        f"New manager {manager.name} has been created successfully",
        ("Manager", manager.id),
    )
    return ProvisionResult("Manager created successfully", manager, "manager", password, delivery)


def list_managers(principal: Principal) -> list[Manager]:
    _require_admin(principal)
    return (
        db.session.query(Manager)
        .filter(Manager.admin_id == principal.id)
        .order_by(Manager.created_at.desc(), Manager.id.desc())
        .all()
    )


def get_manager(principal: Principal, manager_id: int) -> Manager:
    _require_admin(principal)
    manager = (
        db.session.query(Manager)
        .filter(Manager.id == manager_id, Manager.admin_id == principal.id)
        .first()
    )
    if not manager:
        raise NotFoundError("Manager not found")
    return manager


def update_manager(principal: Principal, manager_id: int, payload: dict) -> Manager:
    patch = validate_payload(
        model=Manager, payload=_aliased(payload), policy=MANAGER_UPDATE_POLICY, partial=True
    )
    manager = get_manager(principal, manager_id)
    for key, value in patch.items():
        setattr(manager, key, value)
    _sync_login(_login_for(manager.email, ROLE_MANAGER), patch)
    db.session.commit()
    return manager


def delete_manager(principal: Principal, manager_id: int) -> None:
    """Remove a manager; its agents and workers stay in the tenant, unassigned."""
    manager = get_manager(principal, manager_id)

    agents = db.session.query(Agent).filter(Agent.manager_id == manager.id).update(
        {Agent.manager_id: None}, synchronize_session=False
    )
    workers = db.session.query(Worker).filter(Worker.manager_id == manager.id).update(
        {Worker.manager_id: None}, synchronize_session=False
    )
    db.session.query(Sale).filter(Sale.manager_id == manager.id).update(
        {Sale.manager_id: None}, synchronize_session=False
    )
    _remove_login(_login_for(manager.email, ROLE_MANAGER))
    db.session.delete(manager)
    db.session.commit()
    # Bulk updates bypassed the identity map
    db.session.expire_all()

    current_app.logger.info(
        "Manager %s deleted by admin %s (%d agent(s), %d worker(s) unassigned)",
        manager_id, principal.id, agents, workers,
    )


def get_manager_profile(principal: Principal) -> Manager:
    return hierarchy_service.get_manager_profile(principal)


# Agents (admin or manager)

def _agent_query(principal: Principal):
    _require_admin_or_manager(principal)
    scope = hierarchy_service.require_scope(principal)
    return scope.apply(db.session.query(Agent), Agent)


def create_agent(principal: Principal, payload: dict) -> ProvisionResult:
    """
    Create an agent profile and its login.

    manager: the agent is linked to the calling manager.
    admin: optional manager_id (must be one of the admin's managers).
    """
    _require_admin_or_manager(principal)
    data = _aliased(payload)
    patch = validate_payload(model=Agent, payload=data, policy=AGENT_POLICY, partial=False)

    if principal.is_manager:
        manager = hierarchy_service.get_manager_profile(principal)
        owner_admin_id = manager.admin_id
    else:
        owner_admin_id = principal.id
        manager_id = data.get("manager_id")
        manager = _tenant_manager(owner_admin_id, manager_id) if manager_id not in (None, "") else None

    _ensure_email_free(patch["email"], Agent)
    existing_login = db.session.query(User).filter_by(email=patch["email"]).first()
    if existing_login and (
        existing_login.normalized_role != ROLE_AGENT
        or existing_login.created_by_admin_id != owner_admin_id
    ):
        raise ConflictError("A user with this email already exists with another role")

    password = None
    try:
        login = existing_login
        if login is None:
            login, password = _new_login(
                patch["name"], patch["email"], patch.get("phone"), ROLE_AGENT,
                owner_admin_id, patch.get("profile_picture"),
            )
        agent = Agent(
            manager_id=manager.id if manager else None,
            owner_admin_id=owner_admin_id,
            **patch,
        )
        db.session.add(agent)
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A record with this email already exists")
    except Exception:
        db.session.rollback()
        raise
    _commit_or_conflict("Agent with this email already exists")

    current_app.logger.info(
        "Agent %s created by user %s (manager %s, admin %s)",
        agent.id, principal.id, agent.manager_id, owner_admin_id,
    )

    delivery = _deliver(login, agent.phone, password) if password else None

    by = f" by manager {manager.name}" if manager is not None and principal.is_manager else ""
    notification_service.dispatch([
        notification_service.event(
            hierarchy_service.manager_user_id(manager), "manager", TYPE_NEW_AGENT,
            "New Agent Created", f"New agent {agent.name} has been created successfully",
            ("Agent", agent.id), sender_id=principal.id,
        ),
        notification_service.event(
            hierarchy_service.admin_user_id(owner_admin_id), "admin", TYPE_NEW_AGENT,
            "New Agent Created", f"New agent {agent.name} has been created{by}",
            ("Agent", agent.id), sender_id=principal.id,
        ),
    ])
    return ProvisionResult("Agent created successfully", agent, "agent", password, delivery)


def list_agents(principal: Principal) -> list[Agent]:
    return _agent_query(principal).order_by(Agent.created_at.desc(), Agent.id.desc()).all()


def get_agent(principal: Principal, agent_id: int) -> Agent:
    """Admins and managers read agents in scope; an agent may read itself."""
    if principal.is_agent:
        agent = hierarchy_service.get_agent_profile(principal)
        if agent.id != agent_id:
            raise NotFoundError("Agent not found")
        return agent

    agent = _agent_query(principal).filter(Agent.id == agent_id).first()
    if not agent:
        raise NotFoundError("Agent not found")
    return agent


def update_agent(principal: Principal, agent_id: int, payload: dict) -> Agent:
    """
    Sparse update. Admins may also reassign manager_id (null/"" unassigns);
    the new manager must belong to the same admin.
    """
    data = _aliased(payload)
    patch = validate_payload(model=Agent, payload=data, policy=AGENT_UPDATE_POLICY, partial=True)

    agent = _agent_query(principal).filter(Agent.id == agent_id).first()
    if not agent:
        raise NotFoundError("Agent not found")

    if principal.is_admin and "manager_id" in data:
        target = data["manager_id"]
        if target in (None, ""):
            agent.manager_id = None
        else:
            agent.manager_id = _tenant_manager(principal.id, target).id
        agent.owner_admin_id = principal.id

    for key, value in patch.items():
        setattr(agent, key, value)
    _sync_login(_login_for(agent.email, ROLE_AGENT), patch)
    db.session.commit()
    return agent


def delete_agent(principal: Principal, agent_id: int) -> None:
    agent = _agent_query(principal).filter(Agent.id == agent_id).first()
    if not agent:
        raise NotFoundError("Agent not found")

    db.session.query(Sale).filter(Sale.agent_id == agent.id).update(
        {Sale.agent_id: None}, synchronize_session=False
    )
    _remove_login(_login_for(agent.email, ROLE_AGENT))
    db.session.delete(agent)
    db.session.commit()
    db.session.expire_all()
    current_app.logger.info("Agent %s deleted by user %s", agent_id, principal.id)


def get_agent_profile(principal: Principal) -> Agent:
    return hierarchy_service.get_agent_profile(principal)


def update_agent_profile(principal: Principal, payload: dict) -> Agent:
    """Agent self-service: name, phone, location, address, picture."""
    if not principal.is_agent:
        raise AccessDeniedError("Access denied")
    data = {
        k: v for k, v in _aliased(payload).items()
        if not (k in {"name", "phone", "location"} and isinstance(v, str) and not v.strip())
    }
    patch = validate_payload(model=Agent, payload=data, policy=AGENT_SELF_POLICY, partial=True)

    agent = hierarchy_service.get_agent_profile(principal)
    for key, value in patch.items():
        setattr(agent, key, value)
    _sync_login(db.session.get(User, principal.id), patch)
    db.session.commit()
    return agent


def reset_agent_password(principal: Principal, agent_id: int) -> ProvisionResult:
    agent = _agent_query(principal).filter(Agent.id == agent_id).first()
    if not agent:
        raise NotFoundError("Agent not found")
    login = _login_for(agent.email, ROLE_AGENT)
    if not login:
        raise NotFoundError("Agent user account not found")

    password = credential_service.generate_temporary_password()
    auth_service.set_password(login, password, commit=False)
    session_service.revoke_all_user_sessions(login.id, "Password reset", commit=False)
    db.session.commit()

    current_app.logger.info("Temporary password issued for agent %s by user %s", agent.id, principal.id)
    delivery = _deliver(login, agent.phone, password)
    return ProvisionResult("Temporary password generated successfully", agent, "agent", password, delivery)


# Workers (admin or manager; no login)

def _worker_query(principal: Principal):
    _require_admin_or_manager(principal)
    scope = hierarchy_service.require_scope(principal)
    return scope.apply(db.session.query(Worker), Worker)


def create_worker(principal: Principal, payload: dict) -> Worker:
    _require_admin_or_manager(principal)
    data = _aliased(payload)
    for key in ("department", "position"):
        if isinstance(data.get(key), str) and not data[key].strip():
            data.pop(key)
    patch = validate_payload(model=Worker, payload=data, policy=WORKER_POLICY, partial=False)

    if principal.is_manager:
        manager = hierarchy_service.get_manager_profile(principal)
        owner_admin_id = manager.admin_id
    else:
        owner_admin_id = principal.id
        manager_id = data.get("manager_id")
        manager = _tenant_manager(owner_admin_id, manager_id) if manager_id not in (None, "") else None

    _ensure_email_free(patch["email"], Worker)

    worker = Worker(
        manager_id=manager.id if manager else None,
        owner_admin_id=owner_admin_id,
        **patch,
    )
    db.session.add(worker)
    _commit_or_conflict("Worker with this email already exists")

    notification_service.dispatch([
        notification_service.event(
            hierarchy_service.manager_user_id(manager), "manager", TYPE_NEW_WORKER,
            "New Worker Created", f"New worker {worker.name} has been added",
            ("Worker", worker.id), sender_id=principal.id,
        ),
        notification_service.event(
            hierarchy_service.admin_user_id(owner_admin_id), "admin", TYPE_NEW_WORKER,
            "New Worker Created", f"New worker {worker.name} has been added",
            ("Worker", worker.id), sender_id=principal.id,
        ),
    ])
    return worker


def list_workers(principal: Principal) -> list[Worker]:
    return _worker_query(principal).order_by(Worker.created_at.desc(), Worker.id.desc()).all()


def get_worker(principal: Principal, worker_id: int) -> Worker:
    worker = _worker_query(principal).filter(Worker.id == worker_id).first()
    if not worker:
        raise NotFoundError("Worker not found")
    return worker


def update_worker(principal: Principal, worker_id: int, payload: dict) -> Worker:
    data = _aliased(payload)
    patch = validate_payload(model=Worker, payload=data, policy=WORKER_UPDATE_POLICY, partial=True)
    worker = get_worker(principal, worker_id)

    if principal.is_admin and "manager_id" in data:
        target = data["manager_id"]
        worker.manager_id = None if target in (None, "") else _tenant_manager(principal.id, target).id

    for key, value in patch.items():
        setattr(worker, key, value)
    db.session.commit()
    return worker


def delete_worker(principal: Principal, worker_id: int) -> None:
    worker = get_worker(principal, worker_id)
    db.session.delete(worker)
    db.session.commit()


# Users (admin only)

def _owned_by_admin(admin_id: int, user: User) -> bool:
    if user.id == admin_id or user.created_by_admin_id == admin_id:
        return True
    role = user.normalized_role
    if role == ROLE_MANAGER:
        return db.session.query(Manager.id).filter_by(email=user.email, admin_id=admin_id).first() is not None
    if role == ROLE_AGENT:
        return db.session.query(Agent.id).filter_by(email=user.email, owner_admin_id=admin_id).first() is not None
    return False


def _owned_user(principal: Principal, user_id: int) -> User:
    _require_admin(principal)
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not _owned_by_admin(principal.id, user):
        raise AccessDeniedError("Access denied")
    return user


def _user_row(user: User, agents_by_email: dict) -> dict:
    row = user.to_dict()
    if user.normalized_role == ROLE_AGENT:
        agent = agents_by_email.get(user.email)
        manager = agent.manager if agent else None
        row["manager_id"] = manager.id if manager else None
        row["manager_name"] = manager.name if manager else None
        row["manager_email"] = manager.email if manager else None
    return row


def list_users(principal: Principal) -> list[dict]:
    """The admin, the logins it created and the logins of its managers and agents."""
    _require_admin(principal)
    manager_emails = db.session.query(Manager.email).filter(Manager.admin_id == principal.id)
    agents = db.session.query(Agent).filter(Agent.owner_admin_id == principal.id).all()
    agent_emails = [a.email for a in agents]

    users = (
        db.session.query(User)
        .filter(db.or_(
            User.id == principal.id,
            User.created_by_admin_id == principal.id,
            User.email.in_(manager_emails),
            User.email.in_(agent_emails),
        ))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    agents_by_email = {a.email: a for a in agents}
    return [_user_row(u, agents_by_email) for u in users]


def create_user(principal: Principal, payload: dict) -> ProvisionResult:
    """
    Admin-created login of any role. manager and agent roles get their
    profile in the same transaction.
    """
    _require_admin(principal)
    data = _aliased(payload)
    role = hierarchy_service.normalize_role(data.get("role"))
    name = str(data.get("name") or "").strip()
    email = normalize_email(data.get("email"))

    if not name or not email or not role:
        raise ValidationError("name, email and role are required")
    if role not in VALID_ROLES:
        raise ValidationError("Invalid role")

    profile_patch = None
    manager = None
    if role == ROLE_MANAGER:
        profile_patch = validate_payload(model=Manager, payload=data, policy=MANAGER_POLICY, partial=False)
        _ensure_email_free(email, Manager)
    elif role == ROLE_AGENT:
        if data.get("manager_id") in (None, ""):
            raise ValidationError("phone, location, government_id and manager_id are required for agent")
        profile_patch = validate_payload(model=Agent, payload=data, policy=AGENT_POLICY, partial=False)
        _ensure_email_free(email, Agent)
        manager = _tenant_manager(principal.id, data["manager_id"])

    _ensure_email_free(email, User)

    phone = str(data.get("phone") or "").strip() or None
    try:
        login, password = _new_login(name, email, phone, role, principal.id, data.get("profile_picture"))
        if role == ROLE_MANAGER:
            profile = Manager(admin_id=principal.id, **profile_patch)
            db.session.add(profile)
        elif role == ROLE_AGENT:
            profile = Agent(manager_id=manager.id, owner_admin_id=principal.id, **profile_patch)
            db.session.add(profile)
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A record with this email already exists")
    except Exception:
        db.session.rollback()
        raise
    _commit_or_conflict("User with this email already exists")

    current_app.logger.info("User %s (%s) created by admin %s", login.id, role, principal.id)
    delivery = _deliver(login, phone, password)
    return ProvisionResult("User created successfully", login, "user", password, delivery)


def update_user(principal: Principal, user_id: int, payload: dict) -> User:
    user = _owned_user(principal, user_id)
    data = _aliased(payload)
    previous_role = user.normalized_role
    previous_email = user.email

    updates = {}
    if isinstance(data.get("name"), str) and data["name"].strip():
        updates["name"] = data["name"].strip()
    if isinstance(data.get("email"), str) and data["email"].strip():
        new_email = normalize_email(data["email"])
        if "@" not in new_email:
            raise ValidationError("email must be a valid email address")
        clash = db.session.query(User.id).filter(User.email == new_email, User.id != user.id).first()
        if clash:
            raise ConflictError("Another user already uses this email")
        updates["email"] = new_email
    if isinstance(data.get("role"), str) and data["role"].strip():
        new_role = hierarchy_service.normalize_role(data["role"])
        if new_role not in VALID_ROLES:
            raise ValidationError("Invalid role")
        updates["role"] = new_role
    if isinstance(data.get("profile_picture"), str):
        updates["profile_picture"] = data["profile_picture"].strip() or None

    new_manager = None
    reassign = "manager_id" in data and ROLE_AGENT in (previous_role, updates.get("role"))
    if reassign and data["manager_id"] not in (None, ""):
        new_manager = _tenant_manager(principal.id, data["manager_id"])

    for key, value in updates.items():
        setattr(user, key, value)

    profile_model = {ROLE_MANAGER: Manager, ROLE_AGENT: Agent}.get(previous_role)
    profile = (
        db.session.query(profile_model).filter_by(email=previous_email).first()
        if profile_model else None
    )
    if profile is not None:
        if "name" in updates:
            profile.name = updates["name"]
        if "email" in updates:
            profile.email = updates["email"]
        if updates.get("profile_picture"):
            profile.profile_picture = updates["profile_picture"]
        if "role" in updates and updates["role"] != previous_role:
            profile.is_active = False

    if reassign:
        agent = db.session.query(Agent).filter_by(email=user.email).first()
        if agent is not None:
            agent.manager_id = new_manager.id if new_manager else None
            agent.owner_admin_id = principal.id

    _commit_or_conflict("Another record already uses this email")
    return user


def delete_user(principal: Principal, user_id: int) -> None:
    _require_admin(principal)
    if user_id == principal.id:
        raise ValidationError("You cannot delete your own account")
    user = _owned_user(principal, user_id)

    role = user.normalized_role
    if role == ROLE_MANAGER:
        manager = db.session.query(Manager).filter_by(email=user.email, admin_id=principal.id).first()
        if manager is not None:
            delete_manager(principal, manager.id)
            return
    if role == ROLE_AGENT:
        agent = db.session.query(Agent).filter_by(email=user.email, owner_admin_id=principal.id).first()
        if agent is not None:
            delete_agent(principal, agent.id)
            return

    _remove_login(user)
    db.session.commit()
    current_app.logger.info("User %s deleted by admin %s", user_id, principal.id)


def reset_user_password(principal: Principal, user_id: int) -> ProvisionResult:
    _require_admin(principal)
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.normalized_role not in (ROLE_MANAGER, ROLE_AGENT):
        raise ValidationError("Password reset is supported only for manager and agent accounts")
    if not _owned_by_admin(principal.id, user):
        raise AccessDeniedError("Access denied")

    profile_model = Manager if user.normalized_role == ROLE_MANAGER else Agent
    profile = db.session.query(profile_model).filter_by(email=user.email).first()
    phone = profile.phone if profile else user.phone

    password = credential_service.generate_temporary_password()
    auth_service.set_password(user, password, commit=False)
    session_service.revoke_all_user_sessions(user.id, "Password reset", commit=False)
    db.session.commit()

    delivery = _deliver(user, phone, password)
    return ProvisionResult("Temporary password generated successfully", user, "user", password, delivery)
