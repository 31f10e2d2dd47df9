"""
Authorization chain.

A guard is a pure function ``(Principal, RequestShape) -> GuardResult``; it
passes the request through, narrows it (rewrites query parameters), or denies
it with an AppError. ``run_chain`` applies guards in order, feeding each the
shape the previous one produced. ``authorize(...)`` turns a chain into a FastAPI
dependency that runs after the authentication gate.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.auth.gate import get_current_principal
from disease_report.auth.policy import (
    EMPTY_GRANTS,
    Capability,
    Decision,
    GrantTable,
    decide,
    is_hierarchy_capability,
    load_grant_table,
)
from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.auth.scope import ensure_can_manage, scope_for
from disease_report.database import get_db
from disease_report.exceptions import AppError, hospital_not_assigned, permission_denied

logger = logging.getLogger(__name__)

HOSPITAL_PARAM = "hospitalCode"

_ROLE_CAPABILITY = {
    Role.SUPERADMIN: Capability.IS_SUPERADMIN,
    Role.ADMIN: Capability.IS_ADMIN,
    Role.USER: Capability.IS_USER,
}

_ROLE_DENIED_MESSAGE = {
    Role.SUPERADMIN: "Superadmin access required",
    Role.ADMIN: "Admin access required",
    Role.USER: "User access required",
}


class Outcome(str, Enum):
    PASS = "pass"
    NARROW = "narrow"
    DENY = "deny"


@dataclass(frozen=True)
class RequestShape:
    """What the guards get to see of a request."""
    query: Mapping[str, Any] = field(default_factory=dict)
    target_role: Optional[Role] = None
    target_hospital_code: Optional[str] = None
    grants: GrantTable = EMPTY_GRANTS

    def with_query(self, **updates) -> "RequestShape":
        return replace(self, query={**self.query, **updates})


@dataclass(frozen=True)
class GuardResult:
    outcome: Outcome
    shape: RequestShape
    error: Optional[AppError] = None

    @classmethod
    def passed(cls, shape: RequestShape) -> "GuardResult":
        return cls(Outcome.PASS, shape)

    @classmethod
    def narrowed(cls, shape: RequestShape) -> "GuardResult":
        return cls(Outcome.NARROW, shape)

    @classmethod
    def denied(cls, shape: RequestShape, error: AppError) -> "GuardResult":
        return cls(Outcome.DENY, shape, error)


class Guard:
    def __init__(
        self,
        name: str,
        check: Callable[[Principal, RequestShape], GuardResult],
        needs_grants: bool = False,
        needs_target: bool = False,
    ):
        self.name = name
        self.check = check
        self.needs_grants = needs_grants
        self.needs_target = needs_target

    def __call__(self, principal: Principal, shape: RequestShape) -> GuardResult:
        return self.check(principal, shape)

    def __repr__(self) -> str:
        return f"Guard({self.name})"


def require_capability(capability: Capability, message: Optional[str] = None) -> Guard:
    def check(principal: Principal, shape: RequestShape) -> GuardResult:
        if decide(principal, capability, shape.grants) == Decision.ALLOW:
            return GuardResult.passed(shape)
        return GuardResult.denied(
            shape, permission_denied(message or f"Permission {capability.value} denied")
        )

    return Guard(
        f"capability:{capability.value}", check, needs_grants=not is_hierarchy_capability(capability)
    )


def require_role(role: Role) -> Guard:
    return require_capability(_ROLE_CAPABILITY[role], _ROLE_DENIED_MESSAGE[role])


def require_hospital() -> Guard:
    """Scoped callers must have a hospital to be scoped to."""
    def check(principal: Principal, shape: RequestShape) -> GuardResult:
        scope = scope_for(principal)
        try:
            scope.constrain()
        except AppError as e:
            return GuardResult.denied(shape, e)
        return GuardResult.passed(shape)

    return Guard("hospital:assigned", check)


def hospital_scoped(param: str = HOSPITAL_PARAM) -> Guard:
    """Force ``param`` in the query to the caller's hospital unless it is unrestricted."""
    def check(principal: Principal, shape: RequestShape) -> GuardResult:
        scope = scope_for(principal)
        if scope.unrestricted:
            return GuardResult.passed(shape)
        try:
            code = scope.constrain(shape.query.get(param))
        except AppError as e:
            return GuardResult.denied(shape, e)
        return GuardResult.narrowed(shape.with_query(**{param: code}))

    return Guard(f"hospital:scope:{param}", check)


def manages_target() -> Guard:
    """Role hierarchy for user management; needs target_role on the shape."""
    def check(principal: Principal, shape: RequestShape) -> GuardResult:
        if shape.target_role is None:
            return GuardResult.denied(shape, permission_denied("No target user to check"))
        try:
            ensure_can_manage(principal, shape.target_role)
        except AppError as e:
            return GuardResult.denied(shape, e)
        return GuardResult.passed(shape)

    return Guard("user:manage-target", check, needs_target=True)


def same_hospital_as_target() -> Guard:
    def check(principal: Principal, shape: RequestShape) -> GuardResult:
        scope = scope_for(principal)
        if not scope.unrestricted and not scope.hospital_code:
            return GuardResult.denied(shape, hospital_not_assigned())
        if scope.permits(shape.target_hospital_code):
            return GuardResult.passed(shape)
        return GuardResult.denied(shape, permission_denied("The user belongs to another hospital"))

    return Guard("user:same-hospital", check, needs_target=True)


def run_chain(principal: Principal, shape: RequestShape, guards: Sequence[Guard]) -> RequestShape:
    for guard in guards:
        result = guard(principal, shape)
        if result.outcome == Outcome.DENY:
            logger.warning(
                "%r denied user %s: %s", guard, principal.user_id, result.error.kind.value
            )
            raise result.error
        shape = result.shape
    return shape


@dataclass(frozen=True)
class Authorization:
    principal: Principal
    shape: RequestShape

    @property
    def query(self) -> Mapping[str, Any]:
        return self.shape.query


TargetLoader = Callable[[Request, AsyncSession, RequestShape], Awaitable[RequestShape]]


def authorize(*guards: Guard, target_loader: Optional[TargetLoader] = None):
    """
    Build a FastAPI dependency that authenticates, then runs ``guards`` in order.

    Guards that look at a target user run after the ones before them have
    passed; ``target_loader`` fills the target in just before the first of them.
    """
    split = next((i for i, g in enumerate(guards) if g.needs_target), len(guards))
    if split < len(guards) and target_loader is None:
        raise ValueError(f"{guards[split]!r} needs a target_loader")

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ) -> Authorization:
        grants = EMPTY_GRANTS
        if not principal.is_superadmin and any(g.needs_grants for g in guards):
            grants = await load_grant_table(db, principal.role)

        shape = RequestShape(query=dict(request.query_params), grants=grants)
        shape = run_chain(principal, shape, guards[:split])
        if split < len(guards):
            shape = await target_loader(request, db, shape)
            shape = run_chain(principal, shape, guards[split:])

        return Authorization(principal=principal, shape=shape)

    return dependency
