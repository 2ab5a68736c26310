"""
Permission binder and permission evaluators.

A method annotated with ``@requires_permission("Products.Delete")`` gets the
authorization policy ``"Permission:Products.Delete"`` on its route. The
policy is enforced by a FastAPI dependency that runs before the handler:
401 for anonymous callers, 403 when the evaluator denies the permission.

Deciding whether a principal holds a permission is delegated to a
PermissionEvaluator; two in-memory evaluators are provided.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from fastapi import Depends, HTTPException

from appservice_api.core.errors import RegistrationError
from appservice_api.runtime.auth import Principal
from appservice_api.specs.descriptors import MethodDescriptor

logger = logging.getLogger(__name__)

PERMISSION_POLICY_PREFIX = "Permission:"


@dataclass(frozen=True)
class PermissionRequirement:
    """A named permission a caller must hold."""

    permission: str

    @property
    def policy_name(self) -> str:
        return f"{PERMISSION_POLICY_PREFIX}{self.permission}"

    @classmethod
    def from_policy_name(cls, policy_name: str) -> PermissionRequirement | None:
        """Parse ``Permission:<name>``; other policy names return None."""
        if not policy_name.startswith(PERMISSION_POLICY_PREFIX):
            return None
        name = policy_name[len(PERMISSION_POLICY_PREFIX) :].strip()
        return cls(name) if name else None


def bind_permission(method: MethodDescriptor) -> PermissionRequirement | None:
    """Requirement declared on *method*, or None when it declares none (or a blank one)."""
    if method.permission and method.permission.strip():
        return PermissionRequirement(method.permission.strip())
    return None


# =============================================================================
# Evaluators
# =============================================================================


@runtime_checkable
class PermissionEvaluator(Protocol):
    """Decides whether a principal holds a permission."""

    async def has_permission(self, principal: Principal, permission: str) -> bool: ...


class ClaimsPermissionEvaluator:
    """Grants a permission when it appears in the principal's ``permissions`` claim."""

    async def has_permission(self, principal: Principal, permission: str) -> bool:
        if not principal.is_authenticated:
            return False
        wanted = permission.casefold()
        return any(p.casefold() == wanted for p in principal.permissions)


class RolePermissionEvaluator(ClaimsPermissionEvaluator):
    """
    Claims first, then direct user grants, then role grants.

    Example:
        RolePermissionEvaluator(
            role_permissions={"admin": ["Products.Read", "Products.Delete"]},
            user_permissions={"42": ["Products.Read"]},
        )
    """

    def __init__(
        self,
        role_permissions: Mapping[str, Iterable[str]] | None = None,
        user_permissions: Mapping[str, Iterable[str]] | None = None,
    ):
        self._roles = {
            role.casefold(): frozenset(p.casefold() for p in perms)
            for role, perms in (role_permissions or {}).items()
        }
        self._users = {
            user: frozenset(p.casefold() for p in perms)
            for user, perms in (user_permissions or {}).items()
        }

    async def has_permission(self, principal: Principal, permission: str) -> bool:
        if await super().has_permission(principal, permission):
            return True
        if not principal.is_authenticated:
            return False
        wanted = permission.casefold()
        if principal.subject is not None and wanted in self._users.get(principal.subject, ()):
            return True
        return any(wanted in self._roles.get(role.casefold(), ()) for role in principal.roles)


# =============================================================================
# FastAPI dependency
# =============================================================================


def create_policy_dependency(
    policy_name: str,
    evaluator: PermissionEvaluator,
    auth_dep: Callable[..., Awaitable[Principal]],
) -> Callable[..., Awaitable[Principal]]:
    """
    Create a dependency enforcing the authorization policy *policy_name*.

    Args:
        policy_name: Policy name, e.g. ``Permission:Products.Delete``
        evaluator: Permission evaluator
        auth_dep: Authentication dependency supplying the principal

    Raises:
        RegistrationError: if the policy name is not a permission policy
    """
    requirement = PermissionRequirement.from_policy_name(policy_name)
    if requirement is None:
        raise RegistrationError(f"unknown authorization policy '{policy_name}'")

    async def enforce_permission(principal: Principal = Depends(auth_dep)) -> Principal:
        if not principal.is_authenticated:
            raise HTTPException(
                status_code=401,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not await evaluator.has_permission(principal, requirement.permission):
            logger.info(
                "Denied %s to subject %s", requirement.policy_name, principal.subject or "?"
            )
            raise HTTPException(
                status_code=403,
                detail=f"Missing permission: {requirement.permission}",
            )
        return principal

    enforce_permission.__name__ = f"require_{requirement.permission.replace('.', '_')}"
    return enforce_permission
