"""
Capability-gated trait updates.

Permission is an explicit policy decision, independent of type validation, so hosts
can plug in their own authorization scheme. The default policy lets privileged
callers set any trait and token owners set traits flagged
``tokenOwnerCanUpdateValue``. ``DenyAllPolicy`` models read-only hosts whose setters
always revert.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dtraits.core.errors import Unauthorized
from dtraits.core.grammar import CallerRole
from dtraits.core.schema import TraitSchemaEntry

__all__ = [
    "PermissionPolicy",
    "DefaultPermissionPolicy",
    "DenyAllPolicy",
    "DEFAULT_POLICY",
    "check_permission",
]


class PermissionPolicy(Protocol):
    def allows(self, entry: TraitSchemaEntry | None, role: CallerRole) -> bool:
        """Return True if a caller with ``role`` may update the trait described by ``entry``."""
        ...


@dataclass(frozen=True)
class DefaultPermissionPolicy:
    """
    Privileged callers always; token owners only where the entry allows it.

    Traits absent from the schema (``entry`` is None) are privileged-only.
    """

    def allows(self, entry: TraitSchemaEntry | None, role: CallerRole) -> bool:
        if role is CallerRole.PRIVILEGED:
            return True
        if role is CallerRole.TOKEN_OWNER:
            return entry is not None and entry.token_owner_can_update_value
        return False


@dataclass(frozen=True)
class DenyAllPolicy:
    """Every update is rejected."""

    def allows(self, entry: TraitSchemaEntry | None, role: CallerRole) -> bool:
        return False


DEFAULT_POLICY: PermissionPolicy = DefaultPermissionPolicy()


def check_permission(
    entry: TraitSchemaEntry | None,
    role: CallerRole,
    policy: PermissionPolicy = DEFAULT_POLICY,
) -> None:
    """
    Raise Unauthorized unless ``policy`` allows ``role`` to update the trait.

    Args:
        entry (TraitSchemaEntry | None): Schema entry, or None for unknown traits.
        role (CallerRole): Caller role as resolved by the host.
        policy (PermissionPolicy): Authorization scheme.

    Raises:
        Unauthorized: If the update is not permitted.
    """
    if not policy.allows(entry, role):
        label = entry.name if entry is not None else "<unknown trait>"
        raise Unauthorized(f"caller role {role.value!r} may not update trait {label!r}")
