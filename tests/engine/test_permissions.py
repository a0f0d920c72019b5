from __future__ import annotations

import pytest
from eth_utils import keccak

from dtraits.core.errors import Unauthorized
from dtraits.core.grammar import CallerRole
from dtraits.core.schema import TraitSchema
from dtraits.engine.permissions import DenyAllPolicy, check_permission
from dtraits.engine.values import validate_and_normalize


@pytest.mark.parametrize("candidate", ["fine", "x" * 40, "", 7])
def test_unauthorized_is_checked_before_the_value(schema: TraitSchema, candidate: object) -> None:
    points = schema[keccak(text="points")]
    with pytest.raises(Unauthorized):
        validate_and_normalize(points, candidate, CallerRole.TOKEN_OWNER)
    with pytest.raises(Unauthorized):
        validate_and_normalize(points, candidate, CallerRole.PUBLIC)


def test_owner_flag(schema: TraitSchema) -> None:
    name = schema[keccak(text="name")]
    assert validate_and_normalize(name, "Ada", CallerRole.TOKEN_OWNER).display == "Ada"
    with pytest.raises(Unauthorized):
        validate_and_normalize(name, "Ada", CallerRole.PUBLIC)


def test_privileged_may_update_anything(schema: TraitSchema) -> None:
    for entry in schema:
        check_permission(entry, CallerRole.PRIVILEGED)


def test_unknown_traits_are_privileged_only() -> None:
    check_permission(None, CallerRole.PRIVILEGED)
    with pytest.raises(Unauthorized):
        check_permission(None, CallerRole.TOKEN_OWNER)


def test_deny_all_policy(schema: TraitSchema) -> None:
    name = schema[keccak(text="name")]
    with pytest.raises(Unauthorized):
        validate_and_normalize(name, "Ada", CallerRole.PRIVILEGED, policy=DenyAllPolicy())
