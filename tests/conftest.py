from __future__ import annotations

import copy
from typing import Any

import pytest

from dtraits.core.loader import load_schema
from dtraits.core.schema import TraitSchema

LITERAL_KEY = "0x77c2fd45bd8bdef5b5bc773f46759bb8d169f3468caab64d7d5f2db16bb867a8"
ZERO_HEX = "0x" + "00" * 32
ONE_HEX = "0x" + "00" * 31 + "01"

SAMPLE_DOCUMENT: dict[str, Any] = {
    "traits": {
        "color": {
            "displayName": "Color",
            "dataType": {
                "type": "string",
                "valueMappings": {
                    "0x1": "red",
                    "0x2": "green",
                },
            },
        },
        "points": {
            "displayName": "Total Score",
            "dataType": {"type": "decimal", "signed": False, "bits": 16, "decimals": 0},
            "consumptionValidationOnSale": "requireUintGte",
        },
        "name": {
            "displayName": "Name",
            "dataType": {
                "type": "string",
                "minLength": 1,
                "maxLength": 32,
                "valueMappings": {ZERO_HEX: "Unnamed"},
            },
            "tokenOwnerCanUpdateValue": True,
        },
        "birthday": {
            "displayName": "Birthday",
            "dataType": {"type": "epochSeconds", "valueMappings": {"0x0": None}},
        },
        "redeemed": {
            "displayName": "Redeemed",
            "dataType": {"type": "boolean"},
            "consumptionValidationOnSale": "requireEq",
        },
        LITERAL_KEY: {
            "displayName": "Ship Date",
            "dataType": {
                "type": "epochSeconds",
                "valueMappings": {"0x0": 1696702201},
            },
        },
    }
}


@pytest.fixture
def document() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def schema(document: dict[str, Any]) -> TraitSchema:
    return load_schema(document)
