from __future__ import annotations

import json

import pytest

from ergoscript.compiler.literals import encode_p2pk_address
from ergoscript.errors import TemplateInstantiationError
from ergoscript.templates import (
    ContractTemplate,
    Parameter,
    compile_source,
    ergo_tree_hex,
    instantiate,
    instantiate_raw,
)

PK_CAROL = "02f9308a019258c31049344f85f89d5229b531c845836f99b08601f113bce036f9"


@pytest.fixture
def height_lock(read_contract) -> ContractTemplate:
    return compile_source(read_contract("height_lock.es"))


@pytest.fixture
def payment_channel(read_contract) -> ContractTemplate:
    return compile_source(read_contract("payment_channel.es"))


def test_json_key_order(height_lock: ContractTemplate) -> None:
    data = json.loads(height_lock.to_json())

    assert list(data) == ["name", "description", "constTypes", "constValues", "parameters", "expressionTree"]
    assert data["parameters"] == [
        {
            "name": "minHeight",
            "description": "Block height after which the box can be spent",
            "constantIndex": 0,
        }
    ]


def test_json_round_trip(payment_channel: ContractTemplate) -> None:
    restored = ContractTemplate.from_json(payment_channel.to_json())

    assert restored == payment_channel


def test_instantiate_changes_only_target_slot(height_lock: ContractTemplate) -> None:
    updated = instantiate(height_lock, {"minHeight": "500"})

    assert updated.const_values == ["e807"]
    assert updated.const_types == height_lock.const_types
    assert updated.expression_tree == height_lock.expression_tree
    assert height_lock.const_values == ["c801"]


def test_instantiate_one_of_many(payment_channel: ContractTemplate) -> None:
    updated = instantiate(payment_channel, {"timeout": "2000"})

    assert updated.const_values[:2] == payment_channel.const_values[:2]
    assert updated.const_values[2] == "a01f"
    assert updated.expression_tree == payment_channel.expression_tree


def test_instantiate_with_address(payment_channel: ContractTemplate) -> None:
    address = encode_p2pk_address(bytes.fromhex(PK_CAROL))

    updated = instantiate(payment_channel, {"bob": f'PK("{address}")'})

    assert updated.const_values[1] == "cd" + PK_CAROL


def test_instantiate_with_testnet_address(payment_channel: ContractTemplate) -> None:
    address = encode_p2pk_address(bytes.fromhex(PK_CAROL), network="testnet")

    with pytest.raises(TemplateInstantiationError):
        instantiate(payment_channel, {"bob": f'PK("{address}")'})

    updated = instantiate(payment_channel, {"bob": f'PK("{address}")'}, network="testnet")
    assert updated.const_values[1] == "cd" + PK_CAROL


def test_instantiate_rejects_wrong_type(height_lock: ContractTemplate) -> None:
    with pytest.raises(TemplateInstantiationError) as exc_info:
        instantiate(height_lock, {"minHeight": "true"})

    assert "minHeight" in exc_info.value.message


def test_instantiate_rejects_unknown_parameter(height_lock: ContractTemplate) -> None:
    with pytest.raises(TemplateInstantiationError) as exc_info:
        instantiate(height_lock, {"maxHeight": "5"})

    assert exc_info.value.hint == "Known parameters: minHeight"


def test_instantiate_raw(height_lock: ContractTemplate) -> None:
    updated = instantiate_raw(height_lock, {"minHeight": "E807"})

    assert updated.const_values == ["e807"]
    with pytest.raises(TemplateInstantiationError):
        instantiate_raw(height_lock, {"minHeight": "zz"})


@pytest.mark.parametrize(
    "data",
    ["", "0101", "ff" * 11, "80"],
    ids=["empty", "trailing-bytes", "overlong-vlq", "truncated"],
)
def test_instantiate_raw_checks_data_against_slot_type(height_lock: ContractTemplate, data: str) -> None:
    with pytest.raises(TemplateInstantiationError, match="not valid Int data"):
        instantiate_raw(height_lock, {"minHeight": data})


def test_instantiate_raw_rejects_out_of_range_int(height_lock: ContractTemplate) -> None:
    # zigzag of 2**31 does not fit an Int
    with pytest.raises(TemplateInstantiationError, match="out of range"):
        instantiate_raw(height_lock, {"minHeight": "8080808010"})


def test_ergo_tree_requires_every_value() -> None:
    template = ContractTemplate(
        name="open",
        description="",
        const_types=["04"],
        const_values=[None],
        parameters=[Parameter("minHeight", "", 0)],
        expression_tree="d191a37300",
    )

    with pytest.raises(TemplateInstantiationError) as exc_info:
        ergo_tree_hex(template)

    assert "parameter 'minHeight'" in exc_info.value.message


def test_constant_index_must_exist() -> None:
    with pytest.raises(TemplateInstantiationError):
        ContractTemplate(
            name="broken",
            description="",
            const_types=["04"],
            const_values=["c801"],
            parameters=[Parameter("x", "", 3)],
            expression_tree="d191a37300",
        )


def test_from_json_reports_missing_fields() -> None:
    with pytest.raises(TemplateInstantiationError) as exc_info:
        ContractTemplate.from_json('{"name": "x"}')

    assert "expressionTree" in exc_info.value.message


def test_from_json_rejects_invalid_json() -> None:
    with pytest.raises(TemplateInstantiationError):
        ContractTemplate.from_json("{not json")

    with pytest.raises(TemplateInstantiationError):
        ContractTemplate.from_json("[]")
