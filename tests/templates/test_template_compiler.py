from __future__ import annotations

import pytest

from ergoscript.errors import InvalidDefault, ScriptTypeError
from ergoscript.templates import ContractTemplate, compile_file, compile_source, ergo_tree_hex

PK_ALICE = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
PK_BOB = "03c6047f9441ed7d6d3045406e95c07cd85c778e4b8cef3ca7abac09b95c709ee5"
PK_CAROL = "02f9308a019258c31049344f85f89d5229b531c845836f99b08601f113bce036f9"


def test_height_lock_template(read_contract) -> None:
    template = compile_source(read_contract("height_lock.es"))

    assert template.name == "heightLock"
    assert template.description == "Funds can be spent once the blockchain reaches a given height."
    assert template.const_types == ["04"]
    assert template.const_values == ["c801"]
    assert template.expression_tree == "d191a37300"
    assert [(p.name, p.constant_index) for p in template.parameters] == [("minHeight", 0)]
    assert template.parameters[0].description == "Block height after which the box can be spent"


def test_multisig_template(read_contract) -> None:
    template = compile_source(read_contract("multisig.es"))

    assert template.name == "multiSig"
    assert template.description == "Threshold signature: any `threshold` of the listed keys can spend."
    assert template.const_types == ["04", "14"]
    assert template.const_values == ["04", "03" + "cd" + PK_ALICE + "cd" + PK_BOB + "cd" + PK_CAROL]
    assert template.expression_tree == "9873007301"
    assert [(p.name, p.constant_index) for p in template.parameters] == [("threshold", 0), ("keys", 1)]


def test_payment_channel_template(read_contract) -> None:
    template = compile_source(read_contract("payment_channel.es"))

    assert template.name == "paymentChannel"
    assert template.const_types == ["08", "08", "04"]
    assert template.const_values == ["cd" + PK_ALICE, "cd" + PK_BOB, "d00f"]
    assert template.expression_tree == "eb02ea0273007301ea027300d191a37302"
    assert [p.name for p in template.parameters] == ["alice", "bob", "timeout"]
    assert template.parameter("timeout").description == "Height after which alice may close the channel alone"


def test_payment_channel_description_joins_lines(read_contract) -> None:
    template = compile_source(read_contract("payment_channel.es"))

    assert template.description == (
        "Two-party payment channel. Both parties can close the channel together; "
        "after the timeout alice can reclaim the funds alone."
    )


def test_recompilation_is_stable(read_contract) -> None:
    source = read_contract("payment_channel.es")

    assert compile_source(source).to_json() == compile_source(source).to_json()


def test_compile_file_reads_source(template_data_dir) -> None:
    template = compile_file(str(template_data_dir / "height_lock.es"))

    assert isinstance(template, ContractTemplate)
    assert template.name == "heightLock"


def test_full_ergo_tree_embeds_constants(read_contract) -> None:
    template = compile_source(read_contract("height_lock.es"))

    assert ergo_tree_hex(template) == "100104c801d191a37300"


def test_ergo_tree_version_adds_size(read_contract) -> None:
    template = compile_source(read_contract("height_lock.es"))

    assert ergo_tree_hex(template, 1) == "19090104c801d191a37300"


def test_plain_script_compiles_without_parameters() -> None:
    template = compile_source("sigmaProp(HEIGHT > 100)", name="lock", description="Simple lock")

    assert template.name == "lock"
    assert template.description == "Simple lock"
    assert template.parameters == []
    assert template.const_types == ["04"]
    assert template.const_values == ["c801"]
    assert template.expression_tree == "d191a37300"


def test_plain_script_default_name() -> None:
    assert compile_source("HEIGHT > 100").name == "contract"


def test_body_literals_follow_parameters() -> None:
    source = (
        "/* Lock with a floor.\n"
        " * @param minHeight Lowest height\n"
        " */\n"
        "@contract def lock(minHeight: Int = 10) = sigmaProp(HEIGHT > minHeight && HEIGHT < 500)\n"
    )
    template = compile_source(source)

    assert template.const_types == ["04", "04"]
    assert template.const_values == ["14", "e807"]
    assert template.parameters[0].constant_index == 0


def test_helpers_are_in_scope() -> None:
    source = (
        "def limit = 50\n"
        "/* Helper use.\n"
        " * @param offset Added to the limit\n"
        " */\n"
        "@contract def withHelper(offset: Int = 1) = sigmaProp(HEIGHT > limit + offset)\n"
    )
    template = compile_source(source)

    assert [p.name for p in template.parameters] == ["offset"]
    assert template.const_values[0] == "02"


def test_invalid_default_is_reported() -> None:
    source = (
        "/* Bad default.\n"
        " * @param minHeight Height\n"
        " */\n"
        "@contract def lock(minHeight: Int = HEIGHT) = sigmaProp(HEIGHT > minHeight)\n"
    )
    with pytest.raises(InvalidDefault) as exc_info:
        compile_source(source)

    assert exc_info.value.parameter == "minHeight"
    assert exc_info.value.line == 4


def test_contract_must_produce_a_proposition() -> None:
    source = (
        "/* Not a proposition.\n"
        " * @param amount Amount\n"
        " */\n"
        "@contract def broken(amount: Long = 1L) = SELF.value + amount\n"
    )
    with pytest.raises(ScriptTypeError):
        compile_source(source)


def test_unknown_network_is_rejected(read_contract) -> None:
    with pytest.raises(ValueError):
        compile_source(read_contract("height_lock.es"), network="regtest")
