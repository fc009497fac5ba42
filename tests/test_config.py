"""
Tests for project configuration loading.
"""

import json
from pathlib import Path

import pytest

from ergoscript.config import (
    ConstantDefinition,
    ContractTarget,
    locate_config_file,
    load_project_config,
    parse_project_config,
)
from ergoscript.errors import ConfigError


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_config_file(tmp_path):
    config = load_project_config(tmp_path)

    assert config.path is None
    assert config.root == tmp_path.resolve()
    assert config.network == "mainnet"
    assert config.tree_version == 0
    assert config.constants == {}
    assert config.contracts == []
    assert config.output_dir == tmp_path.resolve() / "build"


def test_locate_searches_parent_directories(tmp_path):
    config_path = _write(tmp_path / "ergo.json", {})
    nested = tmp_path / "contracts" / "escrow"
    nested.mkdir(parents=True)

    assert locate_config_file(nested) == config_path.resolve()


def test_locate_prefers_ergo_json(tmp_path):
    _write(tmp_path / "ergoproject.json", {})
    preferred = _write(tmp_path / "ergo.json", {})

    assert locate_config_file(tmp_path) == preferred.resolve()


def test_explicit_config_must_exist(tmp_path):
    with pytest.raises(ConfigError, match="Configuration file not found"):
        locate_config_file(tmp_path, tmp_path / "missing.json")


def test_full_configuration(tmp_path):
    path = _write(
        tmp_path / "ergo.json",
        {
            "name": "escrow",
            "network": "Testnet",
            "treeVersion": 1,
            "directories": {"source": "contracts", "output": "dist"},
            "constants": {
                "LOCK_HEIGHT": {"type": "Int", "value": 1000, "description": "Lock height"},
                "ENABLED": {"constantType": "Boolean", "value": True},
            },
            "compile": {
                "contracts": [
                    {"source": "contracts/escrow.es"},
                    {"source": "contracts/lock.es", "name": "Lock", "output": "locks/lock.json"},
                ]
            },
        },
    )

    config = load_project_config(tmp_path)

    assert config.path == path.resolve()
    assert config.name == "escrow"
    assert config.network == "testnet"
    assert config.tree_version == 1
    assert config.source_dir == tmp_path.resolve() / "contracts"
    assert config.constants["LOCK_HEIGHT"] == ConstantDefinition(
        name="LOCK_HEIGHT", type="Int", value="1000", description="Lock height"
    )
    assert config.constants["ENABLED"].value == "true"
    assert config.contracts == [
        ContractTarget(name="escrow", source="contracts/escrow.es", output="escrow.json"),
        ContractTarget(name="Lock", source="contracts/lock.es", output="locks/lock.json"),
    ]
    assert config.resolve_output(config.contracts[1]) == tmp_path.resolve() / "dist" / "locks" / "lock.json"
    assert config.resolve_source(config.contracts[0]) == tmp_path.resolve() / "contracts" / "escrow.es"


def test_nested_network_settings(tmp_path):
    config = parse_project_config({"ergoscript": {"network": "testnet", "treeVersion": 2}}, tmp_path / "ergo.json")

    assert config.network == "testnet"
    assert config.tree_version == 2
    assert config.root == tmp_path.resolve()


def test_toml_configuration(tmp_path):
    pytest.importorskip("tomllib")
    (tmp_path / "ergo.toml").write_text(
        'network = "testnet"\n\n[constants.FEE]\ntype = "Long"\nvalue = "1000000"\n',
        encoding="utf-8",
    )

    config = load_project_config(tmp_path)

    assert config.network == "testnet"
    assert config.constants["FEE"].type == "Long"


@pytest.mark.parametrize(
    "data, message",
    [
        ({"network": "devnet"}, "Unknown network 'devnet'"),
        ({"treeVersion": 8}, "treeVersion must be between 0 and 7"),
        ({"treeVersion": "new"}, "treeVersion must be an integer"),
        ({"constants": []}, "'constants' must be an object"),
        ({"constants": {"FEE": {"type": "Long"}}}, "Constant 'FEE' needs both 'type' and 'value'"),
        ({"constants": {"FEE": 1000}}, "Constant 'FEE' must be an object"),
        ({"compile": {"contracts": [{"name": "lock"}]}}, r"compile.contracts\[0\] needs a 'source'"),
        ({"directories": "build"}, "'directories' must be an object"),
        ({"directories": []}, "'directories' must be an object"),
        ({"compile": []}, "'compile' must be an object"),
        ({"compile": {"contracts": {}}}, "'compile.contracts' must be a list"),
        ({"ergoscript": ""}, "'ergoscript' must be an object"),
    ],
)
def test_invalid_configuration(data, message):
    with pytest.raises(ConfigError, match=message) as exc_info:
        parse_project_config(data)
    assert exc_info.value.code == "ERGO-CONFIG"


def test_invalid_json_reports_line(tmp_path):
    (tmp_path / "ergo.json").write_text('{\n  "network": \n}', encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        load_project_config(tmp_path)

    assert exc_info.value.message.startswith("Invalid JSON in configuration")
    assert exc_info.value.line == 3


def test_configuration_must_be_object(tmp_path):
    _write(tmp_path / "ergo.json", [1, 2])

    with pytest.raises(ConfigError, match="Configuration must be an object"):
        load_project_config(tmp_path)


def test_constant_from_environment():
    constant = ConstantDefinition(name="OWNER", type="SigmaProp", value="env:OWNER_PK")

    assert constant.resolve({"OWNER_PK": "PK(\"9f\")"}) == "PK(\"9f\")"
    with pytest.raises(ConfigError, match="Environment variable 'OWNER_PK'"):
        constant.resolve({})


def test_plain_constant_ignores_environment():
    constant = ConstantDefinition(name="FEE", type="Long", value="1000000")

    assert constant.resolve({}) == "1000000"


def test_null_sections_mean_defaults(tmp_path):
    config = parse_project_config(
        {"ergoscript": None, "directories": None, "constants": None, "compile": {"contracts": None}},
        tmp_path / "ergo.json",
    )

    assert config.network == "mainnet"
    assert config.directories.output == "build"
    assert config.constants == {}
    assert config.contracts == []
