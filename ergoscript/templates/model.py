"""Compiled contract templates and their JSON form."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from ..compiler.literals import evaluate_literal
from ..compiler.parser import parse_expression
from ..compiler.serializer import assemble_ergo_tree, deserialize_data, serialize_data
from ..compiler.types import SType, type_from_hex
from ..errors import ErgoScriptError, TemplateInstantiationError

logger = logging.getLogger(__name__)

TEMPLATE_KEYS = ("name", "description", "constTypes", "constValues", "parameters", "expressionTree")


@dataclass
class Parameter:
    name: str
    description: str
    constant_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "constantIndex": self.constant_index,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Parameter":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            constant_index=int(data["constantIndex"]),
        )


@dataclass
class ContractTemplate:
    """A compiled contract with substitutable constants.

    ``const_types`` and ``const_values`` hold hex strings; ``const_values``
    entries are ``None`` for slots without a value.  ``parameters`` map names
    to constant indices.
    """

    name: str
    description: str
    const_types: List[str]
    const_values: List[Optional[str]]
    parameters: List[Parameter]
    expression_tree: str
    tree_version: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        if len(self.const_types) != len(self.const_values):
            raise TemplateInstantiationError(
                f"Template '{self.name}' has {len(self.const_types)} constant types "
                f"but {len(self.const_values)} constant values"
            )
        for parameter in self.parameters:
            if not 0 <= parameter.constant_index < len(self.const_types):
                raise TemplateInstantiationError(
                    f"Parameter '{parameter.name}' refers to missing constant {parameter.constant_index}"
                )

    def parameter(self, name: str) -> Parameter:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        known = ", ".join(p.name for p in self.parameters) or "none"
        raise TemplateInstantiationError(
            f"Template '{self.name}' has no parameter '{name}'",
            hint=f"Known parameters: {known}",
        )

    def constant_type(self, index: int) -> SType:
        try:
            return type_from_hex(self.const_types[index])
        except (IndexError, ValueError) as exc:
            raise TemplateInstantiationError(f"Constant {index} has an invalid type: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "constTypes": list(self.const_types),
            "constValues": list(self.const_values),
            "parameters": [parameter.to_dict() for parameter in self.parameters],
            "expressionTree": self.expression_tree,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContractTemplate":
        missing = [key for key in TEMPLATE_KEYS if key not in data]
        if missing:
            raise TemplateInstantiationError(f"Template is missing fields: {', '.join(missing)}")
        try:
            return cls(
                name=data["name"],
                description=data["description"],
                const_types=list(data["constTypes"]),
                const_values=list(data["constValues"]),
                parameters=[Parameter.from_dict(item) for item in data["parameters"]],
                expression_tree=data["expressionTree"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TemplateInstantiationError(f"Invalid template: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> "ContractTemplate":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TemplateInstantiationError(
                f"Template is not valid JSON: {exc.msg}", line=exc.lineno, column=exc.colno
            ) from exc
        if not isinstance(data, dict):
            raise TemplateInstantiationError("Template JSON must be an object")
        return cls.from_dict(data)


def instantiate(
    template: ContractTemplate,
    values: Mapping[str, str],
    *,
    network: str = "mainnet",
) -> ContractTemplate:
    """Return a copy of *template* with parameter values replaced.

    Each value is ErgoScript source for a constant of the parameter's type,
    for example ``"500"`` or ``'PK("9f...")'``.  The expression tree and the
    constant types are left untouched.
    """
    const_values = list(template.const_values)
    for name, literal in values.items():
        parameter = template.parameter(name)
        tpe = template.constant_type(parameter.constant_index)
        try:
            value = evaluate_literal(parse_expression(literal), tpe, network=network, parameter=name)
            data = serialize_data(value, tpe)
        except (ErgoScriptError, ValueError) as exc:
            message = exc.message if isinstance(exc, ErgoScriptError) else str(exc)
            raise TemplateInstantiationError(
                f"Invalid value for parameter '{name}' of type {tpe}: {message}"
            ) from exc
        const_values[parameter.constant_index] = data.hex()
        logger.debug("Set %s.%s to %s", template.name, name, data.hex())
    return replace(template, const_values=const_values)


def instantiate_raw(template: ContractTemplate, values: Mapping[str, str]) -> ContractTemplate:
    """Like :func:`instantiate`, with values given as serialized hex data."""
    const_values = list(template.const_values)
    for name, data in values.items():
        parameter = template.parameter(name)
        tpe = template.constant_type(parameter.constant_index)
        try:
            raw = bytes.fromhex(data)
        except ValueError as exc:
            raise TemplateInstantiationError(f"Value for parameter '{name}' is not hex: {data!r}") from exc
        try:
            deserialize_data(raw, tpe)
        except ValueError as exc:
            raise TemplateInstantiationError(f"Value for parameter '{name}' is not valid {tpe} data: {exc}") from exc
        const_values[parameter.constant_index] = data.lower()
    return replace(template, const_values=const_values)


def ergo_tree_bytes(template: ContractTemplate, version: Optional[int] = None) -> bytes:
    """Assemble the full ErgoTree with every constant embedded."""
    constants = []
    for index, (type_hex, value_hex) in enumerate(zip(template.const_types, template.const_values)):
        if value_hex is None:
            names = [p.name for p in template.parameters if p.constant_index == index]
            label = f"parameter '{names[0]}'" if names else f"constant {index}"
            raise TemplateInstantiationError(f"No value for {label} of template '{template.name}'")
        constants.append((bytes.fromhex(type_hex), bytes.fromhex(value_hex)))
    tree_version = template.tree_version if version is None else version
    return assemble_ergo_tree(constants, bytes.fromhex(template.expression_tree), tree_version)


def ergo_tree_hex(template: ContractTemplate, version: Optional[int] = None) -> str:
    return ergo_tree_bytes(template, version).hex()


__all__ = [
    "Parameter",
    "ContractTemplate",
    "instantiate",
    "instantiate_raw",
    "ergo_tree_bytes",
    "ergo_tree_hex",
]
