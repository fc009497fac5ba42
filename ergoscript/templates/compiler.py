"""Compilation of contract sources into templates."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..compiler.literals import evaluate_literal, network_prefix
from ..compiler.lowering import Lowering
from ..compiler.parser import parse_program
from ..compiler.serializer import MAX_TREE_VERSION, ConstantStore, serialize_data, serialize_tree
from ..compiler.tree import ConstantPlaceholder, Node
from ..compiler.types import SBoolean, SSigmaProp, serialize_type
from ..errors import ScriptTypeError
from .extractor import ContractTemplateDraft, extract_template, is_template_source
from .model import ContractTemplate, Parameter

logger = logging.getLogger(__name__)


def _check_target(network: str, tree_version: int) -> None:
    network_prefix(network)
    if not 0 <= tree_version <= MAX_TREE_VERSION:
        raise ValueError(f"ErgoTree version must be between 0 and {MAX_TREE_VERSION}, got {tree_version}")


def _template(name, description, store: ConstantStore, parameters, tree: bytes, tree_version: int) -> ContractTemplate:
    return ContractTemplate(
        name=name,
        description=description,
        const_types=[serialize_type(entry.tpe).hex() for entry in store.entries],
        const_values=[entry.data.hex() if entry.data is not None else None for entry in store.entries],
        parameters=parameters,
        expression_tree=tree.hex(),
        tree_version=tree_version,
    )


def compile_template(
    draft: ContractTemplateDraft,
    *,
    network: str = "mainnet",
    tree_version: int = 0,
    path: Optional[str] = None,
) -> ContractTemplate:
    """Compile a validated draft.

    Parameter defaults take constant slots ``0..n-1`` in declaration order;
    literals of the body follow.
    """
    _check_target(network, tree_version)
    if draft.return_type is not None and draft.return_type not in (SSigmaProp, SBoolean):
        raise ScriptTypeError(
            f"Contract '{draft.name}' must return SigmaProp or Boolean, not {draft.return_type}",
            path=path,
            line=draft.line,
            column=draft.column,
        )
    store = ConstantStore()
    bindings: Dict[str, Node] = {}
    parameters = []
    for parameter in draft.parameters:
        value = evaluate_literal(
            parameter.default,
            parameter.type,
            network=network,
            path=path,
            parameter=parameter.name,
        )
        index = store.add(parameter.type, serialize_data(value, parameter.type))
        bindings[parameter.name] = ConstantPlaceholder(index, parameter.type)
        parameters.append(Parameter(parameter.name, parameter.description, index))

    lowering = Lowering(network=network, path=path)
    root = lowering.lower_root(draft.helpers, draft.body, bindings, draft.body)
    tree = serialize_tree(root, store)
    logger.debug("Compiled template %s: %d constants, %d tree bytes", draft.name, len(store), len(tree))
    return _template(draft.name, draft.description, store, parameters, tree, tree_version)


def compile_source(
    source: str,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    network: str = "mainnet",
    tree_version: int = 0,
    path: Optional[str] = None,
) -> ContractTemplate:
    """Compile a template source or a plain script.

    Sources containing ``@contract`` or ``@param`` go through template
    extraction; anything else is compiled as a contract without parameters,
    named by *name* and *description*.
    """
    program = parse_program(source, path)
    if is_template_source(source):
        draft = extract_template(source, path=path, program=program)
        return compile_template(draft, network=network, tree_version=tree_version, path=path)

    _check_target(network, tree_version)
    store = ConstantStore()
    root = Lowering(network=network, path=path).lower_root(program.statements, program.result, {}, program)
    tree = serialize_tree(root, store)
    contract_name = name or "contract"
    logger.debug("Compiled script %s: %d constants, %d tree bytes", contract_name, len(store), len(tree))
    return _template(contract_name, description or "", store, [], tree, tree_version)


def compile_file(path: str, **options) -> ContractTemplate:
    with open(path, "r", encoding="utf-8") as handle:
        source = handle.read()
    return compile_source(source, path=path, **options)


__all__ = ["compile_template", "compile_source", "compile_file"]
