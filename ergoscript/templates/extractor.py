"""Extraction of contract templates from annotated sources.

A template source defines its contract as an ``@contract`` function whose
parameters carry a type and a default value, preceded by a block comment::

    /* Locks funds until a block height.
     * @param minHeight Height after which the box can be spent
     */
    @contract def heightLock(minHeight: Int = 100) = sigmaProp(HEIGHT > minHeight)

Helper ``val``/``def`` statements may appear before the docstring and are
in scope in the contract body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..compiler import ast
from ..compiler.lexer import Comment
from ..compiler.parser import parse_program
from ..compiler.types import SType
from ..errors import (
    MalformedDocstring,
    MissingDefault,
    MissingParamDoc,
    MissingTypeAnnotation,
    ScriptSyntaxError,
)

logger = logging.getLogger(__name__)

TEMPLATE_MARKERS = ("@contract", "@param")


@dataclass
class TemplateParameter:
    name: str
    type: SType
    default: ast.Expression
    description: str
    line: int = 0
    column: int = 0


@dataclass
class ContractTemplateDraft:
    """A validated template declaration, ready for compilation."""

    name: str
    description: str
    parameters: List[TemplateParameter]
    body: ast.Expression
    helpers: List[ast.Node] = field(default_factory=list)
    return_type: Optional[SType] = None
    line: int = 0
    column: int = 0

    def parameter(self, name: str) -> Optional[TemplateParameter]:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None


def is_template_source(source: str) -> bool:
    """True when *source* declares a contract template."""
    return any(marker in source for marker in TEMPLATE_MARKERS)


def extract_template(
    source: str,
    path: Optional[str] = None,
    program: Optional[ast.Program] = None,
) -> ContractTemplateDraft:
    """Parse *source* and validate its ``@contract`` declaration."""
    if program is None:
        program = parse_program(source, path)
    contract = program.contract()
    if contract is None:
        raise MalformedDocstring(
            "No @contract definition found",
            path=path,
            hint="Annotate the contract function with @contract",
        )
    index = program.statements.index(contract)
    if index != len(program.statements) - 1 or program.result is not None:
        raise ScriptSyntaxError(
            f"The @contract definition '{contract.name}' must be the last statement",
            path=path,
            line=contract.line,
            column=contract.column,
        )

    comment = _docstring_for(source, program.comments, contract)
    if comment is None:
        raise MalformedDocstring(
            f"@contract '{contract.name}' must be immediately preceded by a /* ... */ comment",
            path=path,
            line=contract.line,
            column=contract.column,
            hint="Line comments (//) are not accepted as contract docstrings",
        )
    description, docs = parse_docstring(comment, path)

    parameters = []
    declared = set()
    for param in contract.params or []:
        declared.add(param.name)
        parameters.append(_parameter(param, docs, path))
    for name in docs:
        if name not in declared:
            logger.debug("Ignoring @param for unknown parameter '%s' in %s", name, contract.name)

    logger.debug("Extracted template %s with %d parameters", contract.name, len(parameters))
    return ContractTemplateDraft(
        name=contract.name,
        description=description,
        parameters=parameters,
        body=contract.body,
        helpers=list(program.statements[:index]),
        return_type=contract.return_type,
        line=contract.line,
        column=contract.column,
    )


def _docstring_for(source: str, comments: List[Comment], contract: ast.DefDecl) -> Optional[Comment]:
    start = contract.annotations[0].offset
    preceding = [comment for comment in comments if comment.end <= start]
    if not preceding:
        return None
    comment = preceding[-1]
    if not comment.block or source[comment.end:start].strip():
        return None
    return comment


def _parameter(param: ast.Param, docs: Dict[str, str], path: Optional[str]) -> TemplateParameter:
    position = {"path": path, "line": param.line, "column": param.column, "parameter": param.name}
    if param.type is None:
        raise MissingTypeAnnotation(f"Parameter '{param.name}' has no type annotation", **position)
    if param.default is None:
        raise MissingDefault(f"Parameter '{param.name}' has no default value", **position)
    if param.name not in docs:
        raise MissingParamDoc(
            f"Parameter '{param.name}' is not documented",
            hint=f"Add '@param {param.name} <description>' to the contract docstring",
            **position,
        )
    return TemplateParameter(
        name=param.name,
        type=param.type,
        default=param.default,
        description=docs[param.name],
        line=param.line,
        column=param.column,
    )


def parse_docstring(comment: Comment, path: Optional[str] = None) -> Tuple[str, Dict[str, str]]:
    """Split a block comment into its description and ``@param`` texts.

    Leading ``*`` decorations are stripped.  A ``@param`` text continues on
    the following lines up to the next tag; other tags are ignored.
    """
    body = comment.text[2:-2]
    description: List[str] = []
    params: Dict[str, List[str]] = {}
    target: Optional[List[str]] = description
    for offset, raw in enumerate(body.splitlines()):
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            tag, _, rest = line.partition(" ")
            if tag != "@param":
                logger.debug("Ignoring docstring tag %s", tag)
                target = None
                continue
            parts = rest.split(None, 1)
            if not parts:
                raise MalformedDocstring(
                    "@param tag without a parameter name",
                    path=path,
                    line=comment.line + offset,
                )
            name = parts[0]
            if name in params:
                raise MalformedDocstring(
                    f"Duplicate @param for '{name}'",
                    path=path,
                    line=comment.line + offset,
                    parameter=name,
                )
            params[name] = [parts[1]] if len(parts) > 1 else []
            target = params[name]
        elif target is not None and line:
            target.append(line)
    texts = {name: " ".join(lines) for name, lines in params.items()}
    return " ".join(description), texts


__all__ = [
    "TemplateParameter",
    "ContractTemplateDraft",
    "TEMPLATE_MARKERS",
    "is_template_source",
    "extract_template",
    "parse_docstring",
]
