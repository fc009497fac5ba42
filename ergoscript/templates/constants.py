"""``$NAME`` substitution of project constants in contract sources."""

from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional

from ..compiler.literals import check_point, decode_base16
from ..config import ConstantDefinition
from ..errors import ConfigError

logger = logging.getLogger(__name__)

CONSTANT_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")
_BASE58 = re.compile(r"[1-9A-HJ-NP-Za-km-z]+")
_INTEGER = re.compile(r"-?[0-9]+")


def find_constant_references(source: str) -> List[str]:
    """Names referenced as ``$NAME``, in first-occurrence order."""
    names: List[str] = []
    for match in CONSTANT_PATTERN.finditer(source):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


def render_constant(constant: ConstantDefinition, environ: Optional[Mapping[str, str]] = None) -> str:
    """Render a constant as ErgoScript source for its declared type."""
    value = constant.resolve(environ).strip()
    kind = constant.type

    def invalid(reason: str) -> ConfigError:
        return ConfigError(f"Invalid value for constant '{constant.name}' of type {kind}: {reason}")

    if kind == "Boolean":
        if value not in ("true", "false"):
            raise invalid(f"expected true or false, got {value!r}")
        return value
    if kind in ("Byte", "Short", "Int", "Long", "BigInt"):
        if not _INTEGER.fullmatch(value):
            raise invalid(f"{value!r} is not an integer")
        if kind == "Long":
            return f"{value}L"
        if kind == "BigInt":
            return f'bigInt("{value}")'
        return value
    if kind == "String":
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if kind in ("Coll[Byte]", "CollByte", "GroupElement"):
        hex_value = value[2:] if value.lower().startswith("0x") else value
        try:
            data = decode_base16(hex_value)
            if kind == "GroupElement":
                check_point(data)
        except ValueError as exc:
            raise invalid(str(exc)) from exc
        literal = f'fromBase16("{hex_value}")'
        return f"decodePoint({literal})" if kind == "GroupElement" else literal
    if kind == "Address":
        if not _BASE58.fullmatch(value):
            raise invalid(f"{value!r} is not a base58 address")
        return f'"{value}"'
    if kind == "SigmaProp":
        if _BASE58.fullmatch(value):
            return f'PK("{value}")'
        return value
    raise invalid("unsupported constant type")


def substitute_constants(
    source: str,
    constants: Mapping[str, ConstantDefinition],
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Replace every ``$NAME`` in *source* with the constant's literal.

    All undefined or invalid constants are reported together.
    """
    errors: List[str] = []
    rendered = {}
    for name in find_constant_references(source):
        constant = constants.get(name)
        if constant is None:
            errors.append(f"Undefined constant: ${name}")
            continue
        try:
            rendered[name] = render_constant(constant, environ)
        except ConfigError as exc:
            errors.append(exc.message)
    if errors:
        raise ConfigError("; ".join(errors), hint="Define constants in the project configuration file")
    for name, literal in rendered.items():
        logger.debug("Substituting $%s with %s", name, literal)
    return CONSTANT_PATTERN.sub(lambda match: rendered[match.group(1)], source)


__all__ = ["CONSTANT_PATTERN", "find_constant_references", "render_constant", "substitute_constants"]
