"""ErgoScript front end and ErgoTree back end.

The pipeline is ``parse_program`` -> :class:`Lowering` -> ``serialize_tree``;
the template layer in :mod:`ergoscript.templates` drives it.
"""

from .lowering import Lowering
from .parser import parse_expression, parse_program, parse_type
from .serializer import ConstantStore, assemble_ergo_tree, serialize_data, serialize_tree
from .types import SType, serialize_type, type_from_hex

__all__ = [
    "Lowering",
    "parse_program",
    "parse_expression",
    "parse_type",
    "ConstantStore",
    "assemble_ergo_tree",
    "serialize_data",
    "serialize_tree",
    "SType",
    "serialize_type",
    "type_from_hex",
]
