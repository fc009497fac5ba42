"""Contract templates: extraction, compilation and instantiation."""

from .compiler import compile_file, compile_source, compile_template
from .constants import substitute_constants
from .extractor import ContractTemplateDraft, TemplateParameter, extract_template, is_template_source
from .model import ContractTemplate, Parameter, ergo_tree_hex, instantiate, instantiate_raw

__all__ = [
    "ContractTemplate",
    "ContractTemplateDraft",
    "Parameter",
    "TemplateParameter",
    "compile_file",
    "compile_source",
    "compile_template",
    "ergo_tree_hex",
    "extract_template",
    "instantiate",
    "instantiate_raw",
    "is_template_source",
    "substitute_constants",
]
