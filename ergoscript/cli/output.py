"""
Output helpers for CLI operations.

Status lines go to stderr whenever stdout carries a JSON document.
"""

import sys
from pathlib import Path

from ..templates.extractor import ContractTemplateDraft
from ..templates.model import ContractTemplate


def print_success(message: str, *, stderr: bool = False) -> None:
    """
    Print success message with checkmark prefix.

    Examples:
        >>> print_success("Compiled heightLock")
        ✓ Compiled heightLock
    """
    print(f"✓ {message}", file=sys.stderr if stderr else sys.stdout)


def write_template(template: ContractTemplate, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(template.to_json() + "\n", encoding="utf-8")


def describe_draft(draft: ContractTemplateDraft) -> str:
    lines = [f"Contract: {draft.name}"]
    if draft.description:
        lines.append(f"Description: {draft.description}")
    if not draft.parameters:
        lines.append("Parameters: none")
    else:
        lines.append("Parameters:")
        for index, parameter in enumerate(draft.parameters):
            lines.append(f"  [{index}] {parameter.name}: {parameter.type}  {parameter.description}".rstrip())
    return "\n".join(lines)
