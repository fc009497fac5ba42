from __future__ import annotations

from pathlib import Path

from lsprotocol.types import DiagnosticSeverity

from ergoscript.config import ConstantDefinition
from ergoscript.lsp.diagnostics import compile_diagnostics, document_diagnostics, unused_value_diagnostics


def test_valid_script_has_no_diagnostics() -> None:
    assert document_diagnostics("sigmaProp(HEIGHT > 100)") == []


def test_empty_document() -> None:
    assert document_diagnostics("   \n") == []


def test_type_error_is_reported_at_its_position() -> None:
    (diagnostic,) = compile_diagnostics("sigmaProp(foo > 1)")

    assert diagnostic.severity == DiagnosticSeverity.Error
    assert diagnostic.message == "Unknown identifier 'foo'"
    assert diagnostic.code == "ERGO-TYPE"
    assert diagnostic.source == "ergoscript"
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (0, 10)
    assert diagnostic.range.end.character == 13


def test_syntax_error() -> None:
    (diagnostic,) = compile_diagnostics("sigmaProp(HEIGHT > )")

    assert diagnostic.code == "ERGO-SYNTAX"


def test_unsupported_feature_is_information() -> None:
    (diagnostic,) = compile_diagnostics("sigmaProp(if (HEIGHT > 10) true)")

    assert diagnostic.severity == DiagnosticSeverity.Information


def test_unused_value_warning() -> None:
    diagnostics = document_diagnostics("val unused = 5\nsigmaProp(HEIGHT > 100)")

    assert len(diagnostics) == 1
    (warning,) = diagnostics
    assert warning.severity == DiagnosticSeverity.Warning
    assert warning.message == "Value 'unused' is never used"
    assert (warning.range.start.line, warning.range.start.character) == (0, 4)
    assert warning.range.end.character == 10


def test_used_values_are_not_reported() -> None:
    assert unused_value_diagnostics("val h = HEIGHT\nsigmaProp(h > 1)") == []


def test_project_constants_are_substituted() -> None:
    constants = {"LOCK": ConstantDefinition(name="LOCK", type="Int", value="100")}

    assert compile_diagnostics("sigmaProp(HEIGHT > $LOCK)", constants=constants) == []


def test_missing_project_constant() -> None:
    (diagnostic,) = compile_diagnostics("sigmaProp(HEIGHT > $LOCK)")

    assert diagnostic.code == "ERGO-CONFIG"
    assert diagnostic.range.start.line == 0


def test_unused_value_with_crlf_line_endings() -> None:
    text = "val a = 1\r\nval b = a\r\nval x = 2\r\nsigmaProp(b > 0)"

    (warning,) = unused_value_diagnostics(text)

    assert warning.message == "Value 'x' is never used"
    assert (warning.range.start.line, warning.range.start.character) == (2, 4)
    assert warning.range.end.character == 5


def _project(tmp_path: Path, files: dict) -> Path:
    (tmp_path / "ergo.json").write_text("{}", encoding="utf-8")
    for name, text in files.items():
        target = tmp_path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return tmp_path / "src" / "main.es"


def test_unresolved_import(tmp_path: Path) -> None:
    main = _project(tmp_path, {})

    (diagnostic,) = compile_diagnostics("#import lib:missing.es;\nsigmaProp(true)", str(main), root=tmp_path)

    assert diagnostic.code == "ERGO-IMPORT"
    assert diagnostic.message == "Could not resolve import path: lib:missing.es"
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (0, 0)


def test_errors_after_an_import_keep_document_positions(tmp_path: Path) -> None:
    main = _project(tmp_path, {"lib/limits.es": "val limit = 10\nval other = 2"})

    (diagnostic,) = compile_diagnostics("#import lib:limits.es;\nsigmaProp(HEIGHT > foo)", str(main))

    assert diagnostic.message == "Unknown identifier 'foo'"
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (1, 19)


def test_errors_inside_imports_are_reported_on_the_directive(tmp_path: Path) -> None:
    main = _project(tmp_path, {"lib/broken.es": "val bad = unknownThing"})
    lib = (tmp_path / "lib" / "broken.es").resolve()

    (diagnostic,) = compile_diagnostics("\n#import lib:broken.es;\nsigmaProp(bad > 1)", str(main))

    assert diagnostic.message == f"Unknown identifier 'unknownThing' (in {lib}:1)"
    assert diagnostic.range.start.line == 1


def test_imported_values_are_known(tmp_path: Path) -> None:
    main = _project(tmp_path, {"lib/limits.es": "val limit = 10"})

    assert compile_diagnostics("#import lib:limits.es;\nsigmaProp(HEIGHT > limit)", str(main)) == []
