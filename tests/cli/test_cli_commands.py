"""
Tests for the ergoscript command line.

Commands run through ``main`` in a temporary project directory; failures
are observed through ``SystemExit`` and the error printed on stderr.
"""

import json

import pytest

from ergoscript.cli import main
from ergoscript.cli.errors import CLIValidationError

HEIGHT_LOCK_TREE = "d191a37300"


def _run_failing(argv, capsys) -> str:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    assert exc_info.value.code == 1
    return capsys.readouterr().err


class TestMain:
    """Top-level argument handling."""

    def test_no_command_prints_help(self, workdir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "usage: ergoscript" in capsys.readouterr().out

    def test_version(self, workdir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "ergoscript" in capsys.readouterr().out

    def test_invalid_project_config(self, write_project, capsys):
        write_project({"network": "devnet"})
        err = _run_failing(["compile", "-s", "sigmaProp(true)"], capsys)
        assert "CLI_CONFIG_ERROR" in err
        assert "Unknown network 'devnet'" in err

    def test_reraise_environment_variable(self, workdir, monkeypatch):
        monkeypatch.setenv("ERGOSCRIPT_RERAISE", "1")
        with pytest.raises(CLIValidationError):
            main(["compile"])


class TestCompileCommand:
    """The compile subcommand."""

    def test_template_to_stdout(self, height_lock_file, capsys):
        main(["compile", "-i", str(height_lock_file)])
        data = json.loads(capsys.readouterr().out)

        assert data["name"] == "heightLock"
        assert data["constTypes"] == ["04"]
        assert data["constValues"] == ["c801"]
        assert data["parameters"] == [
            {
                "name": "minHeight",
                "description": "Block height after which the box can be spent",
                "constantIndex": 0,
            }
        ]
        assert data["expressionTree"] == HEIGHT_LOCK_TREE

    def test_inline_script_with_name(self, workdir, capsys):
        main(["compile", "-s", "sigmaProp(HEIGHT > 100)", "-n", "lock", "-d", "Simple lock"])
        data = json.loads(capsys.readouterr().out)

        assert data["name"] == "lock"
        assert data["description"] == "Simple lock"
        assert data["parameters"] == []

    def test_output_file(self, height_lock_file, workdir, capsys):
        main(["compile", "-i", "height_lock.es", "-o", "out/lock.json"])

        written = json.loads((workdir / "out" / "lock.json").read_text(encoding="utf-8"))
        assert written["name"] == "heightLock"
        assert "Compiled heightLock" in capsys.readouterr().out

    def test_project_constants(self, write_project, capsys):
        write_project({"constants": {"LOCK": {"type": "Int", "value": "100"}}})
        main(["compile", "-s", "sigmaProp(HEIGHT > $LOCK)"])

        assert json.loads(capsys.readouterr().out)["constValues"] == ["c801"]

    def test_undefined_constant(self, workdir, capsys):
        err = _run_failing(["compile", "-s", "sigmaProp(HEIGHT > $LOCK)"], capsys)
        assert "CLI_CONFIG_ERROR" in err

    def test_compile_error(self, workdir, capsys):
        err = _run_failing(["compile", "-s", "sigmaProp(foo > 1)"], capsys)
        assert "Error [CLI_COMPILE_ERROR]: Error at line 1, column 11: Unknown identifier 'foo'" in err

    def test_missing_source(self, workdir, capsys):
        err = _run_failing(["compile"], capsys)
        assert "CLI_VALIDATION_ERROR" in err
        assert "Hint:" in err

    def test_both_sources(self, height_lock_file, capsys):
        err = _run_failing(["compile", "-i", "height_lock.es", "-s", "true"], capsys)
        assert "either --input or --source" in err

    def test_missing_file(self, workdir, capsys):
        err = _run_failing(["compile", "-i", "absent.es"], capsys)
        assert "CLI_FILE_NOT_FOUND" in err

    def test_verbose_shows_context(self, workdir, capsys):
        err = _run_failing(["--verbose", "compile", "-s", "sigmaProp(foo > 1)"], capsys)
        assert "error_code: ERGO-TYPE" in err
        assert "Traceback:" in err


class TestInstantiateCommand:
    """The instantiate subcommand."""

    @pytest.fixture
    def template_file(self, height_lock_file, workdir, capsys):
        main(["compile", "-i", "height_lock.es", "-o", "lock.json"])
        capsys.readouterr()
        return workdir / "lock.json"

    def test_literal_values(self, template_file, capsys):
        main(["instantiate", str(template_file), "--set", "minHeight=500"])
        data = json.loads(capsys.readouterr().out)

        assert data["constValues"] == ["e807"]
        assert data["constTypes"] == ["04"]
        assert data["expressionTree"] == HEIGHT_LOCK_TREE

    def test_raw_values(self, template_file, capsys):
        main(["instantiate", str(template_file), "--raw", "--set", "minHeight=e807"])

        assert json.loads(capsys.readouterr().out)["constValues"] == ["e807"]

    def test_ergo_tree_output(self, template_file, capsys):
        main(["instantiate", str(template_file), "--set", "minHeight=500", "--ergo-tree"])

        assert capsys.readouterr().out.strip() == "100104e807d191a37300"

    def test_ergo_tree_version(self, template_file, capsys):
        main(["instantiate", str(template_file), "--ergo-tree", "--tree-version", "1"])

        assert capsys.readouterr().out.strip() == "19090104c801d191a37300"

    def test_output_file(self, template_file, workdir, capsys):
        main(["instantiate", str(template_file), "--set", "minHeight=500", "-o", "lock-500.json"])

        written = json.loads((workdir / "lock-500.json").read_text(encoding="utf-8"))
        assert written["constValues"] == ["e807"]

    def test_invalid_assignment(self, template_file, capsys):
        err = _run_failing(["instantiate", str(template_file), "--set", "minHeight"], capsys)
        assert "CLI_VALIDATION_ERROR" in err

    def test_unknown_parameter(self, template_file, capsys):
        err = _run_failing(["instantiate", str(template_file), "--set", "maxHeight=1"], capsys)
        assert "CLI_COMPILE_ERROR" in err
        assert "Known parameters: minHeight" in err

    def test_wrong_value_type(self, template_file, capsys):
        err = _run_failing(["instantiate", str(template_file), "--set", "minHeight=true"], capsys)
        assert "CLI_COMPILE_ERROR" in err


class TestValidateCommand:
    """The validate subcommand."""

    def test_reports_parameters(self, height_lock_file, capsys):
        main(["validate", str(height_lock_file)])
        out = capsys.readouterr().out

        assert "Contract: heightLock" in out
        assert "[0] minHeight: Int  Block height after which the box can be spent" in out
        assert "Template heightLock is valid" in out

    def test_missing_param_doc(self, workdir, capsys):
        source = "/* Lock */\n@contract def lock(minHeight: Int = 100) = sigmaProp(HEIGHT > minHeight)\n"
        (workdir / "lock.es").write_text(source, encoding="utf-8")

        err = _run_failing(["validate", "lock.es"], capsys)
        assert "CLI_COMPILE_ERROR" in err
        assert "minHeight" in err


class TestBuildCommand:
    """The build subcommand."""

    def test_builds_configured_contracts(self, write_project, workdir, read_contract, capsys):
        (workdir / "contracts").mkdir()
        (workdir / "contracts" / "height_lock.es").write_text(read_contract("height_lock.es"), encoding="utf-8")
        write_project({"compile": {"contracts": [{"source": "contracts/height_lock.es", "name": "HeightLock"}]}})

        main(["build"])

        output = workdir / "build" / "HeightLock.json"
        assert json.loads(output.read_text(encoding="utf-8"))["name"] == "heightLock"
        assert "Built HeightLock" in capsys.readouterr().out

    def test_explicit_config(self, write_project, workdir, capsys):
        (workdir / "lock.es").write_text("sigmaProp(HEIGHT > 100)", encoding="utf-8")
        write_project(
            {
                "directories": {"output": "dist"},
                "compile": {"contracts": [{"source": "lock.es", "output": "lock.json"}]},
            },
            filename="custom.json",
        )

        main(["build", "--config", "custom.json"])

        data = json.loads((workdir / "dist" / "lock.json").read_text(encoding="utf-8"))
        assert data["name"] == "lock"

    def test_no_contracts(self, workdir, capsys):
        err = _run_failing(["build"], capsys)
        assert "No contracts to build" in err

    def test_failure_writes_nothing(self, write_project, workdir, capsys):
        (workdir / "good.es").write_text("sigmaProp(HEIGHT > 100)", encoding="utf-8")
        (workdir / "bad.es").write_text("sigmaProp(foo > 1)", encoding="utf-8")
        write_project({"compile": {"contracts": [{"source": "good.es"}, {"source": "bad.es"}]}})

        err = _run_failing(["build"], capsys)

        assert "CLI_COMPILE_ERROR" in err
        assert not (workdir / "build").exists()


class TestImports:
    """#import directives in compiled sources."""

    def _write(self, workdir, name, text):
        path = workdir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def test_compile_with_library_import(self, workdir, capsys):
        self._write(workdir, "lib/limits.es", "val limit = 100")
        self._write(workdir, "main.es", "#import lib:limits.es;\nsigmaProp(HEIGHT > limit)")

        main(["compile", "-i", "main.es", "-n", "lock"])

        assert json.loads(capsys.readouterr().out)["name"] == "lock"

    def test_error_in_imported_file_uses_its_line(self, workdir, capsys):
        self._write(workdir, "lib/broken.es", "val bad = foo")
        self._write(workdir, "main.es", "\n\n#import lib:broken.es;\nsigmaProp(bad > 1)")

        err = _run_failing(["--verbose", "compile", "-i", "main.es"], capsys)

        assert "Error at line 1, column 11: Unknown identifier 'foo'" in err
        assert "broken.es" in err

    def test_unresolved_import(self, workdir, capsys):
        self._write(workdir, "main.es", "#import lib:absent.es;\nsigmaProp(true)")

        err = _run_failing(["compile", "-i", "main.es"], capsys)

        assert "Error at line 1, column 1: Could not resolve import path: lib:absent.es" in err

    def test_validate_expands_imports(self, workdir, read_contract, capsys):
        self._write(workdir, "src/common.es", "val minimum = 100")
        self._write(workdir, "lock.es", "#import src:common.es;\n" + read_contract("height_lock.es"))

        main(["validate", "lock.es"])

        assert "Template heightLock is valid" in capsys.readouterr().out


class TestInitCommand:
    """The init subcommand."""

    def test_scaffold_builds(self, workdir, capsys):
        main(["init", "--name", "vault"])
        out = capsys.readouterr().out

        assert "Initializing ErgoScript project: vault" in out
        assert "Created src/" in out
        assert "Created ergo.json" in out
        for directory in ("src", "lib", "tests", "build"):
            assert (workdir / directory).is_dir()
        config = json.loads((workdir / "ergo.json").read_text(encoding="utf-8"))
        assert config["name"] == "vault"
        assert config["compile"]["contracts"][0]["source"] == "src/main.es"

        main(["build"])

        built = json.loads((workdir / "build" / "main.json").read_text(encoding="utf-8"))
        assert built["name"] == "MainContract"

    def test_existing_files_are_kept(self, workdir, capsys):
        (workdir / "ergo.json").write_text('{"name": "mine"}', encoding="utf-8")

        main(["init"])

        assert "ergo.json already exists, skipping" in capsys.readouterr().out
        assert json.loads((workdir / "ergo.json").read_text(encoding="utf-8")) == {"name": "mine"}
        assert (workdir / "src" / "main.es").is_file()

    def test_target_directory(self, workdir, capsys):
        main(["init", "projects/escrow"])

        assert (workdir / "projects" / "escrow" / "ergo.json").is_file()
        assert (workdir / "projects" / "escrow" / "src" / "main.es").is_file()
