"""Project configuration support for the ErgoScript toolchain."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigError

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    tomllib = None  # type: ignore

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("ergo.json", "ergoproject.json", "ergo.toml")
NETWORKS = ("mainnet", "testnet")
MAX_TREE_VERSION = 7
ENV_PREFIX = "env:"


@dataclass
class DirectoryConfig:
    source: str = "src"
    lib: str = "lib"
    output: str = "build"
    tests: str = "tests"


@dataclass
class ConstantDefinition:
    """A ``$NAME`` project constant.

    ``value`` is kept as written; ``env:VAR`` values are read from the
    environment by :meth:`resolve`.
    """

    name: str
    type: str
    value: str
    description: Optional[str] = None

    def resolve(self, environ: Optional[Mapping[str, str]] = None) -> str:
        if not self.value.startswith(ENV_PREFIX):
            return self.value
        variable = self.value[len(ENV_PREFIX):]
        environ = os.environ if environ is None else environ
        if variable not in environ:
            raise ConfigError(
                f"Environment variable '{variable}' for constant '{self.name}' is not set",
                hint=f"export {variable}=...",
            )
        return environ[variable]


@dataclass
class ContractTarget:
    name: str
    source: str
    output: str


@dataclass
class ProjectConfig:
    """Resolved project configuration; ``path`` is ``None`` for defaults."""

    root: Path
    path: Optional[Path] = None
    name: str = "ergoscript-project"
    version: str = "1.0.0"
    description: str = ""
    network: str = "mainnet"
    tree_version: int = 0
    directories: DirectoryConfig = field(default_factory=DirectoryConfig)
    constants: Dict[str, ConstantDefinition] = field(default_factory=dict)
    contracts: List[ContractTarget] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def source_dir(self) -> Path:
        return self.root / self.directories.source

    @property
    def lib_dir(self) -> Path:
        return self.root / self.directories.lib

    @property
    def output_dir(self) -> Path:
        return self.root / self.directories.output

    def resolve_source(self, target: ContractTarget) -> Path:
        source = Path(target.source)
        return source if source.is_absolute() else self.root / source

    def resolve_output(self, target: ContractTarget) -> Path:
        output = Path(target.output)
        return output if output.is_absolute() else self.output_dir / output


def _read_json_config(path: Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    return json.loads(content)


def _read_toml_config(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise ConfigError("TOML configuration requires Python 3.11 or later.", path=str(path))
    with path.open("rb") as handle:
        return tomllib.load(handle)


def locate_config_file(start: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file in *start* or one of its parents."""
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Configuration file not found: {explicit}", path=str(explicit))
        return explicit
    directory = start.resolve()
    for candidate_dir in (directory, *directory.parents):
        for filename in CONFIG_FILENAMES:
            candidate = candidate_dir / filename
            if candidate.is_file():
                return candidate
    return None


def load_project_config(start: Optional[Path] = None, explicit: Optional[Path] = None) -> ProjectConfig:
    start = Path.cwd() if start is None else start
    config_path = locate_config_file(start, explicit)
    if config_path is None:
        logger.debug("No project configuration found from %s, using defaults", start)
        return ProjectConfig(root=start.resolve())
    return parse_project_config(_read_config(config_path), config_path)


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        if path.suffix == ".toml":
            data = _read_toml_config(path)
        else:
            data = _read_json_config(path)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"Invalid JSON in configuration: {exc.msg}",
            path=str(path),
            line=exc.lineno,
            column=exc.colno,
        ) from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration: {exc}", path=str(path)) from exc
    except ValueError as exc:
        # tomllib.TOMLDecodeError
        raise ConfigError(f"Invalid TOML in configuration: {exc}", path=str(path)) from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be an object", path=str(path))
    return data


def parse_project_config(data: Dict[str, Any], path: Optional[Path] = None) -> ProjectConfig:
    location = str(path) if path else None
    root = path.resolve().parent if path else Path.cwd()
    # Older project files nest network settings under "ergoscript".
    section = _object_section(data, "ergoscript", location)

    network = str(data.get("network") or section.get("network") or "mainnet").lower()
    if network not in NETWORKS:
        raise ConfigError(
            f"Unknown network '{network}'",
            path=location,
            hint="Use 'mainnet' or 'testnet'",
        )
    tree_version_raw = data.get("treeVersion", section.get("treeVersion", 0))
    try:
        tree_version = int(tree_version_raw)
    except (TypeError, ValueError):
        raise ConfigError(f"treeVersion must be an integer, got {tree_version_raw!r}", path=location) from None
    if not 0 <= tree_version <= MAX_TREE_VERSION:
        raise ConfigError(f"treeVersion must be between 0 and {MAX_TREE_VERSION}", path=location)

    return ProjectConfig(
        root=root,
        path=path,
        name=str(data.get("name") or ProjectConfig.name),
        version=str(data.get("version") or ProjectConfig.version),
        description=str(data.get("description") or ""),
        network=network,
        tree_version=tree_version,
        directories=_parse_directories(data, location),
        constants=_parse_constants(data, location),
        contracts=_parse_contracts(data, location),
        raw=data,
    )


def _object_section(data: Dict[str, Any], key: str, location: Optional[str]) -> Dict[str, Any]:
    section = data.get(key, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be an object", path=location)
    return section


def _parse_directories(data: Dict[str, Any], location: Optional[str]) -> DirectoryConfig:
    section = _object_section(data, "directories", location)
    return DirectoryConfig(
        source=str(section.get("source") or DirectoryConfig.source),
        lib=str(section.get("lib") or DirectoryConfig.lib),
        output=str(section.get("output") or DirectoryConfig.output),
        tests=str(section.get("tests") or DirectoryConfig.tests),
    )


def _parse_constants(data: Dict[str, Any], location: Optional[str]) -> Dict[str, ConstantDefinition]:
    section = _object_section(data, "constants", location)
    constants: Dict[str, ConstantDefinition] = {}
    for name, raw in section.items():
        if not isinstance(raw, dict):
            raise ConfigError(f"Constant '{name}' must be an object with type and value", path=location)
        constant_type = raw.get("type") or raw.get("constantType")
        if not constant_type or "value" not in raw:
            raise ConfigError(f"Constant '{name}' needs both 'type' and 'value'", path=location)
        value = raw["value"]
        if isinstance(value, bool):
            value = "true" if value else "false"
        constants[name] = ConstantDefinition(
            name=name,
            type=str(constant_type),
            value=str(value),
            description=raw.get("description"),
        )
    return constants


def _parse_contracts(data: Dict[str, Any], location: Optional[str]) -> List[ContractTarget]:
    section = _object_section(data, "compile", location)
    entries = section.get("contracts", [])
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ConfigError("'compile.contracts' must be a list", path=location)
    contracts = []
    for index, raw in enumerate(entries):
        if not isinstance(raw, dict) or "source" not in raw:
            raise ConfigError(f"compile.contracts[{index}] needs a 'source'", path=location)
        source = str(raw["source"])
        name = str(raw.get("name") or Path(source).stem)
        contracts.append(ContractTarget(name=name, source=source, output=str(raw.get("output") or f"{name}.json")))
    return contracts


__all__ = [
    "CONFIG_FILENAMES",
    "ConstantDefinition",
    "ContractTarget",
    "DirectoryConfig",
    "ProjectConfig",
    "locate_config_file",
    "load_project_config",
    "parse_project_config",
]
