"""Configuration loading for archdoc (.archdoc.yml)."""

from __future__ import annotations

import json
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".archdoc.yml"
DEFAULT_OUTPUT_DIR = "docs/generated"
DEFAULT_ROUTING_ROOTS = ("src/app", "app", "src/pages", "pages")
COMPILER_CONFIG_FILENAMES = ("tsconfig.json", "jsconfig.json")

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class PatternConfig:
    """Pattern rule enablement; an empty list enables every registered rule."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class ExtractionConfig:
    """Declaration extraction settings."""

    workers: int = 4


@dataclass
class DiagramConfig:
    """Mermaid rendering preferences."""

    direction: str = "TB"
    theme: Optional[str] = None
    max_nodes: int = 30


@dataclass
class ValidationConfig:
    """Inputs for the `validate` command."""

    requirements: Optional[Path] = None
    expected_documents: List[str] = field(default_factory=list)


@dataclass
class ArchDocConfig:
    """Represents the high-level settings defined in .archdoc.yml."""

    root: Path
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    exclude_paths: List[str] = field(default_factory=list)
    routing_roots: List[str] = field(default_factory=lambda: list(DEFAULT_ROUTING_ROOTS))
    path_aliases: Dict[str, str] = field(default_factory=dict)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    diagrams: DiagramConfig = field(default_factory=DiagramConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @property
    def resolved_output_dir(self) -> Path:
        if self.output_dir.is_absolute():
            return self.output_dir
        return (self.root / self.output_dir).resolve()


def load_config(config_path: Path) -> ArchDocConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ArchDocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ArchDocConfig(root=root)

    output_dir = _as_str(data.get("output_dir"))
    if output_dir:
        config.output_dir = Path(output_dir)

    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    if "routing_roots" in data:
        roots = [root_path.strip("/") for root_path in _as_str_list(data.get("routing_roots"))]
        if not roots:
            raise ConfigError("routing_roots must list at least one directory")
        config.routing_roots = roots

    if "path_aliases" in data:
        aliases = data.get("path_aliases")
        if not isinstance(aliases, dict):
            raise ConfigError("path_aliases must be a mapping of prefix to directory")
        config.path_aliases = {str(key): str(value) for key, value in aliases.items()}

    pattern_data = _as_dict(data.get("patterns"))
    if pattern_data:
        config.patterns.enabled = _as_str_list(pattern_data.get("enabled"))

    extraction_data = _as_dict(data.get("extraction"))
    if extraction_data:
        workers = _as_int(extraction_data.get("workers"))
        if workers is not None:
            if workers < 1:
                raise ConfigError("extraction.workers must be a positive integer")
            config.extraction.workers = workers

    diagram_data = _as_dict(data.get("diagrams"))
    if diagram_data:
        direction = _as_str(diagram_data.get("direction"))
        if direction:
            direction = direction.upper()
            if direction not in {"TB", "TD", "BT", "LR", "RL"}:
                raise ConfigError(f"Unsupported diagram direction: {direction}")
            config.diagrams.direction = direction
        config.diagrams.theme = _as_str(diagram_data.get("theme"))
        max_nodes = _as_int(diagram_data.get("max_nodes"))
        if max_nodes is not None:
            config.diagrams.max_nodes = max(1, max_nodes)

    validation_data = _as_dict(data.get("validation"))
    if validation_data:
        requirements = _as_str(validation_data.get("requirements"))
        if requirements:
            config.validation.requirements = (root / requirements).resolve()
        config.validation.expected_documents = _as_str_list(
            validation_data.get("expected_documents")
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def load_compiler_aliases(root: Path) -> Dict[str, str]:
    """Derive import prefix aliases from `compilerOptions.paths`.

    Wildcard entries such as `"@/*": ["./src/*"]` become `{"@/": "src/"}`,
    resolved against `baseUrl`. Exact entries, catch-all `"*"` keys and
    targets outside the root are ignored. The first of tsconfig.json and
    jsconfig.json that declares usable paths wins.
    """
    for name in COMPILER_CONFIG_FILENAMES:
        path = root / name
        if not path.is_file():
            continue
        compiler = _read_compiler_options(path)
        base_url = _as_str(compiler.get("baseUrl")) or "."
        aliases: Dict[str, str] = {}
        for key, targets in _as_dict(compiler.get("paths")).items():
            key = str(key)
            candidates = [item for item in _as_str_list(targets) if item.endswith("*")]
            if not key.endswith("*") or len(key) < 2 or not candidates:
                continue
            directory = posixpath.normpath(posixpath.join(base_url, candidates[0][:-1]))
            if directory == ".." or directory.startswith("../") or directory.startswith("/"):
                continue
            aliases[key[:-1]] = "" if directory == "." else f"{directory}/"
        if aliases:
            logger.debug("Loaded %d path aliases from %s", len(aliases), name)
            return aliases
    return {}


def _read_compiler_options(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        payload = json.loads(_TRAILING_COMMA.sub(r"\1", _strip_json_comments(text)))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring %s: %s", path.name, exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    return _as_dict(payload.get("compilerOptions"))


def _strip_json_comments(text: str) -> str:
    """Remove `//` and `/* */` comments outside string literals."""
    out: List[str] = []
    index = 0
    in_string = False
    while index < len(text):
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < len(text):
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif text.startswith("//", index):
            end = text.find("\n", index)
            index = len(text) if end == -1 else end
            continue
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = len(text) if end == -1 else end + 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "ArchDocConfig",
    "ConfigError",
    "DiagramConfig",
    "ExtractionConfig",
    "PatternConfig",
    "ValidationConfig",
    "load_compiler_aliases",
    "load_config",
]
