from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import logging
import tomllib

from helixql_lsp.diagnostics import DEFAULT_SOURCE, EMPTY_SEVERITY_CHOICES
from helixql_lsp.workspace import DEFAULT_EXTENSIONS

DEFAULT_CONFIG_NAME = "helixql.toml"
DEFAULT_LOG_LEVEL = "INFO"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

logger = logging.getLogger(__name__)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Ignoring invalid config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def workspace_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "workspace")


def diagnostics_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "diagnostics")


def logging_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "logging")


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def normalize_extensions(value: TomlValue) -> tuple[str, ...]:
    extensions: list[str] = []
    for item in _normalize_name_list(value):
        extension = item.lower()
        if not extension.startswith("."):
            extension = "." + extension
        if extension not in extensions:
            extensions.append(extension)
    return tuple(extensions) or DEFAULT_EXTENSIONS


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class ServerSettings:
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    source: str = DEFAULT_SOURCE
    empty_severity: str = "info"
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> ServerSettings:
    """Settings from ``helixql.toml``; non-``None`` ``overrides`` win.

    ``overrides`` is flat: ``extensions``, ``source``, ``empty_severity`` and
    ``log_level`` keys, as the CLI passes them.
    """
    workspace = workspace_defaults(root=root, config_path=config_path)
    diagnostics = diagnostics_defaults(root=root, config_path=config_path)
    logging_section = logging_defaults(root=root, config_path=config_path)
    defaults: TomlTable = {
        "extensions": workspace.get("extensions"),
        "source": diagnostics.get("source"),
        "empty_severity": diagnostics.get("empty_severity"),
        "log_level": logging_section.get("level"),
    }
    merged = merge_payload(overrides or {}, defaults)

    source = merged.get("source")
    empty_severity = merged.get("empty_severity")
    if isinstance(empty_severity, str):
        empty_severity = empty_severity.strip().lower()
    if empty_severity not in EMPTY_SEVERITY_CHOICES:
        if empty_severity is not None:
            logger.warning("Unknown empty_severity %r; using 'info'", empty_severity)
        empty_severity = "info"
    log_level = merged.get("log_level")
    return ServerSettings(
        extensions=normalize_extensions(merged.get("extensions")),
        source=source if isinstance(source, str) and source else DEFAULT_SOURCE,
        empty_severity=empty_severity,
        log_level=log_level.upper() if isinstance(log_level, str) and log_level else DEFAULT_LOG_LEVEL,
    )
