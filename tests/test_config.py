from __future__ import annotations

from pathlib import Path
import textwrap

from helixql_lsp.config import (
    ServerSettings,
    diagnostics_defaults,
    load_config,
    load_settings,
    logging_defaults,
    merge_payload,
    normalize_extensions,
    workspace_defaults,
)


def _write_config(directory: Path, body: str) -> Path:
    path = directory / "helixql.toml"
    path.write_text(textwrap.dedent(body).strip() + "\n")
    return path


def test_section_defaults_read_toml(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
        [workspace]
        extensions = [".hx", "hql", ".helix"]

        [diagnostics]
        source = "helix"
        empty_severity = "drop"
        """,
    )
    assert workspace_defaults(root=tmp_path)["extensions"] == [".hx", "hql", ".helix"]
    assert diagnostics_defaults(root=tmp_path)["empty_severity"] == "drop"
    assert logging_defaults(root=tmp_path) == {}


def test_logging_defaults_read_the_logging_section(tmp_path: Path) -> None:
    config = _write_config(
        tmp_path,
        """
        [logging]
        level = "debug"
        """,
    )
    assert logging_defaults(config_path=config) == {"level": "debug"}
    assert load_settings(config_path=config).log_level == "DEBUG"


def test_missing_or_invalid_config_is_empty(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    broken = tmp_path / "broken.toml"
    broken.write_text("[workspace\nextensions = ")
    assert load_config(config_path=broken) == {}


def test_load_settings_defaults(tmp_path: Path) -> None:
    assert load_settings(root=tmp_path) == ServerSettings()
    assert ServerSettings().extensions == (".hx", ".hql")


def test_load_settings_from_file(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
        [workspace]
        extensions = "hx, .HELIX"

        [diagnostics]
        source = "helix"
        empty_severity = "DROP"

        [logging]
        level = "debug"
        """,
    )
    settings = load_settings(root=tmp_path)
    assert settings.extensions == (".hx", ".helix")
    assert settings.source == "helix"
    assert settings.empty_severity == "drop"
    assert settings.log_level == "DEBUG"


def test_explicit_overrides_win(tmp_path: Path) -> None:
    config = _write_config(
        tmp_path,
        """
        [logging]
        level = "WARNING"
        """,
    )
    settings = load_settings(config_path=config, overrides={"log_level": "error", "source": None})
    assert settings.log_level == "ERROR"
    assert settings.source == "helixql"


def test_unknown_empty_severity_falls_back(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
        [diagnostics]
        empty_severity = "shout"
        """,
    )
    assert load_settings(root=tmp_path).empty_severity == "info"


def test_normalize_extensions_falls_back_to_defaults() -> None:
    assert normalize_extensions(None) == (".hx", ".hql")
    assert normalize_extensions([]) == (".hx", ".hql")
    assert normalize_extensions(["HQL", ".hql"]) == (".hql",)


def test_merge_payload_prefers_explicit_values() -> None:
    merged = merge_payload({"a": None, "b": 2}, {"a": 1, "b": 1, "c": 3})
    assert merged == {"a": 1, "b": 2, "c": 3}
