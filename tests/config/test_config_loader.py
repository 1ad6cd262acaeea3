# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the config loader.

  1. Valid YAML loads into a frozen config with defaults for absent sections
  2. Missing required fields and unknown keys raise ConfigValidationError
  3. Broken or missing files raise ConfigLoadError
"""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from binguard.config.exceptions import ConfigLoadError, ConfigValidationError
from binguard.config.loader import discover_config, load_config, load_project_config
from binguard.config.schema import default_config


class TestLoadValidConfig:
    def test_loads_minimal_valid_config(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        assert config.global_config.project_name == "binguard-test"
        assert config.global_config.config_version == "1.0.0"
        assert config.global_config.log_level == "DEBUG"

    def test_absent_sections_use_defaults(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        assert config.install.manifest_path == "manifest.json"
        assert config.install.artifact_dir == "bin"
        assert config.install.dev_mode is False
        assert config.fetch.max_redirects == 5
        assert config.credentials.env_var == "BINGUARD_API_KEY"
        assert config.generator.artifact_prefix == "binguard-runner"

    def test_loads_every_section(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            global:
              config_version: "1.0.0"
              log_level: "warning"
            install:
              artifact_dir: "dist"
              dev_mode: true
              min_python: "3.12"
            fetch:
              repository_url: "https://github.com/acme/tool"
              max_redirects: 3
            credentials:
              env_var: "ACME_KEY"
            generator:
              artifact_prefix: "acme-tool"
              features: ["a", "b"]
        """)
        config_file = tmp_path / "full.yaml"
        config_file.write_text(content, encoding="utf-8")

        config = load_config(config_file)
        assert config.global_config.log_level == "WARNING"
        assert config.install.artifact_dir == "dist"
        assert config.install.dev_mode is True
        assert config.fetch.max_redirects == 3
        assert config.credentials.env_var == "ACME_KEY"
        assert config.generator.features == ["a", "b"]

    def test_default_config_is_valid(self) -> None:
        config = default_config()
        assert config.global_config.config_version == "1.0.0"
        assert config.fetch.release_base_url == "https://github.com"


class TestLoadInvalidConfig:
    def test_missing_required_field_raises_validation_error(self, invalid_config_file: Path) -> None:
        with pytest.raises(ConfigValidationError):
            load_config(invalid_config_file)

    def test_unknown_key_raises_validation_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "unknown.yaml"
        config_file.write_text(
            'global:\n  config_version: "1.0.0"\n  surprise: true\n', encoding="utf-8"
        )
        with pytest.raises(ConfigValidationError):
            load_config(config_file)

    def test_redirect_limit_is_bounded(self, tmp_path: Path) -> None:
        config_file = tmp_path / "redirects.yaml"
        config_file.write_text(
            'global:\n  config_version: "1.0.0"\nfetch:\n  max_redirects: 50\n', encoding="utf-8"
        )
        with pytest.raises(ConfigValidationError):
            load_config(config_file)

    def test_bad_python_floor_raises_validation_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "floor.yaml"
        config_file.write_text(
            'global:\n  config_version: "1.0.0"\ninstall:\n  min_python: "three"\n', encoding="utf-8"
        )
        with pytest.raises(ConfigValidationError):
            load_config(config_file)

    def test_invalid_log_level_raises_validation_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "level.yaml"
        config_file.write_text(
            'global:\n  config_version: "1.0.0"\n  log_level: "LOUD"\n', encoding="utf-8"
        )
        with pytest.raises(ConfigValidationError):
            load_config(config_file)


class TestLoadFailures:
    def test_broken_yaml_raises_load_error(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(broken_yaml_file)

    def test_missing_file_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_raises_load_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(config_file)

    def test_load_error_carries_path(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigLoadError) as exc_info:
            load_config(broken_yaml_file)
        assert exc_info.value.path == broken_yaml_file


class TestImmutability:
    def test_config_is_frozen(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        with pytest.raises(ValidationError):
            config.install.dev_mode = True  # type: ignore[misc]


class TestDiscovery:
    def test_no_file_means_defaults(self, tmp_path: Path) -> None:
        assert discover_config(tmp_path) is None
        config, source = load_project_config(tmp_path)
        assert source is None
        assert config == default_config()

    def test_finds_binguard_yaml(self, tmp_path: Path, tmp_config_file: Path) -> None:
        target = tmp_path / "binguard.yaml"
        target.write_text(tmp_config_file.read_text(encoding="utf-8"), encoding="utf-8")
        config, source = load_project_config(tmp_path)
        assert source == target
        assert config.global_config.project_name == "binguard-test"

    def test_explicit_path_wins_over_discovery(self, tmp_path: Path, tmp_config_file: Path) -> None:
        (tmp_path / "binguard.yaml").write_text("not: [valid", encoding="utf-8")
        config, source = load_project_config(tmp_path, tmp_config_file)
        assert source == tmp_config_file
        assert config.global_config.log_level == "DEBUG"

    def test_broken_discovered_file_is_not_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "binguard.yaml").write_text("- a\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_project_config(tmp_path)
