"""Tests for configuration loading."""

from pathlib import Path

import pytest

from config import CheckerConfig, ConfigError, load_config

REPO_ROOT = Path(__file__).resolve().parent.parent


class TestLoadConfig:
    """Test YAML configuration files."""

    def test_defaults_without_file(self) -> None:
        config = load_config(None)

        assert config.asset_detection.marker_type == "mgnl:asset"
        assert config.asset_detection.accepted_types == ["mgnl:asset", "mgnl:resource"]
        assert config.properties.identifier == "jcr:uuid"
        assert config.references.repository_marker == "dam"

    def test_bundled_sample_matches_defaults(self) -> None:
        """Test that the shipped damaudit.yaml documents the built-in defaults."""
        assert load_config(REPO_ROOT / "damaudit.yaml") == CheckerConfig()

    def test_partial_override(self, write_file) -> None:
        path = write_file("config.yaml", "properties:\n  file_name: name\n")
        config = load_config(path)

        assert config.properties.file_name == "name"
        assert config.properties.identifier == "jcr:uuid"
        assert config.asset_detection == CheckerConfig().asset_detection

    def test_empty_file_gives_defaults(self, write_file) -> None:
        assert load_config(write_file("config.yaml", "")) == CheckerConfig()

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, write_file) -> None:
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(write_file("config.yaml", "asset_detection: [oops\n"))

    def test_unknown_section(self, write_file) -> None:
        with pytest.raises(ConfigError, match="Unknown configuration sections: colors"):
            load_config(write_file("config.yaml", "colors: {}\n"))

    def test_unknown_key(self, write_file) -> None:
        with pytest.raises(ConfigError, match="Unknown keys in 'references'"):
            load_config(write_file("config.yaml", "references:\n  prefix: x\n"))

    def test_wrong_types(self, write_file) -> None:
        with pytest.raises(ConfigError, match="list of strings"):
            load_config(write_file("config.yaml", "asset_detection:\n  accepted_types: mgnl:asset\n"))
        with pytest.raises(ConfigError, match="non-empty string"):
            load_config(write_file("config2.yaml", "properties:\n  identifier: 5\n"))

    def test_root_must_be_mapping(self, write_file) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(write_file("config.yaml", "- a\n- b\n"))
