"""
DamAudit Configuration Module

Loads the repository vocabulary (type values, property names, reference
marker) from a YAML file. Every key has a default matching a stock Magnolia
export, so the file is optional.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""


@dataclass
class AssetDetectionConfig:
    """How asset nodes are recognized in a DAM export."""
    type_property: str = "jcr:primaryType"
    marker_type: str = "mgnl:asset"
    accepted_types: list[str] = field(default_factory=lambda: ["mgnl:asset", "mgnl:resource"])
    content_node: str = "jcr:content"


@dataclass
class PropertyNames:
    """Property names read from an asset node."""
    identifier: str = "jcr:uuid"
    file_name: str = "fileName"
    mime_type: str = "jcr:mimeType"
    size: str = "size"


@dataclass
class ReferenceConfig:
    """How composite references look in page exports."""
    repository_marker: str = "dam"


@dataclass
class CheckerConfig:
    """Complete configuration for extraction and reference matching."""
    asset_detection: AssetDetectionConfig = field(default_factory=AssetDetectionConfig)
    properties: PropertyNames = field(default_factory=PropertyNames)
    references: ReferenceConfig = field(default_factory=ReferenceConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CheckerConfig":
        """Build a config from a parsed YAML mapping, section by section."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        sections = {
            "asset_detection": AssetDetectionConfig,
            "properties": PropertyNames,
            "references": ReferenceConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        kwargs = {}
        for name, section_class in sections.items():
            kwargs[name] = _make_section(section_class, name, data.get(name) or {})
        return cls(**kwargs)


def _make_section(section_class, section_name: str, section: dict):
    """Create one section dataclass, validating keys and value types."""
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{section_name}' must be a mapping")

    allowed = {f.name for f in fields(section_class)}
    unknown = set(section) - allowed
    if unknown:
        raise ConfigError(
            f"Unknown keys in '{section_name}': {', '.join(sorted(unknown))}"
        )

    defaults = section_class()
    for key, value in section.items():
        expected = type(getattr(defaults, key))
        if expected is list:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{section_name}.{key}' must be a list of strings")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"'{section_name}.{key}' must be a non-empty string")

    return section_class(**section)


def load_config(config_path: Optional[Path] = None) -> CheckerConfig:
    """Load configuration from a YAML file, or return defaults."""
    if config_path is None:
        return CheckerConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    return CheckerConfig.from_dict(data)
