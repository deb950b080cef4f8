"""Configuration classes for sync log parsing.

This module provides configuration objects for every parsing component: the marker
literals the harness writes, how XML payloads are captured and sanitized, the
sentinel values used for unparsable fields, and how dashboard metrics are counted.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Sentinel values for fields that could not be extracted
UNKNOWN = "UNKNOWN"
DEFAULT_PROJECT = "DEFAULT"
DEFAULT_REVISION = 0

# Closing tags wrapping the payloads written by the harness
SOURCE_CLOSING_TAG = "</SourceXML>"
TRANSFORMED_CLOSING_TAG = "</rootelement>"

_SECTIONS = ("markers", "xml", "sentinels", "metrics")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError, ValueError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class MarkerConfig:
    """Literal markers the parser looks for inside log messages."""

    testcase_started: str = "Started testcase"
    start_sync: str = "Start synchronizing"
    about_to_transform: Tuple[str, ...] = ("About to transform", "About to tranform")
    source_xml_start: str = "Source XML START"
    source_xml_end: str = "Source XML END"
    transformed_xml_start: str = "Transformed XML START"
    transformed_xml_end: str = "Transformed XML END"
    entity_created: str = "Created entity information:"
    finish_sync: str = "Finished synchronizing"

    def __post_init__(self) -> None:
        """Validate marker configuration."""
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            values = value if isinstance(value, tuple) else (value,)
            if not values or any(not isinstance(v, str) or not v.strip() for v in values):
                raise ConfigValidationError(f"{name} must be a non-empty marker", field_name=name)

    @property
    def xml_markers(self) -> Tuple[str, str, str, str]:
        """The four XML block markers, source first."""
        return (
            self.source_xml_start,
            self.source_xml_end,
            self.transformed_xml_start,
            self.transformed_xml_end,
        )


@dataclass(frozen=True)
class XmlCaptureConfig:
    """Configuration for capturing and sanitizing XML payloads.

    A closing tag of ``None`` means the tag is inferred from the root element that
    follows the XML declaration.
    """

    xml_declaration: str = "<?xml"
    source_closing_tag: Optional[str] = SOURCE_CLOSING_TAG
    transformed_closing_tag: Optional[str] = TRANSFORMED_CLOSING_TAG
    strip_presentation_markup: bool = True
    collapse_tag_whitespace: bool = True
    keep_unterminated_payload: bool = True

    def __post_init__(self) -> None:
        """Validate XML capture configuration."""
        if not self.xml_declaration:
            raise ConfigValidationError(
                "xml_declaration must not be empty", field_name="xml_declaration"
            )
        for name in ("source_closing_tag", "transformed_closing_tag"):
            tag = getattr(self, name)
            if tag is not None and not (tag.startswith("</") and tag.endswith(">")):
                raise ConfigValidationError(
                    f"{name} must look like '</name>' or be None", field_name=name
                )


@dataclass(frozen=True)
class SentinelConfig:
    """Values substituted for fields that could not be extracted."""

    unknown: str = UNKNOWN
    default_project: str = DEFAULT_PROJECT
    default_revision: int = DEFAULT_REVISION

    def __post_init__(self) -> None:
        """Validate sentinel configuration."""
        if not self.unknown:
            raise ConfigValidationError("unknown must not be empty", field_name="unknown")
        if not self.default_project:
            raise ConfigValidationError(
                "default_project must not be empty", field_name="default_project"
            )
        if self.default_revision < 0:
            raise ConfigValidationError(
                "default_revision must be >= 0", field_name="default_revision"
            )


@dataclass(frozen=True)
class MetricsConfig:
    """Configuration for dashboard widget metrics."""

    error_indicator: str = "ERROR"
    case_sensitive: bool = True

    def __post_init__(self) -> None:
        """Validate metrics configuration."""
        if not self.error_indicator:
            raise ConfigValidationError(
                "error_indicator must not be empty", field_name="error_indicator"
            )

    def is_error_message(self, message: str) -> bool:
        if self.case_sensitive:
            return self.error_indicator in message
        return self.error_indicator.lower() in message.lower()


@dataclass(frozen=True)
class ParserConfig:
    """Comprehensive configuration for the sync log parser.

    Immutable, so one configuration (and one parser) can be shared between
    callers parsing different log lists.
    """

    markers: MarkerConfig = field(default_factory=MarkerConfig)
    xml: XmlCaptureConfig = field(default_factory=XmlCaptureConfig)
    sentinels: SentinelConfig = field(default_factory=SentinelConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete parser configuration."""
        for section in _SECTIONS:
            if not isinstance(getattr(self, section), ParserConfig.__dataclass_fields__[section].type):
                raise ConfigValidationError(
                    f"{section} has the wrong configuration type",
                    field_name=section,
                )
        self._validate_cross_component_dependencies()

    def _validate_cross_component_dependencies(self) -> None:
        """Markers must not contain one another, or dispatch becomes ambiguous."""
        literals = [
            self.markers.start_sync,
            self.markers.entity_created,
            self.markers.finish_sync,
            *self.markers.xml_markers,
        ]
        for i, first in enumerate(literals):
            for second in literals[i + 1:]:
                if first in second or second in first:
                    raise ConfigValidationError(
                        f"Markers {first!r} and {second!r} overlap",
                        field_name="markers",
                        suggestions=["Use distinct marker literals"],
                    )

    def override(self, **kwargs: Any) -> "ParserConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Fields to override; nested fields use ``section__field``

        Returns:
            New ParserConfig instance with overrides applied

        Example:
            >>> config = ParserConfig().override(
            ...     xml__source_closing_tag=None,
            ...     metrics__error_indicator="FAILED"
            ... )
        """
        nested_overrides: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                section, field_name = key.split("__", 1)
                if section not in _SECTIONS:
                    raise ConfigValidationError(
                        f"Unknown configuration section: {section}",
                        field_name=key,
                        suggestions=[f"Use one of {', '.join(_SECTIONS)}"],
                    )
                nested_overrides.setdefault(section, {})[field_name] = value
            else:
                top_level[key] = value

        new_fields: Dict[str, Any] = dict(top_level)
        try:
            for section, values in nested_overrides.items():
                new_fields[section] = replace(getattr(self, section), **values)
            return replace(self, **new_fields)
        except ConfigValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple)):
                return [_dataclass_to_dict(item) for item in obj]
            return obj

        return _dataclass_to_dict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos in configuration files surface.

        Raises:
            ConfigValidationError: If a key is unknown or a value is invalid
        """
        def _dict_to_dataclass(data_dict: Dict[str, Any], target_class: type) -> Any:
            fields = target_class.__dataclass_fields__
            unknown = set(data_dict) - set(fields)
            if unknown:
                raise ConfigValidationError(
                    f"Unknown {target_class.__name__} keys: {', '.join(sorted(unknown))}",
                    field_name=sorted(unknown)[0],
                )

            field_values: Dict[str, Any] = {}
            for field_name, value in data_dict.items():
                field_type = fields[field_name].type
                if hasattr(field_type, "__dataclass_fields__") and isinstance(value, dict):
                    field_values[field_name] = _dict_to_dataclass(value, field_type)
                elif isinstance(value, list):
                    field_values[field_name] = tuple(value)
                else:
                    field_values[field_name] = value
            return target_class(**field_values)

        try:
            return _dict_to_dataclass(data, cls)
        except ConfigValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e

    @classmethod
    def from_json(cls, json_str: str) -> "ParserConfig":
        return cls.from_dict(json.loads(json_str))

    # Preset factory methods
    @classmethod
    def default(cls) -> "ParserConfig":
        """Configuration matching the harness log layout."""
        return cls(name="default")

    @classmethod
    def lenient(cls) -> "ParserConfig":
        """Configuration for harnesses that log bare payload documents.

        Closing tags are inferred from each payload's root element and the error
        indicator is matched case-insensitively.
        """
        return cls(
            xml=XmlCaptureConfig(
                source_closing_tag=None,
                transformed_closing_tag=None,
            ),
            metrics=MetricsConfig(case_sensitive=False),
            name="lenient",
            description="Infers payload closing tags from the root element",
        )
