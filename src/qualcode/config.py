"""
Configuration management for qualcode.

This module provides configuration models and YAML loading for the
agreement metrics, the pattern matcher and the consensus resolver.
"""

import logging
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


class BaseConfig(BaseModel):
    """Base configuration class with common validation."""

    model_config = ConfigDict(
        extra="forbid",  # Don't allow extra fields
        validate_assignment=True
    )


class AgreementConfig(BaseConfig):
    """Configuration for inter-rater agreement computations."""
    metric: Optional[str] = Field(default=None)
    weighted: bool = False
    level: str = Field(default="nominal")
    category_order: Optional[List[str]] = None
    bootstrap_samples: int = Field(default=0, ge=0, le=100000)
    confidence_level: float = Field(default=0.95, gt=0.0, lt=1.0)
    seed: Optional[int] = None

    @field_validator('metric')
    @classmethod
    def validate_metric(cls, v):
        """Validate the metric identifier."""
        supported = {"percent-agreement", "cohens-kappa", "fleiss-kappa", "krippendorff-alpha"}
        if v is not None and v not in supported:
            raise ValueError(f"Unsupported metric: {v}. Supported: {sorted(supported)}")
        return v

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate the Krippendorff measurement level."""
        supported = {"nominal", "ordinal", "interval", "ratio"}
        if v not in supported:
            raise ValueError(f"Unsupported level: {v}. Supported: {sorted(supported)}")
        return v


class MatcherConfig(BaseConfig):
    """Configuration for the pattern similarity matcher."""
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    similarity_floor: float = Field(default=0.1, ge=0.0, lt=1.0)
    max_candidates: int = Field(default=3, ge=1)
    min_segment_length: int = Field(default=10, ge=1)
    min_keyword_length: int = Field(default=3, ge=1)
    extra_stopwords: List[str] = Field(default_factory=list)
    method_name: str = "calibrated-pattern"

    @field_validator('extra_stopwords')
    @classmethod
    def normalize_stopwords(cls, v):
        """Stop words are compared against lowercased tokens."""
        return [word.lower().strip() for word in v if word.strip()]


class ConsensusConfig(BaseConfig):
    """Configuration for multi-pass consensus resolution."""
    min_agreement_fraction: float = Field(default=2 / 3, gt=0.0, le=1.0)
    name_overlap_threshold: float = Field(default=0.5, gt=0.0, le=1.0)
    language: str = Field(default="en", pattern="^(en|de)$")


class EngineConfig(BaseConfig):
    """Top-level engine configuration."""
    name: str = "qualcode"
    version: str = "1.0.0"

    agreement: AgreementConfig = Field(default_factory=AgreementConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)

    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


class ConfigManager:
    """
    Configuration manager for loading and validating YAML configurations.

    Missing files resolve to validated defaults so the engine can run
    without any configuration on disk.
    """

    def __init__(self, config_dir: str = "configs"):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir)
        self._configs: Dict[str, Any] = {}

    def load_engine_config(self, config_file: str = "engine.yaml") -> EngineConfig:
        """
        Load and validate the engine configuration.

        Args:
            config_file: Engine configuration file name

        Returns:
            Validated EngineConfig object

        Raises:
            ValueError: If configuration is invalid
        """
        config_path = self.config_dir / config_file

        if not config_path.exists():
            default_config = EngineConfig()
            self._configs['engine'] = default_config
            return default_config

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                config_data = {}

            # Extract engine section if it exists
            if 'engine' in config_data:
                config_data = config_data['engine']

            engine_config = EngineConfig(**config_data)
            self._configs['engine'] = engine_config

            return engine_config

        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_file}: {e}")
        except Exception as e:
            raise ValueError(f"Error loading engine config: {e}")

    def save_engine_config(self, config: EngineConfig, config_file: str = "engine.yaml") -> Path:
        """Write a configuration to disk and return its path."""
        config_path = self.config_dir / config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config.model_dump(), f, default_flow_style=False, indent=2)
        self._configs['engine'] = config
        return config_path

    def get_config(self, config_key: str) -> Optional[Any]:
        """Get cached configuration by key."""
        return self._configs.get(config_key)

    def get_section(self, section: str) -> Optional[BaseConfig]:
        """
        Get configuration for one engine component.

        Args:
            section: One of ``agreement``, ``matcher`` or ``consensus``

        Returns:
            Section configuration object or None if not found
        """
        engine_config = self.get_config('engine')
        if not engine_config:
            engine_config = self.load_engine_config()

        return getattr(engine_config, section, None)


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the package logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))

    package_logger = logging.getLogger("qualcode")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def load_config(config_dir: str = "configs") -> EngineConfig:
    """
    Convenience function to load the engine configuration.

    The configured ``log_level`` is applied to the package logger.

    Args:
        config_dir: Directory containing configuration files

    Returns:
        Validated EngineConfig
    """
    config = ConfigManager(config_dir).load_engine_config()
    configure_logging(config.log_level)
    return config
