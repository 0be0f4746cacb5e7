"""
Configuration Management for TrustMap

Loads tunable constants from ~/.trustmap/config.json and environment variables.
The analysis core never reads configuration on its own: callers load a
TrustMapConfig once and pass it down (or rely on the built-in defaults).
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger("trustmap.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".trustmap"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Default location of Claude Code transcripts
DEFAULT_LOGS_DIR = Path.home() / ".claude" / "projects"


@dataclass
class AnalysisConfig:
    """Per-session analysis constants"""
    density_scale: float = 10000.0  # interventions/errors per 10k tokens
    end_error_window: int = 5  # trailing events checked for endedWithError
    max_file_patterns: int = 10


@dataclass
class AggregationConfig:
    """Trust map aggregation constants"""
    confidence_k: float = 0.2
    confidence_midpoint: float = 5.0
    default_intervention_progress: float = 0.5


@dataclass
class PredictionConfig:
    """Trust prediction and insight constants"""
    min_samples: int = 3
    area_weight: float = 1.0
    ticket_type_weight: float = 0.8
    branch_type_weight: float = 0.6
    label_weight: float = 0.5
    high_threshold: float = 0.7
    medium_threshold: float = 0.4
    fallback_confidence: float = 0.3
    confidence_weight_divisor: float = 2.0
    insight_min_samples: int = 5
    insight_deviation: float = 0.2
    insight_rework_threshold: float = 0.3


@dataclass
class TrustMapConfig:
    """Main TrustMap configuration"""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    logs_dir: str = str(DEFAULT_LOGS_DIR)


def _parse_analysis_config(data: dict) -> AnalysisConfig:
    """Parse analysis section from config dict"""
    analysis_data = data.get("analysis", {})
    return AnalysisConfig(
        density_scale=float(analysis_data.get("density_scale", 10000.0)),
        end_error_window=int(analysis_data.get("end_error_window", 5)),
        max_file_patterns=int(analysis_data.get("max_file_patterns", 10)),
    )


def _parse_aggregation_config(data: dict) -> AggregationConfig:
    """Parse aggregation section from config dict"""
    aggregation_data = data.get("aggregation", {})
    return AggregationConfig(
        confidence_k=float(aggregation_data.get("confidence_k", 0.2)),
        confidence_midpoint=float(aggregation_data.get("confidence_midpoint", 5.0)),
        default_intervention_progress=float(
            aggregation_data.get("default_intervention_progress", 0.5)
        ),
    )


def _parse_prediction_config(data: dict) -> PredictionConfig:
    """Parse prediction section from config dict.

    Unknown keys are ignored; missing keys keep their defaults.
    """
    prediction_data = data.get("prediction", {})
    defaults = PredictionConfig()
    values = {}
    for name, default in vars(defaults).items():
        if name in prediction_data:
            values[name] = type(default)(prediction_data[name])
    return PredictionConfig(**values)


# Environment overrides: variable -> (section, attribute, cast)
_ENV_OVERRIDES: Dict[str, tuple] = {
    "TRUSTMAP_DENSITY_SCALE": ("analysis", "density_scale", float),
    "TRUSTMAP_END_ERROR_WINDOW": ("analysis", "end_error_window", int),
    "TRUSTMAP_CONFIDENCE_K": ("aggregation", "confidence_k", float),
    "TRUSTMAP_CONFIDENCE_MIDPOINT": ("aggregation", "confidence_midpoint", float),
    "TRUSTMAP_MIN_SAMPLES": ("prediction", "min_samples", int),
    "TRUSTMAP_HIGH_THRESHOLD": ("prediction", "high_threshold", float),
    "TRUSTMAP_MEDIUM_THRESHOLD": ("prediction", "medium_threshold", float),
}


def load_config(config_path: Optional[Path] = None, env_file: Optional[str] = None) -> TrustMapConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (a .env file is loaded first when present)
    2. Config file (~/.trustmap/config.json)
    3. Default values
    """
    load_dotenv(env_file)
    config = TrustMapConfig()
    path = config_path or CONFIG_PATH

    # Load from config file if exists
    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)

            config.analysis = _parse_analysis_config(data)
            config.aggregation = _parse_aggregation_config(data)
            config.prediction = _parse_prediction_config(data)
            config.logs_dir = data.get("logs_dir", config.logs_dir)
        except (json.JSONDecodeError, IOError, TypeError, ValueError) as e:
            logger.warning("Failed to load config file %s: %s", path, e)
            config = TrustMapConfig()

    for env_var, (section, attr, cast) in _ENV_OVERRIDES.items():
        val = os.getenv(env_var)
        if not val:
            continue
        try:
            setattr(getattr(config, section), attr, cast(val))
        except ValueError:
            logger.warning("Ignoring invalid value for %s: %r", env_var, val)

    if os.getenv("TRUSTMAP_LOGS_DIR"):
        config.logs_dir = os.getenv("TRUSTMAP_LOGS_DIR")

    return config


def save_config(config: TrustMapConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    path = config_path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "analysis": vars(config.analysis),
        "aggregation": vars(config.aggregation),
        "prediction": vars(config.prediction),
        "logs_dir": config.logs_dir,
    }

    with open(path, "w") as f:
        json.dump(data, f, indent=2)


DEFAULT_CONFIG = TrustMapConfig()
