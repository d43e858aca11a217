"""Project configuration: configs/config.yaml, environment, CLI overrides."""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from src.ner.errors import ConfigurationError
from src.ner.recognizer import LanguageModel

log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "config.yaml"
DEFAULT_CORPUS_PATH = PROJECT_ROOT / "data" / "plays.csv"
DEFAULT_ANNOTATIONS_DIR = PROJECT_ROOT / "data" / "annotations"
DEFAULT_OUTPUT_TABLE = PROJECT_ROOT / "data" / "accuracy.csv"

ENV_CORPUS = "SHAKESPEARE_NER_CORPUS"
ENV_ANNOTATIONS = "SHAKESPEARE_NER_ANNOTATIONS"


class Settings(BaseModel):
    corpus_path: Path = DEFAULT_CORPUS_PATH
    annotations_dir: Path = DEFAULT_ANNOTATIONS_DIR
    output_table: Path = DEFAULT_OUTPUT_TABLE
    languages: list[str] = Field(default_factory=lambda: ["en"])
    models: dict[str, LanguageModel] = Field(default_factory=lambda: {"en": LanguageModel()})
    workers: int = 1
    timeout: Optional[float] = None
    reuse_annotations: bool = True


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> dict:
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    return {}


def load_settings(config_path: Optional[Path] = None, **overrides) -> Settings:
    """Merge config file, environment and explicit overrides (highest wins)."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if config_path and not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    cfg = load_config(path)

    if os.environ.get(ENV_CORPUS):
        cfg["corpus_path"] = os.environ[ENV_CORPUS]
    if os.environ.get(ENV_ANNOTATIONS):
        cfg["annotations_dir"] = os.environ[ENV_ANNOTATIONS]

    cfg.update({k: v for k, v in overrides.items() if v is not None})
    try:
        settings = Settings(**cfg)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
    log.debug("Settings: %s", settings)
    return settings
