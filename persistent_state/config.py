"""Store configuration loaded from a YAML file.

Example ``persistent_state.yml``::

    app_id: org.example.app
    key_encoding: base64
    safety_margin: 16777216
    log_level: INFO
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from persistent_state.storage.file_backend import DEFAULT_PREFIX, SAFETY_MARGIN

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("persistent_state.yml")


class StoreConfig(BaseModel):
    directory: Optional[str] = None
    app_id: Optional[str] = None
    prefix: str = Field(DEFAULT_PREFIX, min_length=1)
    safety_margin: int = Field(SAFETY_MARGIN, ge=0)
    key_encoding: Literal["percent", "base64"] = "percent"
    coder: Literal["json", "yaml", "pickle"] = "json"
    log_level: str = "WARNING"

    @field_validator("prefix")
    @classmethod
    def _prefix_not_hidden(cls, v: str) -> str:
        # Dot files in the store directory are temp and probe files
        if v.startswith("."):
            raise ValueError("prefix must not start with '.'")
        return v


def load_config(config_path: Optional[Path] = None) -> StoreConfig:
    """Load the store configuration; a missing file yields the defaults.

    Raises ValueError if the file exists but is not a valid configuration.
    """
    cfg_path = config_path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        logger.debug("No config at %s, using defaults", cfg_path)
        return StoreConfig()
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"invalid config format: parse error in {cfg_path}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("invalid config format: expected mapping")
    # pydantic's ValidationError is a ValueError
    return StoreConfig.model_validate(data)
