# shot_annote/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .domain import DEFAULT_SHOT_TYPE
from .persistence import SIDECAR_EXTENSION, _atomic_write_json, _read_json


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SHOT_ANNOTE_CONFIG"
CONFIG_FILENAME = "config.json"

DEFAULT_SHOT_TYPES: List[str] = [
    "Wide", "Medium", "Close-up", "Extreme close-up",
    "Over-the-shoulder", "Point of view", "Insert", "Establishing",
]


def default_config_path() -> str:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), ".shot_annote", CONFIG_FILENAME)


@dataclass
class AppConfig:
    """
    Stored in ~/.shot_annote/config.json (or $SHOT_ANNOTE_CONFIG).
    """
    sidecar_extension: str = SIDECAR_EXTENSION
    default_shot_type: str = DEFAULT_SHOT_TYPE
    last_media_dir: str = ""
    shot_types: List[str] = field(default_factory=lambda: list(DEFAULT_SHOT_TYPES))

    def to_dict(self) -> Dict:
        return {
            "sidecar_extension": self.sidecar_extension,
            "default_shot_type": self.default_shot_type,
            "last_media_dir": self.last_media_dir,
            "shot_types": list(self.shot_types),
            "config_version": 1,
        }

    @staticmethod
    def from_dict(d: Dict) -> "AppConfig":
        ext = str(d.get("sidecar_extension") or SIDECAR_EXTENSION).strip()
        if not ext.startswith("."):
            ext = "." + ext
        shot_types = d.get("shot_types")
        if not isinstance(shot_types, list):
            shot_types = list(DEFAULT_SHOT_TYPES)
        return AppConfig(
            sidecar_extension=ext,
            default_shot_type=str(d.get("default_shot_type") or DEFAULT_SHOT_TYPE).strip() or DEFAULT_SHOT_TYPE,
            last_media_dir=str(d.get("last_media_dir") or ""),
            shot_types=[str(s).strip() for s in shot_types if str(s).strip()],
        )


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Loads the config file. If missing or invalid, returns defaults.
    """
    path = path or default_config_path()
    if not os.path.exists(path):
        return AppConfig()
    try:
        data = _read_json(path)
        if not isinstance(data, dict):
            raise ValueError("config root must be an object")
        return AppConfig.from_dict(data)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring invalid config %s: %s", path, e)
        return AppConfig()


def save_config(cfg: AppConfig, path: Optional[str] = None) -> str:
    path = path or default_config_path()
    _atomic_write_json(path, cfg.to_dict())
    return path
