"""
Start-up configuration for the call form backend.

Values come from the packaged ``config.yaml``, whose entries interpolate
environment variables (optionally loaded from a ``.env`` file). The merged
tree is validated once into frozen pydantic models so that a missing or
non-numeric label id stops the process before the first request arrives.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, ConfigDict

CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class StorageSettings(_Frozen):
    bucket: str = ""


class LabelSettings(_Frozen):
    """Tracker label ids; every entry is required and must be an integer."""

    interested: int
    funnel_website: int
    package_1: int
    package_2: int
    package_3: int
    package_4: int
    package_default: int

    def for_package(self, tier: Optional[int]) -> int:
        """Label for a package tier (1-4); anything else maps to the default label."""
        return {
            1: self.package_1,
            2: self.package_2,
            3: self.package_3,
            4: self.package_4,
        }.get(tier, self.package_default)


class TrackerSettings(_Frozen):
    api_url: str
    token: str = ""
    section_id: str = ""
    labels: LabelSettings


class MailSettings(_Frozen):
    api_url: str
    token: str = ""
    sender: str
    sender_name: str = ""
    subject: str

    @property
    def enabled(self) -> bool:
        return bool(self.token)


class RenderSettings(_Frozen):
    timezone: str = "Europe/Vienna"


class HttpSettings(_Frozen):
    timeout: float = 30.0


class LoggingSettings(_Frozen):
    level: str = "INFO"


class Settings(_Frozen):
    storage: StorageSettings
    tracker: TrackerSettings
    mail: MailSettings
    render: RenderSettings
    http: HttpSettings
    logging: LoggingSettings


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    base = OmegaConf.create(OmegaConf.to_container(_load_default_config(), resolve=False))
    OmegaConf.set_struct(base, True)
    return DictConfig(OmegaConf.merge(base, OmegaConf.create(overrides or {})))


def build_settings(overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Resolve the configuration tree against the environment and validate it.

    Args:
        overrides: Optional nested values merged over ``config.yaml``

    Raises:
        pydantic.ValidationError: If a label id is absent or not numeric
    """
    container = OmegaConf.to_container(make_runtime_config(overrides), resolve=True)
    return Settings.model_validate(container)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return build_settings()
