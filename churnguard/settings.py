"""
Runtime settings for the ChurnGuard service.

Settings come from a YAML file named by ``CHURNGUARD_CONFIG`` (if set),
then ``CHURNGUARD_*`` environment variables override individual keys:

    data_path: data/customers.json
    scoring_config_path: config/scoring.yaml
    host: 0.0.0.0
    port: 8000
    log_level: INFO
    log_file: logs/churnguard.log
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

ENV_PREFIX = "CHURNGUARD_"
CONFIG_ENV = "CHURNGUARD_CONFIG"


@dataclass
class Settings:
    data_path: Optional[str] = None  # None: bundled mock data
    scoring_config_path: Optional[str] = None  # None: DEFAULT_CONFIG
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Settings":
        """Load settings from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Settings from CHURNGUARD_CONFIG plus environment overrides."""
        environ = os.environ if environ is None else environ
        config_path = environ.get(CONFIG_ENV)
        settings = cls.from_yaml(config_path) if config_path else cls()

        for f in fields(cls):
            value = environ.get(ENV_PREFIX + f.name.upper())
            if value is None:
                continue
            setattr(settings, f.name, int(value) if f.name == "port" else value)
        return settings
