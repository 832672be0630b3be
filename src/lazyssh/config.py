"""Configuration models for lazyssh."""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from lazyssh.errors import ConfigIOError, ParseError
from lazyssh.sorting import SortMode

CONFIG_ENV_VAR = "LAZYSSH_CONFIG"
DEFAULT_CONFIG_PATH = "~/.lazyssh/config.yaml"


class PathsConfig(BaseModel):
    """File locations. `~` is expanded when resolved."""

    ssh_config: str = "~/.ssh/config"
    metadata: str = "~/.lazyssh/metadata.json"
    log_file: str = "~/.lazyssh/lazyssh.log"

    def resolve(self, name: str) -> Path:
        return Path(os.path.expanduser(getattr(self, name)))


class BackupsConfig(BaseModel):
    """Rolling backup configuration."""

    max_backups: int = 10

    @field_validator("max_backups")
    @classmethod
    def validate_max_backups(cls, v: int) -> int:
        if v < 1:
            raise ValueError("backups.max_backups must be at least 1")
        return v


class ValidationConfig(BaseModel):
    check_paths: bool = True  # Require IdentityFile / UserKnownHostsFile to exist


class UIConfig(BaseModel):
    default_sort: SortMode = SortMode.ALIAS_ASC


class ProbeConfig(BaseModel):
    """Reachability probe configuration."""

    timeout: str = "3s"
    workers: int = 8

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("probe.workers must be at least 1")
        return v

    @property
    def timeout_seconds(self) -> int:
        return parse_duration(self.timeout)


class LazySSHConfig(BaseModel):
    """Main lazyssh configuration."""

    paths: PathsConfig = PathsConfig()
    backups: BackupsConfig = BackupsConfig()
    validation: ValidationConfig = ValidationConfig()
    ui: UIConfig = UIConfig()
    probe: ProbeConfig = ProbeConfig()


def parse_duration(duration_str: str) -> int:
    """Parse duration string to seconds. Supports: 30s, 5m, 2h, 1d."""
    duration_str = duration_str.strip().lower()
    if not duration_str:
        raise ValueError("Empty duration string")

    multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    unit = duration_str[-1]

    if unit not in multipliers:
        raise ValueError(f"Invalid duration unit: {unit}. Use s, m, h, or d.")

    try:
        value = int(duration_str[:-1])
    except ValueError:
        raise ValueError(f"Invalid duration value: {duration_str[:-1]}")

    return value * multipliers[unit]


def default_config_path() -> Path:
    return Path(os.path.expanduser(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH))


def load_config(path: Path | None = None) -> LazySSHConfig:
    """Load configuration from YAML. A missing file gives the defaults."""
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        return LazySSHConfig()

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigIOError(f"failed to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML in {path}: {e}") from e

    try:
        return LazySSHConfig(**(data or {}))
    except ValidationError as e:
        raise ParseError(f"invalid configuration in {path}: {e}") from e


def get_config_template() -> str:
    """Get the default configuration template."""
    return """# lazyssh configuration

paths:
  ssh_config: ~/.ssh/config             # The SSH client config lazyssh reads and writes
  metadata: ~/.lazyssh/metadata.json    # Tags, pins and usage data
  log_file: ~/.lazyssh/lazyssh.log

backups:
  max_backups: 10  # Rolling <config>-<ms>-lazyssh.backup copies to keep

validation:
  check_paths: true  # Require IdentityFile / UserKnownHostsFile paths to exist

ui:
  default_sort: alias_asc  # alias_asc, alias_desc, last_seen_desc, last_seen_asc

probe:
  timeout: 3s   # Per-host connect timeout for 'lazyssh ping'
  workers: 8
"""
