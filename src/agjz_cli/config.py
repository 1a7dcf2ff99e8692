"""User configuration for ag-jz.

Reads an optional YAML file (see ``get_config_path``) with these keys::

    global_dir: ~/somewhere/.agent      # aggregate directory
    staging_dir: /tmp/my-staging        # where kits are fetched
    default_kits:                       # kits synced by ``ag-jz sync --all``
      - github:owner/repo

Environment variables (``AG_JZ_HOME``, ``AG_JZ_CONFIG``) take precedence
over the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from agjz_cli.errors import ConfigError
from agjz_cli.kits.home import get_config_path, get_global_agent_dir, get_staging_dir

logger = logging.getLogger(__name__)

DEFAULT_KITS: list[str] = [
    "github:anthonylee991/gemini-superpowers-antigravity",
    "github:vudovn/antigravity-kit",
    "github:sickn33/antigravity-awesome-skills",
]


@dataclass
class AgjzConfig:
    """Resolved configuration values."""

    global_dir: Path
    staging_dir: Path
    default_kits: list[str] = field(default_factory=lambda: list(DEFAULT_KITS))
    config_path: Path | None = None


def _optional_path(raw: dict, key: str, config_path: Path) -> Path | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{config_path}: '{key}' must be a non-empty string")
    return Path(value)


def _read_config_file(config_path: Path) -> dict:
    """Return the parsed config mapping, or an empty dict when unusable."""
    if not config_path.is_file():
        return {}

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not load config file %s: %s", config_path, exc)
        return {}

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", config_path)
        return {}
    return raw


def load_config(config_path: Path | None = None) -> AgjzConfig:
    """Load configuration from *config_path* (default: ``get_config_path()``).

    A missing or unparseable file yields the defaults. Values of the wrong
    type raise ``ConfigError``.
    """
    if config_path is None:
        config_path = get_config_path()

    raw = _read_config_file(config_path)

    default_kits = raw.get("default_kits", DEFAULT_KITS)
    if not isinstance(default_kits, list) or not all(
        isinstance(kit, str) and kit.strip() for kit in default_kits
    ):
        raise ConfigError(f"{config_path}: 'default_kits' must be a list of kit sources")

    config = AgjzConfig(
        global_dir=get_global_agent_dir(_optional_path(raw, "global_dir", config_path)),
        staging_dir=get_staging_dir(_optional_path(raw, "staging_dir", config_path)),
        default_kits=[kit.strip() for kit in default_kits],
        config_path=config_path,
    )
    logger.debug("Loaded config: %s", config)
    return config
