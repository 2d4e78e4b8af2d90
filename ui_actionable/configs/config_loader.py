from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Final, Mapping, Optional, Sequence, Union

import yaml

from ui_actionable.configs.config_utils import ConfigMerger
from ui_actionable.configs.models import ChannelSettings

__all__: Sequence[str] = ('ConfigLoader', 'load_channel_settings')
logger = logging.getLogger(__name__)

_ENV_DEFAULT: Final[str] = 'default'
_ENV_VAR: Final[str] = 'UI_ACTIONABLE_ENV'
_SECTION: Final[str] = 'action_channel'
_FILE_NAME: Final[str] = 'channel_config.yaml'

_RE_ENV_DEFAULT: Final[re.Pattern[str]] = re.compile('\\$\\{([A-Za-z_][A-Za-z0-9_]*)[:-](.*?)\\}')


def _interpolate_env(value: str) -> str:
    if not isinstance(value, str):
        return value

    def _repl(match: re.Match[str]) -> str:
        var, default = (match.group(1), match.group(2).removeprefix('-'))
        return os.getenv(var, default)

    before = value
    value = _RE_ENV_DEFAULT.sub(_repl, value)
    value = os.path.expandvars(value)

    if before != value:
        logger.debug("Env expand: '%s' → '%s'", before, value)
    elif '${' in before:
        logger.warning("Unresolved env var in '%s'", before)

    return value


def _expand_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _expand_tree(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_expand_tree(v) for v in node]
    if isinstance(node, str):
        return _interpolate_env(node)
    return node


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding='utf-8')
        if path.suffix.lower() == '.json':
            data = json.loads(text) or {}
        else:
            data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            logger.warning('%s does not contain a top‑level mapping – ignored', path)
            return {}
        return data

    except FileNotFoundError:
        logger.debug('Config file not found: %s', path)
        return {}
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error('Failed to read %s: %s', path, exc, exc_info=True)
        return {}


class ConfigLoader:

    def __init__(self, config_root: Optional[Path] = None) -> None:
        self._config_root: Path = config_root if config_root is not None else Path(__file__).resolve().parent

    def load_channel_settings(
        self,
        path: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        env: Optional[str] = None,
    ) -> ChannelSettings:
        env = env or os.getenv(_ENV_VAR) or _ENV_DEFAULT
        logger.debug('Loading action channel settings for env=%s', env)

        layers = [('DEFAULT_CHANNEL_CONFIG', self._config_root / _ENV_DEFAULT / _FILE_NAME)]
        if env != _ENV_DEFAULT:
            layers.append((f'ENV_CHANNEL_CONFIG ({env})', self._config_root / env / _FILE_NAME))
        if path is not None:
            layers.append(('EXPLICIT_CHANNEL_CONFIG', Path(path)))

        cfg: Dict[str, Any] = {}
        for label, layer_path in layers:
            section = _load_yaml(layer_path).get(_SECTION, {})
            if not isinstance(section, dict):
                logger.warning("%s '%s' section is not a mapping – skipped.", label, _SECTION)
                continue
            if section:
                cfg = ConfigMerger.merge(cfg, section, label)
                logger.debug('Merged %s: %s', label, layer_path)

        if overrides:
            cfg = ConfigMerger.merge(cfg, dict(overrides), 'overrides')

        cfg = _expand_tree(cfg)
        settings = ChannelSettings.model_validate(cfg)
        logger.debug('✓ Action channel settings resolved: %s', settings.model_dump())
        return settings


def load_channel_settings(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[str] = None,
) -> ChannelSettings:
    return ConfigLoader().load_channel_settings(path=path, overrides=overrides, env=env)
