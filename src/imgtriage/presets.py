from __future__ import annotations
"""
Persisted configuration: named session presets and sort destinations.

The configuration is a JSON file:

    {
        "presets": {"default": {"step": 1, "loop": false, "paused": false,
                                "delay": null, "mark": null}},
        "destinations": {"A": "~/Pictures/keep", "*": "~/Pictures/sorted"}
    }

A missing file yields the built-in defaults. Values are validated on load so
the rest of the application gets plain, typed data.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG_PATH, DEFAULT_DELAY, DEFAULT_PRESET, DEFAULT_STEP
from .exceptions.triage_errors import ConfigError
from .tags import validate_tag

logger = logging.getLogger(__name__)


@dataclass
class Preset:
    step: int = DEFAULT_STEP
    loop: bool = False
    paused: bool = False
    delay: float | None = DEFAULT_DELAY
    mark: str | None = None

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> 'Preset':
        unknown = set(data) - {'step', 'loop', 'paused', 'delay', 'mark'}
        if unknown:
            raise ConfigError(f"Preset '{name}' has unknown keys: {', '.join(sorted(unknown))}")
        preset = cls(**data)
        if not isinstance(preset.step, int) or isinstance(preset.step, bool) or preset.step == 0:
            raise ConfigError(f"Preset '{name}': step must be a non-zero integer")
        if not isinstance(preset.loop, bool) or not isinstance(preset.paused, bool):
            raise ConfigError(f"Preset '{name}': loop and paused must be booleans")
        if preset.delay is not None:
            if not isinstance(preset.delay, (int, float)) or preset.delay <= 0:
                raise ConfigError(f"Preset '{name}': delay must be a positive number or null")
            preset.delay = float(preset.delay)
        if preset.mark is not None:
            try:
                validate_tag(preset.mark)
            except ValueError as e:
                raise ConfigError(f"Preset '{name}': {e}") from e
        return preset


@dataclass
class Settings:
    presets: dict[str, Preset] = field(default_factory=lambda: {DEFAULT_PRESET: Preset()})
    destinations: dict[str, str] = field(default_factory=dict)

    def preset(self, name: str = DEFAULT_PRESET) -> Preset:
        try:
            return self.presets[name]
        except KeyError:
            if name == DEFAULT_PRESET:
                return Preset()
            raise ConfigError(f"Unknown preset '{name}'. Known presets: {', '.join(sorted(self.presets))}") from None

    def to_dict(self) -> dict[str, Any]:
        return {
            'presets': {name: asdict(preset) for name, preset in self.presets.items()},
            'destinations': dict(self.destinations),
        }


def load_settings(path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Load presets and destinations from `path`.

    Raises:
        ConfigError: If the file exists but is not valid.
    """
    path = Path(path).expanduser()
    if not path.exists():
        logger.debug(f"Configuration file not found: {path}. Using defaults.")
        return Settings()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"'{path}' is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must hold a JSON object")

    settings = Settings()
    presets = data.get('presets', {})
    if not isinstance(presets, dict):
        raise ConfigError("'presets' must be an object")
    for name, values in presets.items():
        if not isinstance(values, dict):
            raise ConfigError(f"Preset '{name}' must be an object")
        try:
            settings.presets[name] = Preset.from_dict(name, values)
        except TypeError as e:
            raise ConfigError(f"Preset '{name}': {e}") from e

    destinations = data.get('destinations', {})
    if not isinstance(destinations, dict):
        raise ConfigError("'destinations' must be an object")
    for tag, directory in destinations.items():
        try:
            validate_tag(tag)
        except ValueError as e:
            raise ConfigError(f"Destination key: {e}") from e
        if not isinstance(directory, str) or not directory:
            raise ConfigError(f"Destination for {tag!r} must be a directory path")
        settings.destinations[tag] = directory

    logger.info(f"Loaded {len(settings.presets)} presets and {len(settings.destinations)} destinations from {path}.")
    return settings


def save_settings(settings: Settings, path: Path = DEFAULT_CONFIG_PATH) -> None:
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=4, ensure_ascii=False)
    logger.info(f"Saved configuration to {path}.")
