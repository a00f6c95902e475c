"""Audio configuration.

This module loads the sound manager configuration from YAML: which backends
to use, playback policy (ARIA cues, debounce windows), speech defaults and
the manifest of sounds registered at startup.

Example ``audio.yaml``::

    backend: fmod
    max_channels: 32
    aria_enabled: true
    debounce_ms:
      click: 100
    speech:
      backend: pyttsx3
      base_rate: 180
    sounds:
      - category: sfx
        subcategory: core
        key: click
        src: sfx/click.mp3

Typical usage:
    from soundsync.settings import load_audio_config

    config = load_audio_config("config/audio.yaml")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from soundsync.audio.categories import Category, resolve_category
from soundsync.audio.engine.base import SoundSource
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)

DEFAULT_BACKEND = "fmod"
DEFAULT_SPEECH_BACKEND = "pyttsx3"


@dataclass
class SoundEntry:
    """One sound of the startup manifest.

    Attributes:
        category: Resolved category.
        key: Registry key.
        source: Source descriptor handed to the playback engine.
    """

    category: Category
    key: str
    source: SoundSource


@dataclass
class SpeechConfig:
    """Speech engine configuration.

    Attributes:
        backend: Speech backend (pyttsx3, headless or none).
        base_rate: Words per minute at rate 1.0.
        voice: Voice name substring, or None for the default voice.
        driver: pyttsx3 driver override.
    """

    backend: str = DEFAULT_SPEECH_BACKEND
    base_rate: int = 180
    voice: str | None = None
    driver: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Options passed to ``create_speech_engine``."""
        return {"base_rate": self.base_rate, "voice": self.voice, "driver": self.driver}


@dataclass
class AudioConfig:
    """Sound manager configuration.

    Attributes:
        backend: Playback backend (fmod, pygame or headless).
        max_channels: Maximum simultaneous channels.
        base_dir: Directory relative source paths are resolved against.
        aria_enabled: Whether accessibility cues play.
        debounce_ms: Per-key minimum interval between plays.
        speech: Speech configuration.
        sounds: Startup manifest.
    """

    backend: str = DEFAULT_BACKEND
    max_channels: int = 32
    base_dir: Path | None = None
    aria_enabled: bool = True
    debounce_ms: dict[str, float] = field(default_factory=dict)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    sounds: list[SoundEntry] = field(default_factory=list)

    def engine_options(self) -> dict[str, Any]:
        """Options passed to ``IPlaybackEngine.initialize``."""
        return {"max_channels": self.max_channels}

    def resolve_source(self, source: SoundSource) -> SoundSource:
        """Resolve relative source paths against ``base_dir``."""
        if self.base_dir is None:
            return source
        resolved = [
            str(path) if Path(path).is_absolute() else str(self.base_dir / path)
            for path in source.src
        ]
        return SoundSource(
            src=resolved,
            volume=source.volume,
            loop=source.loop,
            rate=source.rate,
            sprite=dict(source.sprite),
            preload=source.preload,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> "AudioConfig":
        """Build a configuration from parsed YAML.

        Invalid manifest entries are skipped with a warning.
        """
        speech_data = data.get("speech") or {}
        speech = SpeechConfig(
            backend=str(speech_data.get("backend", DEFAULT_SPEECH_BACKEND)),
            base_rate=int(speech_data.get("base_rate", 180)),
            voice=speech_data.get("voice"),
            driver=speech_data.get("driver"),
        )

        debounce: dict[str, float] = {}
        for key, window in (data.get("debounce_ms") or {}).items():
            if isinstance(window, (int, float)) and window > 0:
                debounce[str(key)] = float(window)
            else:
                logger.warning("Ignoring invalid debounce for %s: %r", key, window)

        sounds: list[SoundEntry] = []
        for index, entry in enumerate(data.get("sounds") or []):
            sound = _parse_sound_entry(index, entry)
            if sound is not None:
                sounds.append(sound)

        root = data.get("base_dir")
        if root is not None:
            root_path = Path(root)
            base_dir = root_path if root_path.is_absolute() or base_dir is None else base_dir / root_path

        return cls(
            backend=str(data.get("backend", DEFAULT_BACKEND)),
            max_channels=int(data.get("max_channels", 32)),
            base_dir=base_dir,
            aria_enabled=bool(data.get("aria_enabled", True)),
            debounce_ms=debounce,
            speech=speech,
            sounds=sounds,
        )


def _parse_sound_entry(index: int, entry: Any) -> SoundEntry | None:
    if not isinstance(entry, dict):
        logger.warning("Skipping sound #%d: not a mapping", index)
        return None

    key = entry.get("key")
    category = resolve_category(str(entry.get("category", "")), entry.get("subcategory"))
    if not key or category is None:
        logger.warning(
            "Skipping sound #%d: invalid category/key (%s/%s, %r)",
            index,
            entry.get("category"),
            entry.get("subcategory"),
            key,
        )
        return None

    try:
        source = SoundSource.from_mapping(entry)
    except (TypeError, ValueError) as e:
        logger.warning("Skipping sound %s: %s", key, e)
        return None

    return SoundEntry(category=category, key=str(key), source=source)


def load_audio_config(path: Path | str | None = None) -> AudioConfig:
    """Load the audio configuration.

    Relative sound paths resolve against the directory of the YAML file.

    Args:
        path: Path to the YAML file. Defaults apply when None or missing.

    Returns:
        Parsed configuration, or defaults if the file is missing or invalid.
    """
    if path is None:
        return AudioConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("No audio config at %s, using defaults", config_path)
        return AudioConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load audio config %s: %s", config_path, e)
        return AudioConfig()

    if not isinstance(data, dict):
        logger.error("Audio config %s must be a mapping", config_path)
        return AudioConfig()

    try:
        config = AudioConfig.from_dict(data, base_dir=config_path.parent)
    except (TypeError, ValueError) as e:
        logger.error("Invalid audio config %s: %s", config_path, e)
        return AudioConfig()

    logger.info("Loaded audio config from %s (%d sounds)", config_path, len(config.sounds))
    return config
