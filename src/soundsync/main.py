"""SoundSync command line.

Initializes a sound manager from the YAML configuration and runs one
command against it.

Typical usage:
    python -m soundsync.main state
    python -m soundsync.main play sfx/core click
    python -m soundsync.main play music intro --sprite chorus
    python -m soundsync.main --backend headless speak "Hello there"
"""

import argparse
import json
import sys
import time
from collections.abc import Callable

from soundsync.audio.engine import PLAYBACK_BACKENDS
from soundsync.audio.sound_manager import SoundManager
from soundsync.audio.speech import SPEECH_BACKENDS
from soundsync.core.logging_system import get_logger, initialize_logging
from soundsync.settings.audio_config import load_audio_config
from soundsync.version import get_version

logger = get_logger(__name__)

DEFAULT_CONFIG = "config/audio.yaml"
DEFAULT_LOGGING_CONFIG = "config/logging.yaml"
FRAME_SECONDS = 1.0 / 60.0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse; ``sys.argv`` when None.

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(description="SoundSync - sound manager with mirrored state")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Audio config YAML file")
    parser.add_argument("--logging-config", default=DEFAULT_LOGGING_CONFIG, help="Logging config YAML file")
    parser.add_argument("--backend", choices=PLAYBACK_BACKENDS, help="Override the playback backend")
    parser.add_argument("--speech-backend", choices=SPEECH_BACKENDS, help="Override the speech backend")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING...)")
    parser.add_argument(
        "--timeout", type=float, default=30.0, help="Maximum seconds to wait for play/speak"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("state", help="Print the state snapshot as JSON")

    play = commands.add_parser("play", help="Play a registered sound until it ends")
    play.add_argument("category", help="music, multitrack, or sfx/core, sfx/interface, sfx/aria")
    play.add_argument("key", help="Registered sound key")
    play.add_argument("--sprite", help="Sprite to play instead of the whole sound")

    speak = commands.add_parser("speak", help="Speak text")
    speak.add_argument("text", help="Text to speak")
    speak.add_argument("--rate", type=float, help="Rate multiplier (0.1 to 10)")

    return parser.parse_args(argv)


def _pump(manager: SoundManager, busy: Callable[[], bool], timeout: float) -> None:
    deadline = time.monotonic() + timeout
    while busy() and time.monotonic() < deadline:
        manager.update(FRAME_SECONDS)
        time.sleep(FRAME_SECONDS)


def _print_state(manager: SoundManager) -> None:
    print(json.dumps(manager.get_snapshot().to_dict(), indent=2))


def run_play(manager: SoundManager, args: argparse.Namespace) -> int:
    """Play one sound and wait for it to finish."""
    facade = manager.facade(args.category)
    if facade is None:
        print(f"Unknown category: {args.category}", file=sys.stderr)
        return 2

    sound_id = facade.play_sprite(args.key, args.sprite) if args.sprite else facade.play(args.key)
    if sound_id is None:
        print(f"Could not play {args.category}/{args.key} ({facade.last_outcome.value})", file=sys.stderr)
        return 1

    _pump(manager, lambda: facade.playing(args.key), args.timeout)
    for line in manager.event_log.lines():
        print(line)
    return 0


def run_speak(manager: SoundManager, args: argparse.Namespace) -> int:
    """Speak text and wait for the utterance to end."""
    if not manager.tts.available:
        print("Speech synthesis not supported", file=sys.stderr)
        return 1
    manager.tts.speak(args.text, rate=args.rate)
    _pump(manager, manager.tts.is_speaking, args.timeout)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success).
    """
    args = parse_args(argv)
    initialize_logging(args.logging_config, level=args.log_level)

    config = load_audio_config(args.config)
    if args.backend:
        config.backend = args.backend
    if args.speech_backend:
        config.speech.backend = args.speech_backend

    manager = SoundManager.create(config)
    try:
        ready = manager.initialize()
        if args.command == "state":
            _print_state(manager)
            return 0
        if not ready and args.command == "play":
            print("Playback engine unavailable", file=sys.stderr)
            return 1
        if args.command == "play":
            return run_play(manager, args)
        return run_speak(manager, args)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.exception("Fatal error: %s", e)
        return 1
    finally:
        manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
