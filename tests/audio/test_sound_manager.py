"""Tests for the assembled sound manager.

Engine callbacks are driven through the headless engines, so every state
change below comes from a real engine event.
"""

import dataclasses
import threading
from unittest.mock import Mock

import pytest

from soundsync.audio.categories import Category
from soundsync.audio.engine.base import SoundSource
from soundsync.audio.engine.headless_engine import HeadlessPlaybackEngine, HeadlessSoundHandle
from soundsync.audio.sound_manager import SoundManager
from soundsync.audio.speech.base import SpeechStatus
from soundsync.audio.speech.headless_engine import HeadlessSpeechEngine
from soundsync.audio.state import AudioState
from soundsync.core.errors import Outcome
from soundsync.settings.audio_config import AudioConfig, SoundEntry, SpeechConfig

ALL_SLOTS = [
    ("music", None, "theme"),
    ("sfx", "core", "click"),
    ("sfx", "interface", "hover"),
    ("sfx", "aria", "cue"),
]


def headless_config(**overrides: object) -> AudioConfig:
    """Configuration using the headless backends."""
    config = AudioConfig(backend="headless", speech=SpeechConfig(backend="headless"))
    for name, value in overrides.items():
        setattr(config, name, value)
    return config


class TestSoundManager:
    """Test suite for SoundManager."""

    @pytest.fixture
    def engine(self) -> HeadlessPlaybackEngine:
        """Create the headless playback engine."""
        return HeadlessPlaybackEngine(fail_sources={"broken.wav"})

    @pytest.fixture
    def speech(self) -> HeadlessSpeechEngine:
        """Create the headless speech engine."""
        return HeadlessSpeechEngine()

    @pytest.fixture
    def manager(self, engine: HeadlessPlaybackEngine, speech: HeadlessSpeechEngine) -> SoundManager:
        """Create an initialized manager with one sfx/core sound."""
        manager = SoundManager.create(headless_config(), engine=engine, speech_engine=speech)
        manager.initialize()
        manager.register("sfx", "core", "click", {"src": ["click.wav"]})
        return manager

    def click(self, manager: SoundManager) -> HeadlessSoundHandle:
        """Registered click handle."""
        handle = manager.resolve("sfx", "core", "click")
        assert isinstance(handle, HeadlessSoundHandle)
        return handle

    # ------------------------------------------------------------ lifecycle

    def test_create_builds_engines_from_config(self) -> None:
        """Test create builds the configured backends."""
        manager = SoundManager.create(headless_config())

        assert isinstance(manager.engine, HeadlessPlaybackEngine)
        assert manager.tts.available
        assert not manager.is_ready

    def test_create_with_unknown_backend_stays_not_ready(self) -> None:
        """Test an unusable backend leaves the manager not ready."""
        manager = SoundManager.create(headless_config(backend="openal"))

        assert manager.engine is None
        assert manager.initialize() is False
        assert manager.sfx.core.play("click") is None
        assert manager.sfx.core.last_outcome is Outcome.ENGINE_UNAVAILABLE

    def test_managers_are_independent(self) -> None:
        """Test two managers share no state."""
        first = SoundManager.create(headless_config())
        second = SoundManager.create(headless_config())
        first.initialize()
        second.initialize()

        first.register("music", None, "theme", {"src": ["theme.ogg"]})

        assert "theme" in first.get_snapshot().music
        assert "theme" not in second.get_snapshot().music

    def test_initialize_registers_manifest(self, engine: HeadlessPlaybackEngine) -> None:
        """Test initialize registers every configured sound."""
        config = headless_config(
            sounds=[
                SoundEntry(Category.MUSIC, "theme", SoundSource(src=["theme.ogg"], loop=True)),
                SoundEntry(Category.SFX_INTERFACE, "hover", SoundSource(src=["hover.wav"])),
            ]
        )
        manager = SoundManager.create(config, engine=engine, speech_engine=HeadlessSpeechEngine())

        assert manager.initialize() is True

        snapshot = manager.get_snapshot()
        assert snapshot.music["theme"].loop is True
        assert snapshot.sfx.interface["hover"].stopped

    @pytest.mark.asyncio
    async def test_initialize_async(self, engine: HeadlessPlaybackEngine) -> None:
        """Test initialization can run off the event loop thread."""
        manager = SoundManager.create(headless_config(), engine=engine)

        assert await manager.initialize_async() is True
        assert manager.is_ready

    @pytest.mark.asyncio
    async def test_initialize_async_publishes_on_loop_thread(self, engine: HeadlessPlaybackEngine) -> None:
        """Test manifest registration and its snapshots stay on the calling thread."""
        config = headless_config(
            sounds=[SoundEntry(Category.SFX_CORE, "click", SoundSource(src=["click.wav"]))]
        )
        manager = SoundManager.create(config, engine=engine)
        threads: set[int] = set()
        manager.subscribe(lambda state: threads.add(threading.get_ident()))

        assert await manager.initialize_async() is True

        assert threads == {threading.get_ident()}
        assert "click" in manager.get_snapshot().sfx.core

    def test_register_before_initialize_is_rejected(self, engine: HeadlessPlaybackEngine) -> None:
        """Test registration needs an initialized engine."""
        manager = SoundManager.create(headless_config(), engine=engine)

        assert manager.register("sfx", "core", "click", {"src": ["click.wav"]}) is None
        assert manager.get_snapshot().sfx.core == {}

    def test_shutdown_stops_everything(self, manager: SoundManager, engine: HeadlessPlaybackEngine) -> None:
        """Test shutdown stops sounds and releases the engine."""
        manager.sfx.core.play("click")

        manager.shutdown()

        assert manager.get_snapshot().sfx.core["click"].stopped
        assert not engine.is_initialized
        assert not manager.is_ready

    # --------------------------------------------------------- properties

    @pytest.mark.parametrize(("category", "subcategory", "key"), ALL_SLOTS)
    def test_register_seeds_stopped_entry(
        self, manager: SoundManager, category: str, subcategory: str | None, key: str
    ) -> None:
        """Test every registered sound starts stopped."""
        manager.register(category, subcategory, key, {"src": [f"{key}.wav"]})

        state = manager.get_snapshot().to_dict()
        entry = state["music"][key] if category == "music" else state["sfx"][subcategory][key]
        assert entry["stopped"] is True
        assert entry["playing"] is False
        assert entry["paused"] is False

    def test_play_event_marks_playing(self, manager: SoundManager) -> None:
        """Test the engine play event sets playing and stamps last_played."""
        before = manager.get_snapshot().sfx.core["click"].last_played

        manager.sfx.core.play("click")

        state = manager.get_snapshot().sfx.core["click"]
        assert state.playing and not state.stopped and not state.paused
        assert state.last_played is not None
        assert before is None or state.last_played >= before

    def test_exclusivity_after_every_transition(self, manager: SoundManager) -> None:
        """Test at most one status flag is true after each event."""
        seen: list[AudioState] = []
        manager.subscribe(seen.append)
        handle = self.click(manager)

        manager.sfx.core.play("click")
        manager.sfx.core.pause("click")
        manager.sfx.core.play("click")
        handle.finish()
        manager.sfx.core.play("click")
        manager.sfx.core.stop("click")

        assert seen
        for snapshot in seen:
            assert snapshot.sfx.core["click"].is_consistent()

    def test_snapshot_mutation_is_rejected(self, manager: SoundManager) -> None:
        """Test a listener cannot change the snapshot other listeners receive."""
        manager.register("music", None, "x", {"src": ["x.ogg"], "volume": 0.7})
        errors: list[Exception] = []
        received: list[AudioState] = []

        def tamper(state: AudioState) -> None:
            try:
                state.music["x"].volume = 0
            except dataclasses.FrozenInstanceError as e:
                errors.append(e)

        manager.subscribe(tamper)
        manager.subscribe(received.append)

        manager.music.volume("x", 0.5)

        assert len(errors) == 1
        assert received[-1].music["x"].volume == pytest.approx(0.5)
        assert manager.event_log.snapshot is received[-1]
        assert manager.get_snapshot().music["x"].volume == pytest.approx(0.5)

    def test_stop_all_stops_every_category_and_speech(self, manager: SoundManager) -> None:
        """Test stop_all drives every sound to stopped and speech to idle."""
        for category, subcategory, key in ALL_SLOTS[:1] + ALL_SLOTS[2:]:
            manager.register(category, subcategory, key, {"src": [f"{key}.wav"]})
        manager.music.play("theme")
        manager.sfx.core.play("click")
        manager.sfx.interface.play("hover")
        manager.sfx.aria.play("cue")
        manager.tts.speak("hello")

        manager.stop_all()

        state = manager.get_snapshot()
        sounds = [
            state.music["theme"],
            state.sfx.core["click"],
            state.sfx.interface["hover"],
            state.sfx.aria["cue"],
        ]
        assert all(sound.stopped for sound in sounds)
        assert manager.tts.status is SpeechStatus.IDLE

    def test_runtime_registration_appears_in_next_snapshot(self, manager: SoundManager) -> None:
        """Test a sound registered at runtime shows up without any other call."""
        published: list[AudioState] = []
        manager.subscribe(published.append)

        manager.register("sfx", "core", "newSfx", {"src": ["new.wav"]})

        assert "newSfx" in published[-1].sfx.core
        assert "newSfx" in manager.get_snapshot().sfx.core

    # ----------------------------------------------------------- scenarios

    def test_play_then_stop_scenario(self, manager: SoundManager) -> None:
        """Test play and stop round trip through engine events."""
        manager.sfx.core.play("click")
        assert manager.get_snapshot().sfx.core["click"].playing is True

        manager.sfx.core.stop("click")

        state = manager.get_snapshot().sfx.core["click"]
        assert state.playing is False
        assert state.stopped is True

    def test_speak_interrupts_previous_scenario(
        self, manager: SoundManager, speech: HeadlessSpeechEngine
    ) -> None:
        """Test speaking while speaking cancels the prior utterance."""
        first = manager.tts.speak("first")

        manager.tts.speak("hello")

        assert speech.cancelled == [first]
        assert manager.tts.is_speaking()
        assert speech.current.text == "hello"

    def test_ghost_key_scenario(self, manager: SoundManager, engine: HeadlessPlaybackEngine) -> None:
        """Test an unregistered key resolves to nothing and changes nothing."""
        before = manager.get_snapshot()
        listener = Mock()
        manager.subscribe(listener)

        assert manager.resolve("sfx", "core", "ghost") is None
        assert manager.sfx.core.play("ghost") is None

        assert manager.get_snapshot() == before
        listener.assert_not_called()
        assert all(not handle.voices() for handle in engine.handles)

    # ------------------------------------------------------------- details

    def test_reregistration_overwrites_previous_sound(self, manager: SoundManager) -> None:
        """Test registering an existing key replaces the sound and resets its state."""
        old = self.click(manager)
        manager.sfx.core.play("click")

        manager.register("sfx", "core", "click", {"src": ["click2.wav"], "volume": 0.5})

        new = self.click(manager)
        assert new is not old
        assert not old.voices()
        state = manager.get_snapshot().sfx.core["click"]
        assert state.stopped
        assert state.volume == pytest.approx(0.5)

        # Events of the replaced handle no longer reach the state
        old.play()
        assert manager.get_snapshot().sfx.core["click"].stopped

    def test_reregistering_same_handle_rewires_once(self, manager: SoundManager) -> None:
        """Test registering the same handle again leaves one set of callbacks and a true mirror."""
        # Arrange
        handle = self.click(manager)
        manager.sfx.core.play("click")

        # Act
        manager.register_handle(Category.SFX_CORE, "click", handle)

        # Assert
        assert handle.playing() is False
        assert manager.get_snapshot().sfx.core["click"].stopped

        manager.event_log.clear()
        manager.sfx.core.play("click")
        manager.sfx.core.stop("click")
        assert [line.split()[0] for line in manager.event_log.lines()] == ["play", "stop"]
        assert manager.get_snapshot().sfx.core["click"].stopped

    def test_reregistration_unloads_replaced_handle(
        self, manager: SoundManager, engine: HeadlessPlaybackEngine
    ) -> None:
        """Test replaced handles are released by the engine."""
        for _ in range(5):
            manager.register("sfx", "core", "click", {"src": ["click.wav"]})

        assert engine.handles == [self.click(manager)]

    def test_natural_end_marks_stopped(self, manager: SoundManager) -> None:
        """Test the end of a sound marks it stopped on the next update."""
        manager.sfx.core.play("click")
        self.click(manager).started[0].finished = True

        manager.update(0.016)

        assert manager.get_snapshot().sfx.core["click"].stopped

    def test_one_voice_ending_keeps_sound_playing(self, manager: SoundManager) -> None:
        """Test the sound stays playing while another voice runs."""
        first = manager.sfx.core.play("click")
        manager.sfx.core.play("click")

        self.click(manager).finish(first)

        assert manager.get_snapshot().sfx.core["click"].playing

    def test_pause_event_marks_paused(self, manager: SoundManager) -> None:
        """Test pausing moves the sound to paused and play resumes it."""
        manager.sfx.core.play("click")

        manager.sfx.core.pause("click")
        assert manager.get_snapshot().sfx.core["click"].paused

        manager.sfx.core.play("click")
        assert manager.get_snapshot().sfx.core["click"].playing

    def test_load_error_marks_stopped(self, manager: SoundManager) -> None:
        """Test a sound that failed to load stays stopped and cannot play."""
        handle = manager.register("music", None, "broken", {"src": ["broken.wav"]})

        assert handle is not None
        assert manager.music.play("broken") is None
        assert manager.music.last_outcome is Outcome.LOAD_ERROR
        assert manager.get_snapshot().music["broken"].stopped
        assert [event.kind for event in manager.event_log.events].count("loaderror") == 2

    def test_invalid_source_mapping_rejected(self, manager: SoundManager) -> None:
        """Test malformed source mappings are not registered."""
        result = manager.register("music", None, "bad", {"src": 42})

        assert result is None
        assert "bad" not in manager.get_snapshot().music

    def test_multitrack_plays_without_state(self, manager: SoundManager) -> None:
        """Test multitrack sounds play but are not mirrored."""
        manager.register("multitrack", None, "stem", {"src": ["stem.wav"]})

        assert manager.multitrack.play("stem") == 1
        assert manager.multitrack.playing("stem")
        assert "stem" not in manager.get_snapshot().to_dict()["music"]

    def test_fade_updates_state_when_complete(self, manager: SoundManager) -> None:
        """Test the fade event mirrors the final volume."""
        manager.sfx.core.play("click")
        manager.sfx.core.fade("click", 1.0, 0.2, 0)
        assert manager.get_snapshot().sfx.core["click"].volume == pytest.approx(0.2)

    def test_single_voice_fade_keeps_sound_volume(self) -> None:
        """Test a fade on one voice does not overwrite the sound's mirrored volume."""
        now = [0.0]
        engine = HeadlessPlaybackEngine(clock=lambda: now[0])
        manager = SoundManager.create(headless_config(), engine=engine)
        manager.initialize()
        manager.register("sfx", "core", "click", {"src": ["click.wav"], "volume": 0.8})
        first = manager.sfx.core.play("click")
        manager.sfx.core.play("click")

        manager.sfx.core.fade("click", 0.8, 0.1, 100, sound_id=first)
        now[0] = 1.0
        manager.update()

        assert manager.resolve("sfx", "core", "click").volume(None, first) == pytest.approx(0.1)
        assert manager.get_snapshot().sfx.core["click"].volume == pytest.approx(0.8)
        assert any(line.startswith("fade") for line in manager.event_log.lines())

    def test_play_sprite(self, manager: SoundManager) -> None:
        """Test play_sprite plays a named sub-clip."""
        manager.register("sfx", "interface", "ui", {"src": ["ui.wav"], "sprite": {"open": [0, 300]}})

        sound_id = manager.play_sprite("sfx", "interface", "ui", "open")

        assert sound_id == 1
        assert manager.get_snapshot().sfx.interface["ui"].playing

    def test_play_sprite_unknown_category(self, manager: SoundManager) -> None:
        """Test play_sprite with an unknown category does nothing."""
        assert manager.play_sprite("sfx", "ambient", "ui", "open") is None

    def test_aria_toggle(self, manager: SoundManager) -> None:
        """Test disabling ARIA cues suppresses sfx/aria plays."""
        manager.register("sfx", "aria", "cue", {"src": ["cue.wav"]})

        manager.set_aria_enabled(False)
        assert manager.sfx.aria.play("cue") is None
        assert manager.sfx.aria.last_outcome is Outcome.SUPPRESSED

        manager.set_aria_enabled(True)
        assert manager.sfx.aria.play("cue") == 1

    def test_debounce(self, engine: HeadlessPlaybackEngine) -> None:
        """Test configured debounce windows suppress rapid repeats."""
        manager = SoundManager.create(headless_config(debounce_ms={"click": 60_000}), engine=engine)
        manager.initialize()
        manager.register("sfx", "core", "click", {"src": ["click.wav"]})

        assert manager.sfx.core.play("click") == 1
        assert manager.sfx.core.play("click") is None

    def test_global_mute_and_volume_in_snapshot(self, manager: SoundManager) -> None:
        """Test global mute and volume are mirrored."""
        manager.mute_all()
        manager.volume_all(0.4)

        snapshot = manager.get_snapshot()
        assert snapshot.global_mute is True
        assert snapshot.global_volume == pytest.approx(0.4)

    def test_pause_all_and_play_all(self, manager: SoundManager) -> None:
        """Test pause_all and play_all move every sound."""
        manager.play_all()
        assert manager.get_snapshot().sfx.core["click"].playing

        manager.pause_all()
        assert manager.get_snapshot().sfx.core["click"].paused

    def test_unsubscribe(self, manager: SoundManager) -> None:
        """Test an unsubscribed listener receives nothing more."""
        listener = Mock()
        unsubscribe = manager.subscribe(listener)
        unsubscribe()

        manager.sfx.core.play("click")

        listener.assert_not_called()

    def test_event_log_records_engine_events(self, manager: SoundManager) -> None:
        """Test engine events are recorded for diagnostics."""
        manager.sfx.core.play("click")
        manager.sfx.core.stop("click")

        assert manager.event_log.lines()[-2:] == ["play sfx/core/click #1", "stop sfx/core/click #1"]
        assert manager.event_log.snapshot.sfx.core["click"].stopped
