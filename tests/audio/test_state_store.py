"""Tests for the mirrored state store."""

import dataclasses
from unittest.mock import Mock

import pytest

from soundsync.audio.categories import Category
from soundsync.audio.engine.base import SoundSource
from soundsync.audio.engine.headless_engine import HeadlessSoundHandle
from soundsync.audio.state import AudioState, PlaybackStatus
from soundsync.audio.state_store import StateStore
from soundsync.core.event_bus import EventBus


class TestStateStore:
    """Test suite for StateStore."""

    @pytest.fixture
    def bus(self) -> EventBus[AudioState]:
        """Create the snapshot bus."""
        return EventBus()

    @pytest.fixture
    def clock(self) -> Mock:
        """Wall clock returning increasing timestamps."""
        return Mock(side_effect=[100.0, 200.0, 300.0, 400.0])

    @pytest.fixture
    def store(self, bus: EventBus[AudioState], clock: Mock) -> StateStore:
        """Create a store with one registered sfx/core sound."""
        store = StateStore(bus, clock=clock)
        handle = HeadlessSoundHandle(SoundSource(src=["click.wav"], volume=0.4, loop=True))
        store.init(Category.SFX_CORE, "click", handle)
        return store

    def test_init_seeds_stopped_entry_from_handle(self, store: StateStore) -> None:
        """Test init creates a stopped entry with the handle's settings."""
        state = store.get(Category.SFX_CORE, "click")

        assert state is not None
        assert state.stopped and not state.playing and not state.paused
        assert state.volume == pytest.approx(0.4)
        assert state.loop is True
        assert state.last_played is None

    def test_init_publishes_snapshot(self, bus: EventBus[AudioState]) -> None:
        """Test init publishes a snapshot containing the new entry."""
        listener = Mock()
        bus.subscribe(listener)
        store = StateStore(bus)

        store.init(Category.MUSIC, "theme", HeadlessSoundHandle(SoundSource(src=["t.ogg"])))

        listener.assert_called_once()
        snapshot = listener.call_args.args[0]
        assert "theme" in snapshot.music

    def test_multitrack_not_mirrored(self, bus: EventBus[AudioState]) -> None:
        """Test init skips multitrack sounds."""
        store = StateStore(bus)

        result = store.init(Category.MULTITRACK, "stem", HeadlessSoundHandle(SoundSource(src=["s.wav"])))

        assert result is None
        assert store.apply(Category.MULTITRACK, "stem", {"volume": 0.5}) is False

    def test_transition_to_playing_stamps_last_played(self, store: StateStore) -> None:
        """Test entering playing sets the flags and last_played."""
        assert store.transition(Category.SFX_CORE, "click", PlaybackStatus.PLAYING)

        state = store.get(Category.SFX_CORE, "click")
        assert state.playing and not state.paused and not state.stopped
        assert state.last_played == 100.0

    def test_transitions_keep_exclusivity(self, store: StateStore) -> None:
        """Test every transition leaves exactly one status flag set."""
        for status in (
            PlaybackStatus.PLAYING,
            PlaybackStatus.PAUSED,
            PlaybackStatus.PLAYING,
            PlaybackStatus.STOPPED,
        ):
            store.transition(Category.SFX_CORE, "click", status)
            state = store.get(Category.SFX_CORE, "click")
            assert state.is_consistent()
            assert state.status is status

    def test_last_played_never_decreases(self, bus: EventBus[AudioState]) -> None:
        """Test a clock going backwards does not move last_played back."""
        store = StateStore(bus, clock=Mock(side_effect=[500.0, 50.0]))
        store.init(Category.MUSIC, "theme", HeadlessSoundHandle(SoundSource(src=["t.ogg"])))

        store.transition(Category.MUSIC, "theme", PlaybackStatus.PLAYING)
        store.transition(Category.MUSIC, "theme", PlaybackStatus.PLAYING)

        assert store.get(Category.MUSIC, "theme").last_played == 500.0

    def test_apply_rejects_inconsistent_update(self, store: StateStore) -> None:
        """Test a partial update breaking exclusivity is rejected."""
        assert store.apply(Category.SFX_CORE, "click", {"playing": True}) is False

        assert store.get(Category.SFX_CORE, "click").stopped

    def test_apply_rejects_unknown_field(self, store: StateStore) -> None:
        """Test unknown fields are rejected."""
        assert store.apply(Category.SFX_CORE, "click", {"pitch": 2.0}) is False

    def test_apply_for_unregistered_key_is_ignored(
        self, store: StateStore, bus: EventBus[AudioState]
    ) -> None:
        """Test updates for unknown keys change nothing and publish nothing."""
        before = bus.publish_count

        assert store.apply(Category.SFX_CORE, "ghost", {"volume": 0.1}) is False
        assert bus.publish_count == before
        assert store.get(Category.SFX_CORE, "ghost") is None

    def test_snapshot_cannot_be_mutated(self, store: StateStore) -> None:
        """Test snapshots reject changes to entries and maps."""
        snapshot = store.snapshot()

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.sfx.core["click"].volume = 0.0
        with pytest.raises(TypeError):
            snapshot.sfx.core["intruder"] = snapshot.sfx.core["click"]
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.global_volume = 0.0

    def test_snapshot_does_not_follow_later_updates(self, store: StateStore) -> None:
        """Test a snapshot keeps the values it was taken with."""
        before = store.snapshot()

        store.apply(Category.SFX_CORE, "click", {"volume": 0.9})
        store.init(Category.SFX_CORE, "hover", HeadlessSoundHandle(SoundSource(src=["h.wav"])))

        assert before.sfx.core["click"].volume == pytest.approx(0.4)
        assert "hover" not in before.sfx.core

    def test_listeners_share_one_immutable_snapshot(
        self, store: StateStore, bus: EventBus[AudioState]
    ) -> None:
        """Test a listener cannot change what later listeners receive."""
        # Arrange
        received: list[AudioState] = []

        def tamper(state: AudioState) -> None:
            try:
                state.sfx.core["click"].volume = 0.0
            except dataclasses.FrozenInstanceError:
                pass

        bus.subscribe(tamper)
        bus.subscribe(received.append)

        # Act
        store.apply(Category.SFX_CORE, "click", {"volume": 0.7})

        # Assert
        assert received[0].sfx.core["click"].volume == pytest.approx(0.7)
        assert store.get(Category.SFX_CORE, "click").volume == pytest.approx(0.7)

    def test_set_global(self, store: StateStore) -> None:
        """Test global mute and volume are recorded."""
        store.set_global(mute=True)
        store.set_global(volume=0.25)

        snapshot = store.snapshot()
        assert snapshot.global_mute is True
        assert snapshot.global_volume == 0.25
