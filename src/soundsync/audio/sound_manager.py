"""Sound manager assembling registry, state store, facades and speech.

This module provides the single entry point of the audio subsystem. A
``SoundManager`` owns one registry, one state store with its event bus, the
per-category facades, the global controls and the speech facade. Several
managers can coexist; there is no module-level state.

Engine handle callbacks are turned into ``EngineEvent``s and delivered in
order through an ``EngineEventChannel``; the manager is its only consumer
and the only code that moves sounds between playing, paused and stopped.

Typical usage example:
    from soundsync.audio.sound_manager import SoundManager
    from soundsync.settings import load_audio_config

    manager = SoundManager.create(load_audio_config("config/audio.yaml"))
    manager.initialize()
    manager.sfx.core.play("click")
    manager.tts.speak("Welcome")

    while running:
        manager.update(dt)
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from soundsync.audio.categories import SFX_SUBCATEGORIES, Category, resolve_category
from soundsync.audio.category_facade import CategoryFacade, PlaybackPolicy
from soundsync.audio.diagnostics import EventLog
from soundsync.audio.engine import create_playback_engine
from soundsync.audio.engine.base import HANDLE_EVENTS, IPlaybackEngine, SoundHandle, SoundSource
from soundsync.audio.engine.events import EngineEvent, EngineEventChannel
from soundsync.audio.global_controls import GlobalControls
from soundsync.audio.registry import SoundRegistry
from soundsync.audio.speech import create_speech_engine
from soundsync.audio.speech.base import ISpeechEngine
from soundsync.audio.speech.speech_facade import SpeechFacade
from soundsync.audio.state import AudioState, PlaybackStatus
from soundsync.audio.state_store import StateStore
from soundsync.core.errors import EngineUnavailableError, PlaybackEngineError
from soundsync.core.event_bus import EventBus
from soundsync.core.logging_system import get_logger
from soundsync.settings.audio_config import AudioConfig

logger = get_logger(__name__)

HandleCallback = Callable[..., None]


class SfxFacades:
    """The three sound effect facades, reachable by attribute or name."""

    def __init__(self, core: CategoryFacade, interface: CategoryFacade, aria: CategoryFacade) -> None:
        self.core = core
        self.interface = interface
        self.aria = aria

    def __getitem__(self, subcategory: str) -> CategoryFacade:
        if subcategory not in SFX_SUBCATEGORIES:
            raise KeyError(subcategory)
        return getattr(self, subcategory)


class SoundManager:
    """Audio subsystem facade.

    Attributes:
        music: Music facade.
        sfx: Sound effect facades (``core``, ``interface``, ``aria``).
        multitrack: Facade for multitrack sounds (not mirrored in state).
        tts: Speech facade.
        controls: Global controls over every sound and speech.
        event_log: Recent engine events, for developer tools.

    Examples:
        >>> manager = SoundManager.create(config, engine=HeadlessPlaybackEngine())
        >>> manager.initialize()
        True
        >>> manager.register("sfx", "core", "click", {"src": ["click.wav"]})
        >>> manager.sfx.core.play("click")
        1
        >>> manager.get_snapshot().sfx.core["click"].playing
        True
    """

    def __init__(
        self,
        config: AudioConfig | None = None,
        engine: IPlaybackEngine | None = None,
        speech_engine: ISpeechEngine | None = None,
    ) -> None:
        """Assemble a manager around existing engines.

        Prefer ``create``, which builds engines from the configuration.

        Args:
            config: Audio configuration; defaults when None.
            engine: Playback engine, or None when playback is unavailable.
            speech_engine: Initialized speech engine, or None.
        """
        self.config = config or AudioConfig()
        self._engine = engine
        self._speech_engine = speech_engine

        self._bus: EventBus[AudioState] = EventBus()
        self._store = StateStore(self._bus)
        self._registry = SoundRegistry()
        self._policy = PlaybackPolicy(
            aria_enabled=self.config.aria_enabled,
            debounce_ms=self.config.debounce_ms,
        )
        self._channel = EngineEventChannel(self._on_engine_event)
        self._wiring: dict[tuple[Category, str], list[tuple[str, HandleCallback]]] = {}

        self.event_log = EventLog()
        self._bus.subscribe(self.event_log.on_snapshot)

        facades = {
            category: CategoryFacade(
                category, self._registry, self._store, lambda: self.is_ready, self._policy
            )
            for category in Category
        }
        self._facades = facades
        self.music = facades[Category.MUSIC]
        self.sfx = SfxFacades(
            core=facades[Category.SFX_CORE],
            interface=facades[Category.SFX_INTERFACE],
            aria=facades[Category.SFX_ARIA],
        )
        self.multitrack = facades[Category.MULTITRACK]
        self.tts = SpeechFacade(speech_engine)
        self.controls = GlobalControls(
            lambda: self._engine if self.is_ready else None,
            self._registry,
            self._store,
            self.tts,
        )

    @classmethod
    def create(
        cls,
        config: AudioConfig | None = None,
        engine: IPlaybackEngine | None = None,
        speech_engine: ISpeechEngine | None = None,
    ) -> "SoundManager":
        """Build a manager, creating missing engines from the configuration.

        A playback backend that cannot be created leaves the manager
        permanently not ready; a missing speech backend leaves speech in its
        unsupported mode. Neither raises.

        Args:
            config: Audio configuration; defaults when None.
            engine: Playback engine to use instead of ``config.backend``.
            speech_engine: Speech engine to use instead of ``config.speech``.

        Returns:
            The new, not yet initialized, manager.
        """
        config = config or AudioConfig()
        if engine is None:
            try:
                engine = create_playback_engine(config.backend)
            except (EngineUnavailableError, ValueError) as e:
                logger.error("Playback backend %r unavailable: %s", config.backend, e)
        if speech_engine is None:
            speech_engine = create_speech_engine(config.speech.backend, config.speech.to_dict())
        return cls(config, engine, speech_engine)

    # ------------------------------------------------------------ lifecycle

    @property
    def is_ready(self) -> bool:
        """Whether the playback engine is initialized."""
        return self._engine is not None and self._engine.is_initialized

    @property
    def engine(self) -> IPlaybackEngine | None:
        """Playback engine, if any."""
        return self._engine

    def initialize(self) -> bool:
        """Initialize the playback engine and register the configured sounds.

        Returns:
            True if the manager is ready.
        """
        if self._engine is None:
            logger.warning("No playback engine available, sound disabled")
            return False
        if self.is_ready:
            logger.debug("Sound manager already initialized")
            return True
        if not self._start_engine():
            return False
        self._register_configured_sounds()
        return True

    async def initialize_async(self) -> bool:
        """Start the playback engine in a worker thread.

        Only the engine start leaves the calling thread; the configured
        sounds are registered back on the event loop thread, so listeners
        are never called from the worker.

        Returns:
            True if the manager is ready.
        """
        if self._engine is None:
            logger.warning("No playback engine available, sound disabled")
            return False
        if self.is_ready:
            logger.debug("Sound manager already initialized")
            return True

        loop = asyncio.get_running_loop()
        if not await loop.run_in_executor(None, self._start_engine):
            return False
        self._register_configured_sounds()
        return True

    def _start_engine(self) -> bool:
        try:
            self._engine.initialize(self.config.engine_options())
        except EngineUnavailableError as e:
            logger.error("Failed to initialize playback engine: %s", e)
            return False
        return True

    def _register_configured_sounds(self) -> None:
        registered = 0
        for entry in self.config.sounds:
            source = self.config.resolve_source(entry.source)
            if self.register(entry.category, None, entry.key, source) is not None:
                registered += 1
        logger.info("Sound manager initialized (%d sounds)", registered)

    def update(self, delta_time: float = 0.0) -> None:
        """Pump the engines once per frame.

        Drives fades, sprite ends and end-of-sound detection; the resulting
        engine events update the mirrored state.

        Args:
            delta_time: Seconds since the last frame. Engines use their own
                clock, so this is informational.
        """
        if self.is_ready:
            try:
                self._engine.update()
            except PlaybackEngineError as e:
                logger.warning("Playback engine update failed: %s", e)
        self.tts.update()

    def shutdown(self) -> None:
        """Stop everything and release both engines."""
        if self.is_ready:
            self.controls.stop_all()
        elif self.tts.available:
            self.tts.stop()

        for (category, key), callbacks in list(self._wiring.items()):
            handle = self._registry.resolve(category, None, key)
            if handle is not None:
                self._detach(handle, callbacks)
        self._wiring.clear()

        if self._speech_engine is not None:
            self._speech_engine.shutdown()
        if self._engine is not None and self._engine.is_initialized:
            self._engine.shutdown()
        logger.info("Sound manager shut down")

    # ---------------------------------------------------------- registration

    def register(
        self,
        category: Category | str,
        subcategory: str | None,
        key: str,
        source: SoundSource | Mapping[str, Any],
    ) -> SoundHandle | None:
        """Load a source and register it under (category, subcategory, key).

        The new sound appears as stopped in the very next snapshot.

        Args:
            category: Category enum, ``"sfx/core"`` style value, or group name.
            subcategory: SFX subcategory when ``category`` is ``"sfx"``.
            key: Registry key; an existing key is replaced.
            source: ``SoundSource`` or mapping with ``src``, ``volume``,
                ``loop``, ``rate`` and ``sprite``.

        Returns:
            The loaded handle, or None if nothing was registered.
        """
        resolved = resolve_category(category, subcategory)
        if resolved is None:
            logger.warning("Cannot register %r: unknown category %s/%s", key, category, subcategory)
            return None
        if not self.is_ready:
            logger.warning("Playback engine not initialized, cannot register %s/%s", resolved.value, key)
            return None

        if not isinstance(source, SoundSource):
            try:
                source = SoundSource.from_mapping(source)
            except (TypeError, ValueError) as e:
                logger.warning("Invalid source for %s/%s: %s", resolved.value, key, e)
                return None

        try:
            handle = self._engine.load(source)
        except PlaybackEngineError as e:
            logger.error("Failed to load %s/%s: %s", resolved.value, key, e)
            return None

        return self.register_handle(resolved, key, handle)

    def register_handle(self, category: Category, key: str, handle: SoundHandle) -> SoundHandle:
        """Register an already loaded handle and wire its lifecycle events.

        A handle previously registered under the same key is detached and
        stopped, then unloaded from the engine unless it is ``handle``
        itself. Either way the key starts over as stopped.
        """
        previous = self._registry.resolve(category, None, key)
        if previous is not None:
            # Detach first so the stop below does not reach the store
            self._detach(previous, self._wiring.pop((category, key), []))
            previous.stop()
            if previous is not handle and self._engine is not None:
                self._engine.unload(previous)

        self._registry.register(category, None, key, handle)
        callbacks = []
        for event in HANDLE_EVENTS:
            callback = self._forwarder(event, category, key)
            handle.on(event, callback)
            callbacks.append((event, callback))
        self._wiring[(category, key)] = callbacks

        self._store.init(category, key, handle)
        logger.debug("Registered %s/%s", category.value, key)

        if handle.load_error:
            self._channel.post(EngineEvent("loaderror", category, key, error=handle.load_error))
        return handle

    def _forwarder(self, kind: str, category: Category, key: str) -> HandleCallback:
        def forward(sound_id: int | None = None, error: str | None = None) -> None:
            self._channel.post(EngineEvent(kind, category, key, sound_id, error))

        return forward

    @staticmethod
    def _detach(handle: SoundHandle, callbacks: list[tuple[str, HandleCallback]]) -> None:
        for event, callback in callbacks:
            handle.off(event, callback)

    # ---------------------------------------------------------------- events

    def _on_engine_event(self, event: EngineEvent) -> None:
        self.event_log.record(event)
        category, key = event.category, event.key

        if event.kind == "play":
            self._store.transition(category, key, PlaybackStatus.PLAYING)
        elif event.kind in ("pause", "stop", "end"):
            self._reconcile(category, key)
        elif event.kind == "loaderror":
            logger.error("Load error on %s/%s: %s", category.value, key, event.error)
            self._store.transition(category, key, PlaybackStatus.STOPPED)
        elif event.kind == "fade":
            handle = self._registry.resolve(category, None, key)
            if handle is not None:
                # A single-voice fade leaves the handle volume, and the mirror, unchanged
                self._store.apply(category, key, {"volume": handle.volume()})

    def _reconcile(self, category: Category, key: str) -> None:
        # One voice pausing or ending leaves the sound playing while others run
        handle = self._registry.resolve(category, None, key)
        if handle is not None and handle.playing():
            return
        if handle is not None and handle.voices():
            status = PlaybackStatus.PAUSED
        else:
            status = PlaybackStatus.STOPPED
        self._store.transition(category, key, status)

    # -------------------------------------------------------------- queries

    def facade(self, category: Category | str, subcategory: str | None = None) -> CategoryFacade | None:
        """Return the facade of a category, or None if unknown."""
        resolved = resolve_category(category, subcategory)
        return self._facades[resolved] if resolved is not None else None

    def play_sprite(
        self,
        category: Category | str,
        subcategory: str | None,
        key: str,
        sprite: str,
    ) -> int | None:
        """Play a named sub-clip of a registered sound.

        Returns:
            Sound id of the started voice, or None.
        """
        facade = self.facade(category, subcategory)
        if facade is None:
            logger.warning(
                "Cannot play sprite %s of %r: unknown category %s/%s", sprite, key, category, subcategory
            )
            return None
        return facade.play_sprite(key, sprite)

    def resolve(self, category: Category | str, subcategory: str | None, key: str) -> SoundHandle | None:
        """Look up a registered handle."""
        return self._registry.resolve(category, subcategory, key)

    def get_snapshot(self) -> AudioState:
        """Return an immutable snapshot of the mirrored state."""
        return self._store.snapshot()

    def subscribe(self, listener: Callable[[AudioState], None]) -> Callable[[], None]:
        """Receive a snapshot after every state change.

        Returns:
            Function that removes the listener.
        """
        return self._bus.subscribe(listener)

    # --------------------------------------------------------------- policy

    def set_aria_enabled(self, enabled: bool) -> None:
        """Enable or disable accessibility cues (``sfx/aria``)."""
        self._policy.aria_enabled = enabled
        logger.info("ARIA sounds %s", "enabled" if enabled else "disabled")

    @property
    def aria_enabled(self) -> bool:
        """Whether accessibility cues may play."""
        return self._policy.aria_enabled

    def set_debounce(self, key: str, window_ms: float | None) -> None:
        """Set (or clear with None) the debounce window of a key."""
        if window_ms is None or window_ms <= 0:
            self._policy.debounce_ms.pop(key, None)
        else:
            self._policy.debounce_ms[key] = float(window_ms)

    # ------------------------------------------------------- global controls

    def mute_all(self) -> None:
        """Mute every sound."""
        self.controls.mute_all()

    def unmute_all(self) -> None:
        """Unmute every sound."""
        self.controls.unmute_all()

    def volume_all(self, volume: float) -> None:
        """Set the engine-wide volume."""
        self.controls.volume_all(volume)

    def stop_all(self) -> None:
        """Stop every sound and any speech."""
        self.controls.stop_all()

    def pause_all(self) -> None:
        """Pause every sound and any speech."""
        self.controls.pause_all()

    def play_all(self) -> None:
        """Play every registered sound."""
        self.controls.play_all()
