"""Registry of playable sound handles.

Handles are stored by category and key. Keys are unique within a category;
registering an existing key replaces the previous handle.
"""

from collections.abc import Iterator

from soundsync.audio.categories import Category, resolve_category
from soundsync.audio.engine.base import SoundHandle
from soundsync.core.logging_system import get_logger

logger = get_logger(__name__)


class SoundRegistry:
    """Category -> key -> SoundHandle mapping.

    Examples:
        >>> registry = SoundRegistry()
        >>> registry.register("sfx", "core", "click", handle)
        >>> registry.resolve("sfx", "core", "click") is handle
        True
        >>> registry.resolve("sfx", "core", "ghost") is None
        True
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._handles: dict[Category, dict[str, SoundHandle]] = {
            category: {} for category in Category
        }

    def register(
        self,
        category: Category | str,
        subcategory: str | None,
        key: str,
        handle: SoundHandle,
    ) -> Category | None:
        """Store a handle under (category, subcategory, key).

        Re-registering a key silently overwrites the previous handle.

        Returns:
            The resolved category, or None if the pair is unknown.
        """
        resolved = resolve_category(category, subcategory)
        if resolved is None:
            logger.warning("Cannot register %r: unknown category %s/%s", key, category, subcategory)
            return None

        if key in self._handles[resolved]:
            logger.debug("Overwriting registered sound %s/%s", resolved.value, key)
        self._handles[resolved][key] = handle
        return resolved

    def resolve(
        self, category: Category | str, subcategory: str | None, key: str
    ) -> SoundHandle | None:
        """Look up a handle.

        Returns:
            The handle, or None when the category or key is unknown.
        """
        resolved = resolve_category(category, subcategory)
        if resolved is None:
            return None
        return self._handles[resolved].get(key)

    def keys(self, category: Category) -> list[str]:
        """Registered keys of a category, in registration order."""
        return list(self._handles[category])

    def handles(self, include_multitrack: bool = True) -> Iterator[SoundHandle]:
        """Iterate every registered handle."""
        for category, handles in self._handles.items():
            if category is Category.MULTITRACK and not include_multitrack:
                continue
            yield from list(handles.values())

    def __len__(self) -> int:
        return sum(len(handles) for handles in self._handles.values())

    def __contains__(self, item: tuple[Category, str]) -> bool:
        category, key = item
        return key in self._handles.get(category, {})
