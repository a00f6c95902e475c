"""Sound categories.

Sounds are grouped into a fixed set of categories. Every category except
``multitrack`` is mirrored in the audio state snapshot.

Typical usage example:
    from soundsync.audio.categories import Category, resolve_category

    resolve_category("sfx", "core")  # Category.SFX_CORE
    resolve_category("music", None)  # Category.MUSIC
"""

from enum import Enum


class Category(Enum):
    """Closed set of sound categories."""

    MUSIC = "music"
    SFX_CORE = "sfx/core"
    SFX_INTERFACE = "sfx/interface"
    SFX_ARIA = "sfx/aria"
    MULTITRACK = "multitrack"

    @property
    def group(self) -> str:
        """Top-level group name (music, sfx, multitrack)."""
        return self.value.split("/", 1)[0]

    @property
    def subcategory(self) -> str | None:
        """Subcategory name, or None for top-level categories."""
        parts = self.value.split("/", 1)
        return parts[1] if len(parts) == 2 else None

    @property
    def mirrored(self) -> bool:
        """Whether the state store tracks sounds of this category."""
        return self is not Category.MULTITRACK


SFX_SUBCATEGORIES = ("core", "interface", "aria")


def resolve_category(category: "Category | str", subcategory: str | None = None) -> Category | None:
    """Map a (category, subcategory) pair to a Category.

    Accepts a Category directly, a full value such as ``"sfx/core"``, or the
    pair ``("sfx", "core")``. The subcategory is ignored for ``music`` and
    ``multitrack``.

    Args:
        category: Category enum or name.
        subcategory: Subcategory name for ``sfx``.

    Returns:
        The matching Category, or None when the pair is unknown.
    """
    if isinstance(category, Category):
        return category

    name = str(category).strip().lower()
    if name in ("music", "multitrack"):
        return Category(name)
    if name == "sfx":
        if subcategory is None:
            return None
        name = f"sfx/{subcategory.strip().lower()}"

    try:
        return Category(name)
    except ValueError:
        return None
