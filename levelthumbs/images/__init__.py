"""Level thumbnail and pack banner generation.

Exports are lazily loaded so `python -m levelthumbs.images.<module>` style
imports don't pull in numpy and Pillow for unrelated modules.
"""

__all__ = [
    # gradient.py
    "GradientSpec",
    "GradientStop",
    "parse_linear_gradient",
    "render_background",
    # levels.py
    "LevelState",
    "resolve_level_source",
    "derive_variants",
    "process_levels_thumbnails",
    # packs.py
    "slice_polygon",
    "render_pack_banner",
    "crop_banner",
    "process_packs_thumbnails",
]


def __getattr__(name: str):
    """Lazy import for module exports."""
    if name in ("GradientSpec", "GradientStop", "parse_linear_gradient", "render_background"):
        from levelthumbs.images import gradient
        return getattr(gradient, name)
    elif name in ("LevelState", "resolve_level_source", "derive_variants", "process_levels_thumbnails"):
        from levelthumbs.images import levels
        return getattr(levels, name)
    elif name in ("slice_polygon", "render_pack_banner", "crop_banner", "process_packs_thumbnails"):
        from levelthumbs.images import packs
        return getattr(packs, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
