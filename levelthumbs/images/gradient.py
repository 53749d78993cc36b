"""CSS ``linear-gradient(...)`` parsing and background rendering.

Only the subset used by pack tier colors is understood::

    linear-gradient(<angle>, <color> [<offset>%], <color> [<offset>%], ...)

where ``<angle>`` is ``<n>deg`` or a bare radian number, and ``<color>`` is
``rgb(...)``, ``rgba(...)``, ``#rgb``, ``#rrggbb`` or a color keyword.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
from PIL import Image, ImageColor

logger = logging.getLogger(__name__)

GRADIENT_PREFIX = "linear-gradient"
TRANSPARENT = (0, 0, 0, 0)

_NUMBER = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_LEADING_NUMBER_RE = re.compile(rf"^\s*({_NUMBER})")
_STOP_RE = re.compile(
    rf"^(rgba?\([^)]*\)|#(?:[0-9a-fA-F]{{6}}|[0-9a-fA-F]{{3}})|[a-zA-Z]+)"
    rf"(?:\s+({_NUMBER})%?)?$"
)
_RGB_FUNC_RE = re.compile(r"^rgba?\(([^)]*)\)$", re.IGNORECASE)


@dataclass
class GradientStop:
    offset: float
    color: str


@dataclass
class GradientSpec:
    angle_radians: float
    stops: list[GradientStop] = field(default_factory=list)


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on ``sep`` outside parentheses, so ``rgba(1, 2, 3, 0.5)`` stays whole."""
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _leading_float(text: str) -> Optional[float]:
    m = _LEADING_NUMBER_RE.match(text)
    if not m:
        return None
    value = float(m.group(1))
    return value if math.isfinite(value) else None


def parse_angle(token: str) -> float:
    """Angle token in radians; ``deg`` suffix converts, anything unreadable is 0."""
    token = token.strip()
    value = _leading_float(token)
    if value is None:
        return 0.0
    if token.lower().endswith("deg"):
        return math.radians(value)
    return value


def parse_stops(text: str) -> list[GradientStop]:
    """Parse a comma separated stop list, keeping source order."""
    matches = []
    for token in split_top_level(text):
        m = _STOP_RE.match(token)
        if m:
            matches.append((m.group(1), m.group(2)))

    count = len(matches)
    stops = []
    for index, (color, position) in enumerate(matches):
        if position is not None:
            offset = float(position) / 100
        elif count > 1:
            offset = index / (count - 1)
        else:
            offset = 0.0
        stops.append(GradientStop(offset=offset, color=color))
    return stops


def parse_linear_gradient(text: Any) -> Optional[GradientSpec]:
    """Parse a ``linear-gradient(...)`` string.

    Returns:
        GradientSpec, or None when ``text`` is not a gradient string
    """
    if not text or not isinstance(text, str):
        return None
    text = text.strip()
    if not text.startswith(GRADIENT_PREFIX):
        return None

    start = text.find("(")
    if start < 0:
        return None
    end = text.rfind(")")
    inner = text[start + 1:end] if end > start else text[start + 1:]

    segments = split_top_level(inner)
    if len(segments) < 2:
        return None

    angle_token = segments[0]
    stops_text = ",".join(segments[1:])
    return GradientSpec(angle_radians=parse_angle(angle_token), stops=parse_stops(stops_text))


def _rgb_channel(text: str) -> int:
    if text.endswith("%"):
        value = float(text[:-1]) * 2.55
    else:
        value = float(text)
    return int(round(min(max(value, 0.0), 255.0)))


def _alpha_channel(text: str) -> int:
    if text.endswith("%"):
        value = float(text[:-1]) / 100
    else:
        value = float(text)
    return int(round(min(max(value, 0.0), 1.0) * 255))


def parse_color(color: str) -> Optional[tuple[int, int, int, int]]:
    """RGBA tuple for a CSS color string, or None when it can't be read.

    ``rgb()``/``rgba()`` take CSS alpha in ``[0, 1]``; hex and keywords go
    through Pillow.
    """
    color = color.strip()
    if color.lower() == "transparent":
        return TRANSPARENT

    m = _RGB_FUNC_RE.match(color)
    if m:
        parts = [part.strip() for part in m.group(1).split(",")]
        if len(parts) not in (3, 4):
            return None
        try:
            r, g, b = (_rgb_channel(part) for part in parts[:3])
            a = _alpha_channel(parts[3]) if len(parts) == 4 else 255
        except ValueError:
            return None
        return (r, g, b, a)

    try:
        return ImageColor.getcolor(color, "RGBA")
    except ValueError:
        return None


def render_gradient(spec: GradientSpec, width: int, height: int) -> Image.Image:
    """Rasterize a linear gradient the way a 2D canvas gradient is painted.

    The gradient axis runs from the origin to ``(cos(a) * width, sin(a) * height)``.
    Colors are padded before the first and after the last stop.
    """
    usable = []
    for stop in spec.stops:
        if not 0.0 <= stop.offset <= 1.0:
            logger.debug(f"Dropping gradient stop {stop.color} at {stop.offset}: offset out of range")
            continue
        rgba = parse_color(stop.color)
        if rgba is None:
            logger.debug(f"Dropping gradient stop with unreadable color {stop.color!r}")
            continue
        usable.append((stop.offset, rgba))

    if not usable:
        return Image.new("RGBA", (width, height), TRANSPARENT)

    # Stable: equal offsets keep insertion order
    usable.sort(key=lambda item: item[0])
    offsets = np.array([offset for offset, _ in usable], dtype=np.float64)
    colors = np.array([rgba for _, rgba in usable], dtype=np.float64)

    ax = math.cos(spec.angle_radians) * width
    ay = math.sin(spec.angle_radians) * height
    length_sq = ax * ax + ay * ay
    if length_sq == 0:
        return Image.new("RGBA", (width, height), tuple(int(c) for c in colors[-1]))

    # Sample at pixel centers
    yy, xx = np.mgrid[0:height, 0:width].astype(np.float64)
    t = ((xx + 0.5) * ax + (yy + 0.5) * ay) / length_sq
    t = np.clip(t, 0.0, 1.0)

    out = np.empty((height, width, 4), dtype=np.uint8)
    for channel in range(4):
        values = np.interp(t, offsets, colors[:, channel])
        out[..., channel] = np.clip(np.rint(values), 0, 255).astype(np.uint8)
    return Image.fromarray(out, "RGBA")


def render_background(color: Optional[str], width: int, height: int) -> Image.Image:
    """Fill a ``width x height`` RGBA canvas with a tier color or gradient.

    Absent or unreadable colors give a transparent canvas.
    """
    if color is None:
        return Image.new("RGBA", (width, height), TRANSPARENT)

    if isinstance(color, str) and color.strip().startswith(GRADIENT_PREFIX):
        spec = parse_linear_gradient(color)
        if spec is None:
            logger.warning(f"Unreadable gradient {color!r}, using transparent background")
            return Image.new("RGBA", (width, height), TRANSPARENT)
        return render_gradient(spec, width, height)

    rgba = parse_color(color) if isinstance(color, str) else None
    if rgba is None:
        logger.warning(f"Unreadable background color {color!r}, using transparent background")
        rgba = TRANSPARENT
    return Image.new("RGBA", (width, height), rgba)
