"""
Local content heuristic for listings.

Scores title, description and image count into per-field traffic lights and a
numeric score in [0, 1]. Pure and deterministic: the moderation gateway uses it
directly when no external service is configured, and as the fallback when the
external service fails.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Literal

TrafficLight = Literal["GREEN", "ORANGE", "RED"]
TRAFFIC_LIGHTS: tuple[str, ...] = ("GREEN", "ORANGE", "RED")

MODE_LOCAL = "local_heuristic"
MODE_EXTERNAL = "external"
MODE_FALLBACK = "fallback_after_error"

TITLE_MIN_GREEN = 8
TITLE_MAX_GREEN = 120
TITLE_MIN_ORANGE = 4
DESCRIPTION_MIN_GREEN = 40
DESCRIPTION_MIN_ORANGE = 15
IMAGES_MIN_GREEN = 2

# description quality is the strongest spam signal, image count is a binary gate
WEIGHT_TITLE_OK, WEIGHT_TITLE_WEAK = 0.35, 0.15
WEIGHT_DESCRIPTION_OK, WEIGHT_DESCRIPTION_WEAK = 0.45, 0.15
WEIGHT_IMAGES_OK, WEIGHT_IMAGES_WEAK = 0.20, 0.0


@dataclass(frozen=True)
class ModerationResult:
    title_status: TrafficLight
    description_status: TrafficLight
    images_status: TrafficLight
    score: float
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def mode(self) -> str | None:
        return self.details.get("mode")

    def with_details(self, details: dict[str, Any]) -> "ModerationResult":
        return replace(self, details=details)


def clamp01(n: float) -> float:
    return max(0.0, min(1.0, n))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _count_images(image_urls: Any) -> int:
    if image_urls is None or isinstance(image_urls, (str, bytes, dict)):
        return 0
    if not isinstance(image_urls, Iterable):
        return 0
    return sum(1 for u in image_urls if isinstance(u, str) and u.strip())


def evaluate(title: Any, description: Any, image_urls: Any) -> ModerationResult:
    t = _as_text(title).strip()
    d = _as_text(description).strip()
    n_images = _count_images(image_urls)

    title_ok = TITLE_MIN_GREEN <= len(t) <= TITLE_MAX_GREEN
    description_ok = len(d) >= DESCRIPTION_MIN_GREEN
    has_images = n_images >= IMAGES_MIN_GREEN

    title_status: TrafficLight = "GREEN" if title_ok else "ORANGE" if len(t) >= TITLE_MIN_ORANGE else "RED"
    description_status: TrafficLight = (
        "GREEN" if description_ok else "ORANGE" if len(d) >= DESCRIPTION_MIN_ORANGE else "RED"
    )
    images_status: TrafficLight = "GREEN" if has_images else "ORANGE" if n_images == 1 else "RED"

    raw = (
        (WEIGHT_TITLE_OK if title_ok else WEIGHT_TITLE_WEAK)
        + (WEIGHT_DESCRIPTION_OK if description_ok else WEIGHT_DESCRIPTION_WEAK)
        + (WEIGHT_IMAGES_OK if has_images else WEIGHT_IMAGES_WEAK)
    )

    return ModerationResult(
        title_status=title_status,
        description_status=description_status,
        images_status=images_status,
        score=clamp01(round(raw, 4)),
        details={"mode": MODE_LOCAL},
    )
