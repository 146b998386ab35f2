"""
Quality vocabulary used for every ranking decision in the ingestion pipeline.

Provider quality labels are free-form ("FullHD", "4K HDR", "HDCAM", ...).
``normalize`` folds them into one of six ordered grades so that any two
sources can be compared. Unrecognised labels fall back to ``SD`` instead of
failing; two genuinely different low grades can therefore end up in the same
bucket.
"""

from enum import Enum
from typing import Iterable, Protocol, TypeVar


class Quality(str, Enum):
    """Canonical quality grades, declared worst to best."""

    CAM = "CAM"
    SD = "SD"
    HD = "720p"
    FULL_HD = "1080p"
    QHD = "1440p"
    UHD = "2160p"


QUALITY_ORDER: tuple[Quality, ...] = tuple(Quality)

_RANKS = {quality: index for index, quality in enumerate(QUALITY_ORDER)}

# Checked top to bottom, so the more specific tokens must come first
# ("FULLHD" and "UHD" both contain "HD").
# fmt: off
_QUALITY_TOKENS: tuple[tuple[Quality, tuple[str, ...]], ...] = (
    (Quality.CAM, ("CAMRIP", "CAM", "TELESYNC", "HDTS")),
    (Quality.UHD, ("2160", "4K", "UHD")),
    (Quality.QHD, ("1440", "2K", "QHD")),
    (Quality.FULL_HD, ("1080", "FULLHD", "FHD")),
    (Quality.HD, ("720", "HD")),
    (Quality.SD, ("SD", "480", "360")),
)
# fmt: on

_DISPLAY_NAMES = {
    Quality.CAM: "CAM",
    Quality.SD: "SD (480p)",
    Quality.HD: "HD (720p)",
    Quality.FULL_HD: "Full HD (1080p)",
    Quality.QHD: "2K (1440p)",
    Quality.UHD: "4K UHD (2160p)",
}


class SupportsQuality(Protocol):
    quality: str
    score: float | None


T = TypeVar("T", bound=SupportsQuality)


def normalize(raw: str | Quality | None) -> Quality:
    """Map a raw provider label to a canonical grade. Never raises."""
    if isinstance(raw, Quality):
        return raw
    if raw is None:
        return Quality.SD

    label = str(raw).strip().upper()
    if not label:
        return Quality.SD

    for quality, tokens in _QUALITY_TOKENS:
        if any(token in label for token in tokens):
            return quality
    return Quality.SD


def rank(quality: str | Quality | None) -> int:
    return _RANKS[normalize(quality)]


def compare(a: str | Quality, b: str | Quality) -> int:
    """Return -1, 0 or 1 as ``a`` is worse than, equal to or better than ``b``."""
    rank_a, rank_b = rank(a), rank(b)
    if rank_a < rank_b:
        return -1
    if rank_a > rank_b:
        return 1
    return 0


def is_better(a: str | Quality, b: str | Quality) -> bool:
    return compare(a, b) > 0


def meets_minimum(quality: str | Quality, minimum: str | Quality) -> bool:
    return compare(quality, minimum) >= 0


def qualities_below(target: str | Quality) -> list[Quality]:
    """All grades ranked strictly below ``target``."""
    return list(QUALITY_ORDER[: rank(target)])


def pick_best(candidates: Iterable[T]) -> T | None:
    """
    Pick the highest quality candidate, breaking ties on the higher score.

    Candidates that are equal on both keys keep their input order, so the
    first one wins.
    """
    ordered = sorted(
        candidates,
        key=lambda candidate: (rank(candidate.quality), candidate.score or 0),
        reverse=True,
    )
    return ordered[0] if ordered else None


def display_name(quality: str | Quality) -> str:
    return _DISPLAY_NAMES[normalize(quality)]


def available_qualities() -> list[Quality]:
    return list(QUALITY_ORDER)
