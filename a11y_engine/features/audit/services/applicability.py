import logging
import re
from typing import List, Tuple

from a11y_engine.features.audit.schemas.scan import FeatureSignals

logger = logging.getLogger(__name__)


def _numbered(topic: int, first: int, last: int) -> List[str]:
    return [f"{topic}.{n}" for n in range(first, last + 1)]


# (features that must be absent, features that must be present, criteria made N/A)
APPLICABILITY_RULES: List[Tuple[Tuple[str, ...], Tuple[str, ...], List[str]]] = [
    # 1.1 to 1.3 stay: they also check that no image goes untreated.
    (("has_images", "has_svg"), (), _numbered(1, 6, 9)),
    (("has_iframes",), (), ["2.1", "2.2"]),
    (("has_videos", "has_audio"), (), _numbered(4, 1, 9) + _numbered(4, 11, 22)),
    (("has_audio",), ("has_videos",), ["4.19"]),
    (("has_videos",), ("has_audio",), ["4.20"]),
    (("has_tables",), (), _numbered(5, 1, 8)),
    (("has_forms",), (), _numbered(11, 1, 13)),
    (("has_animations", "has_autoplay"), (), ["13.8"]),
    (("has_autoplay_audio",), (), ["4.10"]),
    (("has_time_limit",), (), ["13.1"]),
    (("has_new_window_links",), (), ["13.2"]),
]

MARKUP_PATTERNS = {
    "has_images": [re.compile(r"<img\s", re.IGNORECASE)],
    "has_svg": [re.compile(r"<svg\s", re.IGNORECASE)],
    "has_videos": [re.compile(r"<video\s", re.IGNORECASE)],
    "has_audio": [re.compile(r"<audio\s", re.IGNORECASE)],
    "has_tables": [re.compile(r"<table\s", re.IGNORECASE)],
    "has_forms": [re.compile(r"<form\s", re.IGNORECASE), re.compile(r"<input\s", re.IGNORECASE)],
    "has_iframes": [re.compile(r"<iframe\s", re.IGNORECASE)],
    "has_autoplay": [re.compile(r"autoplay", re.IGNORECASE)],
    "has_autoplay_audio": [re.compile(r"<audio[^>]*autoplay", re.IGNORECASE)],
    "has_animations": [re.compile(r"\.gif", re.IGNORECASE), re.compile(r"animation|transition", re.IGNORECASE)],
    "has_time_limit": [re.compile(r"<meta[^>]*http-equiv=[\"']refresh", re.IGNORECASE)],
    "has_new_window_links": [re.compile(r"target=[\"']_blank", re.IGNORECASE)],
}


def _criterion_sort_key(number: str):
    return tuple(int(part) for part in number.split("."))


class ApplicabilityDetector:
    """
    Decides which criteria are structurally not applicable to a page.

    A criterion is only ever reported when every feature it presupposes is
    absent, so turning a feature on can only shrink the result.
    """

    @staticmethod
    def detect_not_applicable(signals: FeatureSignals) -> List[str]:
        not_applicable = set()
        for absent, present, criteria in APPLICABILITY_RULES:
            if any(getattr(signals, feature) for feature in absent):
                continue
            if not all(getattr(signals, feature) for feature in present):
                continue
            not_applicable.update(criteria)

        result = sorted(not_applicable, key=_criterion_sort_key)
        logger.info(f"Detected {len(result)} not-applicable criteria")
        logger.debug(f"Not-applicable criteria: {result} for signals {signals.model_dump()}")
        return result

    @staticmethod
    def analyze_markup(html: str) -> FeatureSignals:
        """Cheap structural scan of page markup. Not a parser; tags in comments count too."""
        html = html or ""
        found = {
            feature: any(pattern.search(html) for pattern in patterns)
            for feature, patterns in MARKUP_PATTERNS.items()
        }
        return FeatureSignals(**found)
