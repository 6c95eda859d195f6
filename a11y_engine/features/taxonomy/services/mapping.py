import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from a11y_engine.platform.config import settings

logger = logging.getLogger(__name__)

RGAA_IN_LABEL = re.compile(r"rgaa[_\s-]*(\d+)[._-](\d+)", re.IGNORECASE)


def letters_only(label: Optional[str]) -> str:
    """Lower-case a label and keep letters only ("Missing alt #12" -> "missingalt")."""
    if not label:
        return ""
    return "".join(ch for ch in str(label).lower() if ch.isalpha())


class ErrorTypeMapping:
    """
    Static error-type -> primary criterion table.

    Keys are compared after ``letters_only`` normalization; keys starting with
    an underscore are comments and skipped.
    """

    def __init__(self, mappings: Dict[str, str]):
        self._mappings = {
            letters_only(key): str(value)
            for key, value in mappings.items()
            if not key.startswith("_")
        }

    @classmethod
    def from_file(cls, path: str) -> "ErrorTypeMapping":
        file_path = Path(path)
        if not file_path.is_file():
            logger.error(f"Error-type mapping file not found: {path}")
            return cls({})

        with file_path.open(encoding="utf-8") as fh:
            data = json.load(fh)

        if not isinstance(data.get("mappings"), dict):
            logger.error(f"Invalid error-type mapping file format: {path}")
            return cls({})

        mapping = cls(data["mappings"])
        logger.debug(f"Loaded {len(mapping)} error-type mappings from {path}")
        return mapping

    def __len__(self) -> int:
        return len(self._mappings)

    def lookup(self, *labels: Optional[str]) -> Optional[str]:
        """
        First mapped criterion among the given labels.

        Each label is tried as a whole, then by its last ":"-separated part so
        "Axe-core: image-alt" resolves like "image-alt". Falls back to an
        explicit "rgaa-1-1" / "RGAA 1.1" reference inside the label.
        """
        for label in labels:
            if not label:
                continue
            for candidate in (label, str(label).rsplit(":", 1)[-1]):
                criterion = self._mappings.get(letters_only(candidate))
                if criterion:
                    return criterion

        for label in labels:
            if not label:
                continue
            match = RGAA_IN_LABEL.search(str(label))
            if match:
                return f"{match.group(1)}.{match.group(2)}"
        return None


@lru_cache(maxsize=1)
def get_error_mapping() -> ErrorTypeMapping:
    return ErrorTypeMapping.from_file(settings.ERROR_MAPPING_PATH)
