"""Local-directory blob store for resource photos."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

EXTERNAL_PREFIXES = ("http://", "https://")


def is_external(reference: Optional[str]) -> bool:
    return bool(reference) and reference.lower().startswith(EXTERNAL_PREFIXES)


class PhotoStore:
    """Stores uploaded photos under ``root`` and hands back their file names.

    A photo reference is either such a file name or an external URL; only
    the former is ever written or deleted here.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def save(self, stream: BinaryIO, original_name: Optional[str] = None) -> str:
        suffix = Path(original_name or "").suffix.lower()
        reference = f"{uuid4().hex}{suffix}"
        with (self.ensure_root() / reference).open("wb") as target:
            shutil.copyfileobj(stream, target)
        logger.info("Stored photo %s", reference)
        return reference

    def path_for(self, reference: str) -> Path:
        # Only the final component is honoured so references cannot escape root.
        return self.root / Path(reference).name

    def delete(self, reference: Optional[str]) -> bool:
        """Remove a locally stored photo.

        External URLs and empty references are left alone. Failures are
        logged and reported as False, never raised.
        """

        if not reference or is_external(reference):
            return False
        try:
            self.path_for(reference).unlink()
        except OSError as exc:
            logger.warning("Could not delete photo %s: %s", reference, exc)
            return False
        logger.info("Deleted photo %s", reference)
        return True

    @staticmethod
    def public_url(reference: Optional[str], base_url: str) -> Optional[str]:
        if not reference:
            return None
        if is_external(reference):
            return reference
        return f"{base_url.rstrip('/')}/uploads/{reference}"
