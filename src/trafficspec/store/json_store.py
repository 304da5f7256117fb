from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, TypeVar

from pydantic import ValidationError

from trafficspec.domain.models import SpecDocument
from trafficspec.errors import SpecStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SpecStore:
    """File-backed spec document.

    The in-memory document is the single source of truth. `update()` runs a
    mutation on a copy under a lock, writes the copy to disk and only then
    swaps it in, so overlapping exchanges never lose each other's updates and
    a failed merge or write leaves both memory and disk as they were.
    """

    INDENT = 4

    def __init__(self, path: Path, resume: bool = False):
        self.path = Path(path)
        self._lock = threading.Lock()
        if resume and self.path.exists():
            self._doc = self.read()
        else:
            self._doc = SpecDocument()
            self.write(self._doc)

    # ----------------------------
    # Disk I/O
    # ----------------------------

    def read(self) -> SpecDocument:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SpecStoreError(f"Cannot read spec document {self.path}: {e}", path=str(self.path)) from e
        try:
            return SpecDocument.model_validate_json(text)
        except ValidationError as e:
            raise SpecStoreError(f"Invalid spec document {self.path}: {e}", path=str(self.path)) from e

    def write(self, doc: SpecDocument) -> None:
        text = json.dumps(doc.to_json_dict(), indent=self.INDENT, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # temp file in the same dir so os.replace stays on one filesystem
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise SpecStoreError(f"Cannot write spec document {self.path}: {e}", path=str(self.path)) from e

    # ----------------------------
    # Canonical document
    # ----------------------------

    @property
    def document(self) -> SpecDocument:
        """Deep copy of the current document."""
        with self._lock:
            return self._doc.model_copy(deep=True)

    def update(self, handler: Callable[[SpecDocument], T]) -> T:
        """Run `handler` on a working copy; commit and persist unless it returns False or raises."""
        with self._lock:
            working = self._doc.model_copy(deep=True)
            result = handler(working)
            if result is False:
                return result
            self.write(working)
            self._doc = working
            logger.debug("Wrote %d paths to %s", len(working.paths), self.path)
            return result
