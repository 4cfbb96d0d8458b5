from __future__ import annotations

import json
import logging
import shutil
import threading
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from opsdesk.core.models.user import Session

log = logging.getLogger(__name__)


class SessionStore:
    """
    Session persistée (token + user) dans data/session.json.
    - fichier corrompu -> copie .corrupt.json et pas de session
    - écriture via fichier temporaire puis remplacement
    """

    def __init__(self, filepath: Union[str, Path]) -> None:
        self.filepath = Path(filepath)
        self._lock = threading.Lock()

    # ---------------- I/O bas niveau ---------------- #

    def _read_raw(self) -> Optional[dict]:
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError):
            log.warning("session corrompue: %s", self.filepath)
            try:
                shutil.copy2(self.filepath, self.filepath.with_suffix(".corrupt.json"))
            except OSError:
                log.warning("copie de sauvegarde impossible: %s", self.filepath)
            return None
        return data if isinstance(data, dict) else None

    def _write_raw(self, data: dict) -> None:
        with self._lock:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.filepath.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.filepath)

    # ---------------- API ---------------- #

    def load(self) -> Optional[Session]:
        raw = self._read_raw()
        if not raw:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError:
            log.warning("session invalide ignorée: %s", self.filepath)
            return None

    def save(self, session: Session) -> None:
        self._write_raw(session.model_dump(mode="json"))

    def clear(self) -> None:
        with self._lock:
            self.filepath.unlink(missing_ok=True)
