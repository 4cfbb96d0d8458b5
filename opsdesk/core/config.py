from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

log = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT_DIR / "data"


class Settings(BaseSettings):
    """
    Réglages du client. Ordre de priorité :
    variables OPSDESK_* > data/settings.json > valeurs par défaut.
    """

    api_url: str = "http://localhost:3001/api"
    timeout: float = 15.0
    page_size: int = Field(default=10, ge=1)
    catalog_page_size: int = Field(default=20, ge=1)
    currency: str = "USD"
    # pages de retour du paiement en ligne
    web_url: str = "http://localhost:3000"
    data_dir: Path = DATA_DIR

    model_config = SettingsConfigDict(env_prefix="OPSDESK_", case_sensitive=False, extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # le contenu de settings.json arrive par init_settings
        return env_settings, init_settings

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def session_path(self) -> Path:
        return self.data_dir / "session.json"


def _load_json(path: os.PathLike | str) -> Optional[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning("settings illisibles (%s): %s", p, e)
        return None
    return data if isinstance(data, dict) else None


def load_settings(data_dir: os.PathLike | str | None = None) -> Settings:
    """
    Charge data/settings.json sous l'environnement.
    Fichier absent ou corrompu -> valeurs par défaut (l'environnement s'applique toujours).
    """
    base = Path(data_dir) if data_dir else Settings().data_dir

    raw: Dict[str, Any] = dict(_load_json(base / "settings.json") or {})
    raw["data_dir"] = base
    try:
        settings = Settings(**raw)
    except ValidationError as e:
        log.warning("settings invalides, valeurs par défaut utilisées: %s", e)
        settings = Settings(data_dir=base)
    # le dossier choisi par l'appelant reste celui des fichiers lus
    return settings.model_copy(update={"data_dir": base})


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "load_settings", "get_settings"]
