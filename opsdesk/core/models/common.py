from __future__ import annotations

import logging
import math
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from opsdesk.core.errors import ApiError

log = logging.getLogger(__name__)


class Record(BaseModel):
    """Enregistrement renvoyé par l'API (id serveur, dates ISO en chaîne)."""

    model_config = ConfigDict(extra="ignore")  # tolère les colonnes jointes côté serveur

    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Clés "total*" renvoyées selon la ressource (totalInvoices, totalEstimates, ...)
_TOTAL_KEYS = (
    "total", "totalItems", "totalInvoices", "totalEstimates", "totalCustomers",
    "totalMaterials", "totalServices", "totalRfis", "totalRFIs", "totalUsers",
    "totalProjects", "totalSchedules",
)


def total_pages_for(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, math.ceil(max(0, int(total)) / page_size))


class Pagination(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    current_page: int = Field(default=1, alias="currentPage")
    total_pages: int = Field(default=1, alias="totalPages")
    total: Optional[int] = None
    has_next_page: Optional[bool] = Field(default=None, alias="hasNextPage")
    has_prev_page: Optional[bool] = Field(default=None, alias="hasPrevPage")

    @model_validator(mode="before")
    @classmethod
    def _pick_total(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        d = dict(data)
        if d.get("total") is None:
            for k in _TOTAL_KEYS:
                if d.get(k) is not None:
                    d["total"] = d[k]
                    break
        return d

    @model_validator(mode="after")
    def _bounds(self) -> "Pagination":
        self.total_pages = max(1, int(self.total_pages or 1))
        self.current_page = min(max(1, int(self.current_page or 1)), self.total_pages)
        if self.has_next_page is None:
            self.has_next_page = self.current_page < self.total_pages
        if self.has_prev_page is None:
            self.has_prev_page = self.current_page > 1
        return self

    @classmethod
    def single(cls, total: int = 0) -> "Pagination":
        return cls(current_page=1, total_pages=1, total=total)


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    records: List[T] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    def __len__(self) -> int:
        return len(self.records)


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Retire les clés None (équivalent des champs `undefined` omis du JSON)."""
    return {k: v for k, v in payload.items() if v is not None}


M = TypeVar("M", bound=BaseModel)


def parse_records(model: Type[M], rows: Iterable[Dict[str, Any]]) -> List[M]:
    """Hydrate les lignes JSON ; les entrées invalides sont ignorées (sans casser l'écran)."""
    out: List[M] = []
    for d in rows:
        try:
            out.append(model.model_validate(d))
        except ValidationError as e:
            log.warning("%s ignoré (id=%s): %s", model.__name__, d.get("id"), e.error_count())
            continue
    return out


def parse_record(model: Type[M], data: Any, fallback: str) -> M:
    """Un seul enregistrement attendu : s'il est illisible, c'est l'appel qui échoue."""
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        log.warning("%s illisible: %s erreur(s)", model.__name__, e.error_count())
        raise ApiError(fallback) from e


def to_page(model: Type[M], rows: Iterable[Dict[str, Any]], pagination: Optional[Dict[str, Any]] = None) -> "Page[M]":
    records = parse_records(model, rows)
    if pagination:
        pag = Pagination.model_validate(pagination)
    else:
        pag = Pagination.single(total=len(records))
    return Page[model](records=records, pagination=pag)  # type: ignore[valid-type]
