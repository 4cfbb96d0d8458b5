from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from opsdesk.core.errors import ApiError
from opsdesk.core.models.common import Page, Pagination, total_pages_for
from opsdesk.core.services.totals import to_number


T = TypeVar("T")
Predicate = Callable[[Any], bool]


# ---------- Helpers ---------- #

def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def replace_by_id(records: Sequence[T], updated: T, key: str = "id") -> List[T]:
    """Nouvelle liste où l'entrée de même id est remplacée ; id inconnu -> copie inchangée."""
    target = _get(updated, key)
    return [updated if _get(r, key) == target else r for r in records]


def remove_by_id(records: Sequence[T], record_id: Any, key: str = "id") -> List[T]:
    return [r for r in records if _get(r, key) != record_id]


def paginate_locally(records: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Découpe en mémoire (vue "toutes les tâches")."""
    pages = total_pages_for(len(records), page_size)
    page = min(max(1, page), pages)
    start = (page - 1) * page_size
    return Page(
        records=list(records[start:start + page_size]),
        pagination=Pagination(current_page=page, total_pages=pages, total=len(records)),
    )


# ---------- Filtres client (page courante uniquement) ---------- #

def cost_range(field: str, min_value: Any = None, max_value: Any = None) -> Predicate:
    lo = None if min_value in (None, "") else to_number(min_value)
    hi = None if max_value in (None, "") else to_number(max_value)

    def _match(record: Any) -> bool:
        v = to_number(_get(record, field))
        if lo is not None and v < lo:
            return False
        if hi is not None and v > hi:
            return False
        return True

    return _match


def field_equals(field: str, value: Any) -> Predicate:
    if value in (None, ""):
        return lambda record: True
    return lambda record: _get(record, field) == value


def substring(field: str, term: Optional[str]) -> Predicate:
    needle = (term or "").strip().lower()
    if not needle:
        return lambda record: True
    return lambda record: needle in str(_get(record, field) or "").lower()


# ---------- Vue liste ---------- #

@dataclass
class ListQuery:
    page: int = 1
    page_size: int = 10
    search: str = ""
    status: str = ""


class ListView(Generic[T]):
    """
    Page serveur + filtres client.
    - changer la recherche ou le statut repart de la page 1
    - en cas d'échec, les enregistrements précédents restent affichés avec `error`
    """

    def __init__(self, fetch: Callable[[ListQuery], Page[T]], page_size: int = 10,
                 client_filters: Optional[Dict[str, Predicate]] = None) -> None:
        self.fetch = fetch
        self.query = ListQuery(page_size=page_size)
        self.client_filters: Dict[str, Predicate] = dict(client_filters or {})
        self.records: List[T] = []
        self.pagination = Pagination()
        self.loading = False
        self.error: Optional[str] = None

    # ---------------- Chargement ---------------- #

    def load(self) -> bool:
        self.loading = True
        try:
            page = self.fetch(self.query)
        except ApiError as e:
            self.error = e.message
            return False
        finally:
            self.loading = False
        self.records = list(page.records)
        self.pagination = self._bounded(page.pagination)
        self.query.page = self.pagination.current_page
        self.error = None
        return True

    def _bounded(self, pag: Pagination) -> Pagination:
        pages = pag.total_pages
        if pag.total is not None:
            pages = max(pages, total_pages_for(pag.total, self.query.page_size))
        return Pagination(current_page=min(self.query.page, pages), total_pages=pages, total=pag.total)

    # ---------------- Filtres serveur ---------------- #

    def set_search(self, term: str) -> bool:
        self.query.search = term or ""
        self.query.page = 1
        return self.load()

    def set_status(self, status: str) -> bool:
        self.query.status = status or ""
        self.query.page = 1
        return self.load()

    # ---------------- Pagination ---------------- #

    @property
    def total_pages(self) -> int:
        return self.pagination.total_pages

    def can_next(self) -> bool:
        return self.query.page < self.total_pages

    def can_prev(self) -> bool:
        return self.query.page > 1

    def go_to_page(self, page: int) -> bool:
        if not 1 <= page <= self.total_pages:
            return False
        previous, self.query.page = self.query.page, page
        if not self.load():
            self.query.page = previous
            return False
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.query.page + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.query.page - 1)

    # ---------------- Filtres client ---------------- #

    def set_client_filter(self, name: str, predicate: Optional[Predicate]) -> None:
        if predicate is None:
            self.client_filters.pop(name, None)
        else:
            self.client_filters[name] = predicate

    @property
    def visible(self) -> List[T]:
        preds = list(self.client_filters.values())
        return [r for r in self.records if all(p(r) for p in preds)]

    @property
    def is_empty(self) -> bool:
        return not self.loading and not self.visible

    # ---------------- Mises à jour locales ---------------- #

    def replace(self, updated: T) -> None:
        self.records = replace_by_id(self.records, updated)

    def remove(self, record_id: Any) -> None:
        self.records = remove_by_id(self.records, record_id)
