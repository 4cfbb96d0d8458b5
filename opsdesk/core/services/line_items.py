from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Optional

from opsdesk.core.models.line_item import LineItem
from opsdesk.core.services.totals import Totals, compute_totals

EDITABLE_FIELDS = ("description", "quantity", "unit_price")


class LineItemCollection:
    """
    Lignes d'un devis/facture en cours d'édition.
    Toujours au moins une ligne ; les totaux sont recalculés à chaque lecture.
    """

    def __init__(self, items: Optional[Iterable[Any]] = None):
        self._items: List[LineItem] = [
            it.model_copy() if isinstance(it, LineItem) else LineItem.model_validate(it)
            for it in (items or [])
        ]
        if not self._items:
            self._items.append(LineItem())

    def add_item(self) -> LineItem:
        item = LineItem()
        self._items.append(item)
        return item

    def update_item(self, index: int, field: str, value: Any) -> LineItem:
        if field not in EDITABLE_FIELDS:
            raise KeyError(field)
        item = self._items[index]  # IndexError si l'index ne vient pas de la liste affichée
        setattr(item, field, value)
        return item

    def remove_item(self, index: int) -> bool:
        # la dernière ligne ne se supprime pas
        if len(self._items) <= 1:
            return False
        del self._items[index]
        return True

    def totals(self, tax_rate: Any = 0) -> Totals:
        return compute_totals(self._items, tax_rate)

    def non_blank(self) -> List[LineItem]:
        return [it for it in self._items if not it.is_blank()]

    def to_payload(self) -> List[dict]:
        return [it.to_payload() for it in self.non_blank()]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self._items)

    def __getitem__(self, index: int) -> LineItem:
        return self._items[index]
