# smartwings/catalog.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .data import ACTIVE_DATASET
from .models import FlightOffer, SearchParams
from .utils import normalize

logger = logging.getLogger("SmartWings-Catalog")


def load_offers(raw: Iterable[dict]) -> List[FlightOffer]:
    return [FlightOffer(**row) for row in raw]


class CatalogProvider(ABC):
    """Source of bookable offers for a search. Empty list means no results."""

    @abstractmethod
    def search(self, params: SearchParams) -> List[FlightOffer]:
        ...


class StaticCatalogProvider(CatalogProvider):
    """
    Fixed offer list for dev/testing.
    Ignores route and date: every search returns the whole list.
    """

    def __init__(self, raw_offers: Optional[Iterable[dict]] = None):
        rows = ACTIVE_DATASET["flights"] if raw_offers is None else raw_offers
        self._offers = load_offers(rows)

    def search(self, params: SearchParams) -> List[FlightOffer]:
        logger.info(f"Static catalog returning {len(self._offers)} offer(s) for {params.origin} → {params.destination}")
        return list(self._offers)


class RouteFilteringCatalogProvider(StaticCatalogProvider):
    """Same inventory, filtered by airport pair and seats left in the requested class."""

    def search(self, params: SearchParams) -> List[FlightOffer]:
        wanted = params.passenger_count
        results = [
            o for o in self._offers
            if normalize(o.departure.airport) == normalize(params.origin)
            and normalize(o.arrival.airport) == normalize(params.destination)
            and o.seats.get(params.travel_class, 0) >= wanted
        ]
        logger.info(f"Route catalog matched {len(results)} offer(s) for {params.origin} → {params.destination}")
        return sorted(results, key=lambda o: (o.price[params.travel_class], o.departure.time))
