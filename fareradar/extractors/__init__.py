"""Booking-site price extractors."""

from fareradar.extractors.base import BaseExtractor, PriceSource
from fareradar.extractors.google_flights import GoogleFlightsExtractor
from fareradar.extractors.kayak import KayakExtractor
from fareradar.extractors.skyscanner import SkyscannerExtractor
from fareradar.models import AppSettings

EXTRACTORS: dict[str, type[BaseExtractor]] = {
    "google": GoogleFlightsExtractor,
    "skyscanner": SkyscannerExtractor,
    "kayak": KayakExtractor,
}


def build_extractors(settings: AppSettings) -> list[PriceSource]:
    """Instantiate the configured platforms, in declared order."""
    return [EXTRACTORS[name](settings) for name in settings.platforms]


__all__ = [
    "BaseExtractor",
    "PriceSource",
    "GoogleFlightsExtractor",
    "SkyscannerExtractor",
    "KayakExtractor",
    "EXTRACTORS",
    "build_extractors",
]
