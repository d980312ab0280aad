"""Kayak price extractor.

Kayak marca los precios con clases tipo "price"/"Price", así que primero
se leen esos elementos y recién después el texto completo de la página.
"""

from fareradar.extractors.base import BaseExtractor


class KayakExtractor(BaseExtractor):
    """Extractor for Kayak search pages."""

    consent_labels = ("Accept all", "Reject all", "Aceptar todo")
    price_selectors = (
        '[class*="price"]',
        '[class*="Price"]',
        '[class*="cost"]',
        '[class*="amount"]',
        "[data-code]",
    )

    @property
    def platform(self) -> str:
        return "kayak"
