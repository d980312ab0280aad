"""Skyscanner price extractor.

Skyscanner no tiene un contenedor de resultados estable: se acepta el popup
de cookies y se escanea el texto de toda la página.
"""

from fareradar.extractors.base import BaseExtractor


class SkyscannerExtractor(BaseExtractor):
    """Extractor for Skyscanner search pages."""

    consent_labels = ("Accept", "OK", "Aceptar", "Accepter", "Akzeptieren")

    @property
    def platform(self) -> str:
        return "skyscanner"
