"""Price text parsing.

Las páginas de las plataformas no tienen un esquema estable: el precio se
recupera de texto libre. Este módulo encuentra el candidato ("€45", "45,50 €")
y lo convierte a centavos, descartando valores fuera de un rango razonable.
"""

import logging
import math
import re

logger = logging.getLogger(__name__)

# Rango plausible de una tarifa, en unidades mayores (euros, dólares...)
MIN_PRICE = 10
MAX_PRICE = 2000

# Símbolo y después número ("€45", "$ 120.00") o al revés ("45,50 €")
CURRENCY_AMOUNT_PATTERN = re.compile(
    r"[€$£]\s*\d{1,4}(?:[.,]\d{2})?(?!\d)"
    r"|(?<![\d.,])\d{1,4}(?:[.,]\d{2})?\s*[€$£]"
)

NUMBER_PATTERN = re.compile(r"\d{1,4}(?:[.,]\d{2})?")

SYMBOL_TO_CURRENCY: dict[str, str] = {"€": "EUR", "$": "USD", "£": "GBP"}


def parse_price(text: str | None) -> int | None:
    """Parse a candidate price string into minor currency units.

    Toma el primer número del texto, normaliza la coma decimal y valida que
    esté entre MIN_PRICE y MAX_PRICE. Nunca lanza excepción: si no sirve,
    devuelve None.

    Ejemplos:
        "€45" → 4500
        "45,50 €" → 4550
        "€5" → None (muy barato, probablemente no es un precio)
        "€3000" → None
    """
    if not text:
        return None

    match = NUMBER_PATTERN.search(str(text))
    if not match:
        logger.debug("Sin número en el candidato: %r", text)
        return None

    try:
        value = float(match.group(0).replace(",", "."))
    except ValueError:
        return None

    if not math.isfinite(value):
        return None

    if value < MIN_PRICE or value > MAX_PRICE:
        logger.info("Precio sospechoso descartado: %r → %.2f", text, value)
        return None

    return int(round(value * 100))


def find_price_candidate(text: str | None) -> str | None:
    """Return the first currency-amount substring in ``text``, or None.

    No busca el mínimo: es una lectura "best effort" del primer precio visible.
    """
    if not text:
        return None
    match = CURRENCY_AMOUNT_PATTERN.search(text)
    return match.group(0).strip() if match else None


def detect_currency(candidate: str | None, default: str = "EUR") -> str:
    """Detect the currency from the symbol in the candidate string."""
    if candidate:
        for symbol, currency in SYMBOL_TO_CURRENCY.items():
            if symbol in candidate:
                return currency
    return default
