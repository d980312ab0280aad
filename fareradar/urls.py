"""Search URL builders for each booking platform.

Cada plataforma tiene su propia estructura de URL. Estas funciones arman
el deep-link de búsqueda con origen, destino y fechas ya cargados.
"""

import re
from datetime import date
from urllib.parse import quote

IATA_PATTERN = re.compile(r"^[A-Z]{3}$")

GOOGLE_FLIGHTS_URL = "https://www.google.com/travel/flights"
SKYSCANNER_URL = "https://www.skyscanner.net/transport/flights"
KAYAK_URL = "https://www.kayak.com/flights"


def is_valid_iata_code(code: str) -> bool:
    """Basic IATA check: three uppercase letters."""
    return bool(IATA_PATTERN.match(code or ""))


def _check_codes(origin: str, destination: str) -> None:
    for code in (origin, destination):
        if not is_valid_iata_code(code):
            raise ValueError(f"Invalid IATA code: {code!r}")


def build_google_flights_url(
    origin: str, destination: str, outbound: date, return_date: date | None = None,
) -> str:
    """Google Flights usa una búsqueda en lenguaje natural en el parámetro q."""
    _check_codes(origin, destination)
    query = f"flights from {origin} to {destination} on {outbound.isoformat()}"
    if return_date:
        query += f" returning {return_date.isoformat()}"
    return f"{GOOGLE_FLIGHTS_URL}?q={quote(query)}"


def build_skyscanner_url(
    origin: str, destination: str, outbound: date, return_date: date | None = None,
) -> str:
    """Skyscanner: /{origen}/{destino}/{yyMMdd}/{yyMMdd}/ con códigos en minúscula."""
    _check_codes(origin, destination)
    base = f"{SKYSCANNER_URL}/{origin.lower()}/{destination.lower()}/{outbound:%y%m%d}"

    if return_date:
        return (
            f"{base}/{return_date:%y%m%d}/?adultsv2=1&cabinclass=economy&childrenv2="
            "&ref=home&rtn=1&preferdirects=false"
            "&outboundaltsenabled=false&inboundaltsenabled=false"
        )
    return f"{base}/?adultsv2=1&cabinclass=economy&childrenv2=&ref=home&rtn=0"


def build_kayak_url(
    origin: str, destination: str, outbound: date, return_date: date | None = None,
) -> str:
    _check_codes(origin, destination)
    base = f"{KAYAK_URL}/{origin}-{destination}/{outbound.isoformat()}"

    if return_date:
        return f"{base}/{return_date.isoformat()}?sort=bestflight_a&fs=stops=0"
    return f"{base}?sort=bestflight_a"


# Orden declarado de las plataformas
URL_BUILDERS = {
    "google": build_google_flights_url,
    "skyscanner": build_skyscanner_url,
    "kayak": build_kayak_url,
}


def search_urls(
    origin: str, destination: str, outbound: date, return_date: date | None = None,
) -> dict[str, str]:
    """All platform URLs for one search, keyed by platform name."""
    return {
        platform: builder(origin, destination, outbound, return_date)
        for platform, builder in URL_BUILDERS.items()
    }
