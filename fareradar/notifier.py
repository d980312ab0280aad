"""Deal alert senders and dispatcher.

Manda los avisos de ofertas por email usando la API HTTP de Resend
directamente (sin SDK) con httpx. En modo dry-run imprime en consola.
El dispatcher garantiza UN aviso por usuario por corrida.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from fareradar.aggregator import DealBatch, UserDeals
from fareradar.dates import format_date_range
from fareradar.models import CURRENCY_SYMBOLS, DealSummary, format_price

logger = logging.getLogger(__name__)

# Endpoint de envío de Resend
RESEND_API_URL = "https://api.resend.com/emails"

DEFAULT_FROM_EMAIL = "alerts@flightfinder.com"

PLATFORM_NAMES: dict[str, str] = {
    "google": "Google Flights",
    "skyscanner": "Skyscanner",
    "kayak": "Kayak",
}


class NotificationSender(ABC):
    """Delivery collaborator: ``send(address, subject, deals) -> ok``."""

    @abstractmethod
    async def send(self, address: str, subject: str, deals: list[DealSummary]) -> bool:
        """Deliver one message. Devuelve False si falló (no lanza)."""
        ...


class EmailSender(NotificationSender):
    """Sends alert emails through the Resend HTTP API."""

    def __init__(self, api_key: str, from_email: str = DEFAULT_FROM_EMAIL) -> None:
        self.api_key = api_key
        self.from_email = from_email

    async def send(self, address: str, subject: str, deals: list[DealSummary]) -> bool:
        payload = {
            "from": self.from_email,
            "to": [address],
            "subject": subject,
            "html": _format_html(deals),
            "text": _format_text(deals),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(RESEND_API_URL, json=payload, headers=headers)
                response.raise_for_status()

            logger.info("📧 Email enviado a %s (%d ofertas)", address, len(deals))
            return True

        except httpx.HTTPStatusError as e:
            logger.error(
                "Error HTTP al enviar email a %s (%d): %s",
                address, e.response.status_code, e.response.text,
            )
            return False
        except Exception as e:
            logger.error("Error al enviar email a %s: %s", address, e)
            return False


class ConsoleSender(NotificationSender):
    """Prints alerts instead of sending them (dry-run mode)."""

    async def send(self, address: str, subject: str, deals: list[DealSummary]) -> bool:
        body = _format_text(deals)
        try:
            print(f"\n{'=' * 50}")
            print(f"[DRY RUN] Email que se enviaría a {address}:")
            print(subject)
            print(body)
            print(f"{'=' * 50}\n")
        except UnicodeEncodeError:
            # Consolas de Windows (cp1252) no soportan emojis
            print(f"[DRY RUN] {address}: {len(deals)} ofertas")
        return True


class AlertDispatcher:
    """Turns aggregated deals into exactly one message per user."""

    def __init__(self, sender: NotificationSender) -> None:
        self.sender = sender

    async def notify(self, user_deals: UserDeals) -> bool:
        """Send all of a user's deals in a single message."""
        if not user_deals.deals:
            logger.warning("Sin ofertas para %s, no se envía nada.", user_deals.user_id)
            return False

        subject = bulk_subject(user_deals.deals)
        logger.info(
            "📧 Enviando aviso a %s con %d ofertas", user_deals.email, len(user_deals.deals),
        )
        return await self.sender.send(user_deals.email, subject, user_deals.deals)

    async def notify_single(self, address: str, budget_cents: int, deal: DealSummary) -> bool:
        """Single-deal variant, used by on-demand checks."""
        logger.info(
            "📧 Enviando aviso a %s: %s a %s (presupuesto %.2f)",
            address, deal.destination_city, deal.display_price, budget_cents / 100,
        )
        return await self.sender.send(address, single_subject(deal), [deal])

    async def dispatch(self, batch: DealBatch, single_variant: bool = False) -> int:
        """Notify every user in ``batch`` once. Devuelve cuántos envíos salieron bien.

        Un error con un usuario no frena a los demás, y no se reintenta:
        la próxima corrida va a volver a encontrar la oferta si sigue vigente.
        """
        sent = 0
        for entry in batch.pending():
            # Se marca antes de enviar: nunca dos avisos al mismo usuario en la misma corrida
            batch.mark_dispatched(entry.user_id)
            try:
                if single_variant and len(entry.deals) == 1:
                    ok = await self.notify_single(entry.email, entry.budget_cents, entry.deals[0])
                else:
                    ok = await self.notify(entry)
            except Exception as e:
                logger.error("Error al notificar a %s: %s", entry.user_id, e)
                ok = False

            if ok:
                sent += 1
            else:
                logger.error("No se pudo notificar a %s (%s).", entry.user_id, entry.email)
        return sent


def bulk_subject(deals: list[DealSummary]) -> str:
    count = len(deals)
    return f"✈️ {count} cheap flight{'s' if count > 1 else ''} found!"


def single_subject(deal: DealSummary) -> str:
    symbol = CURRENCY_SYMBOLS.get(deal.currency, f"{deal.currency} ")
    return f"✈️ Cheap flight to {deal.destination_city} - {symbol}{deal.price_cents / 100:.0f}!"


def _format_text(deals: list[DealSummary]) -> str:
    """Plain-text body: una línea por oferta más sus links."""
    lines: list[str] = []
    for deal in deals:
        lines.append(
            f"🔥 {deal.origin} → {deal.destination_city} ({deal.destination}) | "
            f"{format_date_range(deal.outbound_date, deal.return_date)} | "
            f"{format_price(deal.price_cents, deal.currency)} "
            f"({PLATFORM_NAMES.get(deal.platform, deal.platform)})"
        )
        for platform, url in deal.booking_urls.items():
            lines.append(f"   {PLATFORM_NAMES.get(platform, platform)}: {url}")
    return "\n".join(lines)


def _format_html(deals: list[DealSummary]) -> str:
    rows = []
    for deal in deals:
        links = " | ".join(
            f'<a href="{_escape_html(url)}">{PLATFORM_NAMES.get(platform, platform)}</a>'
            for platform, url in deal.booking_urls.items()
        )
        rows.append(
            "<tr>"
            f"<td>{_escape_html(deal.origin)} → {_escape_html(deal.destination_city)}</td>"
            f"<td>{format_date_range(deal.outbound_date, deal.return_date)}</td>"
            f"<td><b>{_escape_html(deal.display_price)}</b></td>"
            f"<td>{links}</td>"
            "</tr>"
        )
    return (
        "<html><body><table>"
        "<thead><tr><th>Route</th><th>Dates</th><th>Price</th><th>Book</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></body></html>"
    )


def _escape_html(text: str) -> str:
    """Escape special HTML characters (<, >, &, comillas)."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
