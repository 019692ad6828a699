"""Response parsing stage for the conversation pipeline (Stage 04).

Turns generator text into typed structures. Every public function here is
total: whatever the generator produced (empty text, prose, broken JSON,
missing markers) the caller receives a structurally valid result.

* `parse_email` reads `SUBJECT:`/`BODY:` (or `ASUNTO:`/`CUERPO:`) sections.
* `parse_order` validates the JSON order contract and, when the generator
  ignored it, falls back to a deterministic keyword scan.
* `extract_delivery_date`, `extract_payment_terms` and
  `extract_business_entities` read commercial hints out of free text.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from vhouse_ai.services.response_contract import (
    OrderExtractionPayload,
    ResponseContractError,
)
from vhouse_ai.utils.text import normalize_text, truncate

from .types import ExtractedOrderItem, ExtractionMode, ParsedEmail, ParsedOrder, PaymentTerms

logger = logging.getLogger("vhouse_ai.pipeline")

DEFAULT_EMAIL_SUBJECT = "Comunicación VHouse - Distribución Vegana"
DEFAULT_EMAIL_BODY = (
    "Estimado cliente,\n\n"
    "Gracias por confiar en VHouse como su distribuidor de productos veganos.\n\n"
    "Atentamente,\nEquipo VHouse"
)

# Product-name fragments recognised when the generator ignores the JSON layout.
DEFAULT_PRODUCT_FRAGMENTS: tuple[str, ...] = (
    "carne vegana",
    "hamburguesa",
    "mantequilla",
    "leche",
    "queso",
    "yogurt",
    "helado",
    "crema",
    "tofu",
    "tempeh",
)

_MARKER_PREFIX = r"^\s*[*_#>\-\s]*"
_MARKER_SUFFIX = r"\s*[*_]*\s*:\s*[*_]*\s*(?P<rest>.*?)\s*[*_]*\s*$"
_SUBJECT_MARKER = re.compile(_MARKER_PREFIX + r"(?:subject|asunto)" + _MARKER_SUFFIX, re.IGNORECASE)
_BODY_MARKER = re.compile(_MARKER_PREFIX + r"(?:body|cuerpo)" + _MARKER_SUFFIX, re.IGNORECASE)

_UNITS = r"(?:cajas?|unidades|unidad|piezas?|kilos?|kg|litros?|paquetes?|botellas?|bolsas?)"
# "50 cajas de <producto>" or "50 <producto>"; a number followed by other words
# belongs to something else.
_QUANTITY_BEFORE = re.compile(rf"(\d{{1,6}})\s*(?:{_UNITS}\s+)?(?:de\s+)?$")
_QUANTITY_AFTER = re.compile(rf"^\s*(?:[:x-]\s*)?(\d{{1,6}})\s*{_UNITS}\b")
_PRICE_AFTER = re.compile(r"\$\s*(\d+(?:[.,]\d{1,2})?)")
_LOOKBEHIND_CHARS = 40
_LOOKAHEAD_CHARS = 60


# --- email mode -------------------------------------------------------------


def parse_email(content: str | None) -> ParsedEmail:
    """Split generated email text into subject and body."""

    raw = content or ""
    subject: Optional[str] = None
    body_lines: list[str] = []
    other_lines: list[str] = []
    in_body = False
    has_body_marker = False

    for line in raw.splitlines():
        if not in_body:
            subject_match = _SUBJECT_MARKER.match(line)
            if subject_match and subject is None:
                subject = subject_match.group("rest").strip()
                continue
            body_match = _BODY_MARKER.match(line)
            if body_match:
                in_body = True
                has_body_marker = True
                rest = body_match.group("rest").strip()
                if rest:
                    body_lines.append(rest)
                continue
            other_lines.append(line)
        else:
            body_lines.append(line)

    has_subject_marker = subject is not None
    if has_body_marker:
        body = "\n".join(body_lines).strip()
    elif has_subject_marker:
        body = "\n".join(other_lines).strip()
    else:
        body = raw

    if not body.strip():
        body = DEFAULT_EMAIL_BODY
    return ParsedEmail(
        subject=subject or DEFAULT_EMAIL_SUBJECT,
        body=body,
        has_subject_marker=has_subject_marker,
        has_body_marker=has_body_marker,
    )


# --- order mode -------------------------------------------------------------


def parse_order(
    content: str | None,
    vocabulary: Iterable[str] = DEFAULT_PRODUCT_FRAGMENTS,
    *,
    keyword_fallback: bool = True,
) -> ParsedOrder:
    """Extract order lines from generator output.

    The JSON contract is tried first. When it cannot be read the text is
    scanned for known product names; items found that way carry a
    placeholder quantity of 1 unless a number sits next to the name.
    """

    raw = content or ""
    try:
        payload = OrderExtractionPayload.from_json(raw)
    except ResponseContractError as exc:
        logger.info("Contrato JSON de pedido no cumplido: %s", truncate(str(exc), 200))
    else:
        accepted, rejected = payload.valid_items()
        items = tuple(
            ExtractedOrderItem(
                raw_product_name=entry.product,
                quantity=entry.quantity,
                notes=entry.notes,
                quoted_unit_price=entry.unit_price,
            )
            for entry in accepted
        )
        logger.info(
            "Pedido extraído por JSON partidas=%s rechazadas=%s", len(items), len(rejected)
        )
        return ParsedOrder(
            items=items,
            mode=ExtractionMode.JSON,
            delivery_date_text=payload.delivery_date,
            payment_terms_text=payload.payment_terms,
            special_requests=payload.special_requests,
            missing_information=tuple(payload.missing_info) + tuple(rejected),
        )

    if not keyword_fallback:
        return ParsedOrder()

    items = _scan_keywords(raw, vocabulary)
    if not items:
        logger.info("Sin partidas reconocibles en la respuesta del generador")
        return ParsedOrder()

    logger.warning(
        "Pedido extraído por palabras clave (baja confianza) partidas=%s", len(items)
    )
    return ParsedOrder(items=tuple(items), mode=ExtractionMode.KEYWORD_FALLBACK)


def _scan_keywords(content: str, vocabulary: Iterable[str]) -> list[ExtractedOrderItem]:
    normalized = normalize_text(content)
    if not normalized:
        return []

    terms: dict[str, str] = {}
    for term in vocabulary:
        key = normalize_text(term)
        if key and key not in terms:
            terms[key] = term.strip()

    taken: list[tuple[int, int]] = []
    found: list[tuple[int, ExtractedOrderItem]] = []
    # Longest names first so "leche de avena" wins over the bare "leche".
    for key in sorted(terms, key=len, reverse=True):
        pattern = re.compile(rf"(?<![a-z0-9]){re.escape(key)}(?:e?s)?(?![a-z0-9])")
        first: Optional[re.Match[str]] = None
        for match in pattern.finditer(normalized):
            if any(match.start() < end and start < match.end() for start, end in taken):
                continue
            taken.append(match.span())
            if first is None:
                first = match
        if first is None:
            continue

        quantity = _quantity_near(normalized, first.start(), first.end())
        found.append(
            (
                first.start(),
                ExtractedOrderItem(
                    raw_product_name=terms[key],
                    quantity=quantity or 1,
                    quoted_unit_price=_price_after(normalized, first.end()),
                    quantity_is_placeholder=quantity is None,
                ),
            )
        )

    found.sort(key=lambda pair: pair[0])
    return [item for _, item in found]


def _quantity_near(text: str, start: int, end: int) -> Optional[int]:
    before = _QUANTITY_BEFORE.search(text[max(0, start - _LOOKBEHIND_CHARS) : start])
    if before:
        value = int(before.group(1))
        if value > 0:
            return value
    after = _QUANTITY_AFTER.match(text[end : end + _LOOKAHEAD_CHARS])
    if after:
        value = int(after.group(1))
        if value > 0:
            return value
    return None


def _price_after(text: str, end: int) -> Optional[Decimal]:
    match = _PRICE_AFTER.search(text[end : end + _LOOKAHEAD_CHARS])
    if not match:
        return None
    try:
        return Decimal(match.group(1).replace(",", "."))
    except InvalidOperation:
        return None


# --- commercial hints -------------------------------------------------------

_ISO_DATE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_DMY_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_WEEKDAYS = {
    "lunes": 0,
    "martes": 1,
    "miercoles": 2,
    "jueves": 3,
    "viernes": 4,
    "sabado": 5,
    "domingo": 6,
}
_WEEKDAY_PATTERN = re.compile(r"\b(" + "|".join(_WEEKDAYS) + r")\b")
_NEXT_WEEK = re.compile(r"\b(?:proxima semana|semana que viene|siguiente semana)\b")
_END_OF_MONTH = re.compile(r"\bfin(?:al)? de(?:l)? mes\b")
_TOMORROW = re.compile(r"\bmanana\b")
_TODAY = re.compile(r"\bhoy\b")


def extract_delivery_date(text: str | None, today: date) -> Optional[date]:
    """Resolve a requested delivery date relative to ``today``.

    Explicit dates win over weekday names, which win over relative phrases.
    """

    if not text:
        return None

    for pattern, order in ((_ISO_DATE, "ymd"), (_DMY_DATE, "dmy")):
        for match in pattern.finditer(text):
            first, second, third = (int(group) for group in match.groups())
            year, month, day = (first, second, third) if order == "ymd" else (third, second, first)
            try:
                return date(year, month, day)
            except ValueError:
                continue

    normalized = normalize_text(text)
    weekday = _WEEKDAY_PATTERN.search(normalized)
    if weekday:
        delta = (_WEEKDAYS[weekday.group(1)] - today.weekday()) % 7
        return today + timedelta(days=delta or 7)
    if _NEXT_WEEK.search(normalized):
        return today + timedelta(days=7)
    if _END_OF_MONTH.search(normalized):
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=last_day)
    if _TOMORROW.search(normalized):
        return today + timedelta(days=1)
    if _TODAY.search(normalized):
        return today
    return None


_DISCOUNT_NET = re.compile(
    r"(?<![\d.])(\d{1,2}(?:\.\d{1,2})?)\s*/\s*(\d{1,3})\s*,?\s*net[oa]?\s*(\d{1,3})\b"
)
_NET_DAYS = re.compile(r"\bnet[oa]?\s*(\d{1,3})\b")
_CREDIT_DAYS = re.compile(
    r"\b(?:credito|plazo)\D{0,15}?(\d{1,3})\s*dias\b|\b(\d{1,3})\s*dias\s+(?:de\s+)?(?:credito|plazo|neto)\b"
)
_THIRTY_DAYS = re.compile(r"\b30\s*dias\b")
_CASH = re.compile(r"\bcontado\b")
_CREDIT = re.compile(r"\bcredito\b")


def extract_payment_terms(text: str | None) -> Optional[PaymentTerms]:
    """Read payment terms; ``None`` when the text gives no signal."""

    if not text:
        return None
    normalized = normalize_text(text)

    discount = _DISCOUNT_NET.search(normalized)
    if discount:
        percentage = Decimal(discount.group(1))
        discount_days = int(discount.group(2))
        days_net = int(discount.group(3))
        return PaymentTerms(
            days_net=days_net,
            discount_percentage=percentage,
            discount_days=discount_days,
            description=f"{percentage}% descuento pagando en {discount_days} días, neto {days_net} días",
        )

    if _CASH.search(normalized):
        return PaymentTerms(
            days_net=0,
            discount_percentage=Decimal("2.0"),
            discount_days=0,
            description="Pago de contado con 2% descuento",
        )

    for pattern in (_NET_DAYS, _CREDIT_DAYS):
        match = pattern.search(normalized)
        if match:
            days = int(next(group for group in match.groups() if group))
            return _net_terms(days)

    if _THIRTY_DAYS.search(normalized) or _CREDIT.search(normalized):
        return _net_terms(30)
    return None


def _net_terms(days: int) -> PaymentTerms:
    return PaymentTerms(
        days_net=days,
        discount_percentage=Decimal("0"),
        discount_days=0,
        description=f"Net {days} días",
    )


_ENTITY_PRODUCTS = {
    "leche": "leche",
    "queso": "queso",
    "yogurt": "yogurt",
    "helado": "helado",
    "carne vegana": "carne vegana",
    "tofu": "tofu",
    "tempeh": "tempeh",
}
_ENTITY_DATES = {
    "hoy": "hoy",
    "manana": "mañana",
    "proxima semana": "próxima semana",
    "fin de mes": "fin de mes",
}
_ENTITY_QUANTITY = re.compile(r"\b(\d+)\s*(cajas|unidades|kilos|litros)\b")
_ENTITY_UNITS = ("cajas", "unidades", "kilos", "litros")


def extract_business_entities(text: str | None) -> tuple[str, ...]:
    """Return ``categoria:valor`` labels for products, dates and quantities."""

    normalized = normalize_text(text or "")
    if not normalized:
        return ()

    entities: list[str] = []
    for key, label in _ENTITY_PRODUCTS.items():
        if re.search(rf"\b{key}\b", normalized):
            entities.append(f"producto:{label}")
    for key, label in _ENTITY_DATES.items():
        if re.search(rf"\b{key}\b", normalized):
            entities.append(f"fecha:{label}")

    counted_units: set[str] = set()
    for amount, unit in _ENTITY_QUANTITY.findall(normalized):
        entities.append(f"cantidad:{amount} {unit}")
        counted_units.add(unit)
    for unit in _ENTITY_UNITS:
        if unit not in counted_units and re.search(rf"\b{unit}\b", normalized):
            entities.append(f"cantidad:{unit}")

    return tuple(dict.fromkeys(entities))


__all__ = [
    "DEFAULT_EMAIL_BODY",
    "DEFAULT_EMAIL_SUBJECT",
    "DEFAULT_PRODUCT_FRAGMENTS",
    "extract_business_entities",
    "extract_delivery_date",
    "extract_payment_terms",
    "parse_email",
    "parse_order",
]
