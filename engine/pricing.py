"""Preisberechnung für Einzelsitzungen und Bündel (KRW, ganzzahlig).

Gerundet wird kaufmännisch (0,5 → aufwärts), nicht nach Python-round().
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel

from config.schema import FacilityConfig
from engine.bundle import pick_fee_basis
from engine.gallery import compute_gallery_stats, gallery_day_fee
from engine.operating import resolve_config
from engine.timeutil import minutes_of_day
from models.reservation import ReservationRequest
from models.room import Room

logger = logging.getLogger(__name__)


class DiscountMode(str, Enum):
    RATE = "rate"
    AMOUNT = "amount"


class NormalizedDiscount(BaseModel):
    discount_rate_pct: float = 0.0
    discount_amount_krw: int = 0


class FeeBreakdown(BaseModel):
    duration_hours: float = 0.0
    hourly_fee_krw: int = 0
    rental_fee_krw: int = 0
    equipment_fee_krw: int = 0
    total_fee_krw: int = 0
    discount_rate_pct: float = 0.0
    discount_amount_krw: int = 0
    discount_reason: str = ""
    final_fee_krw: int = 0


# ─── Rundung ───

def round_half_up(value) -> int:
    """Auf ganze Zahl runden, x.5 immer aufwärts."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _round2(value) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_krw(value) -> str:
    """100000 → "100,000원"."""
    try:
        n = round_half_up(value)
    except (ArithmeticError, ValueError, TypeError):
        n = 0
    return f"{n:,}원"


# ─── Grundpreis ───

def compute_duration_hours(start: str, end: str) -> float:
    """Dauer in Stunden, auf zwei Nachkommastellen; verdrehte Zeiten → 0."""
    diff = minutes_of_day(end) - minutes_of_day(start)
    if diff < 0:
        return 0.0
    return _round2(Decimal(diff) / Decimal(60))


def _resolve_room(session: ReservationRequest, room: Optional[Room],
                  cfg: FacilityConfig) -> Room:
    return room if room is not None else cfg.get_room(session.room_id)


def compute_base_fee(
    session: ReservationRequest,
    room: Optional[Room] = None,
    config: Optional[FacilityConfig] = None,
) -> FeeBreakdown:
    """Preis ohne Rabatt.

    Galerie: Tagespreis (konsolidierte 1-Zeilen-Anträge: ganzer Zeitraum).
    Sonst: Stundenpreis × Dauer + Zubehörpauschalen der Raumkategorie.

    Raises:
        FormatError: bei unbekanntem Raum.
    """
    cfg = resolve_config(config)
    room = _resolve_room(session, room, cfg)

    if room.is_gallery:
        if session.spans_period:
            rental = _consolidated_gallery_fee(session, cfg)
        else:
            rental = gallery_day_fee(session.date, session.is_prep_day, cfg)
        return FeeBreakdown(rental_fee_krw=rental, total_fee_krw=max(0, rental),
                            final_fee_krw=max(0, rental))

    hours = compute_duration_hours(session.start_time, session.end_time)
    rental = round_half_up(Decimal(room.hourly_fee_krw) * Decimal(str(hours)))
    table = cfg.pricing.equipment_fees(room.category)
    equipment = sum(table.get(name, 0) for name in session.equipment.selected())
    total = max(0, rental + equipment)
    return FeeBreakdown(
        duration_hours=hours,
        hourly_fee_krw=room.hourly_fee_krw,
        rental_fee_krw=rental,
        equipment_fee_krw=equipment,
        total_fee_krw=total,
        final_fee_krw=total,
    )


def _consolidated_gallery_fee(session: ReservationRequest, cfg: FacilityConfig) -> int:
    weekdays = session.gallery_weekday_count
    saturdays = session.gallery_saturday_count
    if weekdays is None or saturdays is None:
        stats = compute_gallery_stats(session.start_date, session.end_date, cfg)
        weekdays = stats.weekday_count if weekdays is None else weekdays
        saturdays = stats.saturday_count if saturdays is None else saturdays
    return (weekdays * cfg.pricing.gallery_weekday_fee
            + saturdays * cfg.pricing.gallery_saturday_fee)


# ─── Rabatt ───

def _derived_rate(amount: int, total: int) -> float:
    if total <= 0:
        return 0.0
    basis_points = round_half_up(Decimal(amount) * 10000 / Decimal(total))
    return basis_points / 100


def normalize_discount(
    total_fee_krw,
    rate_pct: Optional[float] = None,
    amount_krw: Optional[int] = None,
    mode: Optional[DiscountMode] = None,
) -> NormalizedDiscount:
    """Rabatt so normalisieren, dass Satz und Betrag zueinander passen.

    Ohne mode gilt "amount", sobald ein Betrag > 0 angegeben ist, sonst "rate".
    Betrag wird auf [0, total] begrenzt; bei total == 0 ist alles 0.
    """
    total = max(0, round_half_up(total_fee_krw or 0))
    if mode is None:
        mode = DiscountMode.AMOUNT if (amount_krw or 0) > 0 else DiscountMode.RATE
    mode = DiscountMode(mode)

    if mode == DiscountMode.AMOUNT:
        amount = min(total, max(0, round_half_up(amount_krw or 0)))
        return NormalizedDiscount(discount_rate_pct=_derived_rate(amount, total),
                                  discount_amount_krw=amount)

    rate = min(100.0, max(0.0, float(rate_pct or 0)))
    amount = min(total, max(0, round_half_up(Decimal(total) * Decimal(str(rate)) / 100)))
    return NormalizedDiscount(discount_rate_pct=_derived_rate(amount, total),
                              discount_amount_krw=amount)


def _with_discount(base: FeeBreakdown, rate_pct: float, amount_krw: int,
                   reason: str) -> FeeBreakdown:
    d = normalize_discount(base.total_fee_krw, rate_pct=rate_pct, amount_krw=amount_krw)
    return base.model_copy(update={
        "discount_rate_pct": d.discount_rate_pct,
        "discount_amount_krw": d.discount_amount_krw,
        "discount_reason": reason,
        "final_fee_krw": max(0, base.total_fee_krw - d.discount_amount_krw),
    })


# ─── Einzelsitzung ───

def compute_fees_for_session(
    session: ReservationRequest,
    room: Optional[Room] = None,
    config: Optional[FacilityConfig] = None,
) -> FeeBreakdown:
    """Preis einer Sitzung.

    Rabatte gelten nur für Einzelsitzungen außerhalb der Galerie; bei Bündeln
    wird der Rabatt erst auf die Bündelsumme angewendet.
    """
    cfg = resolve_config(config)
    room = _resolve_room(session, room, cfg)
    base = compute_base_fee(session, room, cfg)
    if session.is_bundled or room.is_gallery:
        return base
    return _with_discount(base, session.discount_rate_pct,
                          session.discount_amount_krw, session.discount_reason)


# ─── Bündel ───

def discount_source(sessions: Sequence[ReservationRequest]) -> Optional[ReservationRequest]:
    """Erste Sitzung mit Rabattangaben, sonst die erste Sitzung."""
    if not sessions:
        return None
    for s in sessions:
        if s.has_discount:
            return s
    return sessions[0]


def discount_sources_disagree(sessions: Sequence[ReservationRequest]) -> bool:
    seen = {
        (s.discount_rate_pct, s.discount_amount_krw, s.discount_reason.strip())
        for s in sessions if s.has_discount
    }
    return len(seen) > 1


def compute_fees_for_bundle(
    sessions: Sequence[ReservationRequest],
    config: Optional[FacilityConfig] = None,
) -> FeeBreakdown:
    """Summe der Sitzungspreise, dann EIN Rabatt auf die Summe (Galerie: nie)."""
    items = [s for s in sessions if s is not None]
    if not items:
        return FeeBreakdown()
    cfg = resolve_config(config)

    bases = [compute_base_fee(s, config=cfg) for s in items]
    total = max(0, sum(b.total_fee_krw for b in bases))
    summed = FeeBreakdown(
        duration_hours=_round2(sum(Decimal(str(b.duration_hours)) for b in bases)),
        hourly_fee_krw=0,
        rental_fee_krw=sum(b.rental_fee_krw for b in bases),
        equipment_fee_krw=sum(b.equipment_fee_krw for b in bases),
        total_fee_krw=total,
        final_fee_krw=total,
    )

    first_room = cfg.get_room(items[0].room_id)
    if first_room.is_gallery:
        return summed

    if discount_sources_disagree(items):
        logger.warning(
            f"Bündel {items[0].batch_id}: Sitzungen mit abweichenden Rabattangaben, "
            f"verwende die erste mit Rabatt")
    src = discount_source(items)
    return _with_discount(summed, src.discount_rate_pct,
                          src.discount_amount_krw, src.discount_reason)


def compute_payable_for_bundle(
    sessions: Sequence[ReservationRequest],
    config: Optional[FacilityConfig] = None,
) -> FeeBreakdown:
    """Zu zahlender Betrag: Bündelpreis über die genehmigten Sitzungen (falls vorhanden)."""
    return compute_fees_for_bundle(pick_fee_basis(sessions), config)
