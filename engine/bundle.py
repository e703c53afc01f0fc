"""Bündel: Sitzungen mit gemeinsamer batch_id, Gesamtstatus und Abrechnungsbasis."""

from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel

from models.reservation import RequestStatus, ReservationRequest

PENDING_STATUSES = {RequestStatus.RECEIVED, RequestStatus.UNDER_REVIEW}

# Anzeige-Status für gemischt entschiedene Bündel
PARTIALLY_FINALIZED = "partially-finalized"


class BundleKind(str, Enum):
    ALL_APPROVED = "all-approved"
    ALL_REJECTED = "all-rejected"
    IN_PROGRESS = "in-progress"
    PARTIALLY_FINALIZED = "partially-finalized"
    ALL_PENDING = "all-pending"
    OTHER = "other"


class BundleSummary(BaseModel):
    display_status: str
    status_for_filter: RequestStatus
    kind: BundleKind
    is_partial: bool
    approved_count: int
    rejected_count: int
    pending_count: int
    total_count: int


def _sort_key(r: ReservationRequest):
    seq = r.batch_seq if r.batch_seq is not None else 10**9
    return seq, r.date, r.start_time


def order_bundle(sessions: Iterable[ReservationRequest]) -> list[ReservationRequest]:
    """Sortiert nach batch_seq, dann Datum, dann Beginn."""
    return sorted(sessions, key=_sort_key)


def group_bundles(requests: Iterable[ReservationRequest]) -> dict[str, list[ReservationRequest]]:
    """Gruppiert Sitzungen nach batch_id (Einzelsitzungen fehlen im Ergebnis)."""
    groups: dict[str, list[ReservationRequest]] = {}
    for r in requests:
        if r.batch_id:
            groups.setdefault(r.batch_id, []).append(r)
    return {k: order_bundle(v) for k, v in groups.items()}


def analyze_bundle(sessions: Sequence[ReservationRequest]) -> BundleSummary:
    """Gesamtstatus eines Bündels.

    Der Filter-Status bevorzugt bei gemischten Bündeln "rejected", damit
    teilweise abgelehnte Anträge unter Ablehnungs-Filtern auftauchen.
    """
    items = [s for s in sessions if s is not None]
    total = len(items)
    approved = sum(1 for s in items if s.status == RequestStatus.APPROVED)
    rejected = sum(1 for s in items if s.status == RequestStatus.REJECTED)
    pending = sum(1 for s in items if s.status in PENDING_STATUSES)
    unique = {s.status for s in items}

    if total == 0:
        kind = BundleKind.ALL_PENDING
    elif approved == total:
        kind = BundleKind.ALL_APPROVED
    elif rejected == total:
        kind = BundleKind.ALL_REJECTED
    elif pending > 0 and approved == 0 and rejected == 0:
        kind = BundleKind.ALL_PENDING
    elif pending > 0:
        kind = BundleKind.IN_PROGRESS
    elif approved > 0 and rejected > 0:
        kind = BundleKind.PARTIALLY_FINALIZED
    else:
        kind = BundleKind.OTHER

    first = items[0].status if items else RequestStatus.RECEIVED
    if kind == BundleKind.ALL_APPROVED:
        display = RequestStatus.APPROVED.value
    elif kind == BundleKind.ALL_REJECTED:
        display = RequestStatus.REJECTED.value
    elif kind == BundleKind.PARTIALLY_FINALIZED:
        display = PARTIALLY_FINALIZED
    elif kind == BundleKind.IN_PROGRESS:
        display = RequestStatus.RECEIVED.value
    elif kind == BundleKind.ALL_PENDING:
        display = first.value if len(unique) == 1 else RequestStatus.RECEIVED.value
    else:
        display = first.value

    if total == 0:
        for_filter = RequestStatus.RECEIVED
    elif len(unique) == 1:
        for_filter = first
    elif rejected > 0:
        for_filter = RequestStatus.REJECTED
    else:
        for_filter = RequestStatus.RECEIVED

    return BundleSummary(
        display_status=display,
        status_for_filter=for_filter,
        kind=kind,
        is_partial=len(unique) > 1,
        approved_count=approved,
        rejected_count=rejected,
        pending_count=pending,
        total_count=total,
    )


def pick_fee_basis(sessions: Sequence[ReservationRequest],
                   approved_only_if_any: bool = True) -> list[ReservationRequest]:
    """Abrechnungsbasis: genehmigte Sitzungen, falls vorhanden, sonst alle (Schätzung)."""
    items = [s for s in sessions if s is not None]
    if not approved_only_if_any:
        return items
    approved = [s for s in items if s.status == RequestStatus.APPROVED]
    return approved or items
