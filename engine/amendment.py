"""Terminänderungen (Amendments): Stornieren und Verschieben von Kursterminen.

Ablauf:
  1. Vorprüfung der Eingabe (Grund, Auswahl, Anzahl Ersatztermine)
     → AmendmentInputError, bevor irgendetwas geändert wird
  2. Fachliche Prüfung (Status, Datum, Sperren der Ersatztermine)
     → Liste lesbarer Ablehnungsgründe, Plan ohne Operationen
  3. Plan mit zwei Phasen: erst alle Stornierungen, dann alle Neuanlagen

Der Plan wird nur berechnet, nicht ausgeführt. Die Speicherschicht sollte
beide Phasen in einer Transaktion anwenden; ohne Transaktion bleibt bei einem
Fehler in Phase 2 höchstens ein stornierter Termin ohne Ersatz zurück, nie ein
doppelt aktiver.
"""

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Union

from pydantic import BaseModel, field_validator

from config.schema import Weekday
from engine.blocking import OCCUPYING_STATUSES, block_reasons
from models.holiday import HolidayDeclaration
from models.session import BookingSession, SessionStatus
from models.timeslot import to_utc_date, to_utc_datetime

logger = logging.getLogger(__name__)


class AmendmentAction(str, Enum):
    CANCEL_BOOKING = "CANCEL_BOOKING"
    CHANGE_DATE = "CHANGE_DATE"
    CAR_BREAKDOWN = "CAR_BREAKDOWN"
    CAR_HOLIDAY = "CAR_HOLIDAY"

    @property
    def is_reschedule(self) -> bool:
        return self is AmendmentAction.CHANGE_DATE


class AmendmentInputError(ValueError):
    """Ungültige Eingabe (leerer Grund, keine Auswahl, falsche Anzahl Ersatztermine)."""


class AmendmentRequest(BaseModel):
    """Änderungswunsch für ausgewählte Termine einer Buchung."""

    booking_id: int
    action: AmendmentAction
    session_ids: list[int]
    new_dates: list[date] = []    # nur CHANGE_DATE: ein Datum je session_id (gleiche Reihenfolge)
    reason: str = ""

    @field_validator("new_dates", mode="before")
    @classmethod
    def _normalize_dates(cls, v):
        return [to_utc_date(d) for d in v] if v else []


class SessionCancellation(BaseModel):
    """Phase 1: bestehenden Termin stornieren (bleibt als Historie erhalten)."""

    session_id: int
    status: SessionStatus = SessionStatus.CANCELLED
    deleted_at: datetime
    internal_notes: str


class SessionCreation(BaseModel):
    """Phase 2: Ersatztermin anlegen."""

    replaces_session_id: int
    session: BookingSession


class AmendmentPlan(BaseModel):
    """Ergebnis einer Änderung: Ablehnungsgründe ODER geordnete Operationen."""

    booking_id: int
    action: AmendmentAction
    reason: str
    cancellations: list[SessionCancellation] = []
    creations: list[SessionCreation] = []
    rejections: list[str] = []

    @property
    def is_accepted(self) -> bool:
        return not self.rejections

    def operations(self) -> list[Union[SessionCancellation, SessionCreation]]:
        """Alle Operationen in Ausführungsreihenfolge (Stornierungen zuerst)."""
        return [*self.cancellations, *self.creations]


class AmendmentEngine:
    """Berechnet Amendment-Pläne gegen eine Momentaufnahme von Terminen und Feiertagen.

    ``sessions`` sind alle bekannten Termine (auch anderer Buchungen), damit
    Ersatztermine auf Belegung desselben Fahrzeugs/Slots geprüft werden können.
    """

    def __init__(
        self,
        sessions: Iterable[BookingSession],
        holidays: Iterable[HolidayDeclaration],
        weekly_holiday: Optional[Union[Weekday, str]] = None,
        statuses: frozenset = OCCUPYING_STATUSES,
    ) -> None:
        self.sessions = list(sessions)
        self.holidays = list(holidays)
        self.weekly_holiday = weekly_holiday
        self.statuses = statuses

    # ─── Auswahl-Helfer ──────────────────────────────────────────────────

    @staticmethod
    def is_selectable(session: BookingSession, today: date) -> bool:
        """Nur offene (PENDING/CONFIRMED) Termine echt in der Zukunft."""
        return session.is_scheduled and session.session_date > today

    def selectable_sessions(
        self, booking_sessions: Iterable[BookingSession], today: date
    ) -> list[BookingSession]:
        return sorted(
            (s for s in booking_sessions if self.is_selectable(s, today)),
            key=lambda s: s.session_date,
        )

    @staticmethod
    def min_allowed_date(booking_sessions: Iterable[BookingSession], today: date) -> date:
        """Frühestes erlaubtes Ersatzdatum: erster noch offener Termin der Buchung.

        Gibt es keinen offenen Termin mehr, ist es der morgige Tag.
        """
        scheduled = [s.session_date for s in booking_sessions if s.is_scheduled]
        if scheduled:
            return min(scheduled)
        return today + timedelta(days=1)

    def cascade_selection(
        self, booking_sessions: Iterable[BookingSession], from_date: date, today: date
    ) -> list[int]:
        """Stornierung ab einem Datum: dieser und alle späteren offenen Termine."""
        from_date = to_utc_date(from_date)
        return [
            s.id for s in self.selectable_sessions(booking_sessions, today)
            if s.session_date >= from_date and s.id is not None
        ]

    # ─── Prüfung ─────────────────────────────────────────────────────────

    def _check_input(
        self, request: AmendmentRequest, booking_sessions: list[BookingSession]
    ) -> list[BookingSession]:
        if not request.reason or not request.reason.strip():
            raise AmendmentInputError("Bitte einen Grund für die Änderung angeben")
        if not request.session_ids:
            raise AmendmentInputError("Bitte mindestens einen Termin auswählen")
        if len(set(request.session_ids)) != len(request.session_ids):
            raise AmendmentInputError("Termine wurden mehrfach ausgewählt")

        by_id = {s.id: s for s in booking_sessions if s.booking_id == request.booking_id}
        unknown = [sid for sid in request.session_ids if sid not in by_id]
        if unknown:
            raise AmendmentInputError(
                f"Termine {unknown} gehören nicht zu Buchung {request.booking_id}"
            )

        if request.action.is_reschedule:
            if len(request.new_dates) != len(request.session_ids):
                n = len(request.session_ids)
                raise AmendmentInputError(
                    f"Bitte {n} Ersatztermin{'e' if n > 1 else ''} angeben "
                    f"(erhalten: {len(request.new_dates)})"
                )
        elif request.new_dates:
            raise AmendmentInputError(
                f"{request.action.value} erwartet keine Ersatztermine"
            )
        return [by_id[sid] for sid in request.session_ids]

    def validate(
        self,
        request: AmendmentRequest,
        booking_sessions: Iterable[BookingSession],
        now: datetime,
    ) -> list[str]:
        """Fachliche Ablehnungsgründe (leer = Änderung zulässig).

        Raises:
            AmendmentInputError: bei ungültiger Eingabe.
        """
        booking_sessions = list(booking_sessions)
        selected = self._check_input(request, booking_sessions)
        today = to_utc_datetime(now).date()
        rejections: list[str] = []

        for s in selected:
            if not s.is_scheduled:
                rejections.append(
                    f"Termin {s.id} ({s.date_key}) ist {s.status.value} und nicht mehr änderbar"
                )
            elif s.session_date <= today:
                rejections.append(
                    f"Termin {s.id} ({s.date_key}) liegt nicht in der Zukunft"
                )

        if request.action.is_reschedule:
            floor = self.min_allowed_date(booking_sessions, today)
            seen: set[tuple] = set()
            for old, new_date in zip(selected, request.new_dates):
                prefix = f"Ersatztermin für Tag {old.day_number} ({new_date.isoformat()})"
                if new_date <= today:
                    rejections.append(f"{prefix}: liegt nicht in der Zukunft")
                if new_date < floor:
                    rejections.append(
                        f"{prefix}: liegt vor dem frühesten offenen Kurstermin {floor.isoformat()}"
                    )
                key = (new_date, old.car_id, old.slot)
                if key in seen:
                    rejections.append(f"{prefix}: doppelt gewählt")
                seen.add(key)
                for r in block_reasons(new_date, old.car_id, old.slot, self.sessions,
                                       self.holidays, self.weekly_holiday, self.statuses):
                    rejections.append(f"{prefix}: {r}")

        return rejections

    # ─── Planung ─────────────────────────────────────────────────────────

    def plan(
        self,
        request: AmendmentRequest,
        booking_sessions: Iterable[BookingSession],
        now: datetime,
    ) -> AmendmentPlan:
        """Berechnet den Änderungsplan.

        Bei Ablehnungsgründen enthält der Plan keine Operationen.

        Raises:
            AmendmentInputError: bei ungültiger Eingabe (vor jeder Prüfung).
        """
        booking_sessions = list(booking_sessions)
        rejections = self.validate(request, booking_sessions, now)
        plan = AmendmentPlan(
            booking_id=request.booking_id,
            action=request.action,
            reason=request.reason.strip(),
        )
        if rejections:
            logger.info(
                f"Amendment {request.action.value} für Buchung {request.booking_id} "
                f"abgelehnt: {len(rejections)} Gründe"
            )
            plan.rejections = rejections
            return plan

        by_id = {s.id: s for s in booking_sessions}
        selected = [by_id[sid] for sid in request.session_ids]
        reason = plan.reason

        if request.action.is_reschedule:
            for old, new_date in zip(selected, request.new_dates):
                plan.cancellations.append(SessionCancellation(
                    session_id=old.id,
                    deleted_at=now,
                    internal_notes=old.append_note(f"Date changed - {reason}"),
                ))
                plan.creations.append(SessionCreation(
                    replaces_session_id=old.id,
                    session=BookingSession(
                        booking_id=old.booking_id,
                        day_number=old.day_number,
                        session_date=new_date,
                        slot=old.slot,
                        car_id=old.car_id,
                        driver_id=old.driver_id,
                        status=SessionStatus.PENDING,
                        internal_notes=(
                            f"Rescheduled from {old.session_date.strftime('%d %b %Y')} - {reason}"
                        ),
                    ),
                ))
        else:
            label = {
                AmendmentAction.CAR_BREAKDOWN: "Car breakdown - ",
                AmendmentAction.CAR_HOLIDAY: "Car holiday - ",
            }.get(request.action, "")
            for old in selected:
                plan.cancellations.append(SessionCancellation(
                    session_id=old.id,
                    deleted_at=now,
                    internal_notes=old.append_note(f"{label}{reason}"),
                ))

        logger.info(
            f"Amendment {request.action.value} für Buchung {request.booking_id}: "
            f"{len(plan.cancellations)} storniert, {len(plan.creations)} neu"
        )
        return plan


def apply_plan(
    sessions: Iterable[BookingSession], plan: AmendmentPlan, next_id: Optional[int] = None
) -> list[BookingSession]:
    """Wendet einen angenommenen Plan auf eine Terminliste an (neue Liste).

    Stornierungen werden zuerst angewendet, danach die Neuanlagen mit
    fortlaufenden IDs ab ``next_id`` (Standard: größte vorhandene ID + 1).

    Raises:
        ValueError: wenn der Plan abgelehnt wurde oder ein Termin fehlt.
    """
    if not plan.is_accepted:
        raise ValueError("Abgelehnter Plan kann nicht angewendet werden")
    result = list(sessions)
    index = {s.id: i for i, s in enumerate(result)}

    for c in plan.cancellations:
        if c.session_id not in index:
            raise ValueError(f"Termin {c.session_id} nicht gefunden")
        i = index[c.session_id]
        result[i] = result[i].model_copy(update={
            "status": c.status,
            "deleted_at": c.deleted_at,
            "internal_notes": c.internal_notes,
        })

    if next_id is None:
        next_id = max((s.id or 0 for s in result), default=0) + 1
    for offset, creation in enumerate(plan.creations):
        result.append(creation.session.model_copy(update={"id": next_id + offset}))
    return result
