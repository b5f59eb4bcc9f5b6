from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

from exceptions import BookingNumberOverflowError, StoreConflictError, StoreError
from store import Order, RecordStorePort, starts_with

MAX_DAILY_SEQUENCE = 99

STORE_UNAVAILABLE = "store_unavailable"
UNPARSEABLE_SUFFIX = "unparseable_suffix"
SEQUENCE_GAP = "sequence_gap"


@dataclass(frozen=True)
class BookingNumber:
    """
    Allocated identifier in the form yyMMddSS.

    `degraded` is set when the number was not derived from the last stored
    number for the day, so it may collide or break the daily sequence.
    """

    value: str
    prefix: str
    sequence: int | None
    degraded: bool = False
    reason: str | None = None

    def __str__(self) -> str:
        return self.value


class BookingNumberAllocator:
    def __init__(
        self,
        store: RecordStorePort,
        timezone: ZoneInfo,
        clock: Callable[[], datetime] | None = None,
        max_attempts: int = 5,
    ) -> None:
        self._store = store
        self._timezone = timezone
        self._clock = clock or (lambda: datetime.now(self._timezone))
        self._max_attempts = max_attempts
        self._logger = logging.getLogger(__name__)

    def allocate(self) -> BookingNumber:
        now = self._now()
        prefix = now.strftime("%y%m%d")

        try:
            rows = self._store.select(
                "bookings",
                columns=["booking_number"],
                filters=[starts_with("booking_number", prefix)],
                order=Order("booking_number", descending=True),
                limit=1,
            )
        except StoreError as e:
            # Keeps the date prefix; the suffix is not sequential
            millis = int(now.timestamp()) * 1000 + now.microsecond // 1000
            value = f"{prefix}{millis % 100:02d}"
            self._logger.warning(
                "Booking number lookup failed, using timestamp fallback",
                extra={"booking_number": value, "reason": STORE_UNAVAILABLE, "error": str(e)},
            )
            return BookingNumber(value, prefix, None, degraded=True, reason=STORE_UNAVAILABLE)

        if not rows or not rows[0].get("booking_number"):
            return self._build(prefix, 1)

        suffix = rows[0]["booking_number"][-2:]
        if not _is_sequence(suffix):
            self._logger.warning(
                "Last booking number has a non-numeric suffix, restarting at 1",
                extra={"booking_number": rows[0]["booking_number"], "reason": UNPARSEABLE_SUFFIX},
            )
            return self._build(prefix, 1, reason=UNPARSEABLE_SUFFIX)

        sequence = int(suffix) + 1
        if sequence > MAX_DAILY_SEQUENCE:
            # A timestamp fallback can land high in the range; reuse a free slot
            return self._first_free(prefix)
        return self._build(prefix, sequence)

    def create_booking(self, record: dict[str, Any]) -> tuple[dict[str, Any], BookingNumber]:
        """
        Insert a booking under a freshly allocated number.

        A uniqueness conflict means another caller took the same number
        between our read and our write; allocate again and retry.
        """
        last_error: StoreConflictError | None = None
        for attempt in range(1, self._max_attempts + 1):
            number = self.allocate()
            try:
                row = self._store.insert("bookings", {**record, "booking_number": number.value})
            except StoreConflictError as e:
                last_error = e
                self._logger.info(
                    "Booking number taken, retrying (attempt %s/%s)",
                    attempt,
                    self._max_attempts,
                    extra={"booking_number": number.value},
                )
                continue
            self._logger.info("Booking created", extra={"booking_number": number.value})
            return row, number

        raise StoreConflictError(
            f"No free booking number after {self._max_attempts} attempts"
        ) from last_error

    def _first_free(self, prefix: str) -> BookingNumber:
        rows = self._store.select(
            "bookings",
            columns=["booking_number"],
            filters=[starts_with("booking_number", prefix)],
        )
        taken = {
            int(row["booking_number"][-2:])
            for row in rows
            if row.get("booking_number") and _is_sequence(row["booking_number"][-2:])
        }
        for sequence in range(1, MAX_DAILY_SEQUENCE + 1):
            if sequence not in taken:
                self._logger.warning(
                    "Daily sequence reached %s, reusing a free number",
                    MAX_DAILY_SEQUENCE,
                    extra={"booking_number": f"{prefix}{sequence:02d}", "reason": SEQUENCE_GAP},
                )
                return self._build(prefix, sequence, reason=SEQUENCE_GAP)
        raise BookingNumberOverflowError(prefix)

    def _build(self, prefix: str, sequence: int, reason: str | None = None) -> BookingNumber:
        if sequence > MAX_DAILY_SEQUENCE:
            raise BookingNumberOverflowError(prefix)
        return BookingNumber(
            value=f"{prefix}{sequence:02d}",
            prefix=prefix,
            sequence=sequence,
            degraded=reason is not None,
            reason=reason,
        )

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=self._timezone)
        return now.astimezone(self._timezone)


def _is_sequence(suffix: str) -> bool:
    return suffix.isascii() and suffix.isdigit()
