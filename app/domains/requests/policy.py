"""
Dispatch policies evaluated when a canister runs low.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from app.core.config import settings
from app.models.machine import MachineModel, MachineType
from app.utils.datetime_handler import DateTimeHandler

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class QuantityTier:
    BLOCKED = "blocked"
    CLOSING = "closing"
    NORMAL = "normal"


@dataclass(frozen=True)
class DispatchWindow:
    """Outcome of the time-window policy for one machine at one moment."""
    should_block: bool
    quantity: Optional[float]
    tier: str
    minutes_to_close: Optional[int] = None


def minutes_until(end_minutes: int, current_minutes: int) -> int:
    """Minutes from now until the end time, wrapping past midnight."""
    delta = end_minutes - current_minutes
    if delta < 0:
        delta += MINUTES_PER_DAY
    return delta


def evaluate_dispatch_window(machine: MachineModel, now: Optional[datetime] = None) -> DispatchWindow:
    """
    Decide whether a refill may be dispatched and how much to send.

    Within ``BLOCK_WINDOW_MINUTES`` of the machine's end time nothing is
    dispatched. Within ``CLOSING_WINDOW_MINUTES`` the smaller closing
    quantity is used, otherwise the start quantity. Machines without a
    usable end time fall back to their type: part-time machines get the end
    quantity, full-time and untyped ones the start quantity.

    Args:
        machine: Machine the reading came from
        now: Current time, defaults to the configured timezone's clock

    Returns:
        DispatchWindow with the block flag and quantity
    """
    now = DateTimeHandler.to_local(now) if now is not None else DateTimeHandler.get_current_datetime()
    end_minutes = DateTimeHandler.parse_clock_minutes(machine.end_time)

    if end_minutes is None:
        if machine.machine_type and machine.machine_type != MachineType.FULL_TIME:
            return DispatchWindow(False, machine.tea_fill_end_quantity, QuantityTier.CLOSING)
        return DispatchWindow(False, machine.tea_fill_start_quantity, QuantityTier.NORMAL)

    delta = minutes_until(end_minutes, DateTimeHandler.minutes_of_day(now))

    if delta <= settings.BLOCK_WINDOW_MINUTES:
        return DispatchWindow(True, 0, QuantityTier.BLOCKED, delta)
    if delta <= settings.CLOSING_WINDOW_MINUTES:
        return DispatchWindow(False, machine.tea_fill_end_quantity, QuantityTier.CLOSING, delta)
    return DispatchWindow(False, machine.tea_fill_start_quantity, QuantityTier.NORMAL, delta)


def is_first_request_of_day(request_date_times: Iterable[Optional[str]], now: Optional[datetime] = None) -> bool:
    """
    True if none of a machine's existing requests was created today.

    Dates that match no supported format never count as today.

    Args:
        request_date_times: ``requestDateTime`` values of the machine's requests
        now: Current time, defaults to the configured timezone's clock
    """
    now = DateTimeHandler.to_local(now) if now is not None else DateTimeHandler.get_current_datetime()
    today = DateTimeHandler.date_key(now)

    for value in request_date_times:
        if DateTimeHandler.normalize_date_key(value) == today:
            return False
    return True
