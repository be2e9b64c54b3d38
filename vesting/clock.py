"""
clock.py - Activation State Machine and Linear Schedule

The VestingClock owns the one-way lifecycle

    PENDING ──activate──▶ ACTIVATED ──emergency_release──▶ EMERGENCY_RELEASED

plus the schedule parameters (start time, duration). It answers one
question for everyone else: what fraction of an entitlement has vested at a
given instant. Fractions are exact (fractions.Fraction), so amounts derived
from them floor deterministically.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from fractions import Fraction
from typing import Optional, Type

from .core import (
    MAX_START_LEAD, MAX_VESTING_DURATION,
    Transfer, PendingTransaction, TransactionOrigin, OriginType, VestingView,
    AlreadyActivated, NotActivated, EmergencyReleaseActive,
    StartTimeInPast, StartTimeTooDistant, TotalAmountZero, VestingDurationTooLong,
    build_transaction,
)

_TICK = timedelta(microseconds=1)


class ActivationState(Enum):
    """
    Lifecycle position of a vesting instance.

    Transitions only move forward; nothing ever returns to PENDING.
    """
    PENDING = "pending"
    ACTIVATED = "activated"
    EMERGENCY_RELEASED = "emergency_released"


@dataclass
class VestingClock:
    """
    Mutable lifecycle state of one vesting instance.

    Attributes:
        duration: Length of the linear schedule (zero vests everything at start)
        state: Current ActivationState
        start_time: Set once by activate(), None before
    """
    duration: timedelta
    state: ActivationState = ActivationState.PENDING
    start_time: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if self.duration < timedelta(0):
            raise ValueError(f"Vesting duration must be non-negative, got {self.duration}")
        if self.duration > MAX_VESTING_DURATION:
            raise VestingDurationTooLong(
                f"Vesting duration {self.duration} exceeds {MAX_VESTING_DURATION}"
            )

    @property
    def is_activated(self) -> bool:
        """True once activated, including after an emergency release."""
        return self.state is not ActivationState.PENDING

    @property
    def is_emergency_released(self) -> bool:
        return self.state is ActivationState.EMERGENCY_RELEASED

    @property
    def end_time(self) -> Optional[datetime]:
        if self.start_time is None:
            return None
        return self.start_time + self.duration

    def has_started(self, now: datetime) -> bool:
        return self.is_activated and self.start_time is not None and now >= self.start_time

    def elapsed_fraction(self, now: datetime) -> Fraction:
        """
        Fraction of the schedule elapsed at now, clamped to [0, 1].

        Zero before activation and before the start time. A zero duration
        vests fully the moment the start time is reached.
        """
        if not self.has_started(now):
            return Fraction(0)
        if self.duration == timedelta(0):
            return Fraction(1)
        elapsed = now - self.start_time
        if elapsed >= self.duration:
            return Fraction(1)
        return Fraction(elapsed // _TICK, self.duration // _TICK)

    def vested_amount(self, entitlement: int, now: datetime) -> int:
        """floor(entitlement × elapsed_fraction(now))."""
        fraction = self.elapsed_fraction(now)
        return entitlement * fraction.numerator // fraction.denominator

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def activate(self, start_time: datetime) -> None:
        """
        Move PENDING → ACTIVATED and fix the start time.

        Raises:
            AlreadyActivated: If not PENDING
        """
        if self.is_activated:
            raise AlreadyActivated("vesting already activated")
        self.start_time = start_time
        self.state = ActivationState.ACTIVATED

    def emergency_release(self) -> None:
        """
        Move ACTIVATED → EMERGENCY_RELEASED.

        Raises:
            NotActivated: If still PENDING
            EmergencyReleaseActive: If already released
        """
        if not self.is_activated:
            raise NotActivated("cannot emergency release before activation")
        if self.is_emergency_released:
            raise EmergencyReleaseActive("emergency release already active")
        self.state = ActivationState.EMERGENCY_RELEASED


def validate_start_time(now: datetime, start_time: datetime) -> None:
    """
    Check an activation start time against the current time.

    Raises:
        StartTimeInPast: If start_time < now
        StartTimeTooDistant: If start_time > now + MAX_START_LEAD
    """
    if start_time < now:
        raise StartTimeInPast(f"start time {start_time} is before now ({now})")
    if start_time > now + MAX_START_LEAD:
        raise StartTimeTooDistant(
            f"start time {start_time} is more than {MAX_START_LEAD.days} days after now ({now})"
        )


def compute_activation(
    view: VestingView,
    start_time: datetime,
    empty_error: Type[TotalAmountZero] = TotalAmountZero,
) -> PendingTransaction:
    """
    Plan activation: pull exactly the shortfall of the distributed asset.

    The contract must hold the full outstanding liability once activated.
    Whatever it already holds counts towards that; the rest is pulled from
    the project wallet against its approval to the contract.

    Args:
        view: Read-only contract view
        start_time: Requested start of the linear schedule
        empty_error: Raised when nothing is allocated (NoFundsAdded for insured)

    Raises:
        AlreadyActivated: If not PENDING
        StartTimeInPast / StartTimeTooDistant: From validate_start_time
        TotalAmountZero: If total entitlement is zero
    """
    if view.activation_state is not ActivationState.PENDING:
        raise AlreadyActivated("vesting already activated")
    validate_start_time(view.current_time, start_time)
    if view.totals.total_entitlement == 0:
        raise empty_error("nothing allocated")

    required = view.liability_for(view.project_asset) or 0
    held = view.get_balance(view.address, view.project_asset)
    shortfall = max(0, required - held)

    transfers = []
    if shortfall:
        transfers.append(Transfer(
            shortfall, view.project_asset, view.project_wallet, view.address,
            spender=view.address,
        ))
    return build_transaction(
        view, transfers,
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "activate"),
    )


def clock_from_view(view: VestingView) -> VestingClock:
    """Rebuild a detached VestingClock from a read-only view."""
    return VestingClock(
        duration=view.vesting_duration,
        state=view.activation_state,
        start_time=view.vesting_start_time,
    )
