"""
base.py - Shared Machinery of the Vesting Contracts

VestingContract is the stateful shell around the pure planning functions.
It owns one instance's state:

    roles        RoleAuthority (owner, project wallet)
    allocations  AllocationLedger (records and totals)
    clock        VestingClock (activation state, start, duration)
    events       EventLog

and implements VestingView over that state plus the AssetLedger it runs
against, so planning functions can be handed the contract itself.

Every public operation runs inside _operation(): state is snapshotted on
entry and restored if anything raises, so a failed call leaves the instance
exactly as it was. Within an operation the order is always

    checks → record changes applied → transfers executed → events published
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timedelta
import copy
from typing import Iterator, List, Optional, Sequence

from ..core import (
    PendingTransaction, TransactionOrigin, OriginType, ExecuteResult,
    VestingError,
)
from ..ledger import AssetLedger
from ..roles import RoleAuthority
from ..allocations import AllocationLedger, BeneficiaryRecord, LedgerTotals
from ..clock import VestingClock, ActivationState
from ..events import EventLog, EventType, VestingEvent


class VestingContract:
    """
    Base class for the deployable variants; not deployed on its own.

    Subclasses provide the public operations and liability_for().
    """

    def __init__(
        self,
        ledger: AssetLedger,
        address: str,
        roles: RoleAuthority,
        project_asset: str,
        vesting_duration: timedelta,
    ):
        self.ledger = ledger
        self._address = address
        self._project_asset = project_asset
        self.roles = roles
        self.allocations = AllocationLedger()
        self.clock = VestingClock(duration=vesting_duration)
        self.events = EventLog()
        self.verbose = ledger.verbose
        self._nonce = 0

        ledger.get_asset(project_asset)
        ledger.ensure_wallet(address)

    # ========================================================================
    # VestingView PROTOCOL IMPLEMENTATION (read-only)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self.ledger.current_time

    @property
    def address(self) -> str:
        return self._address

    @property
    def project_asset(self) -> str:
        return self._project_asset

    @property
    def project_wallet(self) -> str:
        return self.roles.project_wallet

    @property
    def owner(self) -> str:
        return self.roles.owner

    @property
    def totals(self) -> LedgerTotals:
        return self.allocations.totals

    @property
    def activation_state(self) -> ActivationState:
        return self.clock.state

    @property
    def vesting_start_time(self) -> Optional[datetime]:
        return self.clock.start_time

    @property
    def vesting_duration(self) -> timedelta:
        return self.clock.duration

    def get_balance(self, wallet_id: str, asset: str) -> int:
        return self.ledger.get_balance(wallet_id, asset)

    def get_record(self, beneficiary: str) -> BeneficiaryRecord:
        return self.allocations.get_record(beneficiary)

    def liability_for(self, asset: str) -> Optional[int]:
        raise NotImplementedError

    # Convenience views

    @property
    def total_entitlement(self) -> int:
        return self.totals.total_entitlement

    @property
    def total_claimed(self) -> int:
        return self.totals.total_claimed

    @property
    def is_activated(self) -> bool:
        return self.clock.is_activated

    @property
    def is_emergency_released(self) -> bool:
        return self.clock.is_emergency_released

    # ========================================================================
    # OPERATION BOUNDARY
    # ========================================================================

    def _snapshot(self):
        return (
            self.allocations.clone(),
            copy.copy(self.roles),
            copy.copy(self.clock),
            self._nonce,
        )

    def _restore(self, snapshot) -> None:
        self.allocations, self.roles, self.clock, self._nonce = snapshot

    @contextmanager
    def _operation(self, name: str, caller: str) -> Iterator[List[VestingEvent]]:
        """
        All-or-nothing boundary around one public operation.

        Yields a list the operation appends its events to; they are
        published only if the block completes.
        """
        snapshot = self._snapshot()
        emitted: List[VestingEvent] = []
        try:
            yield emitted
        except Exception as e:
            self._restore(snapshot)
            if self.verbose:
                print(f"✗ ROLLED BACK {name} by {caller}: {type(e).__name__}: {e}")
            raise
        for event in emitted:
            self.events.publish(event)
        if self.verbose:
            summary = ", ".join(repr(e) for e in emitted) or "no events"
            print(f"✓ {name.upper()} by {caller} [{summary}]")

    def _commit(self, pending: PendingTransaction, operation: str) -> PendingTransaction:
        """
        Apply a planned transaction: record changes first, then transfers.

        The asset ledger is checked up front so balance and allowance
        failures surface as typed errors before any state moves.
        """
        self._nonce += 1
        pending = pending.with_origin(
            TransactionOrigin(OriginType.CONTRACT, self.address, operation, self._nonce)
        )
        self.ledger.check(pending)
        self.allocations.apply(pending.record_changes)
        result = self.ledger.execute(pending)
        if result is not ExecuteResult.APPLIED:
            raise VestingError(f"{operation}: asset ledger returned {result.value}")
        return pending

    @staticmethod
    def _merge(pendings: Sequence[PendingTransaction]) -> PendingTransaction:
        """Combine planned transactions so they execute as one batch."""
        first = pendings[0]
        return PendingTransaction(
            transfers=tuple(t for p in pendings for t in p.transfers),
            record_changes=tuple(rc for p in pendings for rc in p.record_changes),
            origin=first.origin,
            timestamp=first.timestamp,
        )

    def _event(
        self,
        event_type: EventType,
        caller: str,
        beneficiary: Optional[str] = None,
        amount: int = 0,
        asset: Optional[str] = None,
        **params,
    ) -> VestingEvent:
        return VestingEvent(
            event_type=event_type,
            actor=caller,
            timestamp=self.current_time,
            beneficiary=beneficiary,
            amount=amount,
            asset=asset,
            params=tuple(sorted(params.items())),
        )

    # ========================================================================
    # ROLE MANAGEMENT
    # ========================================================================

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand ownership to new_owner.

        Raises:
            Unauthorized: If caller is not the owner
            ZeroAddress: If new_owner is empty
        """
        with self._operation("transfer_ownership", caller) as emitted:
            previous = self.roles.transfer_ownership(caller, new_owner)
            emitted.append(self._event(
                EventType.OWNERSHIP_TRANSFERRED, caller,
                previous=previous, new=new_owner,
            ))

    def renounce_ownership(self, caller: str) -> None:
        """Give up ownership for good; owner-gated operations fail afterwards."""
        with self._operation("renounce_ownership", caller) as emitted:
            previous = self.roles.renounce_ownership(caller)
            emitted.append(self._event(
                EventType.OWNERSHIP_TRANSFERRED, caller,
                previous=previous, new=self.roles.owner,
            ))

    def transfer_project_role(self, caller: str, new_wallet: str) -> None:
        """
        Hand the project role to new_wallet.

        Raises:
            Unauthorized: If caller does not hold the project role
            ZeroAddress: If new_wallet is empty
            SameAddress: If new_wallet already holds it
        """
        with self._operation("transfer_project_role", caller) as emitted:
            previous = self.roles.transfer_project_role(caller, new_wallet)
            emitted.append(self._event(
                EventType.PROJECT_ROLE_TRANSFERRED, caller,
                previous=previous, new=new_wallet,
            ))

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def emergency_release(self, caller: str) -> None:
        """
        Trip the emergency gate: regular claims stop, emergency claims open.

        Raises:
            Unauthorized: If caller is not the owner
            NotActivated: Before activation
            EmergencyReleaseActive: If already tripped
        """
        with self._operation("emergency_release", caller) as emitted:
            self.roles.require_owner(caller)
            self.clock.emergency_release()
            emitted.append(self._event(EventType.EMERGENCY_RELEASED, caller))

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.address}, state={self.clock.state.value}, "
                f"beneficiaries={len(self.allocations)})")
