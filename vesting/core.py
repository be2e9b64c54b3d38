"""
Core types and pure functions for the token vesting system.

This module provides the foundational data structures and protocols:
1. Protocols: VestingView / InsuredVestingView for read-only contract access
2. Immutable data structures: Asset, Transfer, PendingTransaction, Transaction
3. Exceptions: VestingError and the authorization / lifecycle / validation /
   economic families beneath it
4. Constants and type aliases shared by every component

All functions in this module are pure and operate on read-only views.
No function can mutate contract or asset state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
import hashlib
from typing import (
    Dict, List, Optional, Any, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance. The system wallet is exempt from balance
# validation and can hold any balance.
SYSTEM_WALLET = "system"

# The empty identity. Roles can never be handed to it, except that the owner
# may renounce to it.
ZERO_ADDRESS = ""

# Symbol of the chain's native currency. Always registered, never approvable.
NATIVE_ASSET = "NATIVE"

MONTH = timedelta(days=30)

DEFAULT_VESTING_DURATION = timedelta(days=730)

# Activation may schedule the start at most this far ahead of "now".
MAX_START_LEAD = 3 * MONTH

MAX_VESTING_DURATION = timedelta(days=3650)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from asset symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]

# Mapping from wallet ID to quantity held by that wallet for a specific asset.
Positions = Dict[str, int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class VestingView(Protocol):
    """
    Read-only interface to a vesting contract and the assets it holds.

    Planning functions (claims, emergency, recovery, allocations) accept a
    VestingView and return a PendingTransaction. They never mutate state;
    the contract applies the result.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the asset ledger."""
        ...

    @property
    def address(self) -> str:
        """Return the wallet ID of the contract itself."""
        ...

    @property
    def project_asset(self) -> str:
        """Return the symbol of the distributed asset."""
        ...

    @property
    def project_wallet(self) -> str:
        """Return the current holder of the project role."""
        ...

    @property
    def totals(self) -> 'LedgerTotals':
        """Return the aggregate entitlement and claimed counters."""
        ...

    @property
    def activation_state(self) -> 'ActivationState':
        """Return the one-way lifecycle state."""
        ...

    @property
    def vesting_start_time(self) -> Optional[datetime]:
        """Return the start of the schedule, or None before activation."""
        ...

    @property
    def vesting_duration(self) -> timedelta:
        """Return the length of the linear schedule."""
        ...

    def get_balance(self, wallet_id: str, asset: str) -> int:
        """Return the balance of an asset held by a wallet."""
        ...

    def get_record(self, beneficiary: str) -> 'BeneficiaryRecord':
        """Return the beneficiary's record (zero-valued if never written)."""
        ...

    def liability_for(self, asset: str) -> Optional[int]:
        """
        Return the amount of an asset still owed to beneficiaries.

        Returns None when the asset is not one the contract distributes, in
        which case its whole balance is recoverable.
        """
        ...


@runtime_checkable
class InsuredVestingView(VestingView, Protocol):
    """VestingView extended with the funding side of the insured variant."""

    @property
    def funding_asset(self) -> str:
        """Return the symbol of the asset beneficiaries fund with."""
        ...

    @property
    def funding_to_project_ratio(self) -> int:
        """Return project-asset units paid per funding-asset unit."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was successfully validated and applied.
    ALREADY_APPLIED: Intent was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation (balance, allowance, registration).
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """
    Classification of where a transaction originated.

    Used for audit trails and reconciliation.
    """
    USER_ACTION = "user_action"           # Direct wallet action (transfer, approve)
    CONTRACT = "contract"                 # Vesting contract operation
    SYSTEM = "system"                     # Issuance and initial setup


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VestingError(Exception):
    """Base exception for all vesting-related errors."""
    pass


class AuthorizationError(VestingError):
    """Raised when the caller lacks the capability an operation requires."""
    pass


class LifecycleError(VestingError):
    """Raised when an operation is not allowed in the current activation state."""
    pass


class ValidationError(VestingError):
    """Raised when an argument or configuration value is invalid."""
    pass


class EconomicError(VestingError):
    """Raised when balances, allowances or amounts make an operation impossible."""
    pass


class Unauthorized(AuthorizationError):
    """Raised when the caller is not the owner / project role the operation needs."""
    pass


class OnlyProjectOrSender(AuthorizationError):
    """Raised when a claim is attempted by someone other than the beneficiary or the project role."""
    pass


class AlreadyActivated(LifecycleError):
    """Raised when allocations or activation are attempted after activation."""
    pass


class NotActivated(LifecycleError):
    """Raised when the emergency gate is tripped before activation."""
    pass


class VestingNotStarted(LifecycleError):
    """Raised when claiming before activation or before the start time."""
    pass


class EmergencyReleased(LifecycleError):
    """Raised when a regular claim is attempted after the emergency gate was tripped."""
    pass


class EmergencyReleaseActive(LifecycleError):
    """Raised when the emergency gate is tripped a second time."""
    pass


class NotEmergencyReleased(LifecycleError):
    """Raised when an emergency claim is attempted while the gate is closed."""
    pass


class ZeroAddress(ValidationError):
    """Raised when a role or configuration address is empty."""
    pass


class SameAddress(ValidationError):
    """Raised when the project role is transferred to its current holder."""
    pass


class ContractAsBeneficiary(ValidationError):
    """Raised when a contract is asked to allocate to its own address."""
    pass


class StartTimeInPast(ValidationError):
    """Raised when activation schedules a start before the current time."""
    pass


class StartTimeTooDistant(ValidationError):
    """Raised when activation schedules a start beyond the allowed lead time."""
    pass


class TotalAmountZero(ValidationError):
    """Raised when activating with no allocations."""
    pass


# Alias kept for callers that name the empty-allocation failure after its cause.
NoAllocationsAdded = TotalAmountZero


class NoFundsAdded(TotalAmountZero):
    """Raised when the insured variant is activated, or a decision set, without funding."""
    pass


class AllocationExceeded(ValidationError):
    """Raised when funding would exceed a beneficiary's funding allocation."""

    def __init__(self, amount: int, message: Optional[str] = None):
        self.amount = amount
        super().__init__(message or f"funding allocation exceeded by {amount}")


class VestingDurationTooLong(ValidationError):
    """Raised when a deployment configures a schedule longer than ten years."""
    pass


class NothingToClaim(EconomicError):
    """Raised when a claim or distributed-asset recovery would move zero units."""
    pass


class InsufficientAllowance(EconomicError):
    """Raised when a pull transfer exceeds the source's approval to the spender."""
    pass


class InsufficientBalance(EconomicError):
    """Raised when a transfer exceeds the source wallet's balance."""
    pass


class AssetNotRegistered(VestingError):
    """Raised when operating on an asset that has not been registered with the ledger."""
    pass


class WalletNotRegistered(VestingError):
    """Raised when operating on a wallet that has not been registered with the ledger."""
    pass


class StaleRecord(VestingError):
    """Raised when a record change was planned against a record that has since moved."""
    pass


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the specific source (contract address, wallet)
        operation: Operation within the source (e.g., "claim", "activate")
        nonce: Per-source operation counter; distinguishes repeated identical intents
    """
    origin_type: OriginType
    source_id: str
    operation: Optional[str] = None
    nonce: int = 0

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.operation:
            parts.append(f"op={self.operation}")
        if self.nonce:
            parts.append(f"nonce={self.nonce}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Asset:
    """
    A fungible asset known to the ledger.

    Attributes:
        symbol: Unique identifier (e.g., "PRJ", "USDC", "NATIVE")
        name: Human-readable name
        decimals: Display precision; quantities are always integer base units
    """
    symbol: str
    name: str
    decimals: int = 18

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Asset symbol cannot be empty")
        if self.decimals < 0:
            raise ValueError(f"Asset decimals must be non-negative, got {self.decimals}")

    def format(self, quantity: int) -> str:
        """Render a base-unit quantity in whole units."""
        if self.decimals == 0:
            return f"{quantity} {self.symbol}"
        whole, frac = divmod(abs(quantity), 10 ** self.decimals)
        sign = "-" if quantity < 0 else ""
        frac_str = str(frac).rjust(self.decimals, "0").rstrip("0") or "0"
        return f"{sign}{whole}.{frac_str} {self.symbol}"


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement of an asset between two wallets.

    Attributes:
        quantity: Integer base units to move (must be positive).
        asset: Symbol of the asset being transferred.
        source: Wallet debited.
        dest: Wallet credited.
        spender: If set, the move is a pull: it consumes source's approval to
                 spender. If None, the source itself authorizes the move.

    This class is immutable (frozen=True) and memory-optimized (slots=True).
    All fields are validated in __post_init__.
    """
    quantity: int
    asset: str
    source: str
    dest: str
    spender: Optional[str] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if not self.asset or not self.asset.strip():
            raise ValueError("Transfer asset cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Transfer quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Transfer quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")
        if self.spender is not None and self.asset == NATIVE_ASSET:
            raise ValueError("Native currency cannot be pulled by a spender")

    def __repr__(self) -> str:
        via = f" via {self.spender}" if self.spender else ""
        return f"Transfer({self.quantity} {self.asset}: {self.source}→{self.dest}{via})"


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Dicts are serialized with sorted keys, so insertion order never changes
    the result.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if hasattr(value, "as_dict"):
        return _canonicalize(value.as_dict())
    return f"R:{repr(value)}"


def _compute_intent_id(
    transfers: Tuple[Transfer, ...],
    record_changes: Tuple['RecordChange', ...],
    origin: TransactionOrigin,
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    The hash depends only on the semantic content (transfers, record changes,
    origin), never on timestamps or ledger-specific data. Same inputs always
    produce the same intent_id.
    """
    sorted_transfers = sorted(
        transfers,
        key=lambda t: (t.asset, t.source, t.dest, t.quantity, t.spender or ""),
    )

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.operation:
        content_parts.append(f"op:{origin.operation}")
    content_parts.append(f"nonce:{origin.nonce}")

    for t in sorted_transfers:
        content_parts.append(f"transfer:{t.quantity}|{t.asset}|{t.source}|{t.dest}|{t.spender or ''}")

    for rc in sorted(record_changes, key=lambda r: r.beneficiary):
        content_parts.append(
            f"record:{rc.beneficiary}|{_canonicalize(rc.old_record)}|{_canonicalize(rc.new_record)}"
        )

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Created by planning functions and applied by a vesting contract: the
    record changes go to its AllocationLedger, the transfers to the
    AssetLedger.

    Attributes:
        transfers: Tuple of asset movements between wallets
        record_changes: Tuple of beneficiary record changes (old and new)
        origin: Who/what created this transaction and why
        timestamp: When this pending transaction was created
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
    """
    transfers: Tuple[Transfer, ...]
    record_changes: Tuple['RecordChange', ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.transfers, self.record_changes, self.origin)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no transfers and no record changes."""
        return not self.transfers and not self.record_changes

    def with_origin(self, origin: TransactionOrigin) -> PendingTransaction:
        """Return a copy stamped with a different origin (intent_id recomputed)."""
        return PendingTransaction(
            transfers=self.transfers,
            record_changes=self.record_changes,
            origin=origin,
            timestamp=self.timestamp,
        )

    def amount_to(self, wallet_id: str, asset: str) -> int:
        """Sum of units of an asset this transaction credits to a wallet."""
        return sum(t.quantity for t in self.transfers if t.dest == wallet_id and t.asset == asset)

    def __repr__(self) -> str:
        return (f"PendingTransaction({len(self.transfers)} transfers, "
                f"{len(self.record_changes)} records, {self.origin})")


def build_transaction(
    view: Any,
    transfers: List[Transfer],
    record_changes: Optional[List['RecordChange']] = None,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from transfers and record changes.

    This is the standard way to create transactions.

    Args:
        view: Read-only view (provides current_time)
        transfers: Transfers to include in the transaction
        record_changes: Optional beneficiary record changes
        origin: Transaction origin (defaults to a CONTRACT origin)

    Returns:
        A PendingTransaction ready for execution

    Example:
        def compute_payout(view, user, amount):
            old = view.get_record(user)
            new = replace(old, claimed=old.claimed + amount)
            return build_transaction(
                view,
                [Transfer(amount, view.project_asset, view.address, user)],
                [RecordChange(user, old, new)],
            )
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id=getattr(view, "address", "contract"),
        )

    return PendingTransaction(
        transfers=tuple(transfers),
        record_changes=tuple(record_changes or ()),
        origin=origin,
        timestamp=view.current_time,
    )


def empty_pending_transaction(view: Any) -> PendingTransaction:
    """
    Create an empty PendingTransaction (no transfers, no record changes).

    Use this when a planning function has nothing to do.
    """
    return PendingTransaction(
        transfers=(),
        record_changes=(),
        origin=TransactionOrigin(OriginType.CONTRACT, "noop"),
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of asset movements - represents FACT.

    Created by the AssetLedger when executing a PendingTransaction.

    Attributes:
        transfers: Tuple of asset movements between wallets
        record_changes: Beneficiary record changes applied alongside (audit only)
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        intent_id: Content hash from PendingTransaction (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic position in the transaction log
    """
    transfers: Tuple[Transfer, ...]
    record_changes: Tuple['RecordChange', ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int

    def __repr__(self) -> str:
        lines = [f"Transaction {self.exec_id} [{self.origin}]"]
        for t in self.transfers:
            lines.append(f"    {t!r}")
        for rc in self.record_changes:
            lines.append(f"    {rc!r}")
        return "\n".join(lines)
