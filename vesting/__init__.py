"""
vesting - Linear Token Vesting Accounting

Allocation bookkeeping, linear vesting, idempotent claiming, an emergency
bypass and safe recovery of unencumbered balances, running against an
in-process multi-asset ledger.

Usage:
    from datetime import timedelta
    from vesting import AssetLedger, Asset, TokenVesting, VestingConfig

    ledger = AssetLedger("chain")
    ledger.register_asset(Asset("PRJ", "Project Token"))
    ledger.mint("project", "PRJ", 1_000_000)

    v = TokenVesting(ledger, "vesting", owner="deployer",
                     config=VestingConfig("PRJ", "project"))
    v.set_allocation("project", "alice", 10_000)
    ledger.approve("project", "vesting", "PRJ", 10_000)
    v.activate("project", ledger.current_time)

    ledger.advance_time(ledger.current_time + timedelta(days=365))
    v.claim("alice", "alice")
"""

# Core types
from .core import (
    VestingView,
    InsuredVestingView,
    Asset,
    Transfer,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    ExecuteResult,
    build_transaction,
    empty_pending_transaction,
    SYSTEM_WALLET,
    ZERO_ADDRESS,
    NATIVE_ASSET,
    MONTH,
    DEFAULT_VESTING_DURATION,
    MAX_START_LEAD,
    MAX_VESTING_DURATION,
    # Exceptions
    VestingError,
    AuthorizationError,
    LifecycleError,
    ValidationError,
    EconomicError,
    Unauthorized,
    OnlyProjectOrSender,
    AlreadyActivated,
    NotActivated,
    VestingNotStarted,
    EmergencyReleased,
    EmergencyReleaseActive,
    NotEmergencyReleased,
    ZeroAddress,
    SameAddress,
    ContractAsBeneficiary,
    StartTimeInPast,
    StartTimeTooDistant,
    TotalAmountZero,
    NoAllocationsAdded,
    NoFundsAdded,
    AllocationExceeded,
    VestingDurationTooLong,
    NothingToClaim,
    InsufficientAllowance,
    InsufficientBalance,
    AssetNotRegistered,
    WalletNotRegistered,
    StaleRecord,
)

# Ledger
from .ledger import AssetLedger

# Components
from .roles import Role, RoleAuthority
from .allocations import (
    BeneficiaryRecord,
    RecordChange,
    LedgerTotals,
    AllocationLedger,
    compute_set_allocation,
    compute_set_funding_allocation,
    compute_add_funds,
    compute_set_decision,
)
from .clock import (
    ActivationState,
    VestingClock,
    validate_start_time,
    compute_activation,
)
from .claims import (
    vested_amount,
    claimable_for,
    funding_to_project,
    compute_claim,
    compute_insured_claim,
)
from .emergency import (
    compute_emergency_claim,
    compute_insured_emergency_claim,
)
from .recovery import (
    distributed_liability,
    insured_project_liability,
    insured_funding_liability,
    recoverable_amount,
    compute_recover_token,
    compute_recover_native,
)
from .events import EventType, VestingEvent, EventLog
from .config import VestingConfig, InsuredVestingConfig, NativeRecoveryPolicy

# Contracts
from .contracts import VestingContract, TokenVesting, InsuredVesting, SimpleVesting

# Reporting
from .reporting import contract_status, user_status, vesting_curve, schedule_grid

__version__ = "1.0.0"
