"""
ledger.py - Stateful Asset Ledger

The AssetLedger is the execution environment vesting contracts run against:
it holds every wallet's asset balances, the approvals wallets grant to
spenders, and the logical clock.

Key responsibilities:
    - Executes transfer batches atomically (all transfers succeed or none do)
    - Enforces balances and allowances; pulls consume allowance
    - Tracks time (forward only) and keeps an audit trail of executed batches
    - Idempotent on intent_id: the same intent is never applied twice
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Set, Optional, Tuple

from .core import (
    # Types
    Asset, Transfer, Transaction, PendingTransaction, TransactionOrigin,
    ExecuteResult, OriginType, BalanceMap, Positions,
    # Constants
    SYSTEM_WALLET, NATIVE_ASSET,
    # Exceptions
    VestingError, InsufficientAllowance, InsufficientBalance,
    AssetNotRegistered, WalletNotRegistered,
    build_transaction,
)


class AssetLedger:
    """
    Multi-asset wallet ledger with allowances, a logical clock and an audit trail.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own AssetLedger instance.

    Example:
        ledger = AssetLedger("chain")
        ledger.register_asset(Asset("PRJ", "Project Token"))
        ledger.register_wallet("alice")
        ledger.mint("alice", "PRJ", 1_000)
        ledger.transfer("alice", "bob", "PRJ", 250)
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Clock value at creation (default: 1970-01-01)
            verbose: Print every applied or rejected transaction
            test_mode: Permit set_balance() for fixtures (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.assets: Dict[str, Asset] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}  # (owner, spender, asset)
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0
        self._next_nonce: int = 0

        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)
        self.assets[NATIVE_ASSET] = Asset(NATIVE_ASSET, "Native Currency", 18)

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """The instant contracts read as now."""
        return self._current_time

    def get_balance(self, wallet_id: str, asset: str) -> int:
        """
        Get the balance of an asset in a wallet.

        Unregistered wallets hold nothing, so they report zero.

        Raises:
            AssetNotRegistered: If asset is not registered
        """
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        if wallet_id not in self.registered_wallets:
            return 0
        return self.balances[wallet_id].get(asset, 0)

    def allowance(self, owner: str, spender: str, asset: str) -> int:
        """Units of an asset that spender may still pull from owner."""
        return self.allowances.get((owner, spender, asset), 0)

    def get_positions(self, asset: str) -> Positions:
        """All non-zero holdings of an asset, by wallet."""
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        return {
            w: bals[asset] for w, bals in self.balances.items()
            if w != SYSTEM_WALLET and bals.get(asset, 0) != 0
        }

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Every non-empty balance held by wallet_id."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return {a: q for a, q in self.balances[wallet_id].items() if q != 0}

    def get_asset(self, symbol: str) -> Asset:
        """Return the Asset for a given symbol."""
        if symbol not in self.assets:
            raise AssetNotRegistered(f"Asset {symbol} not registered")
        return self.assets[symbol]

    def list_wallets(self) -> Set[str]:
        """Registered wallets, including the system wallet."""
        return self.registered_wallets.copy()

    def list_assets(self) -> List[str]:
        """List all registered asset symbols."""
        return sorted(self.assets.keys())

    def is_registered(self, wallet_id: str) -> bool:
        """True once wallet_id has been registered."""
        return wallet_id in self.registered_wallets

    def total_supply(self, asset: str) -> int:
        """
        Units of an asset held outside the system wallet.

        Equals everything ever minted, since only minting draws on the
        system wallet.
        """
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        return sum(
            self.balances[w].get(asset, 0)
            for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET
        )

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the shared clock to new_time.

        The clock is monotone; vesting schedules read it directly.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Add wallet_id to the set of known wallets.

        Raises:
            ValueError: If wallet is already registered or empty
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("Wallet id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def ensure_wallet(self, wallet_id: str) -> str:
        """Register a wallet unless it already exists."""
        if wallet_id not in self.registered_wallets:
            self.register_wallet(wallet_id)
        return wallet_id

    def register_asset(self, asset: Asset) -> None:
        """
        Register a new asset.

        Raises:
            ValueError: If asset symbol is already registered
        """
        if asset.symbol in self.assets:
            raise ValueError(f"Asset {asset.symbol} already registered")
        self.assets[asset.symbol] = asset
        if self.verbose:
            print(f"📝 Registered: {asset.symbol} ({asset.name}) [decimals={asset.decimals}]")

    def set_balance(self, wallet_id: str, asset: str, quantity: int) -> None:
        """
        Set a wallet's balance for an asset directly.

        WARNING: This bypasses the transfer path and is only available in
        test mode. Outside tests use mint() and transfer().

        Raises:
            VestingError: If called when test_mode is False
        """
        if not self._test_mode:
            raise VestingError(
                "set_balance() is disabled in production mode. "
                "Use mint() or transfer() to modify balances. "
                "Set test_mode=True when creating AssetLedger for testing."
            )
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        self.ensure_wallet(wallet_id)
        self.balances[wallet_id][asset] = int(quantity)

    # ========================================================================
    # WALLET ACTIONS (Mutating)
    # ========================================================================

    def _user_origin(self, wallet_id: str, operation: str) -> TransactionOrigin:
        nonce = self._next_nonce
        self._next_nonce += 1
        origin_type = OriginType.SYSTEM if wallet_id == SYSTEM_WALLET else OriginType.USER_ACTION
        return TransactionOrigin(origin_type, wallet_id, operation, nonce)

    def mint(self, wallet_id: str, asset: str, quantity: int) -> ExecuteResult:
        """Issue new units of an asset to a wallet from the system wallet."""
        pending = build_transaction(
            self,
            [Transfer(quantity, asset, SYSTEM_WALLET, wallet_id)],
            origin=self._user_origin(SYSTEM_WALLET, "mint"),
        )
        self.check(pending)
        return self.execute(pending)

    def transfer(self, source: str, dest: str, asset: str, quantity: int) -> ExecuteResult:
        """
        Move units of an asset on the source wallet's own authority.

        Raises:
            InsufficientBalance: If source does not hold quantity
        """
        pending = build_transaction(
            self,
            [Transfer(quantity, asset, source, dest)],
            origin=self._user_origin(source, "transfer"),
        )
        self.check(pending)
        return self.execute(pending)

    def approve(self, owner: str, spender: str, asset: str, quantity: int) -> None:
        """
        Set the number of units spender may pull from owner (overwrites).

        Raises:
            ValueError: If quantity is negative or the asset is native currency
        """
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        if asset == NATIVE_ASSET:
            raise ValueError("Native currency cannot be approved")
        if quantity < 0:
            raise ValueError(f"Allowance must be non-negative, got {quantity}")
        self.allowances[(owner, spender, asset)] = quantity
        if self.verbose:
            print(f"🔓 Approved: {owner} → {spender} {quantity} {asset}")

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Build the execution id recorded in the transaction log.

        Shape: exec:{ledger}:{sequence}:{micros since epoch}
        """
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def check(self, pending: PendingTransaction) -> None:
        """
        Raise the first reason the pending transaction could not be applied.

        Checks, in order: timestamp, asset and wallet registration, then the
        net effect on every allowance and every non-system balance.

        Raises:
            VestingError: For a future timestamp
            AssetNotRegistered: If a transfer names an unknown asset
            WalletNotRegistered: If a transfer debits an unknown wallet
            InsufficientAllowance: If pulls exceed an approval
            InsufficientBalance: If a balance would go negative
        """
        if pending.timestamp > self._current_time:
            raise VestingError("future timestamp")

        for t in pending.transfers:
            if t.asset not in self.assets:
                raise AssetNotRegistered(f"Asset {t.asset} not registered")
            if t.source not in self.registered_wallets:
                raise WalletNotRegistered(f"Wallet {t.source} not registered")

        pulled: Dict[Tuple[str, str, str], int] = defaultdict(int)
        for t in pending.transfers:
            if t.spender is not None:
                pulled[(t.source, t.spender, t.asset)] += t.quantity
        for key, quantity in pulled.items():
            available = self.allowances.get(key, 0)
            if quantity > available:
                owner, spender, asset = key
                raise InsufficientAllowance(
                    f"{spender} may pull {available} {asset} from {owner}, needs {quantity}"
                )

        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for t in pending.transfers:
            net[(t.source, t.asset)] -= t.quantity
            net[(t.dest, t.asset)] += t.quantity
        for (wallet, asset), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            current = self.balances.get(wallet, {}).get(asset, 0)
            if current + delta < 0:
                raise InsufficientBalance(
                    f"{wallet} holds {current} {asset}, needs {-delta}"
                )

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate a pending transaction against all constraints.

        Returns:
            Tuple of (success, reason); reason is empty on success
        """
        try:
            self.check(pending)
        except VestingError as e:
            return False, f"{type(e).__name__}: {e}"
        return True, ""

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction's transfers atomically.

        All transfers succeed together or all fail together.
        Replaying an intent_id already in seen_intent_ids is a no-op that
        reports ALREADY_APPLIED.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if the intent was already executed
            ExecuteResult.REJECTED if validation failed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        for t in pending.transfers:
            self.ensure_wallet(t.dest)

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            transfers=pending.transfers,
            record_changes=pending.record_changes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        self._execute_transfers(tx.transfers)

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            print(f"✓ APPLIED {tx!r}")
        return ExecuteResult.APPLIED

    def _execute_transfers(self, transfers) -> None:
        """Debit sources, credit destinations and consume allowances."""
        for t in transfers:
            if t.spender is not None:
                key = (t.source, t.spender, t.asset)
                self.allowances[key] = self.allowances.get(key, 0) - t.quantity
            self.balances[t.source][t.asset] -= t.quantity
            self.balances[t.dest][t.asset] += t.quantity

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> AssetLedger:
        """
        Independent copy of balances, allowances, clock and log.

        Mutating the copy never touches the original.
        """
        cloned = AssetLedger.__new__(AssetLedger)
        cloned.name = self.name
        cloned._current_time = self._current_time
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned.assets = dict(self.assets)
        cloned.allowances = dict(self.allowances)
        cloned.registered_wallets = self.registered_wallets.copy()
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.transaction_log = list(self.transaction_log)
        cloned._next_sequence = self._next_sequence
        cloned._next_nonce = self._next_nonce
        cloned.balances = {}
        for wallet, bals in self.balances.items():
            cloned.balances[wallet] = defaultdict(int, bals)
        return cloned

    def verify_conservation(self, expected_supplies: Dict[str, int] = None) -> Dict[str, object]:
        """
        Verify that every asset's circulating supply matches what was minted.

        Without expected_supplies the minted totals recorded against the
        system wallet are used.

        Returns:
            Dict with keys 'valid', 'supplies' and 'discrepancies'
        """
        supplies = {}
        discrepancies = []
        for asset in self.assets:
            supply = self.total_supply(asset)
            supplies[asset] = supply
            if expected_supplies is not None:
                expected = expected_supplies.get(asset)
                if expected is None:
                    continue
            else:
                expected = -self.balances[SYSTEM_WALLET].get(asset, 0)
            if supply != expected:
                discrepancies.append({
                    'asset': asset,
                    'expected': expected,
                    'actual': supply,
                    'difference': supply - expected,
                })
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }
