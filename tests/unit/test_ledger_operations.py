"""
test_ledger_operations.py - Unit tests for AssetLedger operations

Tests:
- Ledger creation and configuration
- Wallet and asset registration
- Minting, transfers and approvals
- check() failures and execute() results
- Time management
- Cloning and conservation checks
"""

import pytest
from datetime import datetime, timedelta

from vesting import (
    AssetLedger, Asset, Transfer, ExecuteResult, TransactionOrigin, OriginType,
    PendingTransaction, build_transaction,
    SYSTEM_WALLET, NATIVE_ASSET,
    VestingError, InsufficientAllowance, InsufficientBalance,
    AssetNotRegistered, WalletNotRegistered,
)


def _ledger():
    ledger = AssetLedger("test", initial_time=datetime(2025, 1, 1), verbose=False, test_mode=True)
    ledger.register_asset(Asset("PRJ", "Project Token"))
    return ledger


class TestLedgerCreation:
    """Tests for AssetLedger initialization."""

    def test_create_ledger_minimal(self):
        ledger = AssetLedger("test")
        assert ledger.name == "test"
        assert ledger.current_time == datetime(1970, 1, 1)

    def test_create_ledger_with_options(self):
        t = datetime(2025, 1, 1, 9, 30)
        ledger = AssetLedger(name="test", initial_time=t, verbose=False)
        assert ledger.current_time == t
        assert ledger.verbose is False

    def test_native_asset_always_registered(self):
        ledger = AssetLedger("test", verbose=False)
        assert NATIVE_ASSET in ledger.list_assets()
        assert ledger.is_registered(SYSTEM_WALLET)


class TestRegistration:
    """Tests for wallet and asset registration."""

    def test_register_wallet(self):
        ledger = _ledger()
        ledger.register_wallet("alice")
        assert ledger.is_registered("alice")

    def test_register_wallet_twice_fails(self):
        ledger = _ledger()
        ledger.register_wallet("alice")
        with pytest.raises(ValueError):
            ledger.register_wallet("alice")

    def test_ensure_wallet_is_idempotent(self):
        ledger = _ledger()
        ledger.ensure_wallet("alice")
        ledger.ensure_wallet("alice")
        assert "alice" in ledger.list_wallets()

    def test_register_asset_twice_fails(self):
        ledger = _ledger()
        with pytest.raises(ValueError):
            ledger.register_asset(Asset("PRJ", "Again"))

    def test_unknown_asset_balance_raises(self):
        ledger = _ledger()
        with pytest.raises(AssetNotRegistered):
            ledger.get_balance("alice", "NOPE")

    def test_unknown_wallet_balance_is_zero(self):
        assert _ledger().get_balance("ghost", "PRJ") == 0


class TestMintAndTransfer:
    """Tests for minting and direct transfers."""

    def test_mint_credits_wallet(self):
        ledger = _ledger()
        assert ledger.mint("alice", "PRJ", 500) == ExecuteResult.APPLIED
        assert ledger.get_balance("alice", "PRJ") == 500
        assert ledger.total_supply("PRJ") == 500

    def test_mint_unknown_asset_raises(self):
        with pytest.raises(AssetNotRegistered):
            _ledger().mint("alice", "NOPE", 1)

    def test_transfer_moves_balance(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 500)
        ledger.transfer("alice", "bob", "PRJ", 200)
        assert ledger.get_balance("alice", "PRJ") == 300
        assert ledger.get_balance("bob", "PRJ") == 200

    def test_transfer_more_than_balance_raises(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        with pytest.raises(InsufficientBalance):
            ledger.transfer("alice", "bob", "PRJ", 11)
        assert ledger.get_balance("alice", "PRJ") == 10

    def test_rejected_transfer_leaves_dest_unregistered(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        with pytest.raises(InsufficientBalance):
            ledger.transfer("alice", "bob", "PRJ", 11)
        assert not ledger.is_registered("bob")

    def test_rejected_mint_leaves_wallet_unregistered(self):
        ledger = _ledger()
        with pytest.raises(AssetNotRegistered):
            ledger.mint("alice", "NOPE", 1)
        assert not ledger.is_registered("alice")

    def test_applied_transfer_registers_dest(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        ledger.transfer("alice", "bob", "PRJ", 4)
        assert ledger.is_registered("alice")
        assert ledger.is_registered("bob")

    def test_transfer_from_unregistered_wallet_raises(self):
        with pytest.raises(WalletNotRegistered):
            _ledger().transfer("ghost", "bob", "PRJ", 1)

    def test_repeated_identical_transfers_both_apply(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        ledger.transfer("alice", "bob", "PRJ", 3)
        ledger.transfer("alice", "bob", "PRJ", 3)
        assert ledger.get_balance("bob", "PRJ") == 6

    def test_native_balance(self):
        ledger = _ledger()
        ledger.mint("vesting", NATIVE_ASSET, 12345)
        assert ledger.get_balance("vesting", NATIVE_ASSET) == 12345


class TestApprovals:
    """Tests for allowances and pull transfers."""

    def _pull(self, ledger, quantity):
        return build_transaction(
            ledger,
            [Transfer(quantity, "PRJ", "alice", "vesting", spender="vesting")],
            origin=TransactionOrigin(OriginType.CONTRACT, "vesting", "pull"),
        )

    def test_approve_sets_allowance(self):
        ledger = _ledger()
        ledger.approve("alice", "vesting", "PRJ", 100)
        assert ledger.allowance("alice", "vesting", "PRJ") == 100

    def test_approve_overwrites(self):
        ledger = _ledger()
        ledger.approve("alice", "vesting", "PRJ", 100)
        ledger.approve("alice", "vesting", "PRJ", 5)
        assert ledger.allowance("alice", "vesting", "PRJ") == 5

    def test_negative_allowance_rejected(self):
        with pytest.raises(ValueError):
            _ledger().approve("alice", "vesting", "PRJ", -1)

    def test_native_cannot_be_approved(self):
        with pytest.raises(ValueError):
            _ledger().approve("alice", "vesting", NATIVE_ASSET, 1)

    def test_pull_consumes_allowance(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 100)
        ledger.approve("alice", "vesting", "PRJ", 60)
        ledger.ensure_wallet("vesting")
        assert ledger.execute(self._pull(ledger, 40)) == ExecuteResult.APPLIED
        assert ledger.allowance("alice", "vesting", "PRJ") == 20
        assert ledger.get_balance("vesting", "PRJ") == 40

    def test_pull_beyond_allowance_raises(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 100)
        ledger.approve("alice", "vesting", "PRJ", 10)
        with pytest.raises(InsufficientAllowance):
            ledger.check(self._pull(ledger, 11))

    def test_pull_beyond_balance_raises(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 5)
        ledger.approve("alice", "vesting", "PRJ", 10)
        with pytest.raises(InsufficientBalance):
            ledger.check(self._pull(ledger, 10))

    def test_allowance_checked_before_balance(self):
        ledger = _ledger()
        ledger.register_wallet("alice")
        with pytest.raises(InsufficientAllowance):
            ledger.check(self._pull(ledger, 10))


class TestExecute:
    """Tests for execute() results."""

    def test_rejected_leaves_state_unchanged(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        pending = build_transaction(ledger, [
            Transfer(5, "PRJ", "alice", "bob"),
            Transfer(50, "PRJ", "alice", "carol"),
        ])
        log_size = len(ledger.transaction_log)
        assert ledger.execute(pending) == ExecuteResult.REJECTED
        assert ledger.get_balance("alice", "PRJ") == 10
        assert ledger.get_balance("bob", "PRJ") == 0
        assert len(ledger.transaction_log) == log_size

    def test_same_intent_applied_once(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        pending = build_transaction(ledger, [Transfer(5, "PRJ", "alice", "bob")])
        assert ledger.execute(pending) == ExecuteResult.APPLIED
        assert ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert ledger.get_balance("bob", "PRJ") == 5

    def test_empty_transaction_applies(self):
        ledger = _ledger()
        pending = PendingTransaction((), (), TransactionOrigin(OriginType.SYSTEM, "x"), ledger.current_time)
        assert ledger.execute(pending) == ExecuteResult.APPLIED
        assert ledger.transaction_log == []

    def test_future_timestamp_rejected(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        pending = PendingTransaction(
            (Transfer(1, "PRJ", "alice", "bob"),), (),
            TransactionOrigin(OriginType.USER_ACTION, "alice"),
            ledger.current_time + timedelta(seconds=1),
        )
        with pytest.raises(VestingError):
            ledger.check(pending)
        assert ledger.execute(pending) == ExecuteResult.REJECTED

    def test_log_records_sequence(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        ledger.transfer("alice", "bob", "PRJ", 1)
        assert [tx.sequence_number for tx in ledger.transaction_log] == [0, 1]
        assert ledger.transaction_log[1].exec_id.startswith("exec:test:")


class TestTimeManagement:
    """Tests for the logical clock."""

    def test_advance_time(self):
        ledger = _ledger()
        t = ledger.current_time + timedelta(days=1)
        ledger.advance_time(t)
        assert ledger.current_time == t

    def test_cannot_move_backwards(self):
        ledger = _ledger()
        with pytest.raises(ValueError):
            ledger.advance_time(ledger.current_time - timedelta(seconds=1))


class TestSetBalance:
    """Tests for the test-mode balance override."""

    def test_set_balance_in_test_mode(self):
        ledger = _ledger()
        ledger.set_balance("alice", "PRJ", 77)
        assert ledger.get_balance("alice", "PRJ") == 77

    def test_set_balance_disabled_in_production(self):
        ledger = AssetLedger("prod", verbose=False)
        ledger.register_asset(Asset("PRJ", "Project Token"))
        with pytest.raises(VestingError):
            ledger.set_balance("alice", "PRJ", 1)


class TestCloneAndConservation:
    """Tests for clone() and verify_conservation()."""

    def test_clone_is_independent(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 10)
        ledger.approve("alice", "bob", "PRJ", 3)
        cloned = ledger.clone()
        cloned.transfer("alice", "bob", "PRJ", 4)
        cloned.approve("alice", "bob", "PRJ", 0)
        assert ledger.get_balance("alice", "PRJ") == 10
        assert ledger.allowance("alice", "bob", "PRJ") == 3
        assert cloned.get_balance("alice", "PRJ") == 6

    def test_conservation_holds_after_transfers(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 100)
        ledger.transfer("alice", "bob", "PRJ", 40)
        ledger.transfer("bob", "carol", "PRJ", 15)
        result = ledger.verify_conservation()
        assert result["valid"]
        assert result["supplies"]["PRJ"] == 100

    def test_conservation_against_expected(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 100)
        result = ledger.verify_conservation({"PRJ": 99})
        assert not result["valid"]
        assert result["discrepancies"][0]["difference"] == 1

    def test_positions(self):
        ledger = _ledger()
        ledger.mint("alice", "PRJ", 100)
        ledger.transfer("alice", "bob", "PRJ", 100)
        assert ledger.get_positions("PRJ") == {"bob": 100}
        assert ledger.get_wallet_balances("bob") == {"PRJ": 100}
