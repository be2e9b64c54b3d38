"""
helpers.py - Shared constants and setup helpers for vesting tests

Imported by conftest.py fixtures and directly by test modules.
"""

from datetime import datetime, timedelta

from vesting import AssetLedger, Asset, InsuredVesting


START = datetime(2025, 1, 1)

DEPLOYER = "deployer"
PROJECT = "project"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
ANYONE = "anyone"

PROJECT_SUPPLY = 10_000_000
FUNDING_PER_USER = 100_000
RATIO = 7


def make_ledger(time: datetime = START) -> AssetLedger:
    """Quiet ledger with PRJ, USDC and OTHER registered and PRJ minted to the project."""
    ledger = AssetLedger("test", initial_time=time, verbose=False, test_mode=True)
    ledger.register_asset(Asset("PRJ", "Project Token", 18))
    ledger.register_asset(Asset("USDC", "USD Coin", 6))
    ledger.register_asset(Asset("OTHER", "Unrelated Token", 18))
    ledger.mint(PROJECT, "PRJ", PROJECT_SUPPLY)
    return ledger


def advance_days(ledger: AssetLedger, days: float) -> datetime:
    """Move the ledger clock forward and return the new time."""
    ledger.advance_time(ledger.current_time + timedelta(days=days))
    return ledger.current_time


def activate_now(contract, ledger: AssetLedger, caller: str = PROJECT) -> datetime:
    """Approve whatever activation needs and activate with start = now."""
    ledger.approve(caller, contract.address, contract.project_asset, PROJECT_SUPPLY)
    start = ledger.current_time
    contract.activate(caller, start)
    return start


def fund(contract: InsuredVesting, ledger: AssetLedger, user: str, amount: int) -> None:
    """Mint, approve and add funds for a beneficiary in one step."""
    ledger.mint(user, "USDC", amount)
    ledger.approve(user, contract.address, "USDC", amount)
    contract.add_funds(user, amount)
