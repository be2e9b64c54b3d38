#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn Token Vesting Step by Step

A walk through the vesting contracts running against an in-process asset
ledger. Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup        - The asset ledger, a deployment, allocations
  4-6:   Vesting      - Activation, linear claims, rejected operations
  7-8:   Safety       - Emergency release, recovery of excess
  9-10:  Insured      - Funding, token / refund decisions, settlement split

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from vesting import (
    AssetLedger, Asset, NATIVE_ASSET,
    TokenVesting, InsuredVesting, VestingConfig, InsuredVestingConfig,
    VestingError, contract_status, user_status, vesting_curve, schedule_grid,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    project_supply: int = 1_000_000
    alice_allocation: int = 10_000
    bob_allocation: int = 25_000

    # Insured variant
    funding_cap: int = 10_000
    funding_ratio: int = 7
    insured_duration: timedelta = timedelta(days=720)


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def advance(ledger: AssetLedger, days: int) -> None:
    ledger.advance_time(ledger.current_time + timedelta(days=days))
    print(f">>> ledger.advance_time(+{days} days)  # now {ledger.current_time:%Y-%m-%d}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_asset_ledger():
    """Create the asset ledger every contract runs against."""
    step_header(1, "The Asset Ledger",
        "Meet the wallets, assets, approvals and clock that contracts move value through.")

    ledger = AssetLedger("chain", initial_time=CONFIG.start_time, verbose=True)
    ledger.register_asset(Asset("PRJ", "Project Token", 18))
    ledger.register_asset(Asset("USDC", "USD Coin", 6))
    ledger.mint("project", "PRJ", CONFIG.project_supply)

    section_header("Initial State")
    print(f"Current time:  {ledger.current_time}")
    print(f"Assets:        {ledger.list_assets()}")
    print(f"project holds: {ledger.get_balance('project', 'PRJ'):,} PRJ")
    print(f"Supply check:  {ledger.verify_conservation()['valid']}")
    return ledger


def step_02_deploy(ledger: AssetLedger) -> TokenVesting:
    """Deploy a TokenVesting instance."""
    step_header(2, "Deploying a Vesting Contract",
        "A deployment names the distributed asset, the project wallet and the owner.")

    vesting = TokenVesting(
        ledger, "vesting", owner="deployer",
        config=VestingConfig(project_asset="PRJ", project_wallet="project"),
    )
    print(f">>> {vesting!r}")
    print(f"Owner:          {vesting.owner}")
    print(f"Project wallet: {vesting.project_wallet}")
    print(f"Duration:       {vesting.vesting_duration.days} days")
    return vesting


def step_03_allocations(vesting: TokenVesting):
    """Allocate entitlements before activation."""
    step_header(3, "Allocations",
        "Only the project role sets amounts, and amounts are absolute.")

    vesting.set_allocation("project", "alice", CONFIG.alice_allocation)
    vesting.set_allocation("project", "bob", CONFIG.bob_allocation * 2)
    vesting.set_allocation("project", "bob", CONFIG.bob_allocation)

    section_header("Totals")
    print(f"total_entitlement = {vesting.total_entitlement:,}")
    for user, record in vesting.allocations:
        print(f"  {user:6s} entitlement={record.entitlement:,}")


# ============================================================================
# PHASE 2: VESTING (Steps 4-6)
# ============================================================================

def step_04_activation(ledger: AssetLedger, vesting: TokenVesting):
    """Activate: pull the liability and start the clock."""
    step_header(4, "Activation",
        "Activation pulls exactly what is owed and locks allocations for good.")

    ledger.approve("project", "vesting", "PRJ", vesting.total_entitlement)
    vesting.activate("project", ledger.current_time)

    section_header("Contract Status")
    for key, value in contract_status(vesting).items():
        print(f"  {key:22s} {value}")


def step_05_claims(ledger: AssetLedger, vesting: TokenVesting):
    """Claim over the linear schedule."""
    step_header(5, "Linear Claims",
        "vested = floor(entitlement x elapsed / duration); claims pay the unclaimed part.")

    for days in (73, 292, 365):
        advance(ledger, days)
        paid = vesting.claim("alice", "alice")
        print(f"alice claimed {paid:,}; status: {user_status(vesting, 'alice')}")

    section_header("Projected Curve for bob")
    grid = schedule_grid(vesting, points=5)
    curve = vesting_curve(vesting, "bob", grid)
    for t, frac, vested in zip(grid, curve["fraction"], curve["vested"]):
        print(f"  {t:%Y-%m-%d}  {frac:6.2%}  {vested:>8,}")


def step_06_rejections(ledger: AssetLedger, vesting: TokenVesting):
    """Failed operations raise typed errors and leave no trace."""
    step_header(6, "Rejected Operations",
        "Every failure is a VestingError subclass, and state is rolled back.")

    attempts = [
        ("bob claims for alice", lambda: vesting.claim("bob", "alice")),
        ("alice claims twice", lambda: vesting.claim("alice", "alice")),
        ("late allocation", lambda: vesting.set_allocation("project", "carol", 1)),
        ("project trips emergency", lambda: vesting.emergency_release("project")),
    ]
    for label, attempt in attempts:
        try:
            attempt()
        except VestingError as e:
            print(f"  {label:26s} → {type(e).__name__}")


# ============================================================================
# PHASE 3: SAFETY (Steps 7-8)
# ============================================================================

def step_07_recovery(ledger: AssetLedger, vesting: TokenVesting):
    """Recover only what nobody is owed."""
    step_header(7, "Recovery",
        "The owner can sweep excess and stray assets, never a beneficiary's share.")

    ledger.mint("vesting", "PRJ", 500)
    ledger.mint("vesting", NATIVE_ASSET, 42)
    print(f"recoverable PRJ: {vesting.recoverable('PRJ'):,}")
    print(f"recovered PRJ:   {vesting.recover_token('deployer', 'PRJ'):,}")
    print(f"recovered native:{vesting.recover_native('deployer'):>6,}")
    try:
        vesting.recover_token("deployer", "PRJ")
    except VestingError as e:
        print(f"second recovery → {type(e).__name__}")


def step_08_emergency(ledger: AssetLedger, vesting: TokenVesting):
    """Emergency release: everyone can take their remainder at once."""
    step_header(8, "Emergency Release",
        "After the owner trips the gate, regular claims stop and remainders pay out.")

    vesting.emergency_release("deployer")
    for user in ("alice", "bob"):
        try:
            paid = vesting.emergency_claim(user, user)
            print(f"  {user} emergency claim: {paid:,}")
        except VestingError as e:
            print(f"  {user}: {type(e).__name__}")
    print(f"Contract PRJ balance: {ledger.get_balance('vesting', 'PRJ')}")


# ============================================================================
# PHASE 4: INSURED VARIANT (Steps 9-10)
# ============================================================================

def step_09_insured_setup(ledger: AssetLedger) -> InsuredVesting:
    """Fund an insured allocation."""
    step_header(9, "Insured Vesting",
        "Beneficiaries fund in USDC and vest into PRJ at a fixed ratio.")

    insured = InsuredVesting(
        ledger, "insured", owner="deployer",
        config=InsuredVestingConfig(
            funding_asset="USDC", project_asset="PRJ", project_wallet="project",
            funding_to_project_ratio=CONFIG.funding_ratio,
            vesting_duration=CONFIG.insured_duration,
        ),
    )
    insured.set_allocation("project", "carol", CONFIG.funding_cap)
    ledger.mint("carol", "USDC", CONFIG.funding_cap)
    ledger.approve("carol", "insured", "USDC", CONFIG.funding_cap)
    insured.add_funds("carol", CONFIG.funding_cap)

    ledger.approve("project", "insured", "PRJ", CONFIG.funding_cap * CONFIG.funding_ratio)
    insured.activate("project", ledger.current_time)
    return insured


def step_10_settlement(ledger: AssetLedger, insured: InsuredVesting):
    """Switch decision mid-schedule and watch the split."""
    step_header(10, "Token or Refund",
        "Each claim settles newly vested funding under the decision held at that moment.")

    advance(ledger, 14 * 30)
    units = insured.claim("carol", "carol")
    print(f"token claim:  {units:,} USDC units → {insured.funding_to_project(units):,} PRJ")

    insured.toggle_decision("carol")
    advance(ledger, 10 * 30)
    units = insured.claim("carol", "carol")
    print(f"refund claim: {units:,} USDC back")

    section_header("Carol's Final Position")
    print(f"  PRJ:  {ledger.get_balance('carol', 'PRJ'):,}")
    print(f"  USDC: {ledger.get_balance('carol', 'USDC'):,}")
    print(f"Supply check: {ledger.verify_conservation()['valid']}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TOKEN VESTING - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_asset_ledger()
    wait_for_enter()

    vesting = step_02_deploy(ledger)
    wait_for_enter()

    step_03_allocations(vesting)
    wait_for_enter()

    step_04_activation(ledger, vesting)
    wait_for_enter()

    step_05_claims(ledger, vesting)
    wait_for_enter()

    step_06_rejections(ledger, vesting)
    wait_for_enter()

    step_07_recovery(ledger, vesting)
    wait_for_enter()

    step_08_emergency(ledger, vesting)
    wait_for_enter()

    insured = step_09_insured_setup(ledger)
    wait_for_enter()

    step_10_settlement(ledger, insured)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See vesting/contracts/*.py for the deployable variants
      - See vesting/claims.py and vesting/recovery.py for the arithmetic
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
