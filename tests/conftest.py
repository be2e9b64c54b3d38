"""
conftest.py - Shared pytest fixtures for vesting tests

Provides common fixtures used across unit, functional and conformance tests:
- An asset ledger with the project, funding and an unrelated asset registered
- Deployed TokenVesting / InsuredVesting / SimpleVesting instances
- Activated and funded variants of those deployments
"""

import pytest

from vesting import (
    TokenVesting, InsuredVesting, SimpleVesting,
    VestingConfig, InsuredVestingConfig,
)

from tests.helpers import (
    DEPLOYER, PROJECT, ALICE, BOB, PROJECT_SUPPLY, FUNDING_PER_USER, RATIO,
    make_ledger, activate_now, fund,
)


@pytest.fixture
def ledger():
    return make_ledger()


@pytest.fixture
def token_vesting(ledger):
    return TokenVesting(
        ledger, "vesting", owner=DEPLOYER,
        config=VestingConfig(project_asset="PRJ", project_wallet=PROJECT),
    )


@pytest.fixture
def insured_vesting(ledger):
    return InsuredVesting(
        ledger, "insured", owner=DEPLOYER,
        config=InsuredVestingConfig(
            funding_asset="USDC",
            project_asset="PRJ",
            project_wallet=PROJECT,
            funding_to_project_ratio=RATIO,
        ),
    )


@pytest.fixture
def simple_vesting(ledger):
    ledger.mint(DEPLOYER, "PRJ", PROJECT_SUPPLY)
    return SimpleVesting(ledger, "simple", admin=DEPLOYER, project_asset="PRJ")


@pytest.fixture
def activated_vesting(ledger, token_vesting):
    """TokenVesting with alice 10_000 and bob 20_000, activated at START."""
    token_vesting.set_allocation(PROJECT, ALICE, 10_000)
    token_vesting.set_allocation(PROJECT, BOB, 20_000)
    activate_now(token_vesting, ledger)
    return token_vesting


@pytest.fixture
def funded_insured(ledger, insured_vesting):
    """InsuredVesting with alice and bob each funding FUNDING_PER_USER, not yet activated."""
    for user in (ALICE, BOB):
        insured_vesting.set_allocation(PROJECT, user, FUNDING_PER_USER)
        fund(insured_vesting, ledger, user, FUNDING_PER_USER)
    return insured_vesting
