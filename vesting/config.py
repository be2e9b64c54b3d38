"""
config.py - Deployment Configuration

Frozen, self-validating parameter sets for the deployable variants.
Validation happens once, at construction, so a contract never exists with
an impossible configuration.

    VestingConfig          plain and single-role deployments
    InsuredVestingConfig   dual-asset deployment

Both can be built from a plain mapping (e.g. parsed deployment parameters)
with durations given in seconds.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Mapping

from .core import (
    DEFAULT_VESTING_DURATION, MAX_VESTING_DURATION, NATIVE_ASSET,
    ZeroAddress, VestingDurationTooLong,
)


class NativeRecoveryPolicy(Enum):
    """Where recovered native currency goes."""
    PROJECT_WALLET = "project_wallet"
    OWNER = "owner"


def _validate_duration(duration: timedelta) -> None:
    if not isinstance(duration, timedelta):
        raise ValueError(f"vesting_duration must be timedelta, got {type(duration)}")
    if duration < timedelta(0):
        raise ValueError(f"vesting_duration must be non-negative, got {duration}")
    if duration > MAX_VESTING_DURATION:
        raise VestingDurationTooLong(
            f"vesting duration {duration} exceeds {MAX_VESTING_DURATION.days} days"
        )


def _duration_from(value: Any) -> timedelta:
    if value is None:
        return DEFAULT_VESTING_DURATION
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=int(value))


@dataclass(frozen=True, slots=True)
class VestingConfig:
    """
    Parameters of a single-asset vesting deployment.

    Attributes:
        project_asset: Symbol of the distributed asset
        project_wallet: Initial holder of the project role
        vesting_duration: Length of the linear schedule
        native_recovery: Recipient policy for recovered native currency
    """
    project_asset: str
    project_wallet: str
    vesting_duration: timedelta = DEFAULT_VESTING_DURATION
    native_recovery: NativeRecoveryPolicy = NativeRecoveryPolicy.PROJECT_WALLET

    def __post_init__(self):
        if not self.project_asset:
            raise ZeroAddress("project asset cannot be the zero address")
        if not self.project_wallet:
            raise ZeroAddress("project wallet cannot be the zero address")
        if self.project_asset == NATIVE_ASSET:
            raise ValueError("native currency cannot be the distributed asset")
        _validate_duration(self.vesting_duration)

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> VestingConfig:
        """
        Build from a mapping.

        Keys: project_asset, project_wallet, vesting_duration_seconds
        (optional), native_recovery (optional, policy value string).
        """
        return cls(
            project_asset=params.get("project_asset", ""),
            project_wallet=params.get("project_wallet", ""),
            vesting_duration=_duration_from(params.get("vesting_duration_seconds")),
            native_recovery=NativeRecoveryPolicy(
                params.get("native_recovery", NativeRecoveryPolicy.PROJECT_WALLET.value)
            ),
        )


@dataclass(frozen=True, slots=True)
class InsuredVestingConfig:
    """
    Parameters of a dual-asset (insured) vesting deployment.

    Attributes:
        funding_asset: Symbol of the asset beneficiaries fund with
        project_asset: Symbol of the asset paid out on token decisions
        project_wallet: Initial holder of the project role
        funding_to_project_ratio: Project units paid per funding unit
        vesting_duration: Length of the linear schedule
    """
    funding_asset: str
    project_asset: str
    project_wallet: str
    funding_to_project_ratio: int
    vesting_duration: timedelta = DEFAULT_VESTING_DURATION

    def __post_init__(self):
        if not self.funding_asset:
            raise ZeroAddress("funding asset cannot be the zero address")
        if not self.project_asset:
            raise ZeroAddress("project asset cannot be the zero address")
        if not self.project_wallet:
            raise ZeroAddress("project wallet cannot be the zero address")
        if self.funding_asset == self.project_asset:
            raise ValueError("funding and project assets must differ")
        if NATIVE_ASSET in (self.funding_asset, self.project_asset):
            raise ValueError("native currency cannot be vested")
        ratio = self.funding_to_project_ratio
        if isinstance(ratio, bool) or not isinstance(ratio, int) or ratio <= 0:
            raise ValueError(f"funding_to_project_ratio must be a positive int, got {ratio!r}")
        _validate_duration(self.vesting_duration)

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> InsuredVestingConfig:
        """
        Build from a mapping.

        Keys: funding_asset, project_asset, project_wallet,
        funding_to_project_ratio, vesting_duration_seconds (optional).
        """
        return cls(
            funding_asset=params.get("funding_asset", ""),
            project_asset=params.get("project_asset", ""),
            project_wallet=params.get("project_wallet", ""),
            funding_to_project_ratio=int(params.get("funding_to_project_ratio", 0)),
            vesting_duration=_duration_from(params.get("vesting_duration_seconds")),
        )
