"""
simple.py - Single-Role Vesting

The lightweight deployment: one administrative identity is both owner and
project role. It sets amounts, activates, may claim for users, and receives
everything recovered, including native currency. Handing over ownership
hands over the project role with it.

recover() sweeps an asset's excess and the native balance in one call and
never fails for lack of excess.
"""

from __future__ import annotations
from datetime import timedelta

from ..core import DEFAULT_VESTING_DURATION, NATIVE_ASSET
from ..ledger import AssetLedger
from ..roles import RoleAuthority
from ..config import VestingConfig, NativeRecoveryPolicy
from ..events import EventType
from ..recovery import compute_recover_token, compute_recover_native
from .vesting import TokenVesting


class SimpleVesting(TokenVesting):
    """TokenVesting run by a single administrator."""

    def __init__(
        self,
        ledger: AssetLedger,
        address: str,
        admin: str,
        project_asset: str,
        vesting_duration: timedelta = DEFAULT_VESTING_DURATION,
    ):
        config = VestingConfig(
            project_asset=project_asset,
            project_wallet=admin,
            vesting_duration=vesting_duration,
            native_recovery=NativeRecoveryPolicy.OWNER,
        )
        super().__init__(ledger, address, admin, config, roles=RoleAuthority.single(admin))

    @property
    def admin(self) -> str:
        return self.owner

    def recover(self, caller: str, asset: str) -> int:
        """
        Send the excess of `asset` and the whole native balance to the admin.

        Returns:
            Units of `asset` recovered (zero when there was no excess)

        Raises:
            Unauthorized: If caller is not the admin
        """
        with self._operation("recover", caller) as emitted:
            self.roles.require_owner(caller)
            recipient = self.owner
            plans = [compute_recover_token(self, asset, recipient, strict=False)]
            if asset != NATIVE_ASSET:
                plans.append(compute_recover_native(self, recipient))
            pending = self._commit(self._merge(plans), "recover")
            for swept in sorted({t.asset for t in pending.transfers}):
                emitted.append(self._event(
                    EventType.RECOVERED, caller,
                    amount=pending.amount_to(recipient, swept), asset=swept,
                    recipient=recipient,
                ))
        return pending.amount_to(recipient, asset)
