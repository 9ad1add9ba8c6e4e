# Copyright 2025 Launchpad Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from launchpad.conf import get_global_settings
from launchpad.contracts.blueprints.fungible_token import FungibleToken
from launchpad.contracts.context import Context
from launchpad.contracts.exception import Unauthorized
from launchpad.contracts.guards import nonreentrant
from launchpad.contracts.types import NATIVE_UID, Amount, CallerId, public

settings = get_global_settings()


class WrappedNative(FungibleToken):
    """Native currency wrapped 1:1 into a fungible asset.

    Every unit in circulation is backed by a unit of native currency held by this contract.
    """

    @public
    def initialize(  # type: ignore[override]
        self,
        ctx: Context,
    ) -> None:
        super().initialize(ctx, "Wrapped Native", "WNATIVE", settings.NATIVE_DECIMALS, Amount(0))

    @public(allow_deposit=True)
    def deposit(self, ctx: Context) -> None:
        """Wrap the attached native currency for the caller."""
        action = ctx.get_single_action(NATIVE_UID)
        self._mint(ctx, ctx.caller_id, action.amount)
        self.syscall.emit_event(
            "Deposit", actor=ctx.caller_id, amount=action.amount, timestamp=ctx.timestamp
        )

    @public(allow_deposit=True)
    def receive(self, ctx: Context) -> None:
        """Plain native transfers are wrapped for the sender."""
        self.deposit(ctx)

    @public
    @nonreentrant
    def withdraw(self, ctx: Context, amount: Amount) -> None:
        """Burn `amount` of the caller's balance and send the native currency back."""
        self._check_amount(amount)
        self._burn(ctx, ctx.caller_id, amount)
        self.syscall.emit_event(
            "Withdrawal", actor=ctx.caller_id, amount=amount, timestamp=ctx.timestamp
        )
        self.syscall.transfer_native(ctx.caller_id, amount)

    @public
    def mint(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        raise Unauthorized("Wrapped native can only be minted by depositing")
