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

import logging
from typing import Optional

from launchpad.conf import get_global_settings
from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.blueprints.presale import SaleOptions
from launchpad.contracts.context import Context
from launchpad.contracts.exception import (
    ConfigurationError,
    EconomicLimitError,
    NothingToClaim,
)
from launchpad.contracts.guards import nonreentrant, only_owner
from launchpad.contracts.types import (
    NATIVE_UID,
    Address,
    Amount,
    BlueprintId,
    ContractId,
    TokenUid,
    is_null,
    public,
    view,
)

logger = logging.getLogger(__name__)

settings = get_global_settings()

LOCKER_SALT = b"liquidity-locker"


class InvalidFee(EconomicLimitError):
    """Raised when the creation fee sent does not match the configured one."""

    pass


class PresaleFactory(Blueprint):
    """Deploys presales, charges their creation fee and wires them to the shared locker."""

    owner: Address
    creation_fee: Amount
    fee_token: TokenUid  # NATIVE_UID or an asset contract id
    fees_collected: Amount

    presale_blueprint_id: BlueprintId
    liquidity_locker: ContractId
    presales: list[ContractId]

    @public
    def initialize(
        self,
        ctx: Context,
        creation_fee: Optional[Amount],
        fee_token: TokenUid,
        presale_blueprint: BlueprintId,
        locker_blueprint: BlueprintId,
    ) -> None:
        """Initialize the factory and deploy the LiquidityLocker it owns.

        Args:
            ctx: Transaction context
            creation_fee: Fee charged per presale, None for the network default
            fee_token: NATIVE_UID or the asset the fee is paid in
            presale_blueprint: Blueprint of the presales to deploy
            locker_blueprint: Blueprint of the shared locker
        """
        if creation_fee is None:
            creation_fee = Amount(settings.DEFAULT_CREATION_FEE)
        if creation_fee < 0:
            raise ConfigurationError("Invalid creation fee")
        if fee_token is None:
            raise ConfigurationError("Invalid fee token")
        if is_null(presale_blueprint) or is_null(locker_blueprint):
            raise ConfigurationError("Invalid blueprint")

        self.owner = Address(ctx.caller_id)
        self.creation_fee = creation_fee
        self.fee_token = fee_token
        self.fees_collected = Amount(0)
        self.presale_blueprint_id = presale_blueprint
        self.presales = []
        self.liquidity_locker = self.syscall.create_contract(locker_blueprint, LOCKER_SALT)

    def _collect_fee(self, ctx: Context) -> None:
        if self.fee_token == NATIVE_UID:
            if self.creation_fee == 0 and not ctx.actions:
                return
            action = ctx.get_single_action(NATIVE_UID)
            if action.amount != self.creation_fee:
                raise InvalidFee(f"Creation fee is {self.creation_fee}")
        else:
            if ctx.actions:
                raise InvalidFee("Fee must be paid in the fee token")
            if self.creation_fee > 0:
                self.syscall.call_public_method(
                    ContractId(self.fee_token),
                    "transfer_from",
                    ctx.caller_id,
                    self.syscall.get_contract_id(),
                    self.creation_fee,
                )
        self.fees_collected = Amount(self.fees_collected + self.creation_fee)

    def _generate_salt(self, ctx: Context, token: ContractId) -> bytes:
        """Generate a unique salt for contract creation."""
        return token + bytes(str(len(self.presales)), "utf-8") + bytes(str(ctx.timestamp), "utf-8")

    @public(allow_deposit=True)
    @nonreentrant
    def create_presale(
        self,
        ctx: Context,
        options: SaleOptions,
        token: ContractId,
        weth: ContractId,
        router: ContractId,
    ) -> ContractId:
        """Deploy a presale owned by the caller.

        Returns:
            The contract id of the new presale
        """
        self._collect_fee(ctx)

        presale_id = self.syscall.create_contract(
            self.presale_blueprint_id,
            self._generate_salt(ctx, token),
            weth,
            token,
            router,
            options,
            ctx.caller_id,
            self.liquidity_locker,
        )
        self.syscall.call_public_method(self.liquidity_locker, "authorize_locker", presale_id)
        self.presales.append(presale_id)

        self.syscall.emit_event(
            "PresaleCreated",
            actor=ctx.caller_id,
            presale=presale_id,
            token=token,
            amount=self.creation_fee,
            timestamp=ctx.timestamp,
        )
        logger.info("presale %s created for %s", presale_id.hex(), ctx.caller_id.hex())
        return presale_id

    @public
    @only_owner
    @nonreentrant
    def withdraw_fees(self, ctx: Context) -> None:
        """Send every collected creation fee to the owner."""
        amount = self.fees_collected
        if amount <= 0:
            raise NothingToClaim("No fees to withdraw")

        self.fees_collected = Amount(0)
        if self.fee_token == NATIVE_UID:
            self.syscall.transfer_native(self.owner, amount)
        else:
            self.syscall.call_public_method(ContractId(self.fee_token), "transfer", self.owner, amount)

        self.syscall.emit_event("FeesWithdrawn", actor=ctx.caller_id, amount=amount, timestamp=ctx.timestamp)

    @public
    @only_owner
    def set_creation_fee(self, ctx: Context, creation_fee: Amount) -> None:
        if creation_fee < 0:
            raise ConfigurationError("Invalid creation fee")
        self.creation_fee = creation_fee

    @view
    def get_presale_count(self) -> int:
        return len(self.presales)

    @view
    def get_presales(self) -> list[ContractId]:
        return list(self.presales)

    @view
    def get_liquidity_locker(self) -> ContractId:
        return self.liquidity_locker

    @view
    def get_creation_fee(self) -> Amount:
        return self.creation_fee
