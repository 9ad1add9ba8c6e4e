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

from typing import NamedTuple

from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.context import Context
from launchpad.contracts.exception import (
    ConfigurationError,
    ContractFail,
    InsufficientAllowance,
    InsufficientBalance,
    Unauthorized,
)
from launchpad.contracts.types import Amount, CallerId, is_null, public, view

MAX_DECIMALS = 36


class TokenInfo(NamedTuple):
    """General token information."""

    name: str
    symbol: str
    decimals: int
    total_supply: int


class InvalidRecipient(ContractFail):
    pass


class InvalidAmount(ContractFail):
    pass


class FungibleToken(Blueprint):
    """Fungible asset with balances, allowances and a single minter.

    The deployer receives the initial supply and becomes the minter.
    """

    name: str
    symbol: str
    token_decimals: int
    total_supply: Amount
    minter: CallerId

    balances: dict[CallerId, Amount]
    allowances: dict[tuple[CallerId, CallerId], Amount]

    @public
    def initialize(
        self,
        ctx: Context,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: Amount,
    ) -> None:
        """Create the token and mint `initial_supply` to the deployer."""
        if not name or not symbol:
            raise ConfigurationError("Name and symbol are required")
        if not 0 <= decimals <= MAX_DECIMALS:
            raise ConfigurationError("Invalid decimals")
        if initial_supply < 0:
            raise ConfigurationError("Invalid initial supply")

        self.name = name
        self.symbol = symbol
        self.token_decimals = decimals
        self.total_supply = Amount(0)
        self.minter = ctx.caller_id
        self.balances = {}
        self.allowances = {}

        if initial_supply > 0:
            self._mint(ctx, ctx.caller_id, initial_supply)

    def _check_amount(self, amount: Amount) -> None:
        if amount < 0:
            raise InvalidAmount("Amount cannot be negative")

    def _mint(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        if is_null(to):
            raise InvalidRecipient("Cannot mint to the null address")
        self.balances[to] = Amount(self.balances.get(to, 0) + amount)
        self.total_supply = Amount(self.total_supply + amount)
        self.syscall.emit_event(
            "Transfer", actor=to, sender=None, recipient=to, amount=amount, timestamp=ctx.timestamp
        )

    def _burn(self, ctx: Context, owner: CallerId, amount: Amount) -> None:
        balance = self.balances.get(owner, 0)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} is lower than {amount}")
        self.balances[owner] = Amount(balance - amount)
        self.total_supply = Amount(self.total_supply - amount)
        self.syscall.emit_event(
            "Transfer", actor=owner, sender=owner, recipient=None, amount=amount, timestamp=ctx.timestamp
        )

    def _transfer(self, ctx: Context, sender: CallerId, recipient: CallerId, amount: Amount) -> None:
        self._check_amount(amount)
        if is_null(recipient):
            raise InvalidRecipient("Cannot transfer to the null address")
        balance = self.balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} is lower than {amount}")
        self.balances[sender] = Amount(balance - amount)
        self.balances[recipient] = Amount(self.balances.get(recipient, 0) + amount)
        self.syscall.emit_event(
            "Transfer",
            actor=ctx.caller_id,
            sender=sender,
            recipient=recipient,
            amount=amount,
            timestamp=ctx.timestamp,
        )

    @public
    def transfer(self, ctx: Context, to: CallerId, amount: Amount) -> bool:
        """Move `amount` from the caller to `to`."""
        self._transfer(ctx, ctx.caller_id, to, amount)
        return True

    @public
    def transfer_from(self, ctx: Context, sender: CallerId, to: CallerId, amount: Amount) -> bool:
        """Move `amount` from `sender` to `to`, spending the caller's allowance."""
        self._check_amount(amount)
        key = (sender, ctx.caller_id)
        allowance = self.allowances.get(key, 0)
        if allowance < amount:
            raise InsufficientAllowance(f"Allowance {allowance} is lower than {amount}")
        self.allowances[key] = Amount(allowance - amount)
        self._transfer(ctx, sender, to, amount)
        return True

    @public
    def approve(self, ctx: Context, spender: CallerId, amount: Amount) -> bool:
        """Set the allowance of `spender` over the caller's balance."""
        self._check_amount(amount)
        if is_null(spender):
            raise InvalidRecipient("Cannot approve the null address")
        self.allowances[(ctx.caller_id, spender)] = amount
        self.syscall.emit_event(
            "Approval", actor=ctx.caller_id, spender=spender, amount=amount, timestamp=ctx.timestamp
        )
        return True

    @public
    def mint(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        """Create new units (minter only)."""
        if ctx.caller_id != self.minter:
            raise Unauthorized("Only minter can mint")
        self._check_amount(amount)
        self._mint(ctx, to, amount)

    @view
    def balance_of(self, account: CallerId) -> Amount:
        return self.balances.get(account, Amount(0))

    @view
    def allowance(self, owner: CallerId, spender: CallerId) -> Amount:
        return self.allowances.get((owner, spender), Amount(0))

    @view
    def decimals(self) -> int:
        return self.token_decimals

    @view
    def get_total_supply(self) -> Amount:
        return self.total_supply

    @view
    def get_token_info(self) -> TokenInfo:
        return TokenInfo(
            name=self.name,
            symbol=self.symbol,
            decimals=self.token_decimals,
            total_supply=self.total_supply,
        )
