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
from math import isqrt
from typing import Optional

from launchpad.conf import get_global_settings
from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.context import Context
from launchpad.contracts.exception import ConfigurationError, LiquidityError
from launchpad.contracts.guards import nonreentrant
from launchpad.contracts.types import (
    NATIVE_UID,
    Amount,
    BlueprintId,
    CallerId,
    ContractId,
    DepositAction,
    Timestamp,
    TokenUid,
    is_null,
    public,
    view,
)

logger = logging.getLogger(__name__)

settings = get_global_settings()

PAIR_DECIMALS = 18


class InvalidTokens(ConfigurationError):
    """Raised when the two assets of a pair are missing or identical."""

    pass


class Expired(LiquidityError):
    """Raised when the deadline of a liquidity addition has passed."""

    pass


class InsufficientAmount(LiquidityError):
    """Raised when an amount falls below the minimum accepted by the caller."""

    pass


class InsufficientLiquidityMinted(LiquidityError):
    """Raised when a deposit is too small to mint any pool asset."""

    pass


class PairNotFound(LiquidityError):
    """Raised when querying a pair that was never created."""

    pass


class LiquidityRouter(Blueprint):
    """Provisioning side of a constant-product AMM.

    Each pair is identified by the contract id of its pool asset, a FungibleToken minted by the
    router. The router keeps the reserves of every pair, the way a pool manager does, and only
    supports adding liquidity.
    """

    wrapped_native_id: ContractId
    pair_blueprint_id: BlueprintId

    # (token_a, token_b) with token_a < token_b
    pairs: dict[tuple[TokenUid, TokenUid], ContractId]
    pair_token_a: dict[ContractId, TokenUid]
    pair_token_b: dict[ContractId, TokenUid]
    pair_reserve_a: dict[ContractId, Amount]
    pair_reserve_b: dict[ContractId, Amount]

    @public
    def initialize(self, ctx: Context, wrapped_native: ContractId, pair_blueprint: BlueprintId) -> None:
        """Initialize the router.

        Args:
            ctx: The transaction context
            wrapped_native: Contract id of the native currency wrapper
            pair_blueprint: Blueprint used to deploy the pool asset of each pair
        """
        if is_null(wrapped_native):
            raise ConfigurationError("Invalid wrapped native")
        if is_null(pair_blueprint):
            raise ConfigurationError("Invalid pair blueprint")

        self.wrapped_native_id = wrapped_native
        self.pair_blueprint_id = pair_blueprint
        self.pairs = {}
        self.pair_token_a = {}
        self.pair_token_b = {}
        self.pair_reserve_a = {}
        self.pair_reserve_b = {}

    def _sort_tokens(self, token_a: TokenUid, token_b: TokenUid) -> tuple[TokenUid, TokenUid]:
        if is_null(token_a) or is_null(token_b):
            raise InvalidTokens("Pair tokens must be asset contracts")
        if token_a == token_b:
            raise InvalidTokens("Pair tokens must be different")
        if token_a > token_b:
            return token_b, token_a
        return token_a, token_b

    def _get_or_create_pair(self, token_a: TokenUid, token_b: TokenUid) -> ContractId:
        key = self._sort_tokens(token_a, token_b)
        pair = self.pairs.get(key)
        if pair is not None:
            return pair

        pair = self.syscall.create_contract(
            self.pair_blueprint_id,
            key[0] + key[1],
            "Launchpad LP",
            "LLP",
            PAIR_DECIMALS,
            Amount(0),
        )
        self.pairs[key] = pair
        self.pair_token_a[pair] = key[0]
        self.pair_token_b[pair] = key[1]
        self.pair_reserve_a[pair] = Amount(0)
        self.pair_reserve_b[pair] = Amount(0)
        logger.info("created pair %s for %s and %s", pair.hex(), key[0].hex(), key[1].hex())
        return pair

    def _reserves_for(self, pair: ContractId, token_a: TokenUid) -> tuple[Amount, Amount]:
        """Reserves of `pair`, with the reserve of `token_a` first."""
        if token_a == self.pair_token_a[pair]:
            return self.pair_reserve_a[pair], self.pair_reserve_b[pair]
        return self.pair_reserve_b[pair], self.pair_reserve_a[pair]

    def _compute_amounts(
        self,
        pair: ContractId,
        token_a: TokenUid,
        desired_a: Amount,
        desired_b: Amount,
        min_a: Amount,
        min_b: Amount,
    ) -> tuple[Amount, Amount]:
        if desired_a <= 0 or desired_b <= 0:
            raise InsufficientAmount("Desired amounts must be positive")
        if desired_a < min_a or desired_b < min_b:
            raise InsufficientAmount("Desired amount below its minimum")

        reserve_a, reserve_b = self._reserves_for(pair, token_a)
        if reserve_a == 0 and reserve_b == 0:
            return desired_a, desired_b

        optimal_b = self.quote(desired_a, reserve_a, reserve_b)
        if optimal_b <= desired_b:
            if optimal_b < min_b:
                raise InsufficientAmount("Insufficient B amount")
            return desired_a, optimal_b

        optimal_a = self.quote(desired_b, reserve_b, reserve_a)
        if optimal_a > desired_a or optimal_a < min_a:
            raise InsufficientAmount("Insufficient A amount")
        return optimal_a, desired_b

    def _mint_liquidity(
        self,
        ctx: Context,
        pair: ContractId,
        token_a: TokenUid,
        amount_a: Amount,
        amount_b: Amount,
        to: CallerId,
    ) -> Amount:
        reserve_a, reserve_b = self._reserves_for(pair, token_a)
        supply = self.syscall.call_view_method(pair, "get_total_supply")

        if supply == 0:
            liquidity = isqrt(amount_a * amount_b) - settings.MINIMUM_LIQUIDITY
            if liquidity <= 0:
                raise InsufficientLiquidityMinted("Insufficient liquidity minted")
            # The minimum liquidity stays with the router forever
            self.syscall.call_public_method(
                pair, "mint", self.syscall.get_contract_id(), Amount(settings.MINIMUM_LIQUIDITY)
            )
        else:
            liquidity = min(amount_a * supply // reserve_a, amount_b * supply // reserve_b)
            if liquidity <= 0:
                raise InsufficientLiquidityMinted("Insufficient liquidity minted")

        if token_a == self.pair_token_a[pair]:
            self.pair_reserve_a[pair] = Amount(self.pair_reserve_a[pair] + amount_a)
            self.pair_reserve_b[pair] = Amount(self.pair_reserve_b[pair] + amount_b)
        else:
            self.pair_reserve_a[pair] = Amount(self.pair_reserve_a[pair] + amount_b)
            self.pair_reserve_b[pair] = Amount(self.pair_reserve_b[pair] + amount_a)

        self.syscall.call_public_method(pair, "mint", to, Amount(liquidity))
        self.syscall.emit_event(
            "LiquidityAdded",
            actor=ctx.caller_id,
            pair=pair,
            amount_a=amount_a,
            amount_b=amount_b,
            amount=liquidity,
            timestamp=ctx.timestamp,
        )
        return Amount(liquidity)

    def _check_deadline(self, ctx: Context, deadline: Timestamp) -> None:
        if ctx.timestamp > deadline:
            raise Expired("Deadline expired")

    def _pull(self, ctx: Context, token: TokenUid, amount: Amount) -> None:
        self.syscall.call_public_method(
            ContractId(token), "transfer_from", ctx.caller_id, self.syscall.get_contract_id(), amount
        )

    @public
    @nonreentrant
    def add_liquidity(
        self,
        ctx: Context,
        token_a: TokenUid,
        token_b: TokenUid,
        desired_a: Amount,
        desired_b: Amount,
        min_a: Amount,
        min_b: Amount,
        to: CallerId,
        deadline: Timestamp,
    ) -> tuple[Amount, Amount, ContractId]:
        """Add liquidity to the pair of two assets, creating it on first use.

        Both assets are pulled from the caller with transfer_from, so the caller must have approved
        the router for at least `desired_a` and `desired_b`.

        Returns:
            A tuple of (used_a, used_b, pair)
        """
        self._check_deadline(ctx, deadline)
        pair = self._get_or_create_pair(token_a, token_b)
        used_a, used_b = self._compute_amounts(pair, token_a, desired_a, desired_b, min_a, min_b)

        self._pull(ctx, token_a, used_a)
        self._pull(ctx, token_b, used_b)
        self._mint_liquidity(ctx, pair, token_a, used_a, used_b, to)
        return used_a, used_b, pair

    @public(allow_deposit=True)
    @nonreentrant
    def add_liquidity_native(
        self,
        ctx: Context,
        token: TokenUid,
        desired_token: Amount,
        min_token: Amount,
        min_native: Amount,
        to: CallerId,
        deadline: Timestamp,
    ) -> tuple[Amount, Amount, ContractId]:
        """Add liquidity between an asset and the native currency attached to the call.

        The used native amount is wrapped. Whatever is not used is sent back to the caller.

        Returns:
            A tuple of (used_token, used_native, pair)
        """
        self._check_deadline(ctx, deadline)
        action = ctx.get_single_action(NATIVE_UID)
        wrapped = TokenUid(self.wrapped_native_id)

        pair = self._get_or_create_pair(token, wrapped)
        used_token, used_native = self._compute_amounts(
            pair, token, desired_token, action.amount, min_token, min_native
        )

        self._pull(ctx, token, used_token)
        self.syscall.call_public_method(
            self.wrapped_native_id,
            "deposit",
            actions=[DepositAction(token_uid=NATIVE_UID, amount=used_native)],
        )
        self._mint_liquidity(ctx, pair, token, used_token, used_native, to)

        excess = Amount(action.amount - used_native)
        if excess > 0:
            self.syscall.transfer_native(ctx.caller_id, excess)
        return used_token, used_native, pair

    @view
    def wrapped_native(self) -> ContractId:
        return self.wrapped_native_id

    @view
    def get_pair(self, token_a: TokenUid, token_b: TokenUid) -> Optional[ContractId]:
        return self.pairs.get(self._sort_tokens(token_a, token_b))

    @view
    def get_reserves(self, token_a: TokenUid, token_b: TokenUid) -> tuple[Amount, Amount]:
        """Reserves of the pair, in the order the tokens were given."""
        pair = self.get_pair(token_a, token_b)
        if pair is None:
            raise PairNotFound("Pair does not exist")
        return self._reserves_for(pair, token_a)

    @view
    def quote(self, amount_a: Amount, reserve_a: Amount, reserve_b: Amount) -> Amount:
        """Return amount_b such that amount_b/amount_a = reserve_b/reserve_a"""
        if amount_a <= 0:
            raise InsufficientAmount("Amount must be positive")
        if reserve_a <= 0 or reserve_b <= 0:
            raise InsufficientAmount("Insufficient liquidity")
        return Amount(amount_a * reserve_b // reserve_a)
