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
from typing import NamedTuple, Optional

from launchpad.conf import get_global_settings
from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.context import Context
from launchpad.contracts.exception import (
    AccessError,
    ConfigurationError,
    ContractFail,
    EconomicLimitError,
    InsufficientBalance,
    InvalidState,
    LiquidityError,
    NothingToClaim,
    PhaseError,
    Unauthorized,
)
from launchpad.contracts.guards import nonreentrant, only_owner
from launchpad.contracts.types import (
    NATIVE_UID,
    Address,
    Amount,
    CallerId,
    ContractId,
    DepositAction,
    Timestamp,
    TokenUid,
    is_null,
    public,
    view,
)
from launchpad.utils.decimals import apply_bps, min_after_slippage, to_token_units

logger = logging.getLogger(__name__)

settings = get_global_settings()


class SaleOptions(NamedTuple):
    """Immutable configuration of a sale.

    Amounts of currency are in currency units, rates are sale tokens per whole currency unit and
    `currency` is either NATIVE_UID or the contract id of an asset.
    """

    token_deposit: Amount
    hard_cap: Amount
    soft_cap: Amount
    max_contribution: Amount
    min_contribution: Amount
    start_time: Timestamp
    end_time: Timestamp
    liquidity_bps: int
    slippage_bps: int
    presale_rate: int
    listing_rate: int
    lockup_duration: int
    currency: TokenUid


class PoolInfo(NamedTuple):
    """Mutable state of a sale."""

    token: ContractId
    router: ContractId
    weth: ContractId
    locker: ContractId
    owner: CallerId
    token_balance: int
    tokens_claimable: int
    tokens_for_liquidity: int
    total_raised: int
    owner_balance: int
    claim_deadline: int
    state: int
    paused: bool
    whitelist_enabled: bool
    pair: Optional[ContractId]
    token_decimals: int
    currency_decimals: int


class SaleState:
    """Sale states for the Presale"""

    INITIALIZED = 1  # Configured, waiting for the token deposit
    ACTIVE = 2  # Accepting contributions
    CANCELLED = 3  # Cancelled by the owner, contributions are refundable
    FINALIZED = 4  # Liquidity created and locked, contributions are claimable


class PresaleErrors:
    """Common error messages"""

    INVALID_STATE = "Invalid sale state"
    PAUSED = "Sale is paused"
    NOT_OPEN = "Sale is not open"
    INVALID_BENEFICIARY = "Invalid beneficiary"
    WRONG_CURRENCY = "Sale does not accept this currency"
    HARD_CAP = "Hard cap exceeded"
    BELOW_MIN = "Amount below minimum"
    ABOVE_MAX = "Amount above maximum"
    NOT_WHITELISTED = "Address is not whitelisted"
    SOFT_CAP = "Soft cap not reached"
    CLAIM_PERIOD_OVER = "Claim period is over"
    NOTHING_TO_CLAIM = "Nothing to claim"
    NOT_REFUNDABLE = "Sale is not refundable"
    NOTHING_TO_REFUND = "Nothing to refund"
    NOTHING_TO_WITHDRAW = "Nothing to withdraw"
    INSUFFICIENT_TOKENS = "Insufficient sale tokens"
    INSUFFICIENT_CURRENCY = "Insufficient currency held"
    CANNOT_RESCUE_CURRENCY = "Sale currency cannot be rescued"
    INVALID_ADDRESS = "Invalid address"
    UNEXPECTED_NATIVE = "Unexpected native transfer"


class InvalidOptions(ConfigurationError):
    pass


class WrongCurrency(ConfigurationError):
    pass


class SaleNotOpen(PhaseError):
    pass


class SalePaused(PhaseError):
    pass


class SoftCapNotReached(PhaseError):
    pass


class ClaimPeriodOver(PhaseError):
    pass


class NotRefundable(PhaseError):
    pass


class HardCapExceeded(EconomicLimitError):
    pass


class BelowMinimum(EconomicLimitError):
    pass


class AboveMaximum(EconomicLimitError):
    pass


class NotWhitelisted(AccessError):
    pass


class LiquificationFailed(LiquidityError):
    pass


class NoPoolAssetToLock(LiquidityError):
    pass


class Presale(Blueprint):
    """Fundraising sale of one asset against the native currency or a stablecoin.

    The owner deposits the sale asset, contributors send currency while the sale is open and, if
    the soft cap is reached, the owner finalizes the sale: part of the raise and of the tokens is
    added to an AMM pair whose pool asset gets locked in the shared LiquidityLocker. Contributors
    then claim their tokens. A cancelled sale, or one that ended below its soft cap, is refunded.
    """

    # Collaborators
    owner: CallerId
    token: ContractId
    router: ContractId
    weth: ContractId
    locker: ContractId

    options: SaleOptions
    token_decimals: int
    currency_decimals: int

    # Sale state
    state: int
    paused: bool
    token_balance: Amount  # Sale tokens held for claimants and liquidity
    tokens_claimable: Amount
    liquidity_tokens: Amount
    total_raised: Amount
    owner_balance: Amount  # Currency left to the owner after finalization
    claim_deadline: Timestamp
    pair: Optional[ContractId]

    # Contribution ledger
    contributions: dict[Address, Amount]
    contributors: list[Address]

    # Whitelist
    whitelist_enabled: bool
    whitelist: dict[Address, bool]

    @public
    def initialize(
        self,
        ctx: Context,
        weth: ContractId,
        token: ContractId,
        router: ContractId,
        options: SaleOptions,
        owner: CallerId,
        locker: ContractId,
    ) -> None:
        """Configure the sale. It stays INITIALIZED until the owner deposits the sale tokens."""
        for identity in (weth, token, router, owner, locker):
            if is_null(identity):
                raise ConfigurationError(PresaleErrors.INVALID_ADDRESS)
        options = SaleOptions(*options)
        self._validate_options(ctx, options)
        if options.currency == token:
            raise InvalidOptions("Currency must differ from the sale token")

        self.owner = owner
        self.token = token
        self.router = router
        self.weth = weth
        self.locker = locker
        self.options = options

        self.token_decimals = self.syscall.call_view_method(token, "decimals")
        if self._is_native():
            self.currency_decimals = settings.NATIVE_DECIMALS
        else:
            self.currency_decimals = self.syscall.call_view_method(ContractId(options.currency), "decimals")

        self.state = SaleState.INITIALIZED
        self.paused = False
        self.token_balance = Amount(0)
        self.tokens_claimable = Amount(0)
        self.liquidity_tokens = Amount(0)
        self.total_raised = Amount(0)
        self.owner_balance = Amount(0)
        self.claim_deadline = Timestamp(0)
        self.pair = None

        self.contributions = {}
        self.contributors = []
        self.whitelist_enabled = False
        self.whitelist = {}

    def _validate_options(self, ctx: Context, options: SaleOptions) -> None:
        if options.token_deposit <= 0:
            raise InvalidOptions("Token deposit must be positive")
        if options.hard_cap <= 0:
            raise InvalidOptions("Hard cap must be positive")
        if options.soft_cap < options.hard_cap // settings.SOFT_CAP_DIVISOR:
            raise InvalidOptions("Soft cap must be at least a quarter of the hard cap")
        if options.min_contribution <= 0:
            raise InvalidOptions("Minimum contribution must be positive")
        if options.min_contribution > options.max_contribution:
            raise InvalidOptions("Minimum contribution exceeds maximum")
        if not settings.MIN_LIQUIDITY_BPS <= options.liquidity_bps <= settings.MAX_LIQUIDITY_BPS:
            raise InvalidOptions("Invalid liquidity bps")
        if not 0 <= options.slippage_bps <= settings.MAX_SLIPPAGE_BPS:
            raise InvalidOptions("Invalid slippage bps")
        if not 0 < options.listing_rate < options.presale_rate:
            raise InvalidOptions("Listing rate must be positive and lower than presale rate")
        if options.start_time < ctx.timestamp:
            raise InvalidOptions("Start time is in the past")
        if options.end_time <= options.start_time:
            raise InvalidOptions("Invalid time range")
        if options.lockup_duration <= 0:
            raise InvalidOptions("Lockup duration must be positive")
        if options.currency is None:
            raise InvalidOptions("Currency is required")

    def _is_native(self) -> bool:
        return self.options.currency == NATIVE_UID

    def _self_id(self) -> ContractId:
        return self.syscall.get_contract_id()

    def _currency_held(self) -> int:
        if self._is_native():
            return self.syscall.get_native_balance()
        return self.syscall.call_view_method(ContractId(self.options.currency), "balance_of", self._self_id())

    def _send_currency(self, to: CallerId, amount: Amount) -> None:
        if self._is_native():
            self.syscall.transfer_native(to, amount)
        else:
            self.syscall.call_public_method(ContractId(self.options.currency), "transfer", to, amount)

    def _emit(self, ctx: Context, name: str, **data: object) -> None:
        self.syscall.emit_event(name, actor=ctx.caller_id, timestamp=ctx.timestamp, **data)

    def _check_state(self, *states: int) -> None:
        if self.state not in states:
            raise InvalidState(PresaleErrors.INVALID_STATE)

    @public
    @only_owner
    @nonreentrant
    def deposit(self, ctx: Context) -> None:
        """Pull the sale tokens from the owner and open the sale."""
        self._check_state(SaleState.INITIALIZED)

        amount = self.options.token_deposit
        self.syscall.call_public_method(self.token, "transfer_from", self.owner, self._self_id(), amount)

        self.token_balance = Amount(amount)
        self.tokens_claimable = Amount(self.tokens_for_presale())
        self.liquidity_tokens = Amount(self.tokens_for_liquidity())
        self.state = SaleState.ACTIVE

        self._emit(ctx, "Deposit", amount=amount)
        logger.info("sale %s active with %d tokens", self._self_id().hex(), amount)

    def _validate_contribution(self, ctx: Context, beneficiary: Address, amount: Amount, native: bool) -> None:
        self._check_state(SaleState.ACTIVE)
        if self.paused:
            raise SalePaused(PresaleErrors.PAUSED)
        if not self.options.start_time <= ctx.timestamp <= self.options.end_time:
            raise SaleNotOpen(PresaleErrors.NOT_OPEN)
        if is_null(beneficiary):
            raise ConfigurationError(PresaleErrors.INVALID_BENEFICIARY)
        if native != self._is_native():
            raise WrongCurrency(PresaleErrors.WRONG_CURRENCY)
        if self.total_raised + amount > self.options.hard_cap:
            raise HardCapExceeded(PresaleErrors.HARD_CAP)
        if amount < self.options.min_contribution:
            raise BelowMinimum(PresaleErrors.BELOW_MIN)
        if self.contributions.get(beneficiary, 0) + amount > self.options.max_contribution:
            raise AboveMaximum(PresaleErrors.ABOVE_MAX)
        if self.whitelist_enabled and not self.whitelist.get(beneficiary, False):
            raise NotWhitelisted(PresaleErrors.NOT_WHITELISTED)

    def _credit(self, ctx: Context, beneficiary: Address, amount: Amount) -> None:
        if beneficiary not in self.contributions:
            self.contributors.append(beneficiary)
        self.contributions[beneficiary] = Amount(self.contributions.get(beneficiary, 0) + amount)
        self.total_raised = Amount(self.total_raised + amount)
        self._emit(ctx, "Purchase", amount=amount)

    @public(allow_deposit=True)
    @nonreentrant
    def contribute(self, ctx: Context) -> None:
        """Contribute the native currency attached to the call."""
        action = ctx.get_single_action(NATIVE_UID)
        beneficiary = Address(ctx.caller_id)
        self._validate_contribution(ctx, beneficiary, action.amount, native=True)
        self._credit(ctx, beneficiary, action.amount)

    @public
    @nonreentrant
    def contribute_stablecoin(self, ctx: Context, amount: Amount) -> None:
        """Contribute `amount` of the sale's currency asset, pulled with transfer_from."""
        beneficiary = Address(ctx.caller_id)
        self._validate_contribution(ctx, beneficiary, amount, native=False)
        self._credit(ctx, beneficiary, amount)
        self.syscall.call_public_method(
            ContractId(self.options.currency), "transfer_from", ctx.caller_id, self._self_id(), amount
        )

    @public
    @only_owner
    @nonreentrant
    def finalize(self, ctx: Context) -> None:
        """Create the AMM pair, lock its pool asset and open the claim period."""
        self._check_state(SaleState.ACTIVE)
        if self.total_raised < self.options.soft_cap:
            raise SoftCapNotReached(PresaleErrors.SOFT_CAP)

        liquidity_amount = Amount(apply_bps(self.total_raised, self.options.liquidity_bps))
        liquidity_tokens = Amount(self._to_tokens(liquidity_amount, self.options.listing_rate))
        # Each claim truncates on its own, so their sum never exceeds the conversion of the total
        owed_tokens = self._to_tokens(self.total_raised, self.options.presale_rate)
        if self.token_balance < liquidity_tokens + owed_tokens:
            raise InsufficientBalance(PresaleErrors.INSUFFICIENT_TOKENS)

        used_currency = self._liquify(ctx, liquidity_amount, liquidity_tokens)

        self.token_balance = Amount(self.token_balance - liquidity_tokens)
        # Currency the AMM did not take stays with the owner
        self.owner_balance = Amount(self.total_raised - used_currency)
        self.claim_deadline = Timestamp(ctx.timestamp + settings.CLAIM_PERIOD)
        self.state = SaleState.FINALIZED

        self._emit(ctx, "Finalized", amount=self.total_raised)
        logger.info(
            "sale %s finalized: raised %d, %d to liquidity", self._self_id().hex(), self.total_raised, used_currency
        )

    def _liquify(self, ctx: Context, currency_amount: Amount, token_amount: Amount) -> Amount:
        """Add liquidity for the pair and lock the pool asset received. Returns the currency used."""
        min_tokens = Amount(min_after_slippage(token_amount, self.options.slippage_bps))
        min_currency = Amount(min_after_slippage(currency_amount, self.options.slippage_bps))
        deadline = Timestamp(ctx.timestamp + settings.LIQUIDITY_DEADLINE)
        self_id = self._self_id()

        self.syscall.call_public_method(self.token, "approve", self.router, token_amount)
        if self._is_native():
            _, used_currency, pair = self.syscall.call_public_method(
                self.router,
                "add_liquidity_native",
                TokenUid(self.token),
                token_amount,
                min_tokens,
                min_currency,
                self_id,
                deadline,
                actions=[DepositAction(token_uid=NATIVE_UID, amount=currency_amount)],
            )
        else:
            currency = ContractId(self.options.currency)
            self.syscall.call_public_method(currency, "approve", self.router, currency_amount)
            _, used_currency, pair = self.syscall.call_public_method(
                self.router,
                "add_liquidity",
                TokenUid(self.token),
                self.options.currency,
                token_amount,
                currency_amount,
                min_tokens,
                min_currency,
                self_id,
                deadline,
            )
            self.syscall.call_public_method(currency, "approve", self.router, Amount(0))
        self.syscall.call_public_method(self.token, "approve", self.router, Amount(0))

        if is_null(pair):
            raise LiquificationFailed("Liquidity pair was not created")
        self.pair = pair

        balance = self.syscall.call_view_method(pair, "balance_of", self_id)
        if balance <= 0:
            raise NoPoolAssetToLock("No pool asset to lock")

        unlock_time = Timestamp(ctx.timestamp + self.options.lockup_duration)
        self.syscall.call_public_method(pair, "approve", self.locker, balance)
        self.syscall.call_public_method(self.locker, "lock", TokenUid(pair), balance, unlock_time, self.owner)
        return Amount(used_currency)

    @public
    @only_owner
    @nonreentrant
    def cancel(self, ctx: Context) -> None:
        """Cancel the sale and return the deposited tokens to the owner."""
        self._check_state(SaleState.INITIALIZED, SaleState.ACTIVE)

        amount = self.token_balance
        self.token_balance = Amount(0)
        self.state = SaleState.CANCELLED
        if amount > 0:
            self.syscall.call_public_method(self.token, "transfer", self.owner, amount)

        self._emit(ctx, "Cancelled", amount=amount)
        logger.info("sale %s cancelled, %d tokens returned", self._self_id().hex(), amount)

    @public
    @nonreentrant
    def claim(self, ctx: Context) -> None:
        """Send the caller the tokens bought with their contribution."""
        self._check_state(SaleState.FINALIZED)
        if ctx.timestamp > self.claim_deadline:
            raise ClaimPeriodOver(PresaleErrors.CLAIM_PERIOD_OVER)

        beneficiary = Address(ctx.caller_id)
        owed = Amount(self.user_tokens(beneficiary))
        if owed <= 0:
            raise NothingToClaim(PresaleErrors.NOTHING_TO_CLAIM)
        if self.token_balance < owed:
            raise InsufficientBalance(PresaleErrors.INSUFFICIENT_TOKENS)

        self.contributions[beneficiary] = Amount(0)
        self.token_balance = Amount(self.token_balance - owed)
        self.syscall.call_public_method(self.token, "transfer", beneficiary, owed)

        self._emit(ctx, "TokenClaim", amount=owed)

    @public
    @nonreentrant
    def refund(self, ctx: Context) -> None:
        """Return the caller's contribution when the sale was cancelled or failed."""
        if not self.is_refundable(ctx.timestamp):
            raise NotRefundable(PresaleErrors.NOT_REFUNDABLE)

        beneficiary = Address(ctx.caller_id)
        amount = self.contributions.get(beneficiary, Amount(0))
        if amount <= 0:
            raise NothingToClaim(PresaleErrors.NOTHING_TO_REFUND)
        if self._currency_held() < amount:
            raise InsufficientBalance(PresaleErrors.INSUFFICIENT_CURRENCY)

        self.contributions[beneficiary] = Amount(0)
        self.total_raised = Amount(self.total_raised - amount)
        self._send_currency(beneficiary, amount)

        self._emit(ctx, "Refund", amount=amount)

    @public
    @only_owner
    @nonreentrant
    def withdraw(self, ctx: Context) -> None:
        """Send the owner the currency that was not used for liquidity."""
        self._check_state(SaleState.FINALIZED)
        amount = self.owner_balance
        if amount <= 0:
            raise NothingToClaim(PresaleErrors.NOTHING_TO_WITHDRAW)

        self.owner_balance = Amount(0)
        self._send_currency(self.owner, amount)

        self._emit(ctx, "Withdrawn", amount=amount)

    @public
    @only_owner
    @nonreentrant
    def rescue_tokens(self, ctx: Context, token: TokenUid, amount: Amount) -> None:
        """Recover assets sent to the sale by mistake.

        The sale currency is never rescuable. The sale token is rescuable once the sale is over,
        and only what exceeds the tokens still owed to claimants.
        """
        if amount <= 0:
            raise ConfigurationError("Amount must be positive")
        if token == self.options.currency:
            raise Unauthorized(PresaleErrors.CANNOT_RESCUE_CURRENCY)

        if token == NATIVE_UID:
            available = self.syscall.get_native_balance()
        else:
            available = self.syscall.call_view_method(ContractId(token), "balance_of", self._self_id())
        if token == self.token:
            if self.state < SaleState.CANCELLED:
                raise InvalidState(PresaleErrors.INVALID_STATE)
            available -= self.token_balance
        if available < amount:
            raise InsufficientBalance(f"Only {max(available, 0)} can be rescued")

        if token == NATIVE_UID:
            self.syscall.transfer_native(self.owner, amount)
        else:
            self.syscall.call_public_method(ContractId(token), "transfer", self.owner, amount)

        self._emit(ctx, "TokensRescued", token=token, amount=amount)

    @public
    @only_owner
    def toggle_whitelist(self, ctx: Context, enabled: bool) -> None:
        self.whitelist_enabled = enabled
        self._emit(ctx, "WhitelistToggled", enabled=enabled)

    @public
    @only_owner
    def update_whitelist(self, ctx: Context, addresses: list[Address], add: bool) -> None:
        """Add or remove a batch of addresses. A null address fails the whole batch."""
        for address in addresses:
            if is_null(address):
                raise ConfigurationError(PresaleErrors.INVALID_ADDRESS)
            if add:
                self.whitelist[address] = True
            else:
                self.whitelist.pop(address, None)
        self._emit(ctx, "WhitelistUpdated", count=len(addresses), add=add)

    @public
    @only_owner
    def pause(self, ctx: Context) -> None:
        self.paused = True
        self._emit(ctx, "Paused")

    @public
    @only_owner
    def unpause(self, ctx: Context) -> None:
        self.paused = False
        self._emit(ctx, "Unpaused")

    @public(allow_deposit=True)
    def receive(self, ctx: Context) -> None:
        """Accept native currency refunded by the AMM."""
        if ctx.caller_id not in (self.router, self.weth):
            raise ContractFail(PresaleErrors.UNEXPECTED_NATIVE)

    def _to_tokens(self, amount: int, rate: int) -> int:
        return to_token_units(amount, rate, self.token_decimals, self.currency_decimals)

    @view
    def get_pool_info(self) -> PoolInfo:
        return PoolInfo(
            token=self.token,
            router=self.router,
            weth=self.weth,
            locker=self.locker,
            owner=self.owner,
            token_balance=self.token_balance,
            tokens_claimable=self.tokens_claimable,
            tokens_for_liquidity=self.liquidity_tokens,
            total_raised=self.total_raised,
            owner_balance=self.owner_balance,
            claim_deadline=self.claim_deadline,
            state=self.state,
            paused=self.paused,
            whitelist_enabled=self.whitelist_enabled,
            pair=self.pair,
            token_decimals=self.token_decimals,
            currency_decimals=self.currency_decimals,
        )

    @view
    def get_options(self) -> SaleOptions:
        return self.options

    @view
    def get_contribution(self, address: Address) -> Amount:
        return self.contributions.get(address, Amount(0))

    @view
    def get_contributors(self) -> list[Address]:
        return list(self.contributors)

    @view
    def get_contributor_count(self) -> int:
        return len(self.contributors)

    @view
    def get_total_contributed(self) -> Amount:
        return self.total_raised

    @view
    def is_whitelisted(self, address: Address) -> bool:
        return self.whitelist.get(address, False)

    @view
    def tokens_for_presale(self) -> int:
        """Tokens sold if the hard cap is reached."""
        return self._to_tokens(self.options.hard_cap, self.options.presale_rate)

    @view
    def tokens_for_liquidity(self) -> int:
        """Tokens paired with the liquidity share of the hard cap at the listing rate."""
        liquidity_amount = apply_bps(self.options.hard_cap, self.options.liquidity_bps)
        return self._to_tokens(liquidity_amount, self.options.listing_rate)

    @view
    def calculate_total_tokens_needed(self) -> int:
        return self.tokens_for_presale() + self.tokens_for_liquidity()

    @view
    def user_tokens(self, address: Address) -> int:
        """Tokens owed for the current contribution of `address`."""
        return self._to_tokens(self.contributions.get(address, 0), self.options.presale_rate)

    @view
    def is_refundable(self, timestamp: Timestamp) -> bool:
        if self.state == SaleState.CANCELLED:
            return True
        return (
            self.state != SaleState.FINALIZED
            and timestamp > self.options.end_time
            and self.total_raised < self.options.soft_cap
        )
