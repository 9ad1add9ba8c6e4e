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
from typing import NamedTuple

from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.context import Context
from launchpad.contracts.exception import (
    ConfigurationError,
    ContractFail,
    NothingToClaim,
    PhaseError,
    Unauthorized,
)
from launchpad.contracts.guards import nonreentrant, only_owner
from launchpad.contracts.types import (
    Address,
    Amount,
    CallerId,
    ContractId,
    Timestamp,
    TokenUid,
    is_null,
    public,
    view,
)

logger = logging.getLogger(__name__)


class Lock(NamedTuple):
    """Pool asset held until `unlock_time`. Only `amount` ever changes, when it is withdrawn."""

    token: TokenUid
    amount: Amount
    unlock_time: Timestamp
    beneficiary: CallerId


class LockNotFound(ContractFail):
    pass


class StillLocked(PhaseError):
    pass


class LockerErrors:
    """Common error messages"""

    INVALID_TOKEN = "Invalid token address"
    INVALID_BENEFICIARY = "Invalid beneficiary"
    INVALID_AMOUNT = "Amount must be positive"
    INVALID_UNLOCK_TIME = "Unlock time must be in the future"
    UNAUTHORIZED = "Caller cannot create locks"
    NOT_BENEFICIARY = "Only the beneficiary can withdraw"
    STILL_LOCKED = "Tokens are still locked"
    ALREADY_WITHDRAWN = "Lock already withdrawn"


class LiquidityLocker(Blueprint):
    """Append-only ledger of time-locked pool assets, shared by every sale.

    Locks are created by the owner or by contracts the owner authorized, and can only be withdrawn
    by their beneficiary once the unlock time is reached. Records are never removed.
    """

    owner: CallerId
    authorized: dict[ContractId, bool]
    locks: list[Lock]

    @public
    def initialize(self, ctx: Context) -> None:
        self.owner = ctx.caller_id
        self.authorized = {}
        self.locks = []

    @public
    @only_owner
    def authorize_locker(self, ctx: Context, contract_id: ContractId) -> None:
        """Allow `contract_id` to create locks."""
        if is_null(contract_id):
            raise ConfigurationError("Invalid contract id")
        self.authorized[contract_id] = True

    def _can_lock(self, caller_id: CallerId) -> bool:
        return caller_id == self.owner or self.authorized.get(caller_id, False)

    @public
    @nonreentrant
    def lock(
        self,
        ctx: Context,
        token: TokenUid,
        amount: Amount,
        unlock_time: Timestamp,
        beneficiary: CallerId,
    ) -> int:
        """Pull `amount` of `token` from the caller and keep it until `unlock_time`.

        Returns:
            The index of the new lock
        """
        if not self._can_lock(ctx.caller_id):
            raise Unauthorized(LockerErrors.UNAUTHORIZED)
        if is_null(token):
            raise ConfigurationError(LockerErrors.INVALID_TOKEN)
        if is_null(beneficiary):
            raise ConfigurationError(LockerErrors.INVALID_BENEFICIARY)
        if amount <= 0:
            raise ConfigurationError(LockerErrors.INVALID_AMOUNT)
        if unlock_time <= ctx.timestamp:
            raise ConfigurationError(LockerErrors.INVALID_UNLOCK_TIME)

        self.syscall.call_public_method(
            ContractId(token), "transfer_from", ctx.caller_id, self.syscall.get_contract_id(), amount
        )

        index = len(self.locks)
        self.locks.append(
            Lock(token=token, amount=amount, unlock_time=unlock_time, beneficiary=beneficiary)
        )
        self.syscall.emit_event(
            "LiquidityLocked",
            actor=ctx.caller_id,
            index=index,
            token=token,
            amount=amount,
            unlock_time=unlock_time,
            beneficiary=beneficiary,
            timestamp=ctx.timestamp,
        )
        logger.info("lock %d created: %d of %s until %d", index, amount, token.hex(), unlock_time)
        return index

    @public
    @nonreentrant
    def withdraw(self, ctx: Context, index: int) -> None:
        """Send the locked amount to its beneficiary once unlocked."""
        if not 0 <= index < len(self.locks):
            raise LockNotFound(f"Lock {index} does not exist")
        lock = self.locks[index]
        if ctx.caller_id != lock.beneficiary:
            raise Unauthorized(LockerErrors.NOT_BENEFICIARY)
        if ctx.timestamp < lock.unlock_time:
            raise StillLocked(LockerErrors.STILL_LOCKED)
        if lock.amount == 0:
            raise NothingToClaim(LockerErrors.ALREADY_WITHDRAWN)

        self.locks[index] = lock._replace(amount=Amount(0))
        self.syscall.call_public_method(ContractId(lock.token), "transfer", lock.beneficiary, lock.amount)
        self.syscall.emit_event(
            "LiquidityWithdrawn",
            actor=ctx.caller_id,
            index=index,
            token=lock.token,
            amount=lock.amount,
            timestamp=ctx.timestamp,
        )

    @view
    def get_lock(self, index: int) -> Lock:
        if not 0 <= index < len(self.locks):
            raise LockNotFound(f"Lock {index} does not exist")
        return self.locks[index]

    @view
    def lock_count(self) -> int:
        return len(self.locks)

    @view
    def get_locks_by_beneficiary(self, beneficiary: Address) -> list[int]:
        """Indexes of every lock held for `beneficiary`, withdrawn ones included."""
        return [index for index, lock in enumerate(self.locks) if lock.beneficiary == beneficiary]

    @view
    def is_authorized(self, contract_id: ContractId) -> bool:
        return self._can_lock(contract_id)
