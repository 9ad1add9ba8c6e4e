import os
from typing import Any, Iterable, Optional
from unittest import TestCase

from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.blueprints.fungible_token import FungibleToken
from launchpad.contracts.context import Context
from launchpad.contracts.runner import Runner
from launchpad.contracts.types import (
    NATIVE_UID,
    Address,
    Amount,
    BlueprintId,
    CallerId,
    ContractId,
    DepositAction,
    TokenUid,
)

ONE = 10**18


class BlueprintTestCase(TestCase):
    """Base class for blueprint tests: a fresh runner per test plus id and context helpers."""

    now = 1_700_000_000

    def setUp(self) -> None:
        super().setUp()
        self.runner = Runner()
        self._token_blueprint_id: Optional[BlueprintId] = None

    def _register_blueprint_class(self, blueprint_class: type[Blueprint]) -> BlueprintId:
        return self.runner.register_blueprint(blueprint_class)

    def gen_random_contract_id(self) -> ContractId:
        return ContractId(os.urandom(32))

    def gen_random_token_uid(self) -> TokenUid:
        return TokenUid(os.urandom(32))

    def gen_random_address(self) -> Address:
        return Address(os.urandom(25))

    def create_context(
        self,
        caller_id: CallerId,
        timestamp: Optional[int] = None,
        actions: Iterable[DepositAction] = (),
    ) -> Context:
        return Context(
            caller_id=caller_id,
            timestamp=self.now if timestamp is None else timestamp,
            actions=actions,
        )

    def native_deposit(self, amount: int) -> DepositAction:
        return DepositAction(token_uid=NATIVE_UID, amount=Amount(amount))

    def get_readonly_contract(self, contract_id: ContractId) -> Any:
        return self.runner.get_readonly_contract(contract_id)

    def call(
        self,
        contract_id: ContractId,
        method_name: str,
        caller_id: CallerId,
        *args: Any,
        timestamp: Optional[int] = None,
        actions: Iterable[DepositAction] = (),
    ) -> Any:
        ctx = self.create_context(caller_id, timestamp=timestamp, actions=actions)
        return self.runner.call_public_method(contract_id, method_name, ctx, *args)

    def view(self, contract_id: ContractId, method_name: str, *args: Any) -> Any:
        return self.runner.call_view_method(contract_id, method_name, *args)

    def create_token(
        self,
        owner: CallerId,
        supply: int = 10_000 * ONE,
        decimals: int = 18,
        symbol: str = 'TKN',
    ) -> ContractId:
        """Deploy a FungibleToken whose whole supply belongs to `owner`."""
        if self._token_blueprint_id is None:
            self._token_blueprint_id = self._register_blueprint_class(FungibleToken)
        token_id = self.gen_random_contract_id()
        self.runner.create_contract(
            token_id,
            self._token_blueprint_id,
            self.create_context(owner),
            f'{symbol} token',
            symbol,
            decimals,
            Amount(supply),
        )
        return token_id

    def balance_of(self, token_id: ContractId, account: CallerId) -> int:
        return self.view(token_id, 'balance_of', account)
