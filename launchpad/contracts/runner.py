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

"""In-process host executing contract calls as atomic transactions.

A top-level call either commits every effect (contract fields, native balances, created contracts
and events) or none of them. Calls between contracts go through `Syscall` and share the outer
transaction, so each of them is a point where the callee may re-enter the caller.
"""

import copy
import hashlib
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, NamedTuple, Optional

from launchpad.conf import LaunchpadSettings, get_global_settings
from launchpad.contracts.blueprint import RUNTIME_ATTRIBUTES, Blueprint
from launchpad.contracts.context import Context
from launchpad.contracts.exception import (
    BlueprintDoesNotExist,
    CallDepthExceeded,
    ContractAlreadyExists,
    ContractDoesNotExist,
    DepositNotAllowed,
    InsufficientNativeBalance,
    InvalidActions,
    MethodNotPublic,
    MethodNotView,
)
from launchpad.contracts.types import (
    NATIVE_UID,
    Amount,
    BlueprintId,
    CallerId,
    ContractId,
    DepositAction,
    Timestamp,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Event:
    """Event emitted by a contract during a committed transaction."""
    contract_id: ContractId
    name: str
    data: dict[str, Any] = field(default_factory=dict)


class _Snapshot(NamedTuple):
    contracts: dict[ContractId, tuple[Blueprint, dict[str, Any]]]
    blueprint_ids: dict[ContractId, BlueprintId]
    native_balances: dict[bytes, int]
    events_count: int


class Syscall:
    """Host capabilities available to a contract through `self.syscall`."""

    def __init__(self, runner: 'Runner', contract_id: ContractId) -> None:
        self._runner = runner
        self._contract_id = contract_id

    def get_contract_id(self) -> ContractId:
        return self._contract_id

    def get_native_balance(self) -> Amount:
        return Amount(self._runner.get_native_balance(self._contract_id))

    def call_public_method(
        self,
        contract_id: ContractId,
        method_name: str,
        *args: Any,
        actions: Iterable[DepositAction] = (),
        **kwargs: Any,
    ) -> Any:
        """Call another contract. The called contract sees this contract as the caller."""
        return self._runner._nested_call(self._contract_id, contract_id, method_name, actions, args, kwargs)

    def call_view_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        return self._runner._view(contract_id, method_name, args, kwargs)

    def transfer_native(self, to: CallerId, amount: Amount) -> None:
        """Send native currency. Sending to a contract calls its `receive` method."""
        self._runner._transfer_native(self._contract_id, to, amount)

    def create_contract(
        self,
        blueprint_id: BlueprintId,
        salt: bytes,
        *args: Any,
        actions: Iterable[DepositAction] = (),
        **kwargs: Any,
    ) -> ContractId:
        """Create a contract whose id is derived from this contract's id and `salt`."""
        contract_id = ContractId(hashlib.sha256(self._contract_id + salt).digest())
        ctx = self._runner._child_context(self._contract_id, actions)
        self._runner._create(contract_id, blueprint_id, ctx, args, kwargs)
        return contract_id

    def emit_event(self, name: str, **data: Any) -> None:
        self._runner._emit_event(self._contract_id, name, data)


class Runner:
    """Registry of blueprints and contracts plus the native currency ledger."""

    def __init__(self, settings: Optional[LaunchpadSettings] = None) -> None:
        self.settings = settings if settings is not None else get_global_settings()
        self._blueprints: dict[BlueprintId, type[Blueprint]] = {}
        self._contracts: dict[ContractId, Blueprint] = {}
        self._blueprint_ids: dict[ContractId, BlueprintId] = {}
        self._native_balances: dict[bytes, int] = {}
        self._events: list[Event] = []
        self._call_stack: list[ContractId] = []
        self._timestamp: Optional[Timestamp] = None

    # Registry

    def register_blueprint(self, blueprint_class: type[Blueprint], blueprint_id: Optional[BlueprintId] = None) -> BlueprintId:
        if blueprint_id is None:
            name = f'{blueprint_class.__module__}.{blueprint_class.__qualname__}'
            blueprint_id = BlueprintId(hashlib.sha256(name.encode()).digest())
        self._blueprints[blueprint_id] = blueprint_class
        return blueprint_id

    def get_blueprint_class(self, blueprint_id: BlueprintId) -> type[Blueprint]:
        blueprint_class = self._blueprints.get(blueprint_id)
        if blueprint_class is None:
            raise BlueprintDoesNotExist(f'blueprint {blueprint_id.hex()} is not registered')
        return blueprint_class

    def get_blueprint_id(self, contract_id: ContractId) -> BlueprintId:
        self._get_contract(contract_id)
        return self._blueprint_ids[contract_id]

    def has_contract(self, contract_id: bytes) -> bool:
        return contract_id in self._contracts

    def get_readonly_contract(self, contract_id: ContractId) -> Blueprint:
        """Return the contract instance. Callers must only read its fields."""
        return self._get_contract(contract_id)

    # Native currency

    def get_native_balance(self, identity: bytes) -> int:
        return self._native_balances.get(identity, 0)

    def mint_native(self, identity: bytes, amount: int) -> None:
        """Credit native currency out of thin air, as a genesis allocation would."""
        if amount < 0:
            raise ValueError('amount cannot be negative')
        self._native_balances[identity] = self.get_native_balance(identity) + amount

    # Events

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    def get_events(self, name: Optional[str] = None, contract_id: Optional[bytes] = None) -> list[Event]:
        return [
            event for event in self._events
            if (name is None or event.name == name)
            and (contract_id is None or event.contract_id == contract_id)
        ]

    # Transactions

    def create_contract(
        self,
        contract_id: ContractId,
        blueprint_id: BlueprintId,
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        with self._transaction(ctx, f'create {contract_id.hex()}'):
            self._create(contract_id, blueprint_id, ctx, args, kwargs)

    def call_public_method(self, contract_id: ContractId, method_name: str, ctx: Context, *args: Any, **kwargs: Any) -> Any:
        with self._transaction(ctx, f'{method_name} on {contract_id.hex()}'):
            return self._call(contract_id, method_name, ctx, args, kwargs)

    def call_view_method(self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any) -> Any:
        """Run a view method. Any change it makes is discarded."""
        snapshot = self._take_snapshot()
        try:
            return self._view(contract_id, method_name, args, kwargs)
        finally:
            self._restore_snapshot(snapshot)

    @contextmanager
    def _transaction(self, ctx: Context, description: str) -> Iterator[None]:
        if self._call_stack:
            raise RuntimeError('a transaction is already running, use syscall for nested calls')
        snapshot = self._take_snapshot()
        self._timestamp = ctx.timestamp
        try:
            yield
        except Exception as e:
            self._restore_snapshot(snapshot)
            logger.info('transaction rolled back: %s: %s: %s', description, type(e).__name__, e)
            raise
        else:
            logger.debug('transaction committed: %s', description)
        finally:
            self._call_stack.clear()
            self._timestamp = None

    def _take_snapshot(self) -> _Snapshot:
        contracts = {
            contract_id: (contract, copy.deepcopy(self._get_state(contract)))
            for contract_id, contract in self._contracts.items()
        }
        return _Snapshot(
            contracts=contracts,
            blueprint_ids=dict(self._blueprint_ids),
            native_balances=dict(self._native_balances),
            events_count=len(self._events),
        )

    def _restore_snapshot(self, snapshot: _Snapshot) -> None:
        self._contracts = {}
        for contract_id, (contract, state) in snapshot.contracts.items():
            runtime = {name: getattr(contract, name) for name in RUNTIME_ATTRIBUTES}
            vars(contract).clear()
            vars(contract).update(state)
            vars(contract).update(runtime)
            self._contracts[contract_id] = contract
        self._blueprint_ids = snapshot.blueprint_ids
        self._native_balances = snapshot.native_balances
        del self._events[snapshot.events_count:]

    @staticmethod
    def _get_state(contract: Blueprint) -> dict[str, Any]:
        return {name: value for name, value in vars(contract).items() if name not in RUNTIME_ATTRIBUTES}

    # Execution

    def _get_contract(self, contract_id: bytes) -> Blueprint:
        contract = self._contracts.get(contract_id)
        if contract is None:
            raise ContractDoesNotExist(f'contract {contract_id.hex()} does not exist')
        return contract

    def _child_context(self, caller_id: ContractId, actions: Iterable[DepositAction]) -> Context:
        assert self._timestamp is not None
        return Context(caller_id=caller_id, timestamp=self._timestamp, actions=actions)

    def _create(
        self,
        contract_id: ContractId,
        blueprint_id: BlueprintId,
        ctx: Context,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        if contract_id in self._contracts:
            raise ContractAlreadyExists(f'contract {contract_id.hex()} already exists')
        blueprint_class = self.get_blueprint_class(blueprint_id)
        initialize = getattr(blueprint_class, 'initialize', None)
        if initialize is None or not getattr(initialize, '_is_public', False):
            raise MethodNotPublic(f'{blueprint_class.__name__}.initialize is not public')

        contract = blueprint_class(Syscall(self, contract_id))
        self._contracts[contract_id] = contract
        self._blueprint_ids[contract_id] = blueprint_id
        self._process_actions(contract_id, initialize, ctx)
        self._execute(contract_id, contract, 'initialize', ctx, args, kwargs)

    def _call(
        self,
        contract_id: ContractId,
        method_name: str,
        ctx: Context,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        contract = self._get_contract(contract_id)
        method = getattr(type(contract), method_name, None)
        if method is None or not getattr(method, '_is_public', False):
            raise MethodNotPublic(f'{type(contract).__name__}.{method_name} is not a public method')
        if method_name == 'initialize':
            raise MethodNotPublic('initialize can only run when the contract is created')
        self._process_actions(contract_id, method, ctx)
        return self._execute(contract_id, contract, method_name, ctx, args, kwargs)

    def _execute(
        self,
        contract_id: ContractId,
        contract: Blueprint,
        method_name: str,
        ctx: Context,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        if len(self._call_stack) >= self.settings.MAX_CALL_DEPTH:
            raise CallDepthExceeded(f'call depth above {self.settings.MAX_CALL_DEPTH}')
        self._call_stack.append(contract_id)
        try:
            return getattr(contract, method_name)(ctx, *args, **kwargs)
        finally:
            self._call_stack.pop()

    def _nested_call(
        self,
        caller_id: ContractId,
        contract_id: ContractId,
        method_name: str,
        actions: Iterable[DepositAction],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        ctx = self._child_context(caller_id, actions)
        return self._call(contract_id, method_name, ctx, args, kwargs)

    def _view(self, contract_id: bytes, method_name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        contract = self._get_contract(contract_id)
        method = getattr(type(contract), method_name, None)
        if method is None or not getattr(method, '_is_view', False):
            raise MethodNotView(f'{type(contract).__name__}.{method_name} is not a view method')
        return getattr(contract, method_name)(*args, **kwargs)

    def _process_actions(self, contract_id: ContractId, method: Any, ctx: Context) -> None:
        for action in ctx.actions.values():
            if action.token_uid != NATIVE_UID:
                raise InvalidActions('only native currency can be attached to a call')
            if not getattr(method, '_allow_deposit', False):
                raise DepositNotAllowed(f'{method.__name__} does not accept deposits')
            self._move_native(ctx.caller_id, contract_id, action.amount)

    def _move_native(self, source: bytes, destination: bytes, amount: int) -> None:
        if amount < 0:
            raise InvalidActions('amount cannot be negative')
        balance = self.get_native_balance(source)
        if balance < amount:
            raise InsufficientNativeBalance(f'balance {balance} is lower than {amount}')
        self._native_balances[source] = balance - amount
        self._native_balances[destination] = self.get_native_balance(destination) + amount

    def _transfer_native(self, source: ContractId, destination: CallerId, amount: Amount) -> None:
        if destination in self._contracts:
            action = DepositAction(token_uid=NATIVE_UID, amount=amount)
            self._nested_call(source, ContractId(destination), 'receive', [action], (), {})
        else:
            self._move_native(source, destination, amount)

    def _emit_event(self, contract_id: ContractId, name: str, data: dict[str, Any]) -> None:
        event = Event(contract_id=contract_id, name=name, data=data)
        self._events.append(event)
        logger.debug('event %s from %s: %s', name, contract_id.hex(), data)
