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

from types import MappingProxyType
from typing import Iterable, Mapping

from launchpad.contracts.exception import InvalidActions
from launchpad.contracts.types import CallerId, DepositAction, Timestamp, TokenUid


class Context:
    """Context of a contract call: who is calling, at which time and with which deposits."""

    __slots__ = ('caller_id', 'timestamp', 'actions')

    caller_id: CallerId
    timestamp: Timestamp
    actions: Mapping[TokenUid, DepositAction]

    def __init__(self, caller_id: CallerId, timestamp: int, actions: Iterable[DepositAction] = ()) -> None:
        actions_map: dict[TokenUid, DepositAction] = {}
        for action in actions:
            if action.token_uid in actions_map:
                raise InvalidActions(f'duplicate action for token {action.token_uid.hex()}')
            actions_map[action.token_uid] = action

        self.caller_id = caller_id
        self.timestamp = Timestamp(timestamp)
        self.actions = MappingProxyType(actions_map)

    def get_single_action(self, token_uid: TokenUid) -> DepositAction:
        """Return the only action of the call, which must be for `token_uid`."""
        if len(self.actions) != 1:
            raise InvalidActions('expected exactly one action')
        action = self.actions.get(token_uid)
        if action is None:
            raise InvalidActions(f'expected an action for token {token_uid.hex()}')
        return action

    def __repr__(self) -> str:
        return f'Context(caller_id={self.caller_id.hex()}, timestamp={self.timestamp}, actions={list(self.actions.values())})'
