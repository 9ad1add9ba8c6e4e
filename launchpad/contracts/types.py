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

from dataclasses import dataclass
from typing import Any, Callable, NewType, Optional, TypeVar, Union, overload

from launchpad.conf import get_global_settings

settings = get_global_settings()

Amount = NewType('Amount', int)
Timestamp = NewType('Timestamp', int)


class VertexId(bytes):
    __slots__ = ()


class ContractId(VertexId):
    __slots__ = ()


class BlueprintId(VertexId):
    __slots__ = ()


class TokenUid(bytes):
    """Asset identifier: the contract id of a token blueprint, or NATIVE_UID."""
    __slots__ = ()


class Address(bytes):
    __slots__ = ()


CallerId = Union[Address, ContractId]

NATIVE_UID = TokenUid(settings.NATIVE_TOKEN_UID)


def is_null(identity: Optional[bytes]) -> bool:
    """Null identities are missing or made only of zero bytes."""
    return identity is None or not any(identity)


@dataclass(frozen=True, slots=True)
class DepositAction:
    """Native currency moved from the caller into the called contract before the method runs."""
    token_uid: TokenUid
    amount: Amount

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError('deposit amount cannot be negative')


F = TypeVar('F', bound=Callable[..., Any])


@overload
def public(fn: F) -> F: ...


@overload
def public(*, allow_deposit: bool = False) -> Callable[[F], F]: ...


def public(fn: Optional[F] = None, *, allow_deposit: bool = False) -> Any:
    """Mark a blueprint method as callable from outside the contract.

    Native currency can only be attached to methods declared with `allow_deposit=True`.
    """
    def decorator(method: F) -> F:
        method._is_public = True  # type: ignore[attr-defined]
        method._allow_deposit = allow_deposit  # type: ignore[attr-defined]
        return method

    if fn is not None:
        return decorator(fn)
    return decorator


def view(fn: F) -> F:
    """Mark a blueprint method as a read-only entry point."""
    fn._is_view = True  # type: ignore[attr-defined]
    return fn
