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

"""Decorators guarding public blueprint methods.

Both wrap methods taking `(self, ctx, ...)` and compose freely:

    @public
    @only_owner
    @nonreentrant
    def cancel(self, ctx: Context) -> None:
        ...
"""

from functools import wraps
from typing import Any, Callable, TypeVar

from launchpad.contracts.exception import ReentrantCall, Unauthorized

F = TypeVar('F', bound=Callable[..., Any])

REENTRANCY_FLAG = '_entered'


def only_owner(method: F) -> F:
    """Reject callers other than the contract's `owner` field."""
    @wraps(method)
    def wrapper(self: Any, ctx: Any, *args: Any, **kwargs: Any) -> Any:
        if ctx.caller_id != self.owner:
            raise Unauthorized('Only owner can call this method')
        return method(self, ctx, *args, **kwargs)
    return wrapper  # type: ignore[return-value]


def nonreentrant(method: F) -> F:
    """Reject any call into a guarded method while another guarded method of the same contract runs."""
    @wraps(method)
    def wrapper(self: Any, ctx: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(self, REENTRANCY_FLAG, False):
            raise ReentrantCall(f'reentrant call to {method.__name__}')
        setattr(self, REENTRANCY_FLAG, True)
        try:
            return method(self, ctx, *args, **kwargs)
        finally:
            setattr(self, REENTRANCY_FLAG, False)
    return wrapper  # type: ignore[return-value]
