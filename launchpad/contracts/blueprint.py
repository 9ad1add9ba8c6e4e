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

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from launchpad.contracts.runner import Syscall

# Attributes that belong to the runtime and are never part of a contract's state
RUNTIME_ATTRIBUTES = frozenset({'syscall'})


class Blueprint:
    """Base class of every contract.

    Contract state is declared with class-level annotations and assigned in `initialize`. The
    runner snapshots every instance attribute except the runtime ones, so any attribute set by a
    method is part of the transactional state.
    """

    syscall: Syscall

    def __init__(self, syscall: Syscall) -> None:
        self.syscall = syscall

    @classmethod
    def get_fields(cls) -> dict[str, Any]:
        """Declared state fields and their types, base classes first."""
        fields: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            for name, field_type in inspect.get_annotations(klass).items():
                if name not in RUNTIME_ATTRIBUTES:
                    fields[name] = field_type
        return fields
