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

"""Conversions between JSON and the values handled by blueprints.

View calls are written as `method(arg1, arg2)` where the arguments are JSON values, bytes given as
hex strings, for example `get_contribution("f0e1")` or `get_lock(0)`.
"""

import json
from typing import Any, Union, get_args, get_origin, get_type_hints

from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.exception import MethodNotView


def parse_method_call(blueprint_class: type[Blueprint], call_info: str) -> tuple[str, list[Any]]:
    """Parse `method(args...)` into the method name and its arguments converted to their types."""
    call_info = call_info.strip()
    method_name, sep, rest = call_info.partition('(')
    method_name = method_name.strip()
    if sep and not rest.endswith(')'):
        raise ValueError(f'invalid method call: {call_info}')

    method = getattr(blueprint_class, method_name, None)
    if method is None or not getattr(method, '_is_view', False):
        raise MethodNotView(f'{method_name} is not a view method')

    raw_args = json.loads(f'[{rest[:-1]}]') if sep else []
    hints = get_type_hints(method)
    hints.pop('return', None)
    param_types = list(hints.values())
    if len(raw_args) > len(param_types):
        raise ValueError(f'{method_name} takes {len(param_types)} arguments, {len(raw_args)} given')

    return method_name, [_from_json(value, param_type) for value, param_type in zip(raw_args, param_types)]


def _bytes_type(annotation: Any) -> Any:
    """The bytes subclass an annotation stands for, if any."""
    if get_origin(annotation) is Union:
        for arg in get_args(annotation):
            found = _bytes_type(arg)
            if found is not None:
                return found
        return None
    # NewType keeps the wrapped type in __supertype__
    annotation = getattr(annotation, '__supertype__', annotation)
    if isinstance(annotation, type) and issubclass(annotation, bytes):
        return annotation
    return None


def _from_json(value: Any, annotation: Any) -> Any:
    if isinstance(value, str):
        bytes_type = _bytes_type(annotation)
        if bytes_type is not None:
            return bytes_type(bytes.fromhex(value))
        return value

    if isinstance(value, list):
        item_types = get_args(annotation)
        item_type = item_types[0] if item_types else Any
        return [_from_json(item, item_type) for item in value]

    return value


def to_json(value: Any) -> Any:
    """Convert a blueprint value into something `json` can serialize."""
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, tuple) and hasattr(value, '_asdict'):
        return {key: to_json(item) for key, item in value._asdict().items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, dict):
        return {_key_to_json(key): to_json(item) for key, item in value.items()}
    return value


def _key_to_json(key: Any) -> str:
    if isinstance(key, tuple):
        return ':'.join(_key_to_json(part) for part in key)
    if isinstance(key, bytes):
        return key.hex()
    return str(key)
