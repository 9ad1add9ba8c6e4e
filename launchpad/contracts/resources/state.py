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

import logging
from typing import TYPE_CHECKING, Any

from pydantic import Field
from twisted.web.resource import Resource

from launchpad.contracts.api_arguments_parser import parse_method_call, to_json
from launchpad.contracts.types import ContractId
from launchpad.utils.api import ErrorResponse, QueryParams, Response, set_cors

if TYPE_CHECKING:
    from twisted.web.http import Request

    from launchpad.contracts.runner import Runner

logger = logging.getLogger(__name__)

_MISSING = object()


class ContractStateResource(Resource):
    """ Implements a web server GET API to read a contract state.

    Fields are read directly from the contract and view methods are run through the runner, so
    nothing a request does is ever committed.
    """
    isLeaf = True

    def __init__(self, runner: 'Runner') -> None:
        super().__init__()
        self.runner = runner

    def render_GET(self, request: 'Request') -> bytes:
        request.setHeader(b'content-type', b'application/json; charset=utf-8')
        set_cors(request, 'GET')

        params = ContractStateParams.from_request(request)
        if isinstance(params, ErrorResponse):
            request.setResponseCode(400)
            return params.json_dumpb()

        try:
            contract_id = ContractId(bytes.fromhex(params.id))
        except ValueError:
            request.setResponseCode(400)
            error_response = ErrorResponse(success=False, error=f'Invalid id: {params.id}')
            return error_response.json_dumpb()

        if not self.runner.has_contract(contract_id):
            request.setResponseCode(404)
            error_response = ErrorResponse(success=False, error=f'Contract {params.id} does not exist.')
            return error_response.json_dumpb()

        blueprint_id = self.runner.get_blueprint_id(contract_id)
        blueprint_class = self.runner.get_blueprint_class(blueprint_id)
        contract = self.runner.get_readonly_contract(contract_id)
        blueprint_fields = blueprint_class.get_fields()

        # Get fields.
        fields: dict[str, ValueSuccessResponse | ValueErrorResponse] = {}
        for field in params.fields:
            parts = field.split('.')
            if parts[0] not in blueprint_fields:
                fields[field] = ValueErrorResponse(errmsg='not a blueprint field')
                continue

            try:
                keys = [self.parse_field_key(part) for part in parts[1:]]
            except ValueError:
                fields[field] = ValueErrorResponse(errmsg='invalid format')
                continue

            value = self.get_field_value(getattr(contract, parts[0], _MISSING), keys)
            if value is _MISSING:
                fields[field] = ValueErrorResponse(errmsg='field not found')
                continue
            fields[field] = ValueSuccessResponse(value=to_json(value))

        # Call view methods.
        calls: dict[str, ValueSuccessResponse | ValueErrorResponse] = {}
        for call_info in params.calls:
            try:
                method_name, method_args = parse_method_call(blueprint_class, call_info)
                value = self.runner.call_view_method(contract_id, method_name, *method_args)
            except Exception as e:
                logger.debug('view call %s on %s failed: %r', call_info, params.id, e)
                calls[call_info] = ValueErrorResponse(errmsg=repr(e))
            else:
                calls[call_info] = ValueSuccessResponse(value=to_json(value))

        response = ContractStateResponse(
            success=True,
            id=params.id,
            blueprint_id=blueprint_id.hex(),
            blueprint_name=blueprint_class.__name__,
            native_balance=str(self.runner.get_native_balance(contract_id)),
            fields=fields,
            calls=calls,
        )
        return response.json_dumpb()

    def parse_field_key(self, key: str) -> Any:
        """Parse the key of a dict or list field: b'<hex>' for bytes, digits for indexes."""
        if key.startswith("b'") and key.endswith("'"):
            # This will raise ValueError in case it's an invalid hexa
            return bytes.fromhex(key[2:-1])
        if key.isdigit():
            return int(key)
        return key

    def get_field_value(self, value: Any, keys: list[Any]) -> Any:
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key, _MISSING)
            elif isinstance(value, tuple) and hasattr(value, '_asdict') and isinstance(key, str):
                value = value._asdict().get(key, _MISSING)
            elif isinstance(value, (list, tuple)) and isinstance(key, int) and key < len(value):
                value = value[key]
            else:
                return _MISSING
            if value is _MISSING:
                return _MISSING
        return value


class ContractStateParams(QueryParams):
    id: str
    fields: list[str] = Field(alias='fields[]', default_factory=list)
    calls: list[str] = Field(alias='calls[]', default_factory=list)


class ValueSuccessResponse(Response):
    value: Any


class ValueErrorResponse(Response):
    errmsg: str


class ContractStateResponse(Response):
    success: bool
    id: str
    blueprint_id: str
    blueprint_name: str
    native_balance: str
    fields: dict[str, ValueSuccessResponse | ValueErrorResponse]
    calls: dict[str, ValueSuccessResponse | ValueErrorResponse]


__all__ = ['ContractStateResource', 'ContractStateParams', 'ContractStateResponse']
