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

from typing import TYPE_CHECKING, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from typing_extensions import Self

if TYPE_CHECKING:
    from twisted.web.http import Request


def set_cors(request: 'Request', method: str) -> None:
    request.setHeader(b'Access-Control-Allow-Origin', b'*')
    request.setHeader(b'Access-Control-Allow-Methods', method.encode())
    request.setHeader(b'Access-Control-Allow-Headers', b'content-type')


class QueryParams(BaseModel):
    """Base model for the query string of a GET request.

    Keys ending with `[]` are collected as lists, every other key keeps its first value.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @classmethod
    def from_request(cls, request: 'Request') -> Union[Self, 'ErrorResponse']:
        encoding = 'utf-8'
        args: dict[str, Optional[Union[str, list[str]]]] = {}
        for key, values in (request.args or {}).items():
            decoded_key = key.decode(encoding)
            if decoded_key.endswith('[]'):
                args[decoded_key] = [value.decode(encoding) for value in values]
            else:
                args[decoded_key] = values[0].decode(encoding) if values else None

        try:
            return cls.model_validate(args)
        except ValidationError as error:
            return ErrorResponse(error=str(error))


class Response(BaseModel):
    """Base model for JSON responses."""

    def json_dumpb(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode('utf-8')


class ErrorResponse(Response):
    success: bool = False
    error: str
