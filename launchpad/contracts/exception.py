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


class ContractFail(Exception):
    """Raised when a contract call must fail. The runner rolls the whole transaction back."""
    pass


# Failure kinds

class ConfigurationError(ContractFail):
    """Invalid identities or parameters when a contract is created."""
    pass


class PhaseError(ContractFail):
    """Operation invoked outside its lifecycle state or time window."""
    pass


class EconomicLimitError(ContractFail):
    """Caps, minimums or per-contributor limits violated."""
    pass


class AccessError(ContractFail):
    """Caller lacks the privilege required by the operation."""
    pass


class CustodyError(ContractFail):
    """Not enough funds held to satisfy a payout."""
    pass


class LiquidityError(ContractFail):
    """Liquidity provisioning could not complete."""
    pass


# Shared by several blueprints

class Unauthorized(AccessError):
    pass


class InvalidState(PhaseError):
    pass


class InsufficientBalance(CustodyError):
    pass


class InsufficientAllowance(CustodyError):
    pass


class NothingToClaim(CustodyError):
    pass


# Runtime

class BlueprintDoesNotExist(ContractFail):
    pass


class ContractDoesNotExist(ContractFail):
    pass


class ContractAlreadyExists(ContractFail):
    pass


class MethodNotPublic(ContractFail):
    pass


class MethodNotView(ContractFail):
    pass


class InvalidActions(ContractFail):
    pass


class DepositNotAllowed(InvalidActions):
    pass


class InsufficientNativeBalance(CustodyError):
    pass


class ReentrantCall(ContractFail):
    pass


class CallDepthExceeded(ContractFail):
    pass
