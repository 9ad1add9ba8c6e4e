from typing import Optional

from launchpad.contracts.blueprint import Blueprint
from launchpad.contracts.blueprints.fungible_token import FungibleToken
from launchpad.contracts.blueprints.presale import SaleState
from launchpad.contracts.context import Context
from launchpad.contracts.exception import ReentrantCall
from launchpad.contracts.types import NATIVE_UID, Amount, CallerId, ContractId, TokenUid, public
from tests.contracts.blueprints.presale_case import PresaleBaseTestCase
from tests.contracts.unittest import ONE


class ReentrantToken(FungibleToken):
    """Token calling back into `target` whenever `target` sends it."""

    target: Optional[ContractId]
    method: str

    @public
    def initialize(self, ctx: Context, name: str, symbol: str, decimals: int, initial_supply: Amount) -> None:
        super().initialize(ctx, name, symbol, decimals, initial_supply)
        self.target = None
        self.method = ''

    @public
    def set_attack(self, ctx: Context, target: ContractId, method: str) -> None:
        self.target = target
        self.method = method

    @public
    def transfer(self, ctx: Context, to: CallerId, amount: Amount) -> bool:
        result = super().transfer(ctx, to, amount)
        if self.target is not None and ctx.caller_id == self.target:
            self.syscall.call_public_method(self.target, self.method)
        return result


class RefundAttacker(Blueprint):
    """Contributor contract asking for a second refund while the first one is paid."""

    presale: ContractId
    reenter: bool

    @public
    def initialize(self, ctx: Context, presale: ContractId, reenter: bool) -> None:
        self.presale = presale
        self.reenter = reenter

    @public(allow_deposit=True)
    def contribute(self, ctx: Context) -> None:
        action = ctx.get_single_action(NATIVE_UID)
        self.syscall.call_public_method(self.presale, 'contribute', actions=[action])

    @public
    def refund(self, ctx: Context) -> None:
        self.syscall.call_public_method(self.presale, 'refund')

    @public(allow_deposit=True)
    def receive(self, ctx: Context) -> None:
        if self.reenter:
            self.syscall.call_public_method(self.presale, 'refund')


class PresaleReentrancyTestCase(PresaleBaseTestCase):
    """Re-entry through token transfers and native payouts is rejected."""

    def setUp(self):
        super().setUp()
        self.evil_blueprint_id = self._register_blueprint_class(ReentrantToken)
        self.attacker_blueprint_id = self._register_blueprint_class(RefundAttacker)

        self.token = self.gen_random_contract_id()
        self.runner.create_contract(
            self.token,
            self.evil_blueprint_id,
            self.create_context(self.owner),
            'Evil',
            'EVL',
            18,
            Amount(10_000 * ONE),
        )

    def _finalized_presale(self) -> ContractId:
        presale = self.create_presale()
        self.deposit_tokens(presale)
        self.contribute(presale, self.user1, 2 * ONE)
        self.contribute(presale, self.user2, ONE)
        self.finalize(presale)
        return presale

    def test_claim_reentry(self):
        presale = self._finalized_presale()
        self.call(self.token, 'set_attack', self.owner, presale, 'claim')

        with self.assertRaises(ReentrantCall):
            self.call(presale, 'claim', self.user1, timestamp=self.start_time + 20)

        contract = self.get_readonly_contract(presale)
        self.assertEqual(contract.contributions[self.user1], 2 * ONE)
        self.assertEqual(self.balance_of(self.token, self.user1), 0)
        self.assertFalse(getattr(contract, '_entered'))

        # The same claim succeeds once the token behaves
        self.call(self.token, 'set_attack', self.owner, self.gen_random_contract_id(), 'claim')
        self.call(presale, 'claim', self.user1, timestamp=self.start_time + 20)
        self.assertEqual(self.balance_of(self.token, self.user1), 200 * ONE)

    def test_cancel_reentry(self):
        presale = self.create_presale()
        self.deposit_tokens(presale)
        self.call(self.token, 'set_attack', self.owner, presale, 'refund')

        with self.assertRaises(ReentrantCall):
            self.call(presale, 'cancel', self.owner)
        self.assertEqual(self.get_readonly_contract(presale).state, SaleState.ACTIVE)
        self.assertEqual(self.balance_of(self.token, presale), 1_000 * ONE)

    def test_native_refund_reentry(self):
        presale = self.create_presale()
        self.deposit_tokens(presale)

        attacker = self.gen_random_contract_id()
        self.runner.create_contract(attacker, self.attacker_blueprint_id, self.create_context(self.user3), presale, True)
        honest = self.gen_random_contract_id()
        self.runner.create_contract(honest, self.attacker_blueprint_id, self.create_context(self.user3), presale, False)

        for contributor in (attacker, honest):
            self.call(
                contributor,
                'contribute',
                self.user3,
                timestamp=self.start_time + 1,
                actions=[self.native_deposit(ONE)],
            )
        self.call(presale, 'cancel', self.owner)

        with self.assertRaises(ReentrantCall):
            self.call(attacker, 'refund', self.user3)
        self.assertEqual(self.view(presale, 'get_contribution', attacker), ONE)
        self.assertEqual(self.runner.get_native_balance(presale), 2 * ONE)

        self.call(honest, 'refund', self.user3)
        self.assertEqual(self.runner.get_native_balance(honest), ONE)
        self.assertEqual(self.runner.get_native_balance(presale), ONE)
        self.assertLedgerConsistent(presale)

    def test_reentry_into_token_from_guarded_router(self):
        """Finalize still works with a token that only attacks other contracts."""
        presale = self._finalized_presale()
        self.assertEqual(self.get_readonly_contract(presale).state, SaleState.FINALIZED)
        self.assertEqual(self.view(self.locker, 'lock_count'), 1)
        self.assertEqual(self.view(self.router, 'get_pair', TokenUid(self.token), TokenUid(self.weth)),
                         self.get_readonly_contract(presale).pair)
