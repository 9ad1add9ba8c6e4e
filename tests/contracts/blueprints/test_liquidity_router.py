from math import isqrt

from launchpad.contracts.blueprints.fungible_token import FungibleToken
from launchpad.contracts.blueprints.liquidity_router import (
    Expired,
    InsufficientAmount,
    InvalidTokens,
    LiquidityRouter,
    PairNotFound,
)
from launchpad.contracts.blueprints.wrapped_native import WrappedNative
from launchpad.contracts.exception import ConfigurationError, InsufficientAllowance, InvalidActions
from launchpad.contracts.types import Amount, BlueprintId, ContractId, Timestamp, TokenUid
from tests.contracts.unittest import ONE, BlueprintTestCase

MINIMUM_LIQUIDITY = 1_000


class LiquidityRouterTestCase(BlueprintTestCase):
    """Test suite for the LiquidityRouter blueprint."""

    def setUp(self):
        super().setUp()
        self.token_blueprint_id = self._register_blueprint_class(FungibleToken)
        self._token_blueprint_id = self.token_blueprint_id
        self.weth_blueprint_id = self._register_blueprint_class(WrappedNative)
        self.router_blueprint_id = self._register_blueprint_class(LiquidityRouter)

        self.admin = self.gen_random_address()
        self.user = self.gen_random_address()
        self.runner.mint_native(self.user, 100 * ONE)

        self.weth = self.gen_random_contract_id()
        self.runner.create_contract(self.weth, self.weth_blueprint_id, self.create_context(self.admin))

        self.router = self.gen_random_contract_id()
        self.runner.create_contract(
            self.router,
            self.router_blueprint_id,
            self.create_context(self.admin),
            self.weth,
            self.token_blueprint_id,
        )

        self.token_a = self.create_token(self.user, symbol='AAA')
        self.token_b = self.create_token(self.user, symbol='BBB')
        for token in (self.token_a, self.token_b):
            self.call(token, 'approve', self.user, self.router, Amount(10_000 * ONE))
        self.deadline = Timestamp(self.now + 600)

    def _add(self, desired_a: int, desired_b: int, min_a: int = 0, min_b: int = 0, timestamp=None):
        return self.call(
            self.router,
            'add_liquidity',
            self.user,
            TokenUid(self.token_a),
            TokenUid(self.token_b),
            Amount(desired_a),
            Amount(desired_b),
            Amount(min_a),
            Amount(min_b),
            self.user,
            self.deadline,
            timestamp=timestamp,
        )

    def _add_native(self, desired_token: int, native: int, min_token: int = 0, min_native: int = 0):
        return self.call(
            self.router,
            'add_liquidity_native',
            self.user,
            TokenUid(self.token_a),
            Amount(desired_token),
            Amount(min_token),
            Amount(min_native),
            self.user,
            self.deadline,
            actions=[self.native_deposit(native)],
        )

    def test_initialize_validation(self):
        router = self.gen_random_contract_id()
        with self.assertRaises(ConfigurationError):
            self.runner.create_contract(
                router,
                self.router_blueprint_id,
                self.create_context(self.admin),
                ContractId(b'\x00' * 32),
                self.token_blueprint_id,
            )
        with self.assertRaises(ConfigurationError):
            self.runner.create_contract(
                router,
                self.router_blueprint_id,
                self.create_context(self.admin),
                self.weth,
                BlueprintId(b'\x00' * 32),
            )
        self.assertFalse(self.runner.has_contract(router))
        self.assertEqual(self.view(self.router, 'wrapped_native'), self.weth)

    def test_first_deposit(self):
        """Test the first deposit creates the pair and locks the minimum liquidity."""
        self.assertIsNone(self.view(self.router, 'get_pair', TokenUid(self.token_a), TokenUid(self.token_b)))

        used_a, used_b, pair = self._add(100 * ONE, 400 * ONE)
        self.assertEqual((used_a, used_b), (100 * ONE, 400 * ONE))
        self.assertEqual(self.view(self.router, 'get_pair', TokenUid(self.token_b), TokenUid(self.token_a)), pair)

        expected = isqrt(100 * ONE * 400 * ONE) - MINIMUM_LIQUIDITY
        self.assertEqual(self.balance_of(pair, self.user), expected)
        self.assertEqual(self.balance_of(pair, self.router), MINIMUM_LIQUIDITY)
        self.assertEqual(self.view(pair, 'get_total_supply'), 200 * ONE)

        info = self.view(pair, 'get_token_info')
        self.assertEqual((info.symbol, info.decimals), ('LLP', 18))

        self.assertEqual(self.balance_of(self.token_a, self.router), 100 * ONE)
        self.assertEqual(self.balance_of(self.token_b, self.router), 400 * ONE)

        events = self.runner.get_events('LiquidityAdded', self.router)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data['amount'], expected)

    def test_reserves_follow_caller_order(self):
        self._add(100 * ONE, 400 * ONE)
        self.assertEqual(
            self.view(self.router, 'get_reserves', TokenUid(self.token_a), TokenUid(self.token_b)),
            (100 * ONE, 400 * ONE),
        )
        self.assertEqual(
            self.view(self.router, 'get_reserves', TokenUid(self.token_b), TokenUid(self.token_a)),
            (400 * ONE, 100 * ONE),
        )

    def test_second_deposit_keeps_ratio(self):
        """Test a later deposit only uses amounts matching the current price."""
        _, _, pair = self._add(100 * ONE, 400 * ONE)

        used_a, used_b, same_pair = self._add(50 * ONE, 300 * ONE)
        self.assertEqual(same_pair, pair)
        self.assertEqual((used_a, used_b), (50 * ONE, 200 * ONE))
        self.assertEqual(self.view(pair, 'get_total_supply'), 300 * ONE)
        self.assertEqual(self.balance_of(self.token_b, self.user), 10_000 * ONE - 600 * ONE)

        # Token B is the limiting side here
        used_a, used_b, _ = self._add(100 * ONE, 40 * ONE)
        self.assertEqual((used_a, used_b), (10 * ONE, 40 * ONE))

    def test_minimum_amounts(self):
        self._add(100 * ONE, 400 * ONE)

        with self.assertRaises(InsufficientAmount):
            self._add(50 * ONE, 300 * ONE, min_b=250 * ONE)
        with self.assertRaises(InsufficientAmount):
            self._add(100 * ONE, 40 * ONE, min_a=20 * ONE)
        with self.assertRaises(InsufficientAmount):
            self._add(0, 40 * ONE)
        with self.assertRaises(InsufficientAmount):
            self._add(ONE, ONE, min_a=2 * ONE)

        self.assertEqual(
            self.view(self.router, 'get_reserves', TokenUid(self.token_a), TokenUid(self.token_b)),
            (100 * ONE, 400 * ONE),
        )

    def test_deadline(self):
        with self.assertRaises(Expired):
            self._add(ONE, ONE, timestamp=self.deadline + 1)
        self._add(ONE, ONE, timestamp=self.deadline)

    def test_invalid_tokens(self):
        with self.assertRaises(InvalidTokens):
            self.call(
                self.router,
                'add_liquidity',
                self.user,
                TokenUid(self.token_a),
                TokenUid(self.token_a),
                Amount(ONE),
                Amount(ONE),
                Amount(0),
                Amount(0),
                self.user,
                self.deadline,
            )
        with self.assertRaises(InvalidTokens):
            self.view(self.router, 'get_pair', TokenUid(self.token_a), TokenUid(b'\x00' * 32))

    def test_missing_allowance_rolls_back(self):
        """Test a failed pull leaves no pair behind."""
        self.call(self.token_b, 'approve', self.user, self.router, Amount(0))
        with self.assertRaises(InsufficientAllowance):
            self._add(ONE, ONE)
        self.assertIsNone(self.view(self.router, 'get_pair', TokenUid(self.token_a), TokenUid(self.token_b)))
        self.assertEqual(self.balance_of(self.token_a, self.user), 10_000 * ONE)

    def test_add_liquidity_native(self):
        """Test native liquidity is wrapped and the unused part is returned."""
        used_token, used_native, pair = self._add_native(100 * ONE, 10 * ONE)
        self.assertEqual((used_token, used_native), (100 * ONE, 10 * ONE))
        self.assertEqual(self.view(self.router, 'get_pair', TokenUid(self.token_a), TokenUid(self.weth)), pair)
        self.assertEqual(self.balance_of(self.weth, self.router), 10 * ONE)
        self.assertEqual(self.runner.get_native_balance(self.weth), 10 * ONE)

        used_token, used_native, _ = self._add_native(10 * ONE, 5 * ONE)
        self.assertEqual((used_token, used_native), (10 * ONE, ONE))
        self.assertEqual(self.runner.get_native_balance(self.user), 100 * ONE - 11 * ONE)
        self.assertEqual(self.runner.get_native_balance(self.router), 0)
        self.assertEqual(
            self.view(self.router, 'get_reserves', TokenUid(self.weth), TokenUid(self.token_a)),
            (11 * ONE, 110 * ONE),
        )

    def test_add_liquidity_native_requires_deposit(self):
        with self.assertRaises(InvalidActions):
            self.call(
                self.router,
                'add_liquidity_native',
                self.user,
                TokenUid(self.token_a),
                Amount(ONE),
                Amount(0),
                Amount(0),
                self.user,
                self.deadline,
            )

    def test_get_reserves_unknown_pair(self):
        with self.assertRaises(PairNotFound):
            self.view(self.router, 'get_reserves', TokenUid(self.token_a), TokenUid(self.token_b))

    def test_quote(self):
        self.assertEqual(self.view(self.router, 'quote', Amount(10), Amount(100), Amount(400)), 40)
        with self.assertRaises(InsufficientAmount):
            self.view(self.router, 'quote', Amount(0), Amount(100), Amount(400))
        with self.assertRaises(InsufficientAmount):
            self.view(self.router, 'quote', Amount(10), Amount(0), Amount(400))
