from launchpad.conf import get_global_settings
from launchpad.contracts.blueprints.presale import InvalidOptions
from launchpad.contracts.blueprints.presale_factory import InvalidFee
from launchpad.contracts.exception import (
    ConfigurationError,
    InsufficientAllowance,
    InvalidActions,
    NothingToClaim,
    Unauthorized,
)
from launchpad.contracts.types import NATIVE_UID, Amount, BlueprintId, ContractId, TokenUid
from tests.contracts.blueprints.presale_case import CREATION_FEE, PresaleBaseTestCase
from tests.contracts.unittest import ONE

settings = get_global_settings()


class PresaleFactoryTestCase(PresaleBaseTestCase):
    """Test suite for the PresaleFactory blueprint."""

    def _create_factory(self, creation_fee, fee_token=NATIVE_UID) -> ContractId:
        factory = self.gen_random_contract_id()
        self.runner.create_contract(
            factory,
            self.factory_blueprint_id,
            self.create_context(self.platform),
            creation_fee,
            fee_token,
            self.presale_blueprint_id,
            self.locker_blueprint_id,
        )
        return factory

    def test_initialize(self):
        """Test the factory deploys a locker it owns."""
        self.assertEqual(self.view(self.factory, 'get_creation_fee'), CREATION_FEE)
        self.assertEqual(self.view(self.factory, 'get_presale_count'), 0)
        self.assertTrue(self.runner.has_contract(self.locker))
        self.assertEqual(self.get_readonly_contract(self.locker).owner, self.factory)
        self.assertEqual(self.get_readonly_contract(self.factory).owner, self.platform)

    def test_initialize_default_fee(self):
        factory = self._create_factory(None)
        self.assertEqual(self.view(factory, 'get_creation_fee'), settings.DEFAULT_CREATION_FEE)

    def test_initialize_validation(self):
        with self.assertRaises(ConfigurationError):
            self._create_factory(Amount(-1))

        factory = self.gen_random_contract_id()
        with self.assertRaises(ConfigurationError):
            self.runner.create_contract(
                factory,
                self.factory_blueprint_id,
                self.create_context(self.platform),
                Amount(CREATION_FEE),
                NATIVE_UID,
                BlueprintId(b'\x00' * 32),
                self.locker_blueprint_id,
            )
        self.assertFalse(self.runner.has_contract(factory))

    def test_create_presale_fee(self):
        """Test the native fee must match the configured one exactly."""
        for amount in (CREATION_FEE - 1, CREATION_FEE + 1):
            with self.assertRaises(InvalidFee):
                self.call(
                    self.factory,
                    'create_presale',
                    self.owner,
                    self.make_options(),
                    self.token,
                    self.weth,
                    self.router,
                    actions=[self.native_deposit(amount)],
                )
        with self.assertRaises(InvalidActions):
            self.call(self.factory, 'create_presale', self.owner, self.make_options(), self.token, self.weth, self.router)

        self.assertEqual(self.view(self.factory, 'get_presale_count'), 0)
        self.assertEqual(self.runner.get_native_balance(self.owner), 100 * ONE)

    def test_create_presale_invalid_options_rolls_back(self):
        """Test a presale rejecting its options leaves no trace and keeps the fee with the caller."""
        options = self.make_options(soft_cap=Amount(ONE))
        with self.assertRaises(InvalidOptions):
            self.create_presale(options)

        self.assertEqual(self.view(self.factory, 'get_presale_count'), 0)
        self.assertEqual(self.runner.get_native_balance(self.owner), 100 * ONE)
        self.assertEqual(self.runner.get_native_balance(self.factory), 0)
        self.assertEqual(self.get_readonly_contract(self.factory).fees_collected, 0)
        self.assertEqual(self.runner.get_events('PresaleCreated'), [])

    def test_create_several_presales(self):
        first = self.create_presale()
        second = self.create_presale(caller=self.user1)

        self.assertNotEqual(first, second)
        self.assertEqual(self.view(self.factory, 'get_presales'), [first, second])
        self.assertEqual(self.get_readonly_contract(second).owner, self.user1)
        self.assertTrue(self.view(self.locker, 'is_authorized', first))
        self.assertTrue(self.view(self.locker, 'is_authorized', second))
        self.assertEqual(self.get_readonly_contract(self.factory).fees_collected, 2 * CREATION_FEE)

    def test_withdraw_fees(self):
        self.create_presale()
        self.create_presale(caller=self.user1)

        with self.assertRaises(Unauthorized):
            self.call(self.factory, 'withdraw_fees', self.owner)

        self.call(self.factory, 'withdraw_fees', self.platform)
        self.assertEqual(self.runner.get_native_balance(self.platform), 100 * ONE + 2 * CREATION_FEE)
        self.assertEqual(self.runner.get_native_balance(self.factory), 0)

        events = self.runner.get_events('FeesWithdrawn', self.factory)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data['amount'], 2 * CREATION_FEE)

        with self.assertRaises(NothingToClaim):
            self.call(self.factory, 'withdraw_fees', self.platform)

    def test_set_creation_fee(self):
        with self.assertRaises(Unauthorized):
            self.call(self.factory, 'set_creation_fee', self.owner, Amount(0))
        with self.assertRaises(ConfigurationError):
            self.call(self.factory, 'set_creation_fee', self.platform, Amount(-1))

        self.call(self.factory, 'set_creation_fee', self.platform, Amount(0))
        self.assertEqual(self.view(self.factory, 'get_creation_fee'), 0)

        # A free factory needs no deposit
        presale = self.call(self.factory, 'create_presale', self.owner, self.make_options(), self.token, self.weth, self.router)
        self.assertEqual(self.view(self.factory, 'get_presales'), [presale])
        self.assertEqual(self.get_readonly_contract(self.factory).fees_collected, 0)

    def test_asset_fee(self):
        """Test a fee paid in an asset is pulled with the caller's allowance."""
        factory = self._create_factory(Amount(5 * ONE), TokenUid(self.usdc))

        def create():
            return self.call(factory, 'create_presale', self.owner, self.make_options(), self.token, self.weth, self.router)

        with self.assertRaises(InsufficientAllowance):
            create()

        self.call(self.usdc, 'approve', self.owner, factory, Amount(5 * ONE))
        with self.assertRaises(InvalidFee):
            self.call(
                factory,
                'create_presale',
                self.owner,
                self.make_options(),
                self.token,
                self.weth,
                self.router,
                actions=[self.native_deposit(CREATION_FEE)],
            )

        create()
        self.assertEqual(self.balance_of(self.usdc, factory), 5 * ONE)

        self.call(factory, 'withdraw_fees', self.platform)
        self.assertEqual(self.balance_of(self.usdc, self.platform), 5 * ONE)
        self.assertEqual(self.balance_of(self.usdc, factory), 0)

    def test_locker_only_accepts_its_owner(self):
        """Test outsiders cannot authorize themselves on the factory's locker."""
        with self.assertRaises(Unauthorized):
            self.call(self.locker, 'authorize_locker', self.platform, ContractId(self.platform))
