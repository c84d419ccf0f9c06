"""
Тесты MetaVault: инициализация, deposit, withdraw_instantly

Проверяемые инварианты:
1. Инициализация однократна; предусловия проверяются до изменения состояния
2. total_pending == сумма amount квитанций текущего раунда
3. Устаревшая квитанция конвертируется в unredeemed_shares при новом депозите
4. Депозит, который дал бы 0 shares, отклоняется ("!shares")
5. Неудачная операция не оставляет локальных эффектов
"""

import pytest

from metavault.core.domain import (
    FULL_FEE,
    ZERO_ADDRESS,
    Deposit,
    DepositReceipt,
    InstantWithdraw,
    annual_to_weekly_management_fee,
)
from metavault.core.errors import VaultStateError, VaultValidationError
from metavault.external import InMemoryBaseVault
from metavault.vault import DualTargetRouter, MetaVault
from tests.conftest import (
    CALL_VAULT,
    CAP,
    DEPOSIT_AMOUNT,
    FEE_RECIPIENT,
    KEEPER,
    META_VAULT,
    MINIMUM_SUPPLY,
    OTHER_USER,
    OWNER,
    USER,
    fund,
    make_config,
    make_params,
)


# =============================================================================
# ТЕСТЫ: initialize
# =============================================================================


class TestInitialize:
    def test_initializes_with_correct_values(self, straddle):
        assert straddle.owner == OWNER
        assert straddle.keeper == KEEPER
        assert straddle.fee_recipient == FEE_RECIPIENT
        assert straddle.name == "Ribbon USDC Meta Vault"
        assert straddle.symbol == "rMETA"
        assert straddle.decimals == 6
        assert straddle.cap == CAP
        assert straddle.vault_state.round == 1
        assert straddle.total_supply() == 0
        assert straddle.total_balance() == 0

    def test_management_fee_stored_weekly(self, usdc, call_vault, put_vault):
        vault = MetaVault(META_VAULT, usdc)
        vault.initialize(make_config(management_fee=2 * 10**6), DualTargetRouter(call_vault, put_vault))

        assert vault.management_fee == annual_to_weekly_management_fee(2 * 10**6)

    def test_cannot_be_initialized_twice(self, straddle, call_vault, put_vault):
        with pytest.raises(VaultStateError, match="Initializable: contract is already initialized"):
            straddle.initialize(make_config(), DualTargetRouter(call_vault, put_vault))

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"owner": ZERO_ADDRESS}, "!owner"),
            ({"keeper": ZERO_ADDRESS}, "!keeper"),
            ({"fee_recipient": ZERO_ADDRESS}, "!feeRecipient"),
            ({"performance_fee": FULL_FEE}, "performanceFee >= 100%"),
            ({"management_fee": FULL_FEE}, "managementFee >= 100%"),
            ({"token_name": ""}, "!tokenName"),
            ({"token_symbol": ""}, "!tokenSymbol"),
            ({"vault_params": make_params(asset=ZERO_ADDRESS)}, "!asset"),
            ({"vault_params": make_params(underlying=ZERO_ADDRESS)}, "!underlying"),
            ({"vault_params": make_params(minimum_supply=0)}, "!minimumSupply"),
            ({"vault_params": make_params(cap=0)}, "!cap"),
            ({"vault_params": make_params(cap=MINIMUM_SUPPLY)}, "cap has to be higher than minSupply"),
        ],
    )
    def test_rejects_invalid_config(self, usdc, call_vault, put_vault, overrides, reason):
        vault = MetaVault(META_VAULT, usdc)
        with pytest.raises(VaultValidationError, match=reason):
            vault.initialize(make_config(**overrides), DualTargetRouter(call_vault, put_vault))

    def test_rejects_base_vault_with_other_asset(self, usdc, weth, put_vault):
        vault = MetaVault(META_VAULT, usdc)
        weth_call_vault = InMemoryBaseVault(CALL_VAULT, weth)

        with pytest.raises(VaultValidationError, match="!asset"):
            vault.initialize(make_config(), DualTargetRouter(weth_call_vault, put_vault))

    def test_failed_initialize_can_be_retried(self, usdc, call_vault, put_vault):
        vault = MetaVault(META_VAULT, usdc)
        with pytest.raises(VaultValidationError):
            vault.initialize(make_config(owner=ZERO_ADDRESS), DualTargetRouter(call_vault, put_vault))

        vault.initialize(make_config(), DualTargetRouter(call_vault, put_vault))
        assert vault.owner == OWNER

    def test_operations_require_initialize(self, usdc):
        vault = MetaVault(META_VAULT, usdc)
        fund(usdc, USER, DEPOSIT_AMOUNT)

        with pytest.raises(VaultStateError, match="!initialized"):
            vault.deposit(DEPOSIT_AMOUNT, sender=USER)


# =============================================================================
# ТЕСТЫ: deposit
# =============================================================================


class TestDeposit:
    def test_creates_pending_deposit(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        assert usdc.balance_of(META_VAULT) == DEPOSIT_AMOUNT
        assert usdc.balance_of(USER) == 0
        assert straddle.vault_state.total_pending == DEPOSIT_AMOUNT
        assert straddle.total_supply() == 0
        assert straddle.deposit_receipt(USER) == DepositReceipt(round=1, amount=DEPOSIT_AMOUNT, unredeemed_shares=0)
        assert straddle.events[-1] == Deposit(account=USER, amount=DEPOSIT_AMOUNT, round=1)

    def test_tops_up_receipt_in_same_round(self, straddle, usdc):
        fund(usdc, USER, 2 * DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        assert straddle.vault_state.total_pending == 2 * DEPOSIT_AMOUNT
        receipt = straddle.deposit_receipt(USER)
        assert receipt.round == 1
        assert receipt.amount == 2 * DEPOSIT_AMOUNT
        assert receipt.unredeemed_shares == 0

    def test_pending_sums_over_accounts(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        fund(usdc, OTHER_USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
        straddle.deposit(DEPOSIT_AMOUNT, sender=OTHER_USER)

        assert straddle.vault_state.total_pending == 2 * DEPOSIT_AMOUNT
        assert straddle.deposit_receipt(OTHER_USER).amount == DEPOSIT_AMOUNT

    def test_stale_receipt_converted_on_new_deposit(self, straddle, usdc):
        fund(usdc, USER, 2 * DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
        straddle.roll_vault(sender=KEEPER)

        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        assert straddle.deposit_receipt(USER) == DepositReceipt(
            round=2, amount=DEPOSIT_AMOUNT, unredeemed_shares=DEPOSIT_AMOUNT
        )
        assert straddle.vault_state.total_pending == DEPOSIT_AMOUNT

    def test_rejects_zero_amount(self, straddle):
        with pytest.raises(VaultValidationError, match="!amount"):
            straddle.deposit(0, sender=USER)

    def test_rejects_below_minimum_supply(self, straddle, usdc):
        fund(usdc, USER, MINIMUM_SUPPLY)
        with pytest.raises(VaultStateError, match="Insufficient balance"):
            straddle.deposit(MINIMUM_SUPPLY - 1, sender=USER)

    def test_rejects_over_cap(self, straddle, usdc):
        straddle.set_cap(DEPOSIT_AMOUNT, sender=OWNER)
        fund(usdc, USER, DEPOSIT_AMOUNT + 1)

        with pytest.raises(VaultStateError, match="Exceed cap"):
            straddle.deposit(DEPOSIT_AMOUNT + 1, sender=USER)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

    def test_rejects_deposit_worth_zero_shares(self, straddle, usdc, call_vault, put_vault):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
        straddle.roll_vault(sender=KEEPER)

        # Цена раунда 2 == 3 * 10**6: 2 единицы asset меньше одного share
        call_vault.accrue(DEPOSIT_AMOUNT)
        put_vault.accrue(DEPOSIT_AMOUNT)
        straddle.roll_vault(sender=KEEPER)
        assert straddle.round_price_per_share(2) == 3 * 10**6

        fund(usdc, OTHER_USER, 2)
        with pytest.raises(VaultValidationError, match="!shares"):
            straddle.deposit(2, sender=OTHER_USER)

    def test_failed_transfer_leaves_no_effects(self, straddle, usdc):
        usdc.mint(USER, DEPOSIT_AMOUNT)

        with pytest.raises(VaultStateError, match="exceeds allowance"):
            straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        assert straddle.vault_state.total_pending == 0
        assert straddle.deposit_receipt(USER) == DepositReceipt()
        assert straddle.events == []


# =============================================================================
# ТЕСТЫ: withdraw_instantly
# =============================================================================


class TestWithdrawInstantly:
    def test_returns_deposit(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        straddle.withdraw_instantly(DEPOSIT_AMOUNT, sender=USER)

        assert usdc.balance_of(USER) == DEPOSIT_AMOUNT
        assert usdc.balance_of(META_VAULT) == 0
        assert straddle.vault_state.total_pending == 0
        assert straddle.deposit_receipt(USER).amount == 0
        assert straddle.events[-1] == InstantWithdraw(account=USER, amount=DEPOSIT_AMOUNT, round=1)

    def test_partial(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        straddle.withdraw_instantly(DEPOSIT_AMOUNT // 4, sender=USER)

        assert straddle.deposit_receipt(USER).amount == DEPOSIT_AMOUNT - DEPOSIT_AMOUNT // 4
        assert straddle.vault_state.total_pending == DEPOSIT_AMOUNT - DEPOSIT_AMOUNT // 4

    def test_rejects_zero_amount(self, straddle):
        with pytest.raises(VaultValidationError, match="!amount"):
            straddle.withdraw_instantly(0, sender=USER)

    def test_rejects_more_than_deposited(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)

        with pytest.raises(VaultStateError, match="Exceed amount"):
            straddle.withdraw_instantly(DEPOSIT_AMOUNT + 1, sender=USER)

    def test_rejects_after_roll(self, straddle, usdc):
        fund(usdc, USER, DEPOSIT_AMOUNT)
        straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
        straddle.roll_vault(sender=KEEPER)

        with pytest.raises(VaultStateError, match="Invalid round"):
            straddle.withdraw_instantly(DEPOSIT_AMOUNT, sender=USER)

    def test_rejects_without_deposit(self, straddle):
        with pytest.raises(VaultStateError, match="Invalid round"):
            straddle.withdraw_instantly(1, sender=USER)
