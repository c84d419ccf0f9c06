"""
Tests for Domain Models

Проверка инвариантов Pydantic моделей:
- VaultParams / VaultState / DepositReceipt / Withdrawal: immutability и constraints
- События: имена и валидация полей
- MetaVaultConfig: значения по умолчанию
"""

import pytest
from pydantic import ValidationError

from metavault.core.domain import (
    Deposit,
    DepositReceipt,
    MetaVaultConfig,
    RoutingMode,
    Transfer,
    VaultParams,
    VaultState,
    Withdrawal,
    ZERO_ADDRESS,
)

ASSET = "0x" + "a0" * 20


class TestVaultParams:
    def test_single_share(self):
        params = VaultParams(decimals=8, asset=ASSET, underlying=ASSET, minimum_supply=10**3, cap=10**12)
        assert params.single_share == 10**8

    def test_frozen(self):
        params = VaultParams(decimals=6, asset=ASSET, underlying=ASSET, minimum_supply=1, cap=10)
        with pytest.raises(ValidationError):
            params.cap = 20

    def test_cap_replaced_by_copy(self):
        params = VaultParams(decimals=6, asset=ASSET, underlying=ASSET, minimum_supply=1, cap=10)
        new_params = params.model_copy(update={"cap": 20})
        assert new_params.cap == 20
        assert params.cap == 10

    def test_negative_cap_rejected(self):
        with pytest.raises(ValidationError):
            VaultParams(decimals=6, asset=ASSET, underlying=ASSET, minimum_supply=1, cap=-1)

    def test_decimals_bounds(self):
        with pytest.raises(ValidationError):
            VaultParams(decimals=37, asset=ASSET, underlying=ASSET, minimum_supply=1, cap=10)


class TestVaultState:
    def test_defaults(self):
        state = VaultState()
        assert state.round == 1
        assert state.locked_amount == 0
        assert state.total_pending == 0
        assert state.queued_withdraw_shares == 0

    def test_round_starts_at_one(self):
        with pytest.raises(ValidationError):
            VaultState(round=0)

    def test_negative_pending_rejected(self):
        with pytest.raises(ValidationError):
            VaultState(total_pending=-1)


class TestReceipts:
    def test_empty_receipt(self):
        receipt = DepositReceipt()
        assert receipt.round == 0
        assert receipt.is_empty

    def test_receipt_not_empty(self):
        assert not DepositReceipt(round=1, amount=5).is_empty
        assert not DepositReceipt(round=1, unredeemed_shares=5).is_empty

    def test_withdrawal_defaults(self):
        withdrawal = Withdrawal()
        assert withdrawal.round == 0
        assert withdrawal.shares == 0


class TestEvents:
    def test_event_name(self):
        event = Deposit(account=ASSET, amount=10, round=1)
        assert event.name == "Deposit"

    def test_zero_deposit_event_rejected(self):
        with pytest.raises(ValidationError):
            Deposit(account=ASSET, amount=0, round=1)

    def test_transfer_mint(self):
        event = Transfer(sender=ZERO_ADDRESS, recipient=ASSET, value=5)
        assert event.model_dump() == {"sender": ZERO_ADDRESS, "recipient": ASSET, "value": 5}


class TestConfig:
    def test_fee_defaults(self):
        config = MetaVaultConfig(
            owner=ASSET,
            keeper=ASSET,
            fee_recipient=ASSET,
            token_name="Vault",
            token_symbol="V",
            vault_params=VaultParams(decimals=6, asset=ASSET, underlying=ASSET, minimum_supply=1, cap=10),
        )
        assert config.management_fee == 0
        assert config.performance_fee == 0

    def test_routing_mode_values(self):
        assert RoutingMode("DUAL") is RoutingMode.DUAL
        assert RoutingMode.SWAP_THEN_TARGET.value == "SWAP_THEN_TARGET"
