"""
Events — События мета-хранилища

Immutable Pydantic модели событий. Каждая мутирующая операция хранилища
публикует события в журнал (MetaVault.events) и в лог.
Операция без эффекта (например, повторный max_redeem) не публикует ничего.
"""

from pydantic import BaseModel, Field


class VaultEvent(BaseModel):
    """Базовое событие."""

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        return type(self).__name__


# =============================================================================
# ДЕПОЗИТЫ И ВЫВОД
# =============================================================================


class Deposit(VaultEvent):
    account: str
    amount: int = Field(..., gt=0)
    round: int = Field(..., ge=1)


class InstantWithdraw(VaultEvent):
    account: str
    amount: int = Field(..., gt=0)
    round: int = Field(..., ge=1)


class Redeem(VaultEvent):
    account: str
    share: int = Field(..., gt=0)
    round: int = Field(..., ge=0)


class InitiateWithdraw(VaultEvent):
    account: str
    shares: int = Field(..., gt=0)
    round: int = Field(..., ge=1)


class Withdraw(VaultEvent):
    account: str
    amount: int = Field(..., ge=0)
    shares: int = Field(..., gt=0)


class Transfer(VaultEvent):
    """Перемещение shares хранилища (mint: sender == ZERO, burn: recipient == ZERO)."""

    sender: str
    recipient: str
    value: int = Field(..., ge=0)


# =============================================================================
# РАУНДЫ И КОМИССИИ
# =============================================================================


class CollectVaultFees(VaultEvent):
    performance_fee: int = Field(..., ge=0)
    vault_fee: int = Field(..., ge=0)
    round: int = Field(..., ge=1)
    fee_recipient: str


class RollVault(VaultEvent):
    round: int = Field(..., ge=1, description="Закрытый раунд")
    price_per_share: int = Field(..., gt=0)
    mint_shares: int = Field(..., ge=0)
    locked_amount: int = Field(..., ge=0)
    queued_withdraw_amount: int = Field(..., ge=0)


class DividendsDistributed(VaultEvent):
    token: str
    amount: int = Field(..., ge=0)
    round: int = Field(..., ge=1)


class DividendWithdrawn(VaultEvent):
    account: str
    token: str
    amount: int = Field(..., gt=0)


# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================


class CapSet(VaultEvent):
    old_cap: int
    new_cap: int


class ManagementFeeSet(VaultEvent):
    management_fee: int
    new_management_fee: int


class PerformanceFeeSet(VaultEvent):
    performance_fee: int
    new_performance_fee: int


class KeeperSet(VaultEvent):
    old_keeper: str
    new_keeper: str


class FeeRecipientSet(VaultEvent):
    old_fee_recipient: str
    new_fee_recipient: str
