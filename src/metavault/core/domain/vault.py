"""
Vault — Модели параметров и состояния хранилища

Immutable Pydantic модели, описывающие:
- VaultParams: параметры хранилища (задаются один раз при инициализации)
- VaultState: состояние текущего раунда
- DepositReceipt: квитанция депозита аккаунта
- Withdrawal: поставленный в очередь вывод аккаунта

Все изменения состояния создают новый экземпляр (model_copy), поэтому чистые
функции lifecycle могут возвращать новое состояние, не трогая хранилище.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. round монотонно растёт и начинается с 1
2. Все суммы — неотрицательные целые в минимальных единицах asset
3. Квитанция хранит amount только для одного раунда (receipt.round)
"""

from typing import Final

from pydantic import BaseModel, Field

# Нулевой адрес: источник mint и получатель burn
ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"


# =============================================================================
# VAULT PARAMS
# =============================================================================


class VaultParams(BaseModel):
    """
    Параметры хранилища.

    decimals задаёт масштаб shares и цены за share (10**decimals = 1.0).
    """

    decimals: int = Field(..., ge=0, le=36, description="Точность shares")
    asset: str = Field(..., description="Идентификатор депозитного asset")
    underlying: str = Field(..., description="Идентификатор reference asset")
    minimum_supply: int = Field(..., ge=0, description="Минимальный баланс хранилища")
    cap: int = Field(..., ge=0, description="Максимальный объём депозитов")

    model_config = {"frozen": True}

    @property
    def single_share(self) -> int:
        """Одна целая share в минимальных единицах (10**decimals)."""
        return 10**self.decimals


# =============================================================================
# VAULT STATE
# =============================================================================


class VaultState(BaseModel):
    """Состояние хранилища на текущий раунд."""

    round: int = Field(1, ge=1, description="Номер текущего раунда")
    locked_amount: int = Field(0, ge=0, description="Сумма, размещённая в позиции раунда")
    last_locked_amount: int = Field(0, ge=0, description="locked_amount прошлого раунда")
    total_pending: int = Field(0, ge=0, description="Депозиты, ещё не конвертированные в shares")
    queued_withdraw_shares: int = Field(0, ge=0, description="Shares в очереди на вывод")

    model_config = {"frozen": True}


# =============================================================================
# DEPOSIT RECEIPT / WITHDRAWAL
# =============================================================================


class DepositReceipt(BaseModel):
    """
    Квитанция депозита.

    amount относится только к раунду receipt.round. Когда раунд закрыт,
    amount конвертируется в unredeemed_shares по цене этого раунда
    перед любой новой активностью аккаунта.
    """

    round: int = Field(0, ge=0, description="Раунд последнего депозита")
    amount: int = Field(0, ge=0, description="Депозит раунда, ещё не конвертированный")
    unredeemed_shares: int = Field(0, ge=0, description="Конвертированные, но не востребованные shares")

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return self.amount == 0 and self.unredeemed_shares == 0


class Withdrawal(BaseModel):
    """Вывод в очереди: shares выводятся по цене раунда round после его закрытия."""

    round: int = Field(0, ge=0, description="Раунд инициации вывода")
    shares: int = Field(0, ge=0, description="Shares в очереди")

    model_config = {"frozen": True}
