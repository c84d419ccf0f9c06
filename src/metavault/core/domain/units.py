"""
FeeUnits — Централизованный модуль конверсии единиц комиссий

Ставки комиссий хранятся как fixed-point с 6 знаками:
- 100 * FEE_MULTIPLIER == 100%
- 2 * FEE_MULTIPLIER == 2%

Management fee задаётся как годовая ставка, но хранится за один раунд
(неделю): annual * FEE_MULTIPLIER // WEEKS_PER_YEAR.

ЗАПРЕЩЕНО смешивать годовые и недельные ставки без явного конвертера из этого модуля.
"""

from typing import Final

from metavault.core.errors import VaultValidationError


# =============================================================================
# FIXED-POINT ПАРАМЕТРЫ
# =============================================================================

# Масштаб ставок (6 знаков)
FEE_MULTIPLIER: Final[int] = 10**6

# 100% в единицах ставки
FULL_FEE: Final[int] = 100 * FEE_MULTIPLIER

# 52.142857 недель в году, масштабировано на 10**6
WEEKS_PER_YEAR: Final[int] = 52142857

# Масштаб wad (18 знаков) для instant withdrawal fee базовых vaults
WAD: Final[int] = 10**18


# =============================================================================
# БАЗОВЫЕ КОНВЕРТЕРЫ
# =============================================================================


def annual_to_weekly_management_fee(annual_fee: int) -> int:
    """
    Конверсия: годовая management fee → ставка за раунд.

    Args:
        annual_fee: Годовая ставка (например, 2_000_000 = 2%)

    Returns:
        Ставка за одну неделю (floor)
    """
    return annual_fee * FEE_MULTIPLIER // WEEKS_PER_YEAR


def weekly_to_annual_management_fee(weekly_fee: int) -> int:
    """
    Конверсия: ставка за раунд → годовая management fee.

    Обратная к annual_to_weekly_management_fee с точностью до округления вниз.
    """
    return weekly_fee * WEEKS_PER_YEAR // FEE_MULTIPLIER


def fee_amount(amount: int, rate: int) -> int:
    """Комиссия с суммы amount по ставке rate (100 * FEE_MULTIPLIER == 100%)."""
    return amount * rate // FULL_FEE


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_fee_rate(rate: int, reason: str) -> None:
    """
    Проверка ставки: 0 <= rate < 100%.

    Args:
        rate: Ставка комиссии
        reason: Код причины для исключения (например, "Invalid performance fee")

    Raises:
        VaultValidationError: Если ставка вне диапазона
    """
    if rate < 0 or rate >= FULL_FEE:
        raise VaultValidationError(reason)
