"""
Share Math — Fixed-point конверсия asset ↔ shares

Модуль обеспечивает целочисленную арифметику долей хранилища:
- Конверсия суммы asset в shares и обратно по цене за share
- Конверсия квитанции депозита прошлого раунда в unredeemed shares
- Цена за share по балансу и supply
- Проверки разрядности (uint104/uint128) для хранимых значений

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Только целые числа, округление всегда вниз (floor division)
2. Деление на нулевую цену никогда не происходит (VaultValidationError)
3. Все функции чистые и детерминированные
"""

from typing import Final

from metavault.core.domain.units import WAD
from metavault.core.domain.vault import DepositReceipt
from metavault.core.errors import VaultValidationError

# =============================================================================
# РАЗРЯДНОСТЬ ХРАНИМЫХ ЗНАЧЕНИЙ
# =============================================================================

UINT104_MAX: Final[int] = 2**104 - 1
UINT128_MAX: Final[int] = 2**128 - 1


# =============================================================================
# КОНВЕРСИЯ ASSET ↔ SHARES
# =============================================================================


def asset_to_shares(amount: int, price_per_share: int, decimals: int) -> int:
    """
    Конверсия: сумма asset → shares.

    Формула: amount * 10**decimals // price_per_share

    Args:
        amount: Сумма в минимальных единицах asset
        price_per_share: Цена одной share (10**decimals == 1.0)
        decimals: Точность shares

    Returns:
        Количество shares (floor)

    Raises:
        VaultValidationError: Если price_per_share == 0

    Examples:
        >>> asset_to_shares(100, 10**6, 6)
        100
        >>> asset_to_shares(100, 2 * 10**6, 6)
        50
    """
    if price_per_share <= 0:
        raise VaultValidationError("Invalid assetPerShare")

    return amount * 10**decimals // price_per_share


def shares_to_asset(shares: int, price_per_share: int, decimals: int) -> int:
    """
    Конверсия: shares → сумма asset.

    Формула: shares * price_per_share // 10**decimals

    Raises:
        VaultValidationError: Если price_per_share == 0
    """
    if price_per_share <= 0:
        raise VaultValidationError("Invalid assetPerShare")

    return shares * price_per_share // 10**decimals


def get_shares_from_receipt(
    receipt: DepositReceipt,
    current_round: int,
    price_for_receipt_round: int,
    decimals: int,
) -> int:
    """
    Shares, причитающиеся аккаунту по квитанции.

    Если раунд квитанции закрыт (0 < receipt.round < current_round), amount
    конвертируется по цене этого раунда и добавляется к unredeemed_shares.
    Иначе возвращаются unredeemed_shares без изменений.

    Args:
        receipt: Квитанция депозита
        current_round: Текущий раунд хранилища
        price_for_receipt_round: Зафиксированная цена раунда receipt.round
        decimals: Точность shares

    Returns:
        Все unredeemed shares аккаунта
    """
    if 0 < receipt.round < current_round:
        shares_from_round = asset_to_shares(receipt.amount, price_for_receipt_round, decimals)
        return receipt.unredeemed_shares + shares_from_round

    return receipt.unredeemed_shares


def price_per_share(
    total_supply: int,
    total_balance: int,
    pending_amount: int,
    decimals: int,
) -> int:
    """
    Цена одной share.

    Депозиты, ещё не размещённые в позиции (pending_amount), в цену не входят.
    При пустом supply цена равна одной целой единице (10**decimals).

    Examples:
        >>> price_per_share(0, 0, 0, 6)
        1000000
        >>> price_per_share(100, 250, 50, 6)
        2000000
    """
    single_share = 10**decimals
    if total_supply > 0:
        return single_share * (total_balance - pending_amount) // total_supply
    return single_share


# =============================================================================
# WAD ARITHMETIC
# =============================================================================


def wmul(x: int, y: int) -> int:
    """
    Умножение fixed-point с 18 знаками, округление половины вверх.

    Используется для instant withdrawal fee базовых vaults (ставка в wad).
    """
    return (x * y + WAD // 2) // WAD


# =============================================================================
# ВАЛИДАЦИЯ РАЗРЯДНОСТИ
# =============================================================================


def assert_uint(value: int, bits: int) -> None:
    """
    Проверка, что значение помещается в беззнаковое целое заданной разрядности.

    Raises:
        ValueError: Если value < 0 или value >= 2**bits
    """
    if value < 0 or value >= 2**bits:
        raise ValueError(f"Overflow uint{bits}: {value}")


def assert_uint104(value: int) -> None:
    assert_uint(value, 104)


def assert_uint128(value: int) -> None:
    assert_uint(value, 128)
