"""
Dividends — Пропорциональное распределение через накопитель на share

Классическая схема "magnified dividend per share":
- при распределении accumulator растёт на amount * MAGNITUDE // supply
- у каждого аккаунта есть знаковая коррекция, которая меняется при каждом
  mint, burn и transfer, чтобы изменение баланса не меняло уже начисленное

    accumulative(account) = (mdps * balance(account) + correction(account)) // MAGNITUDE
    withdrawable(account) = accumulative(account) - withdrawn(account)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Целые числа произвольной разрядности (Python int), коррекции знаковые
2. Перемещение shares не меняет уже начисленные дивиденды сторон
3. Исключённые аккаунты (например, адрес самого хранилища) не участвуют
4. Распределение при нулевом supply не теряется: сумма переносится
"""

import logging
from collections import defaultdict
from typing import Final

logger = logging.getLogger(__name__)

# Масштаб накопителя (защита от потерь округления)
MAGNITUDE: Final[int] = 2**128


class MagnifiedDividendTracker:
    """
    Накопитель дивидендов на share.

    Трекер не хранит балансы shares: их передаёт владелец (ledger) в каждом
    вызове. Хуки on_mint/on_burn/on_transfer должны вызываться ДО или ПОСЛЕ
    изменения баланса одинаково для всех операций; здесь используются только
    перемещаемые значения, поэтому порядок не важен.
    """

    def __init__(self, excluded: set[str] | None = None):
        self.magnified_dividend_per_share: int = 0
        self.total_distributed: int = 0
        self.undistributed: int = 0
        self._corrections: dict[str, int] = defaultdict(int)
        self._withdrawn: dict[str, int] = defaultdict(int)
        self._excluded: set[str] = set(excluded or ())

    # -------------------------------------------------------------------------
    # Участники
    # -------------------------------------------------------------------------

    def is_excluded(self, account: str) -> bool:
        return account in self._excluded

    def exclude(self, account: str, balance: int = 0) -> None:
        """
        Исключение аккаунта из распределения.

        Начисленное до исключения сохраняется через коррекцию.
        """
        if account in self._excluded:
            return
        if balance:
            self._corrections[account] += self.magnified_dividend_per_share * balance
        self._excluded.add(account)

    # -------------------------------------------------------------------------
    # Распределение
    # -------------------------------------------------------------------------

    def distribute(self, amount: int, eligible_supply: int) -> int:
        """
        Распределение amount пропорционально eligible_supply.

        Args:
            amount: Сумма к распределению
            eligible_supply: Shares, участвующие в распределении

        Returns:
            Фактически распределённая сумма (включая ранее перенесённую);
            0, если supply пустой (сумма переносится на следующий вызов)
        """
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        total = amount + self.undistributed
        if total == 0:
            return 0

        if eligible_supply <= 0:
            self.undistributed = total
            logger.warning("No eligible supply, carrying %d to next distribution", total)
            return 0

        self.magnified_dividend_per_share += total * MAGNITUDE // eligible_supply
        self.total_distributed += total
        self.undistributed = 0
        return total

    # -------------------------------------------------------------------------
    # Хуки изменения балансов
    # -------------------------------------------------------------------------

    def on_mint(self, account: str, value: int, magnified_dividend_per_share: int | None = None) -> None:
        """
        Выпуск value shares аккаунту.

        Args:
            magnified_dividend_per_share: Значение накопителя на момент выпуска,
                если shares учитываются задним числом (по умолчанию текущее)
        """
        if account in self._excluded:
            return
        if magnified_dividend_per_share is None:
            magnified_dividend_per_share = self.magnified_dividend_per_share
        self._corrections[account] -= magnified_dividend_per_share * value

    def on_burn(self, account: str, value: int) -> None:
        if account in self._excluded:
            return
        self._corrections[account] += self.magnified_dividend_per_share * value

    def on_transfer(self, sender: str, recipient: str, value: int) -> None:
        """
        Перемещение shares.

        Переход из исключённого аккаунта в обычный эквивалентен mint,
        из обычного в исключённый — burn.
        """
        mag_correction = self.magnified_dividend_per_share * value
        if sender not in self._excluded:
            self._corrections[sender] += mag_correction
        if recipient not in self._excluded:
            self._corrections[recipient] -= mag_correction

    def on_claim(self, account: str, value: int) -> None:
        """
        Получение с исключённого адреса shares, уже учтённых за аккаунтом.

        Снимает коррекцию, которую on_transfer применил как к mint.
        """
        if account in self._excluded:
            return
        self._corrections[account] += self.magnified_dividend_per_share * value

    # -------------------------------------------------------------------------
    # Начисления
    # -------------------------------------------------------------------------

    def accumulative_dividend_of(self, account: str, balance: int, correction: int = 0) -> int:
        """
        Всё начисленное аккаунту за всё время.

        correction добавляется к коррекции аккаунта (shares, ещё не
        проведённые через on_mint).
        """
        if account in self._excluded:
            balance = 0
        magnified = self.magnified_dividend_per_share * balance + self._corrections[account] + correction
        return max(magnified, 0) // MAGNITUDE

    def withdrawable_dividend_of(self, account: str, balance: int, correction: int = 0) -> int:
        return self.accumulative_dividend_of(account, balance, correction) - self._withdrawn[account]

    def withdrawn_dividend_of(self, account: str) -> int:
        return self._withdrawn[account]

    def record_withdrawal(self, account: str, amount: int) -> None:
        """Фиксация выплаты; amount не может превышать withdrawable."""
        self._withdrawn[account] += amount

    # -------------------------------------------------------------------------
    # Откат операции
    # -------------------------------------------------------------------------

    def checkpoint(self) -> tuple:
        return (
            self.magnified_dividend_per_share,
            self.total_distributed,
            self.undistributed,
            dict(self._corrections),
            dict(self._withdrawn),
            set(self._excluded),
        )

    def rollback(self, saved: tuple) -> None:
        (
            self.magnified_dividend_per_share,
            self.total_distributed,
            self.undistributed,
            corrections,
            withdrawn,
            self._excluded,
        ) = saved
        self._corrections = defaultdict(int, corrections)
        self._withdrawn = defaultdict(int, withdrawn)
