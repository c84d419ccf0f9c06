"""
Share Ledger — Учёт shares мета-хранилища

Мета-хранилище само является fungible токеном своих shares.
Shares, ещё не востребованные через redeem, и shares в очереди на вывод
хранятся на адресе самого хранилища.

Наблюдатели (например, MagnifiedDividendTracker) получают каждое
изменение баланса через on_mint/on_burn/on_transfer.
"""

from collections import defaultdict
from typing import Callable, Protocol

from metavault.core.domain.events import Transfer
from metavault.core.domain.vault import ZERO_ADDRESS
from metavault.core.errors import VaultStateError, VaultValidationError
from metavault.core.math.share_math import assert_uint128


class BalanceObserver(Protocol):
    def on_mint(self, account: str, value: int) -> None: ...

    def on_burn(self, account: str, value: int) -> None: ...

    def on_transfer(self, sender: str, recipient: str, value: int) -> None: ...


class ShareLedger:
    """
    Балансы shares.

    Каждое изменение публикует Transfer (mint: sender == ZERO_ADDRESS,
    burn: recipient == ZERO_ADDRESS) через emit.
    """

    def __init__(self, emit: Callable[[Transfer], None] | None = None):
        self._balances: dict[str, int] = defaultdict(int)
        self._total_supply = 0
        self._observers: list[BalanceObserver] = []
        self._emit = emit

    def subscribe(self, observer: BalanceObserver) -> None:
        self._observers.append(observer)

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances[account]

    def holders(self) -> dict[str, int]:
        return {account: balance for account, balance in self._balances.items() if balance}

    # -------------------------------------------------------------------------
    # Изменения балансов
    # -------------------------------------------------------------------------

    def mint(self, account: str, value: int) -> None:
        if account == ZERO_ADDRESS:
            raise VaultValidationError("ERC20: mint to the zero address")
        assert_uint128(self._total_supply + value)

        self._total_supply += value
        self._balances[account] += value
        for observer in self._observers:
            observer.on_mint(account, value)
        self._publish(ZERO_ADDRESS, account, value)

    def burn(self, account: str, value: int) -> None:
        if self._balances[account] < value:
            raise VaultStateError("ERC20: burn amount exceeds balance")

        self._balances[account] -= value
        self._total_supply -= value
        for observer in self._observers:
            observer.on_burn(account, value)
        self._publish(account, ZERO_ADDRESS, value)

    def transfer(self, sender: str, recipient: str, value: int) -> None:
        if recipient == ZERO_ADDRESS:
            raise VaultValidationError("ERC20: transfer to the zero address")
        if value < 0:
            raise VaultValidationError("ERC20: negative amount")
        if self._balances[sender] < value:
            raise VaultStateError("ERC20: transfer amount exceeds balance")

        self._balances[sender] -= value
        self._balances[recipient] += value
        for observer in self._observers:
            observer.on_transfer(sender, recipient, value)
        self._publish(sender, recipient, value)

    def _publish(self, sender: str, recipient: str, value: int) -> None:
        if self._emit is not None:
            self._emit(Transfer(sender=sender, recipient=recipient, value=value))

    # -------------------------------------------------------------------------
    # Откат операции
    # -------------------------------------------------------------------------

    def checkpoint(self) -> tuple[dict[str, int], int]:
        return dict(self._balances), self._total_supply

    def rollback(self, saved: tuple[dict[str, int], int]) -> None:
        balances, self._total_supply = saved
        self._balances = defaultdict(int, balances)
