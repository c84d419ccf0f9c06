"""
External Interfaces — Интерфейсы внешних коллабораторов

Мета-хранилище не реализует токены, базовые vaults и роутер обмена;
оно обращается к ним только через эти протоколы. Вызывающий аккаунт
передаётся явно через keyword-аргумент sender.
"""

from typing import Protocol, runtime_checkable

from metavault.core.domain.vault import Withdrawal


@runtime_checkable
class FungibleToken(Protocol):
    """Fungible asset (ERC-20)."""

    address: str
    symbol: str
    decimals: int

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer(self, recipient: str, amount: int, *, sender: str) -> None: ...

    def approve(self, spender: str, amount: int, *, sender: str) -> None: ...

    def transfer_from(self, owner: str, recipient: str, amount: int, *, sender: str) -> None: ...


@runtime_checkable
class BaseVault(Protocol):
    """
    Базовый option-selling vault (covered call / put selling).

    withdraw — мгновенный вывод с instant_withdrawal_fee (wad).
    initiate_withdraw/complete_withdraw — вывод через закрытие раунда без комиссии.
    """

    address: str
    asset: str
    decimals: int

    @property
    def round(self) -> int: ...

    def deposit(self, amount: int, *, sender: str) -> None: ...

    def withdraw(self, shares: int, *, sender: str) -> int: ...

    def initiate_withdraw(self, shares: int, *, sender: str) -> None: ...

    def complete_withdraw(self, *, sender: str) -> int: ...

    def withdrawal_of(self, account: str) -> Withdrawal: ...

    def balance_of(self, account: str) -> int: ...

    def total_supply(self) -> int: ...

    def shares(self, account: str) -> int: ...

    def account_vault_balance(self, account: str) -> int: ...

    def price_per_share(self) -> int: ...

    def round_price_per_share(self, round: int) -> int: ...

    def max_withdrawable_shares(self) -> int: ...

    def instant_withdrawal_fee(self) -> int: ...

    def transfer(self, recipient: str, shares: int, *, sender: str) -> None: ...


@runtime_checkable
class SwapRouter(Protocol):
    """Роутер обмена по упакованному пути (token, fee, token, ...)."""

    address: str

    def exact_input(
        self,
        path: bytes,
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        *,
        sender: str,
    ) -> int: ...
