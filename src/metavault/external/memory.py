"""
In-Memory Collaborators — Реализации внешних коллабораторов в памяти

Используются для сценариев и тестов без блокчейна:
- InMemoryToken: ERC-20 ledger с test-only mint/burn
- InMemoryBaseVault: базовый vault с pro-rata shares, мгновенным выводом
  (instant fee в wad) и выводом через закрытие раунда
- InMemorySwapRouter: обмен по фиксированным курсам с fee пулов из пути

Поведение повторяет публичные интерфейсы оригинальных контрактов настолько,
насколько это нужно мета-хранилищу; ценообразование опционов не моделируется:
премии и убытки задаются явно через accrue()/realize_loss().
"""

import logging
from collections import defaultdict

from metavault.core.domain.vault import ZERO_ADDRESS, Withdrawal
from metavault.core.errors import VaultStateError, VaultValidationError, require
from metavault.core.math.share_math import (
    asset_to_shares,
    price_per_share,
    shares_to_asset,
    wmul,
)
from metavault.external.swap_path import decode_path

logger = logging.getLogger(__name__)

# Знаменатель fee пулов Uniswap v3 (3000 == 0.3%)
POOL_FEE_DENOMINATOR = 1_000_000


# =============================================================================
# TOKEN
# =============================================================================


class InMemoryToken:
    """ERC-20 ledger."""

    def __init__(self, address: str, symbol: str, decimals: int):
        self.address = address
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = defaultdict(int)
        self._allowances: dict[tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"<InMemoryToken {self.symbol} {self.address}>"

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances[account]

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances[(owner, spender)]

    def transfer(self, recipient: str, amount: int, *, sender: str) -> None:
        self._move(sender, recipient, amount)

    def approve(self, spender: str, amount: int, *, sender: str) -> None:
        require(amount >= 0, "ERC20: negative allowance", VaultValidationError)
        self._allowances[(sender, spender)] = amount

    def transfer_from(self, owner: str, recipient: str, amount: int, *, sender: str) -> None:
        allowed = self._allowances[(owner, sender)]
        require(allowed >= amount, "ERC20: transfer amount exceeds allowance")
        self._move(owner, recipient, amount)
        self._allowances[(owner, sender)] = allowed - amount

    # Test-only: неподдерживаемо в production токенах

    def mint(self, account: str, amount: int) -> None:
        require(account != ZERO_ADDRESS, "ERC20: mint to the zero address", VaultValidationError)
        self._balances[account] += amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        require(self._balances[account] >= amount, "ERC20: burn amount exceeds balance")
        self._balances[account] -= amount
        self._total_supply -= amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        require(amount >= 0, "ERC20: negative amount", VaultValidationError)
        require(recipient != ZERO_ADDRESS, "ERC20: transfer to the zero address", VaultValidationError)
        require(self._balances[sender] >= amount, "ERC20: transfer amount exceeds balance")
        self._balances[sender] -= amount
        self._balances[recipient] += amount


# =============================================================================
# BASE VAULT
# =============================================================================


class InMemoryBaseVault:
    """
    Базовый option-selling vault.

    Цена за share = активы vault (без резерва под закрытые выводы) / supply.
    Shares в очереди на вывод хранятся у vault и участвуют в результате
    раунда до roll(); при roll() их стоимость резервируется, а shares сжигаются.
    """

    def __init__(
        self,
        address: str,
        asset: InMemoryToken,
        *,
        decimals: int | None = None,
        instant_withdrawal_fee: int = 0,
        max_withdrawable_shares: int | None = None,
    ):
        self.address = address
        self.asset = asset.address
        self.decimals = asset.decimals if decimals is None else decimals
        self._token = asset
        self._instant_withdrawal_fee = instant_withdrawal_fee
        self._max_withdrawable_shares = max_withdrawable_shares

        self._round = 1
        self._balances: dict[str, int] = defaultdict(int)
        self._total_supply = 0
        self._withdrawals: dict[str, Withdrawal] = {}
        self._queued_shares = 0
        self._withdrawal_reserve = 0
        self._round_price_per_share: dict[int, int] = {}

    def __repr__(self) -> str:
        return f"<InMemoryBaseVault {self.address} round={self._round}>"

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def round(self) -> int:
        return self._round

    def total_assets(self) -> int:
        return self._token.balance_of(self.address) - self._withdrawal_reserve

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances[account]

    def shares(self, account: str) -> int:
        return self._balances[account]

    def price_per_share(self) -> int:
        return price_per_share(self._total_supply, self.total_assets(), 0, self.decimals)

    def round_price_per_share(self, round: int) -> int:
        return self._round_price_per_share[round]

    def account_vault_balance(self, account: str) -> int:
        return shares_to_asset(self._balances[account], self.price_per_share(), self.decimals)

    def max_withdrawable_shares(self) -> int:
        if self._max_withdrawable_shares is None:
            return self._total_supply
        return min(self._max_withdrawable_shares, self._total_supply)

    def instant_withdrawal_fee(self) -> int:
        return self._instant_withdrawal_fee

    def withdrawal_of(self, account: str) -> Withdrawal:
        return self._withdrawals.get(account, Withdrawal())

    # -------------------------------------------------------------------------
    # Депозит и вывод
    # -------------------------------------------------------------------------

    def deposit(self, amount: int, *, sender: str) -> None:
        require(amount > 0, "!amount", VaultValidationError)
        shares = asset_to_shares(amount, self.price_per_share(), self.decimals)
        self._token.transfer_from(sender, self.address, amount, sender=self.address)
        self._balances[sender] += shares
        self._total_supply += shares

    def withdraw(self, shares: int, *, sender: str) -> int:
        """Мгновенный вывод; возвращает сумму за вычетом instant fee."""
        require(shares > 0, "!shares", VaultValidationError)
        require(self._balances[sender] >= shares, "Insufficient balance")
        require(shares <= self.max_withdrawable_shares(), "Exceeds max withdrawable")

        amount = shares_to_asset(shares, self.price_per_share(), self.decimals)
        fee = wmul(amount, self._instant_withdrawal_fee)
        self._balances[sender] -= shares
        self._total_supply -= shares
        self._token.transfer(sender, amount - fee, sender=self.address)
        return amount - fee

    def initiate_withdraw(self, shares: int, *, sender: str) -> None:
        require(shares > 0, "!numShares", VaultValidationError)
        require(self._balances[sender] >= shares, "ERC20: transfer amount exceeds balance")

        existing = self.withdrawal_of(sender)
        if existing.round == self._round:
            queued = existing.shares + shares
        else:
            require(existing.shares == 0, "Existing withdraw")
            queued = shares

        self._balances[sender] -= shares
        self._queued_shares += shares
        self._withdrawals[sender] = Withdrawal(round=self._round, shares=queued)

    def complete_withdraw(self, *, sender: str) -> int:
        withdrawal = self.withdrawal_of(sender)
        require(withdrawal.shares > 0, "Not initiated")
        require(withdrawal.round < self._round, "Round not closed")

        amount = shares_to_asset(
            withdrawal.shares, self._round_price_per_share[withdrawal.round], self.decimals
        )
        self._withdrawals[sender] = Withdrawal(round=withdrawal.round, shares=0)
        self._withdrawal_reserve -= amount
        self._token.transfer(sender, amount, sender=self.address)
        return amount

    def transfer(self, recipient: str, shares: int, *, sender: str) -> None:
        require(self._balances[sender] >= shares, "ERC20: transfer amount exceeds balance")
        self._balances[sender] -= shares
        self._balances[recipient] += shares

    # -------------------------------------------------------------------------
    # Симуляция раунда
    # -------------------------------------------------------------------------

    def roll(self) -> int:
        """
        Закрытие раунда базового vault.

        Фиксирует цену раунда, резервирует стоимость shares в очереди и сжигает их.

        Returns:
            Цена закрытого раунда
        """
        pps = self.price_per_share()
        self._round_price_per_share[self._round] = pps

        reserved = shares_to_asset(self._queued_shares, pps, self.decimals)
        self._withdrawal_reserve += reserved
        self._total_supply -= self._queued_shares
        self._queued_shares = 0
        self._round += 1

        logger.debug("Base vault %s rolled to round %d, pps=%d", self.address, self._round, pps)
        return pps

    def accrue(self, amount: int) -> None:
        """Премия раунда: активы vault растут на amount."""
        self._token.mint(self.address, amount)

    def realize_loss(self, amount: int) -> None:
        """Убыток раунда (опцион исполнен в деньгах): активы vault уменьшаются."""
        self._token.burn(self.address, amount)


# =============================================================================
# SWAP ROUTER
# =============================================================================


class InMemorySwapRouter:
    """
    Роутер обмена с фиксированными курсами.

    Курс пары задаётся как (amount_out, amount_in) в минимальных единицах.
    Входной токен остаётся у роутера, выходной выпускается получателю.
    """

    def __init__(self, address: str, tokens: list[InMemoryToken]):
        self.address = address
        self._tokens = {token.address.lower(): token for token in tokens}
        self._rates: dict[tuple[str, str], tuple[int, int]] = {}

    def set_rate(self, token_in: str, token_out: str, amount_out: int, amount_in: int) -> None:
        require(amount_out > 0 and amount_in > 0, "Invalid rate", VaultValidationError)
        self._rates[(token_in.lower(), token_out.lower())] = (amount_out, amount_in)

    def quote(self, path: bytes, amount_in: int) -> int:
        tokens, fees = decode_path(path)
        amount = amount_in
        for index, fee in enumerate(fees):
            key = (tokens[index].lower(), tokens[index + 1].lower())
            if key not in self._rates:
                raise VaultStateError("No pool for pair")
            amount_out, rate_in = self._rates[key]
            amount = amount * (POOL_FEE_DENOMINATOR - fee) // POOL_FEE_DENOMINATOR
            amount = amount * amount_out // rate_in
        return amount

    def exact_input(
        self,
        path: bytes,
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        *,
        sender: str,
    ) -> int:
        tokens, _ = decode_path(path)
        token_in = self._token(tokens[0])
        token_out = self._token(tokens[-1])

        amount_out = self.quote(path, amount_in)
        require(amount_out >= amount_out_minimum, "Too little received")

        token_in.transfer_from(sender, self.address, amount_in, sender=self.address)
        token_out.mint(recipient, amount_out)
        return amount_out

    def _token(self, address: str) -> InMemoryToken:
        token = self._tokens.get(address.lower())
        if token is None:
            raise VaultValidationError("Unknown token")
        return token
