"""
Capital Routing — Размещение капитала мета-хранилища во внешних vaults

Один интерфейс CapitalRouter и три набора возможностей (RoutingMode):
- SINGLE (SingleTargetRouter): весь капитал в один базовый vault
- DUAL (DualTargetRouter): поровну в covered call и put selling vaults (straddle)
- SWAP_THEN_TARGET (DCARouter): капитал в yield vault, прибыль раунда
  обменивается и вносится в DCA vault, новые shares DCA vault
  распределяются держателям как дивиденды

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Все позиции номинированы в asset мета-хранилища ("!asset" иначе)
2. Стоимость позиции = liquid shares по текущей цене + shares в очереди
   на вывод по цене их раунда (или текущей, если раунд не закрыт)
3. Роутер не держит asset: всё, что возвращают внешние vaults,
   остаётся на адресе мета-хранилища
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from metavault.core.domain.snapshot import BaseVaultAllocation, RoutingMode
from metavault.core.domain.units import fee_amount
from metavault.core.errors import VaultStateError, VaultValidationError
from metavault.core.math.dividends import MagnifiedDividendTracker
from metavault.core.math.share_math import asset_to_shares, shares_to_asset
from metavault.external.interfaces import BaseVault, FungibleToken, SwapRouter
from metavault.external.swap_path import validate_swap_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarvestResult:
    """Результат сбора прибыли yield vault (DCA)."""

    requested_shares: int
    withdrawn_shares: int
    withdrawn_amount: int
    performance_fee: int
    amount_out: int
    dividend_shares: int
    distributed: int
    dividend_token: str = ""

    @property
    def shortfall_shares(self) -> int:
        return self.requested_shares - self.withdrawn_shares


def _shares_for(amount: int, price: int, decimals: int) -> int:
    """Shares стоимостью не меньше amount (округление вверх)."""
    return (amount * 10**decimals + price - 1) // price


def _split_by_value(amount: int, values: list[int]) -> list[int]:
    """
    Разбиение amount пропорционально values; часть не превышает свой value.

    Остаток округления отдаётся первым позициям со свободным value.
    amount сверх sum(values) отбрасывается.
    """
    total = sum(values)
    if total == 0:
        return [0] * len(values)
    amount = min(amount, total)

    parts = [amount * value // total for value in values]
    leftover = amount - sum(parts)
    for index, value in enumerate(values):
        extra = min(leftover, value - parts[index])
        parts[index] += extra
        leftover -= extra
    return parts


# =============================================================================
# BASE ROUTER
# =============================================================================


class CapitalRouter(ABC):
    """
    Размещение капитала в одном или нескольких базовых vaults.

    До bind() роутер не знает адрес мета-хранилища и его asset.
    """

    mode: RoutingMode

    # Трекер дивидендов держателей shares (только DCA)
    dividend_tracker: MagnifiedDividendTracker | None = None

    # Performance fee берётся при harvest, а не при ролловере
    harvests_profit: bool = False

    def __init__(self):
        self.vault_address: str | None = None
        self.asset: FungibleToken | None = None

    @abstractmethod
    def positions(self) -> list[tuple[str, BaseVault]]:
        """Позиции, в которых размещён капитал: (роль, vault)."""

    @abstractmethod
    def split(self, amount: int) -> list[int]:
        """Разбиение суммы размещения по positions()."""

    def bind(self, vault_address: str, asset: FungibleToken) -> None:
        self.validate(asset.address)
        self.vault_address = vault_address
        self.asset = asset

    def validate(self, asset: str) -> None:
        for role, vault in self.positions():
            if vault.asset.lower() != asset.lower():
                logger.error("Base vault %s (%s) asset %s != %s", vault.address, role, vault.asset, asset)
                raise VaultValidationError("!asset")

    # -------------------------------------------------------------------------
    # Оценка
    # -------------------------------------------------------------------------

    def liquid_value(self, vault: BaseVault) -> int:
        return vault.account_vault_balance(self.vault_address)

    def queued_value(self, vault: BaseVault) -> int:
        withdrawal = vault.withdrawal_of(self.vault_address)
        if withdrawal.shares == 0:
            return 0
        if withdrawal.round < vault.round:
            price = vault.round_price_per_share(withdrawal.round)
        else:
            price = vault.price_per_share()
        return shares_to_asset(withdrawal.shares, price, vault.decimals)

    def position_value(self, vault: BaseVault) -> int:
        return self.liquid_value(vault) + self.queued_value(vault)

    def total_balance(self) -> int:
        return sum(self.position_value(vault) for _, vault in self.positions())

    def total_queued_value(self) -> int:
        return sum(self.queued_value(vault) for _, vault in self.positions())

    def collectable_value(self) -> int:
        """Стоимость выводов базовых vaults, чей раунд уже закрыт."""
        return sum(
            self.queued_value(vault)
            for _, vault in self.positions()
            if vault.withdrawal_of(self.vault_address).round < vault.round
        )

    def withdrawable_value(self, vault: BaseVault) -> int:
        """Liquid стоимость, доступная мгновенному выводу (до instant fee)."""
        shares = min(vault.balance_of(self.vault_address), vault.max_withdrawable_shares())
        return shares_to_asset(shares, vault.price_per_share(), vault.decimals)

    def withdrawable_balance(self) -> int:
        return sum(self.withdrawable_value(vault) for _, vault in self.positions())

    def allocation(self) -> list[BaseVaultAllocation]:
        return [
            BaseVaultAllocation(
                role=role,
                vault=vault.address,
                shares=vault.balance_of(self.vault_address),
                value=self.position_value(vault),
                queued_shares=vault.withdrawal_of(self.vault_address).shares,
            )
            for role, vault in self.positions()
        ]

    # -------------------------------------------------------------------------
    # Движение капитала
    # -------------------------------------------------------------------------

    def deploy(self, amount: int) -> None:
        if amount <= 0:
            return

        for (role, vault), part in zip(self.positions(), self.split(amount)):
            if part == 0:
                continue
            self.asset.approve(vault.address, part, sender=self.vault_address)
            vault.deposit(part, sender=self.vault_address)
            logger.debug("Deployed %d into %s vault %s", part, role, vault.address)

        self._on_deploy(amount)

    def harvest(self, **kwargs) -> HarvestResult | None:
        """Сбор прибыли перед ролловером; по умолчанию прибыль остаётся в позициях."""
        return None

    def initiate_withdraw(self, amount: int) -> None:
        """
        Постановка в очередь базовых vaults позиций стоимостью amount.

        Части пропорциональны liquid стоимости позиций; shares округляются
        вверх и ограничены балансом. Выводы закрытых раундов базовых vaults
        должны быть собраны до вызова (collect_withdrawals).

        Args:
            amount: Стоимость, которую нужно вывести через закрытие раунда
        """
        if amount <= 0:
            return

        positions = self.positions()
        values = [self.liquid_value(vault) for _, vault in positions]
        for (role, vault), part in zip(positions, _split_by_value(amount, values)):
            if part == 0:
                continue
            held = vault.balance_of(self.vault_address)
            base_shares = min(_shares_for(part, vault.price_per_share(), vault.decimals), held)
            vault.initiate_withdraw(base_shares, sender=self.vault_address)
            logger.debug("Queued %d shares of %s vault %s", base_shares, role, vault.address)

    def collect_withdrawals(self) -> int:
        """Завершение выводов базовых vaults, чей раунд закрыт. Возвращает полученный asset."""
        collected = 0
        for role, vault in self.positions():
            withdrawal = vault.withdrawal_of(self.vault_address)
            if withdrawal.shares == 0 or withdrawal.round >= vault.round:
                continue
            value_before = self.total_balance()
            amount = vault.complete_withdraw(sender=self.vault_address)
            self._on_withdraw(amount, value_before)
            collected += amount
            logger.debug("Collected %d from %s vault %s", amount, role, vault.address)
        return collected

    def withdraw(self, amount: int, *, strict: bool = False) -> int:
        """
        Мгновенный вывод amount из liquid позиций.

        Части пропорциональны доступной стоимости позиций (баланс и
        max_withdrawable_shares базового vault), shares округляются вверх.
        Instant fee базового vault уменьшает полученную сумму.

        Args:
            amount: Стоимость к выводу (до instant fee)
            strict: Ошибка вместо частичного вывода, если ликвидности не хватает

        Returns:
            Фактически полученный asset

        Raises:
            VaultStateError: "Insufficient liquidity" (только strict)
        """
        if amount <= 0:
            return 0

        positions = self.positions()
        values = [self.withdrawable_value(vault) for _, vault in positions]
        available = sum(values)
        if available < amount:
            if strict:
                raise VaultStateError("Insufficient liquidity")
            logger.warning("Instant withdraw capped by base vault liquidity: %d of %d", available, amount)
        if available == 0:
            return 0

        value_before = self.total_balance()
        received = 0
        for (role, vault), part in zip(positions, _split_by_value(amount, values)):
            if part == 0:
                continue
            shares = _shares_for(part, vault.price_per_share(), vault.decimals)
            received += vault.withdraw(shares, sender=self.vault_address)
            logger.debug("Withdrew %d shares of %s vault %s", shares, role, vault.address)

        self._on_withdraw(received, value_before)
        return received

    # -------------------------------------------------------------------------
    # Хуки и откат
    # -------------------------------------------------------------------------

    def _on_deploy(self, amount: int) -> None:
        pass

    def _on_withdraw(self, amount: int, value_before: int) -> None:
        pass

    def checkpoint(self) -> dict:
        return {}

    def rollback(self, saved: dict) -> None:
        pass


# =============================================================================
# SINGLE / DUAL
# =============================================================================


class SingleTargetRouter(CapitalRouter):
    """Весь капитал в один базовый vault."""

    mode = RoutingMode.SINGLE

    def __init__(self, target: BaseVault):
        super().__init__()
        self.target = target

    def positions(self) -> list[tuple[str, BaseVault]]:
        return [("target", self.target)]

    def split(self, amount: int) -> list[int]:
        return [amount]


class DualTargetRouter(CapitalRouter):
    """
    Straddle: covered call + put selling поровну.

    Нечётная единица уходит в первый vault.
    """

    mode = RoutingMode.DUAL

    def __init__(self, call_vault: BaseVault, put_vault: BaseVault):
        super().__init__()
        self.call_vault = call_vault
        self.put_vault = put_vault

    def positions(self) -> list[tuple[str, BaseVault]]:
        return [("call", self.call_vault), ("put", self.put_vault)]

    def split(self, amount: int) -> list[int]:
        half = amount // 2
        return [amount - half, half]


# =============================================================================
# DCA
# =============================================================================


class DCARouter(CapitalRouter):
    """
    Капитал в yield vault; прибыль сверх размещённого principal на каждом
    ролловере выводится, обменивается по swap_path и вносится в DCA vault.

    Вывод прибыли ограничен max_withdrawable_shares yield vault;
    недополученная часть логируется и не переносится.
    """

    mode = RoutingMode.SWAP_THEN_TARGET
    harvests_profit = True

    def __init__(
        self,
        yield_vault: BaseVault,
        dca_vault: BaseVault,
        dca_asset: FungibleToken,
        swap_router: SwapRouter,
        swap_path: bytes,
    ):
        super().__init__()
        if dca_asset.address.lower() != dca_vault.asset.lower():
            raise VaultValidationError("!dcaAsset")
        validate_swap_path(swap_path, yield_vault.asset, dca_vault.asset)

        self.yield_vault = yield_vault
        self.dca_vault = dca_vault
        self.dca_asset = dca_asset
        self.swap_router = swap_router
        self.swap_path = swap_path
        self.principal = 0
        self.dividend_tracker = MagnifiedDividendTracker()

    def positions(self) -> list[tuple[str, BaseVault]]:
        return [("yield", self.yield_vault)]

    def split(self, amount: int) -> list[int]:
        return [amount]

    def bind(self, vault_address: str, asset: FungibleToken) -> None:
        super().bind(vault_address, asset)
        # Баланс адреса хранилища не участвует: unredeemed shares учитываются за
        # их владельцами (MetaVault), shares в очереди на вывод дивидендов не получают
        self.dividend_tracker.exclude(vault_address)

    def allocation(self) -> list[BaseVaultAllocation]:
        allocations = super().allocation()
        allocations.append(
            BaseVaultAllocation(
                role="dca",
                vault=self.dca_vault.address,
                shares=self.dca_vault.balance_of(self.vault_address),
                value=self.dca_vault.account_vault_balance(self.vault_address),
            )
        )
        return allocations

    def profit(self) -> int:
        return max(self.total_balance() - self.principal, 0)

    def harvest(
        self,
        *,
        performance_fee: int,
        fee_recipient: str,
        eligible_supply: int,
        min_amount_out: int = 0,
    ) -> HarvestResult | None:
        """
        Сбор прибыли yield vault в DCA vault.

        Args:
            performance_fee: Ставка на собранную прибыль (100 * 10**6 == 100%)
            fee_recipient: Получатель комиссии
            eligible_supply: Shares, участвующие в распределении дивидендов
            min_amount_out: Минимальный выход обмена

        Returns:
            HarvestResult или None, если прибыли нет
        """
        profit = self.profit()
        if profit == 0:
            return None

        vault = self.yield_vault
        requested = asset_to_shares(profit, vault.price_per_share(), vault.decimals)
        available = min(vault.balance_of(self.vault_address), vault.max_withdrawable_shares())
        shares = min(requested, available)
        if shares < requested:
            logger.warning(
                "Profit withdrawal capped by yield vault liquidity: %d of %d shares, shortfall not carried",
                shares,
                requested,
            )
        if shares == 0:
            return None

        withdrawn = vault.withdraw(shares, sender=self.vault_address)
        fee = fee_amount(withdrawn, performance_fee)
        if fee > 0:
            self.asset.transfer(fee_recipient, fee, sender=self.vault_address)

        swap_amount = withdrawn - fee
        amount_out = 0
        dividend_shares = 0
        distributed = 0
        if swap_amount > 0:
            self.asset.approve(self.swap_router.address, swap_amount, sender=self.vault_address)
            amount_out = self.swap_router.exact_input(
                self.swap_path,
                swap_amount,
                min_amount_out,
                self.vault_address,
                sender=self.vault_address,
            )

        if amount_out > 0:
            shares_before = self.dca_vault.balance_of(self.vault_address)
            self.dca_asset.approve(self.dca_vault.address, amount_out, sender=self.vault_address)
            self.dca_vault.deposit(amount_out, sender=self.vault_address)
            dividend_shares = self.dca_vault.balance_of(self.vault_address) - shares_before
            distributed = self.dividend_tracker.distribute(dividend_shares, eligible_supply)

        logger.info(
            "Harvested %d (fee %d), swapped %d -> %d, %d DCA shares to holders",
            withdrawn,
            fee,
            swap_amount,
            amount_out,
            dividend_shares,
        )
        return HarvestResult(
            requested_shares=requested,
            withdrawn_shares=shares,
            withdrawn_amount=withdrawn,
            performance_fee=fee,
            amount_out=amount_out,
            dividend_shares=dividend_shares,
            distributed=distributed,
            dividend_token=self.dca_vault.address,
        )

    def pay_dividend(self, account: str, amount: int) -> None:
        if self.dca_vault.balance_of(self.vault_address) < amount:
            raise VaultStateError("Insufficient dividend shares")
        self.dca_vault.transfer(account, amount, sender=self.vault_address)

    def _on_deploy(self, amount: int) -> None:
        self.principal += amount

    def _on_withdraw(self, amount: int, value_before: int) -> None:
        # Principal уменьшается пропорционально выведенной доле позиции
        if value_before > 0:
            removed = min(self.principal * amount // value_before, self.principal)
            self.principal -= removed

    def checkpoint(self) -> dict:
        return {"principal": self.principal}

    def rollback(self, saved: dict) -> None:
        self.principal = saved["principal"]
