"""
MetaVault — Мета-хранилище поверх базовых option-selling vaults

Хранилище принимает депозиты в asset, держит их до ролловера раунда и затем
размещает через CapitalRouter (single / straddle / DCA). Доли учитываются
в собственном ShareLedger; новые shares выпускаются на адрес хранилища
и востребуются депозиторами через redeem/max_redeem.

Жизненный цикл депозита:
    deposit → (roll_vault) → redeem → initiate_withdraw → (roll_vault) → complete_withdraw
    deposit → withdraw_instantly (только в раунде депозита)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. total_pending == сумма amount квитанций текущего раунда
2. round_price_per_share[r] записывается один раз при ролловере раунда r
3. Устаревшая квитанция конвертируется в unredeemed_shares по цене своего
   раунда до любой новой активности аккаунта
4. Один вывод в очереди на аккаунт: другой раунд с shares → "Existing withdraw"
5. Операция атомарна: при исключении локальное состояние откатывается
6. Повторный вход в любую мутирующую операцию запрещён
"""

import logging

from metavault.core.domain.config import MetaVaultConfig
from metavault.core.domain.events import (
    CapSet,
    CollectVaultFees,
    Deposit,
    DividendWithdrawn,
    DividendsDistributed,
    FeeRecipientSet,
    InitiateWithdraw,
    InstantWithdraw,
    KeeperSet,
    ManagementFeeSet,
    PerformanceFeeSet,
    Redeem,
    RollVault,
    VaultEvent,
    Withdraw,
)
from metavault.core.domain.snapshot import (
    FeeSettings,
    Roles,
    RoundPrice,
    VaultSnapshot,
)
from metavault.core.domain.units import (
    FULL_FEE,
    annual_to_weekly_management_fee,
    validate_fee_rate,
)
from metavault.core.domain.vault import (
    ZERO_ADDRESS,
    DepositReceipt,
    VaultParams,
    VaultState,
    Withdrawal,
)
from metavault.core.errors import (
    AuthorizationError,
    VaultStateError,
    VaultValidationError,
    require,
)
from metavault.core.math.lifecycle import (
    advance_round,
    commit_last_locked,
    get_vault_fees,
    rollover,
)
from metavault.core.math.share_math import (
    asset_to_shares,
    assert_uint104,
    assert_uint128,
    get_shares_from_receipt,
    price_per_share,
    shares_to_asset,
)
from metavault.external.interfaces import FungibleToken
from metavault.vault.guards import nonreentrant
from metavault.vault.ledger import ShareLedger
from metavault.vault.routing import CapitalRouter

logger = logging.getLogger(__name__)


def _is_zero(address: str) -> bool:
    return not address or address == ZERO_ADDRESS


class MetaVault:
    """
    Мета-хранилище.

    Вызывающий аккаунт передаётся явно через keyword-аргумент sender.
    """

    def __init__(self, address: str, asset: FungibleToken):
        self.address = address
        self.asset = asset

        self.name = ""
        self.symbol = ""
        self.owner = ZERO_ADDRESS
        self.keeper = ZERO_ADDRESS
        self.fee_recipient = ZERO_ADDRESS
        self.management_fee = 0
        self.performance_fee = 0

        self.vault_params: VaultParams | None = None
        self.vault_state = VaultState()
        self.router: CapitalRouter | None = None

        self._deposit_receipts: dict[str, DepositReceipt] = {}
        self._withdrawals: dict[str, Withdrawal] = {}
        self._round_price_per_share: dict[int, int] = {}
        # Накопитель дивидендов на момент выпуска shares раунда (DCA)
        self._round_dividend_per_share: dict[int, int] = {}

        self.events: list[VaultEvent] = []
        self.ledger = ShareLedger(emit=self._emit)

        self._initialized = False
        self._entered = False

    def __repr__(self) -> str:
        return f"<MetaVault {self.symbol or '?'} {self.address} round={self.vault_state.round}>"

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @nonreentrant
    def initialize(self, config: MetaVaultConfig, router: CapitalRouter) -> None:
        """
        Однократная инициализация.

        Args:
            config: Роли, комиссии (management_fee годовая), имя токена, VaultParams
            router: Размещение капитала; все его позиции должны быть в asset хранилища

        Raises:
            VaultStateError: Повторная инициализация
            VaultValidationError: Нарушение предусловий аргументов
        """
        require(not self._initialized, "Initializable: contract is already initialized")

        params = config.vault_params
        require(not _is_zero(config.owner), "!owner", VaultValidationError)
        require(not _is_zero(config.keeper), "!keeper", VaultValidationError)
        require(not _is_zero(config.fee_recipient), "!feeRecipient", VaultValidationError)
        require(config.performance_fee < FULL_FEE, "performanceFee >= 100%", VaultValidationError)
        require(config.management_fee < FULL_FEE, "managementFee >= 100%", VaultValidationError)
        require(len(config.token_name) > 0, "!tokenName", VaultValidationError)
        require(len(config.token_symbol) > 0, "!tokenSymbol", VaultValidationError)
        require(not _is_zero(params.asset), "!asset", VaultValidationError)
        require(params.asset.lower() == self.asset.address.lower(), "!asset", VaultValidationError)
        require(not _is_zero(params.underlying), "!underlying", VaultValidationError)
        require(params.minimum_supply > 0, "!minimumSupply", VaultValidationError)
        require(params.cap > 0, "!cap", VaultValidationError)
        require(
            params.cap > params.minimum_supply,
            "cap has to be higher than minSupply",
            VaultValidationError,
        )

        router.bind(self.address, self.asset)
        if router.dividend_tracker is not None:
            self.ledger.subscribe(router.dividend_tracker)

        self.owner = config.owner
        self.keeper = config.keeper
        self.fee_recipient = config.fee_recipient
        self.performance_fee = config.performance_fee
        self.management_fee = annual_to_weekly_management_fee(config.management_fee)
        self.name = config.token_name
        self.symbol = config.token_symbol
        self.vault_params = params
        self.vault_state = VaultState(round=1)
        self.router = router
        self._initialized = True

        logger.info(
            "Initialized %s (%s) mode=%s cap=%d decimals=%d",
            self.name,
            self.symbol,
            router.mode.value,
            params.cap,
            params.decimals,
        )

    # =========================================================================
    # DEPOSIT & INSTANT WITHDRAW
    # =========================================================================

    @nonreentrant
    def deposit(self, amount: int, *, sender: str) -> None:
        """
        Депозит asset в текущий раунд.

        Сумма остаётся на хранилище до ролловера и конвертируется в shares
        по цене закрытия раунда.

        Raises:
            VaultValidationError: "!amount", "!shares"
            VaultStateError: "Exceed cap", "Insufficient balance"
        """
        self._require_initialized()
        require(amount > 0, "!amount", VaultValidationError)

        total_with_deposit = self.total_balance() + amount
        require(total_with_deposit <= self.vault_params.cap, "Exceed cap")
        require(total_with_deposit >= self.vault_params.minimum_supply, "Insufficient balance")
        require(
            asset_to_shares(amount, self._last_finalized_price(), self.decimals) > 0,
            "!shares",
            VaultValidationError,
        )

        current_round = self.vault_state.round
        receipt = self._process_receipt(sender)
        unredeemed_shares = receipt.unredeemed_shares

        if receipt.round == current_round:
            deposit_amount = receipt.amount + amount
        else:
            deposit_amount = amount
        assert_uint104(deposit_amount)

        self._deposit_receipts[sender] = DepositReceipt(
            round=current_round,
            amount=deposit_amount,
            unredeemed_shares=unredeemed_shares,
        )
        total_pending = self.vault_state.total_pending + amount
        assert_uint128(total_pending)
        self.vault_state = self.vault_state.model_copy(update={"total_pending": total_pending})

        self._emit(Deposit(account=sender, amount=amount, round=current_round))
        self.asset.transfer_from(sender, self.address, amount, sender=self.address)

    @nonreentrant
    def withdraw_instantly(self, amount: int, *, sender: str) -> None:
        """
        Вывод депозита текущего раунда до ролловера, без комиссий.

        Raises:
            VaultValidationError: "!amount"
            VaultStateError: "Invalid round", "Exceed amount"
        """
        self._require_initialized()
        require(amount > 0, "!amount", VaultValidationError)

        receipt = self._receipt(sender)
        current_round = self.vault_state.round
        require(receipt.round == current_round, "Invalid round")
        require(receipt.amount >= amount, "Exceed amount")

        self._deposit_receipts[sender] = receipt.model_copy(update={"amount": receipt.amount - amount})
        self.vault_state = self.vault_state.model_copy(
            update={"total_pending": self.vault_state.total_pending - amount}
        )

        self._emit(InstantWithdraw(account=sender, amount=amount, round=current_round))
        self.asset.transfer(sender, amount, sender=self.address)

    # =========================================================================
    # REDEEM
    # =========================================================================

    @nonreentrant
    def redeem(self, num_shares: int, *, sender: str) -> None:
        """Перевод num_shares из unredeemed shares на баланс аккаунта."""
        self._require_initialized()
        require(num_shares > 0, "!numShares", VaultValidationError)
        self._redeem(sender, num_shares, is_max=False)

    @nonreentrant
    def max_redeem(self, *, sender: str) -> None:
        """Перевод всех unredeemed shares; без эффектов, если нечего востребовать."""
        self._require_initialized()
        self._redeem(sender, 0, is_max=True)

    def _redeem(self, account: str, num_shares: int, *, is_max: bool) -> int:
        receipt = self._process_receipt(account)
        unredeemed_shares = receipt.unredeemed_shares

        shares = unredeemed_shares if is_max else num_shares
        if shares == 0:
            return 0
        require(shares <= unredeemed_shares, "Exceeds available")

        self._deposit_receipts[account] = receipt.model_copy(
            update={"unredeemed_shares": unredeemed_shares - shares}
        )

        self._emit(Redeem(account=account, share=shares, round=receipt.round))
        self.ledger.transfer(self.address, account, shares)
        tracker = self.router.dividend_tracker
        if tracker is not None:
            tracker.on_claim(account, shares)
        return shares

    # =========================================================================
    # QUEUED WITHDRAW
    # =========================================================================

    @nonreentrant
    def initiate_withdraw(self, num_shares: int, *, sender: str) -> None:
        """
        Постановка shares в очередь на вывод по цене закрытия текущего раунда.

        Сначала востребует все unredeemed shares аккаунта. Повторный вызов в том
        же раунде увеличивает очередь.

        Raises:
            VaultValidationError: "!numShares"
            VaultStateError: "Existing withdraw", "ERC20: transfer amount exceeds balance"
        """
        self._require_initialized()
        require(num_shares > 0, "!numShares", VaultValidationError)

        receipt = self._receipt(sender)
        if receipt.amount > 0 or receipt.unredeemed_shares > 0:
            self._redeem(sender, 0, is_max=True)

        current_round = self.vault_state.round
        withdrawal = self.withdrawal(sender)
        if withdrawal.round == current_round:
            withdrawal_shares = withdrawal.shares + num_shares
        else:
            require(withdrawal.shares == 0, "Existing withdraw")
            withdrawal_shares = num_shares
        assert_uint128(withdrawal_shares)

        self._withdrawals[sender] = Withdrawal(round=current_round, shares=withdrawal_shares)
        self.vault_state = self.vault_state.model_copy(
            update={"queued_withdraw_shares": self.vault_state.queued_withdraw_shares + num_shares}
        )

        self._emit(InitiateWithdraw(account=sender, shares=num_shares, round=current_round))
        self.ledger.transfer(sender, self.address, num_shares)
        self.router.collect_withdrawals()
        self.router.initiate_withdraw(self._unfunded_withdrawals())

    @nonreentrant
    def complete_withdraw(self, *, sender: str) -> int:
        """
        Завершение вывода после закрытия раунда очереди.

        Сумма = shares * round_price_per_share[раунд очереди]. Выплата идёт из
        свободного asset хранилища (завершённые выводы базовых vaults), остаток
        выводится мгновенно из базовых vaults с их instant fee.

        Shares сжигаются только при полной выплате: если свободного asset,
        закрытых выводов и ликвидности базовых vaults не хватает, вывод
        остаётся в очереди до закрытия раунда базовых vaults.

        Returns:
            Выплаченная сумма

        Raises:
            VaultStateError: "Not initiated", "Round not closed",
                "Insufficient liquidity", "!withdrawAmount"
        """
        self._require_initialized()
        withdrawal = self.withdrawal(sender)
        withdrawal_shares = withdrawal.shares
        withdrawal_round = withdrawal.round

        require(withdrawal_shares > 0, "Not initiated")
        require(withdrawal_round < self.vault_state.round, "Round not closed")

        owed = shares_to_asset(
            withdrawal_shares, self._round_price_per_share[withdrawal_round], self.decimals
        )
        available = (
            self._free_balance() + self.router.collectable_value() + self.router.withdrawable_balance()
        )
        if available < owed:
            logger.warning("Withdrawal of %s deferred: owed %d, available %d", sender, owed, available)
            raise VaultStateError("Insufficient liquidity")

        self._withdrawals[sender] = Withdrawal(round=withdrawal_round, shares=0)
        self.vault_state = self.vault_state.model_copy(
            update={"queued_withdraw_shares": self.vault_state.queued_withdraw_shares - withdrawal_shares}
        )
        self.ledger.burn(self.address, withdrawal_shares)

        self.router.collect_withdrawals()
        from_idle = min(self._free_balance(), owed)
        received = self.router.withdraw(owed - from_idle, strict=True) if owed > from_idle else 0
        withdraw_amount = min(from_idle + received, owed)
        require(withdraw_amount > 0, "!withdrawAmount")

        self._emit(Withdraw(account=sender, amount=withdraw_amount, shares=withdrawal_shares))
        self.asset.transfer(sender, withdraw_amount, sender=self.address)
        return withdraw_amount

    # =========================================================================
    # ROLL
    # =========================================================================

    @nonreentrant
    def roll_vault(self, *, sender: str, min_amount_out: int = 0) -> None:
        """
        Закрытие раунда (только keeper).

        Порядок:
        1. Сбор прибыли роутером (только DCA) и завершённых выводов базовых vaults
        2. Ролловер: цена раунда, shares для pending депозитов, резерв очереди
        3. Комиссии с locked баланса до harvest, locked_amount нового раунда
        4. Новый раунд, mint shares на адрес хранилища, выплата комиссий
        5. Размещение свободного asset сверх резерва очереди

        Args:
            sender: Вызывающий аккаунт (keeper)
            min_amount_out: Минимальный выход обмена прибыли (DCA)

        Raises:
            AuthorizationError: "!keeper"
        """
        self._require_initialized()
        require(sender == self.keeper, "!keeper", AuthorizationError)

        closed_round = self.vault_state.round
        harvest = self.router.harvest(
            performance_fee=self.performance_fee,
            fee_recipient=self.fee_recipient,
            eligible_supply=self._dividend_eligible_supply(),
            min_amount_out=min_amount_out,
        )
        if harvest is not None and harvest.dividend_shares > 0:
            self._emit(
                DividendsDistributed(
                    token=harvest.dividend_token,
                    amount=harvest.dividend_shares,
                    round=closed_round,
                )
            )

        tracker = self.router.dividend_tracker
        if tracker is not None:
            # Shares депозитов закрываемого раунда выпускаются после этого распределения
            self._round_dividend_per_share[closed_round] = tracker.magnified_dividend_per_share

        self.router.collect_withdrawals()

        state = commit_last_locked(self.vault_state)
        current_balance = self.total_balance()
        result = rollover(self.ledger.total_supply(), current_balance, self.vault_params, state)

        self._round_price_per_share[closed_round] = result.new_price_per_share

        # Комиссии считаются с баланса до harvest; performance fee собранной
        # прибыли уже взята роутером
        harvested = harvest.withdrawn_amount if harvest is not None else 0
        fees = get_vault_fees(
            state,
            result.locked_balance + harvested,
            0 if self.router.harvests_profit else self.performance_fee,
            self.management_fee,
        )
        locked_amount = result.locked_balance - fees.total
        assert_uint104(locked_amount)

        self.vault_state = advance_round(state, locked_amount=locked_amount)

        if result.mint_shares > 0:
            self.ledger.mint(self.address, result.mint_shares)

        logger.debug(
            "Round %d rollover: balance=%d pps=%d mint=%d queued=%d fees=%d",
            closed_round,
            current_balance,
            result.new_price_per_share,
            result.mint_shares,
            result.queued_withdraw_amount,
            fees.total,
        )

        if fees.total > 0:
            self._pay_fees(fees.total)

        harvest_fee = harvest.performance_fee if harvest is not None else 0
        if fees.total > 0 or harvest_fee > 0:
            self._emit(
                CollectVaultFees(
                    performance_fee=fees.performance_fee + harvest_fee,
                    vault_fee=fees.total + harvest_fee,
                    round=closed_round,
                    fee_recipient=self.fee_recipient,
                )
            )

        reserve = max(result.queued_withdraw_amount - self.router.total_queued_value(), 0)
        self.router.deploy(max(self._free_balance() - reserve, 0))

        self._emit(
            RollVault(
                round=closed_round,
                price_per_share=result.new_price_per_share,
                mint_shares=result.mint_shares,
                locked_amount=locked_amount,
                queued_withdraw_amount=result.queued_withdraw_amount,
            )
        )

    def _pay_fees(self, amount: int) -> None:
        idle = self._free_balance()
        if idle < amount:
            self.router.withdraw(amount - idle)
            idle = self._free_balance()
        if idle < amount:
            logger.warning("Fee payment capped by liquidity: %d of %d", idle, amount)
            amount = idle
        if amount > 0:
            self.asset.transfer(self.fee_recipient, amount, sender=self.address)

    # =========================================================================
    # DIVIDENDS (DCA)
    # =========================================================================

    @nonreentrant
    def withdraw_dividend(self, *, sender: str) -> int:
        """
        Выплата начисленных shares DCA vault.

        Returns:
            Переданные shares DCA vault (0, если начислений нет)
        """
        self._require_initialized()
        tracker = self.router.dividend_tracker
        require(tracker is not None, "!dividends")

        self._process_receipt(sender)
        amount = self.withdrawable_dividend_of(sender)
        if amount <= 0:
            return 0

        tracker.record_withdrawal(sender, amount)
        self._emit(DividendWithdrawn(account=sender, token=self.router.dca_vault.address, amount=amount))
        self.router.pay_dividend(sender, amount)
        return amount

    def withdrawable_dividend_of(self, account: str) -> int:
        """
        Начисленные и не выплаченные shares DCA vault.

        Shares аккаунта: баланс плюс unredeemed shares, включая ещё не
        конвертированную квитанцию закрытого раунда (она участвует с момента
        выпуска shares своего раунда).
        """
        tracker = self.router.dividend_tracker if self.router is not None else None
        if tracker is None:
            return 0

        receipt = self._receipt(account)
        converted = self._unredeemed_shares(receipt) - receipt.unredeemed_shares
        correction = 0
        if converted > 0:
            correction = -self._round_dividend_per_share[receipt.round] * converted
        owned = self.ledger.balance_of(account) + receipt.unredeemed_shares + converted
        return tracker.withdrawable_dividend_of(account, owned, correction)

    def _dividend_eligible_supply(self) -> int:
        # Всё, кроме shares в очереди на вывод
        return self.ledger.total_supply() - self.vault_state.queued_withdraw_shares

    # =========================================================================
    # SHARE TOKEN
    # =========================================================================

    @nonreentrant
    def transfer(self, recipient: str, amount: int, *, sender: str) -> None:
        self._require_initialized()
        self.ledger.transfer(sender, recipient, amount)

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(account)

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    @property
    def decimals(self) -> int:
        return self.vault_params.decimals

    @property
    def cap(self) -> int:
        return self.vault_params.cap

    # =========================================================================
    # OWNER SETTERS
    # =========================================================================

    @nonreentrant
    def set_new_keeper(self, new_keeper: str, *, sender: str) -> None:
        self._require_owner(sender)
        require(not _is_zero(new_keeper), "!newKeeper", VaultValidationError)
        self._emit(KeeperSet(old_keeper=self.keeper, new_keeper=new_keeper))
        self.keeper = new_keeper

    @nonreentrant
    def set_fee_recipient(self, new_fee_recipient: str, *, sender: str) -> None:
        self._require_owner(sender)
        require(not _is_zero(new_fee_recipient), "!newFeeRecipient", VaultValidationError)
        require(new_fee_recipient != self.fee_recipient, "Must be new feeRecipient", VaultValidationError)
        self._emit(FeeRecipientSet(old_fee_recipient=self.fee_recipient, new_fee_recipient=new_fee_recipient))
        self.fee_recipient = new_fee_recipient

    @nonreentrant
    def set_management_fee(self, new_management_fee: int, *, sender: str) -> None:
        """Годовая ставка на входе; хранится ставка за раунд (неделю)."""
        self._require_owner(sender)
        validate_fee_rate(new_management_fee, "Invalid management fee")
        weekly_fee = annual_to_weekly_management_fee(new_management_fee)
        self._emit(ManagementFeeSet(management_fee=self.management_fee, new_management_fee=weekly_fee))
        self.management_fee = weekly_fee

    @nonreentrant
    def set_performance_fee(self, new_performance_fee: int, *, sender: str) -> None:
        self._require_owner(sender)
        validate_fee_rate(new_performance_fee, "Invalid performance fee")
        self._emit(
            PerformanceFeeSet(performance_fee=self.performance_fee, new_performance_fee=new_performance_fee)
        )
        self.performance_fee = new_performance_fee

    @nonreentrant
    def set_cap(self, new_cap: int, *, sender: str) -> None:
        self._require_owner(sender)
        require(new_cap > 0, "!newCap", VaultValidationError)
        assert_uint104(new_cap)
        self._emit(CapSet(old_cap=self.vault_params.cap, new_cap=new_cap))
        self.vault_params = self.vault_params.model_copy(update={"cap": new_cap})

    # =========================================================================
    # VIEWS
    # =========================================================================

    def total_balance(self) -> int:
        """Asset на хранилище плюс стоимость позиций во внешних vaults."""
        deployed = self.router.total_balance() if self.router is not None else 0
        return self.asset.balance_of(self.address) + deployed

    def price_per_share(self) -> int:
        return price_per_share(
            self.ledger.total_supply(),
            self.total_balance(),
            self.vault_state.total_pending,
            self.decimals,
        )

    def account_vault_balance(self, account: str) -> int:
        return shares_to_asset(self.shares(account), self.price_per_share(), self.decimals)

    def shares(self, account: str) -> int:
        held_by_account, held_by_vault = self.share_balances(account)
        return held_by_account + held_by_vault

    def share_balances(self, account: str) -> tuple[int, int]:
        """(shares на балансе аккаунта, unredeemed shares на хранилище)."""
        held_by_vault = self._unredeemed_shares(self._receipt(account))
        return self.ledger.balance_of(account), held_by_vault

    def round_price_per_share(self, round: int) -> int:
        return self._round_price_per_share.get(round, 0)

    def deposit_receipt(self, account: str) -> DepositReceipt:
        """Квитанция аккаунта; amount закрытого раунда показан уже в unredeemed_shares."""
        receipt = self._receipt(account)
        if 0 < receipt.round < self.vault_state.round and receipt.amount > 0:
            return DepositReceipt(
                round=receipt.round,
                amount=0,
                unredeemed_shares=self._unredeemed_shares(receipt),
            )
        return receipt

    def withdrawal(self, account: str) -> Withdrawal:
        return self._withdrawals.get(account, Withdrawal())

    def snapshot(self) -> VaultSnapshot:
        self._require_initialized()
        idle_balance = self.asset.balance_of(self.address)
        return VaultSnapshot(
            address=self.address,
            name=self.name,
            symbol=self.symbol,
            routing_mode=self.router.mode,
            params=self.vault_params,
            state=self.vault_state,
            roles=Roles(owner=self.owner, keeper=self.keeper, fee_recipient=self.fee_recipient),
            fees=FeeSettings(management_fee=self.management_fee, performance_fee=self.performance_fee),
            total_supply=self.ledger.total_supply(),
            total_balance=self.total_balance(),
            idle_balance=idle_balance,
            withdrawal_reserve=self._free_balance(),
            round_prices=[
                RoundPrice(round=r, price_per_share=pps)
                for r, pps in sorted(self._round_price_per_share.items())
            ],
            allocations=self.router.allocation(),
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _emit(self, event: VaultEvent) -> None:
        self.events.append(event)
        logger.info("%s %s", event.name, event.model_dump())

    def _receipt(self, account: str) -> DepositReceipt:
        return self._deposit_receipts.get(account, DepositReceipt())

    def _unredeemed_shares(self, receipt: DepositReceipt) -> int:
        return get_shares_from_receipt(
            receipt,
            self.vault_state.round,
            self._round_price_per_share.get(receipt.round, 0),
            self.decimals,
        )

    def _process_receipt(self, account: str) -> DepositReceipt:
        """
        Конвертация amount закрытого раунда в unredeemed_shares.

        Трекер дивидендов получает shares по накопителю на момент их выпуска.
        """
        receipt = self._receipt(account)
        if receipt.amount == 0 or receipt.round >= self.vault_state.round:
            return receipt

        converted = self._unredeemed_shares(receipt) - receipt.unredeemed_shares
        receipt = DepositReceipt(
            round=receipt.round,
            amount=0,
            unredeemed_shares=receipt.unredeemed_shares + converted,
        )
        self._deposit_receipts[account] = receipt

        tracker = self.router.dividend_tracker
        if tracker is not None and converted > 0:
            tracker.on_mint(account, converted, self._round_dividend_per_share[receipt.round])
        return receipt

    def _unfunded_withdrawals(self) -> int:
        """Стоимость shares в очереди, не покрытая свободным asset и выводами базовых vaults."""
        owed = shares_to_asset(self.vault_state.queued_withdraw_shares, self.price_per_share(), self.decimals)
        covered = self._free_balance() + self.router.total_queued_value()
        return max(owed - covered, 0)

    def _last_finalized_price(self) -> int:
        last_round = self.vault_state.round - 1
        return self._round_price_per_share.get(last_round, self.vault_params.single_share)

    def _free_balance(self) -> int:
        """Asset на хранилище, не принадлежащий pending депозитам."""
        return max(self.asset.balance_of(self.address) - self.vault_state.total_pending, 0)

    def _require_initialized(self) -> None:
        require(self._initialized, "!initialized")

    def _require_owner(self, sender: str) -> None:
        self._require_initialized()
        require(sender == self.owner, "Ownable: caller is not the owner", AuthorizationError)

    # -------------------------------------------------------------------------
    # Откат операции
    # -------------------------------------------------------------------------

    def _participants(self) -> list:
        participants = [self, self.ledger]
        if self.router is not None:
            participants.append(self.router)
            if self.router.dividend_tracker is not None:
                participants.append(self.router.dividend_tracker)
        return participants

    def checkpoint(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "owner": self.owner,
            "keeper": self.keeper,
            "fee_recipient": self.fee_recipient,
            "management_fee": self.management_fee,
            "performance_fee": self.performance_fee,
            "vault_params": self.vault_params,
            "vault_state": self.vault_state,
            "router": self.router,
            "_deposit_receipts": dict(self._deposit_receipts),
            "_withdrawals": dict(self._withdrawals),
            "_round_price_per_share": dict(self._round_price_per_share),
            "_round_dividend_per_share": dict(self._round_dividend_per_share),
            "_initialized": self._initialized,
            "events_length": len(self.events),
        }

    def rollback(self, saved: dict) -> None:
        saved = dict(saved)
        del self.events[saved.pop("events_length"):]
        for attribute, value in saved.items():
            setattr(self, attribute, value)
        logger.debug("Rolled back %s", self.address)
