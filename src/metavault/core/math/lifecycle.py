"""
Vault Lifecycle — Ролловер раунда и комиссии

Чистые функции перехода раунда:
- rollover: новая цена за share, новые shares для pending депозитов,
  резерв под shares в очереди на вывод
- get_vault_fees: performance и management fee за закрытый раунд
- advance_round: новый VaultState следующего раунда

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Первый раунд (supply == 0) стартует с цены 10**decimals
2. Pending депозиты получают shares по НОВОЙ цене и не наследуют
   результат раунда, в котором не участвовали
3. Комиссии берутся только при положительном результате без учёта новых депозитов
4. Функции не мутируют входные модели

ФОРМУЛЫ:
    round_start_balance = current_balance - total_pending
    new_pps = round_start_balance * 10**d // supply        (10**d при supply == 0)
    mint_shares = total_pending * 10**d // new_pps
    queued_amount = queued_shares * current_balance // (supply + mint_shares)

    sans_pending = locked_balance - total_pending
    performance_fee = (sans_pending - last_locked) * perf // (100 * 10**6)
    management_fee = sans_pending * mgmt // (100 * 10**6)
"""

from dataclasses import dataclass

from metavault.core.domain.units import fee_amount
from metavault.core.domain.vault import VaultParams, VaultState
from metavault.core.errors import VaultStateError
from metavault.core.math.share_math import asset_to_shares, assert_uint104, assert_uint128


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class RolloverResult:
    """Результат ролловера раунда."""

    locked_balance: int
    queued_withdraw_amount: int
    new_price_per_share: int
    mint_shares: int


@dataclass(frozen=True)
class VaultFees:
    """Комиссии за закрытый раунд (в asset)."""

    performance_fee: int
    management_fee: int

    @property
    def total(self) -> int:
        return self.performance_fee + self.management_fee


# =============================================================================
# ROLLOVER
# =============================================================================


def rollover(
    current_supply: int,
    current_balance: int,
    params: VaultParams,
    state: VaultState,
) -> RolloverResult:
    """
    Ролловер раунда.

    Args:
        current_supply: Текущий total supply shares
        current_balance: Все активы под управлением (включая размещённые во внешних vaults)
        params: Параметры хранилища
        state: Состояние закрываемого раунда

    Returns:
        RolloverResult(locked_balance, queued_withdraw_amount, new_price_per_share, mint_shares)

    Raises:
        VaultStateError: Если current_balance меньше total_pending
    """
    pending_amount = state.total_pending
    if current_balance < pending_amount:
        raise VaultStateError("Balance below pending")

    round_start_balance = current_balance - pending_amount
    single_share = params.single_share

    if current_supply > 0:
        new_price_per_share = round_start_balance * single_share // current_supply
    else:
        new_price_per_share = single_share

    if new_price_per_share == 0:
        # Хранилище потеряло всё: новые депозиты нельзя оценить
        raise VaultStateError("Invalid pricePerShare")

    mint_shares = asset_to_shares(pending_amount, new_price_per_share, params.decimals)
    new_supply = current_supply + mint_shares

    if new_supply > 0:
        queued_withdraw_amount = state.queued_withdraw_shares * current_balance // new_supply
    else:
        queued_withdraw_amount = 0

    assert_uint104(current_balance - queued_withdraw_amount)
    assert_uint128(new_supply)

    return RolloverResult(
        locked_balance=current_balance - queued_withdraw_amount,
        queued_withdraw_amount=queued_withdraw_amount,
        new_price_per_share=new_price_per_share,
        mint_shares=mint_shares,
    )


# =============================================================================
# FEES
# =============================================================================


def get_vault_fees(
    state: VaultState,
    current_locked_balance: int,
    performance_fee_percent: int,
    management_fee_percent: int,
) -> VaultFees:
    """
    Комиссии за закрытый раунд.

    Комиссии берутся только если locked баланс без pending депозитов
    больше last_locked_amount. Раунд с убытком или без изменения
    комиссий не платит.

    Args:
        state: Состояние закрываемого раунда (total_pending, last_locked_amount)
        current_locked_balance: Locked баланс после резерва на вывод
        performance_fee_percent: Ставка на прибыль (100 * 10**6 == 100%)
        management_fee_percent: Ставка за раунд (100 * 10**6 == 100%)

    Returns:
        VaultFees
    """
    prev_locked_amount = state.last_locked_amount
    locked_balance_sans_pending = max(current_locked_balance - state.total_pending, 0)

    if locked_balance_sans_pending <= prev_locked_amount:
        return VaultFees(performance_fee=0, management_fee=0)

    performance_fee = 0
    if performance_fee_percent > 0:
        performance_fee = fee_amount(
            locked_balance_sans_pending - prev_locked_amount, performance_fee_percent
        )

    management_fee = 0
    if management_fee_percent > 0:
        management_fee = fee_amount(locked_balance_sans_pending, management_fee_percent)

    return VaultFees(performance_fee=performance_fee, management_fee=management_fee)


# =============================================================================
# ROUND TRANSITION
# =============================================================================


def commit_last_locked(state: VaultState) -> VaultState:
    """Фиксация locked_amount закрываемого раунда как базы для комиссий."""
    return state.model_copy(update={"last_locked_amount": state.locked_amount})


def advance_round(state: VaultState, *, locked_amount: int) -> VaultState:
    """
    Новое состояние следующего раунда.

    last_locked_amount получает locked_amount закрытого раунда,
    pending депозиты обнуляются (они уже конвертированы в shares).
    queued_withdraw_shares не меняется: shares в очереди остаются
    до complete_withdraw.
    """
    return state.model_copy(
        update={
            "round": state.round + 1,
            "last_locked_amount": state.locked_amount,
            "locked_amount": locked_amount,
            "total_pending": 0,
        }
    )
