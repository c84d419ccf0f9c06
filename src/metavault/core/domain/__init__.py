"""
Domain models and value objects.

Contains vault parameters and state, deposit receipts, withdrawals,
events, fee units and the serializable vault snapshot.
"""

from metavault.core.domain.config import MetaVaultConfig
from metavault.core.domain.events import (
    CapSet,
    CollectVaultFees,
    Deposit,
    DividendsDistributed,
    DividendWithdrawn,
    FeeRecipientSet,
    InitiateWithdraw,
    InstantWithdraw,
    KeeperSet,
    ManagementFeeSet,
    PerformanceFeeSet,
    Redeem,
    RollVault,
    Transfer,
    VaultEvent,
    Withdraw,
)
from metavault.core.domain.snapshot import (
    BaseVaultAllocation,
    FeeSettings,
    Roles,
    RoundPrice,
    RoutingMode,
    VaultSnapshot,
)
from metavault.core.domain.units import (
    FEE_MULTIPLIER,
    FULL_FEE,
    WAD,
    WEEKS_PER_YEAR,
    annual_to_weekly_management_fee,
    fee_amount,
    validate_fee_rate,
    weekly_to_annual_management_fee,
)
from metavault.core.domain.vault import (
    ZERO_ADDRESS,
    DepositReceipt,
    VaultParams,
    VaultState,
    Withdrawal,
)

__all__ = [
    # Units module
    "FEE_MULTIPLIER",
    "FULL_FEE",
    "WAD",
    "WEEKS_PER_YEAR",
    "annual_to_weekly_management_fee",
    "weekly_to_annual_management_fee",
    "fee_amount",
    "validate_fee_rate",
    # Vault models
    "ZERO_ADDRESS",
    "VaultParams",
    "VaultState",
    "DepositReceipt",
    "Withdrawal",
    # Config
    "MetaVaultConfig",
    # Snapshot
    "RoutingMode",
    "Roles",
    "FeeSettings",
    "RoundPrice",
    "BaseVaultAllocation",
    "VaultSnapshot",
    # Events
    "VaultEvent",
    "Deposit",
    "InstantWithdraw",
    "Redeem",
    "InitiateWithdraw",
    "Withdraw",
    "Transfer",
    "CollectVaultFees",
    "RollVault",
    "DividendsDistributed",
    "DividendWithdrawn",
    "CapSet",
    "ManagementFeeSet",
    "PerformanceFeeSet",
    "KeeperSet",
    "FeeRecipientSet",
]
