"""
Core math modules для Meta Vaults

Целочисленные fixed-point примитивы: доли, ролловер раунда, комиссии, дивиденды.
"""

# Share Math
from metavault.core.math.share_math import (
    UINT104_MAX,
    UINT128_MAX,
    asset_to_shares,
    assert_uint,
    assert_uint104,
    assert_uint128,
    get_shares_from_receipt,
    price_per_share,
    shares_to_asset,
    wmul,
)

# Vault Lifecycle
from metavault.core.math.lifecycle import (
    RolloverResult,
    VaultFees,
    advance_round,
    commit_last_locked,
    get_vault_fees,
    rollover,
)

# Dividends
from metavault.core.math.dividends import (
    MAGNITUDE,
    MagnifiedDividendTracker,
)

__all__ = [
    # Share Math: Constants
    "UINT104_MAX",
    "UINT128_MAX",
    # Share Math: Functions
    "asset_to_shares",
    "shares_to_asset",
    "get_shares_from_receipt",
    "price_per_share",
    "wmul",
    "assert_uint",
    "assert_uint104",
    "assert_uint128",
    # Lifecycle: Types
    "RolloverResult",
    "VaultFees",
    # Lifecycle: Functions
    "rollover",
    "get_vault_fees",
    "commit_last_locked",
    "advance_round",
    # Dividends
    "MAGNITUDE",
    "MagnifiedDividendTracker",
]
