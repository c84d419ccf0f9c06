"""
Meta vault orchestration

MetaVault, учёт его shares, размещение капитала во внешних vaults
и защита операций (атомарность, повторный вход).
"""

# Guards
from metavault.vault.guards import (
    nonreentrant,
    transaction,
)

# Share Ledger
from metavault.vault.ledger import ShareLedger

# Routing
from metavault.vault.routing import (
    CapitalRouter,
    DCARouter,
    DualTargetRouter,
    HarvestResult,
    SingleTargetRouter,
)

# Meta Vault
from metavault.vault.meta_vault import MetaVault

__all__ = [
    # Guards
    "transaction",
    "nonreentrant",
    # Ledger
    "ShareLedger",
    # Routing
    "CapitalRouter",
    "SingleTargetRouter",
    "DualTargetRouter",
    "DCARouter",
    "HarvestResult",
    # Meta Vault
    "MetaVault",
]
