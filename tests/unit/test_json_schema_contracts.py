"""
Tests for JSON Schema Contract Validators

Комплексное тестирование валидатора снапшота хранилища:
- Валидность самой схемы
- Валидация снапшотов, построенных MetaVault.snapshot()
- Детекция нарушений required полей, типов и constraints
"""

import pytest
from jsonschema import ValidationError

from metavault.core.contracts import (
    SchemaLoader,
    VaultSnapshotValidator,
    validate_vault_snapshot,
)
from tests.conftest import DEPOSIT_AMOUNT, KEEPER, USER, fund


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def snapshot_data(straddle, usdc):
    """Снапшот straddle после депозита, ролловера и нового депозита."""
    fund(usdc, USER, 2 * DEPOSIT_AMOUNT)
    straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
    straddle.roll_vault(sender=KEEPER)
    straddle.deposit(DEPOSIT_AMOUNT, sender=USER)
    return straddle.snapshot().model_dump(mode="json")


# =============================================================================
# SCHEMA
# =============================================================================


class TestSchemaLoader:
    def test_schema_is_valid(self):
        schema = SchemaLoader().load_schema("vault_snapshot")
        assert schema["title"] == "VaultSnapshot"

    def test_schema_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("vault_snapshot") is loader.load_schema("vault_snapshot")

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("portfolio_state")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(RuntimeError):
            SchemaLoader(tmp_path / "absent")


# =============================================================================
# VAULT SNAPSHOT
# =============================================================================


class TestVaultSnapshotContract:
    def test_straddle_snapshot_valid(self, snapshot_data):
        validate_vault_snapshot(snapshot_data)

        assert snapshot_data["routing_mode"] == "DUAL"
        assert snapshot_data["state"]["round"] == 2
        assert snapshot_data["round_prices"] == [{"round": 1, "price_per_share": 10**6}]
        assert [a["role"] for a in snapshot_data["allocations"]] == ["call", "put"]
        assert snapshot_data["idle_balance"] == DEPOSIT_AMOUNT
        assert snapshot_data["withdrawal_reserve"] == 0

    def test_dca_snapshot_valid(self, dca):
        data = dca.snapshot().model_dump(mode="json")

        assert VaultSnapshotValidator().is_valid(data)
        assert [a["role"] for a in data["allocations"]] == ["yield", "dca"]

    def test_missing_required_field(self, snapshot_data):
        del snapshot_data["roles"]
        with pytest.raises(ValidationError, match="roles"):
            validate_vault_snapshot(snapshot_data)

    def test_unknown_routing_mode(self, snapshot_data):
        snapshot_data["routing_mode"] = "TRIPLE"
        with pytest.raises(ValidationError):
            validate_vault_snapshot(snapshot_data)

    def test_negative_total_pending(self, snapshot_data):
        snapshot_data["state"]["total_pending"] = -1
        with pytest.raises(ValidationError):
            validate_vault_snapshot(snapshot_data)

    def test_full_fee_rejected(self, snapshot_data):
        snapshot_data["fees"]["performance_fee"] = 100 * 10**6
        assert not VaultSnapshotValidator().is_valid(snapshot_data)

    def test_unknown_allocation_role(self, snapshot_data):
        snapshot_data["allocations"][0]["role"] = "strangle"
        errors = list(VaultSnapshotValidator().iter_errors(snapshot_data))
        assert len(errors) == 1

    def test_additional_properties_rejected(self, snapshot_data):
        snapshot_data["extra"] = 1
        with pytest.raises(ValidationError):
            validate_vault_snapshot(snapshot_data)

    def test_describe_errors_paths(self, snapshot_data):
        snapshot_data["state"]["round"] = 0
        snapshot_data["fees"]["management_fee"] = -1

        messages = VaultSnapshotValidator().describe_errors(snapshot_data)

        assert len(messages) == 2
        assert messages[0].startswith("$.fees.management_fee")
        assert messages[1].startswith("$.state.round")

    def test_validate_model(self, straddle):
        data = VaultSnapshotValidator().validate_model(straddle.snapshot())
        assert data["symbol"] == "rMETA"
