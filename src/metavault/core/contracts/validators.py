"""
Vault Snapshot Contract — Проверка снапшота хранилища по JSON Schema

Снапшот (MetaVault.snapshot()) сериализуется через model_dump(mode="json")
и проверяется по schema/vault_snapshot.json (Draft 2020-12). Схема
поставляется внутри пакета и читается через importlib.resources.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Схема проходит meta-validation перед первым использованием
2. Сообщения об ошибках содержат JSON-путь до нарушенного поля
"""

import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterator, List

import jsonschema
from jsonschema import Draft202012Validator
from pydantic import BaseModel

SCHEMA_PACKAGE = "metavault.core.contracts"
SCHEMA_SUBDIR = "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Чтение и кэширование схем контрактов.

    Без schema_dir схемы берутся из данных пакета metavault.core.contracts.
    """

    def __init__(self, schema_dir: Path | None = None):
        if schema_dir is None:
            self._root = resources.files(SCHEMA_PACKAGE).joinpath(SCHEMA_SUBDIR)
        else:
            if not schema_dir.is_dir():
                raise RuntimeError(f"Schema directory not found: {schema_dir}")
            self._root = schema_dir
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Схема по имени файла без расширения ('vault_snapshot').

        Raises:
            FileNotFoundError: Нет такого файла
            ValueError: Схема не проходит meta-validation
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        source = self._root.joinpath(f"{schema_name}.json")
        if not source.is_file():
            raise FileNotFoundError(f"Schema not found: {schema_name}.json")
        schema = json.loads(source.read_text(encoding="utf-8"))

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e.message}") from e

        self._cache[schema_name] = schema
        return schema


_default_loader: SchemaLoader | None = None


def default_loader() -> SchemaLoader:
    global _default_loader
    if _default_loader is None:
        _default_loader = SchemaLoader()
    return _default_loader


# =============================================================================
# VALIDATORS
# =============================================================================


class ContractValidator:
    """Валидатор данных одного контракта."""

    def __init__(self, schema_name: str, loader: SchemaLoader | None = None):
        self.schema_name = schema_name
        self.schema = (loader or default_loader()).load_schema(schema_name)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Первое найденное нарушение
        """
        self._validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[jsonschema.ValidationError]:
        return self._validator.iter_errors(data)

    def describe_errors(self, data: Dict[str, Any]) -> List[str]:
        """Все нарушения в виде '$.path.to.field: сообщение', отсортированные по пути."""
        errors = sorted(self.iter_errors(data), key=lambda error: list(error.absolute_path))
        return [f"{error.json_path}: {error.message}" for error in errors]

    def validate_model(self, model: BaseModel) -> Dict[str, Any]:
        """Проверка pydantic модели; возвращает её JSON представление."""
        data = model.model_dump(mode="json")
        self.validate(data)
        return data


class VaultSnapshotValidator(ContractValidator):
    def __init__(self, loader: SchemaLoader | None = None):
        super().__init__("vault_snapshot", loader)


def validate_vault_snapshot(data: Dict[str, Any]) -> None:
    """
    Проверка сериализованного снапшота хранилища.

    Raises:
        jsonschema.ValidationError: Снапшот не соответствует контракту
    """
    VaultSnapshotValidator().validate(data)
