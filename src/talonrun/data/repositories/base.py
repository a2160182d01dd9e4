"""Base repository implementation for JSON catalog data."""
from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Generic, TypeVar

from talonrun.data import paths
from talonrun.data.errors import DataValidationError
from talonrun.data.json_loader import load_json

T = TypeVar("T")


class RepositoryBase(Generic[T]):
    """Common caching and loading behavior for repositories."""

    def __init__(self, filename: str, base_path: Path | str | None = None) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._definitions: Dict[str, T] | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        file_path = self._get_file_path()
        raw = load_json(file_path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {file_path}")
        return raw

    def _build(self, raw: dict[str, object]) -> Dict[str, T]:
        """Convert a raw dict into typed definitions."""
        raise NotImplementedError

    def _ensure_loaded(self) -> None:
        if self._definitions is None:
            raw = self._load_raw()
            self._definitions = self._build(raw)

    def get(self, def_id: str) -> T:
        """Return a definition by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        try:
            return self._definitions[def_id]
        except KeyError as exc:
            raise KeyError(def_id) from exc

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        return [self._definitions[key] for key in sorted(self._definitions.keys())]

    def in_file_order(self) -> list[T]:
        """Return all definitions in the order they are declared in the file."""
        self._ensure_loaded()
        assert self._definitions is not None
        return list(self._definitions.values())

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_int(value: object, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise DataValidationError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_bool(value: object, context: str) -> bool:
        if not isinstance(value, bool):
            raise DataValidationError(f"{context} must be a boolean.")
        return value

    @staticmethod
    def _require_choice(value: object, choices: tuple[str, ...], context: str) -> str:
        if not isinstance(value, str) or value not in choices:
            raise DataValidationError(f"{context} must be one of {list(choices)}.")
        return value

    @staticmethod
    def _assert_required(payload: dict[str, object], required: set[str], context: str) -> None:
        missing = required - payload.keys()
        if missing:
            raise DataValidationError(f"{context} missing fields: {sorted(missing)}")

    @staticmethod
    def _parse_params(raw: object, params_type: type, context: str) -> Any:
        """Build a frozen params dataclass, checking names and numeric types."""
        if raw is None:
            return params_type()
        if not isinstance(raw, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        known = {spec.name: spec for spec in fields(params_type)}
        values: Dict[str, object] = {}
        for key, value in raw.items():
            if key not in known:
                raise DataValidationError(f"{context} has unknown field '{key}'.")
            default = known[key].default
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise DataValidationError(f"{context}.{key} must be a boolean.")
            elif isinstance(default, int):
                if not isinstance(value, int) or isinstance(value, bool):
                    raise DataValidationError(f"{context}.{key} must be an integer.")
            elif not isinstance(value, (int, float)) or isinstance(value, bool):
                raise DataValidationError(f"{context}.{key} must be a number.")
            else:
                value = float(value)
            values[key] = value
        return params_type(**values)

