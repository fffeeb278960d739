"""Utilities for validating static content payloads before instantiation."""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Any, ClassVar, Mapping, Sequence


class ModelValidationError(ValueError):
    """Raised when a payload does not satisfy a model's requirements."""

    def __init__(self, model: type[Any], errors: Sequence[str], *, key: str | None = None) -> None:
        self.model = model
        self.key = key
        self.errors = list(errors)
        message = ", ".join(self.errors) if self.errors else "invalid payload"
        subject = f"{model.__name__} '{key}'" if key else model.__name__
        super().__init__(f"{subject} validation failed: {message}")


@dataclass(frozen=True)
class FieldSpec:
    expected: Any
    description: str
    required: bool = True


@dataclass(frozen=True)
class SequenceSpec:
    item: Any
    allow_empty: bool = True


@dataclass(frozen=True)
class MappingSpec:
    key: Any
    value: Any
    allow_empty: bool = True


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_percentage(value: Any) -> bool:
    return is_number(value) and 0 <= value <= 100


def _matches_type(value: Any, expected: Any) -> bool:
    if expected is Any:
        return True
    if isinstance(expected, FieldSpec):
        return _matches_type(value, expected.expected)
    if isinstance(expected, SequenceSpec):
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
            return False
        if not expected.allow_empty and not value:
            return False
        return all(_matches_type(item, expected.item) for item in value)
    if isinstance(expected, MappingSpec):
        if not isinstance(value, Mapping):
            return False
        if not expected.allow_empty and not value:
            return False
        return all(
            _matches_type(key, expected.key) and _matches_type(item, expected.value)
            for key, item in value.items()
        )
    if isinstance(expected, tuple):
        return any(_matches_type(value, part) for part in expected)
    if isinstance(expected, type):
        if expected is int:
            return isinstance(value, int) and not isinstance(value, bool)
        if expected is float:
            return is_number(value)
        return isinstance(value, expected)
    if callable(expected):
        return bool(expected(value))
    return True


class ModelValidator:
    """Base class for catalog payload validators.

    Subclasses declare ``model`` and ``fields``; ``strict`` validators also
    reject keys they do not know about, which catches typos in content files.
    """

    model: ClassVar[type[Any]]
    fields: ClassVar[Mapping[str, FieldSpec]]
    strict: ClassVar[bool] = True

    @classmethod
    def validate(cls, data: Any, *, key: str | None = None) -> dict[str, Any]:
        if not isinstance(data, Mapping):
            raise ModelValidationError(
                cls.model,
                ["Payload must be a mapping of field names to values"],
                key=key,
            )

        errors: list[str] = []
        normalized: dict[str, Any] = {}

        for name, spec in cls.fields.items():
            if name not in data:
                if spec.required:
                    errors.append(f"Missing required field '{name}' ({spec.description})")
                continue
            value = data[name]
            if not _matches_type(value, spec.expected):
                errors.append(
                    f"Field '{name}' expected {spec.description}, received {value!r}"
                )
                continue
            normalized[name] = value

        if cls.strict:
            unknown = sorted(str(name) for name in data if name not in cls.fields)
            if unknown:
                errors.append(f"Unknown field(s): {', '.join(unknown)}")

        if errors:
            raise ModelValidationError(cls.model, errors, key=key)
        return normalized


__all__ = [
    "FieldSpec",
    "MappingSpec",
    "ModelValidationError",
    "ModelValidator",
    "SequenceSpec",
    "is_non_empty_str",
    "is_non_negative_int",
    "is_number",
    "is_percentage",
]
