# ============================================================================
# VALIDATION GATE
# ============================================================================
# STATUS: Security - Declarative per-endpoint input constraints
# PURPOSE: Coerce and check request parameters before any side effect
# ============================================================================
"""
Validation Gate

Each endpoint declares a pydantic model whose Field constraints are the
rule set (required/optional, coercion, ranges, enumerations, patterns,
defaults). The gate evaluates raw string parameters against that model and
returns a tagged result:

    result = ValidationGate.evaluate(PriceQuery, {"krwPrice": "-5"})
    result.ok          -> False
    result.violations  -> (Violation(field="krwPrice", constraint=">0", ...),)

Every violation is collected; evaluation never stops at the first one.
On success the coerced, defaulted model replaces the raw strings.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Violation:
    """One failed rule."""
    field: str
    message: str
    value: Any = None
    constraint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "constraint": self.constraint,
        }


@dataclass(frozen=True)
class ValidationResult(Generic[M]):
    """Tagged outcome: either a coerced model or the full violation list."""
    value: Optional[M] = None
    violations: Tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.violations and self.value is not None


# pydantic error type -> compact rule rendering
_TYPE_CONSTRAINTS = {
    "float_parsing": "type float",
    "float_type": "type float",
    "finite_number": "finite",
    "int_parsing": "type int",
    "int_type": "type int",
    "int_from_float": "type int",
    "string_type": "type string",
}


def _bound(value: Any) -> Any:
    # float fields report their bounds as floats (0.0); render as written
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _render_constraint(error: Mapping[str, Any]) -> str:
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}

    if kind == "missing":
        return "required"
    if kind == "greater_than":
        return f">{_bound(ctx.get('gt'))}"
    if kind == "greater_than_equal":
        return f">={_bound(ctx.get('ge'))}"
    if kind == "less_than":
        return f"<{_bound(ctx.get('lt'))}"
    if kind == "less_than_equal":
        return f"<={_bound(ctx.get('le'))}"
    if kind == "literal_error":
        return f"one of {ctx.get('expected')}"
    if kind == "string_pattern_mismatch":
        return f"pattern {ctx.get('pattern')}"
    if kind == "string_too_long":
        return f"max_length {ctx.get('max_length')}"
    if kind == "string_too_short":
        return f"min_length {ctx.get('min_length')}"
    return _TYPE_CONSTRAINTS.get(kind, kind)


def _field_name(loc: Tuple[Any, ...]) -> str:
    if not loc:
        return "__root__"
    return ".".join(str(part) for part in loc)


def violations_from_error(exc: ValidationError) -> List[Violation]:
    """Flatten a pydantic ValidationError into gateway violations."""
    violations = []
    for error in exc.errors(include_url=False):
        kind = error.get("type")
        violations.append(
            Violation(
                field=_field_name(tuple(error.get("loc", ()))),
                message=error.get("msg", "Invalid value"),
                value=None if kind == "missing" else error.get("input"),
                constraint=_render_constraint(error),
            )
        )
    return violations


class ValidationGate:
    """
    Evaluate request parameters against an endpoint schema.

    Stateless; schemas carry all rules.
    """

    @staticmethod
    def evaluate(schema: Type[M], params: Mapping[str, Any]) -> ValidationResult[M]:
        try:
            model = schema.model_validate(dict(params))
        except ValidationError as exc:
            return ValidationResult(violations=tuple(violations_from_error(exc)))
        return ValidationResult(value=model)

    @classmethod
    def enforce(cls, schema: Type[M], params: Mapping[str, Any]) -> M:
        """
        Evaluate and raise ValidationFailed with every violation on failure.

        Used at the admission boundary (route dependencies) only.
        """
        result = cls.evaluate(schema, params)
        if not result.ok:
            raise ValidationFailed([v.to_dict() for v in result.violations])
        return result.value


__all__ = [
    "Violation",
    "ValidationResult",
    "ValidationGate",
    "violations_from_error",
]
