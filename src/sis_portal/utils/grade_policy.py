"""Grade computation policy.

Final grades are a weighted average of the prelim, midterm and finals
components, rounded half-up to two decimals. The grading scale is inverted
(1.0 is the best mark, 5.0 is failing), so a grade passes when it is at or
*below* the threshold.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Union

from sis_portal.config import GRADE_MISSING_COMPONENT_POLICY
from sis_portal.core.exceptions import ValidationError

Number = Union[int, float, Decimal]

PRELIM_WEIGHT = Decimal("0.3")
MIDTERM_WEIGHT = Decimal("0.3")
FINALS_WEIGHT = Decimal("0.4")

PASSING_GRADE = Decimal("3.0")
COMPONENT_MIN = Decimal("0")
COMPONENT_MAX = Decimal("100")

REMARKS_PASSED = "Passed"
REMARKS_FAILED = "Failed"

_TWO_PLACES = Decimal("0.01")


class MissingComponentPolicy(str, Enum):
    """How an absent component affects the final grade."""

    ZERO = "zero"
    BLOCK = "block"


@dataclass(frozen=True)
class GradeResult:
    final_grade: Optional[float]
    remarks: Optional[str]


def default_policy() -> MissingComponentPolicy:
    try:
        return MissingComponentPolicy(GRADE_MISSING_COMPONENT_POLICY)
    except ValueError:
        raise ValidationError(
            f"Unknown grade policy '{GRADE_MISSING_COMPONENT_POLICY}'. "
            "Use 'zero' or 'block'."
        )


def _to_decimal(name: str, value: Optional[Number]) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    # str() keeps 1.275 as 1.275 instead of its binary float expansion
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite() or amount < COMPONENT_MIN or amount > COMPONENT_MAX:
        raise ValidationError(f"{name} must be between 0 and 100")
    return amount


def validate_components(
    prelim: Optional[Number], midterm: Optional[Number], finals: Optional[Number]
) -> None:
    """Raise ValidationError if any present component is out of range."""
    _to_decimal("prelim", prelim)
    _to_decimal("midterm", midterm)
    _to_decimal("finals", finals)


def compute_final_grade(
    prelim: Optional[Number],
    midterm: Optional[Number],
    finals: Optional[Number],
    policy: Optional[MissingComponentPolicy] = None,
) -> Optional[float]:
    """Compute ``round2(0.3*prelim + 0.3*midterm + 0.4*finals)``.

    Args:
        prelim: Prelim component, 0-100 or None.
        midterm: Midterm component, 0-100 or None.
        finals: Finals component, 0-100 or None.
        policy: Missing component policy. Defaults to the configured one.

    Returns:
        The final grade, or None while the grade is pending (no component
        present, or a component missing under the "block" policy).

    Raises:
        ValidationError: If a component is outside 0-100.
    """
    components = (
        _to_decimal("prelim", prelim),
        _to_decimal("midterm", midterm),
        _to_decimal("finals", finals),
    )
    if all(c is None for c in components):
        return None

    policy = policy or default_policy()
    if policy is MissingComponentPolicy.BLOCK and any(c is None for c in components):
        return None

    p, m, f = (c if c is not None else Decimal("0") for c in components)
    total = p * PRELIM_WEIGHT + m * MIDTERM_WEIGHT + f * FINALS_WEIGHT
    return float(total.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def remarks_for(final_grade: Optional[Number]) -> Optional[str]:
    """Passed when the final grade is at or below 3.0, Failed above it."""
    if final_grade is None:
        return None
    if Decimal(str(final_grade)) <= PASSING_GRADE:
        return REMARKS_PASSED
    return REMARKS_FAILED


def compute(
    prelim: Optional[Number],
    midterm: Optional[Number],
    finals: Optional[Number],
    policy: Optional[MissingComponentPolicy] = None,
) -> GradeResult:
    final_grade = compute_final_grade(prelim, midterm, finals, policy)
    return GradeResult(final_grade=final_grade, remarks=remarks_for(final_grade))
