"""
Iteration generator.

Expands a token specification into the ordered list of token
assignments that a comparison run executes. Two strategies:

- ALL_COMBINATIONS: truncated Cartesian product in token insertion order
- ONE_BY_ONE: the all-defaults assignment followed by single-token
  deviations from it
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from apidrift.utils.logger import get_logger

logger = get_logger(__name__)

Scalar = Union[str, int, float, bool]
TokenSpec = Mapping[str, Sequence[Scalar]]
IterationAssignment = Mapping[str, Scalar]


class IterationStrategy(Enum):
    """Combinatorial strategy used to expand a token specification."""

    ALL_COMBINATIONS = "ALL_COMBINATIONS"
    ONE_BY_ONE = "ONE_BY_ONE"

    @classmethod
    def parse(cls, name: Optional[Union[str, "IterationStrategy"]]) -> "IterationStrategy":
        """
        Resolve a strategy name case-insensitively.

        Unknown or missing names fall back to ALL_COMBINATIONS.
        """
        if isinstance(name, cls):
            return name
        if name:
            for strategy in cls:
                if strategy.value == str(name).strip().upper():
                    return strategy
            logger.warning(
                "Unknown iteration strategy, using ALL_COMBINATIONS",
                operation="generate_iterations",
                context={"strategy": name},
            )
        return cls.ALL_COMBINATIONS


def _freeze(assignment: Dict[str, Scalar]) -> IterationAssignment:
    return MappingProxyType(assignment)


def generate(
    tokens: Optional[TokenSpec],
    max_iterations: int,
    strategy: Optional[Union[str, IterationStrategy]] = IterationStrategy.ALL_COMBINATIONS,
) -> List[IterationAssignment]:
    """
    Generate the ordered token assignments for a run.

    Args:
        tokens: Token name -> ordered candidate values
        max_iterations: Upper bound on the number of assignments
        strategy: IterationStrategy or its name

    Returns:
        Read-only assignments in execution order. An empty token spec
        yields a single empty assignment.

    Raises:
        ValueError: If max_iterations is less than 1
    """
    if max_iterations is None or int(max_iterations) < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations!r}")
    max_iterations = int(max_iterations)

    if not tokens:
        return [_freeze({})]

    resolved = IterationStrategy.parse(strategy)
    if resolved is IterationStrategy.ONE_BY_ONE:
        return _generate_one_by_one(tokens, max_iterations)
    return _generate_all_combinations(tokens, max_iterations)


def _generate_one_by_one(tokens: TokenSpec, max_iterations: int) -> List[IterationAssignment]:
    defaults: Dict[str, Scalar] = {}
    for name, values in tokens.items():
        defaults[name] = values[0] if values else ""

    iterations: List[IterationAssignment] = [_freeze(dict(defaults))]

    for name, values in tokens.items():
        if not values:
            continue

        default = defaults[name]
        for value in values:
            if _same_value(value, default):
                continue

            if len(iterations) >= max_iterations:
                logger.warning(
                    "Maximum number of iterations reached via ONE_BY_ONE",
                    operation="generate_iterations",
                    context={"max_iterations": max_iterations, "token": name},
                )
                return iterations

            combination = dict(defaults)
            combination[name] = value
            iterations.append(_freeze(combination))

    return iterations


def _generate_all_combinations(tokens: TokenSpec, max_iterations: int) -> List[IterationAssignment]:
    iterations: List[Dict[str, Scalar]] = [{}]

    for name, values in tokens.items():
        expanded: List[Dict[str, Scalar]] = []

        for existing in iterations:
            for value in values or ():
                combination = dict(existing)
                combination[name] = value
                expanded.append(combination)

                if len(expanded) >= max_iterations:
                    logger.warning(
                        "Maximum number of iterations reached, halting combination generation",
                        operation="generate_iterations",
                        context={"max_iterations": max_iterations, "token": name},
                    )
                    return [_freeze(item) for item in expanded]

        iterations = expanded

    return [_freeze(item) for item in iterations]


def _same_value(left: Any, right: Any) -> bool:
    # 1 == True in Python; candidate values of different scalar types are distinct.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def with_original_payload(
    tokens: Optional[TokenSpec], iterations: List[IterationAssignment]
) -> List[IterationAssignment]:
    """
    Prepend the untouched "Original Input Payload" run.

    When any tokens are configured the first executed iteration sends the
    template as-is so later iterations can be read against it.
    """
    if tokens:
        return [_freeze({})] + list(iterations)
    return list(iterations)
