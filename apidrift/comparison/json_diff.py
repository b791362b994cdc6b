"""Path-addressed structural diff of two parsed JSON documents."""

import json
from typing import Any, List

from apidrift.domain.result import Difference, DifferenceKind


def json_equal(left: Any, right: Any) -> bool:
    """
    Deep equality for parsed JSON values.

    Member order is ignored and array order is significant. Scalars must
    share a type, so an integer never equals a float (1 != 1.0) and
    booleans never equal numbers.
    """
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)
    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right))
    if type(left) is not type(right):
        return False
    return left == right


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def diff_json(left: Any, right: Any, path: str = "$") -> List[Difference]:
    """
    Recursive diff of two parsed JSON values.

    Differences are reported in the insertion order of the left tree,
    followed by members that only exist on the right.
    """
    differences: List[Difference] = []
    _diff(left, right, path, differences)
    return differences


def _diff(left: Any, right: Any, path: str, out: List[Difference]) -> None:
    if isinstance(left, dict) and isinstance(right, dict):
        for name, value in left.items():
            current = f"{path}.{name}"
            if name in right:
                _diff(value, right[name], current, out)
            else:
                out.append(
                    Difference(
                        current,
                        DifferenceKind.MISSING_IN_RIGHT,
                        f"Missing field in API 2: {current}",
                    )
                )
        for name in right:
            if name not in left:
                current = f"{path}.{name}"
                out.append(
                    Difference(
                        current,
                        DifferenceKind.MISSING_IN_LEFT,
                        f"Missing field in API 1: {current}",
                    )
                )
    elif isinstance(left, list) and isinstance(right, list):
        for index in range(max(len(left), len(right))):
            current = f"{path}[{index}]"
            if index < len(left) and index < len(right):
                _diff(left[index], right[index], current, out)
            elif index < len(left):
                out.append(
                    Difference(
                        current,
                        DifferenceKind.MISSING_IN_RIGHT,
                        f"Missing element in API 2: {current}",
                    )
                )
            else:
                out.append(
                    Difference(
                        current,
                        DifferenceKind.MISSING_IN_LEFT,
                        f"Missing element in API 1: {current}",
                    )
                )
    elif not json_equal(left, right):
        out.append(
            Difference(
                path,
                DifferenceKind.VALUE_MISMATCH,
                f"Values differ at {path}. API 1: {_text(left)}, API 2: {_text(right)}",
            )
        )
