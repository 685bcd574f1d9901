from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Union

from taxanet.taxonomy import Rank, normalize_rank

logger = logging.getLogger(__name__)

FilterListener = Callable[["FilterState", FrozenSet[str]], None]

THRESHOLD_FIELDS = (
    "min_correlation",
    "max_correlation",
    "max_p_value",
    "min_frequency",
    "max_frequency",
)

_DOMAINS = {
    "min_correlation": (-1.0, 1.0),
    "max_correlation": (-1.0, 1.0),
    "max_p_value": (0.0, 1.0),
    "min_frequency": (0.0, 1.0),
    "max_frequency": (0.0, 1.0),
}


class FilterState:
    """
    Current filter thresholds and aggregation rank of an analysis session.

    Values outside their usual domain, or inverted ranges, are accepted: the
    visibility pass then simply shows nothing. Listeners registered with
    ``subscribe`` are told which fields changed after every effective update.
    """

    def __init__(
        self,
        min_correlation: float = -1.0,
        max_correlation: float = 1.0,
        max_p_value: float = 1.0,
        min_frequency: float = 0.0,
        max_frequency: float = 1.0,
        rank: Union[Rank, str] = Rank.GENUS,
    ):
        self._values: Dict[str, Any] = {}
        self._listeners: List[FilterListener] = []
        self._values["min_correlation"] = _check_threshold("min_correlation", min_correlation)
        self._values["max_correlation"] = _check_threshold("max_correlation", max_correlation)
        self._values["max_p_value"] = _check_threshold("max_p_value", max_p_value)
        self._values["min_frequency"] = _check_threshold("min_frequency", min_frequency)
        self._values["max_frequency"] = _check_threshold("max_frequency", max_frequency)
        self._values["rank"] = normalize_rank(rank)

    # ------------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------------
    @property
    def min_correlation(self) -> float:
        return self._values["min_correlation"]

    @min_correlation.setter
    def min_correlation(self, value: float) -> None:
        self.update(min_correlation=value)

    @property
    def max_correlation(self) -> float:
        return self._values["max_correlation"]

    @max_correlation.setter
    def max_correlation(self, value: float) -> None:
        self.update(max_correlation=value)

    @property
    def max_p_value(self) -> float:
        return self._values["max_p_value"]

    @max_p_value.setter
    def max_p_value(self, value: float) -> None:
        self.update(max_p_value=value)

    @property
    def min_frequency(self) -> float:
        return self._values["min_frequency"]

    @min_frequency.setter
    def min_frequency(self, value: float) -> None:
        self.update(min_frequency=value)

    @property
    def max_frequency(self) -> float:
        return self._values["max_frequency"]

    @max_frequency.setter
    def max_frequency(self, value: float) -> None:
        self.update(max_frequency=value)

    @property
    def rank(self) -> str:
        return self._values["rank"]

    @rank.setter
    def rank(self, value: Union[Rank, str]) -> None:
        self.update(rank=value)

    def update(self, **fields: Any) -> FrozenSet[str]:
        """
        Set several fields at once and notify listeners a single time.

        Returns:
            FrozenSet[str]: Names of the fields whose value actually changed.

        Raises:
            AttributeError: For an unknown field name.
            TypeError, ValueError: For a value that is not a finite number
                (thresholds) or not a rank name (``rank``).
        """
        checked: Dict[str, Any] = {}
        for name, value in fields.items():
            if name == "rank":
                checked[name] = normalize_rank(value)
            elif name in THRESHOLD_FIELDS:
                checked[name] = _check_threshold(name, value)
            else:
                raise AttributeError(f"FilterState has no field '{name}'")

        changed = frozenset(
            name for name, value in checked.items() if self._values[name] != value
        )
        if not changed:
            return changed
        for name in changed:
            self._values[name] = checked[name]
        if self.min_correlation > self.max_correlation:
            logger.debug(
                "Correlation range [%s, %s] is empty",
                self.min_correlation,
                self.max_correlation,
            )
        self._notify(changed)
        return changed

    # ------------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------------
    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, changed: FrozenSet[str]) -> None:
        for listener in list(self._listeners):
            listener(self, changed)

    # ------------------------------------------------------------------------
    # Plain data
    # ------------------------------------------------------------------------
    @staticmethod
    def is_threshold_field(name: str) -> bool:
        return name in THRESHOLD_FIELDS

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterState:
        unknown = set(data) - set(THRESHOLD_FIELDS) - {"rank"}
        if unknown:
            raise ValueError(f"Unknown filter fields: {sorted(unknown)}")
        return cls(**data)

    def copy(self) -> FilterState:
        """Return a copy without listeners."""
        return FilterState.from_dict(self.to_dict())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FilterState):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"FilterState({fields})"


def _check_threshold(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if math.isnan(value):
        raise ValueError(f"{name} must not be NaN")
    low, high = _DOMAINS[name]
    if not low <= value <= high:
        logger.debug("%s=%s lies outside [%s, %s]", name, value, low, high)
    return value
