"""
Data models and type definitions.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

import pandas as pd


@dataclass(frozen=True)
class Grouping:
    """How accident records are assigned to a modelling group."""
    name: str
    assign: Callable[[pd.DataFrame], pd.Series]

    def __call__(self, records: pd.DataFrame) -> pd.Series:
        return self.assign(records)

    def __str__(self) -> str:
        return self.name


DISTRICT = Grouping("district", lambda records: records["district"])
CLUSTER = Grouping("cluster", lambda records: records["cluster_id"])

GROUPINGS: Dict[str, Grouping] = {g.name: g for g in (DISTRICT, CLUSTER)}

TASKS = ("regression", "classification")


def get_grouping(name: str) -> Grouping:
    """Resolve a grouping by name."""
    try:
        return GROUPINGS[name]
    except KeyError:
        raise ValueError(f"Unknown grouping '{name}'. Available: {list(GROUPINGS)}") from None


@dataclass(frozen=True)
class GroupedSeries:
    """Hourly accident counts with one column per group id.

    ``counts`` is indexed by the hourly timestamp; its columns are the group
    ids themselves (district names or integer cluster ids).
    """
    grouping: str
    counts: pd.DataFrame

    @property
    def groups(self) -> List[Any]:
        return list(self.counts.columns)

    @property
    def timestamps(self) -> pd.DatetimeIndex:
        return self.counts.index

    def series(self, group) -> pd.Series:
        if group not in self.counts.columns:
            raise KeyError(f"Group {group!r} not present in {self.grouping} series")
        return self.counts[group]


@dataclass(frozen=True)
class FeatureTable:
    """Predictors and targets, one row per hourly timestamp.

    ``lags`` carries a two-level column index ``(group, lag_hours)``;
    ``calendar`` holds the encoded calendar predictors and ``weather`` the
    hourly covariates (NaN where no observation matched).
    """
    grouping: str
    targets: pd.DataFrame
    lags: pd.DataFrame
    calendar: pd.DataFrame
    weather: pd.DataFrame
    dummy_columns: Dict[str, Tuple[str, str]] = field(default_factory=dict)

    @property
    def groups(self) -> List[Any]:
        return list(self.targets.columns)

    @staticmethod
    def lag_name(group, lag: int) -> str:
        return f"lag_{lag}h[{group}]"

    def predictors(self) -> pd.DataFrame:
        """Flat predictor matrix handed to the tree learner."""
        lags = self.lags.copy()
        lags.columns = [self.lag_name(g, lag) for g, lag in lags.columns]
        return pd.concat([lags, self.calendar, self.weather], axis=1)

    def target(self, group, task: str) -> pd.Series:
        counts = self.targets[group]
        if task == "regression":
            return counts.rename("accidents")
        if task == "classification":
            return (counts > 0).astype(int).rename("has_accident")
        raise ValueError(f"Unknown task '{task}'. Available: {list(TASKS)}")


@dataclass(frozen=True)
class FittedTree:
    """A fitted per-group tree and what it was fitted on."""
    group: Any
    task: str
    model: Any
    feature_names: List[str]
    n_rows: int
    target_name: str
    missing_features: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.group} ({self.task}, {self.n_rows:,} rows)"
