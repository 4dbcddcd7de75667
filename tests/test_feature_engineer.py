import numpy as np
import pandas as pd
import pytest

from accident_hotspots.config import FEATURE_CONFIG
from accident_hotspots.feature_engineer import AccidentFeatureEngineer
from accident_hotspots.models import GroupedSeries


@pytest.fixture
def series():
    """Two days of hourly counts where the count equals the running hour index"""
    index = pd.date_range("2023-01-02", periods=48, freq="h")
    counts = pd.DataFrame({"A": np.arange(48), "B": np.arange(48) % 2}, index=index)
    return GroupedSeries(grouping="district", counts=counts)


def engineer(**overrides):
    return AccidentFeatureEngineer({**FEATURE_CONFIG, **overrides})


def test_continuous_lag_crosses_midnight(series):
    table = engineer(lag_mode="continuous").transform(series)
    lag_1 = table.lags[("A", 1)]

    midnight = pd.Timestamp("2023-01-03 00:00")
    assert lag_1[midnight] == series.counts.loc[pd.Timestamp("2023-01-02 23:00"), "A"]
    assert lag_1[pd.Timestamp("2023-01-02 05:00")] == 4
    assert np.isnan(lag_1.iloc[0])


def test_per_day_lag_resets_at_midnight(series):
    table = engineer(lag_mode="per_day").transform(series)
    lag_1 = table.lags[("A", 1)]

    assert np.isnan(lag_1[pd.Timestamp("2023-01-03 00:00")])
    assert lag_1[pd.Timestamp("2023-01-03 05:00")] == series.counts.loc[pd.Timestamp("2023-01-03 04:00"), "A"]
    assert table.lags[("A", 24)].isna().all()


def test_daily_lag_matches_previous_day(series):
    table = engineer().transform(series)
    lag_24 = table.lags[("A", 24)]
    assert lag_24[pd.Timestamp("2023-01-03 07:00")] == series.counts.loc[pd.Timestamp("2023-01-02 07:00"), "A"]
    assert lag_24.iloc[:24].isna().all()


def test_every_group_gets_every_lag(series):
    table = engineer().transform(series)
    expected = {(g, lag) for g in ["A", "B"] for lag in FEATURE_CONFIG["lag_features"]}
    assert set(table.lags.columns) == expected
    assert "lag_168h[B]" in table.predictors().columns


def test_unknown_lag_mode_rejected():
    with pytest.raises(ValueError):
        engineer(lag_mode="weekly")


def test_hour_is_numeric_for_regression_and_categorical_for_classification(series):
    regression = engineer().transform(series, task="regression")
    classification = engineer().transform(series, task="classification")

    assert "hour" in regression.calendar.columns
    assert "hour_0" not in regression.calendar.columns
    assert "hour" not in classification.calendar.columns
    assert {f"hour_{h}" for h in range(24)} <= set(classification.calendar.columns)
    assert classification.dummy_columns["hour_23"] == ("hour", "23")


def test_hour_category_can_be_forced(series):
    table = engineer(hour_as_category=True).transform(series, task="regression")
    assert "hour" not in table.calendar.columns


def test_calendar_dummies_cover_all_categories(series):
    table = engineer().transform(series)
    calendar = table.calendar

    day_cols = [f"day_of_week_{d}" for d in FEATURE_CONFIG["day_names"]]
    month_cols = [f"month_{m}" for m in range(1, 13)]
    assert set(day_cols + month_cols) <= set(calendar.columns)
    assert (calendar[day_cols].sum(axis=1) == 1).all()
    # 2023-01-02 is a Monday
    assert calendar.loc[pd.Timestamp("2023-01-02 10:00"), "day_of_week_Mon"] == 1
    assert calendar["month_1"].eq(1).all()
    assert table.dummy_columns["day_of_week_Sat"] == ("day_of_week", "Sat")


def test_weather_joined_on_date_and_hour_with_missing_as_nan(series):
    weather = pd.DataFrame({
        "time": pd.date_range("2023-01-02", periods=48, freq="h").delete(5),
        "temperature": np.arange(47, dtype=float),
    })
    table = engineer().transform(series, weather)

    assert len(table.weather) == 48
    assert np.isnan(table.weather.loc[pd.Timestamp("2023-01-02 05:00"), "temperature"])
    assert table.weather.loc[pd.Timestamp("2023-01-02 06:00"), "temperature"] == 5.0


def test_duplicate_weather_keys_are_averaged(series):
    weather = pd.DataFrame({
        "time": pd.to_datetime(["2023-01-02 00:10", "2023-01-02 00:50"]),
        "temperature": [1.0, 3.0],
    })
    table = engineer().transform(series, weather)
    assert table.weather.loc[pd.Timestamp("2023-01-02 00:00"), "temperature"] == 2.0


def test_no_weather_gives_empty_covariates(series):
    table = engineer().transform(series, None)
    assert table.weather.shape == (48, 0)


def test_targets(series):
    table = engineer().transform(series)
    assert table.target("A", "regression").tolist() == list(range(48))
    assert table.target("A", "classification").iloc[:3].tolist() == [0, 1, 1]
    with pytest.raises(ValueError):
        table.target("A", "ranking")
