from pathlib import Path

import pandas as pd

from accident_hotspots.config import FEATURE_CONFIG, PATH_CONFIG, WEATHER_CONFIG
from accident_hotspots.encoder import CalendarEncoder
from accident_hotspots.logger import setup_logger
from accident_hotspots.models import FeatureTable

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

LAG_MODES = ("continuous", "per_day")


class AccidentFeatureEngineer:
    def __init__(self, config=None, weather_config=None):
        self.config = config or FEATURE_CONFIG
        self.weather_config = weather_config or WEATHER_CONFIG
        if self.config["lag_mode"] not in LAG_MODES:
            raise ValueError(f"Unknown lag_mode '{self.config['lag_mode']}'. Available: {list(LAG_MODES)}")

    def transform(self, series, weather=None, task="regression"):
        """Build the feature table for every group of ``series``"""
        counts = series.counts
        logger.info(f"Starting feature engineering: {len(counts)} hours x {len(series.groups)} {series.grouping} groups")

        hour_as_category = self.config["hour_as_category"]
        if hour_as_category is None:
            hour_as_category = task == "classification"

        lags = self._create_lag_features(counts)
        calendar, dummy_columns = self._create_calendar_features(counts.index, hour_as_category)
        weather_features = self._join_weather(counts.index, weather)

        table = FeatureTable(
            grouping=series.grouping,
            targets=counts.copy(),
            lags=lags,
            calendar=calendar,
            weather=weather_features,
            dummy_columns=dummy_columns,
        )
        logger.info(
            f"✅ Feature engineering completed: {lags.shape[1]} lag, {calendar.shape[1]} calendar, "
            f"{weather_features.shape[1]} weather columns"
        )
        return table

    def _create_lag_features(self, counts):
        lag_mode = self.config["lag_mode"]
        logger.info("Creating lag features %s (%s)", self.config["lag_features"], lag_mode)

        if lag_mode == "per_day":
            logger.warning("per_day lags reset at midnight: lags reaching into the previous day are NaN")
            shifter = counts.groupby(counts.index.normalize())
        else:
            shifter = counts

        shifted = {lag: shifter.shift(lag) for lag in self.config["lag_features"]}
        lags = pd.DataFrame(
            {(group, lag): shifted[lag][group] for group in counts.columns for lag in self.config["lag_features"]},
            index=counts.index,
        )
        lags.columns = lags.columns.set_names(["group", "lag"])
        return lags

    def _create_calendar_features(self, timestamps, hour_as_category):
        logger.info("Creating calendar features (hour as %s)", "category" if hour_as_category else "number")
        day_names = self.config["day_names"]

        calendar = pd.DataFrame({
            "hour": timestamps.hour,
            "day_of_week": [day_names[d] for d in timestamps.dayofweek],
            "month": timestamps.month,
        }, index=timestamps)

        categories = {"day_of_week": day_names, "month": list(range(1, 13))}
        if hour_as_category:
            categories["hour"] = list(range(24))

        encoder = CalendarEncoder(categories)
        return encoder.fit_transform(calendar), encoder.dummy_columns

    def _join_weather(self, timestamps, weather):
        """Left join weather on (date, hour); unmatched hours keep NaN covariates"""
        if weather is None or weather.empty:
            logger.warning("No weather observations supplied, fitting without weather covariates")
            return pd.DataFrame(index=timestamps)

        ts_col = self.weather_config["timestamp_col"]
        covariates = [c for c in weather.columns if c != ts_col]

        hourly = (
            weather.assign(
                date=weather[ts_col].dt.normalize().astype("datetime64[ns]"),
                hour=weather[ts_col].dt.hour.astype(int),
            )
            .groupby(["date", "hour"])[covariates]
            .mean(numeric_only=True)
        )

        keys = pd.DataFrame({
            "date": timestamps.normalize().astype("datetime64[ns]"),
            "hour": timestamps.hour.astype(int),
        })
        joined = keys.merge(hourly, left_on=["date", "hour"], right_index=True, how="left")
        joined = joined.drop(columns=["date", "hour"])
        joined.index = timestamps

        unmatched = int(joined.isna().all(axis=1).sum())
        if unmatched:
            logger.warning(f"{unmatched} hours have no matching weather observation (covariates left as NaN)")
        return joined
