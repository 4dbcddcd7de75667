import re
from pathlib import Path

import geopandas as gpd
import pandas as pd

from accident_hotspots.config import DATA_CONFIG, PATH_CONFIG, WEATHER_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

UNIT_SUFFIX = re.compile(r"\s*\(.*\)\s*$")


class AccidentDataLoader:
    def __init__(self, data_config=None, weather_config=None):
        logger.info("Initializing AccidentDataLoader")
        self.data_config = data_config or DATA_CONFIG
        self.weather_config = weather_config or WEATHER_CONFIG

    def load_accidents(self, path):
        """Read the geo-referenced accident points and return their properties as a flat table"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Accident dataset not found at {path}")

        try:
            gdf = gpd.read_file(path)
        except Exception as e:
            logger.error(f"Error reading accident dataset {path}: {e}")
            raise

        df = pd.DataFrame(gdf.drop(columns="geometry", errors="ignore"))
        logger.info(f"Loaded {len(df)} accident records with {len(df.columns)} columns from {path}")

        required_cols = [
            self.data_config["id_col"],
            self.data_config["point_col"],
            self.data_config["timestamp_col"],
            self.data_config["severity_col"],
            self.data_config["region_col"],
        ]
        self.validate_columns(df, required_cols, "accident dataset")
        return df

    def load_weather(self, path):
        """Read the hourly weather spreadsheet with canonical covariate names"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Weather spreadsheet not found at {path}")

        try:
            df = pd.read_excel(path, engine="openpyxl")
        except Exception as e:
            logger.error(f"Error reading weather spreadsheet {path}: {e}")
            raise

        df = self.normalize_weather_columns(df)
        logger.info(f"Loaded {len(df)} hourly weather observations from {path}")
        return df

    def normalize_weather_columns(self, df):
        """Strip unit suffixes ("temperature_2m (°C)") and rename to the configured covariate names"""
        ts_col = self.weather_config["timestamp_col"]
        rename_map = self.weather_config["columns"]

        df = df.rename(columns=lambda c: UNIT_SUFFIX.sub("", str(c)).strip())
        self.validate_columns(df, [ts_col], "weather spreadsheet")

        known = [c for c in rename_map if c in df.columns]
        missing = set(rename_map) - set(known)
        if missing:
            logger.warning(f"Weather covariates not found in spreadsheet: {sorted(missing)}")

        df = df[[ts_col] + known].rename(columns=rename_map)
        df[ts_col] = pd.to_datetime(df[ts_col], errors="coerce")

        bad_rows = df[ts_col].isna().sum()
        if bad_rows:
            logger.warning(f"Dropping {bad_rows} weather rows with unparsable timestamps")
            df = df.dropna(subset=[ts_col])

        return df.reset_index(drop=True)

    def save_cleaned(self, df, path=None):
        """Write the cleaned accident table to a spreadsheet"""
        if path is None:
            path = Path(PATH_CONFIG["results_dir"]) / PATH_CONFIG["cleaned_accidents"]
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            df.to_excel(path, index=False, engine="openpyxl")
            logger.info(f"Cleaned accident table ({len(df)} rows) saved to {path}")
            return path
        except Exception as e:
            logger.error(f"Failed to save cleaned table: {e}")
            raise

    @staticmethod
    def validate_columns(df, required_cols, source):
        """Validate that the table has the columns the pipeline needs"""
        missing_cols = set(required_cols) - set(df.columns)
        if missing_cols:
            raise ValueError(f"Missing required columns in {source}: {sorted(missing_cols)}")
        return True
