import re
from pathlib import Path

import numpy as np
import pandas as pd

from accident_hotspots.config import DATA_CONFIG, PATH_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

LAT_PATTERN = re.compile(r"""['"]?lat(?:itude)?['"]?\s*[:=]\s*(-?\d+(?:\.\d+)?)""")
LON_PATTERN = re.compile(r"""['"]?(?:long|lon|lng|longitude)['"]?\s*[:=]\s*(-?\d+(?:\.\d+)?)""")

CYRILLIC_TO_LATIN = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "e",
    "ж": "zh", "з": "z", "и": "i", "й": "j", "к": "k", "л": "l", "м": "m",
    "н": "n", "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u",
    "ф": "f", "х": "kh", "ц": "c", "ч": "ch", "ш": "sh", "щ": "shh", "ъ": "",
    "ы": "y", "ь": "", "э": "e", "ю": "yu", "я": "ya",
}

# "Невский район" -> "Nevskij rajon" -> "Nevskij district"
DISTRICT_SUFFIX = re.compile(r"\s+(?:rajon|r-n|r\.)$", re.IGNORECASE)


def extract_coordinate(text, pattern):
    """Pull one coordinate out of the embedded point text, None when absent"""
    if text is None or (isinstance(text, float) and pd.isna(text)):
        return None
    match = pattern.search(str(text))
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def transliterate(text):
    out = []
    for char in str(text):
        latin = CYRILLIC_TO_LATIN.get(char.lower())
        if latin is None:
            out.append(char)
        elif char.isupper():
            out.append(latin.capitalize())
        else:
            out.append(latin)
    return "".join(out)


def normalize_district(name):
    if name is None or (isinstance(name, float) and pd.isna(name)):
        return None
    latin = " ".join(transliterate(name).split())
    return DISTRICT_SUFFIX.sub(" district", latin)


class AccidentCleaner:
    def __init__(self, config=None):
        self.config = config or DATA_CONFIG

    def clean(self, raw_df):
        """Run every cleaning step and return the cleaned accident table"""
        logger.info("Cleaning %d raw accident records", len(raw_df))

        df = self.extract_coordinates(raw_df)
        df = self.normalize_severity(df)
        df = self.normalize_districts(df)
        df = self.parse_timestamps(df)
        df = self.filter_longitude_outliers(df)
        df = self.filter_years(df)

        df = df[self.config["output_columns"]].reset_index(drop=True)
        logger.info("✅ Cleaning completed: %d records kept of %d", len(df), len(raw_df))
        return df

    def extract_coordinates(self, df):
        point_col = self.config["point_col"]
        df = df.copy()
        df["latitude"] = df[point_col].map(lambda p: extract_coordinate(p, LAT_PATTERN)).astype(float)
        df["longitude"] = df[point_col].map(lambda p: extract_coordinate(p, LON_PATTERN)).astype(float)

        missing = df["latitude"].isna() | df["longitude"].isna()
        if missing.any():
            logger.warning(f"Dropping {int(missing.sum())} records with unparsable coordinates")
        return df[~missing]

    def normalize_severity(self, df):
        severity_col = self.config["severity_col"]
        df = df.copy()
        labels = df[severity_col].astype(str).str.strip()
        df["severity"] = labels.map(self.config["severity_map"])

        unknown = df["severity"].isna()
        if unknown.any():
            logger.warning(
                f"Dropping {int(unknown.sum())} records with unknown severity labels: "
                f"{sorted(labels[unknown].unique())[:5]}"
            )
            df = df[~unknown].copy()

        df["severity_binary"] = np.where(
            df["severity"].isin(self.config["severe_levels"]), "Severe/Fatal", "Light"
        )
        return df

    def normalize_districts(self, df):
        df = df.copy()
        df["district"] = df[self.config["region_col"]].map(normalize_district)
        logger.info(f"Districts after transliteration: {df['district'].nunique()}")
        return df

    def parse_timestamps(self, df):
        ts_col = self.config["timestamp_col"]
        df = df.copy()
        timestamps = pd.to_datetime(df[ts_col], errors="coerce")
        if getattr(timestamps.dt, "tz", None) is not None:
            timestamps = timestamps.dt.tz_localize(None)
        df["datetime"] = timestamps

        bad = df["datetime"].isna()
        if bad.any():
            logger.warning(f"Dropping {int(bad.sum())} records with unparsable timestamps")
        return df[~bad]

    def filter_longitude_outliers(self, df):
        """Drop points west of the configured longitude, they were geocoded outside the city"""
        threshold = self.config["min_longitude"]
        logger.info(f"Longitude before filter: min={df['longitude'].min()}, max={df['longitude'].max()}")

        filtered = df[df["longitude"] > threshold]

        logger.info(f"Longitude after filter: min={filtered['longitude'].min()}, max={filtered['longitude'].max()}")
        logger.info(f"Removed {len(df) - len(filtered)} records with longitude <= {threshold}")
        return filtered

    def filter_years(self, df):
        start, end = self.config["year_range"]
        years = df["datetime"].dt.year
        filtered = df[(years >= start) & (years <= end)]
        logger.info(f"Kept {len(filtered)} records within {start}-{end} (removed {len(df) - len(filtered)})")
        return filtered
