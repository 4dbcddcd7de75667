import time
from pathlib import Path

import pandas as pd
import requests

from accident_hotspots.config import PATH_CONFIG, WEATHER_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")


def build_weather_url(start_date, end_date, latitude=None, longitude=None, config=None):
    """Fill the archive URL template for one location and date range"""
    config = config or WEATHER_CONFIG
    return config["url_template"].format(
        latitude=config["latitude"] if latitude is None else latitude,
        longitude=config["longitude"] if longitude is None else longitude,
        start_date=start_date,
        end_date=end_date,
        hourly=",".join(config["columns"]),
        timezone=config["timezone"],
    )


def parse_hourly_payload(payload, config=None):
    """Turn the archive JSON ``hourly`` block into a table keyed by the timestamp column"""
    config = config or WEATHER_CONFIG
    hourly = payload.get("hourly") or {}
    if "time" not in hourly:
        raise ValueError("Weather payload has no hourly time axis")

    df = pd.DataFrame({config["timestamp_col"]: pd.to_datetime(hourly["time"])})
    for api_name in config["columns"]:
        if api_name in hourly:
            df[api_name] = hourly[api_name]
        else:
            logger.warning(f"Weather variable '{api_name}' missing from payload")
    return df


def fetch_weather(start_date, end_date, latitude=None, longitude=None, config=None):
    """
    Download hourly weather for the date range.

    Retries ``config["retries"]`` times, waiting ``config["wait_time"]`` seconds
    between attempts; the last failure is re-raised.
    """
    config = config or WEATHER_CONFIG
    url = build_weather_url(start_date, end_date, latitude, longitude, config)

    attempt = 0
    while attempt < config["retries"]:
        try:
            logger.info(f"Downloading weather from {url} (Attempt {attempt + 1}/{config['retries']})")
            response = requests.get(url, timeout=config["timeout"])
            response.raise_for_status()
            return parse_hourly_payload(response.json(), config)

        except requests.RequestException as e:
            logger.error(f"Error downloading weather {start_date} → {end_date}: {e}")
            attempt += 1
            if attempt < config["retries"]:
                logger.info(f"Retrying in {config['wait_time']} seconds...")
                time.sleep(config["wait_time"])
            else:
                raise


def download_weather(output_file, start_date, end_date, latitude=None, longitude=None, config=None):
    """Download hourly weather and write it to the spreadsheet the loader reads"""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    df = fetch_weather(start_date, end_date, latitude, longitude, config)
    df.to_excel(output_file, index=False, engine="openpyxl")
    logger.info(f"Weather ({len(df)} hours) saved to {output_file}")
    return output_file
