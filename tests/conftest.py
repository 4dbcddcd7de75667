import json

import numpy as np
import pandas as pd
import pytest

from accident_hotspots.cleaner import LAT_PATTERN, LON_PATTERN, AccidentCleaner, extract_coordinate
from accident_hotspots.config import CLUSTER_CONFIG, PATH_CONFIG

HOTSPOTS = [(59.9343, 30.3351), (59.8700, 30.4600)]
DISTRICTS = ["Центральный район", "Невский район"]
SEVERITIES = ["Легкий", "Тяжёлый", "С погибшими"]


def make_raw_accidents(n=240, seed=7, start="2023-03-06", days=21):
    """Raw records shaped like the flattened geo export: embedded point text, Russian labels"""
    rng = np.random.default_rng(seed)
    start_ts = pd.Timestamp(start)
    rows = []
    for i in range(n):
        k = i % 2
        lat0, lon0 = HOTSPOTS[k]
        lat = round(lat0 + rng.normal(0, 0.0002), 6)
        lon = round(lon0 + rng.normal(0, 0.0002), 6)
        ts = start_ts + pd.Timedelta(hours=int(rng.integers(0, days * 24)))
        rows.append({
            "id": 1000 + i,
            "point": f"{{'lat': {lat}, 'long': {lon}}}",
            "datetime": ts.strftime("%Y-%m-%d %H:%M:%S"),
            "severity": SEVERITIES[int(rng.choice(3, p=[0.7, 0.25, 0.05]))],
            "region": DISTRICTS[k],
        })
    return pd.DataFrame(rows)


def make_weather(start="2023-03-06", days=21, skip_hours=(5,)):
    times = pd.date_range(start, periods=days * 24, freq="h")
    times = times[~np.isin(np.arange(len(times)), skip_hours)]
    rng = np.random.default_rng(3)
    return pd.DataFrame({
        "time": times,
        "temperature": rng.normal(2, 4, len(times)).round(1),
        "precipitation": rng.exponential(0.2, len(times)).round(2),
    })


@pytest.fixture
def raw_accidents():
    return make_raw_accidents()


@pytest.fixture
def clean_records(raw_accidents):
    return AccidentCleaner().clean(raw_accidents)


@pytest.fixture
def weather():
    return make_weather()


@pytest.fixture
def cluster_config():
    return {**CLUSTER_CONFIG, "eps_m": 50, "min_samples": 3}


@pytest.fixture
def path_config(tmp_path):
    return {
        **PATH_CONFIG,
        "results_dir": str(tmp_path / "results"),
        "models_dir": str(tmp_path / "models"),
    }


def write_geojson(raw, path):
    """Write raw records as point features, properties flattened like the source export"""
    features = []
    for row in raw.to_dict(orient="records"):
        lat = extract_coordinate(row["point"], LAT_PATTERN)
        lon = extract_coordinate(row["point"], LON_PATTERN)
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lon, lat]},
            "properties": {k: (int(v) if k == "id" else v) for k, v in row.items()},
        })
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}, ensure_ascii=False),
                    encoding="utf-8")
    return path


@pytest.fixture
def accidents_file(raw_accidents, tmp_path):
    return write_geojson(raw_accidents, tmp_path / "accidents.geojson")


@pytest.fixture
def weather_file(tmp_path):
    path = tmp_path / "weather.xlsx"
    df = make_weather().rename(columns={
        "temperature": "temperature_2m (°C)",
        "precipitation": "precipitation (mm)",
    })
    df.to_excel(path, index=False)
    return path
