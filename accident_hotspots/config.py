# Data Configuration - accident records as exported from the geo dataset
DATA_CONFIG = {
    "id_col": "id",
    "point_col": "point",
    "timestamp_col": "datetime",
    "severity_col": "severity",
    "region_col": "region",

    # Cleaned table columns
    "output_columns": ["id", "datetime", "severity", "severity_binary",
                       "district", "latitude", "longitude"],

    # Source-language severity labels -> fixed enum
    "severity_map": {
        "Легкий": "Light",
        "Лёгкий": "Light",
        "Тяжелый": "Severe",
        "Тяжёлый": "Severe",
        "С погибшими": "Fatal",
        "Light": "Light",
        "Severe": "Severe",
        "Fatal": "Fatal",
    },
    "severe_levels": ["Severe", "Fatal"],

    # Filters
    "min_longitude": 10.0,  # Saint Petersburg sits near 30E, anything west of this is mis-geocoded
    "year_range": (2022, 2024),
}

# DBSCAN hotspot configuration
CLUSTER_CONFIG = {
    "eps_m": 100,           # neighbourhood radius in meters
    "min_samples": 20,      # minimum accidents (incl. the point itself) in a neighbourhood
    "earth_radius_m": 6371000.0,
    "noise_id": 0,
}

# Feature engineering
FEATURE_CONFIG = {
    "lag_features": [1, 2, 3, 4, 24, 168],
    # "continuous" shifts over the whole hourly timeline,
    # "per_day" resets every lag at midnight (behaviour of the first analysis)
    "lag_mode": "continuous",
    # None -> categorical hour for classification, numeric for regression
    "hour_as_category": None,
    "day_names": ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
}

# Model Configuration - one interpretable tree per group
MODEL_CONFIG = {
    "models": {
        "regression": {
            "criterion": "squared_error",
            "max_depth": 4,
            "min_samples_split": 20,
            "min_samples_leaf": 7,
            "random_state": 42,
        },
        "classification": {
            "criterion": "gini",
            "max_depth": 4,
            "min_samples_split": 20,
            "min_samples_leaf": 7,
            "random_state": 42,
        },
    },
    "n_jobs": 1,  # groups are independent, >1 fits them in parallel
    "save_models": False,
}

# Path Configuration
PATH_CONFIG = {
    "models_dir": "./models/",
    "results_dir": "./results/",
    "logs_dir": "./logs/",

    # Specific file names
    "cleaned_accidents": "accidents_clean.xlsx",
    "feature_importance": "feature_importance.csv",
    "rules_report": "tree_rules_{grouping}_{task}.txt",
    "weekday_chart": "accidents_by_weekday.html",
    "hotspot_map": "hotspots_map.html",
}

# Weather covariates (hourly, Open-Meteo archive export)
WEATHER_CONFIG = {
    "timestamp_col": "time",
    "columns": {
        "temperature_2m": "temperature",
        "precipitation": "precipitation",
        "rain": "rain",
        "snowfall": "snowfall",
        "snow_depth": "snow_depth",
        "cloud_cover": "cloud_cover",
        "wind_speed_10m": "wind_speed",
    },
    "url_template": (
        "https://archive-api.open-meteo.com/v1/archive"
        "?latitude={latitude}&longitude={longitude}"
        "&start_date={start_date}&end_date={end_date}"
        "&hourly={hourly}&timezone={timezone}"
    ),
    "latitude": 59.9386,
    "longitude": 30.3141,
    "timezone": "Europe/Moscow",
    "retries": 3,
    "wait_time": 2,
    "timeout": 60,
}
