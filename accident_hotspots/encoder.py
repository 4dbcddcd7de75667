from pathlib import Path

import pandas as pd
from sklearn.preprocessing import OneHotEncoder

from accident_hotspots.config import PATH_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")


class CalendarEncoder:
    """One-hot encodes calendar categoricals against fixed category lists.

    Fixed categories keep the dummy columns identical for every group and
    every fit, whatever subset of days/months the data covers.
    """

    def __init__(self, categories):
        self.categories = categories
        self.encoder = None
        self.encoded_feature_names = []
        self.dummy_columns = {}

    def fit(self, X):
        cat_cols = list(self.categories)
        self.encoder = OneHotEncoder(
            categories=[self.categories[col] for col in cat_cols],
            handle_unknown="ignore",
            sparse_output=False,
            dtype=int,
        )
        self.encoder.fit(X[cat_cols])

        self.encoded_feature_names = list(self.encoder.get_feature_names_out(cat_cols))
        names = iter(self.encoded_feature_names)
        self.dummy_columns = {
            next(names): (col, str(level))
            for col, levels in zip(cat_cols, self.encoder.categories_)
            for level in levels
        }

        for col in cat_cols:
            logger.info(f"{col}: {len(self.categories[col])} categories")
        return self

    def transform(self, X):
        if self.encoder is None:
            raise RuntimeError("CalendarEncoder must be fitted before transform")

        cat_cols = list(self.categories)
        encoded = pd.DataFrame(
            self.encoder.transform(X[cat_cols]),
            columns=self.encoded_feature_names,
            index=X.index,
        )
        passthrough = X.drop(columns=cat_cols)
        return pd.concat([passthrough, encoded], axis=1)

    def fit_transform(self, X):
        self.fit(X)
        return self.transform(X)
