from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.cluster import DBSCAN

from accident_hotspots.config import CLUSTER_CONFIG, PATH_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

COORD_COLS = ["latitude", "longitude"]


class HotspotClusterer:
    """DBSCAN over distinct accident coordinates.

    Distinct (latitude, longitude) pairs are sorted ascending before
    clustering, so DBSCAN visits them in that order and numbers clusters
    1..K in discovery order. Noise points get ``noise_id`` (0).
    """

    def __init__(self, config=None):
        self.config = config or CLUSTER_CONFIG
        self.assignments = None

    def fit(self, records):
        """Cluster the distinct coordinates of ``records``; returns the coordinate -> cluster_id table"""
        if records.empty:
            raise ValueError("Cannot cluster an empty accident table")

        coords = (
            records[COORD_COLS]
            .drop_duplicates()
            .sort_values(COORD_COLS)
            .reset_index(drop=True)
        )

        eps_m = self.config["eps_m"]
        min_samples = self.config["min_samples"]
        logger.info(f"Running DBSCAN on {len(coords)} distinct points (eps={eps_m}m, min_samples={min_samples})")

        db = DBSCAN(
            eps=eps_m / self.config["earth_radius_m"],
            min_samples=min_samples,
            metric="haversine",
            algorithm="ball_tree",
        )
        labels = db.fit_predict(np.radians(coords[COORD_COLS].values))

        noise_id = self.config["noise_id"]
        coords["cluster_id"] = np.where(labels < 0, noise_id, labels + 1 + noise_id).astype(int)
        self.assignments = coords

        n_clusters = len(set(labels) - {-1})
        n_noise = int((labels < 0).sum())
        if n_clusters == 0:
            logger.warning("DBSCAN found no dense region, every point is labelled noise")
        logger.info(f"Found {n_clusters} hotspots, {n_noise} noise points")
        return coords

    def assign_clusters(self, records):
        """Join cluster ids back onto the records by coordinate equality"""
        if self.assignments is None:
            self.fit(records)

        merged = records.merge(self.assignments, on=COORD_COLS, how="left")
        unmatched = merged["cluster_id"].isna()
        if unmatched.any():
            logger.warning(f"{int(unmatched.sum())} records have coordinates unseen at fit time, labelled noise")
        merged["cluster_id"] = merged["cluster_id"].fillna(self.config["noise_id"]).astype(int)
        return merged

    def fit_assign(self, records):
        self.fit(records)
        return self.assign_clusters(records)

    def summarize_clusters(self, clustered):
        """Centroid, size and severe share per hotspot, largest first"""
        hotspots = clustered[clustered["cluster_id"] != self.config["noise_id"]]
        if hotspots.empty:
            return pd.DataFrame(columns=["cluster_id", "latitude", "longitude", "accidents", "severe_share"])

        summary = (
            hotspots.assign(is_severe=hotspots["severity_binary"] == "Severe/Fatal")
            .groupby("cluster_id")
            .agg(
                latitude=("latitude", "mean"),
                longitude=("longitude", "mean"),
                accidents=("cluster_id", "size"),
                severe_share=("is_severe", "mean"),
            )
            .reset_index()
            .sort_values("accidents", ascending=False)
            .reset_index(drop=True)
        )

        for _, row in summary.head(10).iterrows():
            logger.info(
                f"  Hotspot {int(row['cluster_id'])}: {int(row['accidents'])} accidents "
                f"at ({row['latitude']:.5f}, {row['longitude']:.5f}), severe share {row['severe_share']:.0%}"
            )
        return summary
