"""
Chart and map creation for the accident analysis.
"""

import os
from pathlib import Path
from typing import Optional

import altair as alt
import folium
import pandas as pd

from accident_hotspots.config import FEATURE_CONFIG, PATH_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

NOISE_COLOR = "#9e9e9e"
CLUSTER_PALETTE = [
    "#e41a1c", "#377eb8", "#4daf4a", "#984ea3", "#ff7f00",
    "#a65628", "#f781bf", "#1b9e77", "#d95f02", "#7570b3",
]


class ChartBuilder:
    """Builds Altair charts and Folium maps for the analysis report."""

    @staticmethod
    def weekday_counts(records: pd.DataFrame) -> pd.DataFrame:
        """Accident counts per day of week, Monday first."""
        day_names = FEATURE_CONFIG["day_names"]
        counts = (
            records["datetime"].dt.dayofweek
            .value_counts()
            .reindex(range(7), fill_value=0)
        )
        return pd.DataFrame({"day_of_week": day_names, "accidents": counts.values})

    @staticmethod
    def create_weekday_chart(records: pd.DataFrame, height: int = 300) -> alt.Chart:
        """
        Create bar chart of accidents by day of week.

        Args:
            records: Cleaned accident table
            height: Chart height in pixels

        Returns:
            Altair Chart object
        """
        data = ChartBuilder.weekday_counts(records)
        chart = (
            alt.Chart(data)
            .mark_bar()
            .encode(
                x=alt.X("day_of_week:N", title="Day of Week", sort=FEATURE_CONFIG["day_names"]),
                y=alt.Y("accidents:Q", title="Accidents"),
                tooltip=[
                    alt.Tooltip("day_of_week:N", title="Day"),
                    alt.Tooltip("accidents:Q", title="Accidents", format=",d"),
                ],
            )
            .properties(title="Accidents by Day of Week", height=height)
        )
        return chart

    @staticmethod
    def cluster_color(cluster_id: int, noise_id: int = 0) -> str:
        if cluster_id == noise_id:
            return NOISE_COLOR
        return CLUSTER_PALETTE[(cluster_id - 1) % len(CLUSTER_PALETTE)]

    @staticmethod
    def create_hotspot_map(
        clustered: pd.DataFrame,
        summary: Optional[pd.DataFrame] = None,
        noise_id: int = 0,
        zoom_start: int = 11,
    ) -> folium.Map:
        """
        Create a map with one point marker per accident, colored by cluster id.

        Args:
            clustered: Accident table with a ``cluster_id`` column
            summary: Optional per-hotspot summary to add labelled centroids
            noise_id: Cluster id used for noise points (drawn grey)
            zoom_start: Initial zoom level

        Returns:
            Folium Map object
        """
        center = [clustered["latitude"].median(), clustered["longitude"].median()]
        fmap = folium.Map(location=center, zoom_start=zoom_start, tiles="OpenStreetMap")

        for row in clustered[["latitude", "longitude", "cluster_id"]].itertuples(index=False):
            color = ChartBuilder.cluster_color(int(row.cluster_id), noise_id)
            folium.CircleMarker(
                location=[row.latitude, row.longitude],
                radius=2 if row.cluster_id == noise_id else 3,
                color=color,
                fill=True,
                fill_opacity=0.6,
                weight=0,
            ).add_to(fmap)

        if summary is not None:
            for _, r in summary.iterrows():
                folium.CircleMarker(
                    location=[r["latitude"], r["longitude"]],
                    radius=6 + min(14, r["accidents"] / 50),
                    color=ChartBuilder.cluster_color(int(r["cluster_id"]), noise_id),
                    popup=folium.Popup(
                        f"Hotspot #{int(r['cluster_id'])}<br>"
                        f"Accidents: {int(r['accidents'])}<br>"
                        f"Severe/Fatal share: {r['severe_share']:.0%}",
                        max_width=260,
                    ),
                    tooltip=f"Hotspot {int(r['cluster_id'])} • {int(r['accidents'])} accidents",
                    fill=False,
                    weight=2,
                ).add_to(fmap)

        return fmap

    @staticmethod
    def save(chart, output_dir: str, filename: str) -> str:
        """Save an Altair chart or Folium map as HTML."""
        os.makedirs(output_dir, exist_ok=True)
        filepath = os.path.join(output_dir, filename)
        try:
            chart.save(filepath)
            logger.info(f"Chart saved to {filepath}")
            return filepath
        except Exception as e:
            logger.error(f"Failed to save chart: {e}")
            raise
