from pathlib import Path

import pandas as pd

from accident_hotspots.config import PATH_CONFIG
from accident_hotspots.logger import setup_logger
from accident_hotspots.models import GroupedSeries

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

KEY_COLS = ["date", "hour", "group"]
HOURS = range(24)


class TemporalAggregator:
    def count_records(self, records, grouping):
        """Observed accident counts per (date, hour, group)"""
        if records.empty:
            raise ValueError("Cannot aggregate an empty accident table")

        keys = pd.DataFrame({
            "date": records["datetime"].dt.normalize().values,
            "hour": records["datetime"].dt.hour.values,
            "group": grouping(records).values,
        })

        no_group = keys["group"].isna()
        if no_group.any():
            logger.warning(f"{int(no_group.sum())} records have no {grouping} and are left out")
            keys = keys[~no_group]

        counts = keys.groupby(KEY_COLS).size().reset_index(name="accident_count")
        logger.info(f"Observed {len(counts)} non-empty (date, hour, {grouping}) cells")
        return counts

    def fill_grid(self, counts):
        """Reindex counts onto every date x hour x group combination, zero where nothing was observed"""
        if counts.empty:
            raise ValueError("Cannot build a grid from empty counts")

        dates = pd.date_range(counts["date"].min(), counts["date"].max(), freq="D")
        groups = sorted(counts["group"].unique())
        full_index = pd.MultiIndex.from_product([dates, HOURS, groups], names=KEY_COLS)

        grid = (
            counts.groupby(KEY_COLS)["accident_count"].sum()
            .reindex(full_index, fill_value=0)
            .astype(int)
            .reset_index()
        )

        logger.info(
            f"Complete grid: {len(dates)} dates x 24 hours x {len(groups)} groups = {len(grid)} rows"
        )
        return grid

    def complete_grid(self, records, grouping):
        return self.fill_grid(self.count_records(records, grouping))

    def pivot(self, grid, grouping):
        """Wide form: one count column per group id, indexed by hourly timestamp"""
        timestamps = grid["date"] + pd.to_timedelta(grid["hour"], unit="h")
        counts = (
            grid.assign(timestamp=timestamps)
            .pivot(index="timestamp", columns="group", values="accident_count")
            .fillna(0)
            .astype(int)
            .sort_index()
        )
        counts.columns.name = None
        return GroupedSeries(grouping=str(grouping), counts=counts)

    def aggregate(self, records, grouping):
        """Records -> complete hourly grid -> GroupedSeries"""
        logger.info(f"Aggregating {len(records)} records by {grouping}")
        grid = self.complete_grid(records, grouping)
        return self.pivot(grid, grouping)
