import pandas as pd
import pytest

from accident_hotspots.aggregator import TemporalAggregator
from accident_hotspots.models import CLUSTER, DISTRICT, GroupedSeries


def records(rows):
    return pd.DataFrame({
        "datetime": pd.to_datetime([r[0] for r in rows]),
        "district": [r[1] for r in rows],
    })


def test_single_district_example():
    grid = TemporalAggregator().complete_grid(
        records([("2022-01-01 00:00", "Nevskij"), ("2022-01-01 03:00", "Nevskij")]),
        DISTRICT,
    )

    nevskij = grid[(grid["group"] == "Nevskij") & (grid["date"] == pd.Timestamp("2022-01-01"))]
    assert len(nevskij) == 24
    counts = nevskij.set_index("hour")["accident_count"]
    assert counts[0] == 1
    assert counts[3] == 1
    assert counts.drop([0, 3]).eq(0).all()


def test_grid_has_every_key_exactly_once():
    rows = [
        ("2022-03-01 10:15", "Nevskij"),
        ("2022-03-01 10:45", "Nevskij"),
        ("2022-03-03 23:00", "Kirovskij"),
    ]
    grid = TemporalAggregator().complete_grid(records(rows), DISTRICT)

    n_days, n_groups = 3, 2
    assert len(grid) == n_days * 24 * n_groups
    assert not grid.duplicated(["date", "hour", "group"]).any()
    assert grid["accident_count"].sum() == len(rows)
    assert grid.set_index(["date", "hour", "group"]).loc[
        (pd.Timestamp("2022-03-01"), 10, "Nevskij"), "accident_count"
    ] == 2


def test_fill_grid_is_idempotent():
    aggregator = TemporalAggregator()
    rows = [("2022-05-01 01:00", "A"), ("2022-05-02 07:00", "B"), ("2022-05-02 07:30", "B")]
    once = aggregator.complete_grid(records(rows), DISTRICT)
    twice = aggregator.fill_grid(once)
    pd.testing.assert_frame_equal(once, twice)


def test_pivot_gives_one_series_per_group():
    aggregator = TemporalAggregator()
    rows = [("2022-05-01 01:00", "A"), ("2022-05-02 07:00", "B")]
    series = aggregator.aggregate(records(rows), DISTRICT)

    assert isinstance(series, GroupedSeries)
    assert series.grouping == "district"
    assert series.groups == ["A", "B"]
    assert len(series.timestamps) == 2 * 24
    assert not series.counts.isna().any().any()
    assert series.series("A")[pd.Timestamp("2022-05-01 01:00")] == 1
    assert series.series("B").sum() == 1
    with pytest.raises(KeyError):
        series.series("C")


def test_cluster_grouping_uses_cluster_ids(clean_records, cluster_config):
    from accident_hotspots.clusterer import HotspotClusterer

    clustered = HotspotClusterer(cluster_config).fit_assign(clean_records)
    series = TemporalAggregator().aggregate(clustered, CLUSTER)

    assert set(series.groups) == set(clustered["cluster_id"].unique())
    assert series.counts.values.sum() == len(clustered)


def test_empty_records_raise():
    with pytest.raises(ValueError):
        TemporalAggregator().count_records(records([]), DISTRICT)
