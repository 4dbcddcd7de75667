import numpy as np
import pandas as pd
import pytest
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from accident_hotspots.config import MODEL_CONFIG
from accident_hotspots.feature_engineer import AccidentFeatureEngineer
from accident_hotspots.models import FittedTree, GroupedSeries
from accident_hotspots.trainer import TreeTrainer


@pytest.fixture
def table():
    rng = np.random.default_rng(0)
    index = pd.date_range("2023-02-06", periods=24 * 28, freq="h")
    evening = (index.hour >= 17) & (index.hour <= 20)
    counts = pd.DataFrame({
        "Nevskij district": rng.poisson(np.where(evening, 3.0, 0.2)),
        "Kirovskij district": rng.poisson(0.5, len(index)),
    }, index=index)
    return AccidentFeatureEngineer().transform(GroupedSeries("district", counts), task="regression")


def test_one_regression_tree_per_group(table):
    models = TreeTrainer().train(table, "regression")

    assert set(models) == {"Nevskij district", "Kirovskij district"}
    for group, fitted in models.items():
        assert isinstance(fitted, FittedTree)
        assert isinstance(fitted.model, DecisionTreeRegressor)
        assert fitted.group == group
        assert fitted.n_rows == len(table.targets)
        assert fitted.feature_names == list(table.predictors().columns)
        assert fitted.model.get_depth() <= MODEL_CONFIG["models"]["regression"]["max_depth"]


def test_classification_trees_predict_presence(table):
    models = TreeTrainer().train(table, "classification")
    fitted = models["Nevskij district"]

    assert isinstance(fitted.model, DecisionTreeClassifier)
    assert set(fitted.model.classes_) <= {0, 1}
    assert fitted.target_name == "has_accident"


def test_trees_fit_with_missing_lags_and_weather(table):
    predictors = table.predictors()
    assert predictors.isna().any().any()
    TreeTrainer().train(table, "regression")


def test_parallel_fit_matches_serial(table):
    serial = TreeTrainer({**MODEL_CONFIG, "n_jobs": 1}).train(table, "regression")
    parallel = TreeTrainer({**MODEL_CONFIG, "n_jobs": 2}).train(table, "regression")

    X = table.predictors()
    for group in serial:
        np.testing.assert_array_equal(serial[group].model.predict(X), parallel[group].model.predict(X))


def test_models_saved_when_requested(table, path_config):
    config = {**MODEL_CONFIG, "save_models": True}
    TreeTrainer(config, path_config).train(table, "regression")

    import os
    saved = sorted(os.listdir(path_config["models_dir"]))
    assert saved == [
        "district_Kirovskij_district_regression_tree.pkl",
        "district_Nevskij_district_regression_tree.pkl",
    ]


def test_unknown_task_rejected(table):
    with pytest.raises(ValueError):
        TreeTrainer().train(table, "clustering")
