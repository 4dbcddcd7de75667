import os
import re
from pathlib import Path

import joblib
from joblib import Parallel, delayed
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor
from tqdm import tqdm

from accident_hotspots.config import MODEL_CONFIG, PATH_CONFIG
from accident_hotspots.logger import setup_logger
from accident_hotspots.models import TASKS, FittedTree

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")

# Supported models
MODEL_CLASSES = {
    "regression": DecisionTreeRegressor,
    "classification": DecisionTreeClassifier,
}


def fit_group_tree(X, y, group, task, model_params):
    """Fit one tree on the full table for a single group"""
    model = MODEL_CLASSES[task](**model_params)
    model.fit(X, y)
    return FittedTree(
        group=group,
        task=task,
        model=model,
        feature_names=list(X.columns),
        n_rows=len(X),
        target_name=y.name,
        missing_features=list(X.columns[X.isna().any()]),
    )


class TreeTrainer:
    def __init__(self, config=None, path_config=None):
        self.config = config or MODEL_CONFIG
        self.path_config = path_config or PATH_CONFIG

    def train(self, table, task):
        """Fit one decision tree per group of the feature table; returns {group: FittedTree}"""
        if task not in TASKS:
            raise ValueError(f"Unknown task '{task}'. Available: {list(TASKS)}")

        X = table.predictors()
        model_params = self.config["models"][task]
        n_jobs = self.config.get("n_jobs", 1)
        logger.info(
            f"Training {len(table.groups)} {task} trees on {X.shape[0]} rows x {X.shape[1]} predictors "
            f"(n_jobs={n_jobs})"
        )

        try:
            if n_jobs == 1:
                fitted = [
                    fit_group_tree(X, table.target(group, task), group, task, model_params)
                    for group in tqdm(table.groups, desc=f"Fitting {table.grouping} trees", unit="tree")
                ]
            else:
                fitted = Parallel(n_jobs=n_jobs)(
                    delayed(fit_group_tree)(X, table.target(group, task), group, task, model_params)
                    for group in table.groups
                )
        except Exception as e:
            logger.error(f"{task} tree training failed: {e}")
            raise

        models = {tree.group: tree for tree in fitted}
        for tree in fitted:
            logger.info(f"{tree}: depth={tree.model.get_depth()}, leaves={tree.model.get_n_leaves()}")

        if self.config.get("save_models"):
            self._save_models(models, table.grouping)
        return models

    def _save_models(self, models, grouping):
        models_dir = self.path_config["models_dir"]
        os.makedirs(models_dir, exist_ok=True)

        for group, tree in models.items():
            safe_group = re.sub(r"[^\w.-]+", "_", str(group))
            model_path = os.path.join(models_dir, f"{grouping}_{safe_group}_{tree.task}_tree.pkl")
            joblib.dump(tree, model_path)
            logger.info(f"💾 Saved {tree} to {model_path}")
