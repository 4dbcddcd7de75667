import os
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.tree import _tree

from accident_hotspots.config import PATH_CONFIG
from accident_hotspots.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")


def _format_number(value):
    return f"{value:.4g}"


class _PathConditions:
    """Predicates collected along one root-to-leaf path, merged per feature.

    For features that had missing values at fit time, ``missing`` records
    whether NaN rows follow this path through every split on the feature;
    the rendered condition then reads ``(... or missing)``.
    """

    def __init__(self, dummy_columns, missing_features=()):
        self.dummy_columns = dummy_columns
        self.missing_features = set(missing_features)
        self.order = []
        self.numeric = {}
        self.levels = {}
        self.missing = {}

    def copy(self):
        other = _PathConditions(self.dummy_columns, self.missing_features)
        other.order = list(self.order)
        other.numeric = {k: dict(v) for k, v in self.numeric.items()}
        other.levels = {k: {"eq": v["eq"], "ne": list(v["ne"])} for k, v in self.levels.items()}
        other.missing = dict(self.missing)
        return other

    def add(self, feature, threshold, goes_left, takes_missing=False):
        if feature in self.dummy_columns:
            name, level = self.dummy_columns[feature]
            self._remember(name)
            state = self.levels.setdefault(name, {"eq": None, "ne": []})
            if goes_left:
                state["ne"].append(level)
            else:
                state["eq"] = level
            return

        self._remember(feature)
        bounds = self.numeric.setdefault(feature, {})
        if goes_left:
            bounds["upper"] = min(threshold, bounds.get("upper", np.inf))
        else:
            bounds["lower"] = max(threshold, bounds.get("lower", -np.inf))
        if feature in self.missing_features:
            self.missing[feature] = self.missing.get(feature, True) and takes_missing

    def _remember(self, name):
        if name not in self.order:
            self.order.append(name)

    def render(self):
        parts = []
        for name in self.order:
            if name in self.levels:
                state = self.levels[name]
                if state["eq"] is not None:
                    parts.append(f"{name} = {state['eq']}")
                elif len(state["ne"]) == 1:
                    parts.append(f"{name} != {state['ne'][0]}")
                else:
                    parts.append(f"{name} not in {{{', '.join(state['ne'])}}}")
                continue

            bounds = self.numeric[name]
            lower, upper = bounds.get("lower"), bounds.get("upper")
            if lower is not None and upper is not None:
                condition = f"{_format_number(lower)} < {name} <= {_format_number(upper)}"
            elif lower is not None:
                condition = f"{name} > {_format_number(lower)}"
            else:
                condition = f"{name} <= {_format_number(upper)}"
            parts.append(f"({condition} or missing)" if self.missing.get(name) else condition)
        return parts

    def mask(self, X):
        """Rows of the predictor matrix ``X`` that satisfy every condition of the path"""
        keep = pd.Series(True, index=X.index)
        for name in self.order:
            if name in self.levels:
                state = self.levels[name]
                for column, (feature, level) in self.dummy_columns.items():
                    if feature != name:
                        continue
                    if level == state["eq"]:
                        keep &= X[column] == 1
                    elif level in state["ne"]:
                        keep &= X[column] == 0
                continue

            # trees compare float32 values against the stored thresholds
            values = X[name].astype(np.float32)
            bounds = self.numeric[name]
            ok = pd.Series(True, index=X.index)
            if "lower" in bounds:
                ok &= values > bounds["lower"]
            if "upper" in bounds:
                ok &= values <= bounds["upper"]
            if self.missing.get(name):
                ok |= values.isna()
            keep &= ok
        return keep


class RuleReporter:
    def __init__(self, path_config=None):
        self.path_config = path_config or PATH_CONFIG

    def extract_rules(self, fitted, dummy_columns=None):
        """One rule per leaf: conditions, prediction and coverage, highest prediction first"""
        dummy_columns = dummy_columns or {}
        model = fitted.model
        tree = model.tree_
        names = fitted.feature_names
        total = int(tree.n_node_samples[0])
        rules = []

        def walk(node, conditions):
            if tree.children_left[node] == _tree.TREE_LEAF:
                rules.append(self._leaf_rule(fitted, node, conditions, total))
                return
            feature = names[tree.feature[node]]
            threshold = float(tree.threshold[node])
            missing_left = bool(tree.missing_go_to_left[node])

            left = conditions.copy()
            left.add(feature, threshold, goes_left=True, takes_missing=missing_left)
            walk(tree.children_left[node], left)

            right = conditions.copy()
            right.add(feature, threshold, goes_left=False, takes_missing=not missing_left)
            walk(tree.children_right[node], right)

        walk(0, _PathConditions(dummy_columns, fitted.missing_features))
        rules.sort(key=lambda r: r["prediction"], reverse=True)
        return rules

    @staticmethod
    def _leaf_rule(fitted, node, conditions, total):
        tree = fitted.model.tree_
        value = tree.value[node][0]
        n_rows = int(tree.n_node_samples[node])
        rule = {
            "conditions": conditions.render(),
            "path": conditions,
            "n_rows": n_rows,
            "coverage": n_rows / total if total else 0.0,
        }

        if fitted.task == "regression":
            rule["prediction"] = float(value[0])
        else:
            probs = value / value.sum()
            classes = list(fitted.model.classes_)
            rule["predicted_class"] = classes[int(np.argmax(probs))]
            rule["prediction"] = float(probs[classes.index(1)]) if 1 in classes else 0.0
        return rule

    def render(self, fitted, rules, grouping=""):
        header = f"=== {grouping + ': ' if grouping else ''}{fitted} ==="
        value_label = fitted.target_name if fitted.task == "regression" else f"P({fitted.target_name})"
        lines = [header, f"{value_label:>14}  {'cover':>16}  rule"]

        for rule in rules:
            when = " & ".join(rule["conditions"]) if rule["conditions"] else "(all rows)"
            cover = f"{rule['n_rows']:>7,} ({rule['coverage']:6.1%})"
            lines.append(f"{rule['prediction']:>14.3f}  {cover:>16}  when {when}")
        return "\n".join(lines)

    def report(self, models, dummy_columns=None, grouping="", print_rules=True):
        """Render the rules of every fitted tree; returns the full text report"""
        logger.info(f"Rendering decision rules for {len(models)} trees")
        blocks = []
        for fitted in models.values():
            rules = self.extract_rules(fitted, dummy_columns)
            blocks.append(self.render(fitted, rules, grouping))

        text = "\n\n".join(blocks)
        if print_rules:
            print(text)
        return text

    def save_report(self, text, grouping, task):
        results_dir = self.path_config["results_dir"]
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, self.path_config["rules_report"].format(grouping=grouping, task=task))

        with open(path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info(f"📄 Decision rules saved to {path}")
        return path

    def feature_importance(self, models, grouping=""):
        """Feature importances of every fitted tree, most important first within each tree"""
        now_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        frames = []
        for fitted in models.values():
            frames.append(pd.DataFrame({
                "Grouping": grouping,
                "Group": str(fitted.group),
                "Task": fitted.task,
                "Feature": fitted.feature_names,
                "Importance": fitted.model.feature_importances_,
                "Saved_At": now_str,
            }).sort_values(by="Importance", ascending=False))

        if not frames:
            logger.warning("⚠️ No fitted trees to extract feature importances from.")
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    def save_feature_importance(self, importance_df):
        """Append importances to the results CSV (header only when the file is new)"""
        results_dir = self.path_config["results_dir"]
        os.makedirs(results_dir, exist_ok=True)
        csv_path = os.path.join(results_dir, self.path_config["feature_importance"])
        file_exists = os.path.isfile(csv_path)

        importance_df.to_csv(
            csv_path,
            mode="a" if file_exists else "w",
            header=not file_exists,
            index=False,
        )
        logger.info(f"✅ Feature importances saved to {csv_path}")
        return csv_path
