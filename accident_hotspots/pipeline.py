from pathlib import Path

from accident_hotspots.aggregator import TemporalAggregator
from accident_hotspots.cleaner import AccidentCleaner
from accident_hotspots.clusterer import HotspotClusterer
from accident_hotspots.config import (
    CLUSTER_CONFIG,
    DATA_CONFIG,
    FEATURE_CONFIG,
    MODEL_CONFIG,
    PATH_CONFIG,
)
from accident_hotspots.data_loader import AccidentDataLoader
from accident_hotspots.feature_engineer import AccidentFeatureEngineer
from accident_hotspots.logger import setup_logger
from accident_hotspots.models import GROUPINGS, TASKS, get_grouping
from accident_hotspots.rule_reporter import RuleReporter
from accident_hotspots.trainer import TreeTrainer
from accident_hotspots.visualization import ChartBuilder

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")


class AccidentAnalysisPipeline:
    def __init__(self, data_config=None, cluster_config=None, feature_config=None,
                 model_config=None, path_config=None):
        self.data_config = data_config or DATA_CONFIG
        self.cluster_config = cluster_config or CLUSTER_CONFIG
        self.feature_config = feature_config or FEATURE_CONFIG
        self.model_config = model_config or MODEL_CONFIG
        self.path_config = path_config or PATH_CONFIG

        self.data_loader = AccidentDataLoader(self.data_config)
        self.cleaner = AccidentCleaner(self.data_config)
        self.clusterer = HotspotClusterer(self.cluster_config)
        self.aggregator = TemporalAggregator()
        self.feature_engineer = AccidentFeatureEngineer(self.feature_config)
        self.trainer = TreeTrainer(self.model_config, self.path_config)
        self.reporter = RuleReporter(self.path_config)

        self.results = {}

    def prepare(self, raw_accidents, save_cleaned=True):
        """Clean the raw records and attach hotspot cluster ids"""
        records = self.cleaner.clean(raw_accidents)
        if records.empty:
            raise ValueError("No accident records left after cleaning")

        if save_cleaned:
            self.data_loader.save_cleaned(
                records, Path(self.path_config["results_dir"]) / self.path_config["cleaned_accidents"]
            )

        clustered = self.clusterer.fit_assign(records)
        summary = self.clusterer.summarize_clusters(clustered)
        return clustered, summary

    def analyze(self, records, weather, grouping, task, save_outputs=True):
        """Aggregate, build features, fit one tree per group and report rules for one grouping/task"""
        grouping = get_grouping(grouping) if isinstance(grouping, str) else grouping
        logger.info(f"🔎 Analyzing accidents per {grouping} ({task})")

        series = self.aggregator.aggregate(records, grouping)
        table = self.feature_engineer.transform(series, weather, task=task)
        models = self.trainer.train(table, task)

        report = self.reporter.report(models, table.dummy_columns, grouping=str(grouping))
        importance = self.reporter.feature_importance(models, grouping=str(grouping))

        if save_outputs:
            self.reporter.save_report(report, str(grouping), task)
            if not importance.empty:
                self.reporter.save_feature_importance(importance)

        return {
            "series": series,
            "features": table,
            "models": models,
            "report": report,
            "feature_importance": importance,
        }

    def render_charts(self, records, summary):
        results_dir = self.path_config["results_dir"]
        ChartBuilder.save(
            ChartBuilder.create_weekday_chart(records), results_dir, self.path_config["weekday_chart"]
        )
        ChartBuilder.save(
            ChartBuilder.create_hotspot_map(records, summary, noise_id=self.cluster_config["noise_id"]),
            results_dir,
            self.path_config["hotspot_map"],
        )

    def run_pipeline(self, accidents_path, weather_path=None, groupings=None, tasks=None,
                     render_charts=True, save_outputs=True):
        """Run the complete batch: load, clean, cluster, then analyze every grouping/task pair"""
        groupings = list(groupings or GROUPINGS)
        tasks = list(tasks or TASKS)
        logger.info("🚀 Starting accident hotspot analysis pipeline...")

        try:
            raw = self.data_loader.load_accidents(accidents_path)
            weather = self.data_loader.load_weather(weather_path) if weather_path else None
        except Exception as e:
            logger.error(f"❌ Data loading failed: {e}", exc_info=True)
            raise

        records, summary = self.prepare(raw, save_cleaned=save_outputs)
        logger.info(
            f"✅ {len(records)} accidents from {records['datetime'].min()} to {records['datetime'].max()}, "
            f"{records['district'].nunique()} districts, {len(summary)} hotspots"
        )

        if render_charts:
            self.render_charts(records, summary)

        self.results = {"records": records, "hotspots": summary}
        for grouping in groupings:
            for task in tasks:
                self.results[(grouping, task)] = self.analyze(
                    records, weather, grouping, task, save_outputs=save_outputs
                )

        logger.info("🎉 Pipeline completed successfully!")
        return self.results
