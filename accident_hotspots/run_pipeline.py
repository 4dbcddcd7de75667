import argparse
import sys
from pathlib import Path

from accident_hotspots.config import (
    CLUSTER_CONFIG,
    FEATURE_CONFIG,
    MODEL_CONFIG,
    PATH_CONFIG,
)
from accident_hotspots.feature_engineer import LAG_MODES
from accident_hotspots.logger import quiet_library_loggers, setup_logger
from accident_hotspots.models import GROUPINGS, TASKS
from accident_hotspots.pipeline import AccidentAnalysisPipeline
from accident_hotspots.weather_downloader import download_weather

log_dir = Path(PATH_CONFIG["logs_dir"])
log_dir.mkdir(parents=True, exist_ok=True)
logger = setup_logger(__name__, f"{log_dir}/pipeline.log")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Traffic accident hotspot analysis")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Run the cleaning, clustering and tree pipeline")
    analyze.add_argument("--accidents", required=True, help="Geo dataset with accident points (GeoJSON)")
    analyze.add_argument("--weather", help="Hourly weather spreadsheet (xlsx)")
    analyze.add_argument("--grouping", choices=list(GROUPINGS), action="append",
                         help="Grouping to model (repeatable, default: all)")
    analyze.add_argument("--task", choices=list(TASKS), action="append",
                         help="Tree type to fit (repeatable, default: all)")
    analyze.add_argument("--lag-mode", choices=list(LAG_MODES), default=FEATURE_CONFIG["lag_mode"])
    analyze.add_argument("--eps-m", type=float, default=CLUSTER_CONFIG["eps_m"], help="DBSCAN radius in meters")
    analyze.add_argument("--min-samples", type=int, default=CLUSTER_CONFIG["min_samples"])
    analyze.add_argument("--n-jobs", type=int, default=MODEL_CONFIG["n_jobs"])
    analyze.add_argument("--results-dir", default=PATH_CONFIG["results_dir"])
    analyze.add_argument("--save-models", action="store_true", help="Persist every fitted tree with joblib")
    analyze.add_argument("--no-charts", action="store_true", help="Skip the weekday chart and hotspot map")

    weather = subparsers.add_parser("download-weather", help="Download hourly weather to a spreadsheet")
    weather.add_argument("--output", required=True, help="Target xlsx file")
    weather.add_argument("--start", required=True, help="First date, YYYY-MM-DD")
    weather.add_argument("--end", required=True, help="Last date, YYYY-MM-DD")
    weather.add_argument("--latitude", type=float)
    weather.add_argument("--longitude", type=float)

    return parser.parse_args(argv)


def build_pipeline(args):
    """Pipeline with CLI overrides applied on top of the module configuration"""
    cluster_config = {**CLUSTER_CONFIG, "eps_m": args.eps_m, "min_samples": args.min_samples}
    feature_config = {**FEATURE_CONFIG, "lag_mode": args.lag_mode}
    model_config = {**MODEL_CONFIG, "n_jobs": args.n_jobs, "save_models": args.save_models}
    path_config = {**PATH_CONFIG, "results_dir": args.results_dir}

    return AccidentAnalysisPipeline(
        cluster_config=cluster_config,
        feature_config=feature_config,
        model_config=model_config,
        path_config=path_config,
    )


def run_analysis(args):
    logger.info("🚀 Starting accident analysis...")
    logger.info("=" * 60)

    pipeline = build_pipeline(args)
    pipeline.run_pipeline(
        accidents_path=args.accidents,
        weather_path=args.weather,
        groupings=args.grouping,
        tasks=args.task,
        render_charts=not args.no_charts,
    )

    logger.info("=== MODEL SUMMARY ===")
    for key, result in pipeline.results.items():
        if not isinstance(key, tuple):
            continue
        grouping, task = key
        logger.info(f"{grouping.upper():<10} {task:<15}: {len(result['models'])} trees")
    logger.info("=" * 60)


def main(argv=None):
    args = parse_args(argv)
    quiet_library_loggers()
    try:
        if args.command == "analyze":
            run_analysis(args)
        else:
            download_weather(args.output, args.start, args.end, args.latitude, args.longitude)
    except Exception as e:
        logger.error(f"❌ {args.command} failed: {e}", exc_info=True)
        sys.exit(1)

    logger.info("🎉 Job finished successfully!")


if __name__ == "__main__":
    main()
