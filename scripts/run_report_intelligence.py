"""
Report Intelligence Operator CLI.

============================================================
COMMANDS
============================================================
    init-db                  Create the reports table
    load --file FILE         Validate, enrich, store and
                             duplicate-check a JSON list of reports
    train                    Train the resource predictor
    predict --report-id ID   Train, then predict resources
    risk-areas               Top risk areas among open reports
    insights                 Admin dashboard roll-up
    priority [--limit N]     Reports by stored priority

Global options:
    --config FILE            YAML configuration overrides
    --json                   Machine-readable output
    --log-level LEVEL

The predictor keeps no state between runs, so every command
that predicts trains first.

EXIT CODES:
- 0: Success
- 1: Store or configuration failure
- 2: Report not found / invalid input

============================================================
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.exceptions import CivicPlatformError  # noqa: E402
from database import initialize_database, transaction_scope  # noqa: E402
from report_intelligence import (  # noqa: E402
    InvalidReportError,
    ReportIntelligenceConfig,
    ReportIntelligenceService,
    parse_report,
)
from report_intelligence.repository import SqlReportStore  # noqa: E402


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

logger = logging.getLogger("run_report_intelligence")


# ============================================================
# OUTPUT
# ============================================================

def emit(payload: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, default=str))
        return

    if isinstance(payload, list):
        for item in payload:
            print(item)
    elif isinstance(payload, dict):
        for key, value in payload.items():
            print(f"{key}: {value}")
    else:
        print(payload)


# ============================================================
# COMMANDS
# ============================================================

def cmd_init_db(args, config: ReportIntelligenceConfig) -> int:
    initialize_database()
    emit({"initialized": True}, args.json)
    return 0


def cmd_load(args, config: ReportIntelligenceConfig) -> int:
    with open(args.file, "r") as f:
        documents = json.load(f)

    if isinstance(documents, dict):
        documents = [documents]

    loaded = []
    with transaction_scope() as session:
        store = SqlReportStore(session)
        service = ReportIntelligenceService(store, config)

        for index, document in enumerate(documents):
            try:
                report = parse_report(document)
            except InvalidReportError as e:
                logger.error(f"Skipping document {index}: {e.message}")
                continue

            enrichment = service.enrich_submission(report)
            stored = store.save_report(report, enrichment)
            duplicates = service.check_duplicates(stored, apply=True)

            loaded.append({
                "id": stored.id,
                "priority_score": enrichment.priority_score,
                "ai_tags": list(enrichment.ai_tags),
                "is_duplicate": duplicates.is_duplicate,
                "duplicate_of": duplicates.duplicate_of,
            })

    logger.info(f"Loaded {len(loaded)} of {len(documents)} reports")
    emit(loaded, args.json)
    return 0 if len(loaded) == len(documents) else 2


def cmd_train(args, config: ReportIntelligenceConfig) -> int:
    with transaction_scope() as session:
        service = ReportIntelligenceService(SqlReportStore(session), config)
        result = service.train()
        message = service.train_message(result)

    payload = {"message": message, **result.to_dict()}
    emit(payload, args.json)
    return 1 if result.error else 0


def cmd_predict(args, config: ReportIntelligenceConfig) -> int:
    with transaction_scope() as session:
        store = SqlReportStore(session)
        report = store.get_report(args.report_id)
        if report is None:
            logger.error(f"Report {args.report_id} not found")
            return 2

        service = ReportIntelligenceService(store, config)
        service.train()
        prediction = service.get_predictions(report)

    emit(prediction.to_dict(), args.json)
    return 0


def cmd_risk_areas(args, config: ReportIntelligenceConfig) -> int:
    with transaction_scope() as session:
        service = ReportIntelligenceService(SqlReportStore(session), config)
        areas = service.predict_high_risk_areas()

    emit([a.to_dict() for a in areas], args.json)
    return 0


def cmd_insights(args, config: ReportIntelligenceConfig) -> int:
    with transaction_scope() as session:
        service = ReportIntelligenceService(SqlReportStore(session), config)
        insights = service.get_insights()

    emit(insights.to_dict(), args.json)
    return 0


def cmd_priority(args, config: ReportIntelligenceConfig) -> int:
    with transaction_scope() as session:
        service = ReportIntelligenceService(SqlReportStore(session), config)
        reports = service.high_priority_reports(limit=args.limit)

    emit([r.to_summary() for r in reports], args.json)
    return 0


COMMANDS = {
    "init-db": cmd_init_db,
    "load": cmd_load,
    "train": cmd_train,
    "predict": cmd_predict,
    "risk-areas": cmd_risk_areas,
    "insights": cmd_insights,
    "priority": cmd_priority,
}


# ============================================================
# ENTRY POINT
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Civic report intelligence operator tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: environment/.env)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON output",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Create the reports table")

    load = subparsers.add_parser("load", help="Load reports from a JSON file")
    load.add_argument("--file", type=Path, required=True, help="JSON list of report documents")

    subparsers.add_parser("train", help="Train the resource predictor")

    predict = subparsers.add_parser("predict", help="Predict resources for a report")
    predict.add_argument("--report-id", required=True, help="Report id")

    subparsers.add_parser("risk-areas", help="Top risk areas")
    subparsers.add_parser("insights", help="Admin insights")

    priority = subparsers.add_parser("priority", help="Reports by priority score")
    priority.add_argument("--limit", type=int, default=50, help="Maximum reports (default: 50)")

    return parser


def load_config(path: Optional[Path]) -> ReportIntelligenceConfig:
    if path is not None:
        return ReportIntelligenceConfig.from_yaml(path)
    return ReportIntelligenceConfig.from_env()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        return COMMANDS[args.command](args, config)
    except CivicPlatformError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
