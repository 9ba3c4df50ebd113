"""
Command line entry point.

Usage:
    # Serve the REST API
    churnguard serve --port 8000

    # Score the bundled dataset (or a JSON dataset file)
    churnguard score
    churnguard score data/customers.json --min-level medium

    # Score generated sample customers
    churnguard score --sample 200

    # Print the analytics summary
    churnguard analytics
"""

import argparse
import sys

from loguru import logger

from .config import ScoringConfig
from .engine import ChurnEngine
from .exceptions import ChurnGuardError
from .log import setup_logging
from .repository import InMemoryRepository
from .scorer import ChurnScorer, generate_sample_customers
from .settings import Settings

REPORT_COLUMNS = ["CUSTOMER_ID", "NAME", "PLAN", "CHURN_PROBABILITY", "RISK_LEVEL", "CONFIDENCE"]


def build_engine(settings: Settings) -> ChurnEngine:
    repository = InMemoryRepository.from_file(settings.data_path)
    return ChurnEngine(repository, scoring_config_path=settings.scoring_config_path)


def cmd_serve(args, settings: Settings) -> int:
    import uvicorn

    from .api import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    app = create_app(build_engine(settings))
    logger.info(f"Starting ChurnGuard API on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


def cmd_score(args, settings: Settings) -> int:
    config_path = args.config or settings.scoring_config_path
    scorer = ChurnScorer(ScoringConfig.from_yaml(config_path) if config_path else None)

    if args.sample:
        customers = generate_sample_customers(n_customers=args.sample, seed=args.seed)
    else:
        customers = InMemoryRepository.from_file(args.data or settings.data_path).get_customers()

    result = scorer.score_customers(customers)
    at_risk = result.get_at_risk(args.min_level).sort_values(
        "CHURN_PROBABILITY", ascending=False
    )

    print(f"\nScored {len(result.df)} customers (config v{scorer.config.version})")
    print(f"Distribution: {result.distribution()}\n")
    if at_risk.empty:
        print(f"No customers at {args.min_level} risk or above.")
    else:
        print(at_risk[REPORT_COLUMNS].to_string(index=False))
    print("\nComponent breakdown:\n")
    print(result.component_breakdown().to_string())
    return 0


def cmd_analytics(args, settings: Settings) -> int:
    engine = build_engine(settings)
    summary = engine.analytics()

    print(f"\nCustomers: {summary.total_customers}")
    print(f"Average churn risk: {summary.average_churn_risk:.1f}%")
    print(f"Average health score: {summary.average_health_score:.1f}")
    print(f"Risk distribution: {summary.risk_distribution.counts}")
    print(f"Health distribution: {summary.health_distribution}")
    print(f"Interventions: {summary.intervention_stats}")
    if summary.fallback_count:
        print(f"Fallback predictions: {summary.fallback_count}")

    print("\nFeature importance:")
    for f in summary.feature_importances:
        print(f"  {f.feature:<16} {f.importance:>6.2f}%  ({f.direction}, {f.confidence_level} confidence)")

    print("\nTop risk factors:")
    for factor in summary.top_risk_factors:
        print(f"  - {factor['recommendation']}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="churnguard",
        description="ChurnGuard churn risk scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  churnguard serve --port 8000
  churnguard score --min-level medium
  churnguard score --sample 200 --config config/scoring.yaml
  churnguard analytics
        """,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default=None, help="Host to bind to")
    serve.add_argument("--port", type=int, default=None, help="Port to bind to")

    score = subparsers.add_parser("score", help="Score customers and list those at risk")
    score.add_argument("data", nargs="?", default=None, help="JSON dataset (bundled data if omitted)")
    score.add_argument("--config", default=None, help="Scoring config YAML")
    score.add_argument(
        "--min-level",
        choices=["low", "medium", "high"],
        default="high",
        help="Lowest risk level to list",
    )
    score.add_argument("--sample", type=int, default=0, help="Score N generated customers instead")
    score.add_argument("--seed", type=int, default=42, help="Random seed for --sample")

    subparsers.add_parser("analytics", help="Print the analytics summary")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    settings = Settings.load()
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    commands = {"serve": cmd_serve, "score": cmd_score, "analytics": cmd_analytics}
    try:
        return commands[args.command](args, settings)
    except ChurnGuardError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
