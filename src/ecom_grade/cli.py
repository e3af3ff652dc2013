"""Command-line interface for testing the grading engine."""

import argparse
import json
import logging
import sys

from ecom_grade.scoring.ladder import grade_description
from ecom_grade.scoring.models import (
    Consistency,
    GradingConfig,
    RiskClass,
    SignalBundle,
)
from ecom_grade.scoring.scorer import grade_signals


def create_example_signals() -> SignalBundle:
    """Create an example bundle that earns the top rung."""
    return SignalBundle(
        monthly_profit=120000,
        price=40.00,
        margin=0.55,
        reviews=10,
        avg_cpc=0.40,
        risk=RiskClass.NO_RISK,
        consistency=Consistency.CONSISTENT,
        profit_per_unit=0.25,
    )


def grade_command(args: argparse.Namespace) -> None:
    """Grade signals from JSON or use example."""
    if args.json:
        signals = SignalBundle(**json.loads(args.json))
    else:
        signals = create_example_signals()
        print("Using example signals (use --json to provide your own)\n")

    # Apply custom config if provided
    config = None
    if args.min_price is not None or args.min_margin is not None:
        defaults = GradingConfig()
        config = GradingConfig(
            min_price=args.min_price if args.min_price is not None else defaults.min_price,
            min_margin=args.min_margin if args.min_margin is not None else defaults.min_margin,
        )

    result = grade_signals(signals, config)
    breakdown = result.breakdown

    # Output
    print(f"Signals:")
    print(f"  Monthly Profit: ${signals.monthly_profit:,.2f}")
    print(f"  Price:          ${signals.price:.2f}")
    print(f"  Margin:         {signals.margin:.1%}")
    print(f"  Reviews:        {signals.reviews:,.0f}")
    print(f"  Avg CPC:        ${signals.avg_cpc:.2f}")
    print(f"  Risk:           {signals.risk.value}")
    print(f"  Consistency:    {signals.consistency.value}")
    print(f"{'=' * 50}")

    if result.disqualified:
        print(f"\nDisqualified:")
        for reason in breakdown.disqualifiers:
            print(f"  - {reason}")
    else:
        print(f"\nLadder:")
        print(f"  Base Grade:   {breakdown.base_grade.value}")
        print(f"  Penalties:    -{breakdown.penalty_points}")
        print(f"  Boosts:       +{breakdown.boost_points}")
        print(f"  Adjusted:     {breakdown.adjusted_grade.value}")
        if breakdown.gate_applied:
            print(f"  Top-rung gate applied")

    print(f"\n  Details:")
    for line in breakdown.details:
        print(f"    {line}")

    print(f"\n{'=' * 50}")
    print(f"Grade: {result.grade.value} ({grade_description(result.grade)})")
    print(f"Score: {result.score:,.0f}")


def main() -> int:
    """Main CLI entry point."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(
        prog="ecom-grade",
        description="Product Opportunity Grading Engine",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Grade command
    grade_parser = subparsers.add_parser("grade", help="Grade a signal bundle")
    grade_parser.add_argument(
        "--json",
        type=str,
        help="Signal bundle as JSON string",
    )
    grade_parser.add_argument(
        "--min-price",
        type=float,
        help="Disqualify below this price (default: 25)",
    )
    grade_parser.add_argument(
        "--min-margin",
        type=float,
        help="Disqualify below this margin (default: 0.15 = 15%%)",
    )

    # Example command
    example_parser = subparsers.add_parser(
        "example",
        help="Show example signal bundle JSON",
    )
    example_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty print JSON",
    )

    args = parser.parse_args()

    if args.command == "grade":
        grade_command(args)
    elif args.command == "example":
        data = create_example_signals().model_dump(mode="json", exclude_none=True)
        if args.pretty:
            print(json.dumps(data, indent=2))
        else:
            print(json.dumps(data))
    else:
        parser.print_help()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
