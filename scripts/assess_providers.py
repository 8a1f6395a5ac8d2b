"""Measure IP endpoint and provider reliability, optionally re-ranking the configuration.

Usage:
    python scripts/assess_providers.py [--iterations N] [--output PATH]
    python scripts/assess_providers.py --optimize [--consent] [--prefer on_device]
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from location_engine.config.settings import Settings
from location_engine.models.domain import RankedConfig, ReliabilityAssessment
from location_engine.observability.logger import setup_logging
from location_engine.pipeline.location_pipeline import create_engine


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_assessments(assessments: list[ReliabilityAssessment]) -> None:
    print_header("RELIABILITY RANKING")
    print(f"  {'Endpoint':<20} {'Score':>7} {'Success':>9} {'Avg ms':>9}")
    print(f"  {'-' * 48}")
    for a in assessments:
        avg = a.avg_response_time_ms
        avg_text = f"{avg:>9.0f}" if avg is not None else f"{'-':>9}"
        print(
            f"  {a.endpoint:<20} {a.reliability_score:>7.1f} "
            f"{a.successes:>4}/{a.attempts:<4}{avg_text}"
        )
        for error in a.errors[:3]:
            print(f"         error: {error}")


def print_ranked(ranked: RankedConfig) -> None:
    print_header("OPTIMIZED CONFIGURATION")
    net = ranked.network
    print(f"  Network:        {net.connection_type} (vpn={net.is_vpn}, mobile={net.is_mobile})")
    print(f"  Provider order: {', '.join(ranked.provider_order) or '(none)'}")
    print(f"  Hybrid mode:    {'on' if ranked.hybrid_enabled else 'off'}")
    for name, reason in ranked.dropped.items():
        print(f"  Dropped:        {name} ({reason})")


def save_results(
    assessments: list[ReliabilityAssessment], ranked: RankedConfig | None, output_path: Path
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "assessments": [
            {
                "endpoint": a.endpoint,
                "attempts": a.attempts,
                "successes": a.successes,
                "avg_response_time_ms": a.avg_response_time_ms,
                "reliability_score": a.reliability_score,
                "errors": list(a.errors),
            }
            for a in assessments
        ],
        "ranked_config": ranked.to_dict() if ranked else None,
    }
    with open(output_path, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    print(f"\nRaw results saved to {output_path}")


async def main(args: argparse.Namespace) -> None:
    settings = Settings()
    setup_logging(settings.log_level, json_output=settings.log_json)
    engine = await create_engine(settings)

    print(f"Assessing providers ({args.iterations} calls each) ...")
    assessments = await engine.assess_provider_reliability(args.iterations)
    print_assessments(assessments)

    ranked = None
    if args.optimize:
        ranked = await engine.optimize_configuration(
            preferences=args.prefer,
            consent_granted=args.consent,
            max_response_time_ms=args.max_response_time_ms,
        )
        print_ranked(ranked)

    if args.output:
        save_results(assessments, ranked, Path(args.output))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Assess location provider reliability")
    parser.add_argument("--iterations", type=int, default=3, help="Calls per endpoint (default: 3)")
    parser.add_argument(
        "--optimize",
        action="store_true",
        help="Also compute and persist a ranked provider configuration",
    )
    parser.add_argument(
        "--consent",
        action="store_true",
        help="Treat on-device location consent as granted when optimizing",
    )
    parser.add_argument(
        "--prefer",
        action="append",
        default=[],
        help="Preferred provider name; repeat to give several, in order",
    )
    parser.add_argument(
        "--max-response-time-ms",
        type=float,
        default=None,
        help="Drop providers slower than this on average",
    )
    parser.add_argument("--output", default=None, help="Optional path for raw JSON results")
    asyncio.run(main(parser.parse_args()))
