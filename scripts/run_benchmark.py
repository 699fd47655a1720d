#!/usr/bin/env python3
"""
Benchmark and regression report for the prompt assembler.
Runs the provider comparison for one message and the regression suites.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from config.settings import settings
from src.assembler import AssemblyRequest, ConnectionState, PromptAssembler
from src.benchmark import BenchmarkHarness, RegressionSuite
from src.knowledge_base import KnowledgeBaseRegistry
from src.utils.logging_config import LogConfig, configure_logging

logger = logging.getLogger(__name__)


def print_comparisons(result: dict) -> None:
    print("\n📊 PROVIDER COMPARISON")
    print("=" * 60)
    for comparison in result["comparisons"]:
        optimized = comparison.optimized
        print(
            f"   • {optimized.provider_name:<10} | {optimized.algorithm:<18} | "
            f"{comparison.baseline.estimated_size:>5} → {optimized.estimated_size:>5} tokens | "
            f"{comparison.size_reduction:6.1f}% | quality {comparison.quality_score:.1f}"
        )
    print("\n💡 Recommendations:")
    for recommendation in result["recommendations"]:
        print(f"   - {recommendation}")


def print_suites(reports) -> None:
    print("\n🧪 REGRESSION SUITES")
    print("=" * 60)
    for report in reports:
        summary = report.summary
        print(
            f"   • {report.name}: {summary['passed_tests']}/{summary['total_tests']} passed, "
            f"intent accuracy {summary['intent_accuracy']:.2f}, "
            f"average reduction {summary['average_size_reduction']:.1f}%"
        )
        for result in report.results:
            for issue in result.issues:
                print(f"       ⚠️  {result.scenario_id} [{result.provider_name}]: {issue}")
        for recommendation in report.recommendations:
            print(f"       - {recommendation}")


def main():
    parser = argparse.ArgumentParser(description="Prompt assembly benchmark")
    parser.add_argument(
        "--message",
        default="Create a simple landing page with a hero section and contact form",
        help="User message to benchmark",
    )
    parser.add_argument("--chat-mode", choices=["build", "discuss"], default="build")
    parser.add_argument("--existing-files", action="store_true")
    parser.add_argument("--database-connected", action="store_true")
    parser.add_argument(
        "--providers", nargs="*", default=None, help="Provider names to compare"
    )
    parser.add_argument("--skip-suites", action="store_true")
    parser.add_argument("--output", type=Path, help="Write exported results as JSON")
    args = parser.parse_args()

    configure_logging(LogConfig.from_settings(enable_json=False))

    registry = KnowledgeBaseRegistry(settings.rule_data_path)
    assembler = PromptAssembler(registry.get())
    harness = BenchmarkHarness(assembler)

    request = AssemblyRequest(
        chat_mode=args.chat_mode,
        history=[{"role": "user", "content": args.message}],
        has_existing_files=args.existing_files,
        connection=ConnectionState(
            connected=args.database_connected,
            project_selected=args.database_connected,
            has_credentials=args.database_connected,
        ),
    )
    print_comparisons(harness.run_benchmark(request, args.providers))

    if not args.skip_suites:
        print_suites(RegressionSuite(assembler).run_all())

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(harness.export_results(), f, indent=2, default=str)
        logger.info(f"Results written to {args.output}")


if __name__ == "__main__":
    main()
