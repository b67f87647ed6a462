"""
Run the prepayment/delivery test workflow.

Steps:
    generate-cases  draw case labels from the configured weights
    prepayments     create prepayment sales orders and track them
    assemble        pair case labels with tracked prepayments
    deliveries      run every delivery case and write processing results
    export          transform processing results into the workbook
    all             every step above, in order

Usage:
    python -m src.workflow.run_workflow all --config config/harness.yaml
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..integration.gateway import DeliveryClient, PrepaymentClient
from ..integration.prepayments import PrepaymentRunner, PrepaymentTracker
from ..integration.templates import TemplateProvider
from ..reporting.processing_results import read_processing_results, write_processing_results
from ..reporting.workbook import WorkbookTransformer, scenario_breakdown, write_workbook
from ..synthesis.amount_allocator import AmountAllocator
from ..synthesis.case_assembler import CaseAssembler, tracked_records
from ..synthesis.case_interpreter import CaseInterpreter
from ..synthesis.case_processor import CaseProcessor
from ..synthesis.case_record_synthesizer import CaseRecordSynthesizer
from ..synthesis.identifier_mint import IdentifierMint, JsonIdentifierStore
from ..synthesis.pipeline import DeliveryPipeline, load_delivery_input
from ..utils.config import HarnessConfig, load_config
from ..utils.errors import HarnessError

logger = logging.getLogger(__name__)

PREPAYMENT_ENDPOINT = "prepayment"
DELIVERY_ENDPOINT = "delivery"
SUMMARY_FILENAME = "overall_results_summary.json"


def _write_json(path: Path, data) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _read_json(path: Path):
    with open(path, "r") as f:
        return json.load(f)


def _mint(config: HarnessConfig, seed: Optional[int]) -> IdentifierMint:
    store = JsonIdentifierStore(config.paths.identifier_pool)
    return IdentifierMint(store, max_attempts=config.mint_max_attempts, random_seed=seed)


def step_generate_cases(config: HarnessConfig, seed: Optional[int]) -> List[str]:
    labels = CaseRecordSynthesizer(random_seed=seed).generate_from_config(config.cases)
    _write_json(config.paths.case_records, CaseRecordSynthesizer.to_document(labels))
    logger.info("Generated %d case labels into %s", len(labels), config.paths.case_records)
    return labels


def step_prepayments(config: HarnessConfig, seed: Optional[int]) -> Dict:
    runner = PrepaymentRunner(
        config=config,
        templates=TemplateProvider(config.paths.prepayment_templates),
        client=PrepaymentClient(config.endpoint(PREPAYMENT_ENDPOINT)),
        mint=_mint(config, seed),
        tracker=PrepaymentTracker(config.paths.prepayment_tracking),
        output_dir=config.paths.output_dir / "prepayments",
        random_seed=seed,
    )
    results = runner.run()
    failed = [code for code, r in results.items() if "error" in r]
    if results and len(failed) == len(results):
        raise HarnessError("Prepayment creation failed for every company")
    return results


def step_assemble(config: HarnessConfig, seed: Optional[int]) -> Dict:
    labels = [r["case"] for r in _read_json(config.paths.case_records).get("record", [])]
    tracking = _read_json(config.paths.prepayment_tracking)
    assembler = CaseAssembler(
        CaseInterpreter(config.max_one_to_many),
        many_to_one_records=config.many_to_one_records,
    )
    document = assembler.assemble(labels, tracked_records(tracking))
    _write_json(config.paths.delivery_input, document)
    return document


def step_deliveries(config: HarnessConfig, seed: Optional[int]) -> Dict:
    processor = CaseProcessor(
        interpreter=CaseInterpreter(config.max_one_to_many),
        allocator=AmountAllocator(random_seed=seed),
        mint=_mint(config, seed),
        submitter=DeliveryClient(config.endpoint(DELIVERY_ENDPOINT)),
        exact_equality=config.is_equal,
        identifier_length=config.delivery_id_length,
        request_delay=config.request_delay,
    )
    pipeline = DeliveryPipeline(
        processor=processor,
        templates=TemplateProvider(config.paths.delivery_templates),
        output_dir=config.paths.output_dir,
    )
    logger.info("Config loaded - is_equal: %s", config.is_equal)

    delivery_input = load_delivery_input(config.paths.delivery_input)
    results = pipeline.run(delivery_input)
    write_processing_results(results, config.paths.processing_results)
    summary = pipeline.write_summary(config.paths.output_dir / SUMMARY_FILENAME)

    logger.info("=== Summary ===")
    logger.info("Total companies processed: %d", summary["totalCompaniesProcessed"])
    logger.info("Total JSON bodies created: %d", summary["totalJsonsCreated"])
    logger.info("Successful API requests: %d", summary["totalSuccessfulRequests"])
    logger.info("Failed API requests: %d", summary["totalFailedRequests"])

    if pipeline.all_failed:
        raise HarnessError("Delivery processing failed for every company")
    return summary


def step_export(config: HarnessConfig, seed: Optional[int]) -> Dict[str, int]:
    transformer = WorkbookTransformer(
        currency_type=config.prepayment_currency,
        company_currencies=config.company_currencies(),
        sold_to_parties=config.sold_to_parties(),
    )
    processing = read_processing_results(config.paths.processing_results)
    rows = transformer.transform(processing)
    write_workbook(rows, config.paths.workbook)

    breakdown = scenario_breakdown(rows)
    logger.info("Processed %d rows from %d original rows", len(rows), len(processing))
    for scenario, count in breakdown.items():
        logger.info("  %s: %d rows", scenario, count)
    return breakdown


STEPS: Dict[str, Callable[[HarnessConfig, Optional[int]], object]] = {
    "generate-cases": step_generate_cases,
    "prepayments": step_prepayments,
    "assemble": step_assemble,
    "deliveries": step_deliveries,
    "export": step_export,
}


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Prepayment/delivery integration test workflow",
    )
    parser.add_argument(
        "step",
        choices=list(STEPS) + ["all"],
        help="Workflow step to run",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/harness.yaml"),
        help="Path to the harness YAML config",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Optional .env file with endpoint credentials",
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed (omit for fresh randomness each run)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    steps = list(STEPS) if args.step == "all" else [args.step]
    try:
        config = load_config(args.config, env_file=args.env_file)
        for name in steps:
            logger.info("Step: %s", name)
            STEPS[name](config, args.seed)
    except (HarnessError, OSError, ValueError) as exc:
        logger.error("Error during workflow execution: %s", exc)
        return 1

    logger.info("Workflow finished: %s", ", ".join(steps))
    return 0


if __name__ == "__main__":
    sys.exit(main())
