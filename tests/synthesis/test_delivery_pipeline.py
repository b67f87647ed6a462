"""Tests for the multi-company delivery pipeline."""

import json

from src.integration.responses import SubmissionReceipt
from src.integration.templates import TemplateProvider
from src.synthesis.amount_allocator import AmountAllocator
from src.synthesis.case_interpreter import CaseInterpreter
from src.synthesis.case_processor import CaseProcessor
from src.synthesis.identifier_mint import ALPHABET, IdentifierMint, MemoryIdentifierStore
from src.synthesis.pipeline import DeliveryPipeline, load_delivery_input
from src.utils.errors import SubmissionError


class _CountingSubmitter:
    """Numbers every successful submission; fails the ones listed."""

    def __init__(self, fail_on=()):
        self.calls = 0
        self.fail_on = set(fail_on)

    def submit(self, payload):
        self.calls += 1
        if self.calls in self.fail_on:
            raise SubmissionError("HTTP 502: Bad Gateway", status_code=502)
        return SubmissionReceipt(correlation_id=f"TO{self.calls}")


def _write_template(directory, company_code):
    directory.mkdir(parents=True, exist_ok=True)
    template = {
        "SalesOrder": [
            {
                "SalesOrderItem": [
                    {"PricingElement": [{"ConditionType": "ZSFN", "ConditionRateValue": 0}]}
                ]
            }
        ]
    }
    (directory / f"{company_code}.json").write_text(json.dumps(template))


def _make_pipeline(tmp_path, submitter):
    processor = CaseProcessor(
        interpreter=CaseInterpreter(),
        allocator=AmountAllocator(random_seed=0),
        mint=IdentifierMint(MemoryIdentifierStore(), random_seed=0),
        submitter=submitter,
        request_delay=0,
    )
    return DeliveryPipeline(
        processor=processor,
        templates=TemplateProvider(tmp_path / "templates"),
        output_dir=tmp_path / "output",
        show_progress=False,
    )


def _delivery_input():
    def case(label, *amounts):
        return {
            "case": label,
            "record": [
                {"PrepaymentRequestnumber": f"PRE{i}", "Amount": a}
                for i, a in enumerate(amounts, start=1)
            ],
        }

    return {
        "SAC1": {"Records": [
            case("OneToOne-Happy-UnderDelivery", 500),
            case("OneToMany-Happy-OverDelivery", 100, 50),
        ]},
        "ZZZ9": {"Records": [case("OneToOne-Happy-UnderDelivery", 100)]},
    }


def test_missing_template_fails_only_that_company(tmp_path):
    _write_template(tmp_path / "templates", "SAC1")
    submitter = _CountingSubmitter()
    pipeline = _make_pipeline(tmp_path, submitter)

    results = pipeline.run(_delivery_input())

    assert len(results) == 2
    assert submitter.calls == 3
    assert "ZZZ9" in pipeline.failed_companies
    assert "Template file not found for company code: ZZZ9" in pipeline.failed_companies["ZZZ9"]
    assert list(pipeline.company_results) == ["SAC1"]
    assert not pipeline.all_failed


def test_payloads_written_per_company(tmp_path):
    _write_template(tmp_path / "templates", "SAC1")
    pipeline = _make_pipeline(tmp_path, _CountingSubmitter())

    pipeline.run(_delivery_input())

    with open(tmp_path / "output" / "SAC1_generated.json") as f:
        payloads = json.load(f)
    assert len(payloads) == 3
    assert not (tmp_path / "output" / "ZZZ9_generated.json").exists()


def test_summary_counts_requests(tmp_path):
    _write_template(tmp_path / "templates", "SAC1")
    pipeline = _make_pipeline(tmp_path, _CountingSubmitter(fail_on={2}))
    pipeline.run(_delivery_input())

    summary = pipeline.write_summary(tmp_path / "output" / "summary.json")

    assert summary["totalCompaniesProcessed"] == 2
    assert summary["totalJsonsCreated"] == 3
    assert summary["totalRequestsSent"] == 3
    assert summary["totalSuccessfulRequests"] == 2
    assert summary["totalFailedRequests"] == 1
    assert summary["companiesResults"]["SAC1"][1]["transactionOrderNumbers"] == "ERROR, TO3"
    with open(tmp_path / "output" / "summary.json") as f:
        assert json.load(f)["totalJsonsCreated"] == 3


def test_all_failed_when_no_company_has_a_template(tmp_path):
    pipeline = _make_pipeline(tmp_path, _CountingSubmitter())

    results = pipeline.run(_delivery_input())

    assert results == []
    assert pipeline.all_failed


def test_load_delivery_input(tmp_path):
    path = tmp_path / "input.json"
    path.write_text(json.dumps(_delivery_input()))

    assert set(load_delivery_input(path)) == {"SAC1", "ZZZ9"}


def test_company_error_mid_run_keeps_finished_cases(tmp_path):
    _write_template(tmp_path / "templates", "SAC1")
    submitter = _CountingSubmitter()
    # Every one-character identifier is taken, so the DiffPrepayment case cannot mint.
    processor = CaseProcessor(
        interpreter=CaseInterpreter(),
        allocator=AmountAllocator(random_seed=0),
        mint=IdentifierMint(MemoryIdentifierStore(ALPHABET), max_attempts=5, random_seed=0),
        submitter=submitter,
        identifier_length=1,
        request_delay=0,
    )
    pipeline = DeliveryPipeline(
        processor=processor,
        templates=TemplateProvider(tmp_path / "templates"),
        output_dir=tmp_path / "output",
        show_progress=False,
    )
    delivery_input = {"SAC1": {"Records": [
        {"case": "OneToOne-Happy-UnderDelivery", "record": [{"PrepaymentRequestnumber": "PRE1", "Amount": 500}]},
        {"case": "OneToOne-DiffPrepayment-UnderDelivery", "record": [{"PrepaymentRequestnumber": "PRE2", "Amount": 500}]},
    ]}}

    results = pipeline.run(delivery_input)

    assert [r.case_input.label for r in results] == ["OneToOne-Happy-UnderDelivery"]
    assert submitter.calls == 1
    assert "SAC1" in pipeline.failed_companies
    assert len(pipeline.company_results["SAC1"]) == 1
    assert not pipeline.all_failed

    summary = pipeline.summary()
    assert summary["totalCompaniesProcessed"] == 1
    assert summary["totalRequestsSent"] == 1
    assert summary["totalSuccessfulRequests"] == 1

    with open(tmp_path / "output" / "SAC1_generated.json") as f:
        assert len(json.load(f)) == 1
