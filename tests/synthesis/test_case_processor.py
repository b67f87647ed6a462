"""Tests for CaseProcessor: identifier reuse, amounts, and per-cycle outcomes."""

from src.integration.responses import SubmissionReceipt
from src.synthesis.amount_allocator import AmountAllocator
from src.synthesis.case_interpreter import CaseInterpreter
from src.synthesis.case_processor import CaseProcessor, CompanyContext, make_test_id
from src.synthesis.identifier_mint import IdentifierMint, MemoryIdentifierStore
from src.synthesis.models import CaseInput, CycleStatus, FanoutPlan, IdentifierReuse, PrepaymentRecord
from src.utils.errors import SubmissionError


class _ScriptedSubmitter:
    """Replays receipts or raises scripted errors, one step per submit()."""

    def __init__(self, script=None):
        self.script = list(script or [])
        self.payloads = []

    def submit(self, payload):
        self.payloads.append(payload)
        step = self.script.pop(0) if self.script else SubmissionReceipt(correlation_id="TO-default")
        if isinstance(step, Exception):
            raise step
        return step


def _make_template():
    return {
        "SalesOrder": [
            {
                "SalesOrderType": "ZDEL",
                "SalesOrderItem": [
                    {
                        "Material": "MAT-1",
                        "PricingElement": [
                            {"ConditionType": "ZPR0", "ConditionRateValue": 0},
                            {"ConditionType": "ZSFN", "ConditionRateValue": 0},
                        ],
                    }
                ],
            }
        ]
    }


def _make_case(label, amounts, identifiers=None):
    identifiers = identifiers or [f"PRE{i + 1}" for i in range(len(amounts))]
    records = [
        PrepaymentRecord(request_number=ident, amount=amount)
        for ident, amount in zip(identifiers, amounts)
    ]
    return CaseInput(label=label, records=records)


def _make_processor(submitter, store=None, exact=False, max_one_to_many=3, sleeps=None):
    sleeps = sleeps if sleeps is not None else []
    return CaseProcessor(
        interpreter=CaseInterpreter(max_one_to_many=max_one_to_many),
        allocator=AmountAllocator(random_seed=7),
        mint=IdentifierMint(store or MemoryIdentifierStore(), random_seed=7),
        submitter=submitter,
        exact_equality=exact,
        identifier_length=9,
        request_delay=0.1,
        sleep=sleeps.append,
    )


def _company(template=None):
    return CompanyContext(company_code="SAC1", template=template or _make_template())


def _net_amount(payload):
    item = payload["SalesOrder"][0]["SalesOrderItem"][0]
    for pricing in item["PricingElement"]:
        if pricing["ConditionType"] == "ZSFN":
            return pricing["ConditionRateValue"]
    return None


def test_failed_cycle_does_not_stop_remaining_cycles():
    submitter = _ScriptedSubmitter([
        SubmissionReceipt(correlation_id="TO1", line_correlation_id="10"),
        SubmissionError("HTTP 500: Internal Server Error", status_code=500),
        SubmissionReceipt(correlation_id=None),
    ])
    processor = _make_processor(submitter)

    result = processor.process(_make_case("OneToMany-Happy-UnderDelivery", [100, 200, 300]), _company())

    assert result.plan.cycles == 3
    assert len(submitter.payloads) == 3
    assert [o.status for o in result.outcomes] == [
        CycleStatus.SUCCESS,
        CycleStatus.ERROR,
        CycleStatus.NO_CORRELATION_ID,
    ]
    assert result.correlation_markers == ["TO1", "ERROR", "NO_TRANSACTION_NUMBER"]
    assert result.outcomes[0].line_correlation_id == "10"
    assert "HTTP 500" in result.outcomes[1].error
    assert result.success_count == 1
    assert result.failure_count == 2


def test_pause_follows_only_completed_calls():
    sleeps = []
    submitter = _ScriptedSubmitter([
        SubmissionReceipt(correlation_id="TO1"),
        SubmissionError("timeout"),
        SubmissionReceipt(correlation_id="TO3"),
    ])
    processor = _make_processor(submitter, sleeps=sleeps)

    processor.process(_make_case("OneToMany-Happy-OverDelivery", [10, 20, 30]), _company())

    assert sleeps == [0.1, 0.1]


def test_happy_reuses_first_original_identifier():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter)

    result = processor.process(
        _make_case("OneToMany-Happy-UnderDelivery", [100, 200], ["PRE1", "PRE2"]),
        _company(),
    )

    assert result.identifiers == ["PRE1", "PRE1"]
    assert [o.test_id for o in result.outcomes] == ["Delvr_PRE1_1", "Delvr_PRE1_2"]
    item = submitter.payloads[0]["SalesOrder"][0]["SalesOrderItem"][0]
    assert item["PrepaymentRequestnumber"] == "PRE1"
    assert item["YY1_SFDCLINEID_I"] == "Delvr_PRE1_1"
    assert submitter.payloads[0]["SalesOrder"][0]["SalesOrderItemsSet"] == ["Delvr_PRE1_1"]


def test_no_prepayment_uses_empty_identifier_everywhere():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter)

    result = processor.process(
        _make_case("OneToMany-NoPrepayment-OverDelivery", [100, 200]),
        _company(),
    )

    assert result.identifiers == ["", ""]
    assert [o.test_id for o in result.outcomes] == ["Delvr_OneToMany_1", "Delvr_OneToMany_2"]
    for payload in submitter.payloads:
        assert payload["SalesOrder"][0]["SalesOrderItem"][0]["PrepaymentRequestnumber"] == ""


def test_diff_prepayment_mints_fresh_identifier_per_cycle():
    store = MemoryIdentifierStore(["PRE1", "PRE2"])
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter, store=store)

    result = processor.process(
        _make_case("OneToMany-DiffPrepayment-UnderDelivery", [100, 200]),
        _company(),
    )

    first, second = result.identifiers
    assert first != second
    assert len(first) == len(second) == 9
    assert not {first, second} & {"PRE1", "PRE2"}
    assert first in store and second in store


def test_many_to_one_under_delivers_total_in_one_cycle():
    for exact in (True, False):
        submitter = _ScriptedSubmitter()
        processor = _make_processor(submitter, exact=exact)

        result = processor.process(
            _make_case("ManyToOne-Happy-UnderDelivery", [100, 200], ["PRE1", "PRE2"]),
            _company(),
        )

        assert result.plan.cycles == 1
        assert result.amounts == [300]
        assert result.outcomes[0].test_id == "Delvr_PRE1"
        assert _net_amount(submitter.payloads[0]) == 300


def test_one_to_many_over_delivery_example():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter, max_one_to_many=3)

    result = processor.process(_make_case("OneToMany-Happy-OverDelivery", [100, 50]), _company())

    assert result.plan.cycles == 2
    assert len(result.amounts) == 2
    assert sum(result.amounts) > 150
    assert [_net_amount(p) for p in submitter.payloads] == result.amounts


def test_one_to_one_exact_under_delivery_keeps_total():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter, exact=True)

    result = processor.process(_make_case("OneToOne-Happy-UnderDelivery", [480]), _company())

    assert result.amounts == [480]
    assert result.outcomes[0].test_id == "Delvr_PRE1"


def test_unrecognized_label_falls_back_to_single_total_cycle():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter)

    result = processor.process(_make_case("Bogus-Label", [120, 30]), _company())

    assert not result.descriptor.is_recognized
    assert result.plan.cycles == 1
    assert result.amounts == [150]
    assert result.to_summary()["scenario"] == "OneToOne"


def test_relationship_without_direction_runs_as_one_to_one():
    submitter = _ScriptedSubmitter()
    processor = _make_processor(submitter, max_one_to_many=3)

    result = processor.process(_make_case("OneToMany-Happy", [500, 200]), _company())

    assert not result.descriptor.is_recognized
    assert result.plan.cycles == 1
    assert result.amounts == [700]
    assert len(submitter.payloads) == 1
    assert _net_amount(submitter.payloads[0]) == 700
    assert result.outcomes[0].test_id == "Delvr_PRE1"
    assert result.to_summary()["scenario"] == "OneToOne"


def test_resolve_amounts_pads_fractional_fallback_total():
    processor = _make_processor(_ScriptedSubmitter())
    descriptor = processor.interpreter.decode("Bogus-Label")
    plan = FanoutPlan(cycles=3, reuse=IdentifierReuse.SAME_FOR_ALL)

    amounts = processor.resolve_amounts(descriptor, plan, 150.5)

    assert amounts == [150.5, 150.5, 150.5]


def test_template_is_not_mutated():
    template = _make_template()
    processor = _make_processor(_ScriptedSubmitter())

    processor.process(_make_case("OneToOne-Happy-OverDelivery", [100]), _company(template))

    assert template == _make_template()


def test_summary_lists_markers_in_cycle_order():
    submitter = _ScriptedSubmitter([
        SubmissionReceipt(correlation_id="A1"),
        SubmissionReceipt(correlation_id="A2"),
    ])
    processor = _make_processor(submitter)

    summary = processor.process(
        _make_case("OneToMany-Happy-UnderDelivery", [100, 200]),
        _company(),
    ).to_summary()

    assert summary["caseName"] == "OneToMany-Happy-UnderDelivery"
    assert summary["caseType"] == "UnderDelivery-Happy"
    assert summary["generatedJsonCount"] == 2
    assert summary["transactionOrderNumbers"] == "A1, A2"


def test_make_test_id_fallbacks():
    interpreter = CaseInterpreter()

    assert make_test_id(interpreter.decode("OneToOne-NoPrepayment-UnderDelivery"), "", 0) == "Delvr_OneToOne_1"
    assert make_test_id(interpreter.decode("ManyToOne-NoPrepayment-UnderDelivery"), "", 0) == "Delvr_ManyToOne"
    assert make_test_id(interpreter.decode("OneToMany-Happy-UnderDelivery"), "X1", 2) == "Delvr_X1_3"
