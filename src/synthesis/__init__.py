"""
Delivery case synthesis.

A case label expands into one or more delivery submissions whose
amounts under-, over- or exactly settle the prepaid total.
"""

from .models import (
    CaseDescriptor,
    CaseInput,
    CaseResult,
    CycleOutcome,
    CycleStatus,
    Direction,
    FanoutPlan,
    IdentifierReuse,
    PrepaymentRecord,
    Relationship,
    SubScenario,
)
from .case_interpreter import CaseInterpreter
from .amount_allocator import AmountAllocator
from .identifier_mint import (
    IdentifierMint,
    IdentifierStore,
    JsonIdentifierStore,
    MemoryIdentifierStore,
)
from .case_processor import CaseProcessor, CompanyContext
from .case_record_synthesizer import CaseRecordSynthesizer
from .case_assembler import CaseAssembler
from .pipeline import DeliveryPipeline

__all__ = [
    # Models
    "CaseDescriptor",
    "CaseInput",
    "CaseResult",
    "CycleOutcome",
    "CycleStatus",
    "Direction",
    "FanoutPlan",
    "IdentifierReuse",
    "PrepaymentRecord",
    "Relationship",
    "SubScenario",
    # Core
    "CaseInterpreter",
    "AmountAllocator",
    "IdentifierMint",
    "IdentifierStore",
    "JsonIdentifierStore",
    "MemoryIdentifierStore",
    "CaseProcessor",
    "CompanyContext",
    "CaseRecordSynthesizer",
    # Workflow
    "CaseAssembler",
    "DeliveryPipeline",
]
