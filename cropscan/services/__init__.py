"""
Service layer for the crop scanner.

- Knowledge base of crop and disease records
- File-name crop identification
- Random disease selection
- Analysis workflow (state machine + progress)
- Report composition
"""

from cropscan.services.errors import (
    WorkflowError,
    MissingInput,
    AlreadyRunning,
    UnresolvedCrop,
    InternalFailure,
    KnowledgeBaseError,
)
from cropscan.services.knowledge_base import KnowledgeBase, get_knowledge_base
from cropscan.services.identification import CropIdentifier
from cropscan.services.disease_selector import DiseaseSelector, get_rng
from cropscan.services.workflow import AnalysisWorkflow
from cropscan.services.report import compose_report, expert_tip_for

__all__ = [
    "WorkflowError",
    "MissingInput",
    "AlreadyRunning",
    "UnresolvedCrop",
    "InternalFailure",
    "KnowledgeBaseError",
    "KnowledgeBase",
    "get_knowledge_base",
    "CropIdentifier",
    "DiseaseSelector",
    "get_rng",
    "AnalysisWorkflow",
    "compose_report",
    "expert_tip_for",
]
