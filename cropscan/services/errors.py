"""
Typed failures raised by the analysis workflow.

Every error carries a stable ``kind`` (used by the HTTP layer and by callers
that branch on the failure) and a human-readable ``detail``.
"""

REMEDIATION_HINTS = [
    "Ensure a clear, well-lit crop image",
    "Include leaves, grains, or distinctive features",
    "Name the image after the crop (e.g., rice-crop.jpg)",
    "Upload a high-quality JPEG or PNG image",
]


class WorkflowError(Exception):
    """Base class for all analysis workflow failures."""

    kind = "workflow_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MissingInput(WorkflowError):
    """Raised when run() is invoked without an image reference."""

    kind = "missing_input"


class AlreadyRunning(WorkflowError):
    """Raised when run() is invoked while another run is in flight."""

    kind = "already_running"


class UnresolvedCrop(WorkflowError):
    """Raised in strict mode when no keyword identified the crop."""

    kind = "unresolved_crop"


class InternalFailure(WorkflowError):
    """Raised for any unexpected fault inside a workflow stage."""

    kind = "internal_failure"


class KnowledgeBaseError(InternalFailure):
    """Raised when the knowledge base data is missing or inconsistent."""

    kind = "knowledge_base_error"
