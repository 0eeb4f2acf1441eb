"""
Analysis Workflow - coordinator for one crop scan.

Runs the staged scan pipeline:
1. Crop identification (CropIdentifier)
2. Disease detection (DiseaseSelector)
3. Result assembly (AnalysisResult)

The workflow owns the processing state and the result of the current run.
State only moves through run(), reset() and cancel():

    idle -> resolving_crop -> resolving_disease -> assembling -> completed
      |            |                  |                 |
      +------------+------------------+-----------------+----> failed

completed / failed -> idle on reset() or when the next run() starts.
"""
import asyncio
from typing import Callable, List, Optional
import logging

from cropscan.api.schemas import (
    AnalysisResult,
    DiseaseRecord,
    Identification,
    ImageRef,
    ProgressMilestone,
    WorkflowState,
)
from cropscan.core.config import get_settings
from cropscan.services.disease_selector import DiseaseSelector
from cropscan.services.errors import (
    AlreadyRunning,
    InternalFailure,
    MissingInput,
    UnresolvedCrop,
    WorkflowError,
)
from cropscan.services.identification import CropIdentifier

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressMilestone], None]

IN_FLIGHT_STATES = frozenset({
    WorkflowState.RESOLVING_CROP,
    WorkflowState.RESOLVING_DISEASE,
    WorkflowState.ASSEMBLING,
})
TERMINAL_STATES = frozenset({WorkflowState.COMPLETED, WorkflowState.FAILED})


class AnalysisWorkflow:
    """
    Analysis Workflow - one instance per scanning session.

    At most one run is in flight per instance. A second run() while one is
    in flight fails with AlreadyRunning; use restart() to supersede it.

    Usage:
        workflow = AnalysisWorkflow(on_progress=print)
        result = await workflow.run(ImageRef(file_name="rice-leaf.jpg", data=raw))
        workflow.reset()
    """

    def __init__(
        self,
        identifier: Optional[CropIdentifier] = None,
        selector: Optional[DiseaseSelector] = None,
        identify_delay: Optional[float] = None,
        detect_delay: Optional[float] = None,
        strict_identification: Optional[bool] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the workflow with optional service injection.

        Args:
            identifier: Crop identifier (created if None)
            selector: Disease selector (created if None)
            identify_delay: Simulated identification latency, seconds (IDENTIFY_DELAY if None)
            detect_delay: Simulated detection latency, seconds (DETECT_DELAY if None)
            strict_identification: Fail with UnresolvedCrop instead of using the default crop
            on_progress: Called with every progress milestone, in order
        """
        settings = get_settings()

        self.identifier = identifier or CropIdentifier()
        self.selector = selector or DiseaseSelector()
        self.identify_delay = settings.IDENTIFY_DELAY if identify_delay is None else identify_delay
        self.detect_delay = settings.DETECT_DELAY if detect_delay is None else detect_delay
        self.strict_identification = (
            settings.STRICT_IDENTIFICATION if strict_identification is None else strict_identification
        )
        self.on_progress = on_progress

        self.state = WorkflowState.IDLE
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[WorkflowError] = None
        self.milestones: List[ProgressMilestone] = []

        self._identification: Optional[Identification] = None
        self._disease: Optional[DiseaseRecord] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0


    @property
    def is_running(self) -> bool:
        return self.state in IN_FLIGHT_STATES


    async def run(self, image_ref: Optional[ImageRef]) -> AnalysisResult:
        """
        Execute the complete scan for one image.

        Args:
            image_ref: Validated image bytes plus the uploaded file name

        Returns:
            AnalysisResult with the resolved crop and disease records

        Raises:
            AlreadyRunning: If a run is already in flight (state is left untouched)
            MissingInput: If no image reference was supplied
            UnresolvedCrop: In strict mode, if no keyword identified the crop
            InternalFailure: For any unexpected fault inside a stage
        """
        if self.is_running:
            raise AlreadyRunning(f"An analysis is already in progress (state={self.state.value})")

        if self.state in TERMINAL_STATES:
            self.reset()

        if image_ref is None or image_ref.is_empty:
            error = MissingInput("Please upload a crop image first")
            self._mark_failed(error)
            raise error

        self._generation += 1
        generation = self._generation
        self.state = WorkflowState.RESOLVING_CROP

        logger.info(f"Starting analysis for {image_ref.file_name!r}")

        task = asyncio.ensure_future(self._execute(image_ref))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if generation == self._generation:
                self._abandon()
            logger.info(f"Analysis for {image_ref.file_name!r} was cancelled")
            raise
        except WorkflowError as e:
            self._mark_failed(e)
            raise
        except Exception as e:
            logger.error(f"Analysis failed for {image_ref.file_name!r}", exc_info=True)
            error = InternalFailure(f"Analysis failed: {e}")
            self._mark_failed(error)
            raise error from e
        finally:
            if self._task is task:
                self._task = None


    async def cancel(self) -> bool:
        """
        Cancel the in-flight run, if any, and return to idle.

        Returns:
            True if a run was cancelled
        """
        task = self._task
        if task is None or task.done():
            return False

        task.cancel()
        await asyncio.wait({task})

        # The cancelled run() must not clean up over a run started after this.
        self._generation += 1
        self._abandon()
        return True


    async def restart(self, image_ref: Optional[ImageRef]) -> AnalysisResult:
        """Supersede any in-flight run with a new one for image_ref."""
        await self.cancel()
        return await self.run(image_ref)


    def reset(self) -> None:
        """Clear the result, error and progress and return to idle."""
        if self.is_running:
            raise AlreadyRunning("Cannot reset while an analysis is in progress; cancel it first")

        self.state = WorkflowState.IDLE
        self.result = None
        self.error = None
        self.milestones = []
        self._identification = None
        self._disease = None


    async def _execute(self, image_ref: ImageRef) -> AnalysisResult:
        # ═══════════════════════════════════════════════════════
        # STAGE 1: Crop identification
        # ═══════════════════════════════════════════════════════

        self._emit(10, "Identifying crop")
        await asyncio.sleep(self.identify_delay)

        identification = self.identifier.match(image_ref.file_name)
        if identification.is_default and self.strict_identification:
            logger.warning(f"No crop keyword found in {image_ref.file_name!r}")
            raise UnresolvedCrop(
                f"Could not identify the crop from file name '{image_ref.file_name}'"
            )

        self._identification = identification
        self.state = WorkflowState.RESOLVING_DISEASE
        self._emit(40, "Crop identified")

        logger.info(
            f"Identified {identification.crop.name} "
            f"(keyword={identification.matched_keyword or 'default'})"
        )

        # ═══════════════════════════════════════════════════════
        # STAGE 2: Disease detection
        # ═══════════════════════════════════════════════════════

        await asyncio.sleep(self.detect_delay)

        if self._identification is None:
            raise InternalFailure("Crop must be identified before disease detection")

        self._disease = self.selector.select(self._identification.crop)
        self.state = WorkflowState.ASSEMBLING
        self._emit(70, "Crop health analyzed")

        logger.info(f"Detected {self._disease.name} on {self._identification.crop.name}")

        # ═══════════════════════════════════════════════════════
        # STAGE 3: Result assembly
        # ═══════════════════════════════════════════════════════

        self._emit(90, "Generating farming guide")
        result = AnalysisResult(
            crop=self._identification.crop,
            disease=self._disease,
            identified_by_keyword=not self._identification.is_default,
        )

        self.result = result
        self.state = WorkflowState.COMPLETED
        self._emit(100, "Analysis complete")

        return result


    def _emit(self, percent: int, label: str) -> None:
        milestone = ProgressMilestone(percent=percent, label=label)
        self.milestones.append(milestone)
        logger.debug(f"Progress {percent}%: {label}")
        if self.on_progress is not None:
            self.on_progress(milestone)


    def _mark_failed(self, error: WorkflowError) -> None:
        self.state = WorkflowState.FAILED
        self.error = error
        self.result = None
        self._identification = None
        self._disease = None
        logger.info(f"Analysis failed ({error.kind}): {error.detail}")


    def _abandon(self) -> None:
        self.state = WorkflowState.IDLE
        self.result = None
        self.error = None
        self.milestones = []
        self._identification = None
        self._disease = None
        self._task = None
