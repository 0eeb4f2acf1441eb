"""
Tests for the analysis workflow state machine.
"""
import asyncio
import random

import pytest

from cropscan.api.schemas import ImageRef, WorkflowState
from cropscan.services.disease_selector import DiseaseSelector
from cropscan.services.errors import (
    AlreadyRunning,
    InternalFailure,
    MissingInput,
    UnresolvedCrop,
)
from cropscan.services.identification import CropIdentifier
from cropscan.services.workflow import AnalysisWorkflow


@pytest.fixture
def make_workflow(knowledge_base):
    def _make(**kwargs):
        kwargs.setdefault("identifier", CropIdentifier(knowledge_base))
        kwargs.setdefault("selector", DiseaseSelector(knowledge_base, rng=random.Random(99)))
        kwargs.setdefault("identify_delay", 0)
        kwargs.setdefault("detect_delay", 0)
        return AnalysisWorkflow(**kwargs)
    return _make


class _BrokenSelector:
    def select(self, crop):
        raise KeyError(crop.id)


def test_successful_run(make_workflow, make_image_ref):
    seen = []
    workflow = make_workflow(on_progress=seen.append)

    result = asyncio.run(workflow.run(make_image_ref("rice-leaf.jpg")))

    assert result.crop.id == "rice"
    assert result.disease.name in {"Blast Disease", "Bacterial Leaf Blight"}
    assert result.identified_by_keyword is True
    assert workflow.state == WorkflowState.COMPLETED
    assert workflow.result == result
    assert workflow.error is None
    assert seen == workflow.milestones


def test_milestones_are_ordered_and_monotonic(make_workflow, make_image_ref):
    workflow = make_workflow()

    asyncio.run(workflow.run(make_image_ref("wheat.png")))

    labels = [m.label for m in workflow.milestones]
    percents = [m.percent for m in workflow.milestones]

    assert labels.index("Crop identified") < labels.index("Crop health analyzed") < labels.index("Analysis complete")
    assert percents == sorted(percents)
    assert len(set(percents)) == len(percents)
    assert percents[-1] == 100


def test_state_transitions_in_order(make_workflow, make_image_ref):
    states = []
    workflow = make_workflow()
    workflow.on_progress = lambda milestone: states.append(workflow.state)

    asyncio.run(workflow.run(make_image_ref("maize.jpg")))

    assert states == [
        WorkflowState.RESOLVING_CROP,
        WorkflowState.RESOLVING_DISEASE,
        WorkflowState.ASSEMBLING,
        WorkflowState.ASSEMBLING,
        WorkflowState.COMPLETED,
    ]


def test_missing_input_fails_without_progress(make_workflow):
    seen = []
    workflow = make_workflow(on_progress=seen.append)

    with pytest.raises(MissingInput):
        asyncio.run(workflow.run(None))

    assert workflow.state == WorkflowState.FAILED
    assert isinstance(workflow.error, MissingInput)
    assert workflow.milestones == []
    assert seen == []


def test_empty_image_ref_is_missing_input(make_workflow):
    workflow = make_workflow()

    with pytest.raises(MissingInput):
        asyncio.run(workflow.run(ImageRef()))

    assert workflow.state == WorkflowState.FAILED


def test_unknown_file_name_uses_default_crop(make_workflow, make_image_ref):
    workflow = make_workflow()

    result = asyncio.run(workflow.run(make_image_ref("unknown_plant.png")))

    assert result.crop.id == "rice"
    assert result.identified_by_keyword is False


def test_strict_mode_surfaces_unresolved_crop(make_workflow, make_image_ref):
    workflow = make_workflow(strict_identification=True)

    with pytest.raises(UnresolvedCrop):
        asyncio.run(workflow.run(make_image_ref("unknown_plant.png")))

    assert workflow.state == WorkflowState.FAILED
    assert workflow.result is None
    assert [m.label for m in workflow.milestones] == ["Identifying crop"]


def test_stage_fault_becomes_internal_failure(make_workflow, make_image_ref):
    workflow = make_workflow(selector=_BrokenSelector())

    with pytest.raises(InternalFailure) as exc_info:
        asyncio.run(workflow.run(make_image_ref("rice.jpg")))

    assert workflow.state == WorkflowState.FAILED
    assert workflow.error is exc_info.value
    assert workflow.result is None
    assert isinstance(exc_info.value.__cause__, KeyError)


def test_overlapping_run_rejected(make_workflow, make_image_ref):
    workflow = make_workflow(identify_delay=0.05)

    async def scenario():
        first = asyncio.ensure_future(workflow.run(make_image_ref("cotton.jpg")))
        await asyncio.sleep(0)
        assert workflow.is_running

        with pytest.raises(AlreadyRunning):
            await workflow.run(make_image_ref("jute.jpg"))

        return await first

    result = asyncio.run(scenario())

    # the rejected call must not disturb the run in flight
    assert result.crop.id == "cotton"
    assert workflow.state == WorkflowState.COMPLETED


def test_reset_returns_to_idle(make_workflow, make_image_ref):
    workflow = make_workflow()
    asyncio.run(workflow.run(make_image_ref("tea.jpg")))

    workflow.reset()

    assert workflow.state == WorkflowState.IDLE
    assert workflow.result is None
    assert workflow.error is None
    assert workflow.milestones == []


def test_reset_after_failure(make_workflow):
    workflow = make_workflow()
    with pytest.raises(MissingInput):
        asyncio.run(workflow.run(None))

    workflow.reset()

    assert workflow.state == WorkflowState.IDLE
    assert workflow.error is None


def test_new_run_after_completion_discards_previous_result(make_workflow, make_image_ref):
    workflow = make_workflow()

    first = asyncio.run(workflow.run(make_image_ref("mustard.jpg")))
    second = asyncio.run(workflow.run(make_image_ref("masoor.jpg")))

    assert first.crop.id == "mustard"
    assert second.crop.id == "masoor"
    assert workflow.result == second
    assert [m.percent for m in workflow.milestones][-1] == 100
    assert len(workflow.milestones) == 5


def test_reset_while_running_rejected(make_workflow, make_image_ref):
    workflow = make_workflow(identify_delay=0.05)

    async def scenario():
        task = asyncio.ensure_future(workflow.run(make_image_ref("rice.jpg")))
        await asyncio.sleep(0)
        with pytest.raises(AlreadyRunning):
            workflow.reset()
        await task

    asyncio.run(scenario())
    assert workflow.state == WorkflowState.COMPLETED


def test_cancel_returns_to_idle(make_workflow, make_image_ref):
    workflow = make_workflow(identify_delay=10)

    async def scenario():
        task = asyncio.ensure_future(workflow.run(make_image_ref("rice.jpg")))
        await asyncio.sleep(0)
        cancelled = await workflow.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return cancelled

    assert asyncio.run(scenario()) is True
    assert workflow.state == WorkflowState.IDLE
    assert workflow.result is None
    assert workflow.milestones == []


def test_cancel_without_run_is_noop(make_workflow):
    workflow = make_workflow()
    assert asyncio.run(workflow.cancel()) is False
    assert workflow.state == WorkflowState.IDLE


def test_restart_supersedes_in_flight_run(make_workflow, make_image_ref):
    workflow = make_workflow(identify_delay=0.05)

    async def scenario():
        stale = asyncio.ensure_future(workflow.run(make_image_ref("wheat.jpg")))
        await asyncio.sleep(0)

        result = await workflow.restart(make_image_ref("groundnut.jpg"))

        with pytest.raises(asyncio.CancelledError):
            await stale
        return result

    result = asyncio.run(scenario())

    assert result.crop.id == "groundnut"
    assert workflow.state == WorkflowState.COMPLETED
    assert workflow.result == result


@pytest.mark.parametrize("image_ref", [
    ImageRef(file_name="rice.jpg"),
    ImageRef(file_name="   ", data=b"\x89PNG"),
    ImageRef(data=b"\x89PNG", size_bytes=4),
])
def test_partial_image_ref_is_missing_input(make_workflow, image_ref):
    seen = []
    workflow = make_workflow(on_progress=seen.append)

    with pytest.raises(MissingInput):
        asyncio.run(workflow.run(image_ref))

    assert workflow.state == WorkflowState.FAILED
    assert workflow.result is None
    assert workflow.milestones == []
    assert seen == []
