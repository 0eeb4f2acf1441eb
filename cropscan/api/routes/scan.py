import uuid
from io import BytesIO
from typing import List
import logging

from fastapi import APIRouter, UploadFile, File, HTTPException
from PIL import Image, UnidentifiedImageError

from cropscan.api.schemas import (
    CropListResponse,
    CropRecord,
    CropSummary,
    DiseaseRecord,
    IdentifyResponse,
    ImageRef,
    ScanResponse,
)
from cropscan.core.config import get_settings
from cropscan.services.identification import CropIdentifier
from cropscan.services.knowledge_base import get_knowledge_base
from cropscan.services.report import compose_report
from cropscan.services.workflow import AnalysisWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scan"])


def _safe_filename(name: str) -> str:
    """Sanitize filename to prevent path traversal."""
    bad = '<>:"/\\|?*'
    for ch in bad:
        name = name.replace(ch, "_")
    return name.strip() or "file"


async def _read_image(image: UploadFile) -> ImageRef:
    """
    Validate an upload and wrap it as an ImageRef.

    Raises:
        HTTPException: 400 for unsupported type, oversized file, or undecodable image
    """
    settings = get_settings()
    allowed_mime = set(settings.ALLOWED_MIME)
    max_image_bytes = settings.MAX_IMAGE_MB * 1024 * 1024

    ctype = (image.content_type or "").lower()
    if ctype not in allowed_mime:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {ctype}")

    fname = _safe_filename(image.filename or "")
    data = await image.read()

    if len(data) > max_image_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File {fname} exceeds {settings.MAX_IMAGE_MB}MB"
        )

    try:
        with Image.open(BytesIO(data)) as im:
            width, height = im.size
    except (UnidentifiedImageError, OSError):
        raise HTTPException(status_code=400, detail=f"File {fname} is not a readable image")

    return ImageRef(
        file_name=fname,
        content_type=ctype,
        data=data,
        size_bytes=len(data),
        width=width,
        height=height,
    )


@router.post("/scan", response_model=ScanResponse)
async def scan(image: UploadFile = File(...)):
    """
    Identify the crop in an uploaded image and diagnose its health.

    Returns the report sections together with the progress milestones the
    analysis went through.
    """
    image_ref = await _read_image(image)
    scan_id = str(uuid.uuid4())

    workflow = AnalysisWorkflow()
    result = await workflow.run(image_ref)
    report = compose_report(result)

    logger.info(f"Scan {scan_id}: {result.crop.id} / {result.disease.name}")

    return ScanResponse(
        scan_id=scan_id,
        state=workflow.state,
        crop_id=result.crop.id,
        crop_name=result.crop.name,
        disease_name=result.disease.name,
        identified_by_keyword=result.identified_by_keyword,
        progress=workflow.milestones,
        report=report,
    )


@router.get("/crops", response_model=CropListResponse)
async def list_crops():
    """List every crop in the knowledge base, in catalog order."""
    crops = [
        CropSummary(
            id=crop.id,
            name=crop.name,
            local_name=crop.local_name,
            category=crop.category,
            season=crop.season,
        )
        for crop in get_knowledge_base().list_crops()
    ]
    return CropListResponse(crops=crops, total=len(crops))


@router.get("/crops/{crop_id}", response_model=CropRecord)
async def get_crop(crop_id: str):
    crop = get_knowledge_base().get_crop(crop_id)
    if crop is None:
        raise HTTPException(status_code=404, detail=f"Crop {crop_id} not found")
    return crop


@router.get("/crops/{crop_id}/diseases", response_model=List[DiseaseRecord])
async def list_crop_diseases(crop_id: str):
    """Candidate diseases for a crop (the default list when it has no dedicated one)."""
    kb = get_knowledge_base()
    if kb.get_crop(crop_id) is None:
        raise HTTPException(status_code=404, detail=f"Crop {crop_id} not found")
    return list(kb.diseases_for(crop_id))


@router.get("/identify", response_model=IdentifyResponse)
async def identify(file_name: str):
    """Preview which crop a file name resolves to, without running a scan."""
    identification = CropIdentifier().match(file_name)
    return IdentifyResponse(
        file_name=file_name,
        crop_id=identification.crop.id,
        crop_name=identification.crop.name,
        matched_keyword=identification.matched_keyword,
        is_default=identification.is_default,
    )
