from enum import Enum
from typing import List, Optional, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

HEALTHY_SENTINEL = "Healthy Crop"


class CropCategory(str, Enum):
    FOOD_GRAIN = "Food Grain"
    CASH_CROP = "Cash Crop"
    OILSEED = "Oilseed"
    PULSE = "Pulse"
    PLANTATION_BEVERAGE = "Plantation/Beverage Crop"
    FIBER = "Fiber Crop"
    SUGAR = "Sugar Crop"


class PathogenType(str, Enum):
    FUNGAL = "Fungal"
    BACTERIAL = "Bacterial"
    MULTIPLE = "Multiple"
    NONE = "None"


class Severity(str, Enum):
    NONE = "None"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class WorkflowState(str, Enum):
    IDLE = "idle"
    RESOLVING_CROP = "resolving_crop"
    RESOLVING_DISEASE = "resolving_disease"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class CropRecord(_Frozen):
    id: str = Field(min_length=1)
    name: str
    local_name: str
    scientific_name: str
    crop_type: str
    category: CropCategory
    season: str
    description: str
    growing_regions: List[str]
    soil_type: str
    water_requirement: str
    temperature_range: str
    maturity_period: str
    expected_yield: str
    major_varieties: List[str]
    nutritional_value: Optional[str] = None
    uses: Optional[str] = None

    @model_validator(mode="after")
    def _require_value_or_uses(self):
        if not self.nutritional_value and not self.uses:
            raise ValueError(f"crop {self.id} needs nutritional_value or uses")
        return self


class DiseaseRecord(_Frozen):
    name: str
    pathogen_type: PathogenType
    symptoms: List[str]
    causes: str
    severity: Severity
    treatments: List[str]
    organic_remedies: List[str] = []
    chemical_remedies: List[str] = []
    prevention_advice: str

    @model_validator(mode="after")
    def _healthy_iff_no_severity(self):
        if (self.name == HEALTHY_SENTINEL) != (self.severity == Severity.NONE):
            raise ValueError(
                f"'{HEALTHY_SENTINEL}' must be the only disease record with severity None "
                f"(got name={self.name!r}, severity={self.severity.value!r})"
            )
        return self

    @property
    def is_healthy(self) -> bool:
        return self.name == HEALTHY_SENTINEL


class ImageRef(_Frozen):
    """Already-validated image bytes plus the name the user uploaded them under."""
    file_name: str = ""
    content_type: Optional[str] = None
    data: bytes = b""
    size_bytes: int = 0
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.file_name.strip() or not self.data


class Identification(_Frozen):
    crop: CropRecord
    matched_keyword: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.matched_keyword is None


class AnalysisResult(_Frozen):
    crop: CropRecord
    disease: DiseaseRecord
    identified_by_keyword: bool = True


class ProgressMilestone(_Frozen):
    percent: int = Field(ge=0, le=100)
    label: str


# ─────────────────────────────────────────────────────
# Report sections
# ─────────────────────────────────────────────────────

class IdentificationSection(BaseModel):
    crop_id: str
    name: str
    local_name: str
    scientific_name: str
    crop_type: str
    category: CropCategory
    season: str
    growing_regions: List[str]
    maturity_period: str
    description: str
    expected_yield: str
    identified_by_keyword: bool


class DiseaseStatusSection(BaseModel):
    kind: Literal["disease"] = "disease"
    disease_name: str
    pathogen_type: PathogenType
    severity: Severity
    symptoms: List[str]
    causes: str


class HealthyStatusSection(BaseModel):
    kind: Literal["healthy"] = "healthy"
    crop_name: str
    severity: Severity = Severity.NONE
    observations: List[str] = []


class TreatmentPlanSection(BaseModel):
    treatments: List[str]
    organic_remedies: List[str] = []
    chemical_remedies: List[str] = []
    prevention_advice: str


class RegionalInfoSection(BaseModel):
    category: CropCategory
    season: str
    soil_type: str
    water_requirement: str
    major_varieties: List[str]
    nutritional_value: Optional[str] = None
    uses: Optional[str] = None


class FarmingGuideSection(BaseModel):
    crop_name: str
    season: str
    temperature_range: str
    water_requirement: str
    soil_type: str
    maturity_period: str
    expert_tip: str


class ReportSections(BaseModel):
    identification: IdentificationSection
    health_status: Union[DiseaseStatusSection, HealthyStatusSection] = Field(discriminator="kind")
    treatment_plan: Optional[TreatmentPlanSection] = None
    regional_info: RegionalInfoSection
    farming_guide: FarmingGuideSection


# ─────────────────────────────────────────────────────
# HTTP payloads
# ─────────────────────────────────────────────────────

class ScanResponse(BaseModel):
    scan_id: str
    state: WorkflowState
    crop_id: str
    crop_name: str
    disease_name: str
    identified_by_keyword: bool
    progress: List[ProgressMilestone]
    report: ReportSections


class CropSummary(BaseModel):
    id: str
    name: str
    local_name: str
    category: CropCategory
    season: str


class CropListResponse(BaseModel):
    crops: List[CropSummary]
    total: int


class IdentifyResponse(BaseModel):
    file_name: str
    crop_id: str
    crop_name: str
    matched_keyword: Optional[str] = None
    is_default: bool


class ErrorResponse(BaseModel):
    error: str
    detail: str
    kind: Optional[str] = None
    hints: List[str] = []
