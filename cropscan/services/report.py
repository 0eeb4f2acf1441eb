"""
Report Composer.

Turns an AnalysisResult into the named report sections shown to the farmer.
Pure functions: no I/O, no randomness.
"""
from typing import Dict

from cropscan.api.schemas import (
    AnalysisResult,
    CropCategory,
    CropRecord,
    DiseaseRecord,
    DiseaseStatusSection,
    FarmingGuideSection,
    HealthyStatusSection,
    IdentificationSection,
    RegionalInfoSection,
    ReportSections,
    TreatmentPlanSection,
)

EXPERT_TIPS: Dict[CropCategory, str] = {
    CropCategory.FOOD_GRAIN: (
        "Practice System of Rice Intensification (SRI) for rice and raised bed planting "
        "for wheat to increase yield by 20-30%."
    ),
    CropCategory.PULSE: (
        "Use rhizobium culture for seed treatment in pulses to enhance nitrogen fixation "
        "and reduce fertilizer requirement."
    ),
    CropCategory.OILSEED: (
        "Implement integrated nutrient management with organic manures and bio-fertilizers "
        "for better oil content."
    ),
    CropCategory.CASH_CROP: (
        "Adopt drip irrigation and mulching in cash crops to save 40-50% water and improve "
        "yield quality."
    ),
    CropCategory.FIBER: (
        "Use balanced fertilization and proper spacing in fiber crops to get longer and "
        "stronger fibers."
    ),
}

GENERIC_TIP = (
    "Follow package of practices recommended for your region by agricultural universities "
    "for optimal yield."
)


def expert_tip_for(category: CropCategory) -> str:
    """Return the farming tip for a crop category, or the generic tip."""
    return EXPERT_TIPS.get(category, GENERIC_TIP)


def compose_report(result: AnalysisResult) -> ReportSections:
    """
    Build the report sections for a completed analysis.

    A healthy crop gets a healthy status section and no treatment plan;
    any other disease gets the disease detail and a treatment plan.
    """
    crop, disease = result.crop, result.disease

    if disease.is_healthy:
        health_status = HealthyStatusSection(crop_name=crop.name, observations=list(disease.symptoms))
        treatment_plan = None
    else:
        health_status = _disease_status(disease)
        treatment_plan = _treatment_plan(disease)

    return ReportSections(
        identification=_identification(crop, result.identified_by_keyword),
        health_status=health_status,
        treatment_plan=treatment_plan,
        regional_info=_regional_info(crop),
        farming_guide=_farming_guide(crop),
    )


def _identification(crop: CropRecord, identified_by_keyword: bool) -> IdentificationSection:
    return IdentificationSection(
        crop_id=crop.id,
        name=crop.name,
        local_name=crop.local_name,
        scientific_name=crop.scientific_name,
        crop_type=crop.crop_type,
        category=crop.category,
        season=crop.season,
        growing_regions=list(crop.growing_regions),
        maturity_period=crop.maturity_period,
        description=crop.description,
        expected_yield=crop.expected_yield,
        identified_by_keyword=identified_by_keyword,
    )


def _disease_status(disease: DiseaseRecord) -> DiseaseStatusSection:
    return DiseaseStatusSection(
        disease_name=disease.name,
        pathogen_type=disease.pathogen_type,
        severity=disease.severity,
        symptoms=list(disease.symptoms),
        causes=disease.causes,
    )


def _treatment_plan(disease: DiseaseRecord) -> TreatmentPlanSection:
    return TreatmentPlanSection(
        treatments=list(disease.treatments),
        organic_remedies=list(disease.organic_remedies),
        chemical_remedies=list(disease.chemical_remedies),
        prevention_advice=disease.prevention_advice,
    )


def _regional_info(crop: CropRecord) -> RegionalInfoSection:
    return RegionalInfoSection(
        category=crop.category,
        season=crop.season,
        soil_type=crop.soil_type,
        water_requirement=crop.water_requirement,
        major_varieties=list(crop.major_varieties),
        nutritional_value=crop.nutritional_value,
        uses=crop.uses,
    )


def _farming_guide(crop: CropRecord) -> FarmingGuideSection:
    return FarmingGuideSection(
        crop_name=crop.name,
        season=crop.season,
        temperature_range=crop.temperature_range,
        water_requirement=crop.water_requirement,
        soil_type=crop.soil_type,
        maturity_period=crop.maturity_period,
        expert_tip=expert_tip_for(crop.category),
    )
