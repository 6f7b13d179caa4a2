"""
FastAPI Router for Scoring Configuration Endpoints.

Provides REST API over the lifecycle service:
- Configuration CRUD and default selection
- Rule add / update / delete
- Validation
- Score calculation
- Analytics

Hosts provide the service through get_scoring_service, for
example with app.dependency_overrides.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from database.engine import get_session_factory
from questionnaire_scoring.config import ScoringEngineConfig
from questionnaire_scoring.repository import SqlAlchemyScoringStore
from questionnaire_scoring.schemas import (
    CreateScoringConfigData,
    ScoreCalculationRequest,
    ScoringRuleCreate,
    ScoringRuleUpdate,
    UpdateScoringConfigBody,
    UpdateScoringConfigData,
    ValidationResponse,
)
from questionnaire_scoring.service import ScoringConfigurationService
from questionnaire_scoring.types import (
    InactiveConfigurationError,
    InvalidDefaultConfigurationError,
    MissingFormulaError,
    NotFoundError,
    ScoringError,
    UnsupportedScoringMethodError,
)

router = APIRouter(prefix="/scoring", tags=["Questionnaire Scoring"])


# =============================================================
# HELPER: Service dependency
# =============================================================

def get_scoring_service() -> ScoringConfigurationService:
    return ScoringConfigurationService(
        SqlAlchemyScoringStore(get_session_factory()),
        config=ScoringEngineConfig.from_env(),
    )


# =============================================================
# HELPER: Error translation
# =============================================================

def _http_error(error: ScoringError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, InvalidDefaultConfigurationError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(error), "errors": error.errors},
        )
    if isinstance(error, (UnsupportedScoringMethodError, MissingFormulaError, InactiveConfigurationError)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


# =============================================================
# CONFIGURATION ENDPOINTS
# =============================================================

@router.get("/configs")
def list_configurations(
    questionnaire_id: int = Query(..., description="Questionnaire to list configurations for"),
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> List[Dict[str, Any]]:
    """List a questionnaire's configurations, newest first."""
    return [config.to_dict() for config in service.get_by_questionnaire(questionnaire_id)]


@router.post("/configs", status_code=status.HTTP_201_CREATED)
def create_configuration(
    data: CreateScoringConfigData,
    created_by: Optional[str] = Query(None),
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        return service.create(data, created_by=created_by).to_dict()
    except ScoringError as e:
        raise _http_error(e)


@router.get("/configs/{config_id}")
def get_configuration(
    config_id: str,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        return service.get(config_id).to_dict()
    except ScoringError as e:
        raise _http_error(e)


@router.patch("/configs/{config_id}")
def update_configuration(
    config_id: str,
    body: UpdateScoringConfigBody,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    """Merge the fields present in the body onto the configuration."""
    data = UpdateScoringConfigData(id=config_id, **body.model_dump(exclude_unset=True))
    try:
        return service.update(data).to_dict()
    except ScoringError as e:
        raise _http_error(e)


@router.delete("/configs/{config_id}")
def delete_configuration(
    config_id: str,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        service.delete(config_id)
    except ScoringError as e:
        raise _http_error(e)
    return {"id": config_id, "deleted": True}


@router.get("/configs/{config_id}/validate", response_model=ValidationResponse)
def validate_configuration(
    config_id: str,
    service: ScoringConfigurationService = Depends(get_scoring_service),
):
    try:
        errors = service.validate(config_id)
    except ScoringError as e:
        raise _http_error(e)
    return ValidationResponse(config_id=config_id, is_valid=not errors, errors=errors)


@router.post("/configs/{config_id}/set-default")
def set_default_configuration(
    config_id: str,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    """
    Make the configuration the questionnaire's default.

    Returns 409 with the validation errors when the
    configuration is invalid or inactive.
    """
    try:
        return service.set_default(config_id).to_dict()
    except ScoringError as e:
        raise _http_error(e)


# =============================================================
# RULE ENDPOINTS
# =============================================================

@router.post("/configs/{config_id}/rules", status_code=status.HTTP_201_CREATED)
def add_rule(
    config_id: str,
    data: ScoringRuleCreate,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        return service.add_rule(config_id, data).to_dict()
    except ScoringError as e:
        raise _http_error(e)


@router.patch("/configs/{config_id}/rules/{rule_id}")
def update_rule(
    config_id: str,
    rule_id: str,
    data: ScoringRuleUpdate,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        return service.update_rule(config_id, rule_id, data).to_dict()
    except ScoringError as e:
        raise _http_error(e)


@router.delete("/configs/{config_id}/rules/{rule_id}")
def delete_rule(
    config_id: str,
    rule_id: str,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    try:
        deleted = service.delete_rule(config_id, rule_id)
    except ScoringError as e:
        raise _http_error(e)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Scoring rule not found: {rule_id}")
    return {"id": rule_id, "deleted": True}


# =============================================================
# CALCULATION ENDPOINTS
# =============================================================

@router.post("/configs/{config_id}/calculate")
def calculate_score(
    config_id: str,
    request: ScoreCalculationRequest,
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    """Score one response with the given configuration."""
    try:
        result = service.calculate_score(
            request.response.to_response(),
            [answer.to_answer() for answer in request.answers],
            [question.to_question() for question in request.questions],
            config_id=config_id,
            store_result=request.store_result,
        )
    except ScoringError as e:
        raise _http_error(e)
    return result.to_dict()


@router.get("/analytics")
def get_analytics(
    questionnaire_id: Optional[int] = Query(None),
    config_id: Optional[str] = Query(None),
    service: ScoringConfigurationService = Depends(get_scoring_service),
) -> Dict[str, Any]:
    return service.get_analytics(questionnaire_id=questionnaire_id, config_id=config_id).to_dict()
