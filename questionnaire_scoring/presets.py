"""
Standard scoring configurations for common screening instruments.

GAD-7 (anxiety, 0-21) and PHQ-9 (depression, 0-27), both
summed and classified with the published severity bands.
"""

import logging
from typing import Dict, List, Optional

from .schemas import CreateScoringConfigData, ScoringRuleCreate
from .types import RiskLevel, ScoringConfiguration, ScoringMethod, VisualizationType

logger = logging.getLogger(__name__)


SYSTEM_USER = "system"

_MINIMAL_ACTIONS = ["No clinical intervention needed", "Continue monitoring"]
_MILD_ACTIONS = ["Consider counseling", "Lifestyle modifications", "Follow-up in 2-4 weeks"]
_MODERATE_ACTIONS = ["Recommend therapy", "Consider medication evaluation", "Weekly follow-up"]


def gad7_configuration_data(questionnaire_id: int = 1, is_default: bool = True) -> CreateScoringConfigData:
    """GAD-7 Standard Scoring."""
    return CreateScoringConfigData(
        questionnaire_id=questionnaire_id,
        name="GAD-7 Standard Scoring",
        description="Standard scoring for Generalized Anxiety Disorder 7-item scale",
        scoring_method=ScoringMethod.SUM,
        min_score=0,
        max_score=21,
        visualization_type=VisualizationType.GAUGE,
        is_default=is_default,
        rules=[
            ScoringRuleCreate(
                min_score=0, max_score=4, risk_level=RiskLevel.LOW,
                label="Minimal Anxiety", description="Minimal anxiety symptoms",
                color="#10B981", actions=_MINIMAL_ACTIONS, order_num=0,
            ),
            ScoringRuleCreate(
                min_score=5, max_score=9, risk_level=RiskLevel.MEDIUM,
                label="Mild Anxiety", description="Mild anxiety symptoms",
                color="#F59E0B", actions=_MILD_ACTIONS, order_num=1,
            ),
            ScoringRuleCreate(
                min_score=10, max_score=14, risk_level=RiskLevel.HIGH,
                label="Moderate Anxiety", description="Moderate anxiety symptoms",
                color="#EF4444", actions=_MODERATE_ACTIONS, order_num=2,
            ),
            ScoringRuleCreate(
                min_score=15, max_score=21, risk_level=RiskLevel.CRITICAL,
                label="Severe Anxiety", description="Severe anxiety symptoms",
                color="#DC2626",
                actions=["Immediate clinical attention", "Comprehensive treatment plan", "Daily monitoring"],
                order_num=3,
            ),
        ],
    )


def phq9_configuration_data(questionnaire_id: int = 2, is_default: bool = True) -> CreateScoringConfigData:
    """PHQ-9 Standard Scoring."""
    return CreateScoringConfigData(
        questionnaire_id=questionnaire_id,
        name="PHQ-9 Standard Scoring",
        description="Standard scoring for Patient Health Questionnaire-9",
        scoring_method=ScoringMethod.SUM,
        min_score=0,
        max_score=27,
        visualization_type=VisualizationType.GAUGE,
        is_default=is_default,
        rules=[
            ScoringRuleCreate(
                min_score=0, max_score=4, risk_level=RiskLevel.LOW,
                label="Minimal Depression", description="Minimal depressive symptoms",
                color="#10B981", actions=_MINIMAL_ACTIONS, order_num=0,
            ),
            ScoringRuleCreate(
                min_score=5, max_score=9, risk_level=RiskLevel.MEDIUM,
                label="Mild Depression", description="Mild depressive symptoms",
                color="#F59E0B", actions=_MILD_ACTIONS, order_num=1,
            ),
            ScoringRuleCreate(
                min_score=10, max_score=14, risk_level=RiskLevel.HIGH,
                label="Moderate Depression", description="Moderate depressive symptoms",
                color="#EF4444", actions=_MODERATE_ACTIONS, order_num=2,
            ),
            ScoringRuleCreate(
                min_score=15, max_score=19, risk_level=RiskLevel.CRITICAL,
                label="Moderately Severe Depression",
                description="Moderately severe depressive symptoms",
                color="#DC2626",
                actions=["Immediate clinical attention", "Comprehensive treatment plan", "Frequent monitoring"],
                order_num=3,
            ),
            ScoringRuleCreate(
                min_score=20, max_score=27, risk_level=RiskLevel.CRITICAL,
                label="Severe Depression", description="Severe depressive symptoms",
                color="#991B1B",
                actions=[
                    "Urgent clinical attention",
                    "Intensive treatment plan",
                    "Daily monitoring",
                    "Safety assessment",
                ],
                order_num=4,
            ),
        ],
    )


STANDARD_PRESETS = {
    "gad-7": gad7_configuration_data,
    "phq-9": phq9_configuration_data,
}


def install_standard_configurations(
    service,
    questionnaire_ids: Optional[Dict[str, int]] = None,
) -> List[ScoringConfiguration]:
    """
    Create the standard presets through a ScoringConfigurationService.

    Args:
        service: ScoringConfigurationService
        questionnaire_ids: Preset name -> questionnaire id
            (defaults: gad-7 -> 1, phq-9 -> 2)

    Returns:
        The created configurations, each default for its questionnaire
    """
    questionnaire_ids = questionnaire_ids or {"gad-7": 1, "phq-9": 2}
    created = []

    for name, questionnaire_id in questionnaire_ids.items():
        data = STANDARD_PRESETS[name](questionnaire_id=questionnaire_id)
        created.append(service.create(data, created_by=SYSTEM_USER))

    logger.info(f"Installed {len(created)} standard scoring configurations")
    return created
