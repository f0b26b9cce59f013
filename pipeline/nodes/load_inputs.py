"""
Node 1-2: Load configuration and survey sections
Loads the rule table, pricing configuration and the survey input feed.
"""

import logging
from typing import Dict, Any

from mscc5.batch import check_batch_inputs
from mscc5.errors import SurveyGradingError
from mscc5.pricing import StaticPricingProvider
from mscc5.rule_table import DEFAULT_RULE_TABLE, RuleTable
from mscc5.survey_reader import read_survey_csv

from ..state import SurveyState

logger = logging.getLogger(__name__)


def load_config_node(state: SurveyState) -> Dict[str, Any]:
    """
    Load the rule table and pricing configuration.

    Both are loaded once per batch and shared read-only by every later
    node. A configured file that fails to load aborts the batch. No
    pricing file means rows are left unpriced.

    Args:
        state: Current workflow state

    Returns:
        State updates with rule_table, pricing, rules_version, or last_error
    """
    rules_path = state.get("rules_path", "")
    pricing_path = state.get("pricing_config_path", "")

    try:
        rule_table = RuleTable.from_yaml(rules_path) if rules_path else DEFAULT_RULE_TABLE
        pricing = StaticPricingProvider.from_yaml(pricing_path) if pricing_path else None
    except SurveyGradingError as e:
        logger.error(f"Configuration failed to load: {e}")
        return {"last_error": str(e)}

    if pricing is None:
        logger.warning("No pricing configuration given, costs will be left empty")

    logger.info(f"Using rule table {rule_table.version} ({len(rule_table)} codes)")

    return {
        "rule_table": rule_table,
        "pricing": pricing,
        "rules_version": rule_table.version,
        "last_error": None,
    }


def load_sections_node(state: SurveyState) -> Dict[str, Any]:
    """
    Read the survey export into PhysicalSections.

    Args:
        state: Current workflow state

    Returns:
        State updates with sections and data warnings, or last_error
    """
    input_path = state.get("input_path", "")
    rule_table = state.get("rule_table") or DEFAULT_RULE_TABLE

    try:
        sections, data_warnings = read_survey_csv(input_path, rule_table, state.get("sector"))
        check_batch_inputs(sections, rule_table)
    except SurveyGradingError as e:
        logger.error(f"Could not load sections: {e}")
        return {"sections": [], "last_error": str(e)}

    observation_count = sum(len(s.observations) for s in sections)
    logger.info(f"Loaded {len(sections)} sections, {observation_count} observations")

    if data_warnings:
        logger.warning(f"{len(data_warnings)} survey rows could not be placed in a section")

    return {
        "sections": sections,
        "warnings": state.get("warnings", []) + data_warnings,
        "last_error": None,
    }
