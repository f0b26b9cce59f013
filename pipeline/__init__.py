# Survey Grading Agent
from .graph import create_survey_graph, run_survey_workflow, get_workflow_visualization
from .state import SurveyState, create_initial_state

__all__ = [
    "create_survey_graph",
    "run_survey_workflow",
    "get_workflow_visualization",
    "SurveyState",
    "create_initial_state",
]
