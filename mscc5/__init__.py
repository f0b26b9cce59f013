# MSCC5 survey grading engine
from .models import (
    Category, DefectType, PricingStatus, RawObservation, Observation,
    PhysicalSection, SectionVerdict, LogicalRow, BatchResult,
)
from .errors import (
    SurveyGradingError, BatchAbortedError, EmptyBatchError,
    RuleTableError, PricingConfigError, SurveyReadError,
)
from .rule_table import RuleTable, DEFAULT_RULE_TABLE, RULES_VERSION, rules_version
from .normalizer import normalize_observation
from .classifier import classify_observations, classify_section
from .splitter import split_section
from .pricing import (
    PricingTier, PricingConfig, PricingProvider, StaticPricingProvider,
    load_pricing_config, price_row, price_rows,
)
from .sequencer import sequence_sections, find_gaps
from .batch import process_batch

__all__ = [
    "Category", "DefectType", "PricingStatus", "RawObservation", "Observation",
    "PhysicalSection", "SectionVerdict", "LogicalRow", "BatchResult",
    "SurveyGradingError", "BatchAbortedError", "EmptyBatchError",
    "RuleTableError", "PricingConfigError", "SurveyReadError",
    "RuleTable", "DEFAULT_RULE_TABLE", "RULES_VERSION", "rules_version",
    "normalize_observation",
    "classify_observations", "classify_section",
    "split_section",
    "PricingTier", "PricingConfig", "PricingProvider", "StaticPricingProvider",
    "load_pricing_config", "price_row", "price_rows",
    "sequence_sections", "find_gaps",
    "process_batch",
]
