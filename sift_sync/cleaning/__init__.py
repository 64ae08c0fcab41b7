"""Column analysis and cleaning rule engine."""
from .analyzer import (
    analyze_columns,
    detect_value_type,
    generate_default_column_config,
    suggest_cleaning_rules,
)
from .engine import CleaningReport, CleaningRuleEngine, RowResult
from .rules import Continue, Drop, Fail, apply_column_rules, apply_rule

__all__ = [
    "CleaningReport",
    "CleaningRuleEngine",
    "Continue",
    "Drop",
    "Fail",
    "RowResult",
    "analyze_columns",
    "apply_column_rules",
    "apply_rule",
    "detect_value_type",
    "generate_default_column_config",
    "suggest_cleaning_rules",
]
