"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class RecordsInputConfig(BaseModel):
    """Configuration for normalized record files."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: str = "%Y-%m-%d"
    transaction_columns: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "id",
            "date": "date",
            "amount": "amount",
            "currency": "currency",
            "description": "description",
            "counterpart_name": "counterpart_name",
            "reference_number": "reference_number",
            "category": "category",
            "project_id": "project_id",
            "reconciled": "reconciled",
            "expense_id": "expense_id",
        }
    )
    expense_columns: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "id",
            "date": "date",
            "amount": "amount",
            "description": "description",
            "supplier_name": "supplier_name",
            "receipt_number": "receipt_number",
            "category": "category",
            "approval_state": "approval_state",
            "project_id": "project_id",
            "reconciled_transaction_id": "reconciled_transaction_id",
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    records: RecordsInputConfig = Field(default_factory=RecordsInputConfig)


class MatchingConfig(BaseModel):
    """Configuration for candidate generation and the reconciliation policy."""

    # Pairs scoring below this are never suggested
    min_score_threshold: int = 30

    # Pairs scoring at or above this are reconciled automatically
    auto_reconcile_threshold: int = 70

    # Minimum word length counted in supplier and description comparisons
    fuzzy_token_min_length: int = 3

    # None means expenses in every approval state are eligible
    expense_approval_states: Optional[list[str]] = None


class CategorizationRule(BaseModel):
    """A keyword rule for transaction categorization."""

    keyword: str
    category: str
    priority: int = 1


class CategorizationConfig(BaseModel):
    """Configuration for keyword categorization."""

    # Fill missing transaction categories before scoring
    enabled: bool = False
    fallback_category: str = "other"
    fallback_confidence: float = 0.3
    rules: list[CategorizationRule] = Field(default_factory=list)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_report_{date}_{time}.xlsx"
    include_timestamp: bool = True


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    candidates: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Candidates"))
    manual_review: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Manual Review")
    )
    commit_results: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Commit Results")
    )
    skipped_records: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Skipped Records")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Optional rotating log file capturing debug output
    log_file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    categorization: CategorizationConfig = Field(default_factory=CategorizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "records": {
                "encoding": "utf-8",
                "delimiter": ",",
                "date_format": "%Y-%m-%d",
                "transaction_columns": {
                    "id": "id",
                    "date": "date",
                    "amount": "amount",
                    "currency": "currency",
                    "description": "description",
                    "counterpart_name": "counterpart_name",
                    "reference_number": "reference_number",
                    "category": "category",
                    "project_id": "project_id",
                    "reconciled": "reconciled",
                    "expense_id": "expense_id",
                },
                "expense_columns": {
                    "id": "id",
                    "date": "date",
                    "amount": "amount",
                    "description": "description",
                    "supplier_name": "supplier_name",
                    "receipt_number": "receipt_number",
                    "category": "category",
                    "approval_state": "approval_state",
                    "project_id": "project_id",
                    "reconciled_transaction_id": "reconciled_transaction_id",
                },
            },
        },
        "matching": {
            "min_score_threshold": 30,
            "auto_reconcile_threshold": 70,
            "fuzzy_token_min_length": 3,
            "expense_approval_states": None,
        },
        "categorization": {
            "enabled": False,
            "fallback_category": "other",
            "fallback_confidence": 0.3,
            "rules": [
                {"keyword": "salary", "category": "salary", "priority": 1},
                {"keyword": "stipendio", "category": "salary", "priority": 1},
                {"keyword": "rent", "category": "rent", "priority": 2},
                {"keyword": "affitto", "category": "rent", "priority": 2},
                {"keyword": "fuel", "category": "travel", "priority": 3},
                {"keyword": "carburante", "category": "travel", "priority": 3},
                {"keyword": "office", "category": "office", "priority": 4},
                {"keyword": "ufficio", "category": "office", "priority": 4},
                {"keyword": "restaurant", "category": "meals", "priority": 5},
                {"keyword": "meal", "category": "meals", "priority": 5},
                {"keyword": "software", "category": "software", "priority": 6},
                {"keyword": "subscription", "category": "software", "priority": 6},
                {"keyword": "consulting", "category": "professional_services", "priority": 7},
                {"keyword": "professional", "category": "professional_services", "priority": 7},
            ],
        },
        "output": {
            "excel": {
                "filename_template": "reconciliation_report_{date}_{time}.xlsx",
                "include_timestamp": True,
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "candidates": {"enabled": True, "name": "Candidates"},
                "manual_review": {"enabled": True, "name": "Manual Review"},
                "commit_results": {"enabled": True, "name": "Commit Results"},
                "skipped_records": {"enabled": True, "name": "Skipped Records"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "log_file": None,
        },
    }


def validate_score_threshold(name: str, value: int) -> int:
    """
    Check a single score threshold.

    Raises:
        ConfigurationError: If the value is not an integer within [0, 100]
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= 100:
        raise ConfigurationError(f"{name} must be within [0, 100], got {value}")
    return value


def validate_thresholds(
    min_score: int, auto_threshold: int, fuzzy_token_min_length: int = 3
) -> None:
    """
    Check threshold values before any run executes.

    Args:
        min_score: Floor below which a pair is never suggested
        auto_threshold: Floor for automatic acceptance
        fuzzy_token_min_length: Minimum word length for fuzzy comparisons

    Raises:
        ConfigurationError: If a threshold is outside [0, 100],
            min_score exceeds auto_threshold, or the token length is below 1
    """
    validate_score_threshold("min_score_threshold", min_score)
    validate_score_threshold("auto_reconcile_threshold", auto_threshold)

    if min_score > auto_threshold:
        raise ConfigurationError(
            f"min_score_threshold ({min_score}) cannot exceed "
            f"auto_reconcile_threshold ({auto_threshold})"
        )

    if fuzzy_token_min_length < 1:
        raise ConfigurationError(
            f"fuzzy_token_min_length must be at least 1, got {fuzzy_token_min_length}"
        )


def validate_config(config: ReconConfig) -> ReconConfig:
    """
    Validate a loaded configuration.

    Args:
        config: Configuration to check

    Returns:
        The same configuration, for chaining

    Raises:
        ConfigurationError: If the matching settings are inconsistent
    """
    matching = config.matching
    validate_thresholds(
        matching.min_score_threshold,
        matching.auto_reconcile_threshold,
        matching.fuzzy_token_min_length,
    )
    return config


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is malformed or the settings are invalid
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        config = ReconConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    return validate_config(config)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Expense Reconciliation Configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
