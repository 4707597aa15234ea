"""Validation gates for identifier normalization quality control.

Enforces configurable success rate thresholds.
"""

import logging
from dataclasses import dataclass, field

from eupath_orgdb.gene_mapping.normalizer import NormalizationReport

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        passed: Whether validation passed
        messages: List of validation messages (warnings, errors)
        success_rate: Normalization success rate (0-1)
    """
    passed: bool
    messages: list[str] = field(default_factory=list)
    success_rate: float = 0.0


class MappingValidator:
    """Validator for identifier normalization results."""

    def __init__(
        self,
        min_success_rate: float = 0.50,
        warn_threshold: float = 0.90,
    ):
        """Initialize mapping validator.

        KEGG lists some entries with foreign formats (e.g. "md:lma_M00359"),
        so the defaults tolerate a fraction of unmapped identifiers.

        Args:
            min_success_rate: Minimum success rate to pass (default: 0.50)
            warn_threshold: Success rate below this triggers a warning (default: 0.90)
        """
        self.min_success_rate = min_success_rate
        self.warn_threshold = warn_threshold

    def validate(self, report: NormalizationReport, label: str = "identifiers") -> ValidationResult:
        """Validate a normalization report against the thresholds.

        An empty report passes: there was nothing to normalize.
        """
        messages: list[str] = []
        rate = report.success_rate

        if report.total == 0:
            messages.append(f"PASSED: no {label} to normalize")
            passed = True
        elif rate < self.min_success_rate:
            messages.append(
                f"FAILED: {label} normalization rate {rate:.1%} is below "
                f"minimum threshold {self.min_success_rate:.1%}"
            )
            messages.append(
                f"Unmapped: {len(report.unmapped_ids)} "
                f"(first 10: {report.unmapped_ids[:10]})"
            )
            passed = False
        elif rate < self.warn_threshold:
            messages.append(
                f"WARNING: {label} normalization rate {rate:.1%} is below "
                f"warning threshold {self.warn_threshold:.1%}"
            )
            messages.append(
                f"Consider reviewing {len(report.unmapped_ids)} unmapped {label}"
            )
            passed = True
        else:
            messages.append(
                f"PASSED: {label} normalization rate {rate:.1%} "
                f"({report.mapped}/{report.total})"
            )
            passed = True

        logger.info(
            f"Validation result for {label}: {'PASSED' if passed else 'FAILED'} ({rate:.1%})"
        )

        return ValidationResult(passed=passed, messages=messages, success_rate=rate)
