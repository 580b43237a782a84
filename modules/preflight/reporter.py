"""Result collection for pre-flight checks."""

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger("svm_cutover")


@dataclass(frozen=True)
class CheckResult:
    check: str
    passed: bool
    message: str
    critical: bool = True

    @property
    def blocking(self) -> bool:
        """A failed critical check stops the run before any change."""
        return self.critical and not self.passed


class ValidationReporter:
    """Collects check results and logs them as they arrive."""

    def __init__(self) -> None:
        self.results: List[CheckResult] = []

    def add_result(self, check: str, passed: bool, message: str, critical: bool = True) -> CheckResult:
        result = CheckResult(check=check, passed=passed, message=message, critical=critical)
        self.results.append(result)

        if passed:
            logger.info("✓ %s: %s", check, message)
        elif critical:
            logger.error("✗ %s: %s", check, message)
        else:
            logger.warning("⚠ %s: %s", check, message)
        return result

    def critical_failures(self) -> List[CheckResult]:
        return [r for r in self.results if r.blocking]

    def warnings(self) -> List[CheckResult]:
        """Failed checks that do not block the run."""
        return [r for r in self.results if not r.passed and not r.critical]

    def print_summary(self) -> None:
        passed = sum(1 for r in self.results if r.passed)
        failures = self.critical_failures()
        warnings = self.warnings()

        logger.info("\n" + "=" * 60)
        logger.info("Validation Summary: %s/%s checks passed, %s warning(s)", passed, len(self.results), len(warnings))

        if failures:
            logger.error("%s critical validation(s) failed; no changes will be made", len(failures))
            for result in failures:
                logger.error("  ✗ %s: %s", result.check, result.message)
        else:
            logger.info("All critical validations passed")
        for result in warnings:
            logger.warning("  ⚠ %s: %s", result.check, result.message)

        logger.info("=" * 60 + "\n")
