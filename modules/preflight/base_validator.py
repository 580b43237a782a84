"""Base class for pre-flight checks."""

from typing import Optional

from .reporter import CheckResult, ValidationReporter


class BaseValidator:
    """
    One named check reporting into a shared ValidationReporter.

    Subclasses set check_name and critical, and implement run() with
    whatever inputs they need.
    """

    check_name = ""
    critical = True

    def __init__(self, reporter: ValidationReporter) -> None:
        self.reporter = reporter

    def add_result(self, passed: bool, message: str, check: Optional[str] = None) -> CheckResult:
        return self.reporter.add_result(check or self.check_name, passed, message, self.critical)
