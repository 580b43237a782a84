"""Interface-related validation checks."""

from typing import Sequence

from lib.exceptions import ValidationError
from lib.models import NetworkInterface
from lib.validation import InputValidator

from .base_validator import BaseValidator


class InterfaceCardinalityValidator(BaseValidator):
    """Source and target must have the same number of CIFS interfaces."""

    check_name = "Interface cardinality"

    def run(self, source: Sequence[NetworkInterface], target: Sequence[NetworkInterface]) -> None:
        if not source or not target:
            self.add_result(False, f"no interfaces to migrate (source={len(source)}, target={len(target)})")
        elif len(source) != len(target):
            self.add_result(
                False,
                f"{len(source)} source interface(s) ({', '.join(i.name for i in source)}) vs "
                f"{len(target)} target interface(s) ({', '.join(i.name for i in target)}); "
                "a 1:1 mapping is required",
            )
        else:
            self.add_result(True, f"{len(source)} source / {len(target)} target interface(s)")


class InterfaceAddressValidator(BaseValidator):
    """Every source interface must donate a valid address and netmask."""

    check_name = "Source interface addresses"

    def run(self, source: Sequence[NetworkInterface]) -> None:
        problems = []
        for interface in source:
            try:
                InputValidator.validate_ip_address(interface.address or "", f"address of {interface.name}")
                InputValidator.validate_netmask(interface.netmask or "")
            except ValidationError as e:
                problems.append(f"{interface.name}: {e}")

        if problems:
            self.add_result(False, "; ".join(problems))
        else:
            self.add_result(True, ", ".join(f"{i.name}={i.address}/{i.netmask}" for i in source))
