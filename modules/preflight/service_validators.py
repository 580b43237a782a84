"""CIFS service checks on both SVMs."""

from lib.exceptions import OntapApiError, TransientError

from .base_validator import BaseValidator


class CifsServiceValidator(BaseValidator):
    """A CIFS server must exist on the SVM."""

    check_name = "CIFS service"

    def run(self, client, svm: str, side: str) -> None:
        check = f"{self.check_name} ({side})"
        try:
            service = client.get_cifs_service(svm)
        except (OntapApiError, TransientError) as exc:
            self.add_result(False, f"error reading CIFS service on {svm}: {exc}", check)
            return

        if service is None:
            self.add_result(False, f"no CIFS server configured on SVM {svm}", check)
            return

        state = "enabled" if service.enabled else "disabled"
        self.add_result(True, f"{service.name or svm} on {svm} ({state})", check)
