"""
Run outcome notification.
"""

from typing import Optional

from vaultkeep.config import EmailSettings


class NotifyError(Exception):
    """Raised when the run outcome cannot be reported."""
    pass


class StatusNotifier:
    """
    Reports the outcome of a backup run.

    Email delivery is not implemented yet; notify() always fails and the
    executor logs the failure without failing the run.
    """

    def __init__(self, email: Optional[EmailSettings] = None):
        self.email = email or EmailSettings()

    def notify(self, run_result):
        raise NotifyError("Sending status emails is not yet implemented")
