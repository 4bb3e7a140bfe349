"""Custom exceptions for calico-install."""

from typing import Any, List, Sequence


class CalicoInstallError(Exception):
    """Base exception for calico-install errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InstallationValidationError(CalicoInstallError, ValueError):
    """The Installation violates one or more rules.

    `violations` holds every violation found, in rule order.
    """

    def __init__(self, violations: Sequence[Any]):
        self.violations: List[Any] = list(violations)
        if not self.violations:
            message = "Installation is invalid"
        else:
            first = self.violations[0]
            message = f"{first.field}: {first.detail}"
            if len(self.violations) > 1:
                message += f" (and {len(self.violations) - 1} more)"
        super().__init__(message)


class DefaultingError(CalicoInstallError, ValueError):
    """Defaults cannot be filled in for the Installation."""

    pass


class ManifestError(CalicoInstallError, ValueError):
    """Manifest could not be read or parsed."""

    pass
