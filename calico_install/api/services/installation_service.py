"""
Installation service layer.
"""

import logging
from typing import Any, Dict

from calico_install.api.models import Installation, ValidationResult, ViolationModel
from calico_install.cli.lib.defaults import fill_defaults
from calico_install.cli.lib.manifest import to_manifest
from calico_install.cli.lib.validation import collect_violations

logger = logging.getLogger(__name__)


def default_installation(instance: Installation) -> Dict[str, Any]:
    """
    Fill in defaults for an Installation.

    Args:
        instance: Installation as submitted; not modified

    Returns:
        Defaulted Installation manifest dictionary

    Raises:
        DefaultingError: If defaults cannot be filled in
    """
    defaulted = fill_defaults(instance.model_copy(deep=True))
    return to_manifest(defaulted)


def validate_installation(instance: Installation, apply_defaults: bool = False) -> Dict[str, Any]:
    """
    Validate an Installation.

    Args:
        instance: Installation as submitted; not modified
        apply_defaults: Fill in defaults on a copy before validating

    Returns:
        Validation result dictionary with every violation found

    Raises:
        DefaultingError: If apply_defaults is set and defaults cannot be filled in
    """
    if apply_defaults:
        instance = fill_defaults(instance.model_copy(deep=True))

    violations = collect_violations(instance)
    if violations:
        logger.info("Installation %s rejected with %d violation(s)", instance.metadata.name, len(violations))

    result = ValidationResult(
        name=instance.metadata.name,
        valid=not violations,
        violations=[ViolationModel(**violation.to_dict()) for violation in violations],
    )
    return result.model_dump()
