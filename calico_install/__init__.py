"""
calico-install - validation and defaulting for Calico Installation resources.

This package provides a CLI tool and REST API that check an operator
Installation custom resource against its rules and fill in
provider-appropriate defaults before it is reconciled.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli"]
