"""
devshell - Development shell environment resolver

Resolves platform-conditioned dependency sets and shell environment variables
from a static development-shell declaration.
"""

__version__ = "0.1.0"
__author__ = "oha"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
