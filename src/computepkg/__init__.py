"""computepkg - Validator for Compute package archives.

computepkg streams a package ``.tar.gz`` once, confirms the entries a
deployable package needs are present and runs optional per-entry checks.
"""

__version__ = "0.1.0"
__author__ = "computepkg contributors"
__description__ = "Validate Compute package archives in a single streaming pass"

from computepkg.config import ComputePkgConfig
from computepkg.validation import PackageValidator, ValidationOutcome, validate_package

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "ComputePkgConfig",
    "PackageValidator",
    "ValidationOutcome",
    "validate_package",
]
