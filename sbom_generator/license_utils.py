"""License normalization for registry-provided license strings.

Registries return anything from clean SPDX expressions ("MIT OR Apache-2.0")
to free-form names ("Apache License, Version 2.0"). Only exact, known
aliases are translated; everything else is validated against the official
SPDX license list using the `license-expression` library and otherwise kept
verbatim for the document formats that allow free text.
"""

import re
from typing import Optional

from license_expression import ExpressionError, get_spdx_licensing

from .logging_config import logger

_spdx_licensing = get_spdx_licensing()

SPDX_SPECIAL_VALUES = {"NOASSERTION", "NONE"}

# Exact, case-insensitive translations only
LICENSE_EXACT_ALIASES = {
    "mit license": "MIT",
    "the mit license": "MIT",
    "apache license 2.0": "Apache-2.0",
    "apache license, version 2.0": "Apache-2.0",
    "apache license version 2.0": "Apache-2.0",
    "apache-2": "Apache-2.0",
    "apache 2.0": "Apache-2.0",
    "apache2": "Apache-2.0",
    "apache software license": "Apache-2.0",
    "the apache software license, version 2.0": "Apache-2.0",
    "the apache license, version 2.0": "Apache-2.0",
    "bsd 3-clause": "BSD-3-Clause",
    "3-clause bsd": "BSD-3-Clause",
    "new bsd license": "BSD-3-Clause",
    "bsd 2-clause": "BSD-2-Clause",
    "simplified bsd license": "BSD-2-Clause",
    "isc license": "ISC",
    "gplv2": "GPL-2.0-only",
    "gplv3": "GPL-3.0-only",
    "lgplv3": "LGPL-3.0-only",
    "mpl 2.0": "MPL-2.0",
    "mozilla public license 2.0": "MPL-2.0",
    "the unlicense": "Unlicense",
    "cc0 1.0": "CC0-1.0",
    "psf": "Python-2.0",
    "python software foundation license": "Python-2.0",
    "eclipse public license 1.0": "EPL-1.0",
    "eclipse public license 2.0": "EPL-2.0",
}

# Longer strings are license text, not identifiers
LICENSE_TEXT_LENGTH_THRESHOLD = 100

_LICENSE_REF = re.compile(r"^LicenseRef-[a-zA-Z0-9.\-]+$")


def validate_spdx_expression(license_str: str) -> bool:
    """
    Check a license string against the official SPDX license list.

    Args:
        license_str: License identifier or expression

    Returns:
        True if every license key in the expression is a known SPDX id
    """
    if not license_str:
        return False

    if license_str in SPDX_SPECIAL_VALUES:
        return True

    if license_str.startswith("LicenseRef-"):
        return bool(_LICENSE_REF.match(license_str))

    try:
        parsed = _spdx_licensing.parse(license_str, validate=False)
    except ExpressionError:
        return False
    if parsed is None:
        return False
    return len(_spdx_licensing.unknown_license_keys(parsed)) == 0


def to_spdx_expression(license_str: Optional[str]) -> Optional[str]:
    """
    Translate a registry license string into a valid SPDX expression.

    Args:
        license_str: Raw license string from a registry

    Returns:
        A canonical SPDX expression, or None when the string is not one
    """
    if not license_str:
        return None

    stripped = license_str.strip()
    if not stripped or len(stripped) > LICENSE_TEXT_LENGTH_THRESHOLD or stripped.count("\n") > 2:
        return None

    alias = LICENSE_EXACT_ALIASES.get(stripped.lower())
    if alias:
        return alias

    if stripped in SPDX_SPECIAL_VALUES or stripped.startswith("LicenseRef-"):
        return stripped if validate_spdx_expression(stripped) else None

    try:
        parsed = _spdx_licensing.parse(stripped, validate=False)
    except ExpressionError:
        logger.debug(f"Unparseable license string: '{stripped}'")
        return None

    if parsed is None or _spdx_licensing.unknown_license_keys(parsed):
        logger.debug(f"Unrecognized license string: '{stripped}'")
        return None

    return str(parsed)


def clean_license(license_str: Optional[str]) -> Optional[str]:
    """Return the SPDX form of a license if recognized, else the trimmed original."""
    if not license_str or not license_str.strip():
        return None
    return to_spdx_expression(license_str) or license_str.strip()
