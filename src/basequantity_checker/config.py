"""Checker defaults.

Values here are module-level so the CLI and tests can override them per
invocation without a settings object.
"""

from pathlib import Path

PACKAGE_DIR = Path(__file__).parent
DEFAULT_CATALOG_PATH = PACKAGE_DIR / "data" / "base_quantities.json"

# Element population scope requested from the host
DEFAULT_SCOPE = "geometry"

# Host property datatypes
STRING_TYPE = "xs:string"
DOUBLE_TYPE = "xs:double"

# Host properties used to match elements against a category
IFC_TYPE_KEY = "ifcType"
IFC_TYPE_OBJECT_KEY = "ifcTypeObject"

# Separator for bulk id lists handed to selection sets
ID_SEPARATOR = ";"

# Application recorded in IfcOwnerHistory where the schema requires one
APPLICATION_NAME = "basequantity-checker"
APPLICATION_FULL_NAME = "Base Quantity Checker"
