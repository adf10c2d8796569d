"""Schema model builder: structs, enums and type descriptors.

* :mod:`~oasir.schemas.types` -- :func:`schema_to_type`.
* :mod:`~oasir.schemas.structs` -- ``allOf`` flattening.
* :mod:`~oasir.schemas.enums` -- ``oneOf``/``anyOf`` variants and discriminators.
* :mod:`~oasir.schemas.builder` -- :func:`build_models`.
"""

from oasir.schemas.builder import build_model, build_models
from oasir.schemas.types import is_nullable, schema_to_type, schema_type_name

__all__ = [
    "build_model",
    "build_models",
    "is_nullable",
    "schema_to_type",
    "schema_type_name",
]
