"""Route/operation assembly.

:func:`~oasir.routes.assembler.assemble` is the entry point; the other
modules each cover one part of an operation:

* :mod:`~oasir.routes.path_items` -- path item ``$ref`` s and operation iteration.
* :mod:`~oasir.routes.naming` -- handler names.
* :mod:`~oasir.routes.servers` -- server lists and base paths.
* :mod:`~oasir.routes.security` -- security schemes and requirements.
* :mod:`~oasir.routes.callbacks` -- callback expansion.
* :mod:`~oasir.routes.links` -- response link targets.
* :mod:`~oasir.routes.metadata` -- document metadata.
"""

from oasir.models import AssembledDocument
from oasir.routes.assembler import RouteAssembler, assemble
from oasir.routes.metadata import build_metadata

__all__ = ["AssembledDocument", "RouteAssembler", "assemble", "build_metadata"]
