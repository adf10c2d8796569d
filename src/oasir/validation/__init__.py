"""Structural validation of API documents.

:func:`validate_document` applies every rule and raises
:class:`~oasir.exceptions.ValidationViolation` with a dotted document path
on the first failure. The rules live in:

* :mod:`~oasir.validation.structure` -- info, tags, component keys, paths
  and callback expressions.
* :mod:`~oasir.validation.servers` -- Server Objects.
* :mod:`~oasir.validation.objects` -- responses, headers, media types and
  request bodies.
* :mod:`~oasir.validation.security` -- Security Scheme Objects.
"""

from oasir.validation.suite import DocumentValidator, validate_document

__all__ = ["DocumentValidator", "validate_document"]
