"""Exception hierarchy for oasir.

All exceptions inherit from :class:`OasirError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oasir.exit_codes`.
The engine itself never exits; the top-level handler in :func:`oasir.app.main`
catches ``OasirError`` and exits with the matching code.

Propagation is fail-fast: any of these aborts the current registration,
assembly or validation call and no partial result is returned.

Subclass hierarchy::

    OasirError                    (exit 1)
    +-- InvalidUsageError         (exit 2)
    +-- ConfigError               (exit 1)
    +-- DocumentParseError        (exit 3)
    +-- VersionUnsupportedError   (exit 4)
    +-- RegistryError             (exit 5)
    |   +-- ReferenceCollisionError
    |   +-- RegistryFrozenError
    +-- ReferenceError_           (exit 5)
    |   +-- ReferenceNotFoundError
    |   +-- ReferenceCycleError
    +-- ParameterConflictError    (exit 6)
    +-- SchemaCompositionError    (exit 7)
    +-- ValidationViolation       (exit 8)
"""

from __future__ import annotations

from oasir.exit_codes import (
    EXIT_DOCUMENT_PARSE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PARAMETER_CONFLICT,
    EXIT_REFERENCE_ERROR,
    EXIT_SCHEMA_COMPOSITION,
    EXIT_VALIDATION_VIOLATION,
    EXIT_VERSION_UNSUPPORTED,
)


class OasirError(Exception):
    """Base exception for all oasir errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oasir.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OasirError):
    """Raised for invalid CLI arguments (e.g. a malformed ``--register`` value)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(OasirError):
    """Raised for configuration problems (unreadable file, invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class DocumentParseError(OasirError):
    """Raised when a document is not well-formed JSON/YAML or not a mapping."""

    exit_code = EXIT_DOCUMENT_PARSE_ERROR


class VersionUnsupportedError(OasirError):
    """Raised when the ``openapi``/``swagger`` field is missing or unrecognised."""

    exit_code = EXIT_VERSION_UNSUPPORTED


class RegistryError(OasirError):
    """Base class for misuse of the document registry."""

    exit_code = EXIT_REFERENCE_ERROR


class ReferenceCollisionError(RegistryError):
    """Raised when a retrieval or base URI is already registered."""


class RegistryFrozenError(RegistryError):
    """Raised when a document is registered after the registry was frozen."""


class ReferenceError_(OasirError):
    """Base class for reference resolution failures.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ReferenceError``.

    Args:
        message: Human-readable error description.
        ref: The ``$ref`` string being resolved, when known.
    """

    exit_code = EXIT_REFERENCE_ERROR

    def __init__(self, message: str, ref: str | None = None):
        super().__init__(message)
        self.ref = ref


class ReferenceNotFoundError(ReferenceError_):
    """Raised when a reference the caller requires does not resolve."""


class ReferenceCycleError(ReferenceError_):
    """Raised when a chain of references revisits a node already on the chain."""


class ParameterConflictError(OasirError):
    """Raised for duplicate parameters, style/location/type mismatches and querystring rules."""

    exit_code = EXIT_PARAMETER_CONFLICT


class SchemaCompositionError(OasirError):
    """Raised for irregular ``allOf``/``oneOf``/``anyOf`` compositions in strict mode."""

    exit_code = EXIT_SCHEMA_COMPOSITION


class ValidationViolation(OasirError):
    """Raised when the document breaks a structural rule.

    The ``path`` attribute holds the dotted document location of the
    offending node (e.g. ``paths./items.get.responses.200``) and is also
    prefixed to the message.

    Args:
        path: Dotted document path of the violation.
        message: Description of the broken rule.
    """

    exit_code = EXIT_VALIDATION_VIOLATION

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.reason = message
