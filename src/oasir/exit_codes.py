"""Numeric process exit codes for the ``oasir`` command line.

Each constant maps to one failure category of the engine and is referenced by
the corresponding :class:`~oasir.exceptions.OasirError` subclass. CI scripts
can branch on the exit code without parsing stderr.

Example::

    $ oasir validate broken.yaml
    $ echo $?
    8   # EXIT_VALIDATION_VIOLATION -- the document failed a structural rule
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_DOCUMENT_PARSE_ERROR = 3
"""A document is not well-formed JSON or YAML."""

EXIT_VERSION_UNSUPPORTED = 4
"""The document declares no recognised ``openapi``/``swagger`` version."""

EXIT_REFERENCE_ERROR = 5
"""A reference could not be registered or resolved (collision, miss, cycle)."""

EXIT_PARAMETER_CONFLICT = 6
"""Parameters conflict (duplicates, style/location mismatch, querystring rules)."""

EXIT_SCHEMA_COMPOSITION = 7
"""A schema composition (``allOf``/``oneOf``/``anyOf``) is irregular."""

EXIT_VALIDATION_VIOLATION = 8
"""The document violates a structural rule of the OpenAPI specification."""
