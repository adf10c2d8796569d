"""Parameter, request-body and response resolution for single operations."""

from oasir.operations.body import resolve_request_body, select_body_media, swagger_request_body
from oasir.operations.examples import resolve_example
from oasir.operations.params import (
    check_parameter_set,
    merge_parameters,
    resolve_explode,
    resolve_parameter,
    resolve_parameters,
    resolve_style,
)
from oasir.operations.responses import ResponseDetails, resolve_response, select_response

__all__ = [
    "ResponseDetails",
    "check_parameter_set",
    "merge_parameters",
    "resolve_example",
    "resolve_explode",
    "resolve_parameter",
    "resolve_parameters",
    "resolve_request_body",
    "resolve_response",
    "resolve_style",
    "select_body_media",
    "select_response",
    "swagger_request_body",
]
