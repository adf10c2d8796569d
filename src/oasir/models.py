"""Canonical Pydantic models shared across all oasir modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration** -- engine knobs resolved by :mod:`oasir.config`:
    :class:`CyclePolicy` and :class:`AssemblyConfig`.

**Document classification** -- produced by the loader:
    :class:`VersionFamily`, :class:`DocumentVersion` and :class:`DocumentKind`.

**Intermediate representation** -- produced by assembly and handed to
external collaborators (code emitters, documentation renderers):
    :class:`TypeDescriptor`, :class:`StructModel`, :class:`EnumModel`,
    :class:`RouteParam`, :class:`RequestBodyDescriptor`,
    :class:`ParsedRoute`, :class:`ParsedCallback`,
    :class:`SecurityRequirement`, :class:`DocumentMetadata` and
    :class:`AssembledDocument`.

Every IR model is frozen (``model_config = ConfigDict(frozen=True)``): once
assembly returns, nothing downstream may reassign its attributes.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class CyclePolicy(str, enum.Enum):
    """What to do when an ``allOf`` branch revisits a schema on the current path."""

    ERROR = "error"
    SKIP = "skip"


DEFAULT_RESERVED_HEADERS: tuple[str, ...] = ("accept", "content-type", "authorization")
"""Header parameter names dropped during parameter resolution (case-insensitive)."""

DEFAULT_SYNTHETIC_BASE_URI = "http://example.invalid/"
"""Base URI used when a document has neither a retrieval URI nor a self URI."""


class AssemblyConfig(BaseModel):
    """Engine configuration for registration, assembly and validation.

    Example::

        AssemblyConfig(allof_cycles="skip", strict_composition=True)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reserved_headers: tuple[str, ...] = Field(
        default=DEFAULT_RESERVED_HEADERS,
        description="Header parameter names silently dropped (case-insensitive)",
    )
    synthetic_base_uri: str = Field(
        default=DEFAULT_SYNTHETIC_BASE_URI,
        description="Fallback base URI for documents without retrieval or self URI",
    )
    validate_document: bool = Field(
        default=True,
        alias="validate",
        description="Run the structural validation suite before assembly",
    )
    allof_cycles: CyclePolicy = Field(
        default=CyclePolicy.ERROR,
        description="Policy for allOf branches already on the visitation path",
    )
    strict_composition: bool = Field(
        default=False,
        description="Raise on irregular allOf/oneOf/anyOf instead of logging a warning",
    )

    def is_reserved_header(self, name: str) -> bool:
        """Return True if *name* is one of :attr:`reserved_headers` (case-insensitive)."""
        lowered = name.lower()
        return any(lowered == header.lower() for header in self.reserved_headers)


# --- Document classification ---


class DocumentKind(str, enum.Enum):
    """Kind of a registered document."""

    API = "api"
    SCHEMA = "schema"


class VersionFamily(str, enum.Enum):
    """Supported API description versions."""

    SWAGGER_2 = "2.0"
    OPENAPI_30 = "3.0"
    OPENAPI_31 = "3.1"
    OPENAPI_32 = "3.2"


class DocumentVersion(BaseModel):
    """Declared version of an API document (``openapi`` or ``swagger`` field)."""

    model_config = ConfigDict(frozen=True)

    family: VersionFamily
    raw: str = Field(description="The version string exactly as declared")

    @property
    def is_v3(self) -> bool:
        """True for any OpenAPI 3.x document."""
        return self.family != VersionFamily.SWAGGER_2

    @property
    def is_swagger(self) -> bool:
        """True for a legacy Swagger 2.0 document."""
        return self.family == VersionFamily.SWAGGER_2


# --- Type descriptors ---


class TypeKind(str, enum.Enum):
    """Structural kind of a :class:`TypeDescriptor`."""

    PRIMITIVE = "primitive"
    ARRAY = "array"
    MAP = "map"
    REFERENCE = "reference"
    OPAQUE = "opaque"


class PrimitiveType(str, enum.Enum):
    """Primitive value kinds; the exact width/flavour lives in ``format``."""

    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    BINARY = "binary"


class TypeDescriptor(BaseModel):
    """Semantic type of a field, variant, parameter, header or body.

    Optionality is orthogonal to the kind: an optional 64-bit integer is a
    ``PRIMITIVE`` descriptor with ``format="int64"`` and ``optional=True``,
    never a separate kind.

    Example::

        TypeDescriptor.array_of(TypeDescriptor.reference("Pet")).as_optional()
    """

    model_config = ConfigDict(frozen=True)

    kind: TypeKind
    primitive: Optional[PrimitiveType] = None
    format: Optional[str] = Field(
        default=None, description="int32/int64, float/double, uuid, date, date-time"
    )
    items: Optional[TypeDescriptor] = Field(
        default=None, description="Element type of an array, value type of a map"
    )
    ref_name: Optional[str] = Field(
        default=None, description="Model name of a named reference"
    )
    optional: bool = False

    @classmethod
    def of_primitive(
        cls, primitive: PrimitiveType, format: Optional[str] = None
    ) -> TypeDescriptor:
        return cls(kind=TypeKind.PRIMITIVE, primitive=primitive, format=format)

    @classmethod
    def array_of(cls, inner: TypeDescriptor) -> TypeDescriptor:
        return cls(kind=TypeKind.ARRAY, items=inner)

    @classmethod
    def map_of(cls, inner: TypeDescriptor) -> TypeDescriptor:
        return cls(kind=TypeKind.MAP, items=inner)

    @classmethod
    def reference(cls, name: str) -> TypeDescriptor:
        return cls(kind=TypeKind.REFERENCE, ref_name=name)

    @classmethod
    def opaque(cls) -> TypeDescriptor:
        return cls(kind=TypeKind.OPAQUE)

    def as_optional(self, optional: bool = True) -> TypeDescriptor:
        """Return a copy with the optionality flag set to *optional*."""
        if self.optional == optional:
            return self
        return self.model_copy(update={"optional": optional})

    def render(self) -> str:
        """Render a short language-neutral label, e.g. ``array<int64>?``.

        Only meant for diagnostics and the ``inspect`` tables; emitters
        should read the structured fields instead.
        """
        if self.kind == TypeKind.PRIMITIVE:
            label = self.format or (self.primitive.value if self.primitive else "?")
        elif self.kind == TypeKind.ARRAY:
            label = f"array<{self.items.render() if self.items else 'opaque'}>"
        elif self.kind == TypeKind.MAP:
            label = f"map<{self.items.render() if self.items else 'opaque'}>"
        elif self.kind == TypeKind.REFERENCE:
            label = self.ref_name or "?"
        else:
            label = "opaque"
        return f"{label}?" if self.optional else label


# --- Data models ---


class ExternalDocs(BaseModel):
    """An ``externalDocs`` object."""

    model_config = ConfigDict(frozen=True)

    url: str
    description: Optional[str] = None


class StructField(BaseModel):
    """One member of a :class:`StructModel`."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeDescriptor
    rename: Optional[str] = Field(
        default=None, description="Wire name when it differs from ``name``"
    )
    description: Optional[str] = None
    skip: bool = False
    deprecated: bool = False


class EnumVariant(BaseModel):
    """One member of an :class:`EnumModel`."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeDescriptor
    rename: Optional[str] = Field(
        default=None, description="Discriminator value when it differs from ``name``"
    )
    aliases: list[str] = Field(
        default_factory=list, description="Additional discriminator values"
    )
    description: Optional[str] = None
    deprecated: bool = False


class StructModel(BaseModel):
    """A record-like model (``type: object`` or ``allOf``)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["struct"] = "struct"
    name: str
    description: Optional[str] = None
    fields: list[StructField] = Field(default_factory=list)
    deprecated: bool = False
    external_docs: Optional[ExternalDocs] = None
    deny_unknown_fields: bool = Field(
        default=False, description="Set by ``additionalProperties: false``"
    )

    def field(self, name: str) -> Optional[StructField]:
        """Return the field called *name*, or ``None``."""
        for item in self.fields:
            if item.name == name:
                return item
        return None


class EnumModel(BaseModel):
    """A variant-like model (``oneOf``/``anyOf``).

    An enum without a discriminator is *untagged*: consumers try the
    variants in declaration order and the first match wins. Overlapping
    variants stay ambiguous on purpose.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["enum"] = "enum"
    name: str
    description: Optional[str] = None
    tag: Optional[str] = Field(
        default=None, description="Discriminator property name"
    )
    untagged: bool = True
    variants: list[EnumVariant] = Field(default_factory=list)
    discriminator_mapping: dict[str, str] = Field(
        default_factory=dict, description="Discriminator value -> variant name"
    )
    default_variant: Optional[str] = None
    deprecated: bool = False
    external_docs: Optional[ExternalDocs] = None

    def variant(self, name: str) -> Optional[EnumVariant]:
        """Return the variant called *name*, or ``None``."""
        for item in self.variants:
            if item.name == name:
                return item
        return None


ParsedModel = Annotated[Union[StructModel, EnumModel], Field(discriminator="kind")]
"""One extracted schema model, either a struct or an enum."""


# --- Parameters and bodies ---


class ParameterLocation(str, enum.Enum):
    """Where a parameter is serialised (``in`` field)."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    QUERYSTRING = "querystring"


class ParameterStyle(str, enum.Enum):
    """OAS 3.x serialisation styles, valued by their wire names."""

    MATRIX = "matrix"
    LABEL = "label"
    SIMPLE = "simple"
    FORM = "form"
    SPACE_DELIMITED = "spaceDelimited"
    PIPE_DELIMITED = "pipeDelimited"
    DEEP_OBJECT = "deepObject"
    COOKIE = "cookie"


class BodyFormat(str, enum.Enum):
    """How a request body is encoded on the wire."""

    JSON = "json"
    FORM = "form"
    MULTIPART = "multipart"
    TEXT = "text"
    BINARY = "binary"


class RouteParam(BaseModel):
    """One resolved operation parameter.

    Path parameters are always ``required``. Querystring parameters carry
    exactly one content media type and no ``style``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation
    type: TypeDescriptor
    required: bool = False
    description: Optional[str] = None
    style: Optional[ParameterStyle] = None
    explode: bool = False
    allow_reserved: bool = False
    allow_empty_value: bool = False
    deprecated: bool = False
    example: Any = None
    content_media_type: Optional[str] = Field(
        default=None, description="Media type of a content-based parameter"
    )


class EncodingInfo(BaseModel):
    """Per-part encoding of a form or multipart body property."""

    model_config = ConfigDict(frozen=True)

    content_type: Optional[str] = None
    headers: dict[str, TypeDescriptor] = Field(default_factory=dict)
    style: Optional[ParameterStyle] = None
    explode: Optional[bool] = None
    allow_reserved: Optional[bool] = None


class RequestBodyDescriptor(BaseModel):
    """One resolved request body."""

    model_config = ConfigDict(frozen=True)

    type: TypeDescriptor
    media_type: str
    format: BodyFormat
    required: bool = False
    description: Optional[str] = None
    encoding: dict[str, EncodingInfo] = Field(default_factory=dict)
    example: Any = None


# --- Responses ---


class ResponseHeader(BaseModel):
    """A typed response header (``content-type`` is never listed)."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: TypeDescriptor
    description: Optional[str] = None
    required: bool = False
    deprecated: bool = False


class ResponseLink(BaseModel):
    """A response link, with its target resolved to a ``METHOD path`` key."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    operation_id: Optional[str] = None
    operation_ref: Optional[str] = None
    target: Optional[str] = Field(
        default=None, description="Resolved route key, e.g. ``GET /users/{id}``"
    )
    parameters: dict[str, Any] = Field(default_factory=dict)
    request_body: Any = None
    server_url: Optional[str] = None


# --- Security ---


class SecuritySchemeKind(str, enum.Enum):
    API_KEY = "apiKey"
    HTTP = "http"
    OAUTH2 = "oauth2"
    OPEN_ID_CONNECT = "openIdConnect"
    MUTUAL_TLS = "mutualTLS"
    BASIC = "basic"


class SecuritySchemeInfo(BaseModel):
    """A declared security scheme (``components/securitySchemes`` entry)."""

    model_config = ConfigDict(frozen=True)

    kind: SecuritySchemeKind
    description: Optional[str] = None
    name: Optional[str] = Field(default=None, description="apiKey parameter name")
    location: Optional[str] = Field(default=None, description="apiKey location")
    scheme: Optional[str] = Field(default=None, description="http auth scheme")
    bearer_format: Optional[str] = None
    flows: dict[str, Any] = Field(default_factory=dict)
    open_id_connect_url: Optional[str] = None


class SecurityRequirement(BaseModel):
    """One named scheme with its scopes.

    Requirements produced from the same requirement object share an
    ``alternative`` index: all of them apply together, while different
    indexes are alternatives.
    """

    model_config = ConfigDict(frozen=True)

    scheme_name: str
    scopes: list[str] = Field(default_factory=list)
    alternative: int = 0
    scheme: Optional[SecuritySchemeInfo] = None


# --- Routes ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods an OpenAPI path item can declare, in document order."""

    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"
    PATCH = "PATCH"
    TRACE = "TRACE"
    QUERY = "QUERY"


class RouteKind(str, enum.Enum):
    PATH = "path"
    WEBHOOK = "webhook"


class ServerVariable(BaseModel):
    model_config = ConfigDict(frozen=True)

    default: str
    enum: Optional[list[str]] = None
    description: Optional[str] = None


class ServerInfo(BaseModel):
    """A ``servers`` entry."""

    model_config = ConfigDict(frozen=True)

    url: str
    description: Optional[str] = None
    variables: dict[str, ServerVariable] = Field(default_factory=dict)


class ParsedCallback(BaseModel):
    """One callback operation: a (callback name, expression, method) triple."""

    model_config = ConfigDict(frozen=True)

    name: str
    expression: str
    method: str
    operation_id: Optional[str] = None
    params: list[RouteParam] = Field(default_factory=list)
    request_body: Optional[RequestBodyDescriptor] = None
    response_type: Optional[TypeDescriptor] = None
    response_headers: list[ResponseHeader] = Field(default_factory=list)
    callbacks: list[ParsedCallback] = Field(
        default_factory=list, description="Callbacks declared by the callback operation itself"
    )

    @property
    def key(self) -> str:
        """Link target key, e.g. ``POST {$request.body#/callbackUrl}``."""
        return f"{self.method} {self.expression}"


class ParsedRoute(BaseModel):
    """One operation of a path or webhook.

    ``method`` is always uppercase and ``handler_name`` is derived exactly
    once, from the ``operationId`` when present, else from method and path.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: str
    handler_name: str
    kind: RouteKind = RouteKind.PATH
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    base_path: Optional[str] = None
    servers: list[ServerInfo] = Field(default_factory=list)
    params: list[RouteParam] = Field(default_factory=list)
    request_body: Optional[RequestBodyDescriptor] = None
    security: list[SecurityRequirement] = Field(default_factory=list)
    response_status: Optional[str] = None
    response_type: Optional[TypeDescriptor] = None
    response_media_type: Optional[str] = None
    response_headers: list[ResponseHeader] = Field(default_factory=list)
    response_links: list[ResponseLink] = Field(default_factory=list)
    callbacks: list[ParsedCallback] = Field(default_factory=list)
    deprecated: bool = False
    external_docs: Optional[ExternalDocs] = None

    @property
    def key(self) -> str:
        """Route key used by link targets, e.g. ``GET /users/{id}``."""
        return f"{self.method} {self.path}"

    def param(self, name: str, location: Optional[ParameterLocation] = None) -> Optional[RouteParam]:
        """Return the parameter called *name* (optionally at *location*), or ``None``."""
        for item in self.params:
            if item.name == name and (location is None or item.location == location):
                return item
        return None


# --- Document metadata ---


class ContactInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None


class LicenseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    identifier: Optional[str] = None
    url: Optional[str] = None


class ApiInfo(BaseModel):
    """The ``info`` object."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    summary: Optional[str] = None
    description: Optional[str] = None
    terms_of_service: Optional[str] = None
    contact: Optional[ContactInfo] = None
    license: Optional[LicenseInfo] = None


class TagInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parent: Optional[str] = None
    kind: Optional[str] = None
    external_docs: Optional[ExternalDocs] = None


class DocumentMetadata(BaseModel):
    """Document-level data handed to external collaborators next to routes and models.

    ``components`` is the raw ``components`` tree (``definitions`` and
    friends for Swagger 2.0) passed through untouched for re-serialisation.
    """

    model_config = ConfigDict(frozen=True)

    version: DocumentVersion
    info: ApiInfo
    servers: list[ServerInfo] = Field(default_factory=list)
    tags: list[TagInfo] = Field(default_factory=list)
    external_docs: Optional[ExternalDocs] = None
    json_schema_dialect: Optional[str] = None
    self_uri: Optional[str] = None
    base_path: Optional[str] = None
    security: list[SecurityRequirement] = Field(default_factory=list)
    security_schemes: dict[str, SecuritySchemeInfo] = Field(default_factory=dict)
    components: dict[str, Any] = Field(default_factory=dict)


class AssembledDocument(BaseModel):
    """The full handoff artifact of one assembly."""

    model_config = ConfigDict(frozen=True)

    routes: list[ParsedRoute] = Field(default_factory=list)
    models: list[ParsedModel] = Field(default_factory=list)
    metadata: DocumentMetadata

    def route(self, method: str, path: str) -> Optional[ParsedRoute]:
        """Return the path route for *method* and *path*, or ``None``."""
        for item in self.routes:
            if item.method == method.upper() and item.path == path:
                return item
        return None

    def model(self, name: str) -> Optional[StructModel | EnumModel]:
        """Return the model called *name*, or ``None``."""
        for item in self.models:
            if item.name == name:
                return item
        return None
