"""JSON Pointer and URI-reference helpers.

Everything that picks apart a ``$ref`` string lives here so that the
registry, the resolution context and the validators agree on one reading of
references:

* :func:`parse_reference` splits a reference into document and fragment.
* :func:`decode_segment` / :func:`encode_segment` implement the RFC 6901
  escapes (``~1`` for ``/``, ``~0`` for ``~``); decoding also undoes
  percent-encoding.
* :func:`get_pointer` walks a JSON Pointer through a parsed document.
* :func:`join_uri` resolves a relative reference against a base URI
  (RFC 3986), also for schemes the standard library does not know.
* :func:`compute_base_uri` implements the base-URI rule for registered
  documents.
* :func:`normalize_ref_to_local` rewrites a reference whose document part
  names the current document into a local ``#/...`` reference.
"""

from __future__ import annotations

import posixpath
import re
from typing import Any, NamedTuple, Optional
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit, uses_netloc, uses_relative

from oasir.models import DEFAULT_SYNTHETIC_BASE_URI

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

_MISSING = object()


class ParsedReference(NamedTuple):
    """A ``$ref`` split at its first ``#``.

    ``document`` is empty for same-document references; ``fragment`` is
    ``None`` when the reference has no ``#`` at all.
    """

    document: str
    fragment: Optional[str]

    @property
    def is_local(self) -> bool:
        return self.document == ""

    @property
    def is_pointer(self) -> bool:
        """True when the fragment is a JSON Pointer (``/...``) rather than an anchor."""
        return self.fragment is not None and self.fragment.startswith("/")

    @property
    def is_root(self) -> bool:
        """True when the reference targets a whole document (no, empty or ``/`` fragment)."""
        return self.fragment is None or self.fragment in ("", "/")


def parse_reference(ref: str) -> ParsedReference:
    """Split *ref* into its document and fragment parts.

    Example::

        >>> parse_reference("common.yaml#/components/schemas/Pet")
        ParsedReference(document='common.yaml', fragment='/components/schemas/Pet')
    """
    document, sep, fragment = ref.partition("#")
    return ParsedReference(document, fragment if sep else None)


def is_absolute_uri(value: str) -> bool:
    """Return True if *value* starts with a URI scheme (``https:``, ``urn:``, ``file:``)."""
    return bool(_SCHEME_RE.match(value))


# ------------------------------------------------------------------ #
# JSON Pointer
# ------------------------------------------------------------------ #


def decode_segment(segment: str) -> str:
    """Decode one JSON Pointer segment.

    Pointers inside URI fragments are percent-encoded, so octets are
    decoded first (RFC 6901 section 6). ``~1`` is then replaced before
    ``~0`` so that ``~01`` decodes to ``~1`` (section 4).
    """
    return unquote(segment).replace("~1", "/").replace("~0", "~")


def encode_segment(key: str) -> str:
    """Escape a mapping key for use as a JSON Pointer segment."""
    return key.replace("~", "~0").replace("/", "~1")


def split_pointer(fragment: str) -> list[str]:
    """Split a pointer fragment (``/a/b~1c``) into decoded segments.

    Both the empty fragment and ``/`` address the document root.
    """
    if fragment in ("", "/"):
        return []
    if not fragment.startswith("/"):
        raise ValueError(f"Not a JSON Pointer: {fragment!r}")
    return [decode_segment(part) for part in fragment[1:].split("/")]


def build_pointer(*keys: str) -> str:
    """Build a local reference (``#/a/b``) from raw mapping keys."""
    return "#/" + "/".join(encode_segment(key) for key in keys)


def get_pointer(document: Any, fragment: str, default: Any = None) -> Any:
    """Walk the JSON Pointer *fragment* through *document*.

    Args:
        document: A parsed JSON/YAML tree.
        fragment: Pointer text without the leading ``#``.
        default: Returned when any segment is missing.

    Returns:
        The addressed value, or *default*.
    """
    try:
        segments = split_pointer(fragment)
    except ValueError:
        return default

    current: Any = document
    for segment in segments:
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return default
        else:
            return default
        if current is _MISSING:
            return default
    return current


# ------------------------------------------------------------------ #
# URIs
# ------------------------------------------------------------------ #


def normalize_uri(uri: str) -> str:
    """Canonicalise an absolute URI for use as an index key.

    Adds the ``/`` path of a bare authority (``https://x`` becomes
    ``https://x/``) and drops an empty trailing fragment.
    """
    if uri.endswith("#"):
        uri = uri[:-1]
    parts = urlsplit(uri)
    if parts.scheme and parts.netloc and not parts.path:
        parts = parts._replace(path="/")
        return urlunsplit(parts)
    return uri


def join_uri(base: str, ref: str) -> str:
    """Resolve *ref* against *base* following RFC 3986 section 5.

    :func:`urllib.parse.urljoin` only resolves relative references for the
    schemes it knows to be hierarchical, so other schemes (``mem:``,
    ``urn:`` style custom registries) are joined under a stand-in ``http``
    scheme and restored afterwards.
    """
    if is_absolute_uri(ref):
        return normalize_uri(ref)

    scheme = urlsplit(base).scheme
    if not scheme or (scheme in uses_relative and scheme in uses_netloc):
        return normalize_uri(urljoin(base, ref))

    stand_in = "http" + base[len(scheme):]
    joined = urljoin(stand_in, ref)
    if not joined.startswith("http:"):
        return normalize_uri(joined)
    return normalize_uri(scheme + joined[len("http"):])


def resolve_document_uri(document: str, base: Optional[str]) -> Optional[str]:
    """Turn the document part of a reference into an absolute URI.

    Returns ``None`` for a relative document part when no base is known.
    """
    if is_absolute_uri(document):
        return normalize_uri(document)
    if base is None:
        return None
    return join_uri(base, document)


def compute_base_uri(
    retrieval_uri: Optional[str],
    self_uri: Optional[str],
    synthetic_base: str = DEFAULT_SYNTHETIC_BASE_URI,
) -> str:
    """Compute the base URI of a registered document.

    * Both known: the self-identifying URI resolved against the retrieval URI.
    * One known: that one.
    * Neither: the fixed *synthetic_base*.

    Whatever comes out is made absolute against *synthetic_base* so that
    relative pointers still resolve deterministically.
    """
    if retrieval_uri and self_uri:
        base = join_uri(_absolute(retrieval_uri, synthetic_base), self_uri)
    elif retrieval_uri:
        base = retrieval_uri
    elif self_uri:
        base = self_uri
    else:
        base = synthetic_base
    return _absolute(base, synthetic_base)


def _absolute(uri: str, synthetic_base: str) -> str:
    if is_absolute_uri(uri):
        return normalize_uri(uri)
    return join_uri(synthetic_base, uri)


def documents_match(ref_document: str, self_uri: str) -> bool:
    """Return True if the document part of a reference names the document *self_uri*.

    Absolute URIs compare on scheme, authority and path; an absolute-path
    ``$self`` (``/api/openapi``) compares against the reference's path;
    two relative references compare as normalised paths.
    """
    if ref_document == self_uri:
        return True

    if is_absolute_uri(ref_document) and is_absolute_uri(self_uri):
        left = urlsplit(normalize_uri(ref_document))
        right = urlsplit(normalize_uri(self_uri))
        return (left.scheme, left.netloc, left.path) == (right.scheme, right.netloc, right.path)

    if self_uri.startswith("/") and is_absolute_uri(ref_document):
        return urlsplit(ref_document).path == self_uri

    if not is_absolute_uri(self_uri) and not is_absolute_uri(ref_document):
        return posixpath.normpath(ref_document) == posixpath.normpath(self_uri)

    return False


def normalize_ref_to_local(ref: str, self_uri: Optional[str]) -> Optional[str]:
    """Rewrite *ref* as a same-document ``#...`` reference when possible.

    Local references are returned unchanged. A reference with a document
    part is rewritten only when that part names the current document (via
    :func:`documents_match` against *self_uri*) and it has a fragment.

    Returns:
        The local reference, or ``None`` if *ref* targets another document.
    """
    parsed = parse_reference(ref)
    if parsed.is_local:
        return ref if parsed.fragment is not None else "#"
    if parsed.fragment is None or self_uri is None:
        return None
    if documents_match(parsed.document, self_uri):
        return f"#{parsed.fragment}"
    return None


def extract_ref_name(ref: str) -> str:
    """Derive a model name from a reference.

    The last JSON Pointer segment when there is a fragment
    (``#/components/schemas/Pet`` gives ``Pet``), otherwise the file stem of
    the document part (``schemas/pet.yaml`` gives ``pet``), otherwise
    ``Unknown``.
    """
    parsed = parse_reference(ref)
    if parsed.fragment:
        name = parsed.fragment.rsplit("/", 1)[-1]
        if name:
            return decode_segment(name)

    if parsed.document:
        path = urlsplit(parsed.document).path or parsed.document
        stem = posixpath.splitext(posixpath.basename(path.rstrip("/")))[0]
        if stem:
            return stem

    return "Unknown"


def component_name(ref: str, section: str, self_uri: Optional[str] = None) -> Optional[str]:
    """Return ``name`` if *ref* points at ``#/components/<section>/<name>`` of this document."""
    local = normalize_ref_to_local(ref, self_uri)
    if local is None:
        return None
    fragment = local[1:]
    if not fragment.startswith("/"):
        return None
    segments = fragment[1:].split("/")
    if len(segments) < 3 or segments[0] != "components" or segments[1] != section:
        return None
    name = decode_segment(segments[2])
    return name or None
