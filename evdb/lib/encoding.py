"""
Encoding of the normalized arguments into a HTTP POST body.

Requests without file fields are sent as
``application/x-www-form-urlencoded``, with every byte outside of
``[A-Za-z0-9._-]`` percent-encoded.  As soon as one file field is
present the whole request is sent as ``multipart/form-data``; the
multipart body itself is built by requests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import IO
from typing import Optional
from urllib.parse import quote

from evdb.lib.arguments import ArgumentEntry

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


def to_field_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def url_encode(value: Any) -> str:
    """
    Percent-encodes everything except ASCII letters, digits, ``.``,
    ``_`` and ``-``.  Space becomes ``%20``, never ``+``.

    >>> url_encode("a b&c")
    'a%20b%26c'
    """
    ## quote() considers ~ unreserved as well, the server doesn't
    return quote(to_field_str(value), safe="").replace("~", "%7E")


def encode_form(entries: list[ArgumentEntry]) -> str:
    return "&".join(
        "%s=%s" % (url_encode(entry.key), url_encode(entry.value)) for entry in entries
    )


@dataclass
class RequestBody:
    """
    The encoded body of a call.  For form encoded requests ``data``
    holds the body; for multipart requests ``files`` holds the list of
    parts in the shape requests expects.  Files opened by the encoder
    are closed by close(), hence this should be used as a context
    manager.
    """

    content_type: str
    data: Optional[str] = None
    files: Optional[list[tuple[str, tuple]]] = None
    _opened: list[IO[bytes]] = field(default_factory=list, repr=False)

    @property
    def is_multipart(self) -> bool:
        return self.files is not None

    def close(self) -> None:
        while self._opened:
            self._opened.pop().close()

    def __enter__(self) -> "RequestBody":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _file_part(entry: ArgumentEntry, body: RequestBody) -> tuple:
    value = entry.value
    if isinstance(value, tuple):
        return value
    if hasattr(value, "read"):
        filename = os.path.basename(getattr(value, "name", "") or "") or entry.key
        return (filename, value)
    fileobj = open(os.fspath(value), "rb")
    body._opened.append(fileobj)
    return (os.path.basename(os.fspath(value)), fileobj)


def encode_body(entries: list[ArgumentEntry]) -> RequestBody:
    """
    Chooses the encoding and encodes the entries.

    Entry order is preserved in both modes.  In multipart mode the
    plain fields are sent as parts without a filename, so the server
    sees them as ordinary form fields.
    """
    if not any(entry.is_file for entry in entries):
        return RequestBody(content_type=FORM_CONTENT_TYPE, data=encode_form(entries))

    body = RequestBody(content_type=MULTIPART_CONTENT_TYPE, files=[])
    try:
        for entry in entries:
            if entry.is_file:
                body.files.append((entry.key, _file_part(entry, body)))
            else:
                body.files.append((entry.key, (None, to_field_str(entry.value))))
    except Exception:
        body.close()
        raise
    return body
