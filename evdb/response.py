#!/usr/bin/env python
"""
The ``APIResponse`` class wraps the HTTP response from the server and
decodes the XML in it.  The ``CallResult`` class is what
``EVDBClient.call`` hands back to the caller: either the decoded data,
or the error that made the call fail.
"""
import logging
from typing import Any
from typing import Optional
from typing import TYPE_CHECKING

from requests.models import Response
from requests.structures import CaseInsensitiveDict

from evdb.lib.error import EVDBError
from evdb.lib.error import log
from evdb.lib.error import RemoteError
from evdb.lib.error import TransportError
from evdb.lib.error import weirdness
from evdb.lib.python_utilities import to_normal_str
from evdb.lib.xmlsimple import ForceArray
from evdb.lib.xmlsimple import xml_to_data

if TYPE_CHECKING:
    from evdb.client import EVDBClient

## The server signals errors by delivering a document like
## <error string="Not found"><description>...</description></error>,
## the HTTP status is not to be trusted.
ERROR_CODE_KEY = "string"
ERROR_DESCRIPTION_KEY = "description"


def find_error(data: Any, url: Optional[str] = None) -> Optional[RemoteError]:
    """
    Returns a RemoteError if the decoded data is an error envelope
    """
    if not isinstance(data, dict) or not data.get(ERROR_CODE_KEY):
        return None
    return RemoteError(
        code=data[ERROR_CODE_KEY],
        description=data.get(ERROR_DESCRIPTION_KEY),
        url=url,
    )


class APIResponse:
    """
    This class is a response from a call to the server.  It is
    instantiated from the EVDBClient class.  End users of the library
    should not need to know anything about this class.

    Non-2xx responses are not decoded.  For successful responses the
    body is parsed as XML into `self.data`, and `self.error` is set if
    the data turns out to be an error envelope.
    """

    reason: str = ""
    data: Any = None
    headers: CaseInsensitiveDict = None
    status: int = 0
    error: Optional[EVDBError] = None
    huge_tree: bool = False

    def __init__(
        self,
        response: Response,
        client: Optional["EVDBClient"] = None,
        force_array: ForceArray = None,
        url: Optional[str] = None,
    ) -> None:
        self.headers = CaseInsensitiveDict(response.headers)
        self.status = response.status_code
        self.url = url
        log.debug("response headers: " + str(self.headers))
        log.debug("response status: " + str(self.status))
        ## responses without a reason have been observed
        try:
            self.reason = response.reason or ""
        except AttributeError:
            self.reason = ""

        self._raw = response.content or b""
        if client:
            self.huge_tree = client.config.huge_tree

        if not self.is_success:
            self.error = TransportError(
                message="%s: %s" % (self.status, self.reason),
                code=str(self.status),
                url=url,
            )
            return

        content_type = self.headers.get("Content-Type", "")
        xml = ["text/xml", "application/xml"]
        expect_xml = any((content_type.startswith(x) for x in xml))
        if content_type and not expect_xml:
            weirdness(f"Unexpected content type: {content_type}")

        if not self._raw:
            log.debug("No content delivered")
            return

        ## A body that can't be decoded at all is not an expected
        ## failure, the XMLSyntaxError is passed on to the caller
        try:
            self.data = xml_to_data(self._raw, force_array, self.huge_tree)
        except Exception:
            log.critical(
                "Expected some valid XML from the server, but got this: \n"
                + str(self._raw),
                exc_info=log.level <= logging.DEBUG,
            )
            raise
        self.error = find_error(self.data, url)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    @property
    def raw(self) -> str:
        return to_normal_str(self._raw)


class CallResult:
    """
    The outcome of a call.  A CallResult is truthy if the call
    succeeded, and then gives access to the decoded data::

        event = client.call("events/get", {"id": event_id})
        if not event:
            print(event.error.message)
        else:
            print(event["title"])

    On failure, ``data`` may still hold the decoded error envelope.
    """

    def __init__(self, data: Any = None, error: Optional[EVDBError] = None) -> None:
        self.data = data
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def __getitem__(self, key):
        return self.data[key]

    def __contains__(self, key) -> bool:
        return isinstance(self.data, dict) and key in self.data

    def get(self, key, default=None):
        if not isinstance(self.data, dict):
            return default
        return self.data.get(key, default)

    def raise_for_error(self) -> Any:
        """
        Raises the error if the call failed, returns the data otherwise
        """
        if self.error is not None:
            raise self.error
        return self.data

    def __repr__(self) -> str:
        if self.ok:
            return "CallResult(data=%r)" % (self.data,)
        return "CallResult(error=%r)" % (self.error,)
