#!/usr/bin/env python
import logging
from typing import Optional

from evdb import __version__

debug_dump_communication = False
try:
    import os

    ## Environmental variables prepended with "PYTHON_EVDB" are used for debug purposes,
    ## environmental variables prepended with "EVDB_" are for connection parameters
    debug_dump_communication = os.environ.get("PYTHON_EVDB_COMMDUMP", False)
    ## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
    debugmode = os.environ["PYTHON_EVDB_DEBUGMODE"]
except KeyError:
    if "dev" in __version__ or __version__ == "(unknown)":
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("evdb")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons):
    from evdb.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class EVDBError(Exception):
    url: Optional[str] = None
    code: Optional[str] = None
    message: str = "no reason"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        if message:
            self.message = message
        if code is not None:
            self.code = str(code)
        if url:
            self.url = url
        super().__init__(self.message)

    ## kept for symmetry with the reason attribute of HTTP responses
    @property
    def reason(self) -> str:
        return self.message

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.message,
        )


class ConfigError(EVDBError):
    """
    The client could not be set up, most likely because no app_key
    was given.
    """

    pass


class ArgumentError(EVDBError):
    """
    The arguments given to a call were of a shape the client does not
    know how to send.
    """

    pass


class TransportError(EVDBError):
    """
    The server answered with a HTTP status outside of the 2xx range.
    ``code`` holds the status code, ``message`` is "<status>: <reason>".
    """

    pass


class RemoteError(EVDBError):
    """
    The server delivered an error envelope, that is a document with a
    ``string`` field (machine readable code) and a ``description``.
    """

    description: str = ""

    def __init__(
        self,
        code: str,
        description: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        self.description = "" if description is None else str(description)
        super().__init__(
            message="%s: %s" % (code, self.description), code=code, url=url
        )


class AuthError(EVDBError):
    """
    The login handshake failed.  ``kind`` is "NoNonce" if the server
    never handed out a nonce, "Rejected" if the digest response was
    not accepted.
    """

    NO_NONCE = "NoNonce"
    REJECTED = "Rejected"

    kind: str = REJECTED

    def __init__(
        self,
        kind: str,
        message: Optional[str] = None,
        code: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        self.kind = kind
        super().__init__(message=message or kind, code=code or kind, url=url)
