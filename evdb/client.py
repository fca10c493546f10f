#!/usr/bin/env python
import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import urlparse

import requests
from requests.structures import CaseInsensitiveDict

from evdb import __version__
from evdb.lib import error
from evdb.lib.arguments import add_defaults
from evdb.lib.arguments import normalize_arguments
from evdb.lib.auth import password_digest
from evdb.lib.auth import response_digest
from evdb.lib.encoding import encode_body
from evdb.lib.encoding import RequestBody
from evdb.lib.error import ArgumentError
from evdb.lib.error import AuthError
from evdb.lib.error import ConfigError
from evdb.lib.error import EVDBError
from evdb.lib.error import log
from evdb.lib.error import TransportError
from evdb.lib.python_utilities import to_normal_str
from evdb.lib.python_utilities import to_wire
from evdb.lib.xmlsimple import ForceArray
from evdb.response import APIResponse
from evdb.response import CallResult

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

"""
The ``EVDBClient`` class handles the communication with the EVDB
(Events & Venues Database) API server.  Any remote method can be
invoked through ``EVDBClient.call``; ``EVDBClient.login`` performs the
digest based login, after which every call is done on behalf of the
logged in user.
"""

DEFAULT_API_ROOT = "http://api.evdb.com"

LOGIN_METHOD = "users/login"


@dataclass(frozen=True)
class ClientConfig:
    """
    The settings of a client.  Set up once by the EVDBClient
    constructor and never changed afterwards.

    timeout, proxy, ssl_verify_cert and ssl_cert are passed on to
    requests as they are.  headers is kept as a tuple of
    (name, value) pairs.
    """

    app_key: str
    api_root: str = DEFAULT_API_ROOT
    debug: bool = False
    verbose: bool = False
    timeout: Optional[float] = None
    proxy: Optional[str] = None
    ssl_verify_cert: Union[bool, str] = True
    ssl_cert: Union[str, Tuple[str, str], None] = None
    headers: Tuple[Tuple[str, str], ...] = ()
    huge_tree: bool = False


class ClientLogAdapter(logging.LoggerAdapter):
    """
    Lets the debug and verbose messages of one client through, no
    matter what level the evdb logger is set to.  Other clients are
    not affected.
    """

    def __init__(self, logger: logging.Logger, threshold: int) -> None:
        super().__init__(logger, {})
        self.threshold = threshold

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.threshold or self.logger.isEnabledFor(level)

    def log(self, level, msg, *args, **kwargs) -> None:
        if not self.isEnabledFor(level):
            return
        record = self.logger.makeRecord(
            self.logger.name, level, "(unknown file)", 0, msg, args, None
        )
        self.logger.handle(record)


@dataclass
class SessionState:
    """
    Who the client is talking on behalf of.  user_key is the session
    credential, it is only ever set from a value delivered by the
    server on login.
    """

    user: Optional[str] = None
    user_key: str = ""


class LoginState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    NONCE_REQUESTED = "nonce_requested"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class EVDBClient:
    """
    Basic client for the EVDB API, uses the requests lib.

    Typical usage::

        client = EVDBClient(app_key=app_key)
        if not client.login("harry", password="H0gwart$"):
            raise client.last_error
        event = client.call("events/get", {"id": "E0-001-000218163-6"})
        if not event:
            print(client.errstr)
        else:
            print(event["title"])

    Failures reported by the server (non-2xx statuses and error
    envelopes) are not raised, they are returned as a false CallResult
    and kept in ``last_error``.  Connection problems and responses
    that aren't XML at all are raised.

    A client holds session state and caches the last response, it
    should not be shared between threads.
    """

    config: ClientConfig = None
    proxy: Optional[str] = None

    def __init__(
        self,
        app_key: Optional[str] = None,
        api_root: Optional[str] = None,
        debug: bool = False,
        verbose: bool = False,
        timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        ssl_verify_cert: Union[bool, str] = True,
        ssl_cert: Union[str, Tuple[str, str], None] = None,
        headers: Mapping[str, str] = None,
        huge_tree: bool = False,
        allow_empty_app_key: bool = False,
        app_token: Optional[str] = None,
    ) -> None:
        """
        Sets up a requests session towards the API server.

        Args:
          app_key: The application key as provided by EVDB.  app_token is accepted as an alias.
          api_root: Base url of the API server, defaults to http://api.evdb.com
          debug: log request bodies, and the raw XML of error responses
          verbose: log every method url called
          timeout, ssl_verify_cert and ssl_cert are passed to requests.request.
          proxy: A string defining a proxy server: `scheme://hostname:port`. Scheme defaults to the scheme of api_root, port defaults to 8080.
          headers: extra HTTP headers sent with every request
          huge_tree: boolean, enable XMLParser huge_tree to handle big responses, beware of security issues, see : https://lxml.de/api/lxml.etree.XMLParser-class.html
          allow_empty_app_key: don't complain if no app_key is given.  Some deployments rely on this.

        Raises:
          ConfigError: no app_key given
        """
        app_key = app_key or app_token
        if not app_key:
            if not allow_empty_app_key:
                raise ConfigError("an app_key is needed to talk to the EVDB API")
            app_key = ""

        api_root = (api_root or DEFAULT_API_ROOT).rstrip("/")
        log.debug("api_root: " + api_root)

        self.config = ClientConfig(
            app_key=app_key,
            api_root=api_root,
            debug=bool(debug),
            verbose=bool(verbose),
            timeout=timeout,
            proxy=proxy,
            ssl_verify_cert=ssl_verify_cert,
            ssl_cert=ssl_cert,
            headers=tuple((headers or {}).items()),
            huge_tree=huge_tree,
        )

        self.session = requests.Session()

        # Prepare proxy info
        if proxy is not None:
            _proxy = proxy
            # requests library expects the proxy url to have a scheme
            if "://" not in proxy:
                _proxy = urlparse(api_root).scheme + "://" + proxy

            # add a port is one is not specified
            p = _proxy.split(":")
            if len(p) == 2:
                _proxy += ":8080"
            log.debug("init - proxy: %s" % (_proxy))

            self.proxy = _proxy

        # Build global headers
        self.headers = CaseInsensitiveDict(
            {
                "User-Agent": "python-evdb/" + __version__,
                "Accept": "text/xml, application/xml",
            }
        )
        self.headers.update(self.config.headers)

        ## debug and verbose only concern this client
        if debug:
            threshold = logging.DEBUG
        elif verbose:
            threshold = logging.INFO
        else:
            threshold = logging.CRITICAL + 1
        self.log = ClientLogAdapter(log, threshold)

        self.state = SessionState()
        self.login_state = LoginState.UNAUTHENTICATED
        self.last_error: Optional[EVDBError] = None
        self.last_response: Optional[APIResponse] = None
        self.response_xml: Optional[str] = None
        self.response_data: Any = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[BaseException] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """
        Closes the EVDBClient's session object
        """
        self.session.close()

    @property
    def user(self) -> Optional[str]:
        return self.state.user

    @property
    def user_key(self) -> str:
        return self.state.user_key

    @property
    def errcode(self) -> Optional[str]:
        """The code of the last error, or None"""
        return self.last_error.code if self.last_error else None

    @property
    def errstr(self) -> Optional[str]:
        """The message of the last error, or None"""
        return self.last_error.message if self.last_error else None

    def method_url(self, method: str) -> str:
        return "%s/rest/%s" % (self.config.api_root, method.lstrip("/"))

    def default_arguments(self):
        """
        The fields sent with every call, unless given explicitly
        """
        return [
            ("app_key", self.config.app_key),
            ("user", self.state.user),
            ("user_key", self.state.user_key),
        ]

    def login(
        self,
        user: str,
        password: Optional[str] = None,
        password_md5: Optional[str] = None,
    ) -> bool:
        """
        Logs in to the API server, after which all calls are done on
        behalf of the user.

        The login is a challenge/response handshake.  A first call to
        users/login fails, but the error delivered carries a nonce.  A
        second call sends back the nonce and
        ``md5(nonce + ":" + md5(password))``, and gets a user_key in
        return.

        Args:
          user: the user name
          password: the password in clear text
          password_md5: the hex md5 digest of the password, may be given instead of password

        Returns:
          True if logged in.  On failure, False is returned and the
          reason is found in ``last_error``.
        """
        if password is None and password_md5 is None:
            raise ArgumentError("login needs either password or password_md5")

        self.login_state = LoginState.UNAUTHENTICATED
        url = self.method_url(LOGIN_METHOD)
        ## the stored session is left alone until the login succeeds,
        ## and the challenge is requested without the old user_key
        defaults = [("app_key", self.config.app_key), ("user", user)]

        try:
            ## the nonce comes in an error envelope
            challenge = self._call(LOGIN_METHOD, None, None, defaults)
            nonce = challenge.get("nonce")
            if not nonce:
                self.login_state = LoginState.FAILED
                if not isinstance(challenge.error, TransportError):
                    self.last_error = AuthError(
                        AuthError.NO_NONCE,
                        message="the server did not hand out a nonce",
                        url=url,
                    )
                return False
            self.login_state = LoginState.NONCE_REQUESTED

            if password_md5 is None:
                password_md5 = password_digest(password)
            params = [
                ("nonce", nonce),
                ("response", response_digest(nonce, password_md5)),
            ]
            r = self._call(LOGIN_METHOD, params, None, defaults)
        except Exception:
            self.login_state = LoginState.FAILED
            raise

        if not r:
            self.login_state = LoginState.FAILED
            self.last_error = AuthError(
                AuthError.REJECTED,
                message=r.error.message,
                code=r.error.code,
                url=url,
            )
            return False

        user_key = r.get("user_key") or r.get("auth_token")
        if not user_key:
            self.login_state = LoginState.FAILED
            self.last_error = AuthError(
                AuthError.REJECTED,
                message="the server accepted the login, but delivered no user_key",
                url=url,
            )
            return False

        self.state.user = user
        self.state.user_key = user_key
        self.login_state = LoginState.AUTHENTICATED
        return True

    def call(
        self, method: str, args: Any = None, force_array: ForceArray = None
    ) -> CallResult:
        """
        Calls a method on the API server.

        Args:
          method: the method path, like ``events/get``
          args: the arguments, as a mapping or as a sequence of key/value pairs.
            Fields with names ending in ``_file`` are uploaded as files; give a path or an open file.
          force_array: names of XML elements that should always be decoded as lists, or True for all of them

        app_key, user and user_key are added to the arguments unless
        given explicitly.

        Returns:
          A CallResult, false if the call failed

        Raises:
          ArgumentError: args is neither a mapping nor a sequence of pairs
        """
        return self._call(method, args, force_array, self.default_arguments())

    def _call(
        self, method: str, args: Any, force_array: ForceArray, defaults
    ) -> CallResult:
        url = self.method_url(method)
        self.log.info("Calling (%s)..." % url)

        entries, present = normalize_arguments(args)
        entries = add_defaults(entries, present, defaults)

        self.last_response = None
        self.response_xml = None
        self.response_data = None

        with encode_body(entries) as body:
            if body.is_multipart:
                self.log.debug(
                    "POST (multipart): (%s)" % ", ".join(x[0] for x in body.files)
                )
            else:
                self.log.debug("POST: (%s)" % body.data)
            response = self.request(url, body, force_array)

        self.last_response = response
        self.response_xml = response.raw
        self.response_data = response.data

        if response.error is not None:
            self.last_error = response.error
            if response.data is not None:
                self.log.debug("\n%s\n" % response.raw)
            return CallResult(response.data, response.error)
        return CallResult(response.data)

    def request(
        self, url: str, body: RequestBody, force_array: ForceArray = None
    ) -> APIResponse:
        """
        Actually sends the request
        """
        combined_headers = self.headers.copy()
        if not body.is_multipart:
            ## requests sets the multipart content type with the boundary itself
            combined_headers["Content-Type"] = body.content_type

        proxies = None
        if self.proxy is not None:
            proxies = {urlparse(url).scheme: self.proxy}
            log.debug("using proxy - %s" % (proxies))

        log.debug(
            "sending request - url={0}, headers={1}\nbody:\n{2}".format(
                url, combined_headers, to_normal_str(body.data)
            )
        )

        r = self.session.request(
            "POST",
            url,
            data=to_wire(body.data),
            files=body.files,
            headers=combined_headers,
            proxies=proxies,
            timeout=self.config.timeout,
            verify=self.config.ssl_verify_cert,
            cert=self.config.ssl_cert,
        )
        log.debug("server responded with %i %s" % (r.status_code, r.reason))
        response = APIResponse(r, self, force_array, url)

        if error.debug_dump_communication:
            import datetime
            from tempfile import NamedTemporaryFile

            with NamedTemporaryFile(prefix="evdbcomm", delete=False) as commlog:
                commlog.write(b"=" * 80 + b"\n")
                commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
                commlog.write(b"\n====>\n")
                commlog.write(f"POST {url}\n".encode("utf-8"))
                commlog.write(
                    b"\n".join(
                        to_wire(f"{x}: {combined_headers[x]}") for x in combined_headers
                    )
                )
                commlog.write(b"\n\n")
                if body.is_multipart:
                    commlog.write(
                        to_wire("multipart: " + ", ".join(x[0] for x in body.files))
                    )
                else:
                    commlog.write(to_wire(body.data))
                commlog.write(b"<====\n")
                commlog.write(f"{response.status} {response.reason}".encode("utf-8"))
                commlog.write(
                    b"\n".join(
                        to_wire(f"{x}: {response.headers[x]}") for x in response.headers
                    )
                )
                commlog.write(b"\n\n")
                commlog.write(to_wire(response.raw))
                commlog.write(b"\n")

        return response
