"""
Normalizing of the arguments given to ``EVDBClient.call``.

Callers may hand over their arguments either as a mapping
(``{"id": "E0-001", "page_size": 10}``) or as an ordered sequence,
which can be a sequence of pairs (``[("id", "E0-001"), ...]``) or a
flat sequence alternating between keys and values
(``["id", "E0-001", "page_size", 10]``).  All of them end up as the
same list of ``ArgumentEntry`` objects, which is what the request
encoder works on.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any
from typing import Iterable
from typing import NamedTuple

from evdb.lib.error import ArgumentError

## Fields with a name ending like this are file uploads.  This is a
## convention of the server side method signatures (images/new takes
## an image_file, etc), not something we can detect from the value.
FILE_SUFFIX = "_file"


class ArgumentEntry(NamedTuple):
    key: str
    value: Any
    is_file: bool = False


def is_file_key(key: str) -> bool:
    return key.endswith(FILE_SUFFIX)


def _is_pair(item: Any) -> bool:
    return (
        isinstance(item, (tuple, list))
        and len(item) == 2
        and isinstance(item[0], str)
    )


def _pairs(args: Any) -> Iterable[tuple[str, Any]]:
    if args is None:
        return []
    if isinstance(args, Mapping):
        return list(args.items())
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise ArgumentError(
            "arguments should be a mapping or a sequence of key/value pairs, got %s"
            % type(args).__name__
        )
    if all(_is_pair(x) for x in args):
        return [(x[0], x[1]) for x in args]
    if len(args) % 2:
        raise ArgumentError(
            "a flat argument sequence needs an even number of elements, got %i"
            % len(args)
        )
    keys = args[0::2]
    if not all(isinstance(k, str) for k in keys):
        raise ArgumentError("argument names should be strings: %r" % (keys,))
    return list(zip(keys, args[1::2]))


def _is_file_value(value: Any) -> bool:
    """
    A value given for a file field is uploaded if it is a path or an
    open file.  A tuple is passed on as is, it's the
    (filename, fileobj[, content_type]) form requests understand.
    """
    if value is None or value == "":
        return False
    return isinstance(value, (str, os.PathLike, tuple)) or hasattr(value, "read")


def normalize_arguments(args: Any) -> tuple[list[ArgumentEntry], set[str]]:
    """
    Converts the caller-supplied arguments into a list of entries.

    Args:
        args: a mapping, a sequence of pairs, a flat sequence of
          alternating keys and values, or None.

    Returns:
        A tuple with the ordered list of ArgumentEntry objects and a
        set of the keys present, the latter is used for deciding
        whether a default value should be added.

    Raises:
        ArgumentError: args is of some other shape
    """
    entries = []
    present = set()
    for key, value in _pairs(args):
        if not isinstance(key, str):
            raise ArgumentError("argument names should be strings: %r" % (key,))
        entries.append(
            ArgumentEntry(key, value, is_file_key(key) and _is_file_value(value))
        )
        present.add(key)
    return entries, present


def add_defaults(
    entries: list[ArgumentEntry], present: set[str], defaults: Iterable[tuple[str, Any]]
) -> list[ArgumentEntry]:
    """
    Appends the default fields (app_key, user, user_key) to the entries.

    A default is only added if it has a value and if the caller did not
    give the same key explicitly.  Explicit values always win.
    """
    entries = list(entries)
    for key, value in defaults:
        if not value or key in present:
            continue
        entries.append(ArgumentEntry(key, value))
        present.add(key)
    return entries
