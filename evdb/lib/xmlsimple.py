"""
Decoding of XML responses into plain python data.

The server responses are small documents, and callers are used to
getting them as nested dicts, lists and strings, the same way the
XML::Simple perl module presents them (with no key folding and with
empty elements decoded as the empty string):

* the root element is dropped, its content is returned
* an element with neither attributes nor child elements becomes its
  text, or "" if it has none
* any other element becomes a dict, with attributes and child elements
  merged into it.  Repeated names become lists, and text mixed with
  attributes or child elements is found under "content".

The ``force_array`` hint makes some elements lists even when there is
only one of them: True for every element, or a collection of element
names.
"""

from __future__ import annotations

from typing import Any
from typing import Collection
from typing import Union

from lxml import etree
from lxml.etree import _Element

ForceArray = Union[bool, Collection[str], None]

CONTENT_KEY = "content"


def _localname(name: str) -> str:
    return etree.QName(name).localname


def _forced(name: str, force_array: ForceArray) -> bool:
    if force_array is True:
        return True
    if not force_array:
        return False
    if isinstance(force_array, str):
        return name == force_array
    return name in force_array


def _add(data: dict, lists: set, name: str, value: Any, force: bool) -> None:
    ## lists holds the names already turned into lists, a decoded
    ## child may be a list of its own
    if name in data:
        if name not in lists:
            data[name] = [data[name]]
            lists.add(name)
        data[name].append(value)
    elif force:
        data[name] = [value]
        lists.add(name)
    else:
        data[name] = value


def _text(element: _Element) -> str:
    ## text of the element itself, not of its children
    chunks = [element.text or ""]
    for child in element:
        chunks.append(child.tail or "")
    return "".join(chunks)


def element_to_data(element: _Element, force_array: ForceArray = None) -> Any:
    children = [x for x in element if isinstance(x.tag, str)]
    text = _text(element)
    if not children and not element.attrib:
        return text

    data: dict = {}
    lists: set = set()
    for key, value in element.attrib.items():
        _add(data, lists, _localname(key), value, False)
    for child in children:
        name = _localname(child.tag)
        value = element_to_data(child, force_array)
        _add(data, lists, name, value, _forced(name, force_array))
    if text.strip():
        _add(data, lists, CONTENT_KEY, text, False)
    return data


def xml_to_data(
    body: Union[bytes, str], force_array: ForceArray = None, huge_tree: bool = False
) -> Any:
    """
    Parses the response body and decodes it.

    Raises:
        lxml.etree.XMLSyntaxError: body is not well-formed XML
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    tree = etree.XML(
        body,
        parser=etree.XMLParser(remove_blank_text=True, huge_tree=huge_tree),
    )
    return element_to_data(tree, force_array)
