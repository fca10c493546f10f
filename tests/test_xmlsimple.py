import lxml.etree
import pytest
from evdb.lib.xmlsimple import xml_to_data


class TestXMLToData:
    def test_simple_document(self):
        xml = b"""<?xml version="1.0" encoding="UTF-8"?>
<event id="E0-001-000218163-6">
  <title>Bastille Day Party</title>
  <venue_id>V0-001-000104270-1</venue_id>
  <description/>
</event>"""
        assert xml_to_data(xml) == {
            "id": "E0-001-000218163-6",
            "title": "Bastille Day Party",
            "venue_id": "V0-001-000104270-1",
            "description": "",
        }

    def test_error_envelope(self):
        xml = '<error string="E-1"><description>bad id</description></error>'
        assert xml_to_data(xml) == {"string": "E-1", "description": "bad id"}

    def test_repeated_elements_become_lists(self):
        xml = """<search><total_items>2</total_items><events>
            <event id="1"><title>a</title></event>
            <event id="2"><title>b</title></event>
        </events></search>"""
        data = xml_to_data(xml)
        assert data["total_items"] == "2"
        assert data["events"] == {
            "event": [{"id": "1", "title": "a"}, {"id": "2", "title": "b"}]
        }

    def test_force_array_names(self):
        xml = """<search><events><event id="1"><title>a</title></event></events></search>"""
        assert xml_to_data(xml)["events"]["event"] == {"id": "1", "title": "a"}
        data = xml_to_data(xml, force_array=["event"])
        assert data["events"]["event"] == [{"id": "1", "title": "a"}]
        assert isinstance(data["events"], dict)
        data = xml_to_data(xml, force_array="event")
        assert data["events"]["event"] == [{"id": "1", "title": "a"}]

    def test_force_array_all(self):
        xml = """<search><events><event id="1"><title>a</title></event></events></search>"""
        assert xml_to_data(xml, force_array=True) == {
            "events": [{"event": [{"id": "1", "title": ["a"]}]}]
        }

    def test_force_array_and_repeated(self):
        xml = "<r><a>1</a><a>2</a><a>3</a></r>"
        assert xml_to_data(xml) == {"a": ["1", "2", "3"]}
        assert xml_to_data(xml, force_array=["a"]) == {"a": ["1", "2", "3"]}

    def test_mixed_content(self):
        xml = '<r><link type="url">http://example.com</link></r>'
        assert xml_to_data(xml) == {
            "link": {"type": "url", "content": "http://example.com"}
        }

    def test_namespaces_and_comments(self):
        xml = """<r xmlns:x="urn:x"><!-- ignored --><x:name x:lang="en">Tom</x:name></r>"""
        assert xml_to_data(xml) == {"name": {"lang": "en", "content": "Tom"}}

    def test_text_root(self):
        assert xml_to_data("<user_key>K-1</user_key>") == "K-1"
        assert xml_to_data("<empty/>") == ""

    def test_attribute_and_child_with_same_name(self):
        xml = '<r id="1"><id>2</id></r>'
        assert xml_to_data(xml) == {"id": ["1", "2"]}

    def test_invalid_xml(self):
        with pytest.raises(lxml.etree.XMLSyntaxError):
            xml_to_data(b"this is not XML")
