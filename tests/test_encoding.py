import io

import pytest
from evdb.lib.arguments import ArgumentEntry
from evdb.lib.arguments import normalize_arguments
from evdb.lib.encoding import encode_body
from evdb.lib.encoding import encode_form
from evdb.lib.encoding import FORM_CONTENT_TYPE
from evdb.lib.encoding import MULTIPART_CONTENT_TYPE
from evdb.lib.encoding import url_encode


class TestUrlEncode:
    def test_unreserved_is_identity(self):
        s = "ABCxyz0189._-"
        assert url_encode(s) == s

    @pytest.mark.parametrize(
        "raw,encoded",
        [
            (" ", "%20"),
            ("&", "%26"),
            ("=", "%3D"),
            ("+", "%2B"),
            ("~", "%7E"),
            ("/", "%2F"),
            ("a b&c", "a%20b%26c"),
            ("ø", "%C3%B8"),
        ],
    )
    def test_escaping(self, raw, encoded):
        assert url_encode(raw) == encoded

    def test_non_strings(self):
        assert url_encode(None) == ""
        assert url_encode(10) == "10"
        assert url_encode(b"a b") == "a%20b"


class TestEncodeForm:
    def test_encode_form(self):
        entries, _ = normalize_arguments(
            [("keywords", "jazz & blues"), ("page_size", 10), ("empty", None)]
        )
        assert encode_form(entries) == "keywords=jazz%20%26%20blues&page_size=10&empty="

    def test_keys_are_encoded(self):
        assert encode_form([ArgumentEntry("a b", "c")]) == "a%20b=c"

    def test_form_body(self):
        entries, _ = normalize_arguments({"id": "E0-001", "title": "Bastille Day"})
        with encode_body(entries) as body:
            assert not body.is_multipart
            assert body.content_type == FORM_CONTENT_TYPE
            assert body.data == "id=E0-001&title=Bastille%20Day"
            assert body.files is None


class TestMultipart:
    def test_file_path_switches_to_multipart(self, tmp_path):
        photo = tmp_path / "sunset.jpg"
        photo.write_bytes(b"\xff\xd8\xff")
        entries, _ = normalize_arguments(
            [("title", "Sunset"), ("photo_file", str(photo)), ("app_key", "KEY")]
        )
        with encode_body(entries) as body:
            assert body.is_multipart
            assert body.content_type == MULTIPART_CONTENT_TYPE
            assert body.data is None
            assert [x[0] for x in body.files] == ["title", "photo_file", "app_key"]
            assert body.files[0] == ("title", (None, "Sunset"))
            assert body.files[2] == ("app_key", (None, "KEY"))
            filename, fileobj = body.files[1][1]
            assert filename == "sunset.jpg"
            assert fileobj.read() == b"\xff\xd8\xff"
        assert fileobj.closed

    def test_file_object(self):
        fileobj = io.BytesIO(b"GIF89a")
        entries, _ = normalize_arguments({"image_file": fileobj, "size": 3})
        with encode_body(entries) as body:
            assert body.files[0] == ("image_file", ("image_file", fileobj))
            assert body.files[1] == ("size", (None, "3"))
        ## not opened by us, hence not closed by us
        assert not fileobj.closed

    def test_requests_file_tuple(self):
        part = ("x.png", b"PNG", "image/png")
        entries, _ = normalize_arguments({"image_file": part})
        with encode_body(entries) as body:
            assert body.files == [("image_file", part)]

    def test_empty_file_field_is_not_an_upload(self):
        entries, _ = normalize_arguments({"image_file": "", "id": "1"})
        with encode_body(entries) as body:
            assert not body.is_multipart
            assert body.data == "image_file=&id=1"

    def test_missing_file(self, tmp_path):
        entries, _ = normalize_arguments({"photo_file": str(tmp_path / "nope.jpg")})
        with pytest.raises(FileNotFoundError):
            encode_body(entries)
