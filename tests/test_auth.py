import hashlib

from evdb.lib.auth import password_digest
from evdb.lib.auth import response_digest


class TestDigest:
    def test_password_digest(self):
        assert password_digest("secret") == "5ebe2294ecd0e0f08eab7690d2a6ee69"
        assert password_digest("secret") == hashlib.md5(b"secret").hexdigest()

    def test_password_digest_non_ascii(self):
        assert (
            password_digest("bringebær")
            == hashlib.md5("bringebær".encode("utf-8")).hexdigest()
        )

    def test_response_digest(self):
        pw = hashlib.md5(b"secret").hexdigest()
        expected = hashlib.md5(f"abc123:{pw}".encode("utf-8")).hexdigest()
        assert response_digest("abc123", pw) == expected

    def test_lowercase_hex(self):
        digest = response_digest("abc123", password_digest("secret"))
        assert digest == digest.lower()
        assert len(digest) == 32
