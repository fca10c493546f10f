from unittest import TestCase

from evdb.lib.python_utilities import to_normal_str
from evdb.lib.python_utilities import to_wire


class TestUtils(TestCase):
    def test_to_wire(self):
        # fmt: off
        self.assertEqual(to_wire('blatti'), b'blatti')
        self.assertEqual(to_wire(b'blatti'), b'blatti')
        self.assertEqual(to_wire('bringebærsyltetøy'), 'bringebærsyltetøy'.encode('utf-8'))
        self.assertEqual(to_wire(''), b'')
        self.assertEqual(to_wire(b''), b'')
        self.assertEqual(to_wire(None), None)
        # fmt: on

    def test_to_normal_str(self):
        # fmt: off
        self.assertEqual(to_normal_str(b'blatti'), 'blatti')
        self.assertEqual(to_normal_str('blatti'), 'blatti')
        self.assertEqual(to_normal_str(b'<a>\r\n</a>'), '<a>\n</a>')
        self.assertEqual(to_normal_str(None), None)
        # fmt: on
