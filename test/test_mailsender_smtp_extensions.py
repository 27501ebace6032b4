import unittest

from mailsender.smtp.extensions import Extensions


class TestSmtpExtensions(unittest.TestCase):

    def setUp(self):
        self.ext = Extensions()
        self.ext.extensions = {'EMPTY': None, 'TEST': 'STUFF'}

    def test_contains(self):
        self.assertTrue('TEST' in self.ext)
        self.assertTrue('test' in self.ext)
        self.assertFalse('BAD' in self.ext)

    def test_reset(self):
        self.assertTrue('TEST' in self.ext)
        self.ext.reset()
        self.assertFalse('TEST' in self.ext)

    def test_add(self):
        self.ext.add('new')
        self.assertTrue('NEW' in self.ext)
        self.ext.add('size', '1024')
        self.assertEqual('1024', self.ext.getparam('SIZE'))

    def test_getparam(self):
        self.assertEqual(None, self.ext.getparam('BAD'))
        self.assertEqual(None, self.ext.getparam('EMPTY'))
        self.assertEqual('STUFF', self.ext.getparam('TEST'))

    def test_max_size(self):
        self.assertEqual(None, self.ext.max_size)
        self.ext.add('SIZE', '10240000')
        self.assertEqual(10240000, self.ext.max_size)
        self.ext.add('SIZE', '0')
        self.assertEqual(None, self.ext.max_size)
        self.ext.add('SIZE', 'lots')
        self.assertEqual(None, self.ext.max_size)
        self.ext.add('SIZE')
        self.assertEqual(None, self.ext.max_size)

    def test_parse_string(self):
        ext = Extensions()
        header = ext.parse_string("""\
the header
EXT1
PARSETEST DATA
size 10240000""")
        self.assertEqual('the header', header)
        self.assertTrue('EXT1' in ext)
        self.assertTrue('PARSETEST' in ext)
        self.assertEqual(None, ext.getparam('EXT1'))
        self.assertEqual('DATA', ext.getparam('PARSETEST'))
        self.assertEqual(10240000, ext.max_size)

    def test_parse_string_crlf(self):
        ext = Extensions()
        header = ext.parse_string('Hello\r\nPIPELINING\r\nSTARTTLS')
        self.assertEqual('Hello', header)
        self.assertTrue('PIPELINING' in ext)
        self.assertTrue('STARTTLS' in ext)

    def test_parse_string_header_only(self):
        ext = Extensions()
        self.assertEqual('Hello', ext.parse_string('Hello'))
        self.assertEqual({}, ext.extensions)


# vim:et:fdm=marker:sts=4:sw=4:ts=4
