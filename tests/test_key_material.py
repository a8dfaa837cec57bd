"""
Tests for gigi_auth.key_material: zero-on-exit secret buffers.
"""

import unittest

from gigi_auth.key_material import SecretBuffer, wipe


class TestWipe(unittest.TestCase):

    def test_zeroes_in_place(self):
        buf = bytearray(b"secret")
        wipe(buf)
        self.assertEqual(buf, bytearray(6))


class TestSecretBuffer(unittest.TestCase):

    def test_str_is_utf8_encoded(self):
        with SecretBuffer("héllo") as sb:
            self.assertEqual(bytes(sb.value), "héllo".encode("utf-8"))

    def test_wiped_on_exit(self):
        sb = SecretBuffer(b"key material")
        raw = sb.value
        with sb:
            pass
        self.assertTrue(sb.closed)
        self.assertEqual(raw, bytearray(len(raw)))

    def test_wiped_on_exception(self):
        sb = SecretBuffer(b"key material")
        raw = sb.value
        with self.assertRaises(RuntimeError):
            with sb:
                raise RuntimeError("boom")
        self.assertEqual(raw, bytearray(len(raw)))

    def test_value_after_close_raises(self):
        sb = SecretBuffer(b"x")
        sb.close()
        with self.assertRaises(ValueError):
            _ = sb.value

    def test_close_is_idempotent(self):
        sb = SecretBuffer(b"x")
        sb.close()
        sb.close()
        self.assertTrue(sb.closed)

    def test_adopt_does_not_copy(self):
        buf = bytearray(b"abc")
        with SecretBuffer.adopt(buf) as sb:
            self.assertIs(sb.value, buf)
        self.assertEqual(buf, bytearray(3))

    def test_view_and_len(self):
        with SecretBuffer(b"abcd") as sb:
            self.assertEqual(len(sb), 4)
            self.assertEqual(sb.view().tobytes(), b"abcd")

    def test_repr_hides_content(self):
        sb = SecretBuffer(b"topsecret")
        self.assertNotIn("topsecret", repr(sb))
        self.assertIn("9 bytes", repr(sb))
        sb.close()
        self.assertIn("wiped", repr(sb))
