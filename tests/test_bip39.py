"""
Tests for gigi_auth.bip39: the BIP-39 English wordlist codec.

Covers:
  - Wordlist integrity
  - Reference entropy -> phrase vectors
  - Phrase -> entropy with length / word / checksum validation
  - Error detail (position, word, allowed lengths)
  - Normalisation of case, whitespace and word sequences
"""

import unittest

from gigi_auth.bip39 import (
    ALLOWED_WORD_COUNTS,
    entropy_to_mnemonic,
    generate_entropy,
    generate_mnemonic,
    mnemonic_to_entropy,
    normalize_mnemonic,
    split_words,
    validate_mnemonic,
    wordlist,
)
from gigi_auth.errors import (
    InvalidChecksum,
    InvalidMnemonicLength,
    MnemonicError,
    UnknownWord,
)

VECTORS = [
    ("00" * 16, "abandon abandon abandon abandon abandon abandon abandon abandon "
                "abandon abandon abandon about"),
    ("7f" * 16, "legal winner thank year wave sausage worth useful legal winner "
                "thank yellow"),
    ("80" * 16, "letter advice cage absurd amount doctor acoustic avoid letter "
                "advice cage above"),
    ("ff" * 16, "zoo zoo zoo zoo zoo zoo zoo zoo zoo zoo zoo wrong"),
]


class TestWordlist(unittest.TestCase):

    def test_has_2048_unique_words(self):
        words = wordlist()
        self.assertEqual(len(words), 2048)
        self.assertEqual(len(set(words)), 2048)

    def test_first_and_last(self):
        words = wordlist()
        self.assertEqual(words[0], "abandon")
        self.assertEqual(words[-1], "zoo")

    def test_cached(self):
        self.assertIs(wordlist(), wordlist())


class TestEntropyToMnemonic(unittest.TestCase):

    def test_reference_vectors(self):
        for entropy_hex, phrase in VECTORS:
            with self.subTest(entropy=entropy_hex):
                self.assertEqual(entropy_to_mnemonic(bytes.fromhex(entropy_hex)), phrase)

    def test_24_word_vector(self):
        phrase = entropy_to_mnemonic(b"\x00" * 32)
        self.assertEqual(phrase, "abandon " * 23 + "art")

    def test_bad_entropy_length(self):
        with self.assertRaises(InvalidMnemonicLength):
            entropy_to_mnemonic(b"\x00" * 20)


class TestMnemonicToEntropy(unittest.TestCase):

    def test_reference_vectors(self):
        for entropy_hex, phrase in VECTORS:
            with self.subTest(entropy=entropy_hex):
                self.assertEqual(mnemonic_to_entropy(phrase).hex(), entropy_hex)

    def test_accepts_word_list(self):
        words = VECTORS[1][1].split()
        self.assertEqual(mnemonic_to_entropy(words), bytes.fromhex("7f" * 16))

    def test_wrong_length(self):
        with self.assertRaises(InvalidMnemonicLength) as ctx:
            mnemonic_to_entropy("abandon " * 11)
        self.assertEqual(ctx.exception.count, 11)
        self.assertEqual(ctx.exception.allowed, ALLOWED_WORD_COUNTS)

    def test_15_words_rejected(self):
        with self.assertRaises(InvalidMnemonicLength):
            mnemonic_to_entropy("abandon " * 14 + "about")

    def test_empty_phrase(self):
        with self.assertRaises(InvalidMnemonicLength) as ctx:
            mnemonic_to_entropy("")
        self.assertEqual(ctx.exception.count, 0)

    def test_unknown_word_reports_position(self):
        words = VECTORS[0][1].split()
        words[4] = "notaword"
        with self.assertRaises(UnknownWord) as ctx:
            mnemonic_to_entropy(words)
        self.assertEqual(ctx.exception.word, "notaword")
        self.assertEqual(ctx.exception.position, 4)
        self.assertIn("#5", str(ctx.exception))

    def test_length_checked_before_words(self):
        with self.assertRaises(InvalidMnemonicLength):
            mnemonic_to_entropy("foo bar baz")

    def test_checksum_mismatch(self):
        with self.assertRaises(InvalidChecksum):
            mnemonic_to_entropy("abandon " * 11 + "abandon")

    def test_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            mnemonic_to_entropy("abandon " * 12)
        self.assertTrue(issubclass(InvalidChecksum, MnemonicError))


class TestNormalisation(unittest.TestCase):

    def test_case_and_whitespace(self):
        messy = "  ABANDON abandon\tabandon abandon abandon abandon\n abandon abandon "\
                "abandon abandon abandon About "
        self.assertEqual(normalize_mnemonic(messy), VECTORS[0][1])
        self.assertEqual(mnemonic_to_entropy(messy), b"\x00" * 16)

    def test_split_sequence_of_phrases(self):
        self.assertEqual(split_words(["zoo zoo", "wrong"]), ["zoo", "zoo", "wrong"])


class TestGenerate(unittest.TestCase):

    def test_generate_12_words(self):
        phrase = generate_mnemonic(128)
        self.assertEqual(len(phrase.split()), 12)
        self.assertTrue(validate_mnemonic(phrase))

    def test_generate_24_words(self):
        phrase = generate_mnemonic(256)
        self.assertEqual(len(phrase.split()), 24)
        self.assertTrue(validate_mnemonic(phrase))

    def test_generated_phrases_differ(self):
        self.assertNotEqual(generate_mnemonic(), generate_mnemonic())

    def test_invalid_strength(self):
        with self.assertRaises(ValueError):
            generate_entropy(160)

    def test_validate_false_cases(self):
        self.assertFalse(validate_mnemonic("one two three"))
        self.assertFalse(validate_mnemonic("abandon " * 12))
        self.assertFalse(validate_mnemonic("abandon " * 11 + "xyzzy"))
