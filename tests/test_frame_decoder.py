"""
Unit tests for STARS frame decoding.

Covers the field-splitting rule, the text-accumulator FrameDecoder and the
byte-level LegacyFrameDecoder.
"""

import unittest

from pystars.core.frame_decoder import (
    FrameDecoder,
    LegacyFrameDecoder,
    encode_line,
    parse_line,
)
from pystars.models.message import StarsMessage


# Well-formed frames both decoders must agree on
CANONICAL_CORPUS = [
    "term1>System hello",
    "System>term1 Ok:",
    "term1>System GetValue",
    "dev1>term1 @GetValue 12.5",
    "dev1>term1 _ChangedValue 1 2 3 4",
    "A>B",
    "HELLO",
    "12345",
    "term1>Sys.dev1 SetValue text with several words",
]


class TestParseLine(unittest.TestCase):
    """Test the field-splitting rule."""

    def test_line_without_separator_is_from_field(self):
        self.assertEqual(parse_line("HELLO"), StarsMessage("HELLO", "", "", ""))

    def test_from_and_to_only(self):
        self.assertEqual(parse_line("A>B"), StarsMessage("A", "B", "", ""))

    def test_command_without_parameters(self):
        self.assertEqual(parse_line("A>B cmd"), StarsMessage("A", "B", "cmd", ""))

    def test_parameters_keep_embedded_spaces(self):
        self.assertEqual(parse_line("A>B cmd p1 p2"), StarsMessage("A", "B", "cmd", "p1 p2"))

    def test_whitespace_around_separators_is_trimmed(self):
        message = parse_line("A  >  B   cmd   p1 p2")
        self.assertEqual(message.from_, "A")
        self.assertEqual(message.to, "B")
        self.assertEqual(message.command, "cmd")
        self.assertEqual(message.parameters, "p1 p2")

    def test_trailing_parameter_space_is_kept(self):
        self.assertEqual(parse_line("A>B cmd p1 ").parameters, "p1 ")

    def test_trailing_space_after_command(self):
        message = parse_line("A>B cmd ")
        self.assertEqual(message.command, "cmd")
        self.assertEqual(message.parameters, "")

    def test_only_first_gt_splits_from(self):
        message = parse_line("A>B>C cmd")
        self.assertEqual(message.from_, "A")
        self.assertEqual(message.to, "B>C")

    def test_carriage_return_is_stripped(self):
        self.assertEqual(parse_line("A>B cmd\r"), StarsMessage("A", "B", "cmd", ""))

    def test_empty_line(self):
        self.assertEqual(parse_line(""), StarsMessage())

    def test_numeric_challenge_line(self):
        self.assertEqual(parse_line("1234").from_, "1234")

    def test_parse_wire_form_returns_same_message(self):
        messages = [
            StarsMessage("term1", "System", "hello", ""),
            StarsMessage("dev1", "term1", "_ChangedValue", "1 2 3"),
            StarsMessage("a.b", "c.d", "Set", "x  y"),
            StarsMessage("n", "m", "", ""),
        ]
        for message in messages:
            with self.subTest(message=message):
                self.assertEqual(parse_line(message.wire_form), message)


class TestFrameDecoder(unittest.TestCase):
    """Test the text-accumulator decoder."""

    def setUp(self):
        self.decoder = FrameDecoder()

    def test_complete_frame(self):
        messages = self.decoder.feed(b"A>B cmd p1 p2\n")
        self.assertEqual(messages, [StarsMessage("A", "B", "cmd", "p1 p2")])
        self.assertFalse(self.decoder.has_partial_frame)

    def test_partial_frame_yields_nothing(self):
        self.assertEqual(self.decoder.feed(b"A>B cm"), [])
        self.assertTrue(self.decoder.has_partial_frame)
        self.assertEqual(self.decoder.pending, "A>B cm")

    def test_partial_frame_completed_by_next_read(self):
        self.decoder.feed(b"A>B cm")
        self.assertEqual(self.decoder.feed(b"d\n"), [StarsMessage("A", "B", "cmd", "")])

    def test_terminator_split_between_reads(self):
        self.assertEqual(self.decoder.feed(b"A>B cmd\r"), [])
        self.assertEqual(self.decoder.feed(b"\n"), [StarsMessage("A", "B", "cmd", "")])

    def test_multiple_frames_in_one_read(self):
        data = b"A>B one\nC>D two 2\r\nE>F three 3 3\n"
        messages = self.decoder.feed(data)
        self.assertEqual([m.command for m in messages], ["one", "two", "three"])
        self.assertEqual(messages[2].parameters, "3 3")
        self.assertEqual(self.decoder.frames_decoded, 3)

    def test_remainder_kept_for_next_frame(self):
        messages = self.decoder.feed(b"A>B one\nC>D tw")
        self.assertEqual(len(messages), 1)
        self.assertEqual(self.decoder.pending, "C>D tw")
        self.assertEqual(self.decoder.feed(b"o\n")[0].command, "two")

    def test_any_chunking_gives_same_messages(self):
        data = ("\r\n".join(CANONICAL_CORPUS) + "\r\n").encode("utf-8")
        expected = FrameDecoder().feed(data)
        self.assertEqual(len(expected), len(CANONICAL_CORPUS))

        for split in range(1, len(data)):
            with self.subTest(split=split):
                decoder = FrameDecoder()
                messages = decoder.feed(data[:split]) + decoder.feed(data[split:])
                self.assertEqual(messages, expected)

    def test_byte_by_byte_feed(self):
        data = b"A>B cmd p\r\nC>D x\n"
        decoder = FrameDecoder()
        messages = []
        for i in range(len(data)):
            messages.extend(decoder.feed(data[i:i + 1]))
        self.assertEqual(messages, [StarsMessage("A", "B", "cmd", "p"),
                                    StarsMessage("C", "D", "x", "")])

    def test_multibyte_character_split_across_reads(self):
        data = "A>B say héllo\n".encode("utf-8")
        split = data.index("é".encode("utf-8")) + 1
        self.assertEqual(self.decoder.feed(data[:split]), [])
        messages = self.decoder.feed(data[split:])
        self.assertEqual(messages[0].parameters, "héllo")

    def test_empty_chunk(self):
        self.assertEqual(self.decoder.feed(b""), [])

    def test_reset_discards_partial_frame(self):
        self.decoder.feed(b"A>B half")
        self.decoder.reset()
        self.assertFalse(self.decoder.has_partial_frame)
        self.assertEqual(self.decoder.feed(b"C>D x\n"), [StarsMessage("C", "D", "x", "")])


class TestLegacyFrameDecoder(unittest.TestCase):
    """Test the byte-level state machine decoder."""

    def test_decodes_canonical_corpus_like_frame_decoder(self):
        data = ("\n".join(CANONICAL_CORPUS) + "\n").encode("utf-8")
        self.assertEqual(LegacyFrameDecoder().feed(data), FrameDecoder().feed(data))

    def test_split_reads(self):
        decoder = LegacyFrameDecoder()
        self.assertEqual(decoder.feed(b"A>B c"), [])
        self.assertTrue(decoder.has_partial_frame)
        self.assertEqual(decoder.feed(b"md p1 p2\r\n"), [StarsMessage("A", "B", "cmd", "p1 p2")])
        self.assertFalse(decoder.has_partial_frame)

    def test_carriage_return_skipped_anywhere(self):
        decoder = LegacyFrameDecoder()
        self.assertEqual(decoder.feed(b"A>\rB cmd\n"), [StarsMessage("A", "B", "cmd", "")])

    def test_does_not_trim_whitespace(self):
        message = LegacyFrameDecoder().feed(b"A > B cmd\n")[0]
        self.assertEqual(message.from_, "A ")
        self.assertEqual(message.to, "")
        self.assertEqual(message.command, "B")
        self.assertEqual(message.parameters, "cmd")

    def test_reset(self):
        decoder = LegacyFrameDecoder()
        decoder.feed(b"A>B partial")
        decoder.reset()
        self.assertEqual(decoder.feed(b"X\n"), [StarsMessage("X")])


class TestEncodeLine(unittest.TestCase):

    def test_appends_terminator(self):
        self.assertEqual(encode_line("term1 k1"), b"term1 k1\n")

    def test_rejects_embedded_newline(self):
        with self.assertRaises(ValueError):
            encode_line("A>B cmd\nC>D x")
        with self.assertRaises(ValueError):
            encode_line("A>B cmd\r")


if __name__ == '__main__':
    unittest.main()
