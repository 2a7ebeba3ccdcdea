"""
Unit tests for parameter array conversion helpers.
"""

import unittest
from decimal import Decimal

import numpy as np

from pystars.utils.param_arrays import (
    split_params,
    to_array,
    to_bool_array,
    to_decimal_array,
)


class TestSplitParams(unittest.TestCase):

    def test_keeps_empty_items(self):
        self.assertEqual(split_params("1  2"), ["1", "", "2"])

    def test_empty_separator_rejected(self):
        with self.assertRaises(ValueError):
            split_params("1 2", "")


class TestToArray(unittest.TestCase):

    def test_integer_conversion(self):
        result = to_array("10 20 30", " ", np.int16)
        self.assertEqual(result.dtype, np.int16)
        np.testing.assert_array_equal(result, [10, 20, 30])

    def test_integer_bounds(self):
        np.testing.assert_array_equal(to_array("-32768 32767", " ", np.int16), [-32768, 32767])
        self.assertEqual(to_array("32768", " ", np.int16).size, 0)
        self.assertEqual(to_array("-1", " ", np.uint32).size, 0)
        self.assertEqual(to_array("18446744073709551615", " ", np.uint64)[0],
                         np.uint64(18446744073709551615))

    def test_any_bad_item_gives_empty_array(self):
        result = to_array("1 x 3", " ", np.int32)
        self.assertEqual(result.size, 0)
        self.assertEqual(result.dtype, np.int32)

    def test_float_is_not_an_integer(self):
        self.assertEqual(to_array("1.5", " ", np.int32).size, 0)

    def test_double_separator_gives_empty_array(self):
        self.assertEqual(to_array("1  2", " ", np.int32).size, 0)

    def test_empty_string_gives_empty_array(self):
        self.assertEqual(to_array("", " ", np.float64).size, 0)

    def test_surrounding_whitespace_allowed(self):
        np.testing.assert_array_equal(to_array(" 1, 2", ",", np.int32), [1, 2])

    def test_float_conversion(self):
        result = to_array("1.5;-2.25;3e2", ";", np.float64)
        np.testing.assert_allclose(result, [1.5, -2.25, 300.0])

    def test_float32_overflow_is_infinite(self):
        result = to_array("1e40", " ", np.float32)
        self.assertTrue(np.isinf(result[0]))

    def test_underscore_literals_rejected(self):
        self.assertEqual(to_array("1_000", " ", np.int32).size, 0)

    def test_unsupported_dtype(self):
        with self.assertRaises(ValueError):
            to_array("1", " ", np.complex128)


class TestBoolAndDecimal(unittest.TestCase):

    def test_bool_array(self):
        np.testing.assert_array_equal(to_bool_array("0 1 -3"), [False, True, True])

    def test_bool_array_requires_integers(self):
        result = to_bool_array("true false")
        self.assertEqual(result.size, 0)
        self.assertEqual(result.dtype, np.bool_)

    def test_decimal_array(self):
        result = to_decimal_array("1.10,2", ",")
        self.assertEqual(result.dtype, object)
        self.assertEqual(list(result), [Decimal("1.10"), Decimal("2")])

    def test_decimal_array_invalid(self):
        self.assertEqual(to_decimal_array("1 abc").size, 0)
        self.assertEqual(to_decimal_array("NaN").size, 0)


if __name__ == '__main__':
    unittest.main()
