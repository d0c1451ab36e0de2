import unittest

from core.addresses import find_duplicates, normalize_address
from core.errors import ValidationError
from core.models import TransactionItem

ADDRESS = "0x7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c7c"


class TransactionItemTests(unittest.TestCase):
    def test_from_dict_normalizes(self) -> None:
        item = TransactionItem.from_dict(
            {"to": ADDRESS, "value": "1000", "data": "0xdeadbeef", "description": "pay"}
        )
        self.assertEqual(item.to, normalize_address(ADDRESS))
        self.assertEqual(item.value, 1000)
        self.assertEqual(item.data, bytes.fromhex("deadbeef"))
        self.assertEqual(item.to_dict()["data"], "0xdeadbeef")
        self.assertEqual(item.to_dict()["description"], "pay")

    def test_missing_value_defaults_to_zero(self) -> None:
        self.assertEqual(TransactionItem.from_dict({"to": ADDRESS, "data": "0x"}).value, 0)

    def test_rejects_bad_items(self) -> None:
        bad = [
            {"value": "1", "data": "0x"},
            {"to": ADDRESS},
            {"to": ADDRESS, "value": "-1", "data": "0x"},
            {"to": ADDRESS, "value": "abc", "data": "0x"},
            {"to": ADDRESS, "data": "deadbeef"},
            {"to": ADDRESS, "data": "0xzz"},
            {"to": "0x1234", "data": "0x"},
            "not-an-object",
        ]
        for payload in bad:
            with self.subTest(payload=payload):
                with self.assertRaises(ValidationError):
                    TransactionItem.from_dict(payload)


class AddressTests(unittest.TestCase):
    def test_duplicates_are_case_insensitive(self) -> None:
        upper = "0x" + ADDRESS[2:].upper()
        self.assertEqual(find_duplicates([ADDRESS, upper]), (upper,))

    def test_invalid_address(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            normalize_address("0xnothex")
        self.assertEqual(ctx.exception.offending, "0xnothex")


if __name__ == "__main__":
    unittest.main()
