import json

import pytest

from config import ConfigurationManager
from receipt_extraction.parsing import ExtractedReceipt, ReceiptFieldExtractor
from receipt_extraction.parsing.extraction_result import ASSUMED_TOTAL, TOTAL
from receipt_extraction.postprocessor.normalizers import Currency


class TestReceiptFieldExtractor:
    """Test end-to-end field extraction from recognized text."""

    def test_starbucks_receipt(self, starbucks_text):
        """Test the reference receipt field by field."""
        receipt = ReceiptFieldExtractor().extract(starbucks_text)

        assert receipt.merchant.value == "STARBUCKS COFFEE"
        assert receipt.merchant.confidence == 0.8
        assert receipt.date.value == "2023-12-25"
        assert receipt.date.confidence == 0.9
        assert receipt.time.value == "14:30"
        assert receipt.time.confidence == 0.8

        assert [a.value for a in receipt.amounts] == [45000.0, 45000.0]
        assert all(a.currency is Currency.IDR for a in receipt.amounts)

        total = receipt.total_amount
        assert total.value.kind == TOTAL
        assert total.value.value == 45000.0
        assert total.confidence == 0.9
        assert total.evidence_line == "Total Rp45.000"

        assert [(i.name, i.amount) for i in receipt.items] == [("Cappuccino", 45000.0)]
        assert receipt.tax_amount is None

    def test_indonesian_receipt(self, indonesian_text):
        """Test a receipt using Indonesian keywords."""
        receipt = ReceiptFieldExtractor().extract(indonesian_text)

        assert receipt.merchant.value == "WARUNG MAKAN SEDERHANA"
        assert receipt.date.value == "2024-01-15"
        assert receipt.time.value == "19:05"
        assert receipt.total_amount.value.value == 33000.0
        assert receipt.total_amount.value.kind == TOTAL
        assert receipt.tax_amount.value.value == 3000.0
        names = [item.name for item in receipt.items]
        assert names[:2] == ["Nasi Goreng", "Es Teh Manis"]
        assert "Subtotal" not in names

    def test_assumed_total_without_keyword(self):
        """Test that the largest amount is assumed when no keyword line exists."""
        receipt = ReceiptFieldExtractor().extract("KEDAI KOPI\nKopi Susu 18.000\nRoti 12.000")
        assert receipt.total_amount.value.kind == ASSUMED_TOTAL
        assert receipt.total_amount.value.value == 18000.0
        assert receipt.total_amount.confidence == 0.6

    @pytest.mark.parametrize("raw_text", ["", None, "   \n\n  "])
    def test_empty_input(self, raw_text):
        """Test that empty text yields the empty defaults."""
        receipt = ReceiptFieldExtractor().extract(raw_text)

        assert receipt.merchant.value == ""
        assert receipt.merchant.confidence == 0.3
        assert receipt.date.value is None
        assert receipt.date.confidence == 0.0
        assert receipt.time.value is None
        assert receipt.amounts == ()
        assert receipt.total_amount is None
        assert receipt.tax_amount is None
        assert receipt.items == ()
        assert receipt.is_empty

    @pytest.mark.parametrize(
        "raw_text",
        [
            "@@@ ###\n\x00\x01\n%%%%",
            "////////\n::::\n$$$ Rp Rp. IDR",
            "9" * 40,
            "Total\nTotal Total\nTAX TAX",
        ],
    )
    def test_garbage_input_does_not_raise(self, raw_text):
        """Test that unreadable text still produces a receipt."""
        receipt = ReceiptFieldExtractor().extract(raw_text)
        assert isinstance(receipt, ExtractedReceipt)
        assert 0.0 <= receipt.merchant.confidence <= 1.0

    def test_extraction_is_deterministic(self, starbucks_text):
        """Test that the same text always yields an equal receipt."""
        extractor = ReceiptFieldExtractor()
        assert extractor.extract(starbucks_text) == extractor.extract(starbucks_text)
        assert ReceiptFieldExtractor().extract(starbucks_text) == extractor.extract(starbucks_text)

    def test_extract_lines_matches_extract(self, starbucks_text, starbucks_lines):
        """Test that pre-split lines give the same result as raw text."""
        extractor = ReceiptFieldExtractor()
        assert extractor.extract_lines(starbucks_lines) == extractor.extract(starbucks_text)

    def test_total_is_one_of_the_amounts(self, indonesian_text):
        """Test that the resolved total always comes from the amount list."""
        receipt = ReceiptFieldExtractor().extract(indonesian_text)
        assert receipt.total_amount.value.amount in receipt.amounts

    def test_locales_restrict_keywords(self):
        """Test that only the requested locales' keywords are used."""
        text = "TOKO MAJU\nPPN 4.500"
        assert ReceiptFieldExtractor(locales=["en"]).extract(text).tax_amount is None
        assert ReceiptFieldExtractor().extract(text).tax_amount.value.value == 4500.0

    def test_confidence_scores(self, starbucks_text):
        """Test per-field and average confidence."""
        receipt = ReceiptFieldExtractor().extract(starbucks_text)
        assert receipt.confidence_scores == {
            'merchant': 0.8,
            'date': 0.9,
            'time': 0.8,
            'amount': 0.9,
            'tax': 0.0,
        }
        assert receipt.average_confidence == pytest.approx(0.85)


class TestExtractedReceiptSerialization:
    """Test dictionary and JSON output."""

    def test_to_dict(self, starbucks_text):
        """Test the dictionary layout."""
        data = ReceiptFieldExtractor().extract(starbucks_text).to_dict()

        assert data['merchant']['value'] == "STARBUCKS COFFEE"
        assert data['date'] == {
            'value': "2023-12-25",
            'confidence': 0.9,
            'line': "25/12/2023 14:30",
            'raw': "25/12/2023",
        }
        assert data['total_amount']['value']['type'] == "total"
        assert data['total_amount']['value']['currency'] == "IDR"
        assert data['tax_amount'] is None
        assert data['items'][0]['name'] == "Cappuccino"

    def test_to_json(self, starbucks_text):
        """Test that JSON output round-trips through json.loads."""
        receipt = ReceiptFieldExtractor().extract(starbucks_text)
        assert json.loads(receipt.to_json()) == json.loads(json.dumps(receipt.to_dict()))

    def test_repr(self, starbucks_text):
        """Test the short representation."""
        text = repr(ReceiptFieldExtractor().extract(starbucks_text))
        assert "STARBUCKS COFFEE" in text
        assert "45000.0" in text


class TestConfiguredWeights:
    """Test confidence weights loaded from a settings file."""

    def test_out_of_range_weights_are_clamped(self, tmp_path, starbucks_text):
        """Test that configured weights are clamped into [0, 1]."""
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text(
            "extraction:\n"
            "  confidence:\n"
            "    date: 1.5\n"
            "    merchant_match: -0.2\n",
            encoding="utf-8",
        )
        ConfigurationManager(str(settings_file))

        receipt = ReceiptFieldExtractor().extract(starbucks_text)

        assert receipt.date.confidence == 1.0
        assert receipt.merchant.confidence == 0.0
        assert receipt.merchant.value == "STARBUCKS COFFEE"
        assert receipt.time.confidence == 0.8
