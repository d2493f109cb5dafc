import json

import pytest

from receipt_extraction.parsing import ReceiptFieldExtractor
from receipt_extraction.postprocessor.form import (
    MANUAL_ENTRY_TEXT,
    ExpenseForm,
    ExpenseRecord,
    confidence_level,
    confidence_percentage,
    suggest_category,
)
from receipt_extraction.postprocessor.normalizers import Currency
from receipt_extraction.postprocessor.validators import (
    AmountValidator,
    DateValidator,
    ExpenseValidator,
)
from receipt_extraction.utils.exceptions import ExpenseValidationError


@pytest.fixture
def starbucks_form(starbucks_text):
    return ExpenseForm.from_receipt(ReceiptFieldExtractor().extract(starbucks_text))


def valid_form(**overrides):
    values = dict(
        merchant="KOPI KENANGAN",
        date="2024-01-15",
        amount=33000.0,
        category="meals",
    )
    values.update(overrides)
    return ExpenseForm(**values)


class TestCategorySuggestion:
    """Test category guesses from merchant names."""

    @pytest.mark.parametrize(
        ("merchant", "expected"),
        [
            ("Hotel Indonesia Kempinski", "accommodation"),
            ("GRAB*TRIP JAKARTA", "transport"),
            ("Shell Station Sudirman", "fuel"),
            ("Cafe Batavia", "meals"),
            ("STARBUCKS COFFEE", ""),
            ("Sushi Tei", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_suggest_category(self, merchant, expected):
        """Test keyword-based suggestions."""
        assert suggest_category(merchant) == expected

    def test_first_matching_group_wins(self):
        """Test that groups are checked in configuration order."""
        assert suggest_category("Restaurant Inn") == "meals"


class TestConfidenceLevels:
    """Test confidence badges."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [(1.0, "high"), (0.9, "high"), (0.8, "high"), (0.79, "medium"),
         (0.6, "medium"), (0.3, "low"), (0.0, "low")],
    )
    def test_confidence_level(self, score, expected):
        """Test the high and medium thresholds."""
        assert confidence_level(score) == expected

    def test_confidence_percentage(self):
        """Test rounding and clamping of percentages."""
        assert confidence_percentage(0.85) == 85
        assert confidence_percentage(1.7) == 100
        assert confidence_percentage(-0.2) == 0


class TestExpenseForm:
    """Test form population and editing."""

    def test_from_receipt(self, starbucks_form, starbucks_text):
        """Test that extracted values and confidences are copied."""
        form = starbucks_form
        assert form.merchant == "STARBUCKS COFFEE"
        assert form.date == "2023-12-25"
        assert form.time == "14:30"
        assert form.amount == 45000.0
        assert form.currency == "IDR"
        assert form.tax is None
        assert form.category == ""
        assert form.raw_text == starbucks_text
        assert form.confidence == {
            'merchant': 0.8, 'date': 0.9, 'time': 0.8, 'amount': 0.9, 'tax': 0.0
        }
        assert form.edited_fields == set()

    def test_from_receipt_uses_total_currency(self):
        """Test that the form takes the currency of the resolved total."""
        receipt = ReceiptFieldExtractor().extract("DINER\nTOTAL $9.00")
        assert ExpenseForm.from_receipt(receipt).currency == "USD"

    def test_from_empty_receipt(self):
        """Test a form built from a receipt with nothing found."""
        form = ExpenseForm.from_receipt(ReceiptFieldExtractor().extract(""), raw_text="")
        assert form.merchant == ""
        assert form.amount is None
        assert form.confidence['amount'] == 0.0

    def test_blank(self):
        """Test the manual-entry form."""
        form = ExpenseForm.blank()
        assert form.raw_text == MANUAL_ENTRY_TEXT
        assert form.amount is None
        assert form.currency == "IDR"

    def test_update_marks_fields_edited(self, starbucks_form):
        """Test that user edits get full confidence."""
        starbucks_form.update(merchant="Starbucks Sudirman", category="meals")

        assert starbucks_form.merchant == "Starbucks Sudirman"
        assert starbucks_form.edited_fields == {"merchant", "category"}
        assert starbucks_form.confidence['merchant'] == 1.0
        assert 'category' not in starbucks_form.confidence

    def test_update_normalizes_typed_date(self, starbucks_form):
        """Test that a typed date is stored in ISO form."""
        starbucks_form.update(date="5 Jan 2024")
        assert starbucks_form.date == "2024-01-05"

    def test_update_keeps_unparsable_date(self, starbucks_form):
        """Test that an unparsable date is kept as typed."""
        starbucks_form.update(date="someday")
        assert starbucks_form.date == "someday"

    @pytest.mark.parametrize("name", ["total", "confidence", "edited_fields"])
    def test_update_rejects_unknown_fields(self, starbucks_form, name):
        """Test that only editable fields can be set."""
        with pytest.raises(ValueError):
            starbucks_form.update(**{name: 1})

    def test_confidence_badges(self, starbucks_form):
        """Test percentage and level per field."""
        badges = starbucks_form.confidence_badges()
        assert badges['merchant'] == {'percentage': 80, 'level': 'high'}
        assert badges['tax'] == {'percentage': 0, 'level': 'low'}

    def test_to_json(self, starbucks_form):
        """Test form serialization."""
        starbucks_form.update(category="meals")
        data = json.loads(starbucks_form.to_json())
        assert data['merchant'] == "STARBUCKS COFFEE"
        assert data['edited_fields'] == ["category"]


class TestFinalize:
    """Test validation into a finalized expense."""

    def test_finalize_valid_form(self, starbucks_form):
        """Test that a complete form becomes an ExpenseRecord."""
        record = starbucks_form.update(category="meals").finalize()

        assert isinstance(record, ExpenseRecord)
        assert record.merchant == "STARBUCKS COFFEE"
        assert record.date == "2023-12-25"
        assert record.time == "14:30"
        assert record.amount == 45000.0
        assert record.currency is Currency.IDR
        assert record.tax == 0.0
        assert record.category == "meals"

    def test_record_to_dict(self, starbucks_form):
        """Test that the currency is serialized by code."""
        data = starbucks_form.update(category="meals").finalize().to_dict()
        assert data['currency'] == "IDR"
        assert json.loads(json.dumps(data))['amount'] == 45000.0

    def test_record_is_immutable(self):
        """Test that a finalized record cannot be changed."""
        record = valid_form().finalize()
        with pytest.raises(AttributeError):
            record.amount = 1.0

    def test_blank_form_lists_every_problem(self):
        """Test that every missing field is reported at once."""
        with pytest.raises(ExpenseValidationError) as exc_info:
            ExpenseForm.blank().finalize()

        assert exc_info.value.problems == [
            "merchant: Merchant is empty",
            "date: Date is empty",
            "amount: Amount is empty",
            "category: Category is empty",
        ]

    @pytest.mark.parametrize(
        ("overrides", "problem"),
        [
            ({'amount': 0}, "amount: Amount must be greater than zero"),
            ({'amount': -5.0}, "amount: Amount cannot be negative"),
            ({'tax': -1.0}, "tax: Amount cannot be negative"),
            ({'date': "1999-12-31"}, "date: Year 1999 is too old"),
            ({'date': "2101-01-01"}, "date: Year 2101 is too far in future"),
            ({'currency': "EUR"}, "currency: Unsupported currency: EUR"),
            ({'category': "gifts"}, "category: Unknown category: gifts"),
            ({'merchant': "   "}, "merchant: Merchant is empty"),
        ],
    )
    def test_invalid_field(self, overrides, problem):
        """Test the message for each kind of invalid field."""
        with pytest.raises(ExpenseValidationError) as exc_info:
            valid_form(**overrides).finalize()
        assert exc_info.value.problems == [problem]

    def test_zero_tax_is_allowed(self):
        """Test that tax may be zero."""
        assert valid_form(tax=0.0).finalize().tax == 0.0

    def test_low_confidence_warning(self):
        """Test that unedited low-confidence fields produce warnings."""
        receipt = ReceiptFieldExtractor().extract("25/12/2023\nTotal Rp45.000")
        form = ExpenseForm.from_receipt(receipt).update(category="other")

        result = ExpenseValidator().validate(form)

        assert result.is_valid
        assert result.warnings == ["merchant: low confidence (0.30)"]

    def test_edited_field_has_no_warning(self):
        """Test that user-confirmed fields are not flagged."""
        receipt = ReceiptFieldExtractor().extract("25/12/2023\nTotal Rp45.000")
        form = ExpenseForm.from_receipt(receipt).update(merchant="Toko", category="other")
        assert ExpenseValidator().validate(form).warnings == []


class TestFieldValidators:
    """Test the individual date and amount validators."""

    @pytest.mark.parametrize(
        ("value", "valid"),
        [("2023-12-25", True), ("2023-02-30", False), ("25/12/2023", False), ("", False)],
    )
    def test_date_validator(self, value, valid):
        """Test ISO date validation."""
        assert DateValidator().is_valid(value) is valid

    @pytest.mark.parametrize(
        ("value", "allow_zero", "valid"),
        [(45000, False, True), ("12.5", False, True), (0, False, False),
         (0, True, True), ("abc", False, False), (None, True, False)],
    )
    def test_amount_validator(self, value, allow_zero, valid):
        """Test amount validation."""
        assert AmountValidator().is_valid(value, allow_zero) is valid
