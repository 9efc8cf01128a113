from receptionist.validation import (
    contains_any,
    match_any_keyword,
    normalize_utterance,
    parse_quantity,
    tokenize,
    validate_name,
)


class TestValidateName:
    def test_valid_name(self):
        assert validate_name("priya sharma") == "Priya Sharma"

    def test_strips_trailing_punctuation(self):
        assert validate_name("Ravi.") == "Ravi"

    def test_rejects_phone_number(self):
        assert validate_name("+1 (512) 555-1234") == ""

    def test_rejects_digits_only(self):
        assert validate_name("12") == ""

    def test_rejects_placeholders(self):
        assert validate_name("Phone Order") == ""
        assert validate_name("unknown") == ""
        assert validate_name("n/a") == ""

    def test_rejects_empty(self):
        assert validate_name("") == ""

    def test_rejects_none(self):
        assert validate_name(None) == ""


class TestParseQuantity:
    def test_digits(self):
        assert parse_quantity("3") == 3

    def test_words(self):
        assert parse_quantity("two") == 2
        assert parse_quantity("A") == 1
        assert parse_quantity("a  couple") == 2
        assert parse_quantity("dozen") == 12

    def test_zero_and_unknown_fall_back(self):
        assert parse_quantity("0") == 1
        assert parse_quantity("several") == 1
        assert parse_quantity(None, default=2) == 2


class TestMatchAnyKeyword:
    def test_exact_word_matches(self):
        assert match_any_keyword("yes please", {"yes"})

    def test_word_at_end(self):
        assert match_any_keyword("I'd like to order", {"order"})

    def test_substring_does_not_match(self):
        assert not match_any_keyword("yesterday", {"yes"})

    def test_phrase_keyword(self):
        assert match_any_keyword("That's right, thanks", {"that's right"})


def test_contains_any_is_substring():
    assert contains_any("I KNOW what I want", ["know"])
    assert not contains_any("hello", ["bye"])


def test_tokenize_keeps_apostrophes():
    assert tokenize("No, I don't KNOW!") == ["no", "i", "don't", "know"]


class TestNormalizeUtterance:
    def test_trailing_punctuation_from_speech(self):
        assert normalize_utterance("Bye.") == "bye"

    def test_collapses_whitespace(self):
        assert normalize_utterance("  Thank   you!  ") == "thank you"

    def test_empty(self):
        assert normalize_utterance("   ") == ""
