import pytest

from bizdir.services.normalization import clean_phone, clean_text, is_valid_website, normalize_email


def test_normalize_email():
    assert normalize_email("test@example.com") == "test@example.com"
    assert normalize_email("  Test@Example.COM  ") == "test@example.com"
    assert normalize_email("ann@example.co.uk") == "ann@example.co.uk"

    assert normalize_email(None) is None
    assert normalize_email("") is None
    assert normalize_email("   ") is None
    assert normalize_email("invalid") is None  # No @
    assert normalize_email("invalid@") is None  # No domain
    assert normalize_email("a b@example.com") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+44 20 7946 0958", "+44 20 7946 0958"),
        ("  (512) 555-0123  ", "(512) 555-0123"),
        ("+33\t1  42 68 53 00", "+33 1 42 68 53 00"),
        ("555-0123 ext 4", "555-0123 ext 4"),
    ],
)
def test_clean_phone_keeps_number_as_typed(raw, expected):
    assert clean_phone(raw) == expected


def test_clean_phone_empty():
    assert clean_phone(None) is None
    assert clean_phone("   ") is None


def test_website_and_text_helpers():
    assert is_valid_website("https://casa-azul.example.com/menu")
    assert is_valid_website("http://example.com")
    assert not is_valid_website("ftp://example.com")
    assert not is_valid_website("example.com")
    assert not is_valid_website(None)

    assert clean_text("  hi  ") == "hi"
    assert clean_text("   ") is None
    assert clean_text(None) is None
