"""Tests for payer phone validation and normalization."""

import pytest
from payments.gateway.phone import InvalidPhoneNumber, default_country_code, is_valid_phone, normalize_phone


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        ["061234567", "242061234567", "+242061234567", "+242 06 123 4567"],
    )
    def test_congo_numbers(self, raw):
        assert normalize_phone(raw, "242") == "242061234567"

    def test_cameroon_prefix_added(self):
        assert normalize_phone("671234567", "237") == "237671234567"

    def test_cameroon_requires_mobile_prefix(self):
        assert not is_valid_phone("571234567", "237")

    def test_drc(self):
        assert normalize_phone("+243 812 345 678", "243") == "243812345678"

    def test_unknown_country_uses_generic_rule(self):
        assert is_valid_phone("123456789012", "999")
        assert not is_valid_phone("12345", "999")

    @pytest.mark.parametrize("raw", ["", "abc", "06123", "0612345678901234"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidPhoneNumber):
            normalize_phone(raw, "242")


class TestDefaultCountry:
    def test_default(self, monkeypatch):
        monkeypatch.delenv("MTN_MOMO_DEFAULT_COUNTRY", raising=False)
        assert default_country_code() == "242"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("MTN_MOMO_DEFAULT_COUNTRY", "237")
        assert default_country_code() == "237"
