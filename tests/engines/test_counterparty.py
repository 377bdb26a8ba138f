"""Tests for tax identifier extraction and normalization."""

import pytest

from recon_engines.counterparty import extract_counterparty_id, normalize_counterparty_id


class TestExtract:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("PAGO PROV 76.123.456-7", "76123456-7"),
            ("TRANSF 12345678-5 FACT 991", "12345678-5"),
            ("abono cliente 7.654.321-k", "7654321-K"),
            ("RUT 1-9", "1-9"),
        ],
    )
    def test_extracts_first_identifier(self, text, expected):
        assert extract_counterparty_id(text) == expected

    def test_first_of_several(self):
        assert extract_counterparty_id("76.123.456-7 y 12.345.678-5") == "76123456-7"

    @pytest.mark.parametrize("text", [None, "", "TRANSFERENCIA", "FACT 1234", 42])
    def test_absent_yields_none(self, text):
        assert extract_counterparty_id(text) is None


class TestNormalize:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("76.123.456-7", "76123456-7"),
            ("76123456-7", "76123456-7"),
            ("761234567", "76123456-7"),
            (" 7654321-k ", "7654321-K"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_counterparty_id(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "ACME", "12-34-5", "1234567890-1"])
    def test_malformed_yields_none(self, raw):
        assert normalize_counterparty_id(raw) is None

    def test_extracted_matches_stored(self):
        assert extract_counterparty_id("PAGO 76.123.456-7") == normalize_counterparty_id("76123456-7")
