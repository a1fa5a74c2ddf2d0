"""
Unit tests for tabular header normalization.

Tests header cleaning logic, Postgres identifier validation, collision handling
and edge cases.
"""

import re

import pytest

from libs.tabular_utils.headers import (
    MAX_IDENTIFIER_LENGTH,
    deduplicate_words,
    is_valid_identifier,
    normalize_headers,
    normalize_identifier,
)

POSTGRES_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")


class TestNormalizeIdentifier:
    """Test single identifier normalization."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("  Fecha de Ingreso ", "fecha_de_ingreso"),
            ("Año", "ano"),
            ("Región/País", "region_pais"),
            ("Amount ($)", "amount"),
            ("1st Quarter", "_1st_quarter"),
            ("__Name__", "name"),
        ],
    )
    def test_normalizes_free_text(self, text, expected):
        assert normalize_identifier(text) == expected

    def test_returns_fallback_when_nothing_usable(self):
        assert normalize_identifier("%%%", fallback="column_3") == "column_3"
        assert normalize_identifier("") == ""

    def test_long_text_is_compressed_to_limit(self):
        result = normalize_identifier("fecha_" * 20)
        assert result == "fecha"

        result = normalize_identifier("b" * 100)
        assert len(result) == MAX_IDENTIFIER_LENGTH


class TestNormalizeHeaders:
    """Test header row normalization logic."""

    def test_basic_normalization(self):
        """Test basic header normalization (lowercase, spaces to underscores)."""
        headers = ["First Name", "Last Name", "Age"]
        mapping, cleaned = normalize_headers(headers)

        assert cleaned == ["first_name", "last_name", "age"]
        assert mapping["First Name"] == "first_name"
        assert mapping["Age"] == "age"

    def test_punctuation_removal(self):
        headers = ["Name (Primary)", "Age-Years", "Email.Address"]
        _, cleaned = normalize_headers(headers)

        assert cleaned == ["name_primary", "age_years", "email_address"]

    def test_empty_headers_become_positional_placeholders(self):
        """Empty headers become column_N with the 1-based position."""
        headers = ["Name", "", "Age", "   "]
        mapping, cleaned = normalize_headers(headers)

        assert cleaned == ["name", "column_2", "age", "column_4"]
        assert mapping[""] == "column_2"

    def test_collision_handling(self):
        """Collisions are resolved with numeric suffixes in header order."""
        headers = ["Name", "name", "NAME "]
        _, cleaned = normalize_headers(headers)

        assert cleaned == ["name", "name_1", "name_2"]

    def test_collision_with_existing_suffix(self):
        headers = ["name_1", "Name", "Name"]
        _, cleaned = normalize_headers(headers)

        assert cleaned == ["name_1", "name", "name_2"]

    def test_truncation_with_collision_suffix(self):
        """Truncation keeps the collision suffix within 63 characters."""
        headers = ["a" * 65, "a" * 66]
        _, cleaned = normalize_headers(headers)

        assert cleaned[0] == "a" * 63
        assert cleaned[1] == "a" * 61 + "_1"
        assert len(cleaned[1]) == 63

    def test_is_deterministic(self):
        headers = ["Región", "Region", "", "2024 Total", "Total 2024"]
        assert normalize_headers(headers) == normalize_headers(list(headers))

    def test_postgres_identifier_pattern(self):
        """All cleaned headers match the Postgres identifier pattern."""
        headers = [
            "Name",
            "Age (Years)",
            "123Column",
            "Special!@#Chars",
            "",
            "Very Long Header Name That Should Be Truncated " * 3,
        ]
        _, cleaned = normalize_headers(headers)

        assert len(cleaned) == len(headers)
        assert len(set(cleaned)) == len(cleaned)
        for header in cleaned:
            assert POSTGRES_PATTERN.match(header), f"Header '{header}' doesn't match Postgres pattern"
            assert len(header) <= 63


class TestHelpers:
    def test_deduplicate_words(self):
        assert deduplicate_words("user_id_user") == "user_id"
        assert deduplicate_words("date_date_date") == "date"

    @pytest.mark.parametrize(
        "name,valid",
        [
            ("ventas", True),
            ("_2024_report", True),
            ("Ventas", False),
            ("2024", False),
            ("a-b", False),
            ("a" * 64, False),
        ],
    )
    def test_is_valid_identifier(self, name, valid):
        assert is_valid_identifier(name) is valid
