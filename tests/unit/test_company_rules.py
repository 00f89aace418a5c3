"""
Unit tests for company rules.

Tests coverage:
- validate_slug(): format of the public booking URL segment
- Company.is_effectively_active(): active flag plus plan expiry
"""

from datetime import UTC, datetime, timedelta

import pytest

from booking.repositories.companies import validate_slug
from database.models import Company

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class TestValidateSlug:
    @pytest.mark.parametrize("slug", ["studio-bella", "barber42", "a", "2-b-3"])
    def test_valid_slugs(self, slug):
        assert validate_slug(slug) is None

    @pytest.mark.parametrize("slug", ["Studio", "studio bella", "studio_bella", "estúdio", "studio/bella"])
    def test_invalid_slugs(self, slug):
        assert validate_slug(slug) == "Slug must contain only lowercase letters, numbers and hyphens"

    def test_missing_slug(self):
        assert validate_slug("") == "Company slug is required"
        assert validate_slug(None) == "Company slug is required"


class TestEffectiveActivity:
    def test_active_without_expiry(self):
        assert Company(is_active=True, plan_expiry_date=None).is_effectively_active(NOW) is True

    def test_active_with_future_expiry(self):
        company = Company(is_active=True, plan_expiry_date=NOW + timedelta(days=1))
        assert company.is_effectively_active(NOW) is True

    def test_expired_plan_makes_company_inactive(self):
        company = Company(is_active=True, plan_expiry_date=NOW - timedelta(seconds=1))
        assert company.is_effectively_active(NOW) is False

    def test_inactive_flag_wins_over_valid_plan(self):
        company = Company(is_active=False, plan_expiry_date=NOW + timedelta(days=30))
        assert company.is_effectively_active(NOW) is False

    def test_naive_expiry_is_read_as_utc(self):
        company = Company(is_active=True, plan_expiry_date=datetime(2025, 3, 1, 13, 0))
        assert company.is_effectively_active(NOW) is True
