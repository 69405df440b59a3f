"""
Tests for start-up configuration.
"""

import pytest
from pydantic import ValidationError

from call_form_backend.configuration import build_settings


class TestSettings:
    def test_environment_is_resolved(self, settings):
        assert settings.storage.bucket == "test-bucket"
        assert settings.tracker.section_id == "42"
        assert settings.tracker.labels.package_3 == 113
        assert settings.render.timezone == "Europe/Vienna"
        assert settings.http.timeout == 30.0

    def test_mail_disabled_without_token(self, settings):
        assert settings.mail.enabled is False

    def test_settings_are_immutable(self, settings):
        with pytest.raises(ValidationError):
            settings.storage.bucket = "other"

    def test_non_numeric_label_fails_fast(self):
        with pytest.raises(ValidationError):
            build_settings({"tracker": {"labels": {"package_1": "abc"}}})

    def test_missing_label_fails_fast(self, monkeypatch):
        monkeypatch.delenv("MT_LABEL_PAKET_DEFAULT")
        with pytest.raises(ValidationError):
            build_settings()

    @pytest.mark.parametrize("tier, expected", [(1, 111), (2, 112), (3, 113), (4, 114), (5, 110), (None, 110)])
    def test_label_for_package(self, settings, tier, expected):
        assert settings.tracker.labels.for_package(tier) == expected
