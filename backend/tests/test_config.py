import pytest

from recruit_triage.config import Settings, load_settings
from recruit_triage.exceptions import ConfigurationError

REQUIRED = {
    "recruitment_mail": "jobs@example.com",
    "consulting_mail": "consulting@example.com",
    "openai_api_key": "test-key",
}


def _load(**overrides):
    return load_settings(_env_file=None, **{**REQUIRED, **overrides})


def test_load_settings_with_required_values():
    settings = _load()
    assert isinstance(settings, Settings)
    assert settings.celery_broker == settings.redis_url
    assert settings.direct_sender_domains == []


def test_missing_openai_key_fails_at_startup():
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        _load(openai_api_key="")


def test_missing_consulting_mail_fails_for_direct_source():
    with pytest.raises(ConfigurationError, match="CONSULTING_MAIL"):
        _load(consulting_mail=None)


def test_consulting_mail_optional_without_direct_source():
    settings = _load(consulting_mail=None, pipeline_sources=["indeed"])
    assert settings.consulting_mail is None
