from settings import Settings, settings


def test_http_defaults_present():
    assert settings.HTTP_DEFAULT_TIMEOUT > 0
    assert settings.HTTP_MAX_RETRIES >= 0
    assert settings.HTTP_BACKOFF_BASE > 0
    assert settings.HTTP_BACKOFF_CAP >= settings.HTTP_BACKOFF_BASE


def test_server_defaults(empty_settings):
    assert empty_settings.PORT == 3001
    assert empty_settings.CACHE_TTL == 600
    assert empty_settings.RATE_LIMIT_MAX == 100
    assert empty_settings.RATE_LIMIT_WINDOW == 900


def test_keys_read_from_environment(clean_env):
    clean_env.setenv("ABUSEIPDB_API_KEY", "abc")
    clean_env.setenv("shodan_api_key", "lower-case-works")
    config = Settings(_env_file=None)
    assert config.ABUSEIPDB_API_KEY == "abc"
    assert config.SHODAN_API_KEY == "lower-case-works"


def test_otx_key_aliases(clean_env):
    clean_env.setenv("ALIENVALUT_OTX_API_KEY", "typo-key")
    assert Settings(_env_file=None).OTX_API_KEY == "typo-key"

    clean_env.delenv("ALIENVALUT_OTX_API_KEY")
    clean_env.setenv("ALIENVAULT_OTX_API_KEY", "long-key")
    assert Settings(_env_file=None).OTX_API_KEY == "long-key"


def test_env_file(clean_env, temp_dir):
    env_file = temp_dir / ".env"
    env_file.write_text("VIRUSTOTAL_API_KEY=from-dotenv\nUNRELATED=1\n", encoding="utf-8")
    assert Settings(_env_file=env_file).VIRUSTOTAL_API_KEY == "from-dotenv"


def test_configured_keys(empty_settings, all_keys_settings):
    assert not any(empty_settings.configured_keys().values())
    assert all_keys_settings.configured_keys() == {
        "abuseipdb": True,
        "virustotal": True,
        "ipqualityscore": True,
        "alienvault": True,
        "shodan": True,
    }
