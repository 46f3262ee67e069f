from plan_ingest_core.config import Settings


def test_settings_defaults() -> None:
    settings = Settings.model_validate({})
    assert settings.platform == "web"
    assert settings.store_backend == "memory"
    assert settings.enhancement_enabled is False
    assert settings.enhancement_batch_size == 3


def test_settings_parses_aliases() -> None:
    settings = Settings.model_validate(
        {
            "PLATFORM": "mobile",
            "DOCUMENTS_DIR": "/data/docs",
            "STORE_BACKEND": "postgres",
            "PG_DSN": "postgresql://u:p@localhost:5432/plans",
            "PG_SCHEMA": "ingest",
            "POSTGRES_PASSWORD": "pass",
            "ENHANCEMENT_ENABLED": "true",
            "ENHANCEMENT_URL": "http://enhancer.local",
            "ENHANCEMENT_BATCH_DELAY_S": "0.5",
            "LOG_FORMAT": "json",
        }
    )
    assert settings.platform == "mobile"
    assert settings.documents_dir == "/data/docs"
    assert settings.store_backend == "postgres"
    assert settings.pg_schema == "ingest"
    assert settings.postgres_password is not None
    assert settings.postgres_password.get_secret_value() == "pass"
    assert settings.enhancement_enabled is True
    assert settings.enhancement_batch_delay_s == 0.5
    assert settings.log_format == "json"
