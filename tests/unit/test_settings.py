import pytest
from pydantic import ValidationError

from docsieve.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_max_job_attempts(self) -> None:
        s = Settings()
        assert s.max_job_attempts == 3

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pymupdf"

    def test_default_retry_policy_values(self) -> None:
        s = Settings()
        assert s.retry_max_attempts == 3
        assert s.retry_backoff_seconds == [1.0, 2.0, 4.0]
        assert s.attempt_timeout_seconds == 30.0

    def test_default_ocr_batching(self) -> None:
        s = Settings()
        assert s.ocr_batch_size == 10
        assert s.ocr_concurrency is None

    def test_default_retrieval_values(self) -> None:
        s = Settings()
        assert s.chunking_threshold_chars == 15_000
        assert s.chunk_size_chars == 20_000
        assert s.chunk_overlap_chars == 500
        assert s.retrieval_top_k == 5
        assert s.retrieval_token_budget == 30_000


class TestSettingsFromEnv:
    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_extraction_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXTRACTION_PROVIDER", "example")
        s = Settings()
        assert s.extraction_provider == "example"

    def test_loads_backoff_list_as_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETRY_BACKOFF_SECONDS", "[0.5, 1.5]")
        s = Settings()
        assert s.retry_backoff_seconds == [0.5, 1.5]

    def test_loads_max_concurrent_documents(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENT_DOCUMENTS", "8")
        s = Settings()
        assert s.max_concurrent_documents == 8


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_retry_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_batch_size_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_BATCH_SIZE", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_position_weight_above_one_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETRIEVAL_POSITION_WEIGHT", "1.5")
        with pytest.raises(ValidationError):
            Settings()
