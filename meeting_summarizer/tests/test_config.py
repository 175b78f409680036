from meeting_summarizer.config import ServiceSettings


def test_default_settings():
    settings = ServiceSettings.from_env()
    assert settings.host == "0.0.0.0"
    assert settings.port == 5000
    assert settings.reload is False
    assert settings.log_level == "info"
    assert settings.allowed_origins == ["http://localhost:5173", "http://127.0.0.1:5173"]
    assert settings.request_id_header == "x-request-id"
    assert settings.upload_dir is None
    assert settings.max_upload_bytes == 200 * 1024 * 1024
    assert settings.transcription_backend == "local"
    assert settings.whisper_command == "whisper"
    assert settings.whisper_model == "small"
    assert settings.whisper_language == "en"
    assert settings.summarizer_provider == "openrouter"
    assert settings.summarizer_api_key is None
    assert settings.request_timeout == 60.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MEETING_HOST", "127.0.0.1")
    monkeypatch.setenv("MEETING_PORT", "9999")
    monkeypatch.setenv("MEETING_RELOAD", "true")
    monkeypatch.setenv("MEETING_LOG_LEVEL", "debug")
    monkeypatch.setenv("MEETING_ALLOWED_ORIGINS", "http://example.com, http://localhost")
    monkeypatch.setenv("MEETING_REQUEST_ID_HEADER", "x-custom-id")
    monkeypatch.setenv("MEETING_UPLOAD_DIR", "/tmp/uploads")
    monkeypatch.setenv("MEETING_MAX_UPLOAD_BYTES", "1024")
    monkeypatch.setenv("MEETING_TRANSCRIPTION_BACKEND", "Remote")
    monkeypatch.setenv("MEETING_TRANSCRIPTION_TIMEOUT", "30")
    monkeypatch.setenv("MEETING_TRANSCRIPTION_API_KEY", "stt-key")
    monkeypatch.setenv("MEETING_REQUEST_TIMEOUT", "5.5")
    monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")

    settings = ServiceSettings.from_env()

    assert settings.host == "127.0.0.1"
    assert settings.port == 9999
    assert settings.reload is True
    assert settings.log_level == "debug"
    assert settings.allowed_origins == ["http://example.com", "http://localhost"]
    assert settings.request_id_header == "x-custom-id"
    assert settings.upload_dir == "/tmp/uploads"
    assert settings.max_upload_bytes == 1024
    assert settings.transcription_backend == "remote"
    assert settings.transcription_timeout == 30.0
    assert settings.transcription_api_key == "stt-key"
    assert settings.request_timeout == 5.5
    assert settings.summarizer_api_key == "router-key"


def test_transcription_key_falls_back_to_openrouter_key(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")

    settings = ServiceSettings.from_env()

    assert settings.transcription_api_key == "router-key"


def test_huggingface_provider_reads_its_own_key(monkeypatch):
    monkeypatch.setenv("MEETING_SUMMARIZER_PROVIDER", "huggingface")
    monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")
    monkeypatch.setenv("HF_API_KEY", "hf-key")

    settings = ServiceSettings.from_env()

    assert settings.summarizer_provider == "huggingface"
    assert settings.summarizer_api_key == "hf-key"


def test_blank_key_means_offline(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "   ")

    assert ServiceSettings.from_env().summarizer_api_key is None


def test_upload_limit_can_be_disabled(monkeypatch):
    monkeypatch.setenv("MEETING_MAX_UPLOAD_BYTES", "none")

    assert ServiceSettings.from_env().max_upload_bytes is None
