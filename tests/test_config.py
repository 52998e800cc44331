import json

import pytest
from pydantic import ValidationError

from apps.encoder.config import Config
from apps.encoder.settings import PROJECT_ROOT, Settings


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="bootstrap"):
        Config.load(Settings(_env_file=None), config_path=tmp_path / "nope.json")


def test_properties(config, tmp_path):
    assert config.providers == ["CPUExecutionProvider"]
    assert config.intra_op_threads == 1
    assert config.model_path == tmp_path / "encodec_model.onnx"
    assert config.hardware == {"providers": ["CPUExecutionProvider"]}


def test_defaults_when_selection_is_empty(tmp_path):
    path = tmp_path / "encoder.config.json"
    path.write_text(json.dumps({}), encoding="utf-8")
    settings = Settings(_env_file=None)

    config = Config.load(settings, config_path=path)

    assert config.providers == ["CPUExecutionProvider"]
    assert config.intra_op_threads is None
    assert config.model_path == PROJECT_ROOT / "models" / "encodec_model.onnx"


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("ENCODER_SERVICE_URL", "http://decoder.internal:9000")
    monkeypatch.setenv("ENCODER_REQUEST_TIMEOUT", "5")

    settings = Settings(_env_file=None)

    assert settings.service_url == "http://decoder.internal:9000"
    assert settings.request_timeout == 5.0


def test_output_names_must_be_set_together():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, tokens_output="audio_codes")

    settings = Settings(_env_file=None, tokens_output="audio_codes", scales_output="audio_scales")
    assert settings.output_names == ("audio_codes", "audio_scales")
    assert Settings(_env_file=None).output_names is None


def test_resolve_keeps_absolute_paths(tmp_path):
    settings = Settings(_env_file=None)

    assert settings.resolve(tmp_path) == tmp_path
    assert settings.resolve(settings.config_path) == PROJECT_ROOT / "apps" / "encoder" / "encoder.config.json"
