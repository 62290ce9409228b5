import pytest

from voicekit.detect import detect_stt_model, detect_tts_model
from voicekit.errors import UnsupportedModelError
from voicekit.stt.recognizer import recognizer_kwargs
from voicekit.tts import model_config_kwargs
from voicekit.tts.backend import _SHERPA_MODEL_CONFIGS

from conftest import (
    FUNASR_NANO,
    KITTEN,
    KOKORO,
    MATCHA,
    NEMO_CTC,
    VITS_PIPER,
    VITS_PLAIN,
    WHISPER,
    ZIPVOICE,
)


def test_vits_config(make_model_dir):
    detect = detect_tts_model(make_model_dir(VITS_PIPER))
    kwargs = model_config_kwargs(detect, noise_scale=0.667, noise_scale_w=0.8, length_scale=None)

    assert kwargs["model"].endswith("en_US-amy-low.onnx")
    assert kwargs["tokens"].endswith("tokens.txt")
    assert kwargs["data_dir"].endswith("espeak-ng-data")
    assert kwargs["lexicon"] == ""
    assert kwargs["noise_scale"] == pytest.approx(0.667)
    assert kwargs["noise_scale_w"] == pytest.approx(0.8)
    assert "length_scale" not in kwargs
    assert "voices" not in kwargs


def test_kokoro_ignores_noise_tuning(make_model_dir):
    detect = detect_tts_model(make_model_dir(KOKORO))
    kwargs = model_config_kwargs(detect, noise_scale=0.3, length_scale=1.1)

    assert set(kwargs) == {
        "model",
        "voices",
        "tokens",
        "lexicon",
        "data_dir",
        "dict_dir",
        "length_scale",
    }
    assert kwargs["data_dir"].endswith("espeak-ng-data")
    assert kwargs["length_scale"] == pytest.approx(1.1)


def test_matcha_config(make_model_dir):
    kwargs = model_config_kwargs(detect_tts_model(make_model_dir(MATCHA)))

    assert set(kwargs) == {"acoustic_model", "vocoder", "tokens", "lexicon", "data_dir", "dict_dir"}
    assert kwargs["lexicon"] == ""
    assert kwargs["dict_dir"] == ""


def test_zipvoice_field_names(make_model_dir):
    kwargs = model_config_kwargs(detect_tts_model(make_model_dir(ZIPVOICE)))

    assert kwargs["encoder"].endswith("text_encoder.onnx")
    assert kwargs["decoder"].endswith("fm_decoder.onnx")
    assert kwargs["vocoder"].endswith("vocos_24khz.onnx")


def test_failed_detection_has_no_config(tmp_path):
    with pytest.raises(UnsupportedModelError):
        model_config_kwargs(detect_tts_model(tmp_path))


@pytest.mark.parametrize("layout", [VITS_PIPER, VITS_PLAIN, KOKORO, KITTEN, MATCHA, ZIPVOICE])
def test_runtime_accepts_model_config(make_model_dir, layout):
    sherpa_onnx = pytest.importorskip("sherpa_onnx")
    detect = detect_tts_model(make_model_dir(layout))
    assert detect.ok, detect.error

    _, class_name, _ = _SHERPA_MODEL_CONFIGS[detect.selected_kind]
    config = getattr(sherpa_onnx, class_name)(**model_config_kwargs(detect))
    assert config is not None


def test_recognizer_kwargs(make_model_dir):
    whisper = recognizer_kwargs(detect_stt_model(make_model_dir(WHISPER)))
    assert set(whisper) == {"encoder", "decoder", "tokens"}
    assert whisper["encoder"].endswith("tiny.en-encoder.onnx")

    nemo = recognizer_kwargs(detect_stt_model(make_model_dir(NEMO_CTC)))
    assert set(nemo) == {"model", "tokens"}

    funasr = recognizer_kwargs(detect_stt_model(make_model_dir(FUNASR_NANO)))
    assert set(funasr) == {"encoder_adaptor", "llm", "embedding", "tokenizer"}
    assert funasr["tokenizer"].endswith("Qwen3-0.6B")
