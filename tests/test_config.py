import unittest

import pytest

from ppocr_pipe.config import EngineConfig, is_ready_line, load_engine_config


class TestEngineConfig(unittest.TestCase):
    def test_engine_args_default(self):
        args = EngineConfig(executable="x").engine_args()
        self.assertEqual(
            args,
            [
                "--det_model_dir=ch_PP-OCRv3_det_infer",
                "--cls_model_dir=ch_ppocr_mobile_v2.0_cls_infer",
                "--rec_model_dir=ch_PP-OCRv3_rec_infer",
                "--rec_char_dict_path=ppocr_keys_v1.txt",
            ],
        )

    def test_engine_args_with_config_and_extra(self):
        config = EngineConfig(config_path="models/config_japan.txt", extra_args=["--use_gpu=0"])
        args = config.engine_args()
        self.assertEqual(args[-2:], ["--config_path=models/config_japan.txt", "--use_gpu=0"])
        self.assertIsInstance(config.extra_args, tuple)

    def test_init_attempts_must_be_positive(self):
        with self.assertRaises(ValueError):
            EngineConfig(init_attempts=0)

    def test_with_overrides_ignores_none(self):
        config = EngineConfig(executable="a", init_attempts=5)
        updated = config.with_overrides(executable=None, init_attempts=10)
        self.assertEqual(updated.executable, "a")
        self.assertEqual(updated.init_attempts, 10)


class TestReadyLine(unittest.TestCase):
    def test_marker(self):
        self.assertTrue(is_ready_line("OCR init completed."))
        self.assertTrue(is_ready_line("PaddleOCR-json v1.2.1OCR init completed."))

    def test_not_exist_diagnostic(self):
        self.assertTrue(is_ready_line('{"code":200,"data":"Image path dose not exist. Path: \\"\\""}'))
        self.assertTrue(is_ready_line("Image path does NOT EXIST"))

    def test_noise(self):
        self.assertFalse(is_ready_line("PaddleOCR-json v1.3.0"))
        self.assertFalse(is_ready_line(""))


def test_load_engine_config_respects_env(monkeypatch):
    monkeypatch.setenv("PPOCR_EXE", "/opt/ppocr/PaddleOCR_json")
    monkeypatch.setenv("PPOCR_INIT_ATTEMPTS", "20")
    monkeypatch.setenv("PPOCR_INIT_TIMEOUT", "none")
    monkeypatch.setenv("PPOCR_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("PPOCR_FLUSH_BANNER", "yes")
    monkeypatch.setenv("PPOCR_EXTRA_ARGS", "--use_gpu=0 --limit_side_len=960")
    config = load_engine_config()
    assert config.executable == "/opt/ppocr/PaddleOCR_json"
    assert config.init_attempts == 20
    assert config.init_timeout is None
    assert config.request_timeout == pytest.approx(2.5)
    assert config.flush_banner is True
    assert config.extra_args == ("--use_gpu=0", "--limit_side_len=960")


def test_load_engine_config_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("PPOCR_INIT_ATTEMPTS", "many")
    monkeypatch.setenv("PPOCR_REQUEST_TIMEOUT", "soon")
    monkeypatch.setenv("PPOCR_INIT_TIMEOUT", "-1")
    config = load_engine_config()
    assert config.init_attempts == 8
    assert config.request_timeout is None
    assert config.init_timeout is None


def test_load_engine_config_overrides_win(monkeypatch):
    monkeypatch.setenv("PPOCR_INIT_ATTEMPTS", "20")
    config = load_engine_config(init_attempts=3, executable="engine.exe")
    assert config.init_attempts == 3
    assert config.executable == "engine.exe"
