import stat
import sys
from pathlib import Path

import pytest

from ppocr_pipe import EngineConfig, EngineProcess

FAKE_ENGINE_SOURCE = Path(__file__).with_name("fake_engine.py")


@pytest.fixture
def make_engine(tmp_path):
    """
    Write the fake engine as an executable script in its own directory and
    return its path. Spawning goes through the real supervisor code.
    """
    if sys.platform == "win32":
        pytest.skip("fake engine relies on a shebang launcher")

    def _make(name: str = "PaddleOCR_json") -> Path:
        engine_dir = tmp_path / "engine"
        engine_dir.mkdir(exist_ok=True)
        exe = engine_dir / name
        exe.write_text(f"#!{sys.executable}\n" + FAKE_ENGINE_SOURCE.read_text(encoding="utf-8"), encoding="utf-8")
        exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return exe

    return _make


@pytest.fixture
def engine_config(make_engine):
    """
    Build an EngineConfig pointing at a fresh fake engine; keyword arguments
    become config fields, ``fake`` entries become ``--fake-*`` arguments.
    """

    def _config(fake=None, **fields) -> EngineConfig:
        extra = [f"--fake-{k}={v}" for k, v in (fake or {}).items()]
        fields.setdefault("init_timeout", 10.0)
        fields.setdefault("request_timeout", 10.0)
        return EngineConfig(executable=make_engine(), extra_args=tuple(extra), **fields)

    return _config


@pytest.fixture
def started_processes(monkeypatch):
    """Record every EngineProcess started during the test."""
    started = []
    original = EngineProcess.start.__func__

    def _spy(cls, *args, **kwargs):
        proc = original(cls, *args, **kwargs)
        started.append(proc)
        return proc

    monkeypatch.setattr(EngineProcess, "start", classmethod(_spy))
    yield started
    for proc in started:
        proc.terminate()


@pytest.fixture(autouse=True)
def _clear_ppocr_env(monkeypatch):
    for name in (
        "PPOCR_EXE",
        "PPOCR_INIT_ATTEMPTS",
        "PPOCR_INIT_TIMEOUT",
        "PPOCR_REQUEST_TIMEOUT",
        "PPOCR_FLUSH_BANNER",
        "PPOCR_CONFIG_PATH",
        "PPOCR_EXTRA_ARGS",
        "PPOCR_WORKDIR",
        "PPOCR_DET_MODEL_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
