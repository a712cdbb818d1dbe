from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple, Union

INIT_COMPLETED_MARKER = "OCR init completed."
# PaddleOCR-json spells it "dose not exist" in some releases
NOT_EXIST_MARKERS = ("not exist",)


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(float(v))
    except ValueError:
        return default


def _env_timeout(name: str, default: Optional[float]) -> Optional[float]:
    """Seconds; "0", "none" or a negative value disable the deadline."""
    v = os.getenv(name)
    if v is None:
        return default
    if v.strip().lower() in {"", "none", "off"}:
        return None
    try:
        value = float(v)
    except ValueError:
        return default
    return value if value > 0 else None


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip()


@dataclass(frozen=True)
class EngineConfig:
    executable: Optional[Union[str, Path]] = None
    # model assets, resolved by the engine relative to its own directory
    det_model_dir: str = "ch_PP-OCRv3_det_infer"
    cls_model_dir: str = "ch_ppocr_mobile_v2.0_cls_infer"
    rec_model_dir: str = "ch_PP-OCRv3_rec_infer"
    rec_char_dict_path: str = "ppocr_keys_v1.txt"
    config_path: Optional[str] = None
    extra_args: Tuple[str, ...] = field(default_factory=tuple)
    working_directory: Optional[Union[str, Path]] = None
    # handshake
    init_attempts: int = 8
    init_timeout: Optional[float] = 30.0
    flush_banner: bool = False
    # per request; None waits forever
    request_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.init_attempts < 1:
            raise ValueError("init_attempts must be at least 1")
        object.__setattr__(self, "extra_args", tuple(self.extra_args))

    def engine_args(self) -> List[str]:
        args = [
            f"--det_model_dir={self.det_model_dir}",
            f"--cls_model_dir={self.cls_model_dir}",
            f"--rec_model_dir={self.rec_model_dir}",
            f"--rec_char_dict_path={self.rec_char_dict_path}",
        ]
        if self.config_path:
            args.append(f"--config_path={self.config_path}")
        args.extend(self.extra_args)
        return args

    def with_overrides(self, **changes) -> "EngineConfig":
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


def load_engine_config(**overrides) -> EngineConfig:
    """Build an :class:`EngineConfig` from ``PPOCR_*`` environment variables.

    Keyword arguments that are not ``None`` win over the environment.
    """
    defaults = EngineConfig()
    extra = _env_str("PPOCR_EXTRA_ARGS", None)
    config = EngineConfig(
        executable=_env_str("PPOCR_EXE", None),
        det_model_dir=_env_str("PPOCR_DET_MODEL_DIR", defaults.det_model_dir),
        cls_model_dir=_env_str("PPOCR_CLS_MODEL_DIR", defaults.cls_model_dir),
        rec_model_dir=_env_str("PPOCR_REC_MODEL_DIR", defaults.rec_model_dir),
        rec_char_dict_path=_env_str("PPOCR_REC_CHAR_DICT", defaults.rec_char_dict_path),
        config_path=_env_str("PPOCR_CONFIG_PATH", None),
        extra_args=tuple(shlex.split(extra)) if extra else (),
        working_directory=_env_str("PPOCR_WORKDIR", None),
        init_attempts=max(1, _env_int("PPOCR_INIT_ATTEMPTS", defaults.init_attempts)),
        init_timeout=_env_timeout("PPOCR_INIT_TIMEOUT", defaults.init_timeout),
        flush_banner=_env_bool("PPOCR_FLUSH_BANNER", defaults.flush_banner),
        request_timeout=_env_timeout("PPOCR_REQUEST_TIMEOUT", defaults.request_timeout),
    )
    return config.with_overrides(**overrides)


def is_ready_line(line: str) -> bool:
    if INIT_COMPLETED_MARKER in line:
        return True
    lowered = line.lower()
    return any(marker in lowered for marker in NOT_EXIST_MARKERS)


__all__ = [
    "INIT_COMPLETED_MARKER",
    "NOT_EXIST_MARKERS",
    "EngineConfig",
    "load_engine_config",
    "is_ready_line",
]
