"""Marginalia configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site — not in this module)
  2. Environment variables  (MARGINALIA_DB, MARGINALIA_GENERATION_MODEL,
                             MARGINALIA_EMBEDDING_MODEL, MARGINALIA_OCR_MODEL,
                             MARGINALIA_VECTOR_INDEX)
  3. Per-project marginalia.yaml  (current directory)
  4. Global ~/.marginalia/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys or secrets; use environment variables.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".marginalia"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "marginalia.yaml"

# Key names that look like credentials — forbidden in global config.
# Does NOT match legitimate keys like max_tokens or scan_limit.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["storage", "embedding", "generation", "ocr", "speech", "search", "vector", "indexing"]
)

_FALSE_VALUES = frozenset(["0", "false", "off", "no", "disabled"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StorageCfg:
    """Where records and blobs live (marginalia.yaml: storage:).

    Attributes:
        db_path: SQLite database holding records and the vector index.
        blob_dir: Directory backing the local blob store.
        blob_base_url: Public prefix for signed blob URLs; empty means a
            ``file://`` URL of *blob_dir*.
    """

    db_path: str = ".marginalia.db"
    blob_dir: str = ".marginalia-blobs"
    blob_base_url: str = ""


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (marginalia.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536


@dataclass
class GenerationCfg:
    """LLM generation configuration (marginalia.yaml: generation:)."""

    model: str = "openai/gpt-4o-mini"
    max_tokens: int = 2048


@dataclass
class OcrCfg:
    """Vision model used to read text from snippet and cover photos."""

    model: str = "openai/gpt-4o-mini"


@dataclass
class SpeechCfg:
    """Text-to-speech configuration (marginalia.yaml: speech:)."""

    model: str = "openai/tts-1"
    voice: str = "conversational"


@dataclass
class SearchCfg:
    """Hybrid search configuration (marginalia.yaml: search:).

    Attributes:
        default_limit: Result count per list when the caller gives none.
        scan_limit: Number of most recent snippets the keyword path scans.
    """

    default_limit: int = 20
    scan_limit: int = 200


@dataclass
class VectorCfg:
    """Semantic index switch (marginalia.yaml: vector:)."""

    enabled: bool = True


@dataclass
class IndexingCfg:
    """Background indexing pool size (marginalia.yaml: indexing:)."""

    workers: int = 2


@dataclass
class MarginaliaConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    storage: StorageCfg = field(default_factory=StorageCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    ocr: OcrCfg = field(default_factory=OcrCfg)
    speech: SpeechCfg = field(default_factory=SpeechCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    vector: VectorCfg = field(default_factory=VectorCfg)
    indexing: IndexingCfg = field(default_factory=IndexingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _positive_int(value: Any, name: str) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if result < 1:
        raise ConfigError(f"{name} must be >= 1, got {result}")
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_VALUES
    return bool(value)


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> MarginaliaConfig:
    """Build a *MarginaliaConfig* from a merged raw YAML dict."""
    cfg = MarginaliaConfig()

    if "storage" in data:
        s = data["storage"] or {}
        cfg.storage = StorageCfg(
            db_path=str(s.get("db_path", cfg.storage.db_path)),
            blob_dir=str(s.get("blob_dir", cfg.storage.blob_dir)),
            blob_base_url=str(s.get("blob_base_url", cfg.storage.blob_base_url)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=_positive_int(
                e.get("dimensions", cfg.embedding.dimensions), "embedding.dimensions"
            ),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=_positive_int(
                g.get("max_tokens", cfg.generation.max_tokens), "generation.max_tokens"
            ),
        )

    if "ocr" in data:
        o = data["ocr"] or {}
        cfg.ocr = OcrCfg(model=str(o.get("model", cfg.ocr.model)))

    if "speech" in data:
        sp = data["speech"] or {}
        cfg.speech = SpeechCfg(
            model=str(sp.get("model", cfg.speech.model)),
            voice=str(sp.get("voice", cfg.speech.voice)),
        )

    if "search" in data:
        r = data["search"] or {}
        cfg.search = SearchCfg(
            default_limit=_positive_int(
                r.get("default_limit", cfg.search.default_limit), "search.default_limit"
            ),
            scan_limit=_positive_int(
                r.get("scan_limit", cfg.search.scan_limit), "search.scan_limit"
            ),
        )

    if "vector" in data:
        v = data["vector"] or {}
        cfg.vector = VectorCfg(enabled=_as_bool(v.get("enabled", cfg.vector.enabled)))

    if "indexing" in data:
        i = data["indexing"] or {}
        cfg.indexing = IndexingCfg(
            workers=_positive_int(i.get("workers", cfg.indexing.workers), "indexing.workers")
        )

    return cfg


def _apply_env_overrides(cfg: MarginaliaConfig) -> MarginaliaConfig:
    """Apply MARGINALIA_* environment variable overrides (layer 2)."""
    if db_path := os.environ.get("MARGINALIA_DB"):
        cfg.storage.db_path = db_path
    if model := os.environ.get("MARGINALIA_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("MARGINALIA_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("MARGINALIA_OCR_MODEL"):
        cfg.ocr.model = model
    if (flag := os.environ.get("MARGINALIA_VECTOR_INDEX")) is not None:
        cfg.vector.enabled = _as_bool(flag)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> MarginaliaConfig:
    """Load and return a merged *MarginaliaConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *marginalia.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *MarginaliaConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            numeric setting is not a positive integer.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.marginalia/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Marginalia global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "#   export MARGINALIA_BLOB_SECRET=...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "  dimensions: 1536\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o-mini\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
