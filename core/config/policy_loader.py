"""Policy loading utilities for the revision engine."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import EnginePolicy


def load_policy(path: Path | None = None) -> EnginePolicy:
    """Load and validate engine policy from YAML."""

    policy_path = path or Path(__file__).with_name("policy.yaml")

    try:
        raw = yaml.safe_load(policy_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Policy file not found: {policy_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in policy file: {policy_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Policy file must contain a mapping: {policy_path}")

    normalized = _normalize_stop_words(raw, policy_path)

    try:
        return EnginePolicy.model_validate(normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid policy schema: {policy_path}") from exc


def _normalize_stop_words(raw: dict[object, object], policy_path: Path) -> dict[object, object]:
    normalized = dict(raw)
    excerpts = normalized.get("excerpts")
    if not isinstance(excerpts, dict):
        return normalized

    stop_words = excerpts.get("stop_words")
    if stop_words is None:
        return normalized
    if not isinstance(stop_words, list):
        raise ValueError(f"excerpts.stop_words must be a list in {policy_path}")

    excerpts = dict(excerpts)
    excerpts["stop_words"] = [str(word).strip().lower() for word in stop_words if str(word).strip()]
    normalized["excerpts"] = excerpts
    return normalized
