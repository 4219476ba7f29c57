"""
Runtime Config Loader
=====================
Load engine configurations from JSON/YAML files and overlay them onto an
EngineConfig record.
"""

from __future__ import annotations

import json
from dataclasses import fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional

from econ_engine.config.constants import (
    DEFAULT_CONFIG,
    FORMULA_ERROR_POLICIES,
    EngineConfig,
    ParametricConstants,
)
from econ_engine.models.inputs import ComplexityTier, ProjectType, coerce_enum
from econ_engine.utils.exceptions import InvalidInputError


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        import yaml  # type: ignore
    except ImportError as exc:
        raise RuntimeError("PyYAML not installed. Install with `pip install pyyaml`.") from exc
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("YAML config must be a mapping at top level.")
    return data


def load_config_file(path: str) -> Dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = file_path.suffix.lower()
    if suffix in {".yml", ".yaml"}:
        return _load_yaml(file_path)
    if suffix == ".json":
        with file_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("JSON config must be an object at top level.")
        return data

    raise ValueError(f"Unsupported config format: {suffix}. Use .json or .yaml/.yml.")


def _overlay(record: Any, section: Dict[str, Any], section_name: str) -> Any:
    """dataclasses.replace() with unknown-key checking."""
    known = {f.name for f in fields(record)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise InvalidInputError(
            f"Unknown keys in '{section_name}' section",
            field=section_name,
            value=unknown,
        )
    return replace(record, **section)


def _parametric_constants(raw: Dict[str, Any], base) -> Any:
    merged = dict(base)
    for key, values in raw.items():
        project_type = coerce_enum(ProjectType, key, "estimation.parametric_constants")
        merged[project_type] = ParametricConstants(**values)
    return MappingProxyType(merged)


def _function_point_weights(raw: Dict[str, Any], base) -> Any:
    merged = {tier: dict(weights) for tier, weights in base.items()}
    for key, values in raw.items():
        tier = coerce_enum(ComplexityTier, key, "estimation.function_point_weights")
        merged[tier].update(values)
    return MappingProxyType({tier: MappingProxyType(w) for tier, w in merged.items()})


def build_engine_config(raw: Dict[str, Any], base: Optional[EngineConfig] = None) -> EngineConfig:
    """
    Normalize external config into an EngineConfig.

    Accepts top-level sections ``estimation``, ``financial``, ``risk`` and
    ``budgeting`` (upper-case spellings too); anything else at top level is
    ignored so a single file can also carry caller settings.
    """
    config = base or DEFAULT_CONFIG

    estimation = dict(raw.get("estimation") or raw.get("ESTIMATION") or {})
    if estimation:
        if "parametric_constants" in estimation:
            estimation["parametric_constants"] = _parametric_constants(
                estimation["parametric_constants"], config.estimation.parametric_constants
            )
        if "function_point_weights" in estimation:
            estimation["function_point_weights"] = _function_point_weights(
                estimation["function_point_weights"], config.estimation.function_point_weights
            )
        config = replace(config, estimation=_overlay(config.estimation, estimation, "estimation"))

    financial = dict(raw.get("financial") or raw.get("FINANCIAL") or {})
    if financial:
        if "scoring" in financial:
            scoring = dict(financial["scoring"])
            if "bands" in scoring:
                scoring["bands"] = tuple((int(score), str(label)) for score, label in scoring["bands"])
            financial["scoring"] = _overlay(config.financial.scoring, scoring, "financial.scoring")
        if "irr_bracket_grid" in financial:
            financial["irr_bracket_grid"] = tuple(financial["irr_bracket_grid"])
        config = replace(config, financial=_overlay(config.financial, financial, "financial"))

    risk = dict(raw.get("risk") or raw.get("RISK") or {})
    if risk:
        if "percentiles" in risk:
            risk["percentiles"] = tuple(risk["percentiles"])
        policy = risk.get("formula_error_policy")
        if policy is not None and policy not in FORMULA_ERROR_POLICIES:
            raise InvalidInputError(
                f"formula_error_policy must be one of {FORMULA_ERROR_POLICIES}",
                field="risk.formula_error_policy",
                value=policy,
            )
        config = replace(config, risk=_overlay(config.risk, risk, "risk"))

    budgeting = dict(raw.get("budgeting") or raw.get("BUDGETING") or {})
    if budgeting:
        config = replace(config, budgeting=_overlay(config.budgeting, budgeting, "budgeting"))

    return config
