"""Parsers and path helpers for generator option values.

Every parser raises ``ValueError`` with a message naming the raw value, the
option and where the value came from (a configuration line or the command line).
"""

from __future__ import annotations

import math
import os
import re
from enum import Enum
from typing import TypeVar

from blastwave.models import (
    AffineEffectiveMode,
    CooperFryeWeightMode,
    DensityEvolutionMode,
    FlowVelocitySamplerMode,
    ThermalSamplerMode,
)


class V2PtOutputMode(Enum):
    """Where the differential v2{2}(pT) payload is written."""

    SAME_FILE = "same-file"
    SEPARATE_FILE = "separate-file"


_SPACE = r"[ \t\n\v\f\r]*"
_INT_RE = re.compile(_SPACE + r"([+-]?\d+)")
_UNSIGNED_RE = re.compile(_SPACE + r"([+-]?)(\d+)")
_DECIMAL_RE = re.compile(_SPACE + r"([+-]?)((?:\d+\.?\d*|\.\d+))([eE][+-]?\d+)?")
_HEX_RE = re.compile(
    _SPACE + r"([+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?\d+)?)"
)
_SPECIAL_RE = re.compile(
    _SPACE + r"([+-]?)(inf(?:inity)?|nan(?:\([0-9A-Za-z_]*\))?)", re.IGNORECASE
)

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_UINT64_LIMIT = 2**64

_E = TypeVar("_E", bound=Enum)


def _invalid(raw_value: str, option_name: str, source: str, detail: str = "") -> ValueError:
    return ValueError(f"Invalid value '{raw_value}' for '{option_name}' from {source}{detail}")


def _trim(text: str) -> str:
    return text.strip(" \t\r\n")


def parse_int(raw_value: str, option_name: str, source: str) -> int:
    """Parse a 32-bit signed decimal integer; the whole value must be consumed."""
    match = _INT_RE.fullmatch(raw_value)
    if match is None:
        raise _invalid(raw_value, option_name, source)
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise _invalid(raw_value, option_name, source)
    return value


def parse_float(raw_value: str, option_name: str, source: str) -> float:
    """Parse a floating-point value (decimal, hexadecimal, inf or nan)."""
    match = _DECIMAL_RE.fullmatch(raw_value)
    if match is not None:
        sign, mantissa, exponent = match.groups()
        value = float(sign + mantissa + (exponent or ""))
        if math.isinf(value):
            raise _invalid(raw_value, option_name, source)
        if value == 0.0 and any(digit in "123456789" for digit in mantissa):
            raise _invalid(raw_value, option_name, source)
        return value

    match = _HEX_RE.fullmatch(raw_value)
    if match is not None:
        try:
            return float.fromhex(match.group(1))
        except OverflowError as error:
            raise _invalid(raw_value, option_name, source) from error

    match = _SPECIAL_RE.fullmatch(raw_value)
    if match is not None:
        sign, word = match.groups()
        magnitude = math.nan if word.lower().startswith("nan") else math.inf
        return -magnitude if sign == "-" else magnitude

    raise _invalid(raw_value, option_name, source)


def parse_unsigned(raw_value: str, option_name: str, source: str) -> int:
    """Parse an unsigned 64-bit decimal integer; a leading '-' is rejected."""
    if raw_value.startswith("-"):
        raise _invalid(raw_value, option_name, source)
    match = _UNSIGNED_RE.fullmatch(raw_value)
    if match is None:
        raise _invalid(raw_value, option_name, source)
    sign, digits = match.groups()
    magnitude = int(digits)
    if magnitude >= _UINT64_LIMIT:
        raise _invalid(raw_value, option_name, source)
    # A sign after leading whitespace wraps modulo 2**64, as unsigned conversion does.
    return (-magnitude) % _UINT64_LIMIT if sign == "-" else magnitude


def parse_bool(raw_value: str, option_name: str, source: str) -> bool:
    """Accept exactly 'true' or 'false'."""
    if raw_value == "true":
        return True
    if raw_value == "false":
        return False
    raise _invalid(raw_value, option_name, source, ". Expected 'true' or 'false'.")


def _parse_choice(
    raw_value: str, option_name: str, source: str, choices: dict[str, _E], expected: str
) -> _E:
    try:
        return choices[raw_value]
    except KeyError:
        raise _invalid(raw_value, option_name, source, f". Expected {expected}.") from None


def parse_thermal_sampler_mode(raw_value: str, option_name: str, source: str) -> ThermalSamplerMode:
    """Parse 'maxwell-juttner' or 'gamma'."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {
            "maxwell-juttner": ThermalSamplerMode.MAXWELL_JUTTNER,
            "gamma": ThermalSamplerMode.GAMMA,
        },
        "'maxwell-juttner' or 'gamma'",
    )


def parse_flow_velocity_sampler_mode(
    raw_value: str, option_name: str, source: str
) -> FlowVelocitySamplerMode:
    """Parse one of the four flow-velocity sampler names."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {
            "covariance-ellipse": FlowVelocitySamplerMode.COVARIANCE_ELLIPSE,
            "density-normal": FlowVelocitySamplerMode.DENSITY_NORMAL,
            "gradient-response": FlowVelocitySamplerMode.GRADIENT_RESPONSE,
            "affine-effective": FlowVelocitySamplerMode.AFFINE_EFFECTIVE,
        },
        "'covariance-ellipse', 'density-normal', 'gradient-response', or 'affine-effective'",
    )


def parse_affine_effective_mode(raw_value: str, option_name: str, source: str) -> AffineEffectiveMode:
    """Parse 'additive-rho' or 'full-tensor'."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {
            "additive-rho": AffineEffectiveMode.ADDITIVE_RHO,
            "full-tensor": AffineEffectiveMode.FULL_TENSOR,
        },
        "'additive-rho' or 'full-tensor'",
    )


def parse_density_evolution_mode(raw_value: str, option_name: str, source: str) -> DensityEvolutionMode:
    """Parse 'affine-gaussian', 'none' or 'gradient-response'."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {
            "affine-gaussian": DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE,
            "none": DensityEvolutionMode.NONE,
            "gradient-response": DensityEvolutionMode.GRADIENT_RESPONSE,
        },
        "'affine-gaussian', 'none', or 'gradient-response'",
    )


def parse_cooper_frye_weight_mode(raw_value: str, option_name: str, source: str) -> CooperFryeWeightMode:
    """Parse 'none' or 'mt-cosh'."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {"none": CooperFryeWeightMode.NONE, "mt-cosh": CooperFryeWeightMode.MT_COSH},
        "'none' or 'mt-cosh'",
    )


def parse_v2pt_output_mode(raw_value: str, option_name: str, source: str) -> V2PtOutputMode:
    """Parse 'same-file' or 'separate-file'."""
    return _parse_choice(
        raw_value,
        option_name,
        source,
        {"same-file": V2PtOutputMode.SAME_FILE, "separate-file": V2PtOutputMode.SEPARATE_FILE},
        "'same-file' or 'separate-file'",
    )


def parse_v2pt_bin_edges(raw_value: str, option_name: str, source: str) -> list[float]:
    """Parse a comma-separated list of at least two finite, non-negative, increasing edges."""
    edges: list[float] = []
    for raw_token in raw_value.split(","):
        token = _trim(raw_token)
        if not token:
            raise _invalid(raw_value, option_name, source, ". Empty pT edge token.")
        edge = parse_float(token, option_name, source)
        if not math.isfinite(edge) or edge < 0.0:
            raise _invalid(
                raw_value, option_name, source, ". Edges must be finite and non-negative."
            )
        edges.append(edge)

    if len(edges) < 2:
        raise _invalid(raw_value, option_name, source, ". At least two edges are required.")
    if any(not upper > lower for lower, upper in zip(edges, edges[1:])):
        raise _invalid(raw_value, option_name, source, ". Edges must be strictly increasing.")
    return edges


def _lexically_normal(path: str) -> str:
    """Normalise a path textually, keeping an empty path empty and a trailing separator."""
    if not path:
        return ""
    normalized = os.path.normpath(path)
    if normalized.startswith("//") and not normalized.startswith("///"):
        normalized = normalized[1:]

    separators = tuple(sep for sep in (os.sep, os.altsep) if sep)
    last = re.split("|".join(re.escape(sep) for sep in separators), path)[-1]
    directory_like = last in ("", ".", "..")
    if (
        directory_like
        and normalized not in (".", os.sep)
        and not normalized.endswith(separators)
        and os.path.basename(normalized) != ".."
    ):
        normalized += os.sep
    return normalized


def resolve_output_path(raw_value: str, base_directory: str | os.PathLike[str]) -> str:
    """Resolve a relative output path against ``base_directory`` and normalise it."""
    if not raw_value:
        raise ValueError("Output path must not be empty.")
    if os.path.isabs(raw_value):
        return _lexically_normal(raw_value)
    return _lexically_normal(os.path.join(os.fspath(base_directory), raw_value))


def derive_default_v2pt_output_path(main_output_path: str | os.PathLike[str]) -> str:
    """Return ``<dir>/<stem>_v2pt.root`` next to the main output file."""
    main_path = os.fspath(main_output_path)
    parent, file_name = os.path.split(main_path)
    stem = os.path.splitext(file_name)[0]
    return _lexically_normal(os.path.join(parent, stem + "_v2pt.root"))