"""Run options of the event generator: configuration file, command line and their precedence.

Explicit command-line options win over configuration-file values, which win
over the built-in defaults of :class:`~blastwave.models.BlastWaveConfig`.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from blastwave.models import BlastWaveConfig
from blastwave.option_values import (
    V2PtOutputMode,
    derive_default_v2pt_output_path,
    parse_affine_effective_mode,
    parse_bool,
    parse_cooper_frye_weight_mode,
    parse_density_evolution_mode,
    parse_float,
    parse_flow_velocity_sampler_mode,
    parse_int,
    parse_thermal_sampler_mode,
    parse_unsigned,
    parse_v2pt_bin_edges,
    parse_v2pt_output_mode,
    resolve_output_path,
)
from blastwave.progress import ProgressMode


@dataclass
class RunOptions:
    """Everything one generator run needs besides the events themselves."""

    config: BlastWaveConfig = field(default_factory=BlastWaveConfig)
    output_path: str = "blastwave.root"
    progress_mode: ProgressMode = ProgressMode.AUTO
    v2pt_bin_edges: list[float] = field(default_factory=list)
    v2pt_output_mode: V2PtOutputMode = V2PtOutputMode.SAME_FILE
    v2pt_output_path: str = ""


@dataclass(frozen=True)
class ParsedRunOptions:
    """Result of parsing the command line; ``show_help`` is set for ``--help``."""

    run_options: RunOptions
    show_help: bool = False


_Parser = Callable[[str, str, str], Any]

# Option name -> (BlastWaveConfig attribute, value parser).
_CONFIG_FIELDS: dict[str, tuple[str, _Parser]] = {
    "nevents": ("n_events", parse_int),
    "b": ("impact_parameter", parse_float),
    "temperature": ("temperature", parse_float),
    "thermal-sampler": ("thermal_sampler_mode", parse_thermal_sampler_mode),
    "mj-pmax": ("mj_pmax", parse_float),
    "mj-grid-points": ("mj_grid_points", parse_int),
    "tau0": ("tau0", parse_float),
    "smear": ("smear_sigma", parse_float),
    "sigma-nn": ("sigma_nn", parse_float),
    "seed": ("seed", parse_unsigned),
    "rho0": ("rho0", parse_float),
    "kappa2": ("kappa2", parse_float),
    "flow-power": ("flow_power", parse_float),
    "flow-velocity-sampler": ("flow_velocity_sampler_mode", parse_flow_velocity_sampler_mode),
    "density-evolution": ("density_evolution_mode", parse_density_evolution_mode),
    "flow-density-sigma": ("flow_density_sigma", parse_float),
    "affine-lambda-in": ("affine_lambda_in", parse_float),
    "affine-lambda-out": ("affine_lambda_out", parse_float),
    "affine-sigma-evo": ("affine_sigma_evo", parse_float),
    "affine-delta-tau-ref": ("affine_delta_tau_ref", parse_float),
    "affine-kappa-flow": ("affine_kappa_flow", parse_float),
    "affine-kappa-aniso": ("affine_kappa_aniso", parse_float),
    "affine-u-max": ("affine_u_max", parse_float),
    "affine-effective-mode": ("affine_effective_mode", parse_affine_effective_mode),
    "density-normal-kappa-compensation": ("density_normal_kappa_compensation", parse_bool),
    "debug-flow-ellipse": ("debug_flow_ellipse", parse_bool),
    "debug-gradient-response": ("debug_gradient_response", parse_bool),
    "sigma-eta": ("sigma_eta", parse_float),
    "eta-plateau": ("eta_plateau_half_width", parse_float),
    "nbd-mu": ("nbd_mu", parse_float),
    "nbd-k": ("nbd_k", parse_float),
    "gradient-sigma-em": ("gradient_sigma_em", parse_float),
    "gradient-sigma-dyn": ("gradient_sigma_dyn", parse_float),
    "gradient-density-floor-fraction": ("gradient_density_floor_fraction", parse_float),
    "gradient-density-cutoff-fraction": ("gradient_density_cutoff_fraction", parse_float),
    "gradient-displacement-max": ("gradient_displacement_max", parse_float),
    "gradient-displacement-kappa": ("gradient_displacement_kappa", parse_float),
    "gradient-diffusion-sigma": ("gradient_diffusion_sigma", parse_float),
    "gradient-vmax": ("gradient_vmax", parse_float),
    "gradient-velocity-kappa": ("gradient_velocity_kappa", parse_float),
    "cooper-frye-weight": ("cooper_frye_weight_mode", parse_cooper_frye_weight_mode),
}

_DEPRECATED_MIGRATIONS = {
    "vmax": "vmax -> rho0 = atanh(vmax).",
    "rho2": "rho2 -> kappa2.",
    "r-ref": "r-ref -> absorbed by event-ellipse semi-axes.",
}

# Value-less command-line switches: flag -> (target attribute name, value).
_SWITCHES: dict[str, tuple[str, Any]] = {
    "--progress": ("progress_mode", ProgressMode.ENABLED),
    "--no-progress": ("progress_mode", ProgressMode.DISABLED),
    "--debug-flow-ellipse": ("debug_flow_ellipse", True),
    "--no-debug-flow-ellipse": ("debug_flow_ellipse", False),
    "--debug-gradient-response": ("debug_gradient_response", True),
    "--no-debug-gradient-response": ("debug_gradient_response", False),
    "--density-normal-kappa-compensation": ("density_normal_kappa_compensation", True),
    "--no-density-normal-kappa-compensation": ("density_normal_kappa_compensation", False),
}


def _trim(text: str) -> str:
    return text.strip(" \t\r\n")


def apply_option(
    run_options: RunOptions,
    option_name: str,
    raw_value: str,
    source: str,
    base_directory: str | os.PathLike[str],
) -> None:
    """Apply one configuration key or command-line option to ``run_options``.

    Raises ``ValueError`` for unknown or deprecated keys and invalid values.
    """
    if option_name in _CONFIG_FIELDS:
        attribute, parser = _CONFIG_FIELDS[option_name]
        setattr(run_options.config, attribute, parser(raw_value, option_name, source))
    elif option_name == "output":
        run_options.output_path = resolve_output_path(raw_value, base_directory)
    elif option_name == "v2pt-bins":
        run_options.v2pt_bin_edges = parse_v2pt_bin_edges(raw_value, option_name, source)
    elif option_name == "v2pt-output-mode":
        run_options.v2pt_output_mode = parse_v2pt_output_mode(raw_value, option_name, source)
    elif option_name == "v2pt-output":
        run_options.v2pt_output_path = resolve_output_path(raw_value, base_directory)
    elif option_name == "progress":
        enabled = parse_bool(raw_value, option_name, source)
        run_options.progress_mode = ProgressMode.ENABLED if enabled else ProgressMode.DISABLED
    elif option_name in _DEPRECATED_MIGRATIONS:
        raise ValueError(
            f"Invalid option/key '{option_name}' from {source}. "
            f"Migration: {_DEPRECATED_MIGRATIONS[option_name]}"
        )
    else:
        raise ValueError(f"Unknown option/key '{option_name}' from {source}")


def load_config_file(config_path: str | os.PathLike[str], run_options: RunOptions) -> None:
    """Apply every ``key = value`` line of a configuration file to ``run_options``.

    Blank lines and full-line ``#`` comments are skipped; relative output paths
    resolve against the file's directory. Raises ``OSError`` if the file cannot
    be opened and ``ValueError`` for malformed or duplicate lines.
    """
    path_text = os.fspath(config_path)
    try:
        with open(path_text, encoding="utf-8") as config_file:
            contents = config_file.read()
    except OSError as error:
        raise OSError(f"Failed to open configuration file: {path_text}") from error

    base_directory = os.path.dirname(path_text)
    seen_keys: set[str] = set()
    for line_number, line in enumerate(contents.split("\n"), start=1):
        trimmed = _trim(line)
        if not trimmed or trimmed.startswith("#"):
            continue

        key, separator, value = trimmed.partition("=")
        if not separator:
            raise ValueError(
                f"Invalid configuration line {line_number} in {path_text}: expected key=value"
            )
        key = _trim(key)
        value = _trim(value)
        if not key:
            raise ValueError(f"Empty configuration key on line {line_number} in {path_text}")
        if key in seen_keys:
            raise ValueError(
                f"Duplicate configuration key '{key}' on line {line_number} in {path_text}"
            )
        seen_keys.add(key)

        apply_option(
            run_options,
            key,
            value,
            f"configuration file '{path_text}' line {line_number}",
            base_directory,
        )


def format_generate_usage(program_name: str) -> str:
    """Return the usage text of the generator command."""
    lines = [
        f"Usage: {program_name} [options]",
        f"       {program_name} --config <path> [options]",
        f"       {program_name} <config-path> [options]",
        "Option precedence:",
        "  explicit CLI options > configuration file values > built-in defaults",
        "Configuration file format:",
        "  - plain text with one 'key = value' entry per line",
        "  - blank lines and full-line '#' comments are ignored",
        "  - relative output paths in config files are resolved against the",
        "    config file directory",
        "Minimal config example:",
        "  nevents = 5000",
        "  b = 8",
        "  progress = true",
        "  output = qa/test_b8_5000.root",
        "Configuration keys:",
        "  nevents, b, temperature, thermal-sampler, mj-pmax, mj-grid-points,",
        "  tau0, smear, sigma-nn, seed, output,",
        "  v2pt-bins, v2pt-output-mode, v2pt-output,",
        "  progress,",
        "  rho0, kappa2, flow-power, flow-velocity-sampler, density-evolution,",
        "  flow-density-sigma, affine-lambda-in, affine-lambda-out,",
        "  affine-sigma-evo, affine-delta-tau-ref, affine-kappa-flow,",
        "  affine-kappa-aniso, affine-u-max, affine-effective-mode,",
        "  density-normal-kappa-compensation,",
        "  gradient-sigma-em, gradient-sigma-dyn,",
        "  gradient-density-floor-fraction, gradient-density-cutoff-fraction,",
        "  gradient-displacement-max, gradient-displacement-kappa,",
        "  gradient-diffusion-sigma, gradient-vmax, gradient-velocity-kappa,",
        "  cooper-frye-weight,",
        "  debug-flow-ellipse, debug-gradient-response,",
        "  sigma-eta, eta-plateau, nbd-mu, nbd-k",
        "Primary options:",
        "  --nevents <int>",
        "  --b <fm>",
        "  --temperature <GeV>",
        "  --thermal-sampler <maxwell-juttner|gamma>",
        "  --mj-pmax <GeV>",
        "  --mj-grid-points <int>",
        "  --tau0 <fm/c>",
        "  --smear <fm>",
        "  --sigma-nn <fm^2>   default 7.0 fm^2 (70 mb)",
        "  --seed <uint64>",
        "  --output <path>",
        "  --v2pt-bins <comma-separated edges>",
        "  --v2pt-output-mode <same-file|separate-file>",
        "  --v2pt-output <path>  (only with separate-file mode)",
        "  --progress",
        "  --no-progress",
        "  --debug-flow-ellipse",
        "  --no-debug-flow-ellipse",
        "  --debug-gradient-response",
        "  --no-debug-gradient-response",
        "  --density-normal-kappa-compensation",
        "  --no-density-normal-kappa-compensation",
        "QA-facing tuning knobs:",
        "  (gradient-response requires matching density/flow modes;",
        "   affine-effective requires affine-gaussian density evolution)",
        "  --rho0 <value>",
        "  --kappa2 <value>",
        "  --flow-power <value>",
        "  --flow-velocity-sampler <covariance-ellipse|density-normal|gradient-response|affine-effective>",
        "  --density-evolution <affine-gaussian|none|gradient-response>",
        "  --flow-density-sigma <fm>",
        "  --affine-lambda-in <value>",
        "  --affine-lambda-out <value>",
        "  --affine-sigma-evo <fm>",
        "  --affine-delta-tau-ref <fm/c>",
        "  --affine-kappa-flow <value>",
        "  --affine-kappa-aniso <value>",
        "  --affine-u-max <value>",
        "  --affine-effective-mode <additive-rho|full-tensor>",
        "  --density-normal-kappa-compensation",
        "  --no-density-normal-kappa-compensation",
        "  --gradient-sigma-em <fm>",
        "  --gradient-sigma-dyn <fm>",
        "  --gradient-density-floor-fraction <value>",
        "  --gradient-density-cutoff-fraction <value>",
        "  --gradient-displacement-max <fm>",
        "  --gradient-displacement-kappa <fm>",
        "  --gradient-diffusion-sigma <fm>",
        "  --gradient-vmax <value>",
        "  --gradient-velocity-kappa <fm>",
        "  --cooper-frye-weight <none|mt-cosh>",
        "  --sigma-eta <value>",
        "  --eta-plateau <value>",
        "  --nbd-mu <value>",
        "  --nbd-k <value>",
        "  --help",
    ]
    return "\n".join(lines) + "\n"


def parse_run_options(argv: Sequence[str] | None = None) -> ParsedRunOptions:
    """Parse generator arguments (without the program name).

    A configuration file may be given with ``--config`` or as one positional
    path; its values are applied first, then ``--key value`` overrides, then
    the value-less switches. Raises ``ValueError`` on invalid input and
    ``OSError`` if the configuration file cannot be read.
    """
    arguments = list(sys.argv[1:] if argv is None else argv)
    run_options = RunOptions()
    cli_overrides: list[tuple[str, str]] = []
    switch_values: dict[str, Any] = {}
    flag_config_path = ""
    positional_config_path = ""

    tokens = iter(arguments)
    for argument in tokens:
        if argument == "--help":
            return ParsedRunOptions(run_options=run_options, show_help=True)

        if argument == "--config":
            if flag_config_path:
                raise ValueError("Only one --config path may be provided.")
            value = next(tokens, None)
            if value is None:
                raise ValueError(f"Missing value for {argument}")
            flag_config_path = value
        elif argument in _SWITCHES:
            attribute, value = _SWITCHES[argument]
            switch_values[attribute] = value
        elif argument.startswith("--"):
            value = next(tokens, None)
            if value is None:
                raise ValueError(f"Missing value for {argument}")
            cli_overrides.append((argument[2:], value))
        else:
            if positional_config_path:
                raise ValueError("Only one positional configuration file path is allowed.")
            positional_config_path = argument

    if flag_config_path and positional_config_path:
        raise ValueError("Cannot use both a positional configuration file path and --config.")

    config_path = flag_config_path or positional_config_path
    if config_path:
        load_config_file(config_path, run_options)

    for name, value in cli_overrides:
        apply_option(run_options, name, value, f"command line option '--{name}'", "")

    for attribute, value in switch_values.items():
        target = run_options if attribute == "progress_mode" else run_options.config
        setattr(target, attribute, value)

    if not run_options.v2pt_bin_edges:
        if (
            run_options.v2pt_output_mode is V2PtOutputMode.SEPARATE_FILE
            or run_options.v2pt_output_path
        ):
            raise ValueError(
                "v2pt-output-mode and v2pt-output require v2pt-bins to be configured."
            )
        return ParsedRunOptions(run_options=run_options)

    if run_options.v2pt_output_mode is V2PtOutputMode.SAME_FILE:
        if run_options.v2pt_output_path:
            raise ValueError(
                "v2pt-output is only valid when v2pt-output-mode is separate-file."
            )
    elif not run_options.v2pt_output_path:
        run_options.v2pt_output_path = derive_default_v2pt_output_path(run_options.output_path)

    return ParsedRunOptions(run_options=run_options)