import os

import pytest

from blastwave.models import (
    AffineEffectiveMode,
    CooperFryeWeightMode,
    DensityEvolutionMode,
    FlowVelocitySamplerMode,
    ThermalSamplerMode,
)
from blastwave.option_values import V2PtOutputMode
from blastwave.progress import ProgressMode
from blastwave.run_options import (
    ParsedRunOptions,
    RunOptions,
    apply_option,
    format_generate_usage,
    load_config_file,
    parse_run_options,
)


@pytest.fixture
def write_config(tmp_path):
    def _write(contents: str) -> str:
        path = tmp_path / "blastwave_run_options_test.cfg"
        path.write_text(contents, encoding="utf-8")
        return str(path)

    return _write


def test_default_sampler():
    parsed = parse_run_options([])
    config = parsed.run_options.config
    assert not parsed.show_help
    assert config.flow_velocity_sampler_mode is FlowVelocitySamplerMode.COVARIANCE_ELLIPSE
    assert config.density_evolution_mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE
    assert config.kappa2 == pytest.approx(1.0986122886681098, abs=1e-12)
    assert config.flow_density_sigma == pytest.approx(0.5, abs=1e-12)
    assert config.affine_lambda_in == pytest.approx(1.20, abs=1e-12)
    assert config.affine_lambda_out == pytest.approx(1.05, abs=1e-12)
    assert config.affine_sigma_evo == pytest.approx(0.5, abs=1e-12)
    assert config.affine_delta_tau_ref == pytest.approx(10.0, abs=1e-12)
    assert config.affine_kappa_flow == pytest.approx(10.0, abs=1e-12)
    assert config.affine_kappa_aniso == pytest.approx(1.0, abs=1e-12)
    assert config.affine_u_max == pytest.approx(0.95, abs=1e-12)
    assert config.affine_effective_mode is AffineEffectiveMode.ADDITIVE_RHO
    assert config.gradient_sigma_em == pytest.approx(0.0, abs=1e-12)
    assert config.gradient_sigma_dyn == pytest.approx(1.0, abs=1e-12)
    assert config.gradient_density_floor_fraction == pytest.approx(1.0e-4, abs=1e-16)
    assert config.gradient_density_cutoff_fraction == pytest.approx(1.0e-6, abs=1e-18)
    assert config.gradient_displacement_max == pytest.approx(1.5, abs=1e-12)
    assert config.gradient_displacement_kappa == pytest.approx(1.0, abs=1e-12)
    assert config.gradient_diffusion_sigma == pytest.approx(0.0, abs=1e-12)
    assert config.gradient_vmax == pytest.approx(0.75, abs=1e-12)
    assert config.gradient_velocity_kappa == pytest.approx(1.0, abs=1e-12)
    assert config.density_normal_kappa_compensation is False
    assert config.debug_gradient_response is False
    assert config.cooper_frye_weight_mode is CooperFryeWeightMode.NONE
    assert parsed.run_options.output_path == "blastwave.root"
    assert parsed.run_options.progress_mode is ProgressMode.AUTO


def test_cli_sampler_and_density_evolution_parse():
    parsed = parse_run_options(
        [
            "--flow-velocity-sampler", "density-normal",
            "--density-evolution", "affine-gaussian",
            "--density-normal-kappa-compensation",
            "--kappa2", "0.25",
            "--flow-density-sigma", "0.8",
            "--affine-lambda-in", "1.14",
            "--affine-lambda-out", "1.01",
            "--affine-sigma-evo", "0.35",
        ]
    )
    config = parsed.run_options.config
    assert config.flow_velocity_sampler_mode is FlowVelocitySamplerMode.DENSITY_NORMAL
    assert config.density_evolution_mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE
    assert config.density_normal_kappa_compensation is True
    assert config.kappa2 == pytest.approx(0.25, abs=1e-12)
    assert config.flow_density_sigma == pytest.approx(0.8, abs=1e-12)
    assert config.affine_lambda_in == pytest.approx(1.14, abs=1e-12)
    assert config.affine_lambda_out == pytest.approx(1.01, abs=1e-12)
    assert config.affine_sigma_evo == pytest.approx(0.35, abs=1e-12)


def test_config_and_override_parse(write_config):
    path = write_config(
        "flow-velocity-sampler = density-normal\n"
        "density-evolution = affine-gaussian\n"
        "kappa2 = 0.3\n"
        "density-normal-kappa-compensation = true\n"
        "flow-density-sigma = 0.7\n"
        "affine-lambda-in = 1.22\n"
        "affine-lambda-out = 1.08\n"
        "affine-sigma-evo = 0.45\n"
        "output = qa/test.root\n"
    )
    parsed = parse_run_options(
        [
            path,
            "--flow-velocity-sampler", "covariance-ellipse",
            "--density-evolution", "affine-gaussian",
            "--no-density-normal-kappa-compensation",
            "--kappa2", "0.45",
            "--affine-lambda-out", "1.02",
        ]
    )
    config = parsed.run_options.config
    assert config.flow_velocity_sampler_mode is FlowVelocitySamplerMode.COVARIANCE_ELLIPSE
    assert config.density_evolution_mode is DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE
    assert config.kappa2 == pytest.approx(0.45, abs=1e-12)
    assert config.density_normal_kappa_compensation is False
    assert config.flow_density_sigma == pytest.approx(0.7, abs=1e-12)
    assert config.affine_lambda_in == pytest.approx(1.22, abs=1e-12)
    assert config.affine_lambda_out == pytest.approx(1.02, abs=1e-12)
    assert config.affine_sigma_evo == pytest.approx(0.45, abs=1e-12)
    expected = os.path.normpath(os.path.join(os.path.dirname(path), "qa", "test.root"))
    assert parsed.run_options.output_path == expected


def test_gradient_config_parse(write_config):
    path = write_config(
        "density-evolution = gradient-response\n"
        "flow-velocity-sampler = gradient-response\n"
        "gradient-sigma-em = 0.25\n"
        "gradient-sigma-dyn = 1.35\n"
        "gradient-density-floor-fraction = 0.0002\n"
        "gradient-density-cutoff-fraction = 7.0e-7\n"
        "gradient-displacement-max = 1.8\n"
        "gradient-displacement-kappa = 0.9\n"
        "gradient-diffusion-sigma = 0.05\n"
        "gradient-vmax = 0.6\n"
        "gradient-velocity-kappa = 1.4\n"
        "debug-gradient-response = true\n"
        "cooper-frye-weight = mt-cosh\n"
    )
    config = parse_run_options([path]).run_options.config
    assert config.density_evolution_mode is DensityEvolutionMode.GRADIENT_RESPONSE
    assert config.flow_velocity_sampler_mode is FlowVelocitySamplerMode.GRADIENT_RESPONSE
    assert config.gradient_sigma_em == pytest.approx(0.25, abs=1e-12)
    assert config.gradient_sigma_dyn == pytest.approx(1.35, abs=1e-12)
    assert config.gradient_density_floor_fraction == pytest.approx(0.0002, abs=1e-16)
    assert config.gradient_density_cutoff_fraction == pytest.approx(7.0e-7, abs=1e-18)
    assert config.gradient_displacement_max == pytest.approx(1.8, abs=1e-12)
    assert config.gradient_displacement_kappa == pytest.approx(0.9, abs=1e-12)
    assert config.gradient_diffusion_sigma == pytest.approx(0.05, abs=1e-12)
    assert config.gradient_vmax == pytest.approx(0.6, abs=1e-12)
    assert config.gradient_velocity_kappa == pytest.approx(1.4, abs=1e-12)
    assert config.debug_gradient_response is True
    assert config.cooper_frye_weight_mode is CooperFryeWeightMode.MT_COSH


def test_affine_effective_parse():
    config = parse_run_options(
        [
            "--flow-velocity-sampler", "affine-effective",
            "--density-evolution", "affine-gaussian",
            "--affine-delta-tau-ref", "8.5",
            "--affine-kappa-flow", "9.0",
            "--affine-kappa-aniso", "1.7",
            "--affine-u-max", "0.72",
            "--affine-effective-mode", "full-tensor",
        ]
    ).run_options.config
    assert config.flow_velocity_sampler_mode is FlowVelocitySamplerMode.AFFINE_EFFECTIVE
    assert config.affine_delta_tau_ref == pytest.approx(8.5, abs=1e-12)
    assert config.affine_kappa_flow == pytest.approx(9.0, abs=1e-12)
    assert config.affine_kappa_aniso == pytest.approx(1.7, abs=1e-12)
    assert config.affine_u_max == pytest.approx(0.72, abs=1e-12)
    assert config.affine_effective_mode is AffineEffectiveMode.FULL_TENSOR
    flow = config.flow_field_parameters()
    assert flow.affine_effective_mode is AffineEffectiveMode.FULL_TENSOR
    assert flow.affine_u_max == pytest.approx(0.72, abs=1e-12)


def test_affine_effective_mode_config_and_override(write_config):
    path = write_config(
        "flow-velocity-sampler = affine-effective\n"
        "density-evolution = affine-gaussian\n"
        "affine-effective-mode = full-tensor\n"
        "affine-kappa-aniso = 9.0\n"
    )
    config_only = parse_run_options([path]).run_options.config
    assert config_only.affine_effective_mode is AffineEffectiveMode.FULL_TENSOR
    assert config_only.affine_kappa_aniso == pytest.approx(9.0, abs=1e-12)

    overridden = parse_run_options([path, "--affine-effective-mode", "additive-rho"])
    assert overridden.run_options.config.affine_effective_mode is AffineEffectiveMode.ADDITIVE_RHO


def test_gradient_cli_override(write_config):
    path = write_config(
        "density-evolution = gradient-response\n"
        "flow-velocity-sampler = gradient-response\n"
        "gradient-sigma-em = 0.10\n"
        "gradient-sigma-dyn = 1.20\n"
        "gradient-density-floor-fraction = 0.0004\n"
        "gradient-density-cutoff-fraction = 2.0e-6\n"
        "gradient-displacement-max = 1.0\n"
        "gradient-displacement-kappa = 0.7\n"
        "gradient-diffusion-sigma = 0.20\n"
        "gradient-vmax = 0.3\n"
        "gradient-velocity-kappa = 0.8\n"
        "debug-gradient-response = false\n"
        "cooper-frye-weight = mt-cosh\n"
    )
    config = parse_run_options(
        [
            path,
            "--gradient-sigma-em", "0.35",
            "--gradient-sigma-dyn", "1.50",
            "--gradient-density-floor-fraction", "0.0006",
            "--gradient-density-cutoff-fraction", "3.0e-6",
            "--gradient-displacement-max", "2.25",
            "--gradient-displacement-kappa", "1.2",
            "--gradient-diffusion-sigma", "0.0",
            "--gradient-vmax", "0.55",
            "--gradient-velocity-kappa", "1.6",
            "--debug-gradient-response",
            "--cooper-frye-weight", "none",
        ]
    ).run_options.config
    assert config.gradient_sigma_em == pytest.approx(0.35, abs=1e-12)
    assert config.gradient_sigma_dyn == pytest.approx(1.50, abs=1e-12)
    assert config.gradient_density_floor_fraction == pytest.approx(0.0006, abs=1e-16)
    assert config.gradient_density_cutoff_fraction == pytest.approx(3.0e-6, abs=1e-18)
    assert config.gradient_displacement_max == pytest.approx(2.25, abs=1e-12)
    assert config.gradient_displacement_kappa == pytest.approx(1.2, abs=1e-12)
    assert config.gradient_diffusion_sigma == pytest.approx(0.0, abs=1e-12)
    assert config.gradient_vmax == pytest.approx(0.55, abs=1e-12)
    assert config.gradient_velocity_kappa == pytest.approx(1.6, abs=1e-12)
    assert config.debug_gradient_response is True
    assert config.cooper_frye_weight_mode is CooperFryeWeightMode.NONE


@pytest.mark.parametrize(
    "arguments",
    [
        ["--flow-velocity-sampler", "not-a-sampler"],
        ["--density-evolution", "not-a-mode"],
        ["--affine-effective-mode", "invalid-mode"],
        ["--cooper-frye-weight", "not-a-weight"],
        ["--thermal-sampler", "boltzmann"],
        ["--nevents", "12x"],
        ["--seed", "-1"],
        ["--progress-bar", "true"],
    ],
)
def test_invalid_values_rejected(arguments):
    with pytest.raises(ValueError):
        parse_run_options(arguments)


def test_density_normal_kappa_compensation_config_parse(write_config):
    path = write_config(
        "flow-velocity-sampler = density-normal\n"
        "density-evolution = affine-gaussian\n"
        "density-normal-kappa-compensation = true\n"
        "flow-density-sigma = 0.6\n"
    )
    config = parse_run_options([path]).run_options.config
    assert config.density_normal_kappa_compensation is True
    assert config.flow_density_sigma == pytest.approx(0.6, abs=1e-12)


def test_gradient_modes_parse_independently():
    density_only = parse_run_options(["--density-evolution", "gradient-response"])
    assert density_only.run_options.config.density_evolution_mode is DensityEvolutionMode.GRADIENT_RESPONSE
    flow_only = parse_run_options(["--flow-velocity-sampler", "gradient-response"])
    assert (
        flow_only.run_options.config.flow_velocity_sampler_mode
        is FlowVelocitySamplerMode.GRADIENT_RESPONSE
    )


@pytest.mark.parametrize(
    "name, guidance",
    [
        ("rho2", "rho2 -> kappa2"),
        ("vmax", "vmax -> rho0 = atanh(vmax)."),
        ("r-ref", "r-ref -> absorbed by event-ellipse semi-axes."),
    ],
)
def test_deprecated_keys_rejected_with_guidance(name, guidance):
    with pytest.raises(ValueError, match="Migration") as error:
        parse_run_options([f"--{name}", "0.1"])
    assert guidance in str(error.value)
    assert f"command line option '--{name}'" in str(error.value)


def test_v2pt_bin_parsing_and_default_mode():
    run_options = parse_run_options(["--v2pt-bins", "0.0, 0.2,0.4, 0.8"]).run_options
    assert run_options.v2pt_bin_edges == pytest.approx([0.0, 0.2, 0.4, 0.8], abs=1e-12)
    assert run_options.v2pt_output_mode is V2PtOutputMode.SAME_FILE
    assert run_options.v2pt_output_path == ""


@pytest.mark.parametrize("edges", ["0.2", "0.0,0.4,0.4"])
def test_invalid_v2pt_edges_rejected(edges):
    with pytest.raises(ValueError):
        parse_run_options(["--v2pt-bins", edges])


def test_v2pt_output_requires_separate_file_mode():
    with pytest.raises(ValueError, match="only valid when v2pt-output-mode is separate-file"):
        parse_run_options(
            ["--v2pt-bins", "0.0,0.2", "--v2pt-output", "qa/only_allowed_in_separate.root"]
        )


def test_v2pt_separate_file_requires_bins():
    with pytest.raises(ValueError, match="require v2pt-bins"):
        parse_run_options(
            ["--v2pt-output-mode", "separate-file", "--v2pt-output", "qa/no_bins.root"]
        )


def test_v2pt_output_path_resolution(write_config):
    path = write_config(
        "output = qa/main.root\n"
        "v2pt-bins = 0.0,0.2,0.4\n"
        "v2pt-output-mode = separate-file\n"
        "v2pt-output = qa/v2pt_only.root\n"
    )
    run_options = parse_run_options([path]).run_options
    assert run_options.v2pt_output_mode is V2PtOutputMode.SEPARATE_FILE
    expected = os.path.normpath(os.path.join(os.path.dirname(path), "qa", "v2pt_only.root"))
    assert run_options.v2pt_output_path == expected

    derived = parse_run_options(
        ["--output", "qa/main.root", "--v2pt-bins", "0.0,0.2", "--v2pt-output-mode", "separate-file"]
    ).run_options
    assert derived.v2pt_output_path == os.path.join("qa", "main_v2pt.root")


def test_help_stops_parsing():
    parsed = parse_run_options(["--nevents", "5", "--help", "--bogus"])
    assert parsed.show_help is True
    assert parsed.run_options.config.n_events == 100


def test_progress_switch_overrides_config(write_config):
    path = write_config("progress = false\nnevents = 7\n")
    assert parse_run_options([path]).run_options.progress_mode is ProgressMode.DISABLED
    parsed = parse_run_options(["--config", path, "--progress"])
    assert parsed.run_options.progress_mode is ProgressMode.ENABLED
    assert parsed.run_options.config.n_events == 7
    assert parse_run_options(["--no-progress"]).run_options.progress_mode is ProgressMode.DISABLED


def test_debug_flow_ellipse_switches():
    assert parse_run_options(["--debug-flow-ellipse"]).run_options.config.debug_flow_ellipse is True
    last_wins = parse_run_options(["--debug-flow-ellipse", "--no-debug-flow-ellipse"])
    assert last_wins.run_options.config.debug_flow_ellipse is False


def test_scalar_options_parse():
    config = parse_run_options(
        [
            "--nevents", "5000", "--b", "8", "--seed", "18446744073709551615",
            "--thermal-sampler", "gamma", "--mj-grid-points", "1024", "--eta-plateau", "2.5",
        ]
    ).run_options.config
    assert config.n_events == 5000
    assert config.impact_parameter == pytest.approx(8.0)
    assert config.seed == 2**64 - 1
    assert config.thermal_sampler_mode is ThermalSamplerMode.GAMMA
    assert config.mj_grid_points == 1024
    assert config.eta_plateau_half_width == pytest.approx(2.5)


def test_cli_output_path_is_not_rebased():
    parsed = parse_run_options(["--output", "out/./run.root"])
    assert parsed.run_options.output_path == os.path.join("out", "run.root")


def test_missing_value_rejected():
    with pytest.raises(ValueError, match="Missing value for --kappa2"):
        parse_run_options(["--kappa2"])
    with pytest.raises(ValueError, match="Missing value for --config"):
        parse_run_options(["--config"])


def test_two_config_sources_rejected(write_config):
    path = write_config("nevents = 1\n")
    with pytest.raises(ValueError, match="Cannot use both"):
        parse_run_options([path, "--config", path])
    with pytest.raises(ValueError, match="Only one positional"):
        parse_run_options([path, path])
    with pytest.raises(ValueError, match="Only one --config"):
        parse_run_options(["--config", path, "--config", path])


def test_config_comments_and_blank_lines(write_config):
    path = write_config("# comment\n\n   \n  nevents   =   42  \n# b = 3\n")
    config = parse_run_options([path]).run_options.config
    assert config.n_events == 42
    assert config.impact_parameter == pytest.approx(8.0)


def test_config_duplicate_key_rejected(write_config):
    path = write_config("nevents = 1\nnevents = 2\n")
    with pytest.raises(ValueError, match="Duplicate configuration key 'nevents' on line 2"):
        parse_run_options([path])


def test_config_missing_separator_rejected(write_config):
    path = write_config("nevents 1\n")
    with pytest.raises(ValueError, match="Invalid configuration line 1"):
        parse_run_options([path])


def test_config_empty_key_rejected(write_config):
    path = write_config("\n = 3\n")
    with pytest.raises(ValueError, match="Empty configuration key on line 2"):
        parse_run_options([path])


def test_config_unknown_key_names_line(write_config):
    path = write_config("nevents = 3\nfoo = 1\n")
    with pytest.raises(ValueError, match="Unknown option/key 'foo'") as error:
        parse_run_options([path])
    assert "line 2" in str(error.value)


def test_missing_config_file_rejected(tmp_path):
    missing = str(tmp_path / "absent.cfg")
    with pytest.raises(OSError, match="Failed to open configuration file"):
        parse_run_options([missing])


def test_load_config_file_directly(write_config):
    path = write_config("temperature = 0.15\nv2pt-output = x.root\n")
    run_options = RunOptions()
    load_config_file(path, run_options)
    assert run_options.config.temperature == pytest.approx(0.15)
    assert run_options.v2pt_output_path == os.path.join(os.path.dirname(path), "x.root")


def test_apply_option_directly():
    run_options = RunOptions()
    apply_option(run_options, "output", "run.root", "test", "base")
    apply_option(run_options, "smear", "0.75", "test", "")
    assert run_options.output_path == os.path.join("base", "run.root")
    assert run_options.config.smear_sigma == pytest.approx(0.75)
    with pytest.raises(ValueError, match="Output path must not be empty."):
        apply_option(run_options, "output", "", "test", "")


def test_parsed_run_options_defaults():
    parsed = ParsedRunOptions(run_options=RunOptions())
    assert parsed.show_help is False
    assert parsed.run_options.v2pt_bin_edges == []


def test_usage_text():
    usage = format_generate_usage("gen")
    lines = usage.splitlines()
    assert lines[0] == "Usage: gen [options]"
    assert lines[1] == "       gen --config <path> [options]"
    assert lines[-1] == "  --help"
    assert "  --cooper-frye-weight <none|mt-cosh>" in lines
    assert usage.endswith("\n")