# blastwave

Building blocks for a blast-wave event generator for heavy-ion collisions:
the run configuration and its defaults, the command-line and configuration
file parsing that fills it, and a terminal progress bar for long runs.

## What is in the package

- `blastwave.models` – the generator configuration `BlastWaveConfig` with its
  defaults, the mode enumerations (`ThermalSamplerMode`,
  `FlowVelocitySamplerMode`, `AffineEffectiveMode`, `DensityEvolutionMode`,
  `CooperFryeWeightMode`, `EmissionSamplerMode`), the flow-sampler parameters
  `FlowFieldParameters` (built from a configuration with
  `BlastWaveConfig.flow_field_parameters()`) and the per-event record types
  `EventInfo`, `ParticleRecord` and `ParticipantRecord`.
- `blastwave.option_values` – the typed value parsers shared by files and
  flags: `parse_int`, `parse_float`, `parse_unsigned`, `parse_bool`, the mode
  parsers (`parse_thermal_sampler_mode`, `parse_flow_velocity_sampler_mode`,
  `parse_affine_effective_mode`, `parse_density_evolution_mode`,
  `parse_cooper_frye_weight_mode`, `parse_v2pt_output_mode`),
  `parse_v2pt_bin_edges` for comma-separated pT bin edges, the
  `V2PtOutputMode` enumeration, and the path helpers `resolve_output_path` and
  `derive_default_v2pt_output_path`.
- `blastwave.run_options` – `RunOptions`, `ParsedRunOptions`,
  `parse_run_options(argv)` for the generator's arguments,
  `load_config_file(path, run_options)` for `key = value` files,
  `apply_option(...)` for a single key, and `format_generate_usage(program_name)`
  for the help text.
- `blastwave.analyze_options` – `AnalyzeOptions`,
  `parse_analyze_options(argv)`, `derive_default_output_path(input_path)` and
  `format_analyze_usage(program_name)` for the v2{2}(pT) analysis step's
  arguments.
- `blastwave.progress` – `ProgressMode` and `ProgressReporter`, a 20-column
  progress bar that redraws only when the integer percentage changes.

## Configuration files

A configuration file holds one `key = value` entry per line. Blank lines and
lines starting with `#` are ignored, a key may appear only once, and relative
output paths are resolved against the directory of the file:

```
nevents = 5000
b = 8
progress = true
output = qa/test_b8_5000.root
```

A file is given either with `--config <path>` or as a single positional
argument. Its values are applied first, then `--key value` options, then the
value-less switches (`--progress`, `--no-progress`, `--debug-flow-ellipse`,
`--density-normal-kappa-compensation` and their `--no-` forms). Retired keys
(`vmax`, `rho2`, `r-ref`) are rejected with a message that says what replaced
them.

## Parsing options

```python
from blastwave.run_options import format_generate_usage, parse_run_options

parsed = parse_run_options(["--nevents", "200", "--kappa2", "0.45", "--v2pt-bins", "0,0.5,1"])
if parsed.show_help:
    print(format_generate_usage("generate"))
config = parsed.run_options.config
print(config.n_events, config.kappa2, parsed.run_options.v2pt_bin_edges)
```

Invalid values, unknown keys and inconsistent v2{2}(pT) output settings raise
`ValueError` with a message naming the option and where it came from; a
configuration file that cannot be opened raises `OSError`. With
`--v2pt-output-mode separate-file` and no `--v2pt-output`, the path defaults
to `<output stem>_v2pt.root` next to the main output.

```python
from blastwave.analyze_options import parse_analyze_options

options = parse_analyze_options(["--input", "runs/result.root"])
print(options.output_path)  # runs/result_v2pt.root
```

## Progress reporting

```python
import sys

from blastwave.progress import ProgressMode, ProgressReporter

with ProgressReporter(1000, ProgressMode.ENABLED, sys.stderr) as progress:
    for done in range(1, 1001):
        progress.update(done)
```

`finish()` draws the completed bar and ends the line; leaving the `with`
block ends an open line. In `ProgressMode.AUTO` the bar is drawn only when the
stream is a terminal, and nothing is drawn when the total is zero.

## What the package does not do

The package holds the configuration, option handling and progress reporting
only. It does not sample collisions, build the medium or emit particles, does
not compute v2{2}(pT) cumulants, does not read or write event files, and
provides no command-line programs of its own.

## Tests

The test suite uses pytest and is installed with the `test` extra.