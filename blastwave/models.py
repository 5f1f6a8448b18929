"""Configuration, sampler modes and per-event records for the blast-wave generator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ThermalSamplerMode(Enum):
    """Local-rest-frame momentum sampler."""

    MAXWELL_JUTTNER = "maxwell-juttner"
    GAMMA = "gamma"


class FlowVelocitySamplerMode(Enum):
    """How the fluid-element velocity is assigned at an emission point."""

    COVARIANCE_ELLIPSE = "covariance-ellipse"
    DENSITY_NORMAL = "density-normal"
    GRADIENT_RESPONSE = "gradient-response"
    AFFINE_EFFECTIVE = "affine-effective"


class AffineEffectiveMode(Enum):
    """Variant of the affine-effective flow closure."""

    ADDITIVE_RHO = "additive-rho"
    FULL_TENSOR = "full-tensor"


class DensityEvolutionMode(Enum):
    """How the transverse density evolves from the initial to the emission stage."""

    NONE = "none"
    AFFINE_GAUSSIAN_RESPONSE = "affine-gaussian"
    GRADIENT_RESPONSE = "gradient-response"


class CooperFryeWeightMode(Enum):
    """Per-particle emission weight."""

    NONE = "none"
    MT_COSH = "mt-cosh"


class EmissionSamplerMode(Enum):
    """Backend used to draw transverse emission sites."""

    PARTICIPANT_HOTSPOT = "participant-hotspot"
    DENSITY_FIELD = "density-field"
    GRADIENT_RESPONSE = "gradient-response"


@dataclass(frozen=True)
class FlowFieldParameters:
    """Parameters controlling the fluid-element velocity sampler.

    ``kappa2`` is a response coefficient: the event-wise second-order flow
    amplitude is ``kappa2`` times the initial participant eccentricity.
    """

    velocity_sampler_mode: FlowVelocitySamplerMode = FlowVelocitySamplerMode.COVARIANCE_ELLIPSE
    rho0: float = 0.0
    kappa2: float = 0.0
    flow_power: float = 1.0
    density_normal_kappa_compensation: bool = False
    affine_delta_tau_ref: float = 10.0
    affine_kappa_flow: float = 10.0
    affine_kappa_aniso: float = 1.0
    affine_u_max: float = 0.95
    affine_effective_mode: AffineEffectiveMode = AffineEffectiveMode.ADDITIVE_RHO


@dataclass
class BlastWaveConfig:
    """Full generator configuration; lengths in fm, energies in GeV."""

    n_events: int = 100
    nucleons_per_nucleus: int = 208
    pid: int = 211
    charge: int = 1
    seed: int = 12345

    impact_parameter: float = 8.0
    temperature: float = 0.2
    tau0: float = 10.0
    smear_sigma: float = 0.5
    sigma_nn: float = 7.0
    sigma_eta: float = 1.5
    eta_plateau_half_width: float = 1.0
    nbd_mu: float = 2.0
    nbd_k: float = 1.5
    rho0: float = 1.0986122886681098
    kappa2: float = 1.0986122886681098
    flow_power: float = 1.0
    density_evolution_mode: DensityEvolutionMode = DensityEvolutionMode.AFFINE_GAUSSIAN_RESPONSE
    flow_velocity_sampler_mode: FlowVelocitySamplerMode = FlowVelocitySamplerMode.COVARIANCE_ELLIPSE
    flow_density_sigma: float = 0.5
    affine_lambda_in: float = 1.20
    affine_lambda_out: float = 1.05
    affine_sigma_evo: float = 0.5
    affine_delta_tau_ref: float = 10.0
    affine_kappa_flow: float = 10.0
    affine_kappa_aniso: float = 1.0
    affine_u_max: float = 0.95
    density_normal_kappa_compensation: bool = False
    debug_flow_ellipse: bool = False
    gradient_sigma_em: float = 0.0
    gradient_sigma_dyn: float = 1.0
    gradient_density_floor_fraction: float = 1.0e-4
    gradient_density_cutoff_fraction: float = 1.0e-6
    gradient_displacement_max: float = 1.5
    gradient_displacement_kappa: float = 1.0
    gradient_diffusion_sigma: float = 0.0
    gradient_vmax: float = 0.75
    gradient_velocity_kappa: float = 1.0
    debug_gradient_response: bool = False
    cooper_frye_weight_mode: CooperFryeWeightMode = CooperFryeWeightMode.NONE
    woods_saxon_radius: float = 6.62
    woods_saxon_diffuseness: float = 0.546
    mass: float = 0.13957
    thermal_sampler_mode: ThermalSamplerMode = ThermalSamplerMode.MAXWELL_JUTTNER
    mj_pmax: float = 8.0
    mj_grid_points: int = 4096
    affine_effective_mode: AffineEffectiveMode = AffineEffectiveMode.ADDITIVE_RHO

    def flow_field_parameters(self) -> FlowFieldParameters:
        """Return the flow-sampler parameters selected by this configuration."""
        return FlowFieldParameters(
            velocity_sampler_mode=self.flow_velocity_sampler_mode,
            rho0=self.rho0,
            kappa2=self.kappa2,
            flow_power=self.flow_power,
            density_normal_kappa_compensation=self.density_normal_kappa_compensation,
            affine_delta_tau_ref=self.affine_delta_tau_ref,
            affine_kappa_flow=self.affine_kappa_flow,
            affine_kappa_aniso=self.affine_kappa_aniso,
            affine_u_max=self.affine_u_max,
            affine_effective_mode=self.affine_effective_mode,
        )


@dataclass
class EventInfo:
    """Event-level summary observables."""

    event_id: int = 0
    impact_parameter: float = 0.0
    n_participants: int = 0
    eps2: float = 0.0
    psi2: float = 0.0
    eps2_freezeout: float = 0.0
    psi2_freezeout: float = 0.0
    chi2: float = 0.0
    r2_initial: float = 0.0
    r2_final: float = 0.0
    r2_ratio: float = 0.0
    v2: float = 0.0
    centrality: float = 0.0
    n_charged: int = 0


@dataclass
class ParticleRecord:
    """One emitted particle with its freeze-out coordinates and momentum."""

    event_id: int = 0
    pid: int = 0
    charge: int = 0
    mass: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    t: float = 0.0
    px: float = 0.0
    py: float = 0.0
    pz: float = 0.0
    energy: float = 0.0
    eta_s: float = 0.0
    source_x: float = 0.0
    source_y: float = 0.0
    x0: float = 0.0
    y0: float = 0.0
    emission_weight: float = 1.0


@dataclass
class ParticipantRecord:
    """One participant nucleon in the transverse plane."""

    event_id: int = 0
    nucleus_id: int = 0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0