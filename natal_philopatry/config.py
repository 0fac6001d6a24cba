"""Configuration system for the natal philopatry model.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → parameter overrides

Every section maps 1:1 to a YAML top-level key. Defaults reproduce the
reference parameter set of the model (m=1000 patches, 90 % occupied,
F0=1, Alleles '5 0 0 5 0 0', ...).

Validation runs before any simulation state is built; invalid settings
raise ValueError, questionable-but-legal settings emit a UserWarning.
"""

from __future__ import annotations

import copy
import dataclasses
import math
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import yaml

from natal_philopatry.types import (
    N_LOCI,
    BreederVote,
    Mating,
    OffspringPlacement,
    OffspringVote,
)


AlleleSpec = Union[str, Sequence[float]]


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run length, seeding and logging cadence."""
    ticks: int = 1000
    seed: Optional[int] = None        # None = fresh OS entropy
    log_interval: int = 0             # result-file interval; 0 = last tick only
    console_interval: int = 1000      # progress-line interval; 0 = last tick only
    alleles_last_only: bool = False   # write breeder alleles on the last tick only
    repetitions: int = 1
    repetition_offset: int = 0        # first repetition counter


@dataclass
class StrategySection:
    """Strategy selectors. Resolved once per run (see strategies.py)."""
    mode: str = Mating.RANDOM.value
    oplacement: str = OffspringPlacement.SORT.value
    ovote: str = OffspringVote.ACCOUNT.value
    bvote: str = BreederVote.DESPOTIC.value


@dataclass
class PopulationSection:
    """Landscape and initial occupancy."""
    m: int = 1000        # Number of patches
    m0: float = 90.0     # Initially occupied patches (%)
    nmf: int = 0         # Initial number of male floaters


@dataclass
class FecunditySection:
    """F(n, R) = F0 (1 - phi n)(1 - exp(-k n)) R^-delta."""
    F0: int = 1          # Baseline fecundity (also number of fecundity trials)
    phi: float = 0.1     # Scramble competition
    delta: float = 0.0   # Contest competition (rank penalty)
    k: float = 10.0      # Helping


@dataclass
class GeneticsSection:
    """Initial alleles, masking and mutation.

    alleles/mask accept a 6-element list or a string such as '5 0 0 5 0 0'
    (whitespace and/or comma separated).
    """
    alleles: AlleleSpec = field(
        default_factory=lambda: [5.0, 0.0, 0.0, 5.0, 0.0, 0.0]
    )
    mask: AlleleSpec = field(
        default_factory=lambda: [1.0, 1.0, 1.0, 1.0, 1.0, 1.0]
    )
    mu: float = 0.1                # Mutation probability per inherited copy
    mutation_scale: float = 0.01   # Cauchy scale of the mutation step

    @property
    def allele_vector(self) -> np.ndarray:
        return parse_alleles(self.alleles, "genetics.alleles")

    @property
    def mask_vector(self) -> np.ndarray:
        return parse_alleles(self.mask, "genetics.mask")


@dataclass
class SurvivalSection:
    """S(n) = theta + (Smax - theta)(1 - exp(-gamma n))."""
    Sb: float = 0.8      # Baseline survival, breeder
    Sm: float = 0.8      # Baseline survival, resident male
    Sff: float = 0.6     # Survival, female floater
    Smf: float = 0.8     # Survival, male floater
    Smax: float = 0.95   # Maximum survival (longevity)
    sigma: float = 1.0   # Shape of theta(S)
    gamma: float = 0.01  # Group-size benefit in S(n)

    def theta(self, S: float) -> float:
        """Baseline theta such that S(n) passes through S at the sigma anchor."""
        e = math.exp(-self.sigma)
        return (S - self.Smax * (1.0 - e)) / e

    @property
    def thetaB(self) -> float:
        return self.theta(self.Sb)

    @property
    def thetaM(self) -> float:
        return self.theta(self.Sm)


@dataclass
class ColonizationSection:
    """Floater search and takeover."""
    eps: float = 0.005   # Patch search efficiency
    t0: float = 0.05     # Baseline takeover probability
    tau: float = 1.0     # Benefit of communal territory defence


@dataclass
class OutputSection:
    """Result file and console progress."""
    file: Optional[str] = None        # R result file; None = no file
    precision: int = 3                # Fixed digits for alleles / votes
    epilogue: Optional[str] = None    # R script appended to the result file
    # Console progress columns
    time: bool = False
    group_size: bool = False
    males: bool = False
    female_floaters: bool = False
    male_floaters: bool = False
    alleles: bool = False
    votes: bool = False
    takeovers: bool = False
    profile: bool = False

    @property
    def any_console(self) -> bool:
        return any((
            self.time, self.group_size, self.males, self.female_floaters,
            self.male_floaters, self.alleles, self.votes, self.takeovers,
            self.profile,
        ))

    def set_verbose(self) -> None:
        """Enable every console column except profiling."""
        self.time = self.group_size = self.males = True
        self.female_floaters = self.male_floaters = True
        self.alleles = self.votes = self.takeovers = True


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    strategy: StrategySection = field(default_factory=StrategySection)
    population: PopulationSection = field(default_factory=PopulationSection)
    fecundity: FecunditySection = field(default_factory=FecunditySection)
    genetics: GeneticsSection = field(default_factory=GeneticsSection)
    survival: SurvivalSection = field(default_factory=SurvivalSection)
    colonization: ColonizationSection = field(default_factory=ColonizationSection)
    output: OutputSection = field(default_factory=OutputSection)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict (YAML-serialisable)."""
        return dataclasses.asdict(self)


_SECTION_MAP = {
    'simulation': SimulationSection,
    'strategy': StrategySection,
    'population': PopulationSection,
    'fecundity': FecunditySection,
    'genetics': GeneticsSection,
    'survival': SurvivalSection,
    'colonization': ColonizationSection,
    'output': OutputSection,
}


# ═══════════════════════════════════════════════════════════════════════
# ALLELE STRINGS
# ═══════════════════════════════════════════════════════════════════════

_NUMBER = r'[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?'
_ALLELE_STRING = re.compile(
    rf'^\s*{_NUMBER}(?:\s*[,\s]\s*{_NUMBER})*\s*,?\s*$'
)


def parse_alleles(value: AlleleSpec, name: str = "alleles") -> np.ndarray:
    """Convert an allele specification into a (N_LOCI,) float64 vector.

    Args:
        value: Sequence of N_LOCI numbers, or a string of N_LOCI numbers
            separated by whitespace and/or commas ('5 0 0 5 0 0').
        name: Parameter name used in error messages.

    Returns:
        (N_LOCI,) float64 array.

    Raises:
        ValueError: If the string is malformed or the length is not N_LOCI.
    """
    if isinstance(value, str):
        if not _ALLELE_STRING.match(value):
            raise ValueError(f"{name}: malformed allele string '{value}'")
        values = [float(tok) for tok in re.split(r'[\s,]+', value.strip(' ,\t\n'))]
    else:
        try:
            values = [float(v) for v in value]
        except (TypeError, ValueError) as e:
            raise ValueError(f"{name}: expected {N_LOCI} numbers, got {value!r}") from e
    if len(values) != N_LOCI:
        raise ValueError(
            f"{name} must have {N_LOCI} elements (A0 A1 A2 B0 B1 B2), "
            f"got {len(values)}"
        )
    return np.asarray(values, dtype=np.float64)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Merge override into base in place; nested dicts merge key by key."""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    unknown = sorted(set(data) - valid_fields)
    if unknown:
        warnings.warn(
            f"Ignoring unknown {section_cls.__name__} keys: {unknown}",
            UserWarning,
            stacklevel=3,
        )
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def config_from_dict(data: Dict) -> SimulationConfig:
    """Build and validate a SimulationConfig from a nested dict."""
    config = _yaml_to_config(copy.deepcopy(data))
    validate_config(config)
    return config


def parse_override(assignment: str) -> Dict:
    """Turn 'section.key=value' into {'section': {'key': value}}.

    The value is parsed as YAML, so numbers, booleans and lists work.

    Raises:
        ValueError: If the assignment is not of the form section.key=value.
    """
    if '=' not in assignment:
        raise ValueError(f"override must be section.key=value, got '{assignment}'")
    path, raw = assignment.split('=', 1)
    keys = [k for k in path.strip().split('.') if k]
    if len(keys) != 2:
        raise ValueError(f"override must be section.key=value, got '{assignment}'")
    value = yaml.safe_load(raw) if raw.strip() else None
    return {keys[0]: {keys[1]: value}}


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _check_choice(name: str, value: str, enum_cls) -> None:
    valid = [e.value for e in enum_cls]
    if value not in valid:
        raise ValueError(f"{name} must be one of {valid}, got '{value}'")


def _check_probability(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def _check_count(name: str, value, minimum: int = 0) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Strategy selectors are valid names
      - Allele and mask strings/vectors are well formed
      - Counts are non-negative integers, probabilities lie in [0, 1]
      - Survival baselines theta are sensible (warning only)
      - Random mating has male floaters to draw sires from (warning only)
    """
    # Strategies
    s = config.strategy
    _check_choice("strategy.mode", s.mode, Mating)
    _check_choice("strategy.oplacement", s.oplacement, OffspringPlacement)
    _check_choice("strategy.ovote", s.ovote, OffspringVote)
    _check_choice("strategy.bvote", s.bvote, BreederVote)

    # Run control
    sim = config.simulation
    _check_count("simulation.ticks", sim.ticks)
    _check_count("simulation.log_interval", sim.log_interval)
    _check_count("simulation.console_interval", sim.console_interval)
    _check_count("simulation.repetitions", sim.repetitions, minimum=1)
    _check_count("simulation.repetition_offset", sim.repetition_offset)
    if sim.seed is not None:
        _check_count("simulation.seed", sim.seed)

    # Population
    p = config.population
    _check_count("population.m", p.m, minimum=1)
    _check_count("population.nmf", p.nmf)
    if not (0.0 <= p.m0 <= 100.0):
        raise ValueError(f"population.m0 must be a percentage in [0, 100], got {p.m0}")
    if s.mode == Mating.RANDOM.value and p.nmf == 0:
        warnings.warn(
            "strategy.mode = random with population.nmf = 0: no male "
            "floater can ever sire, the population cannot reproduce",
            UserWarning,
            stacklevel=2,
        )

    # Fecundity
    f = config.fecundity
    _check_count("fecundity.F0", f.F0)
    if f.k < 0:
        raise ValueError(f"fecundity.k must be >= 0, got {f.k}")

    # Genetics
    g = config.genetics
    parse_alleles(g.alleles, "genetics.alleles")
    parse_alleles(g.mask, "genetics.mask")
    _check_probability("genetics.mu", g.mu)
    if g.mutation_scale < 0:
        raise ValueError(
            f"genetics.mutation_scale must be >= 0, got {g.mutation_scale}"
        )

    # Survival
    sv = config.survival
    for name in ('Sb', 'Sm', 'Sff', 'Smf', 'Smax'):
        _check_probability(f"survival.{name}", getattr(sv, name))
    if sv.sigma <= 0:
        raise ValueError(f"survival.sigma must be positive, got {sv.sigma}")
    if sv.gamma < 0:
        raise ValueError(f"survival.gamma must be >= 0, got {sv.gamma}")
    for name, theta in (('thetaB', sv.thetaB), ('thetaM', sv.thetaM)):
        if not (0.0 <= theta <= 1.0):
            warnings.warn(
                f"survival.{name} = {theta:.4g} lies outside [0, 1]; "
                f"S(n) will saturate for small groups",
                UserWarning,
                stacklevel=2,
            )

    # Colonization
    c = config.colonization
    if c.eps < 0:
        raise ValueError(f"colonization.eps must be >= 0, got {c.eps}")
    _check_probability("colonization.t0", c.t0)
    if c.tau < 0:
        raise ValueError(f"colonization.tau must be >= 0, got {c.tau}")

    # Output
    _check_count("output.precision", config.output.precision)


# ═══════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════

def load_config(
    base_path: Optional[Union[str, Path]] = None,
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Union[Dict, List[str]]] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML; None starts from the
            built-in defaults.
        scenario_path: Optional scenario override YAML.
        overrides: Optional nested dict, or list of 'section.key=value'
            assignments.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path or scenario_path doesn't exist.
        ValueError: If validation fails.
    """
    if base_path is None:
        config_dict = SimulationConfig().to_dict()
    else:
        base_path = Path(base_path)
        if not base_path.exists():
            raise FileNotFoundError(f"Config file not found: {base_path}")
        with open(base_path) as f:
            config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        with open(scenario_path) as f:
            scenario = yaml.safe_load(f) or {}
        deep_merge(config_dict, scenario)

    if overrides is not None:
        if isinstance(overrides, dict):
            deep_merge(config_dict, overrides)
        else:
            for assignment in overrides:
                deep_merge(config_dict, parse_override(assignment))

    return config_from_dict(config_dict)


def default_config() -> SimulationConfig:
    """Validated built-in parameter set (no YAML involved)."""
    config = SimulationConfig()
    validate_config(config)
    return config
