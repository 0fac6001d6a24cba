"""Simulation driver: the tick loop and repetitions.

Per tick:
  1. For every patch, in patch order:
       mating strategy → Patch.disperse (placement + votes) → Patch.survive
  2. Population.shuffle_floaters → Population.floater_survival
  3. Colonization pass (mating-mode compatible) → takeover statistics
  4. Every living individual ages by one tick

Statistics are collected at logging ticks (T % log_interval == 0, and
always on the last tick) without touching the random stream, so the
trajectory does not depend on how often it is observed.

Each Simulation owns its Generator. Repetitions get independent streams
spawned from one master seed (rng.spawn_repetition_rngs).
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterator, List, Optional, Union

import numpy as np

from natal_philopatry.config import SimulationConfig, validate_config
from natal_philopatry.patch import BreedingParams
from natal_philopatry.population import Population
from natal_philopatry.report import ResultWriter, progress_header, progress_line
from natal_philopatry.rng import make_rng, spawn_repetition_rngs
from natal_philopatry.statistics import PopulationSnapshot, take_snapshot
from natal_philopatry.strategies import StrategySet, resolve_strategies
from natal_philopatry.types import TakeoverStats

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════

class Simulation:
    """One run of the model: a Population, its strategies and its RNG.

    The configuration is validated and the strategies are resolved before
    the population is built; an invalid configuration raises ValueError
    and no population ever exists.
    """

    def __init__(
        self,
        config: SimulationConfig,
        rng: Optional[np.random.Generator] = None,
        repetition: int = 0,
    ):
        validate_config(config)
        self.strategies: StrategySet = resolve_strategies(config.strategy)
        self.config = config
        self.repetition = repetition
        self.rng = rng if rng is not None else make_rng(config.simulation.seed)
        self.breeding = BreedingParams.from_config(config)
        self.population = Population.initial(config)
        self.tick = 0
        self.takeover_stats = TakeoverStats()
        # Marks of the previous snapshot / console line
        self._log_stats = TakeoverStats()
        self._log_tick = -1
        self._console_stats = TakeoverStats()
        self._console_tick = -1
        self._console_time = time.perf_counter()

    # ── One tick ────────────────────────────────────────────────────

    def step(self) -> TakeoverStats:
        """Advance the model by one tick.

        Returns:
            TakeoverStats of this tick's colonization pass.
        """
        cfg = self.config
        pop = self.population
        rng = self.rng
        st = self.strategies

        for patch in pop.patches:
            st.mate(patch, pop.male_floaters, self.breeding, rng)
            patch.disperse(
                pop.female_floaters, pop.male_floaters,
                st.place, st.offspring_vote, st.breeder_vote, rng,
            )
            patch.survive(cfg.survival, rng)

        pop.shuffle_floaters(rng)
        pop.floater_survival(cfg.survival.Sff, cfg.survival.Smf, rng)
        stats = st.colonize(pop, cfg.colonization, rng)
        self.takeover_stats += stats
        pop.age()

        self.tick += 1
        return stats

    # ── Run ─────────────────────────────────────────────────────────

    def is_log_tick(self, T: int) -> bool:
        sim = self.config.simulation
        last = T == sim.ticks - 1
        return last or (sim.log_interval > 0 and T % sim.log_interval == 0)

    def is_console_tick(self, T: int) -> bool:
        sim = self.config.simulation
        last = T == sim.ticks - 1
        return last or (sim.console_interval > 0 and T % sim.console_interval == 0)

    def snapshot(self, T: Optional[int] = None) -> PopulationSnapshot:
        """Snapshot of the current state, labelled with tick T.

        The takeover rate is the per-tick average since the previous
        snapshot (floor division). Does not draw random numbers.
        """
        if T is None:
            T = self.tick - 1
        elapsed = max(1, T - self._log_tick)
        rate = (self.takeover_stats - self._log_stats) / elapsed
        sim = self.config.simulation
        detailed = not sim.alleles_last_only or T == sim.ticks - 1
        snap = take_snapshot(
            self.population, T, self.takeover_stats, rate,
            include_genomes=detailed,
        )
        self._log_stats = self.takeover_stats.copy()
        self._log_tick = T
        return snap

    def run(self) -> Iterator[PopulationSnapshot]:
        """Run every configured tick, yielding a snapshot at logging ticks."""
        sim = self.config.simulation
        out = self.config.output
        logger.debug(
            "Repetition %d: %d patches, %d ticks, %s",
            self.repetition, len(self.population.patches), sim.ticks,
            self.strategies.describe(),
        )
        if out.any_console:
            logger.info(progress_header(out))
        for T in range(self.tick, sim.ticks):
            self.step()
            if self.is_log_tick(T):
                yield self.snapshot(T)
            if out.any_console and self.is_console_tick(T):
                self._console(T)

    def run_all(self) -> List[PopulationSnapshot]:
        """Run to completion and return every snapshot."""
        return list(self.run())

    def _console(self, T: int) -> None:
        now = time.perf_counter()
        elapsed_ticks = max(1, T - self._console_tick)
        rate = (self.takeover_stats - self._console_stats) / elapsed_ticks
        logger.info(progress_line(
            self.config.output, T, self.population, rate, now - self._console_time,
        ))
        self._console_stats = self.takeover_stats.copy()
        self._console_tick = T
        self._console_time = now


# ═══════════════════════════════════════════════════════════════════════
# REPETITIONS
# ═══════════════════════════════════════════════════════════════════════

def repetition_path(path: Union[str, Path], repetition: int, n_total: int) -> Path:
    """Result-file name of a repetition: res.R → res_3.R for repetition 2.

    Unchanged when only a single repetition is run.
    """
    path = Path(path)
    if n_total <= 1:
        return path
    return path.with_name(f"{path.stem}_{repetition + 1}{path.suffix}")


def run_simulation(
    config: SimulationConfig,
    rng: Optional[np.random.Generator] = None,
    repetition: int = 0,
    result_file: Optional[Union[str, Path]] = None,
) -> List[PopulationSnapshot]:
    """Run one simulation, streaming snapshots to a result file if given.

    Returns:
        Every snapshot of the run.
    """
    sim = Simulation(config, rng=rng, repetition=repetition)
    if result_file is None:
        return sim.run_all()
    snapshots = []
    with ResultWriter(result_file, config, repetition=repetition) as writer:
        for snap in sim.run():
            writer.write_snapshot(snap)
            snapshots.append(snap)
    return snapshots


def run_repetitions(config: SimulationConfig) -> List[List[PopulationSnapshot]]:
    """Run simulation.repetitions independent repetitions.

    Repetition counters run from repetition_offset; each repetition gets its
    own stream spawned from simulation.seed and, if output.file is set, its
    own result file (suffixed _<counter+1> when more than one is run).

    Returns:
        Snapshots of every repetition, in repetition order.
    """
    validate_config(config)
    sim = config.simulation
    rngs = spawn_repetition_rngs(sim.seed, sim.repetitions, sim.repetition_offset)
    results = []
    for i, rng in enumerate(rngs):
        r = sim.repetition_offset + i
        result_file = None
        if config.output.file:
            result_file = repetition_path(config.output.file, r, sim.repetitions)
        results.append(run_simulation(config, rng=rng, repetition=r, result_file=result_file))
        logger.info("Repetition %d done.", r + 1)
    return results
