"""Result-file writer and console progress lines.

The result file is an R script: sourcing it in R rebuilds the parameter
set and the per-log time series as R lists. Layout:

    # header: version, path/file/rep, every parameter as `name <- value`
    T <- list(); allele0 <- list(); ...       # empty list declarations

    T <- cbind(T, 100)                        # one block per logging tick
    allele0[[length(allele0)+1]] = matrix(c(...), nrow=6)
    allele1[[length(allele1)+1]] = matrix(c(...), nrow=6)
    xynR[[length(xynR)+1]] = matrix(c(...), nrow=4)
    mrank[[length(mrank)+1]] = c(...)
    gs[[length(gs)+1]] = c(...)
    males[[length(males)+1]] = c(...)
    takeover[[length(takeover)+1]] = c(attempts,takeovers,walkins)
    fFloater <- cbind(fFloater, n)
    mFloater <- cbind(mFloater, n)

    # optional epilogue script

allele0/allele1/xynR/mrank are skipped on ticks whose snapshot carries no
breeder genomes (simulation.alleles_last_only). The takeover triple is a
per-tick average over the ticks since the previous record, so the tick-0
record divides by 1 and the last-tick record by the remainder of the final
interval rather than by the full log interval. Nothing here draws random
numbers or mutates the population.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

from natal_philopatry import __version__
from natal_philopatry.config import OutputSection, SimulationConfig
from natal_philopatry.population import Population
from natal_philopatry.statistics import (
    PopulationSnapshot,
    mean_first_vote,
    mean_phenotype,
)
from natal_philopatry.types import N_LOCI, TakeoverStats

logger = logging.getLogger(__name__)


def _g(value) -> str:
    """Shortest general representation (6 significant digits)."""
    if isinstance(value, (bool, np.bool_)):
        return str(int(value))
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return f"{value:g}"


def _r_vector(values: Iterable, fmt=_g) -> str:
    return "c(" + ",".join(fmt(v) for v in values) + ")"


# ═══════════════════════════════════════════════════════════════════════
# RESULT FILE
# ═══════════════════════════════════════════════════════════════════════

class ResultWriter:
    """Streams PopulationSnapshots of one repetition into an R result file.

    Usage:
        with ResultWriter("res.R", config, repetition=0) as writer:
            for snap in simulation.run():
                writer.write_snapshot(snap)

    The file is opened (and the header written) on entry; the epilogue is
    appended on a clean exit. Failure to open the file propagates as OSError.
    """

    def __init__(self, path: Union[str, Path], config: SimulationConfig,
                 repetition: int = 0):
        self.path = Path(path)
        self.config = config
        self.repetition = repetition
        self.precision = config.output.precision
        self._fh = None

    def __enter__(self) -> ResultWriter:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.write_epilogue()
        self.close()

    def open(self) -> None:
        if self.path.parent != Path(''):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, 'w')
        self._fh.write(format_header(self.config, self.path, self.repetition))
        logger.debug("Writing results to %s", self.path)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _fixed(self, value) -> str:
        return f"{value:.{self.precision}f}"

    def write_snapshot(self, snap: PopulationSnapshot) -> None:
        """Append the record of one logging tick."""
        fh = self._fh
        fh.write(f"T <- cbind(T, {snap.tick})\n")
        if snap.breeder_genomes is not None:
            genomes = snap.breeder_genomes
            for copy in (0, 1):
                values = genomes[:, copy, :].ravel()
                fh.write(
                    f"allele{copy}[[length(allele{copy})+1]] = matrix("
                    f"{_r_vector(values, self._fixed)}, nrow={N_LOCI})\n"
                )
            flat = []
            for v in snap.votes:
                flat.extend((self._fixed(v.x), self._fixed(v.y), str(v.n), str(v.R)))
            fh.write(f"xynR[[length(xynR)+1]] = matrix(c({','.join(flat)}), nrow=4)\n")
            fh.write(f"mrank[[length(mrank)+1]] = {_r_vector(snap.mother_ranks)}\n")
        fh.write(f"gs[[length(gs)+1]] = {_r_vector(snap.group_sizes)}\n")
        fh.write(f"males[[length(males)+1]] = {_r_vector(snap.males)}\n")
        fh.write(
            f"takeover[[length(takeover)+1]] = "
            f"{_r_vector(snap.takeover_rate.as_tuple())}\n"
        )
        fh.write(f"fFloater <- cbind(fFloater, {snap.n_female_floaters})\n")
        fh.write(f"mFloater <- cbind(mFloater, {snap.n_male_floaters})\n")
        fh.write("\n")

    def write_epilogue(self) -> None:
        """Append output.epilogue (an R script), if configured."""
        epilogue = self.config.output.epilogue
        if not epilogue or self._fh is None:
            return
        with open(epilogue) as src:
            self._fh.write("\n")
            self._fh.write(src.read())


def format_header(config: SimulationConfig, path: Path, repetition: int) -> str:
    """R header: provenance, parameter set and empty list declarations."""
    sim, st, p = config.simulation, config.strategy, config.population
    f, g, sv, c = config.fecundity, config.genetics, config.survival, config.colonization
    lines = [
        "# Natal philopatry model result file",
        f"# Version {__version__}",
        f"path <- '{path.resolve().parent.as_posix()}/'",
        f"file <- '{path.name}'",
        f"rep <- {repetition}",
        "",
        "# Parameter set",
        f"m <- {_g(p.m)}",
        f"m0 <- {_g(p.m0)}",
        f"nmf <- {_g(p.nmf)}",
        f"F0 <- {_g(f.F0)}",
        f"phi <- {_g(f.phi)}",
        f"delta <- {_g(f.delta)}",
        f"k <- {_g(f.k)}",
        f"Alleles <- {_r_vector(g.allele_vector).replace(',', ', ')}",
        f"Mask <- {_r_vector(g.mask_vector).replace(',', ', ')}",
        f"Sb <- {_g(sv.Sb)}",
        f"Sm <- {_g(sv.Sm)}",
        f"Sff <- {_g(sv.Sff)}",
        f"Smf <- {_g(sv.Smf)}",
        f"Smax <- {_g(sv.Smax)}",
        f"sigma <- {_g(sv.sigma)}",
        f"thetaB <- {_g(sv.thetaB)}",
        f"thetaM <- {_g(sv.thetaM)}",
        f"gamma <- {_g(sv.gamma)}",
        f"eps <- {_g(c.eps)}",
        f"t0 <- {_g(c.t0)}",
        f"tau <- {_g(c.tau)}",
        f"mu <- {_g(g.mu)}",
        "mudist <- 'cauchy'",
        f"mutation_scale <- {_g(g.mutation_scale)}",
        f"mode <- '{st.mode}'",
        f"ovote <- '{st.ovote}'",
        f"bvote <- '{st.bvote}'",
        f"oplacement <- '{st.oplacement}'",
        f"ticks <- {sim.ticks}",
        f"log <- {sim.log_interval}",
        f"aloglast <- {int(sim.alleles_last_only)}",
        "",
        "T <- list()        # Vector of log-times",
        "",
        "# inherited alleles and response of the breeders per log",
        "# Each element in the following lists is a matrix(..., nrow = number alleles)",
        "allele0 <- list()  # list of first allele at gene loci A0, A1, A2, B0, B1, B2 per individual",
        "allele1 <- list()  # list of second allele at gene loci A0, A1, A2, B0, B1, B2 per individual",
        "xynR <- list()     # list of x(n,R) and y(n,R) per individual",
        "",
        "mrank <- list()    # rank of the breeders mother at birth",
        "gs <- list()       # group sizes",
        "males <- list()    # resident males",
        "takeover <- list() # {attempted, successful, walk-in}",
        "fFloater <- list() # number of female floater",
        "mFloater <- list() # number of male floater",
        "",
        "",
    ]
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════
# CONSOLE PROGRESS
# ═══════════════════════════════════════════════════════════════════════

def progress_header(out: OutputSection) -> str:
    """Column names matching progress_line() for the enabled flags."""
    cols = []
    if out.time:
        cols.append("T")
    if out.group_size:
        cols.append("gs")
    if out.males:
        cols.append("males")
    if out.female_floaters:
        cols.append("fFloater")
    if out.male_floaters:
        cols.append("mFloater")
    if out.alleles:
        cols.append("A0 A1 A2 B0 B1 B2")
    if out.votes:
        cols.append("x y")
    if out.takeovers:
        cols.append("attempts takeovers walkins")
    if out.profile:
        cols.append("secs")
    return "  ".join(cols)


def progress_line(out: OutputSection, T: int, population: Population,
                  rate: TakeoverStats, elapsed: Optional[float] = None) -> str:
    """One console progress line (4 significant digits)."""
    cols = []
    if out.time:
        cols.append(str(T))
    n_patches = len(population.patches) or 1
    if out.group_size:
        breeders = sum(patch.size for patch in population.patches)
        cols.append(f"{breeders / n_patches:.4g}")
    if out.males:
        males = sum(patch.has_male for patch in population.patches)
        cols.append(f"{males / n_patches:.4g}")
    if out.female_floaters:
        cols.append(str(len(population.female_floaters)))
    if out.male_floaters:
        cols.append(str(len(population.male_floaters)))
    if out.alleles:
        cols.append(" ".join(f"{v:.4g}" for v in mean_phenotype(population)))
    if out.votes:
        x, y = mean_first_vote(population)
        cols.append(f"{x:.4g} {y:.4g}")
    if out.takeovers:
        cols.append(" ".join(str(v) for v in rate.as_tuple()))
    if out.profile and elapsed is not None:
        cols.append(f"{elapsed:.4g}")
    return "  ".join(cols)
