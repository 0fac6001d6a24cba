"""Tests for natal_philopatry.report — R result file and progress lines."""

import numpy as np
import pytest

from natal_philopatry import __version__
from natal_philopatry.config import OutputSection, config_from_dict
from natal_philopatry.individual import Individual
from natal_philopatry.model import run_simulation
from natal_philopatry.patch import Patch
from natal_philopatry.population import Population
from natal_philopatry.report import (
    ResultWriter,
    format_header,
    progress_header,
    progress_line,
)
from natal_philopatry.statistics import take_snapshot
from natal_philopatry.types import TakeoverStats, VoteRecord


def _config(**sections):
    data = {
        'simulation': {'ticks': 30, 'seed': 42, 'log_interval': 10},
        'population': {'m': 40, 'm0': 50, 'nmf': 20},
        'fecundity': {'F0': 3},
    }
    for key, values in sections.items():
        data.setdefault(key, {}).update(values)
    return config_from_dict(data)


def _lines(path, prefix):
    return [line for line in path.read_text().splitlines() if line.startswith(prefix)]


# ── Header ───────────────────────────────────────────────────────────

class TestHeader:
    def test_parameters(self, tmp_path):
        header = format_header(_config(), tmp_path / "res.R", 2)
        lines = header.splitlines()
        assert lines[0] == "# Natal philopatry model result file"
        assert lines[1] == f"# Version {__version__}"
        assert "file <- 'res.R'" in lines
        assert "rep <- 2" in lines
        assert "m <- 40" in lines
        assert "F0 <- 3" in lines
        assert "Alleles <- c(5, 0, 0, 5, 0, 0)" in lines
        assert "mudist <- 'cauchy'" in lines
        assert "mode <- 'random'" in lines
        assert "bvote <- 'despotic'" in lines
        assert "log <- 10" in lines

    def test_derived_theta(self, tmp_path):
        config = _config()
        header = format_header(config, tmp_path / "res.R", 0)
        assert f"thetaB <- {config.survival.thetaB:g}" in header.splitlines()

    def test_list_declarations(self, tmp_path):
        header = format_header(_config(), tmp_path / "res.R", 0)
        for name in ("T", "allele0", "allele1", "xynR", "mrank", "gs",
                     "males", "takeover", "fFloater", "mFloater"):
            assert any(line.startswith(f"{name} <- list()") for line in header.splitlines())


# ── Records ──────────────────────────────────────────────────────────

class TestResultFile:
    def test_one_record_per_logging_tick(self, tmp_path):
        path = tmp_path / "res.R"
        run_simulation(_config(), result_file=path)
        assert _lines(path, "T <- cbind(T, ") == [
            "T <- cbind(T, 0)", "T <- cbind(T, 10)",
            "T <- cbind(T, 20)", "T <- cbind(T, 29)",
        ]
        assert len(_lines(path, "allele0[[")) == 4
        assert len(_lines(path, "takeover[[")) == 4
        assert len(_lines(path, "fFloater <- cbind")) == 4

    def test_group_sizes_cover_every_patch(self, tmp_path):
        path = tmp_path / "res.R"
        run_simulation(_config(), result_file=path)
        for line in _lines(path, "gs[[") + _lines(path, "males[["):
            values = line.split("c(", 1)[1].rstrip(")").split(",")
            assert len(values) == 40

    def test_alleles_last_only(self, tmp_path):
        path = tmp_path / "res.R"
        run_simulation(_config(simulation={'alleles_last_only': True}), result_file=path)
        assert len(_lines(path, "allele0[[")) == 1
        assert len(_lines(path, "xynR[[")) == 1
        assert len(_lines(path, "mrank[[")) == 1
        assert len(_lines(path, "gs[[")) == 4

    def test_epilogue_appended(self, tmp_path):
        epilogue = tmp_path / "post.R"
        epilogue.write_text("plot(unlist(T), unlist(fFloater))\n")
        path = tmp_path / "res.R"
        run_simulation(_config(output={'epilogue': str(epilogue)}), result_file=path)
        assert path.read_text().endswith("plot(unlist(T), unlist(fFloater))\n")

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "results" / "run1" / "res.R"
        run_simulation(_config(simulation={'ticks': 2}), result_file=path)
        assert path.exists()

    def test_unwritable_path_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(OSError):
            with ResultWriter(blocker / "res.R", _config()):
                pass

    def test_record_format(self, tmp_path):
        ind = Individual.founder(np.array([1.23456, 0, 0, 2.5, 0, 0]), np.ones(6))
        patch = Patch(ind)
        patch.verdicts = [VoteRecord(0.5, 0.25, 1, 1)]
        pop = Population([patch, Patch()])
        snap = take_snapshot(pop, 7, TakeoverStats(9, 3, 1), TakeoverStats(2, 1, 0))
        path = tmp_path / "res.R"
        with ResultWriter(path, _config(output={'precision': 2})) as writer:
            writer.write_snapshot(snap)
        text = path.read_text()
        assert ("allele0[[length(allele0)+1]] = matrix("
                "c(1.23,0.00,0.00,2.50,0.00,0.00), nrow=6)") in text
        assert "xynR[[length(xynR)+1]] = matrix(c(0.50,0.25,1,1), nrow=4)" in text
        assert "mrank[[length(mrank)+1]] = c(0)" in text
        assert "gs[[length(gs)+1]] = c(1,0)" in text
        assert "males[[length(males)+1]] = c(0,0)" in text
        assert "takeover[[length(takeover)+1]] = c(2,1,0)" in text
        assert "mFloater <- cbind(mFloater, 0)" in text


# ── Console progress ─────────────────────────────────────────────────

class TestProgressLine:
    @pytest.fixture
    def population(self):
        founder = Individual.founder(np.array([5.0, 0, 0, 5.0, 0, 0]), np.ones(6))
        male = Individual.founder(np.array([5.0, 0, 0, 5.0, 0, 0]), np.ones(6))
        return Population([Patch(founder, male), Patch()], male_floaters=[male])

    def test_columns_follow_flags(self, population):
        out = OutputSection(time=True, group_size=True, males=True, male_floaters=True)
        line = progress_line(out, 12, population, TakeoverStats())
        assert line.split() == ["12", "0.5", "0.5", "1"]
        assert progress_header(out).split() == ["T", "gs", "males", "mFloater"]

    def test_alleles_and_takeovers(self, population):
        out = OutputSection(alleles=True, takeovers=True)
        line = progress_line(out, 0, population, TakeoverStats(4, 2, 1))
        assert line.split() == ["5", "0", "0", "5", "0", "0", "4", "2", "1"]

    def test_profile_column(self, population):
        out = OutputSection(profile=True)
        assert progress_line(out, 0, population, TakeoverStats(), 1.5) == "1.5"
