"""Natal philopatry: evolution of natal dispersal in group-living females.

A discrete-time, individual-based model in which:
  - Female breeders live in rank-ordered groups on a fixed set of patches
  - Daughters stay or disperse by a genetically coded vote of their own
    (dispersal loci B0..B2) and of the residents (acceptance loci A0..A2)
  - Fecundity and survival depend on group size and rank
  - Floaters colonize empty patches or take over weakly held ones

Results are written as R scripts for offline analysis.
"""

__version__ = "0.1.0"
