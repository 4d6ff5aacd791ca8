"""Pure wagering engine: provably fair draws and outcome resolvers."""

from rewards.engine.provably_fair import FairSeed, ProvablyFairRng, SeedCommitment
from rewards.engine.resolvers import Resolution

__all__ = ["FairSeed", "ProvablyFairRng", "Resolution", "SeedCommitment"]
