"""Infection-Sim: agent-based contact-infection simulator.

An individual-based model of a bounded 2D arena:
  - Agents wander with a correlated random walk and bounce off, or leave
    through, the arena walls
  - Healthy agents accumulate close-contact time with contagious
    neighbours and may become infected (asymptomatic or symptomatic)
  - Infected agents recover into permanent immunity after 20-30 s
  - The population churns: leavers are removed, newcomers enter at the edges
  - Full engine state can be saved to and restored from JSON snapshots
"""

__version__ = "0.1.0"
