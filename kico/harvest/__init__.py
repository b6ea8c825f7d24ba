"""Resolver log harvesting.

Submodules:
    grammar    -- is_relevant / parse for CoreDNS ``log`` plugin lines.
    waiter     -- LogWaiter: bounded concurrent wait for a relevant line.
    harvester  -- LogHarvester: full log read into ConnectionEvents.
"""

from kico.harvest.grammar import FQDN_SUFFIX, is_relevant, parse
from kico.harvest.harvester import LogHarvester
from kico.harvest.waiter import LogWaiter

__all__ = ["FQDN_SUFFIX", "LogHarvester", "LogWaiter", "is_relevant", "parse"]
