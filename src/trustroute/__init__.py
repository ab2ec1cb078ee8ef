"""trustroute: capability-aware agent delegation with trust gating."""

__version__ = "0.1.0"
